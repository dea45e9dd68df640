"""Parsing of a fetched catalog checkout into package definitions.

Catalogs use the universe layout:

    repo/packages/<letter>/<name>/<revision>/
        package.json            name, version, description, maintainer, ...
        config.json             JSON schema of install options (optional)
        marathon.json.mustache  job template (or marathon.json)

A catalog without a packages directory is an error for the whole source.
A single malformed package is skipped with a warning so one bad entry does
not hide the rest of the catalog.
"""

import json
import logging
from pathlib import Path
from typing import Any

from berth.models.package import PackageDefinition

logger = logging.getLogger(__name__)

PACKAGE_DIRS = ("repo/packages", "packages")
TEMPLATE_FILES = ("marathon.json.mustache", "marathon.json")


class CatalogError(Exception):
    """A catalog checkout has no recognizable package layout."""


def find_packages_dir(root: Path) -> Path:
    for candidate in PACKAGE_DIRS:
        packages_dir = root / candidate
        if packages_dir.is_dir():
            return packages_dir
    raise CatalogError(f"No packages directory found in catalog at {root}")


def parse_catalog(root: Path, source_index: int) -> list[PackageDefinition]:
    """Parse every package revision under root.

    Args:
        root: Catalog checkout directory
        source_index: Index of the source the catalog belongs to

    Returns:
        Definitions sorted by (name, version directory)

    Raises:
        CatalogError: If root has no packages directory
    """
    packages_dir = find_packages_dir(root)

    definitions: list[PackageDefinition] = []
    for package_json in sorted(packages_dir.glob("*/*/*/package.json")):
        revision_dir = package_json.parent
        try:
            definitions.append(parse_package_dir(revision_dir, source_index))
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Skipping malformed package at %s: %s", revision_dir, e)

    return definitions


def parse_package_dir(revision_dir: Path, source_index: int) -> PackageDefinition:
    """Parse one package revision directory.

    Raises:
        ValueError: If package.json lacks a name or version, or a file is not valid JSON
        OSError: If a file cannot be read
    """
    metadata = _read_json(revision_dir / "package.json")
    if not isinstance(metadata, dict):
        raise ValueError("package.json must contain a JSON object")

    name = metadata.get("name")
    version = metadata.get("version")
    if not name or not version:
        raise ValueError("package.json must define name and version")

    config_path = revision_dir / "config.json"
    config_schema: dict[str, Any] = {}
    if config_path.exists():
        loaded = _read_json(config_path)
        if not isinstance(loaded, dict):
            raise ValueError("config.json must contain a JSON object")
        config_schema = loaded

    job_template = ""
    for template_name in TEMPLATE_FILES:
        template_path = revision_dir / template_name
        if template_path.exists():
            job_template = template_path.read_text(encoding="utf-8")
            break

    return PackageDefinition(
        name=str(name),
        version=str(version),
        source_index=source_index,
        metadata={k: v for k, v in metadata.items() if k not in ("name", "version")},
        config_schema=config_schema,
        job_template=job_template,
    )


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"{path.name} is not valid JSON: {e}") from e
