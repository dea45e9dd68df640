"""Package sources, definitions, requests and installed apps."""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from berth.errors import ParseError

PACKAGE_NAME_LABEL = "BERTH_PACKAGE_NAME"
PACKAGE_VERSION_LABEL = "BERTH_PACKAGE_VERSION"
PACKAGE_SOURCE_LABEL = "BERTH_PACKAGE_SOURCE"


class SourceType(str, Enum):
    """Transport used to fetch a package catalog.

    Each member needs a matching SourceFetcher in BerthContext.fetchers.
    """

    GIT = "git"


@dataclass(frozen=True)
class PackageSource:
    """A prioritized remote package catalog.

    Lower index means higher priority. The index is supplied by the caller
    and never changed by the synchronizer.
    """

    name: str
    path: str
    source_type: SourceType
    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Source {self.name}: index must be non-negative, got {self.index}")
        if not self.name:
            raise ValueError("Source name must not be empty")


@dataclass(frozen=True)
class PackageDefinition:
    """A named, versioned, installable unit from one source."""

    name: str
    version: str
    source_index: int
    metadata: dict[str, Any] = field(default_factory=dict)
    config_schema: dict[str, Any] = field(default_factory=dict)
    job_template: str = ""

    @property
    def description(self) -> str:
        return str(self.metadata.get("description", ""))

    @property
    def maintainer(self) -> str:
        return str(self.metadata.get("maintainer", ""))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "source_index": self.source_index,
            "metadata": self.metadata,
            "config_schema": self.config_schema,
            "job_template": self.job_template,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @staticmethod
    def from_json(raw: str) -> "PackageDefinition":
        data = json.loads(raw)
        return PackageDefinition(
            name=data["name"],
            version=data["version"],
            source_index=int(data["source_index"]),
            metadata=data.get("metadata", {}),
            config_schema=data.get("config_schema", {}),
            job_template=data.get("job_template", ""),
        )


@dataclass(frozen=True)
class PackageSummary:
    """Listing view of the active latest version of a package."""

    name: str
    version: str
    source_index: int
    description: str
    maintainer: str
    versions: tuple[str, ...]


@dataclass(frozen=True)
class PackageRequest:
    """An install or uninstall request parsed from a JSON body."""

    name: str
    version: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_json(body: bytes | str, name_override: str | None = None) -> "PackageRequest":
        """Parse a request body.

        Args:
            body: Raw JSON body. May be empty when name_override is given.
            name_override: Package name from the request path. Takes precedence
                over any name in the body.

        Raises:
            ParseError: If the body is not a JSON object or has no usable name
        """
        text = body.decode("utf-8") if isinstance(body, bytes) else body
        if text.strip() == "":
            if name_override:
                return PackageRequest(name=name_override)
            raise ParseError("Request body is empty")

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Request body is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("Request body must be a JSON object")

        name = name_override or data.get("name")
        if not isinstance(name, str) or not name:
            raise ParseError("Package name is required")

        version = data.get("version")
        if version is not None and not isinstance(version, str):
            raise ParseError("Package version must be a string")

        options = data.get("config", data.get("options", {}))
        if options is None:
            options = {}
        if not isinstance(options, dict):
            raise ParseError("Package options must be a JSON object")

        return PackageRequest(name=name, version=version or None, options=options)


@dataclass(frozen=True)
class InstalledApp:
    """A running scheduler job produced by a package install."""

    app_id: str
    package_name: str
    package_version: str
    labels: dict[str, str] = field(default_factory=dict)

    def matches(self, request: PackageRequest) -> bool:
        if self.package_name != request.name:
            return False
        return request.version is None or self.package_version == request.version


_VERSION_TOKEN = re.compile(r"\d+|[A-Za-z]+")


def version_key(version: str) -> tuple[tuple[int, int | str], ...]:
    """Sort key for package versions.

    Numeric runs compare numerically and sort above alphabetic runs, so
    1.10.0 > 1.9.2 and 0.2.0-1 > 0.2.0-beta.
    """
    key: list[tuple[int, int | str]] = []
    for token in _VERSION_TOKEN.findall(version):
        if token.isdigit():
            key.append((1, int(token)))
        else:
            key.append((0, token.lower()))
    return tuple(key)
