"""Rendering of package job templates into scheduler job specifications.

Catalog templates are mustache (marathon.json.mustache). Values are not
HTML-escaped, and non-string values render as JSON so that booleans and
objects drop into the job specification as literals.
"""

import json
import re
from typing import Any

import pystache
from pystache.parser import ParsingError

from berth.errors import ValidationError
from berth.models.package import (
    PACKAGE_NAME_LABEL,
    PACKAGE_SOURCE_LABEL,
    PACKAGE_VERSION_LABEL,
    PackageDefinition,
)

# Leading name of any tag, sections and triple-mustache included
_TAG_NAME = re.compile(r"\{\{\{?\s*[#^/&]?\s*([A-Za-z_][\w-]*)[^}]*\}\}")


def _json_value(value: Any) -> str:
    """Render values the way JSON templates expect them."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict | list):
        return json.dumps(value)
    return str(value)


class _JobTemplateRenderer(pystache.Renderer):
    """Mustache renderer for JSON job templates."""

    def str_coerce(self, val: Any) -> str:
        return _json_value(val)


# Missing values render empty
_renderer = _JobTemplateRenderer(escape=lambda u: u, missing_tags="ignore")


def template_variables(template: str) -> set[str]:
    """Top-level names referenced by a job template."""
    return set(_TAG_NAME.findall(template))


def render_job_spec(
    definition: PackageDefinition,
    options: dict[str, Any],
    cluster: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Render a package's job template and tag it for later recovery.

    Args:
        definition: The package being installed
        options: Validated options, already merged with schema defaults
        cluster: Cluster identity exposed to the template as "cluster"

    Returns:
        The job specification with package labels added

    Raises:
        ValidationError: If the package has no template, the template does
            not render, or the result is not a JSON object
    """
    if not definition.job_template.strip():
        raise ValidationError(definition.name, ["package has no job template"])

    context: dict[str, Any] = {
        "cluster": cluster or {},
        "package": {"name": definition.name, "version": definition.version},
    }
    context.update(options)

    try:
        rendered = _renderer.render(definition.job_template, context)
    except ParsingError as e:
        raise ValidationError(definition.name, [f"job template could not be rendered: {e}"]) from e

    try:
        job_spec = json.loads(rendered)
    except json.JSONDecodeError as e:
        raise ValidationError(definition.name, [f"rendered job is not valid JSON: {e}"]) from e

    if not isinstance(job_spec, dict):
        raise ValidationError(definition.name, ["rendered job must be a JSON object"])

    job_spec.setdefault("id", f"/{definition.name}")
    labels = dict(job_spec.get("labels") or {})
    labels[PACKAGE_NAME_LABEL] = definition.name
    labels[PACKAGE_VERSION_LABEL] = definition.version
    labels[PACKAGE_SOURCE_LABEL] = str(definition.source_index)
    job_spec["labels"] = labels
    return job_spec
