"""Validation of install options against a package's config schema.

The schema is the JSON-schema subset used by package catalogs: nested
"properties", "required", "default", "type" and "enum". Options not named
in the schema are rejected unless the enclosing object sets
"additionalProperties": true.
"""

from typing import Any

from berth.errors import ValidationError

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "number": lambda v: isinstance(v, int | float) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
    "null": lambda v: v is None,
}


def validate_options(
    package_name: str,
    schema: dict[str, Any],
    options: dict[str, Any],
) -> dict[str, Any]:
    """Validate options and fill in schema defaults.

    Returns:
        The supplied options merged over the schema defaults

    Raises:
        ValidationError: On unknown options, missing required options that
            have no default, or type/enum mismatches
    """
    problems: list[str] = []
    merged = _resolve_object(schema, options, "", problems)
    if problems:
        raise ValidationError(package_name, problems)
    return merged


def _resolve_object(
    schema: dict[str, Any],
    supplied: dict[str, Any],
    path: str,
    problems: list[str],
) -> dict[str, Any]:
    properties: dict[str, Any] = schema.get("properties", {})
    required = set(schema.get("required", []))
    allow_extra = schema.get("additionalProperties", False) is True

    resolved: dict[str, Any] = {}
    for key, value in supplied.items():
        if key not in properties:
            if allow_extra:
                resolved[key] = value
            else:
                problems.append(f"unknown option '{path}{key}'")

    for key, prop in properties.items():
        option_path = f"{path}{key}"
        if key in supplied:
            value = supplied[key]
            if _is_nested(prop) and isinstance(value, dict):
                resolved[key] = _resolve_object(prop, value, f"{option_path}.", problems)
            else:
                _check_value(prop, value, option_path, problems)
                resolved[key] = value
        elif "default" in prop:
            resolved[key] = prop["default"]
        elif _is_nested(prop):
            # Absent optional objects still contribute their defaults; their
            # nested requirements only apply when the object itself is required
            nested_problems: list[str] = []
            nested = _resolve_object(prop, {}, f"{option_path}.", nested_problems)
            if key in required:
                problems.extend(nested_problems)
            if nested or key in required:
                resolved[key] = nested
        elif key in required:
            problems.append(f"missing required option '{option_path}'")

    return resolved


def _is_nested(prop: dict[str, Any]) -> bool:
    return prop.get("type") == "object" and "properties" in prop


def _check_value(prop: dict[str, Any], value: Any, path: str, problems: list[str]) -> None:
    expected = prop.get("type")
    if expected is not None:
        types = expected if isinstance(expected, list) else [expected]
        known = [t for t in types if t in _TYPE_CHECKS]
        if known and not any(_TYPE_CHECKS[t](value) for t in known):
            problems.append(f"option '{path}' must be of type {' or '.join(known)}")
            return

    if "enum" in prop and value not in prop["enum"]:
        allowed = ", ".join(str(v) for v in prop["enum"])
        problems.append(f"option '{path}' must be one of: {allowed}")
