"""
skillkit_mcp.frontmatter

YAML frontmatter parsing and {{placeholder}} templating for skill and prompt
documents.

Two parsing modes:
- strict (split_frontmatter / load_frontmatter) raises FrontmatterError and is
  used by the validator;
- permissive (parse_frontmatter / extract_body) never raises and is used by
  discovery and listing so that one bad document cannot hide the others.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, create_model
from pydantic.fields import FieldInfo

from skillkit_mcp.errors import FrontmatterError

DELIMITER = "---"
PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")

ARGUMENT_TYPES: dict[str, Any] = {
    "string": str,
    "number": Union[int, float],
    "boolean": bool,
}


# --- Parsing ---
def split_frontmatter(text: str) -> tuple[str, str]:
    """
    function_purpose: Split a document into (frontmatter_text, body_text).

    The frontmatter is delimited by lines containing only '---'. Raises
    FrontmatterError when the opening or closing delimiter is missing.
    """
    lines = text.splitlines(keepends=False)
    if not lines or lines[0].strip() != DELIMITER:
        raise FrontmatterError("Document must begin with a '---' line for YAML frontmatter")

    idx = 1
    while idx < len(lines) and lines[idx].strip() != DELIMITER:
        idx += 1

    if idx >= len(lines):
        raise FrontmatterError("YAML frontmatter must end with a '---' line")

    return "\n".join(lines[1:idx]), "\n".join(lines[idx + 1 :])


def load_frontmatter(text: str) -> dict[str, Any]:
    """
    function_purpose: Strictly parse the frontmatter block into a mapping.

    Raises FrontmatterError for missing delimiters, invalid YAML, or a block
    that is not a mapping. An empty block yields {}.
    """
    fm_text, _ = split_frontmatter(text)
    try:
        fm = yaml.safe_load(fm_text)
    except yaml.YAMLError as exc:
        raise FrontmatterError(f"Invalid YAML in frontmatter: {exc}") from exc
    if fm is None:
        return {}
    if not isinstance(fm, dict):
        raise FrontmatterError("Frontmatter must be a YAML dictionary")
    return fm


def parse_frontmatter(text: str) -> dict[str, Any]:
    try:
        return load_frontmatter(text)
    except FrontmatterError:
        return {}


def extract_body(text: str) -> str:
    """Content after the closing delimiter, trimmed; the whole text when there is no frontmatter."""
    try:
        _, body = split_frontmatter(text)
    except FrontmatterError:
        return text.strip()
    return body.strip()


# --- Templating ---
def extract_placeholders(body: str) -> list[str]:
    """Unique {{identifier}} names in order of first occurrence."""
    return list(dict.fromkeys(PLACEHOLDER_RE.findall(body)))


def get_declared_arguments(frontmatter: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """
    function_purpose: Read the 'arguments' mapping from prompt frontmatter.

    Entries whose definition is not a mapping (e.g. a bare `code:`) become {}.
    """
    raw = frontmatter.get("arguments")
    if not isinstance(raw, dict):
        return {}
    return {
        str(name): dict(spec) if isinstance(spec, dict) else {}
        for name, spec in raw.items()
    }


def merge_arguments(
    declared: dict[str, dict[str, Any]], inferred: list[str]
) -> dict[str, dict[str, Any]]:
    """
    function_purpose: Combine declared arguments with placeholders found in the body.

    Declared definitions win and are not modified; each placeholder without a
    declaration is added as {} (string, required, no description).
    """
    merged = dict(declared)
    for name in inferred:
        if name not in merged:
            merged[name] = {}
    return merged


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def substitute(body: str, values: dict[str, Any]) -> str:
    """
    function_purpose: Replace {{key}} with values[key] for every key provided.

    Placeholders without a value are left untouched, braces included. The body
    is scanned once, so substituted text is never expanded again.
    """
    if not values:
        return body

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        return format_value(values[key])

    return PLACEHOLDER_RE.sub(_replace, body)


def build_parameter_model(
    model_name: str, arguments: dict[str, dict[str, Any]]
) -> type[BaseModel]:
    """
    function_purpose: Build a pydantic model that validates prompt argument values.

    - type: string (default) | number | boolean; unknown types fall back to string
    - default present      -> optional, takes the default
    - boolean, no default  -> optional, None when omitted (unset, not False)
    - otherwise            -> required

    Fields are named arg_0, arg_1, ... with the placeholder as alias, since
    placeholders like `_id` or `model_config` are not valid pydantic field
    names. Validate by alias and dump with by_alias=True.
    """
    field_definitions: dict[str, Any] = {}
    for index, (name, spec) in enumerate(arguments.items()):
        field_name = f"arg_{index}"
        type_name = spec.get("type", "string")
        field_type = ARGUMENT_TYPES.get(type_name, str) if isinstance(type_name, str) else str
        description = spec.get("description")
        if "default" in spec:
            field_definitions[field_name] = (
                field_type,
                Field(default=spec["default"], alias=name, description=description),
            )
        elif field_type is bool:
            field_definitions[field_name] = (
                Optional[bool],
                Field(default=None, alias=name, description=description),
            )
        else:
            field_definitions[field_name] = (field_type, Field(..., alias=name, description=description))

    return create_model(model_name, **field_definitions)


def argument_fields(model: type[BaseModel]) -> dict[str, FieldInfo]:
    """Fields of a model from build_parameter_model, keyed by argument name."""
    return {field.alias or name: field for name, field in model.model_fields.items()}
