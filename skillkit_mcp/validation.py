"""
skillkit_mcp.validation

Consistency checks for skill directories and prompt files. Results are
returned as dicts; nothing here raises on a bad document.

- validate_skill: stops at the first structural problem, then reports all
  name/description content problems together.
- validate_prompt: collects every error and warning in one pass.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from skillkit_mcp.document_index import PROMPTS_SUBDIR, SKILL_FILE, SKILLS_SUBDIR
from skillkit_mcp.errors import FrontmatterError
from skillkit_mcp.frontmatter import (
    ARGUMENT_TYPES,
    extract_body,
    extract_placeholders,
    get_declared_arguments,
    load_frontmatter,
    parse_frontmatter,
    split_frontmatter,
)

ALLOWED_PROPERTIES = frozenset({"name", "description", "license"})
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024
NAME_RE = re.compile(r"^[a-z0-9-]+$")


def _fail(message: str) -> dict[str, Any]:
    return {"valid": False, "message": message, "errors": [message]}


def validate_skill(skill_path: str | Path) -> dict[str, Any]:
    """
    function_purpose: Validate a skill directory's SKILL.md.

    Returns {"valid": bool, "message": str, "errors": list[str]}.
    """
    skill_md = Path(skill_path) / SKILL_FILE
    if not skill_md.is_file():
        return _fail("SKILL.md not found")

    try:
        content = skill_md.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return _fail(f"Error reading SKILL.md: {exc}")

    if not content.startswith("---"):
        return _fail("No YAML frontmatter found")

    try:
        split_frontmatter(content)
    except FrontmatterError:
        return _fail("Invalid frontmatter format")

    try:
        frontmatter = load_frontmatter(content)
    except FrontmatterError as exc:
        return _fail(str(exc))

    unexpected = sorted(str(k) for k in frontmatter if k not in ALLOWED_PROPERTIES)
    if unexpected:
        return _fail(
            f"Unexpected key(s) in SKILL.md frontmatter: {', '.join(unexpected)}. "
            f"Allowed properties are: {', '.join(sorted(ALLOWED_PROPERTIES))}"
        )

    errors: list[str] = []
    if "name" not in frontmatter:
        errors.append("Missing 'name' in frontmatter")
    if "description" not in frontmatter:
        errors.append("Missing 'description' in frontmatter")
    if errors:
        return {"valid": False, "message": "; ".join(errors), "errors": errors}

    name = frontmatter["name"]
    if not isinstance(name, str):
        return _fail(f"Name must be a string, got {type(name).__name__}")
    description = frontmatter["description"]
    if not isinstance(description, str):
        return _fail(f"Description must be a string, got {type(description).__name__}")

    name = name.strip()
    if name:
        if not NAME_RE.match(name):
            errors.append(
                f"Name '{name}' should be hyphen-case (lowercase letters, digits, and hyphens only)"
            )
        if name.startswith("-") or name.endswith("-") or "--" in name:
            errors.append(
                f"Name '{name}' cannot start/end with hyphen or contain consecutive hyphens"
            )
        if len(name) > MAX_NAME_LENGTH:
            errors.append(
                f"Name is too long ({len(name)} characters). Maximum is {MAX_NAME_LENGTH} characters."
            )

    description = description.strip()
    if description:
        if "<" in description or ">" in description:
            errors.append("Description cannot contain angle brackets (< or >)")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            errors.append(
                f"Description is too long ({len(description)} characters). "
                f"Maximum is {MAX_DESCRIPTION_LENGTH} characters."
            )

    if errors:
        return {"valid": False, "message": "; ".join(errors), "errors": errors}
    return {"valid": True, "message": "Skill is valid!", "errors": []}


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def find_similar(name: str, candidates: list[str], max_distance: int = 2) -> str | None:
    for candidate in candidates:
        if 0 < levenshtein_distance(name, candidate) <= max_distance:
            return candidate
    return None


def validate_prompt(prompt_path: str | Path) -> dict[str, Any]:
    """
    function_purpose: Check a prompt's declared arguments against its {{placeholders}}.

    Errors: undefined placeholders (with a typo suggestion when a declared
    argument is within edit distance 2), invalid argument types.
    Warnings: declared arguments never used, arguments without a description.

    Returns {"valid": bool, "errors": list[str], "warnings": list[str]}.
    """
    path = Path(prompt_path)
    if not path.is_file():
        return {"valid": False, "errors": [f"Prompt file not found: {path}"], "warnings": []}

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return {"valid": False, "errors": [f"Error reading prompt: {exc}"], "warnings": []}

    errors: list[str] = []
    warnings: list[str] = []

    declared = get_declared_arguments(parse_frontmatter(content))
    valid_types = list(ARGUMENT_TYPES)
    for arg_name, definition in declared.items():
        arg_type = definition.get("type")
        if arg_type is not None and arg_type not in valid_types:
            errors.append(f"Invalid type '{arg_type}'. Use: {', '.join(valid_types)}.")
        if not definition.get("description"):
            warnings.append(f"Argument '{arg_name}' has no description.")

    placeholders = extract_placeholders(extract_body(content))
    declared_names = list(declared)
    for var_name in placeholders:
        if var_name in declared:
            continue
        similar = find_similar(var_name, declared_names)
        if similar:
            errors.append(f"Undefined variable '{var_name}'. Did you mean '{similar}'?")
        else:
            errors.append(f"Undefined variable '{var_name}'. Add to arguments or fix typo.")

    for arg_name in declared_names:
        if arg_name not in placeholders:
            warnings.append(f"Argument '{arg_name}' defined but never used.")

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def validate_root(
    root: str | Path, skills: bool = True, prompts: bool = True
) -> dict[str, Any]:
    """
    function_purpose: Validate every skill and prompt under a root directory.

    Returns {"valid": bool, "skills": [{name, ...result}], "prompts": [{name, ...result}]}.
    A root without skills/ or prompts/ simply reports an empty list for it.
    """
    root_path = Path(root)
    report: dict[str, Any] = {"valid": True, "skills": [], "prompts": []}

    skills_dir = root_path / SKILLS_SUBDIR
    if skills and skills_dir.is_dir():
        for item in sorted(skills_dir.iterdir()):
            if not item.is_dir() or item.name.startswith("."):
                continue
            result = validate_skill(item)
            report["skills"].append({"name": item.name, **result})
            report["valid"] = report["valid"] and result["valid"]

    prompts_dir = root_path / PROMPTS_SUBDIR
    if prompts and prompts_dir.is_dir():
        for item in sorted(prompts_dir.iterdir()):
            if item.suffix != ".md" or not item.is_file():
                continue
            result = validate_prompt(item)
            report["prompts"].append({"name": item.stem, **result})
            report["valid"] = report["valid"] and result["valid"]

    return report
