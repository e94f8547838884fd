"""
skillkit_mcp.skill_manager

Skill discovery and content retrieval across priority-ordered roots.

A skill is a directory holding SKILL.md (YAML frontmatter + markdown body) and
optional scripts/ and references/ subdirectories.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from skillkit_mcp.document_index import (
    SKILL_FILE,
    DocumentIndex,
    Root,
    index_skills,
    read_skill_file,
)
from skillkit_mcp.frontmatter import parse_frontmatter

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available"
UNREADABLE_DESCRIPTION = "Unable to read skill description"


class SkillManager:
    """
    Serves skills from a list of roots (highest priority first).

    The name -> directory index is computed once per instance; SKILL.md and
    its scripts/references are read from disk on every call.
    """

    def __init__(self, roots: list[Root]) -> None:
        self.roots = roots
        self.index = DocumentIndex("skill", roots, index_skills)

    def get_writable_paths(self) -> list[str]:
        """
        function_purpose: Roots where new skills may be created.

        Excludes the bundled root and roots that do not exist on disk.
        """
        return [str(r.path) for r in self.roots if r.writable and r.path.is_dir()]

    def list_all(self) -> list[dict[str, Any]]:
        """
        function_purpose: List every skill as {name, description}, sorted by directory name.

        Malformed or unreadable SKILL.md files still appear, under their
        directory name.
        """
        result: list[dict[str, Any]] = []
        for key, skill_dir in self.index.items():
            try:
                text = (skill_dir / SKILL_FILE).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed reading %s: %s", skill_dir / SKILL_FILE, exc)
                result.append({"name": key, "description": UNREADABLE_DESCRIPTION})
                continue

            fm = parse_frontmatter(text)
            name = fm.get("name")
            description = fm.get("description")
            result.append(
                {
                    "name": name if isinstance(name, str) and name else key,
                    "description": description if isinstance(description, str) else NO_DESCRIPTION,
                }
            )
        return result

    def get_skill_dir(self, name: str) -> Path:
        return self.index.locate(name)

    def get_content(self, name: str) -> str:
        """Full raw SKILL.md text, frontmatter included."""
        skill_dir = self.index.locate(name)
        return (skill_dir / SKILL_FILE).read_text(encoding="utf-8")

    def get_script(self, skill: str, filename: str) -> str:
        skill_dir = self.index.locate(skill)
        return read_skill_file(skill_dir, "scripts", filename, skill, "script")

    def get_reference(self, skill: str, filename: str) -> str:
        skill_dir = self.index.locate(skill)
        return read_skill_file(skill_dir, "references", filename, skill, "reference")
