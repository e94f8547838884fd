"""
skillkit_mcp.document_index

Priority-ordered roots and the name -> location index built from them.

Root layout:
    <root>/skills/<skill-name>/SKILL.md
    <root>/skills/<skill-name>/scripts/<file>
    <root>/skills/<skill-name>/references/<file>
    <root>/prompts/<prompt-name>.md

Roots are ordered highest priority first. When two roots define the same
name, the higher-priority root wins the whole document; nothing is merged.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import NamedTuple

from skillkit_mcp.config import BUNDLED_DIR, expand_path
from skillkit_mcp.errors import NotFoundError

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"
SKILLS_SUBDIR = "skills"
PROMPTS_SUBDIR = "prompts"


class Root(NamedTuple):
    path: Path
    writable: bool


def build_roots(
    extra_paths: Iterable[str] | None = None,
    env_paths: Iterable[str] | None = None,
    include_bundled: bool = True,
    bundled_dir: Path = BUNDLED_DIR,
) -> list[Root]:
    """
    function_purpose: Assemble the ordered root list, highest priority first.

    Tiers:
    1. extra_paths (CLI --skills-path)
    2. env_paths (SKILLKIT_SKILLS_PATH), when the caller enables that tier
    3. the bundled root shipped with the package (read-only)

    Duplicates keep their highest-priority position. Paths that do not exist
    are kept and simply contribute no documents.
    """
    roots: list[Root] = []
    seen: set[Path] = set()

    def _add(raw: str | Path, writable: bool) -> None:
        path = expand_path(raw)
        if path in seen:
            return
        seen.add(path)
        roots.append(Root(path, writable))

    for raw in extra_paths or []:
        _add(raw, writable=True)
    for raw in env_paths or []:
        _add(raw, writable=True)
    if include_bundled:
        _add(bundled_dir, writable=False)
    return roots


def _iter_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as exc:
        logger.warning("Cannot list %s: %s", path, exc)
        return []


def index_skills(roots: list[Root]) -> dict[str, Path]:
    """
    function_purpose: Map skill directory name -> skill directory across all roots.

    A skill is an immediate subdirectory of <root>/skills/ that does not start
    with '_' and contains SKILL.md.
    """
    index: dict[str, Path] = {}
    for root in reversed(roots):
        skills_dir = root.path / SKILLS_SUBDIR
        if not skills_dir.is_dir():
            continue
        for item in _iter_dir(skills_dir):
            if item.name.startswith("_") or not item.is_dir():
                continue
            if (item / SKILL_FILE).is_file():
                index[item.name] = item
    return index


def index_prompts(roots: list[Root]) -> dict[str, Path]:
    """
    function_purpose: Map prompt filename stem -> prompt file across all roots.
    """
    index: dict[str, Path] = {}
    for root in reversed(roots):
        prompts_dir = root.path / PROMPTS_SUBDIR
        if not prompts_dir.is_dir():
            continue
        for item in _iter_dir(prompts_dir):
            if item.suffix == ".md" and item.is_file():
                index[item.name[: -len(".md")]] = item
    return index


class DocumentIndex:
    """
    Name -> location map for one document kind, built lazily on first use and
    kept for the lifetime of the instance. Documents themselves are always
    re-read from disk by the managers.
    """

    def __init__(
        self,
        kind: str,
        roots: list[Root],
        scanner: Callable[[list[Root]], dict[str, Path]],
    ) -> None:
        self.kind = kind
        self.roots = roots
        self._scanner = scanner
        self._entries: dict[str, Path] | None = None

    @property
    def entries(self) -> dict[str, Path]:
        if self._entries is None:
            self._entries = self._scanner(self.roots)
            logger.debug("Indexed %d %s(s) from %d root(s)", len(self._entries), self.kind, len(self.roots))
        return self._entries

    def names(self) -> list[str]:
        return sorted(self.entries)

    def items(self) -> list[tuple[str, Path]]:
        return sorted(self.entries.items())

    def locate(self, name: str) -> Path:
        try:
            return self.entries[name]
        except KeyError:
            available = ", ".join(self.names())
            raise NotFoundError(
                f"{self.kind.capitalize()} '{name}' not found. Available {self.kind}s: {available}"
            ) from None


def read_skill_file(skill_dir: Path, subdir: str, filename: str, skill: str, label: str) -> str:
    """
    function_purpose: Read <skill_dir>/<subdir>/<filename> as UTF-8 text.

    Raises NotFoundError with either the sibling files that do exist or a note
    that the subdirectory itself is missing. Filenames that escape the
    subdirectory are rejected with ValueError.
    """
    base = (skill_dir / subdir).resolve()
    file_path = (base / filename).resolve()

    # Prevent path traversal
    if base not in file_path.parents:
        raise ValueError(f"{label} filename must stay within the {subdir}/ directory")

    if not file_path.is_file():
        if base.is_dir():
            siblings = sorted(p.name for p in base.iterdir() if p.is_file())
            if siblings:
                raise NotFoundError(
                    f"{label.capitalize()} '{filename}' not found in skill '{skill}'. "
                    f"Available {label}s: {', '.join(siblings)}"
                )
            raise NotFoundError(
                f"{label.capitalize()} '{filename}' not found in skill '{skill}'. "
                f"The {subdir}/ directory is empty."
            )
        raise NotFoundError(
            f"{label.capitalize()} '{filename}' not found in skill '{skill}'. "
            f"No {subdir} directory exists for this skill."
        )

    return file_path.read_text(encoding="utf-8")
