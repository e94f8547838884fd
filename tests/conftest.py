from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from textwrap import dedent

import pytest

from skillkit_mcp.document_index import Root


def write_skill(
    root: Path,
    dir_name: str,
    name: str | None = None,
    description: str = "Test skill description",
    body: str = "Test skill content.",
) -> Path:
    """Create <root>/skills/<dir_name>/SKILL.md and return the skill directory."""
    skill_dir = root / "skills" / dir_name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: {name or dir_name}\ndescription: {description}\n---\n\n# {dir_name}\n\n{body}\n",
        encoding="utf-8",
    )
    return skill_dir


def write_prompt(root: Path, stem: str, content: str) -> Path:
    """Create <root>/prompts/<stem>.md with dedented content."""
    prompts_dir = root / "prompts"
    prompts_dir.mkdir(parents=True, exist_ok=True)
    path = prompts_dir / f"{stem}.md"
    path.write_text(dedent(content).lstrip("\n"), encoding="utf-8")
    return path


def local_roots(*paths: Path) -> list[Root]:
    return [Root(p, True) for p in paths]


class OriginRepo:
    """A local git repository with one skill; its path doubles as the clone URL."""

    def __init__(self, path: Path, git_bin: str) -> None:
        self.path = path
        self.git_bin = git_bin

    @property
    def url(self) -> str:
        return str(self.path)

    def git(self, *args: str) -> None:
        subprocess.run(
            [
                self.git_bin,
                "-c",
                "user.email=test@example.com",
                "-c",
                "user.name=Test User",
                *args,
            ],
            cwd=self.path,
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def commit_skill(self, description: str, message: str = "update") -> None:
        write_skill(self.path, "remote-skill", description=description)
        self.git("add", ".")
        self.git("commit", "-m", message)


@pytest.fixture
def git_bin() -> str:
    git = shutil.which("git")
    if git is None:
        pytest.skip("git is not installed")
    return git


@pytest.fixture
def origin_repo(tmp_path: Path, git_bin: str) -> OriginRepo:
    repo = OriginRepo(tmp_path / "origin", git_bin)
    repo.path.mkdir()
    repo.git("init")
    repo.commit_skill("Version one", "init")
    return repo
