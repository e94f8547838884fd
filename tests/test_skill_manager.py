from __future__ import annotations

from pathlib import Path

import pytest

from conftest import local_roots, write_skill
from skillkit_mcp.config import BUNDLED_DIR
from skillkit_mcp.document_index import Root, build_roots
from skillkit_mcp.errors import NotFoundError
from skillkit_mcp.skill_manager import SkillManager


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "root"
    write_skill(path, "code-review", description="Review code for issues")
    write_skill(path, "debugging", description="Systematic debugging")
    return path


def test_list_all_discovers_skills_sorted(root: Path) -> None:
    manager = SkillManager(local_roots(root))

    assert manager.list_all() == [
        {"name": "code-review", "description": "Review code for issues"},
        {"name": "debugging", "description": "Systematic debugging"},
    ]


def test_discovery_skips_underscore_and_incomplete_dirs(root: Path) -> None:
    write_skill(root, "_template")
    (root / "skills" / "no-skill-md").mkdir()
    (root / "skills" / "stray.md").write_text("not a skill", encoding="utf-8")

    manager = SkillManager(local_roots(root))

    assert manager.index.names() == ["code-review", "debugging"]


def test_list_all_falls_back_to_directory_name(tmp_path: Path) -> None:
    skill_dir = tmp_path / "skills" / "plain"
    skill_dir.mkdir(parents=True)
    (skill_dir / "SKILL.md").write_text("# Plain\n\nNo frontmatter.", encoding="utf-8")
    broken = tmp_path / "skills" / "broken"
    broken.mkdir()
    (broken / "SKILL.md").write_text(
        "---\nname: [unclosed\ndescription: x\n---\nBody", encoding="utf-8"
    )

    manager = SkillManager(local_roots(tmp_path))

    assert manager.list_all() == [
        {"name": "broken", "description": "No description available"},
        {"name": "plain", "description": "No description available"},
    ]
    assert "No frontmatter." in manager.get_content("plain")


def test_list_all_uses_frontmatter_name(tmp_path: Path) -> None:
    write_skill(tmp_path, "review-dir", name="pretty-review")

    manager = SkillManager(local_roots(tmp_path))

    assert manager.list_all()[0]["name"] == "pretty-review"
    # Lookups stay keyed by directory name.
    assert "pretty-review" in manager.get_content("review-dir")
    with pytest.raises(NotFoundError):
        manager.get_content("pretty-review")


def test_get_content_returns_full_file(root: Path) -> None:
    manager = SkillManager(local_roots(root))

    content = manager.get_content("code-review")

    assert content.startswith("---\nname: code-review\n")
    assert "# code-review" in content


def test_get_content_unknown_lists_available(root: Path) -> None:
    manager = SkillManager(local_roots(root))

    with pytest.raises(NotFoundError) as excinfo:
        manager.get_content("nonexistent")

    assert str(excinfo.value) == (
        "Skill 'nonexistent' not found. Available skills: code-review, debugging"
    )


def test_higher_priority_root_shadows_whole_skill(tmp_path: Path) -> None:
    high = tmp_path / "high"
    low = tmp_path / "low"
    write_skill(high, "shared", description="From high")
    write_skill(low, "shared", description="From low")
    write_skill(low, "low-only", description="Only low")
    refs = low / "skills" / "shared" / "references"
    refs.mkdir()
    (refs / "guide.md").write_text("low guide", encoding="utf-8")

    manager = SkillManager(local_roots(high, low))

    assert manager.list_all() == [
        {"name": "low-only", "description": "Only low"},
        {"name": "shared", "description": "From high"},
    ]
    assert manager.get_skill_dir("shared") == high / "skills" / "shared"
    # The shadowed skill's files are not merged in.
    with pytest.raises(NotFoundError, match="No references directory exists"):
        manager.get_reference("shared", "guide.md")


def test_get_script_and_reference(root: Path) -> None:
    skill_dir = root / "skills" / "code-review"
    (skill_dir / "scripts").mkdir()
    (skill_dir / "scripts" / "lint.sh").write_text("#!/bin/sh\necho lint\n", encoding="utf-8")
    (skill_dir / "references").mkdir()
    (skill_dir / "references" / "checklist.md").write_text("- [ ] tests", encoding="utf-8")

    manager = SkillManager(local_roots(root))

    assert manager.get_script("code-review", "lint.sh") == "#!/bin/sh\necho lint\n"
    assert manager.get_reference("code-review", "checklist.md") == "- [ ] tests"


def test_missing_script_messages(root: Path) -> None:
    manager = SkillManager(local_roots(root))
    scripts = root / "skills" / "code-review" / "scripts"

    with pytest.raises(NotFoundError, match="No scripts directory exists for this skill"):
        manager.get_script("code-review", "lint.sh")

    scripts.mkdir()
    with pytest.raises(NotFoundError, match="directory is empty"):
        manager.get_script("code-review", "lint.sh")

    (scripts / "format.py").write_text("", encoding="utf-8")
    (scripts / "check.sh").write_text("", encoding="utf-8")
    with pytest.raises(NotFoundError) as excinfo:
        manager.get_script("code-review", "lint.sh")
    assert str(excinfo.value) == (
        "Script 'lint.sh' not found in skill 'code-review'. "
        "Available scripts: check.sh, format.py"
    )


def test_script_for_unknown_skill(root: Path) -> None:
    manager = SkillManager(local_roots(root))

    with pytest.raises(NotFoundError, match="Skill 'nope' not found"):
        manager.get_script("nope", "x.sh")


def test_path_traversal_is_rejected(root: Path) -> None:
    skill_dir = root / "skills" / "code-review"
    (skill_dir / "references").mkdir()

    manager = SkillManager(local_roots(root))

    with pytest.raises(ValueError, match="must stay within"):
        manager.get_reference("code-review", "../SKILL.md")
    with pytest.raises(ValueError):
        manager.get_script("code-review", "../../debugging/SKILL.md")


def test_writable_paths_exclude_bundled_and_missing(tmp_path: Path) -> None:
    existing = tmp_path / "mine"
    existing.mkdir()
    roots = build_roots([str(existing), str(tmp_path / "missing")], include_bundled=True)

    manager = SkillManager(roots)

    assert manager.get_writable_paths() == [str(existing.resolve())]


def test_build_roots_orders_tiers_and_dedupes(tmp_path: Path) -> None:
    cli = tmp_path / "cli"
    env = tmp_path / "env"

    roots = build_roots([str(cli), str(env)], [str(env), str(cli)], bundled_dir=tmp_path / "b")

    assert roots == [
        Root(cli.resolve(), True),
        Root(env.resolve(), True),
        Root((tmp_path / "b").resolve(), False),
    ]
    assert build_roots([str(cli)], include_bundled=False) == [Root(cli.resolve(), True)]


def test_bundled_skill_creator_toggle(tmp_path: Path) -> None:
    with_bundled = SkillManager(build_roots([str(tmp_path)]))
    assert "skill-creator" in with_bundled.index.names()
    assert with_bundled.get_skill_dir("skill-creator") == BUNDLED_DIR / "skills" / "skill-creator"
    assert "Skill Creator" in with_bundled.get_content("skill-creator")
    assert with_bundled.get_writable_paths() == [str(tmp_path.resolve())]
    assert "Format" in with_bundled.get_reference("skill-creator", "skill-format.md")

    without = SkillManager(build_roots([str(tmp_path)], include_bundled=False))
    assert without.list_all() == []


def test_user_skill_shadows_bundled(tmp_path: Path) -> None:
    write_skill(tmp_path, "skill-creator", description="My own creator")

    manager = SkillManager(build_roots([str(tmp_path)]))

    entry = next(s for s in manager.list_all() if s["name"] == "skill-creator")
    assert entry["description"] == "My own creator"


def test_index_is_cached_per_manager(root: Path) -> None:
    manager = SkillManager(local_roots(root))
    assert manager.index.names() == ["code-review", "debugging"]

    write_skill(root, "added-later")

    assert manager.index.names() == ["code-review", "debugging"]
    assert "added-later" in SkillManager(local_roots(root)).index.names()
