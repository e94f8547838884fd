from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest
from fastmcp import Client
from fastmcp.exceptions import ToolError

from conftest import write_prompt, write_skill
from skillkit_mcp.server import build_managers, create_server


@pytest.fixture
def root(tmp_path: Path) -> Path:
    path = tmp_path / "root"
    skill_dir = write_skill(path, "code-review", description="Review code for issues")
    (skill_dir / "scripts").mkdir()
    (skill_dir / "scripts" / "lint.sh").write_text("echo lint\n", encoding="utf-8")
    (skill_dir / "references").mkdir()
    (skill_dir / "references" / "checklist.md").write_text("- tests pass\n", encoding="utf-8")
    write_prompt(
        path,
        "review",
        """
        ---
        name: review-code
        description: Review some code
        arguments:
          code:
            description: The code to review
          language:
            description: Programming language
            default: python
        ---

        Review this {{language}} code:

        {{code}}
        """,
    )
    return path


@pytest.fixture
def server(root: Path):
    skills, prompts = build_managers([str(root)], include_bundled=False)
    return create_server(skills, prompts)


def _call(server, tool: str, arguments: dict[str, Any] | None = None):
    async def _run():
        async with Client(server) as client:
            return await client.call_tool(tool, arguments or {})

    return asyncio.run(_run())


def _text(result) -> str:
    return result.content[0].text


def test_tools_are_registered(server) -> None:
    async def _run():
        async with Client(server) as client:
            return await client.list_tools()

    tools = {tool.name: tool for tool in asyncio.run(_run())}

    assert set(tools) == {
        "skillkit_list_skills",
        "skillkit_get_skill",
        "skillkit_get_script",
        "skillkit_get_reference",
        "skillkit_get_skill_paths",
    }
    for tool in tools.values():
        assert tool.annotations.readOnlyHint is True
        assert tool.annotations.destructiveHint is False
    assert set(tools["skillkit_get_script"].inputSchema["required"]) == {"skill", "filename"}


def test_list_skills(server) -> None:
    result = _call(server, "skillkit_list_skills")

    assert json.loads(_text(result)) == [
        {"name": "code-review", "description": "Review code for issues"}
    ]


def test_get_skill(server) -> None:
    text = _text(_call(server, "skillkit_get_skill", {"name": "code-review"}))

    assert text.startswith("---\nname: code-review")
    assert "Test skill content." in text


def test_get_skill_unknown_is_tool_error(server) -> None:
    with pytest.raises(ToolError, match="not found"):
        _call(server, "skillkit_get_skill", {"name": "nope"})


def test_get_script_and_reference(server) -> None:
    assert _text(
        _call(server, "skillkit_get_script", {"skill": "code-review", "filename": "lint.sh"})
    ) == "echo lint\n"
    assert _text(
        _call(
            server,
            "skillkit_get_reference",
            {"skill": "code-review", "filename": "checklist.md"},
        )
    ) == "- tests pass\n"

    with pytest.raises(ToolError, match="Available scripts: lint.sh"):
        _call(server, "skillkit_get_script", {"skill": "code-review", "filename": "x.sh"})


def test_get_skill_paths(server, root: Path) -> None:
    result = _call(server, "skillkit_get_skill_paths")

    assert json.loads(_text(result)) == [str(root.resolve())]


def test_prompts_are_registered_with_arguments(server) -> None:
    async def _run():
        async with Client(server) as client:
            return await client.list_prompts()

    prompts = asyncio.run(_run())

    assert [p.name for p in prompts] == ["review-code"]
    prompt = prompts[0]
    assert prompt.description == "Review some code"
    args = {a.name: a for a in prompt.arguments}
    assert args["code"].required is True
    assert args["code"].description == "The code to review"
    assert args["language"].required is False


def test_get_prompt_renders_with_defaults(server) -> None:
    async def _run():
        async with Client(server) as client:
            return await client.get_prompt("review-code", {"code": "print(1)"})

    result = asyncio.run(_run())

    assert len(result.messages) == 1
    message = result.messages[0]
    assert message.role == "user"
    assert message.content.text == "Review this python code:\n\nprint(1)"


def test_get_prompt_rereads_file(server, root: Path) -> None:
    prompt_file = root / "prompts" / "review.md"
    prompt_file.write_text(
        prompt_file.read_text(encoding="utf-8").replace("Review this", "Please review this"),
        encoding="utf-8",
    )

    async def _run():
        async with Client(server) as client:
            return await client.get_prompt("review-code", {"code": "x", "language": "go"})

    result = asyncio.run(_run())

    assert result.messages[0].content.text == "Please review this go code:\n\nx"


def test_get_prompt_missing_required_argument_fails(server) -> None:
    async def _run():
        async with Client(server) as client:
            return await client.get_prompt("review-code", {})

    with pytest.raises(Exception):
        asyncio.run(_run())


def test_bundled_content_is_served(tmp_path: Path) -> None:
    skills, prompts = build_managers([str(tmp_path)])
    server = create_server(skills, prompts)

    listed = json.loads(_text(_call(server, "skillkit_list_skills")))

    assert [s["name"] for s in listed] == ["skill-creator"]


def _list_prompts(server):
    async def _run():
        async with Client(server) as client:
            return await client.list_prompts()

    return asyncio.run(_run())


def test_server_starts_next_to_broken_prompt(root: Path) -> None:
    (root / "prompts" / "broken.md").write_bytes(b"---\ndescription: x\n---\n\xff\xfe bad")
    write_prompt(root, "odd", "---\ndescription: odd\n---\nUse {{_id}} and {{model_config}}\n")
    skills, prompts = build_managers([str(root)], include_bundled=False)

    server = create_server(skills, prompts)

    listed = {p.name: p for p in _list_prompts(server)}
    assert set(listed) == {"broken", "odd", "review-code"}
    assert not listed["broken"].arguments
    assert [a.name for a in listed["odd"].arguments] == ["_id", "model_config"]
    assert json.loads(_text(_call(server, "skillkit_list_skills")))[0]["name"] == "code-review"

    async def _run():
        async with Client(server) as client:
            return await client.get_prompt("odd", {"_id": "7", "model_config": "cfg"})

    assert asyncio.run(_run()).messages[0].content.text == "Use 7 and cfg"
