"""
skillkit_mcp.server

FastMCP stdio server exposing skills as tools and prompts as MCP prompts,
gathered from priority-ordered local directories and git repositories.

Server-level documentation:
- Purpose: let MCP-aware agents discover and read team skills (SKILL.md plus
  scripts/ and references/) and trigger prompt templates.
- Sources, highest priority first:
  1. --skills-path values (local directories or git URLs, repeatable)
  2. SKILLKIT_SKILLS_PATH entries (disable with --no-env)
  3. skills and prompts bundled with this package (disable with --no-bundled)
  A name defined in several sources is served from the highest one only.
- Git sources: git@host:org/repo.git[#ref] or https://host/org/repo.git[#ref],
  cloned or updated under <SKILLKIT_HOME>/cache/repos/ once at startup.
- Transport: STDIO
- Logging: stderr + rotating file (<SKILLKIT_HOME>/logs/skillkit_mcp.log)

Usage:
  python -m skillkit_mcp                          # starts stdio server
  python -m skillkit_mcp --skills-path ~/team     # add a local root
  python -m skillkit_mcp --list                   # inspect without serving
  python -m skillkit_mcp --validate ./my-skills   # validate a root

MCP client config (stdio):
  command: python
  args: ["-m", "skillkit_mcp", "--skills-path", "git@github.com:org/skills.git"]
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from typing import Any

from fastmcp import FastMCP
from fastmcp.prompts.prompt import Prompt, PromptArgument
from mcp.types import PromptMessage, TextContent, ToolAnnotations
from pydantic import PydanticUserError, ValidationError

from skillkit_mcp import __version__
from skillkit_mcp.config import LOGGER_NAME, SERVER_NAME, Settings, load_settings
from skillkit_mcp.document_index import build_roots
from skillkit_mcp.errors import SkillkitError
from skillkit_mcp.frontmatter import argument_fields
from skillkit_mcp.git_source import resolve_sources
from skillkit_mcp.prompt_manager import PromptManager
from skillkit_mcp.skill_manager import SkillManager
from skillkit_mcp.validation import validate_root

READ_ONLY = ToolAnnotations(
    readOnlyHint=True,
    destructiveHint=False,
    idempotentHint=True,
    openWorldHint=False,
)


# --- Logging setup ---
def configure_logging(settings: Settings) -> logging.Logger:
    """
    function_purpose: Configure package logging to both stderr and a rotating file.

    - Creates the log directory if needed.
    - Safe to call more than once; handlers are only attached the first time.
    - stdout is left alone because it carries MCP traffic.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.getLevelName(settings.log_level)
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"
    )

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_file = settings.resolved_log_file
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # 5 files, 5MB each
        fh = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
    except OSError as exc:
        logger.warning("File logging disabled, cannot open %s: %s", log_file, exc)
    else:
        fh.setFormatter(formatter)
        logger.addHandler(fh)
        logger.debug("Logging initialized. File: %s", str(log_file))

    return logger


# --- Managers ---
def build_managers(
    skill_paths: list[str] | None = None,
    env_paths: list[str] | None = None,
    include_bundled: bool = True,
) -> tuple[SkillManager, PromptManager]:
    """
    function_purpose: Build skill and prompt managers sharing one root list.

    Paths must already be local; run git URLs through resolve_sources first.
    """
    roots = build_roots(skill_paths, env_paths, include_bundled=include_bundled)
    return SkillManager(roots), PromptManager(roots)


def resolve_startup_sources(
    settings: Settings, cli_sources: list[str], use_env: bool = True
) -> tuple[list[str], list[str]]:
    """
    function_purpose: Resolve CLI and environment sources to local directories.

    Git URLs are cloned or updated in the cache, sequentially. Any failure
    aborts startup.
    """
    logger = logging.getLogger(LOGGER_NAME)
    extra = resolve_sources(cli_sources, settings.home)
    env = resolve_sources(settings.env_sources, settings.home) if use_env else []
    logger.info("Resolved skill roots: cli=%s env=%s", extra, env)
    return extra, env


# --- Prompts ---
class DocumentPrompt(Prompt):
    """An MCP prompt backed by a prompt file; the file is re-read on each render."""

    renderer: Callable[[dict[str, Any]], str]

    async def render(self, arguments: dict[str, Any] | None = None) -> list[PromptMessage]:
        text = self.renderer(arguments or {})
        return [PromptMessage(role="user", content=TextContent(type="text", text=text))]


def _prompt_arguments(prompts: PromptManager, key: str) -> list[PromptArgument]:
    fields = argument_fields(prompts.build_args_model(key))
    return [
        PromptArgument(
            name=arg_name,
            description=field.description,
            required=field.is_required(),
        )
        for arg_name, field in fields.items()
    ]


def register_prompts(mcp: FastMCP, prompts: PromptManager) -> None:
    """
    function_purpose: Register one MCP prompt per discovered prompt file.

    Prompts are keyed by file stem; the frontmatter 'name' becomes the MCP name.
    A prompt whose arguments cannot be derived is still registered, without
    arguments, so one broken file never keeps the others from being served.
    """
    logger = logging.getLogger(LOGGER_NAME)
    # list_all() and names() are both sorted by file stem
    for key, info in zip(prompts.index.names(), prompts.list_all()):
        try:
            arguments = _prompt_arguments(prompts, key)
        except (OSError, UnicodeDecodeError, PydanticUserError) as exc:
            logger.warning("Registering prompt %s without arguments: %s", key, exc)
            arguments = []
        mcp.add_prompt(
            DocumentPrompt(
                name=info["name"],
                description=info["description"],
                arguments=arguments,
                renderer=lambda arguments, key=key: prompts.render(key, arguments),
            )
        )
        logger.debug("Registered prompt %s (%s)", info["name"], key)


# --- FastMCP server and tools ---
def create_server(skills: SkillManager, prompts: PromptManager) -> FastMCP:
    """
    function_purpose: Create the FastMCP server with skill tools and prompt templates.
    """
    mcp = FastMCP(
        SERVER_NAME,
        version=__version__,
        instructions=(
            "SkillKit MCP Server\n"
            "\n"
            "Serves reusable coding-agent skills. Each skill is a SKILL.md with step-by-step\n"
            "instructions, optionally backed by scripts/ and references/ files.\n"
            "\n"
            "Workflow:\n"
            "1. Call skillkit_list_skills() when the user mentions skills or a task may match one.\n"
            "2. Call skillkit_get_skill(name) for the full instructions and follow them.\n"
            "3. Fetch files the instructions mention with skillkit_get_script(skill, filename)\n"
            "   or skillkit_get_reference(skill, filename).\n"
            "4. To author a new skill, call skillkit_get_skill_paths() for writable directories.\n"
        ),
    )
    logger = logging.getLogger(LOGGER_NAME)

    @mcp.tool(annotations=READ_ONLY)
    def skillkit_list_skills() -> list[dict[str, Any]]:
        """
        List all available skills with name and description.

        Call this FIRST when the user mentions skills or asks what skills exist.
        If a skill matches the task, fetch it with skillkit_get_skill(name) and
        follow its instructions.
        """
        return skills.list_all()

    @mcp.tool(annotations=READ_ONLY)
    def skillkit_get_skill(name: str) -> str:
        """
        Get the full instructions (SKILL.md content) for a skill.

        Args:
        - name: skill name from skillkit_list_skills() (e.g. 'code-review')

        If the instructions reference scripts or docs, fetch them with
        skillkit_get_script() / skillkit_get_reference().
        """
        logger.info("get_skill name=%s", name)
        return skills.get_content(name)

    @mcp.tool(annotations=READ_ONLY)
    def skillkit_get_script(skill: str, filename: str) -> str:
        """
        Get a file from a skill's scripts/ folder.

        Only call this when a skill's instructions reference the script. Returns
        the raw script; run it locally as the skill describes.
        """
        logger.info("get_script skill=%s filename=%s", skill, filename)
        return skills.get_script(skill, filename)

    @mcp.tool(annotations=READ_ONLY)
    def skillkit_get_reference(skill: str, filename: str) -> str:
        """
        Get a document from a skill's references/ folder.

        Only call this when a skill's instructions reference the document.
        """
        logger.info("get_reference skill=%s filename=%s", skill, filename)
        return skills.get_reference(skill, filename)

    @mcp.tool(annotations=READ_ONLY)
    def skillkit_get_skill_paths() -> list[str]:
        """
        Get the configured skill directories where new skills can be created.

        Returns roots from --skills-path and SKILLKIT_SKILLS_PATH that exist on
        disk. The bundled skills directory is read-only and never included.
        """
        return skills.get_writable_paths()

    register_prompts(mcp, prompts)
    return mcp


# --- Entry points ---
def run(mcp: FastMCP) -> None:
    """
    function_purpose: Start the MCP stdio server.
    """
    logging.getLogger(LOGGER_NAME).info("Server starting (stdio)")
    mcp.run()  # stdio transport by default


def _parse_arg_pairs(pairs: list[str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"--arg expects KEY=VALUE, got '{pair}'")
        values[key] = value
    return values


def _print_validation(report: dict[str, Any]) -> None:
    if report["skills"]:
        print("Validating skills...\n")
        for item in report["skills"]:
            if item["valid"]:
                print(f"  ✓ {item['name']}")
            else:
                print(f"  ✗ {item['name']}: {item['message']}")
        print()
    if report["prompts"]:
        print("Validating prompts...\n")
        for item in report["prompts"]:
            mark = "✗" if not item["valid"] else ("⚠" if item["warnings"] else "✓")
            print(f"  {mark} {item['name']}")
            for error in item["errors"]:
                print(f"      Error: {error}")
            for warning in item["warnings"]:
                print(f"      Warning: {warning}")
        print()
    print("All validations passed!" if report["valid"] else "Validation failed with errors.")


def cli_main(argv: list[str] | None = None) -> None:
    """
    function_purpose: CLI for inspecting skills/prompts, validating a root, or serving.

    Usage:
      python -m skillkit_mcp [--skills-path PATH_OR_GIT_URL ...] [--no-bundled] [--no-env]
      python -m skillkit_mcp --list
      python -m skillkit_mcp --list-prompts
      python -m skillkit_mcp --detail <NAME>
      python -m skillkit_mcp --prompt <NAME> [--arg KEY=VALUE ...]
      python -m skillkit_mcp --validate [PATH] [--skills-only | --prompts-only]
    """
    import argparse

    parser = argparse.ArgumentParser(
        prog="skillkit-mcp",
        description="SkillKit: reusable AI coding agent skills via MCP.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-s",
        "--skills-path",
        action="append",
        default=[],
        metavar="PATH",
        help="Additional skills directory or git URL (repeatable, highest priority first)",
    )
    parser.add_argument(
        "--no-bundled", action="store_true", help="Disable bundled default skills and prompts"
    )
    parser.add_argument(
        "--no-env", action="store_true", help="Ignore SKILLKIT_SKILLS_PATH"
    )
    parser.add_argument(
        "--list", action="store_true", help="List all discovered skills and exit"
    )
    parser.add_argument(
        "--list-prompts", action="store_true", help="List all discovered prompts and exit"
    )
    parser.add_argument(
        "--detail", metavar="NAME", help="Print the SKILL.md content of a skill"
    )
    parser.add_argument(
        "--prompt", metavar="NAME", help="Render a prompt with --arg values and print it"
    )
    parser.add_argument(
        "--arg",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Prompt argument for --prompt (repeatable)",
    )
    parser.add_argument(
        "--validate",
        nargs="?",
        const=".",
        metavar="PATH",
        help="Validate skills and prompts under PATH (default: current directory)",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--skills-only", action="store_true", help="Only validate skills")
    group.add_argument("--prompts-only", action="store_true", help="Only validate prompts")
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start MCP stdio server (default when no flags used)",
    )

    args = parser.parse_args(argv)
    settings = load_settings()
    logger = configure_logging(settings)

    if args.validate is not None:
        logger.info("Validating root: %s", args.validate)
        report = validate_root(
            args.validate, skills=not args.prompts_only, prompts=not args.skills_only
        )
        _print_validation(report)
        if not report["valid"]:
            raise SystemExit(1)
        return

    try:
        extra, env = resolve_startup_sources(
            settings, args.skills_path, use_env=not args.no_env
        )
    except SkillkitError as exc:
        logger.error("Source resolution failed: %s", exc)
        raise SystemExit(1) from exc

    skills, prompts = build_managers(extra, env, include_bundled=not args.no_bundled)

    try:
        if args.list:
            print(json.dumps(skills.list_all(), indent=2, ensure_ascii=False))
            return
        if args.list_prompts:
            print(json.dumps(prompts.list_all(), indent=2, ensure_ascii=False))
            return
        if args.detail:
            print(skills.get_content(args.detail))
            return
        if args.prompt:
            print(prompts.render(args.prompt, _parse_arg_pairs(args.arg)))
            return
    except (SkillkitError, ValidationError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    # Default: start server
    run(create_server(skills, prompts))


if __name__ == "__main__":
    cli_main()
