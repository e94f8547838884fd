"""
skillkit_mcp.prompt_manager

Prompt discovery, argument derivation and rendering.

Prompts are markdown files under <root>/prompts/ whose frontmatter may declare
an `arguments` mapping:

    ---
    name: review
    description: Review some code
    arguments:
      language:
        description: Programming language
        default: typescript
    ---
    Review this {{language}} code: {{code}}

Arguments are the declared ones plus every {{placeholder}} in the body
(here: language, declared with a default, and code, inferred and required).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from skillkit_mcp.document_index import DocumentIndex, Root, index_prompts
from skillkit_mcp.frontmatter import (
    build_parameter_model,
    extract_body,
    extract_placeholders,
    get_declared_arguments,
    merge_arguments,
    parse_frontmatter,
    substitute,
)

logger = logging.getLogger(__name__)


def _model_name(prompt: str) -> str:
    return "PromptArgs_" + re.sub(r"\W", "_", prompt)


class PromptManager:
    """
    Serves prompts from a list of roots (highest priority first). Only the
    name -> file index is cached; files are re-read on every call.
    """

    def __init__(self, roots: list[Root]) -> None:
        self.roots = roots
        self.index = DocumentIndex("prompt", roots, index_prompts)

    def _read(self, name: str) -> str:
        return self.index.locate(name).read_text(encoding="utf-8")

    def get_path(self, name: str) -> Path:
        return self.index.locate(name)

    def list_all(self) -> list[dict[str, Any]]:
        """
        function_purpose: List prompts as {name, description, arguments?}, sorted by file stem.

        'arguments' is only present when the merged argument spec is non-empty.
        Unreadable files are listed under their file stem with an empty description.
        """
        result: list[dict[str, Any]] = []
        for key, path in self.index.items():
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed reading %s: %s", path, exc)
                result.append({"name": key, "description": ""})
                continue

            fm = parse_frontmatter(text)
            name = fm.get("name")
            description = fm.get("description")
            info: dict[str, Any] = {
                "name": name if isinstance(name, str) and name else key,
                "description": description if isinstance(description, str) else "",
            }
            arguments = merge_arguments(
                get_declared_arguments(fm), extract_placeholders(extract_body(text))
            )
            if arguments:
                info["arguments"] = arguments
            result.append(info)
        return result

    def get_body(self, name: str) -> str:
        return extract_body(self._read(name))

    def get_template_variables(self, name: str) -> list[str]:
        return extract_placeholders(self.get_body(name))

    def get_arguments(self, name: str) -> dict[str, dict[str, Any]]:
        """Arguments declared in frontmatter only."""
        return get_declared_arguments(parse_frontmatter(self._read(name)))

    def get_merged_arguments(self, name: str) -> dict[str, dict[str, Any]]:
        text = self._read(name)
        return merge_arguments(
            get_declared_arguments(parse_frontmatter(text)),
            extract_placeholders(extract_body(text)),
        )

    def build_args_model(self, name: str) -> type[BaseModel]:
        return build_parameter_model(_model_name(name), self.get_merged_arguments(name))

    def get_body_with_args(self, name: str, values: dict[str, Any]) -> str:
        """Body with {{key}} replaced for each key in values; other placeholders stay as-is."""
        return substitute(self.get_body(name), values)

    def render(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """
        function_purpose: Validate arguments against the prompt's schema, apply defaults, substitute.

        Raises pydantic.ValidationError when a required argument is missing or a
        value does not match its declared type. Unset optional booleans are not
        substituted.
        """
        text = self._read(name)
        merged = merge_arguments(
            get_declared_arguments(parse_frontmatter(text)),
            extract_placeholders(extract_body(text)),
        )
        model = build_parameter_model(_model_name(name), merged)
        values = model.model_validate(arguments or {}).model_dump(by_alias=True, exclude_none=True)
        return substitute(extract_body(text), values)
