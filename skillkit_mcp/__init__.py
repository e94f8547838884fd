"""
skillkit_mcp: FastMCP stdio server serving reusable agent skills and prompt templates.

Skills and prompts are discovered across priority-ordered roots (local
directories, cached git clones, and the bundled defaults) and exposed to
MCP-aware clients as read-only tools and prompts.
"""

__version__: str = "0.3.0"


def version() -> str:
    return __version__


__all__: list[str] = ["__version__", "version"]
