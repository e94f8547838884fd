"""
Package entry point for launching the skillkit_mcp server module.

This allows running:
  - python -m skillkit_mcp            -> invokes skillkit_mcp.server CLI
  - python -m skillkit_mcp.server     -> also available directly via the server module

The entry point delegates to skillkit_mcp.server.cli_main() which supports
inspection and validation modes as well as starting the stdio MCP server.
"""

from skillkit_mcp.server import cli_main


def main() -> None:
    cli_main()


if __name__ == "__main__":
    main()
