"""
Exception types raised by skillkit_mcp.

Validation problems are reported as result dicts by skillkit_mcp.validation and
never raised.
"""

from __future__ import annotations


class SkillkitError(Exception):
    """Base class for all skillkit errors."""


class DependencyMissingError(SkillkitError):
    """A required external tool (git) is not installed."""


class RemoteFetchError(SkillkitError):
    """Cloning, fetching or checking out a remote skills repository failed."""

    def __init__(self, url: str, ref: str | None, output: str) -> None:
        self.url = url
        self.ref = ref
        self.output = output
        ref_part = f" (ref '{ref}')" if ref else ""
        super().__init__(
            f"Failed to fetch skills repository {url}{ref_part}.\n"
            f"git output:\n{output.strip() or '<no output>'}\n\n"
            "Troubleshooting:\n"
            f"  1. Try cloning manually: git clone {url}\n"
            "  2. For SSH URLs, check your access with: ssh -T git@<host>\n"
            "  3. For HTTPS URLs, make sure a git credential helper is configured\n"
            "     (git config --global credential.helper)"
        )


class NotFoundError(SkillkitError, LookupError):
    """A requested skill, prompt, script or reference does not exist."""


class FrontmatterError(SkillkitError, ValueError):
    """A document's frontmatter block is missing or malformed."""
