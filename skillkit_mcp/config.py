"""
skillkit_mcp.config

Environment-derived settings, read once at startup and threaded into the
managers and the repository cache.

Environment (optional):
- SKILLKIT_HOME: state directory for the git cache and logs (default: ~/.skillkit)
- SKILLKIT_SKILLS_PATH: extra skill roots or git URLs, separated by os.pathsep
- SKILLKIT_LOG_FILE: override log file path (default: <home>/logs/skillkit_mcp.log)
- SKILLKIT_LOG_LEVEL: logging level name (default: INFO)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

# --- Paths & constants ---
PACKAGE_ROOT = Path(__file__).resolve().parent
BUNDLED_DIR = PACKAGE_ROOT / "bundled"
DEFAULT_HOME = Path.home() / ".skillkit"
LOGGER_NAME = "skillkit_mcp"
SERVER_NAME = "skillkit"

HOME_ENV = "SKILLKIT_HOME"
SKILLS_PATH_ENV = "SKILLKIT_SKILLS_PATH"
LOG_FILE_ENV = "SKILLKIT_LOG_FILE"
LOG_LEVEL_ENV = "SKILLKIT_LOG_LEVEL"


def expand_path(raw: str | Path) -> Path:
    """
    function_purpose: Expand a leading '~' and return an absolute path.
    """
    return Path(raw).expanduser().resolve()


def split_path_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(os.pathsep) if p.strip()]


@dataclass(frozen=True)
class Settings:
    home: Path = DEFAULT_HOME
    env_sources: list[str] = field(default_factory=list)
    log_file: Path | None = None
    log_level: str = "INFO"

    @property
    def resolved_log_file(self) -> Path:
        return self.log_file or self.home / "logs" / "skillkit_mcp.log"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    function_purpose: Build Settings from the process environment (or a given mapping).

    Nothing else in the package reads os.environ; callers pass the result down.
    """
    env = os.environ if environ is None else environ
    home_env = env.get(HOME_ENV)
    log_file_env = env.get(LOG_FILE_ENV)
    return Settings(
        home=expand_path(home_env) if home_env else DEFAULT_HOME,
        env_sources=split_path_list(env.get(SKILLS_PATH_ENV)),
        log_file=expand_path(log_file_env) if log_file_env else None,
        log_level=(env.get(LOG_LEVEL_ENV) or "INFO").upper(),
    )
