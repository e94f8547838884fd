"""
skillkit_mcp.git_source

Remote skill sources: classify raw source strings, keep a local clone of each
remote repository under <home>/cache/repos/, and turn an ordered list of raw
sources into an ordered list of local directories.

Source grammar:
- git@<host>:<org>/<repo>.git[#<ref>]          -> remote (SSH)
- https://<host>/<org>/<repo>.git[#<ref>]      -> remote (HTTPS, '.git' required)
- anything else                                -> local path

Remote sources are resolved one at a time. Two clones into the same cache
directory would race, and there is no locking.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from skillkit_mcp.errors import DependencyMissingError, RemoteFetchError

logger = logging.getLogger(__name__)

CACHE_HASH_LENGTH = 12
DEFAULT_REF = "HEAD"


@dataclass(frozen=True)
class LocalSource:
    path: str


@dataclass(frozen=True)
class RemoteSource:
    url: str
    ref: str | None = None


def is_git_url(source: str) -> bool:
    """
    function_purpose: Decide whether a raw source string names a git repository.

    Pure string inspection; never touches the network or filesystem.
    """
    if source.startswith("git@"):
        return True
    if source.startswith("https://"):
        return source.split("#", 1)[0].endswith(".git")
    return False


def parse_git_url(source: str) -> RemoteSource:
    """
    function_purpose: Split '<url>#<ref>' at the first '#'.

    The ref is None when no '#' is present. Neither part is validated here;
    bad values surface later as git failures.
    """
    url, sep, ref = source.partition("#")
    return RemoteSource(url=url, ref=ref if sep else None)


def classify(source: str) -> LocalSource | RemoteSource:
    if is_git_url(source):
        return parse_git_url(source)
    return LocalSource(path=source)


def get_cache_dir(url: str, ref: str, home: Path) -> Path:
    """
    function_purpose: Deterministic cache directory for a (url, ref) pair.

    Callers pass "HEAD" for an unspecified ref, so (url, None) and (url, "HEAD")
    share a directory.
    """
    digest = hashlib.sha256(f"{url}#{ref}".encode("utf-8")).hexdigest()
    return home / "cache" / "repos" / digest[:CACHE_HASH_LENGTH]


# --- git plumbing ---
def _is_git_repo(path: Path) -> bool:
    return (path / ".git").is_dir()


def ensure_git_available() -> None:
    if shutil.which("git") is None:
        raise DependencyMissingError(
            "git is required to use remote skill repositories but was not found on PATH. "
            "Install it from https://git-scm.com/downloads and try again."
        )


def _git_run(
    args: list[str], cwd: Path, url: str, ref: str | None, check: bool = True
) -> subprocess.CompletedProcess[str]:
    """
    function_purpose: Run a git command and log its outcome.

    With check=True a non-zero exit status becomes RemoteFetchError carrying
    git's combined output; otherwise the caller inspects returncode.
    """
    res = subprocess.run(
        ["git"] + args,
        cwd=str(cwd),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
    logger.debug("git %s (exit %d)\n%s", " ".join(args), res.returncode, res.stdout.strip())
    if check and res.returncode != 0:
        raise RemoteFetchError(url, ref, res.stdout)
    return res


def _default_branch(repo_dir: Path, url: str) -> str | None:
    res = _git_run(
        ["symbolic-ref", "--short", "refs/remotes/origin/HEAD"],
        cwd=repo_dir,
        url=url,
        ref=None,
        check=False,
    )
    if res.returncode != 0:
        logger.debug("No origin/HEAD recorded for %s: %s", url, res.stdout.strip())
        return None
    # "origin/main" -> "main"
    return res.stdout.strip().split("/", 1)[-1] or None


def materialize(url: str, ref: str | None, home: Path) -> Path:
    """
    function_purpose: Ensure a local clone of url exists and reflects ref; return its path.

    Behavior:
    - No repository in the cache directory yet: clone, then check out ref if given.
    - Repository present: fetch all refs, check out ref (or the default branch),
      then try a fast-forward pull. The pull is expected to fail for tags and
      commits, which leave a detached HEAD, so its failure is ignored.

    Raises DependencyMissingError when git is absent and RemoteFetchError when
    any clone/fetch/checkout step fails.
    """
    ensure_git_available()

    cache_dir = get_cache_dir(url, ref or DEFAULT_REF, home)

    if not _is_git_repo(cache_dir):
        logger.info("Cloning skills repo '%s' (ref '%s') into '%s'.", url, ref or DEFAULT_REF, cache_dir)
        cache_dir.parent.mkdir(parents=True, exist_ok=True)
        _git_run(["clone", url, str(cache_dir)], cwd=cache_dir.parent, url=url, ref=ref)
        if ref:
            _git_run(["checkout", ref], cwd=cache_dir, url=url, ref=ref)
        return cache_dir

    logger.info("Updating cached skills repo '%s' (ref '%s') at '%s'.", url, ref or DEFAULT_REF, cache_dir)
    _git_run(["fetch", "--all", "--tags", "--prune"], cwd=cache_dir, url=url, ref=ref)
    target = ref or _default_branch(cache_dir, url)
    if target:
        _git_run(["checkout", target], cwd=cache_dir, url=url, ref=ref)

    pull = _git_run(["pull", "--ff-only"], cwd=cache_dir, url=url, ref=ref, check=False)
    if pull.returncode != 0:
        logger.debug("Fast-forward skipped for %s: %s", url, pull.stdout.strip())
    return cache_dir


def resolve_sources(sources: list[str], home: Path) -> list[str]:
    """
    function_purpose: Map raw sources to local directories, preserving order and length.

    Local sources pass through unchanged (existence is not checked here). The
    first remote failure aborts the whole call; a partial list would silently
    change which root wins a name.
    """
    resolved: list[str] = []
    for source in sources:
        descriptor = classify(source)
        if isinstance(descriptor, RemoteSource):
            resolved.append(str(materialize(descriptor.url, descriptor.ref, home)))
        else:
            resolved.append(descriptor.path)
    return resolved
