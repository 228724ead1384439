"""Repository identity of the local working copy.

Reads ``.git/config`` and ``.git/HEAD`` directly so no git binary is needed.
"""

import configparser
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .exceptions import GitContextError

logger = logging.getLogger(__name__)

_REMOTE_URL_PATTERNS = (
    # https://github.com/owner/repo(.git)
    re.compile(r"^https?://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)/?$"),
    # ssh://git@github.com(:port)/owner/repo(.git)
    re.compile(r"^ssh://(?:[^@/]+@)?[^/]+/(?P<owner>[^/]+)/(?P<repo>[^/]+?)/?$"),
    # git@github.com:owner/repo(.git)
    re.compile(r"^(?:[^@/]+@)?[^:/]+:(?P<owner>[^/]+)/(?P<repo>[^/]+?)/?$"),
)

_HEAD_REF_PREFIX = "ref: refs/heads/"


@dataclass(frozen=True)
class GitContext:
    """Owner, repository and checked-out branch of a working copy."""

    owner: str
    repo: str
    branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_remote_url(url: str) -> tuple[str, str]:
    """Split a GitHub remote URL into ``(owner, repo)``.

    Raises:
        GitContextError: If the URL is not in a recognised form
    """
    url = url.strip()
    for pattern in _REMOTE_URL_PATTERNS:
        match = pattern.match(url)
        if match:
            repo = match.group("repo")
            if repo.endswith(".git"):
                repo = repo[: -len(".git")]
            if repo:
                return match.group("owner"), repo
    raise GitContextError(f"Unsupported git remote URL format: {url}")


def _resolve_git_dir(workdir: Path) -> Path:
    dot_git = workdir / ".git"
    if dot_git.is_dir():
        return dot_git
    if dot_git.is_file():
        # Worktrees and submodules: ".git" is a "gitdir: <path>" pointer
        content = dot_git.read_text(encoding="utf-8").strip()
        if content.startswith("gitdir:"):
            git_dir = Path(content[len("gitdir:") :].strip())
            if not git_dir.is_absolute():
                git_dir = workdir / git_dir
            return git_dir
    raise GitContextError(f"Not a git working copy: {workdir}", str(workdir))


def _read_origin_url(git_dir: Path) -> str:
    config_dir = git_dir
    commondir = git_dir / "commondir"
    if commondir.is_file():
        config_dir = git_dir / commondir.read_text(encoding="utf-8").strip()

    config_path = config_dir / "config"
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise GitContextError(
            f"Failed to read git config: {e}", str(config_path)
        ) from e

    # configparser treats indented lines as continuations
    parser = configparser.ConfigParser(
        delimiters=("=",), strict=False, interpolation=None, allow_no_value=True
    )
    try:
        parser.read_string("\n".join(line.strip() for line in raw.splitlines()))
    except configparser.Error as e:
        raise GitContextError(
            f"Failed to parse git config: {e}", str(config_path)
        ) from e

    section = 'remote "origin"'
    if not parser.has_option(section, "url"):
        raise GitContextError("Remote 'origin' is not configured", str(config_path))
    return parser.get(section, "url")


def _read_branch(git_dir: Path) -> str:
    head_path = git_dir / "HEAD"
    try:
        head = head_path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise GitContextError(f"Failed to read HEAD: {e}", str(head_path)) from e

    if not head.startswith(_HEAD_REF_PREFIX):
        raise GitContextError("HEAD is not on a branch", str(head_path))
    return head[len(_HEAD_REF_PREFIX) :]


def read_git_context(path: str | Path = ".") -> GitContext:
    """Read owner, repository and current branch of the working copy at ``path``.

    Raises:
        GitContextError: If ``path`` is not a git working copy, has no usable
            ``origin`` remote, or has a detached HEAD
    """
    workdir = Path(path)
    git_dir = _resolve_git_dir(workdir)
    owner, repo = parse_remote_url(_read_origin_url(git_dir))
    context = GitContext(owner=owner, repo=repo, branch=_read_branch(git_dir))
    logger.debug(f"Working copy is {context.full_name} on branch '{context.branch}'")
    return context
