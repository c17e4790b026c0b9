"""
Git Gateway

Every git operation goes through the git CLI via subprocess.
No gitpython dependency required.

Low-level calls return (output, exit_code) and never raise.
Higher-level readers raise GitError.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .serializable import Serializable

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 60


class GitError(RuntimeError):
    """Raised when a git query needed to continue has failed."""


def run_git(args: list, cwd: Path, timeout: int | None = None) -> tuple[str, int]:
    """Run git in cwd and return (output, exit_code).

    Output is stdout on success and stderr on failure. A timeout or a
    missing git binary is reported as exit code 1.
    """
    if timeout is None:
        timeout = GIT_TIMEOUT_SECONDS
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0", "LC_ALL": "C"}
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git"] + list(args),
            cwd=str(cwd),
            capture_output=True,
            env=env,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return f"git {' '.join(args)} timed out after {timeout}s", 1
    except (FileNotFoundError, NotADirectoryError) as e:
        return f"git {' '.join(args)} could not start: {e}", 1

    if result.returncode != 0:
        return result.stderr.decode("utf-8", errors="replace").strip(), result.returncode
    return result.stdout.decode("utf-8", errors="replace"), 0


def _display_path(path: Path) -> str:
    try:
        return os.path.relpath(path) or "."
    except ValueError:  # different drive on Windows
        return str(path)


def read_remotes(path: Path, timeout: int | None = None) -> dict[str, str]:
    """Return {remote_name: fetch_url} for the repository at path."""
    output, code = run_git(["remote", "-v"], cwd=path, timeout=timeout)
    if code != 0:
        raise GitError(f"Failed to get remote for {_display_path(path)}: {output}")
    remotes = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name, url = parts[0].strip(), parts[1].strip()
        if name and url:
            remotes.setdefault(name, url)
    return remotes


def read_branches(path: Path, timeout: int | None = None) -> list[str]:
    """Return the local branch names of the repository at path."""
    output, code = run_git(
        ["branch", "--format=%(refname:short)"], cwd=path, timeout=timeout
    )
    if code != 0:
        raise GitError(f"Failed to get branch for {_display_path(path)}: {output}")
    return [line.strip() for line in output.splitlines() if line.strip()]


def checkout(path: Path, branch: str, create: bool = False,
             timeout: int | None = None) -> tuple[str, int]:
    """Check out branch in the repository at path, creating it if asked."""
    args = ["checkout", "-b", branch] if create else ["checkout", branch]
    return run_git(args, cwd=path, timeout=timeout)


# ── Status ────────────────────────────────────────────────────


@dataclass
class ChangeSet(Serializable):
    """Paths grouped by change kind, for one side of the index."""

    modified: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[list[str]] = field(default_factory=list)
    copied: list[str] = field(default_factory=list)
    unmerged: list[str] = field(default_factory=list)

    def count(self) -> int:
        return sum(
            len(v)
            for v in (
                self.modified, self.added, self.deleted,
                self.renamed, self.copied, self.unmerged,
            )
        )


@dataclass
class HeadInfo(Serializable):
    ahead: int = 0
    behind: int = 0
    upstream: bool = False


@dataclass
class GitStatus(Serializable):
    """Working tree status of one repository."""

    branch: str = ""
    staged: ChangeSet = field(default_factory=ChangeSet)
    unstaged: ChangeSet = field(default_factory=ChangeSet)
    untracked: list[str] = field(default_factory=list)
    head: HeadInfo = field(default_factory=HeadInfo)

    @property
    def clean(self) -> bool:
        return not (self.staged.count() or self.unstaged.count() or self.untracked)


_CHANGE_KINDS = {
    "M": "modified",
    "T": "modified",
    "A": "added",
    "D": "deleted",
    "C": "copied",
}


def _record(changes: ChangeSet, code: str, path: str, orig: str | None = None):
    if code == ".":
        return
    if code == "R":
        changes.renamed.append([orig or path, path])
        return
    kind = _CHANGE_KINDS.get(code)
    if kind:
        getattr(changes, kind).append(path)


def parse_porcelain_v2(output: str) -> GitStatus:
    """Parse `git status --porcelain=v2 --branch` output."""
    status = GitStatus()
    for line in output.splitlines():
        if not line:
            continue
        if line.startswith("# branch.head "):
            status.branch = line[len("# branch.head "):].strip()
        elif line.startswith("# branch.upstream "):
            status.head.upstream = True
        elif line.startswith("# branch.ab "):
            ahead, behind = line[len("# branch.ab "):].split()
            status.head.ahead = int(ahead.lstrip("+"))
            status.head.behind = int(behind.lstrip("-"))
        elif line.startswith("1 "):
            fields = line.split(" ", 8)
            xy, path = fields[1], fields[8]
            _record(status.staged, xy[0], path)
            _record(status.unstaged, xy[1], path)
        elif line.startswith("2 "):
            fields = line.split(" ", 9)
            xy = fields[1]
            path, _, orig = fields[9].partition("\t")
            _record(status.staged, xy[0], path, orig)
            _record(status.unstaged, xy[1], path, orig)
        elif line.startswith("u "):
            path = line.split(" ", 10)[10]
            status.staged.unmerged.append(path)
            status.unstaged.unmerged.append(path)
        elif line.startswith("? "):
            status.untracked.append(line[2:])
    return status


def repository_status(path: Path, timeout: int | None = None) -> GitStatus:
    output, code = run_git(
        ["status", "--porcelain=v2", "--branch"], cwd=path, timeout=timeout
    )
    if code != 0:
        raise GitError(f"Failed to get status for {_display_path(path)}: {output}")
    return parse_porcelain_v2(output)


class GitGateway:
    """The git operations handlers need, bound to one timeout."""

    def __init__(self, timeout: int | None = None):
        self.timeout = timeout

    def checkout(self, path, branch: str, create: bool = False) -> tuple[str, int]:
        return checkout(Path(path), branch, create=create, timeout=self.timeout)

    def status(self, path) -> GitStatus:
        return repository_status(Path(path), timeout=self.timeout)
