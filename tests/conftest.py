"""
Shared pytest configuration and fixtures.

`registry` builds an in-memory registry over plain directories (no git
needed). `git_repo` creates real git checkouts for tests marked with
`requires_git`.
"""

import os
import subprocess

import pytest

from ngm.git import GitStatus
from ngm.registry import Project, Registry, Repository


def _has_git():
    """Check if git is available on the system."""
    try:
        subprocess.run(["git", "--version"], capture_output=True, check=True)
        return True
    except (FileNotFoundError, subprocess.CalledProcessError):
        return False


HAS_GIT = _has_git()

GIT_ENV = {
    "GIT_AUTHOR_NAME": "ngm-test",
    "GIT_AUTHOR_EMAIL": "ngm-test@example.com",
    "GIT_COMMITTER_NAME": "ngm-test",
    "GIT_COMMITTER_EMAIL": "ngm-test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def pytest_configure(config):
    config.addinivalue_line("markers", "requires_git: test needs the git executable")


def pytest_collection_modifyitems(config, items):
    if HAS_GIT:
        return
    skip = pytest.mark.skip(reason="git not available")
    for item in items:
        if "requires_git" in item.keywords:
            item.add_marker(skip)


def git(*args, cwd):
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        env={**os.environ, **GIT_ENV},
    )
    assert result.returncode == 0, f"git {' '.join(args)} failed: {result.stderr}"
    return result.stdout


@pytest.fixture
def git_repo(tmp_path):
    """Factory: git_repo("name", remote=URL) -> path of a checkout with one commit."""

    def make(name, remote=None, branches=()):
        path = tmp_path / name
        path.mkdir()
        git("init", "-q", "-b", "main", cwd=path)
        (path / "README.md").write_text(f"# {name}\n")
        git("add", "README.md", cwd=path)
        git("commit", "-q", "-m", "initial", cwd=path)
        for branch in branches:
            git("branch", branch, cwd=path)
        if remote:
            git("remote", "add", "origin", remote, cwd=path)
        return path

    return make


@pytest.fixture
def registry(tmp_path):
    """Registry with repositories repoA, repoB, lib/repoC and projects web, api.

    web contains repoA; api is empty. No git checkouts exist on disk.
    """
    repos = {}
    for rel, branches in (
        ("repoA", ["main", "dev"]),
        ("repoB", ["master"]),
        ("lib/repoC", ["main"]),
    ):
        path = tmp_path / rel
        path.mkdir(parents=True)
        repos[rel] = Repository.create(
            path, {"origin": f"git@example.com:team/{path.name}.git"}, branches
        )

    projects = [
        Project(id="P1", name="web", branch="feature-x", repository_ids=[repos["repoA"].id]),
        Project(id="P2", name="api", branch="feature-y"),
    ]
    return Registry(tmp_path, projects, list(repos.values()))


class FakeGit:
    """Stands in for GitGateway; records checkouts."""

    def __init__(self, failing=(), statuses=None):
        self.failing = set(failing)
        self.statuses = statuses or {}
        self.checkouts = []

    def checkout(self, path, branch, create=False):
        self.checkouts.append((str(path), branch, create))
        if str(path) in self.failing:
            return f"error: pathspec '{branch}' did not match", 1
        return "", 0

    def status(self, path):
        return self.statuses.get(str(path), GitStatus(branch="main"))

