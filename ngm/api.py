"""
ngm API

Project lifecycle operations over a Registry, plus the git operations
command handlers run against registered repositories. Mutations stay in
memory until save() is called.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from .git import GitError, GitGateway, GitStatus
from .registry import (
    Project,
    Registry,
    Repository,
    discover_repositories,
    new_project_id,
)

logger = logging.getLogger(__name__)


class NgmApi:
    """Operations invoked by command handlers."""

    def __init__(self, registry: Registry, gateway: GitGateway | None = None):
        self.registry = registry
        self.git = gateway or GitGateway(timeout=registry.config.git_timeout)

    def project(self, project_id: str) -> Project:
        try:
            return self.registry.project_map[project_id]
        except KeyError:
            raise ValueError(f"Unknown project id: {project_id}") from None

    def repository(self, repository_id: str) -> Repository:
        try:
            return self.registry.repository_map[repository_id]
        except KeyError:
            raise ValueError(f"Unknown repository id: {repository_id}") from None

    # ── Project lifecycle ─────────────────────────────────────────

    def create(self, name: str, branch: str) -> Project:
        if not name or not branch:
            raise ValueError("A project needs a name and a branch")
        project = Project(id=new_project_id(), name=name, branch=branch)
        self.registry.add_project(project)
        logger.info("Created project '%s' on branch '%s'", name, branch)
        return project

    def add(self, project_id: str, *repository_ids: str) -> list[str]:
        """Add repositories to a project; returns the ids actually added."""
        project = self.project(project_id)
        added = []
        for rid in repository_ids:
            self.repository(rid)
            if rid in project.repository_ids or rid in added:
                logger.info("Repository %s already in project '%s'", rid, project.name)
                continue
            added.append(rid)
        project.repository_ids.extend(added)
        self.registry.refresh()
        return added

    def remove(self, project_id: str, *repository_ids: str) -> list[str]:
        project = self.project(project_id)
        missing = [rid for rid in repository_ids if rid not in project.repository_ids]
        if missing:
            paths = [
                self.registry.repository_map[rid].path
                if rid in self.registry.repository_map else rid
                for rid in missing
            ]
            raise ValueError(
                f"Not in project '{project.name}': {', '.join(paths)}"
            )
        project.repository_ids = [
            rid for rid in project.repository_ids if rid not in repository_ids
        ]
        self.registry.refresh()
        return list(repository_ids)

    # ── Git operations ────────────────────────────────────────────

    def checkout(self, repository_id: str, branch: str) -> tuple[str, int]:
        """Check out branch, creating it when the repository lacks it."""
        repo = self.repository(repository_id)
        create = branch not in repo.branches
        output, code = self.git.checkout(repo.path, branch, create=create)
        if code == 0 and create:
            repo.branches.append(branch)
        return output, code

    def checkout_many(self, targets: dict[str, str]) -> dict[str, tuple[str, int]]:
        """Check out {repository_id: branch} in parallel."""
        return self._fan_out(targets, lambda rid, branch: self.checkout(rid, branch))

    def status(self, repository_id: str) -> GitStatus:
        return self.git.status(self.repository(repository_id).path)

    def status_many(self, repository_ids: list[str]) -> dict[str, GitStatus | GitError]:
        """Status of each repository; a failed query maps to its GitError."""
        def query(rid, _):
            try:
                return self.status(rid)
            except GitError as e:
                return e

        return self._fan_out({rid: None for rid in repository_ids}, query)

    def _fan_out(self, work: dict, fn) -> dict:
        if not work:
            return {}
        workers = min(self.registry.config.max_workers, len(work))
        results = {}
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(fn, key, arg): key for key, arg in work.items()}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        # Keep caller order
        return {key: results[key] for key in work}

    # ── Indexing ──────────────────────────────────────────────────

    def index(self) -> dict:
        """Re-discover repositories under the registry root and merge them.

        Repositories whose path changed id (remotes changed) keep their
        project memberships. Registered repositories whose checkout no
        longer exists are dropped from the registry and every project.
        """
        registry = self.registry
        discovered = discover_repositories(registry.root, timeout=registry.config.git_timeout)
        summary = {"added": [], "updated": [], "removed": []}

        for repo in discovered:
            previous = registry.repository_path_map.get(repo.path)
            if previous is None:
                summary["added"].append(repo.path)
            elif previous.id != repo.id:
                for project in registry.projects:
                    project.repository_ids = [
                        repo.id if rid == previous.id else rid
                        for rid in project.repository_ids
                    ]
                summary["updated"].append(repo.path)
            registry.upsert_repository(repo)

        gone = [r for r in registry.repositories if not (Path(r.path) / ".git").exists()]
        if gone:
            gone_ids = {r.id for r in gone}
            registry.repositories = [r for r in registry.repositories if r.id not in gone_ids]
            for project in registry.projects:
                project.repository_ids = [
                    rid for rid in project.repository_ids if rid not in gone_ids
                ]
            summary["removed"].extend(r.path for r in gone)
            registry.refresh()
        return summary

    def save(self) -> bool:
        return self.registry.save()
