"""
Registry

The in-memory set of known projects and repositories, persisted as
.ngm.json at the registry root. The registry root is found by walking up
from the working directory; when no registry file exists the repositories
under the working directory are discovered and kept in memory until a
command saves them.

Repository ids are derived from content (canonical path + remotes), so
re-indexing the same checkout yields the same id. Project ids are random.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from .config import ConfigError, NgmConfig, load_config
from .git import read_branches, read_remotes
from .serializable import MissingFieldError, Serializable

logger = logging.getLogger(__name__)

REGISTRY_FILE = ".ngm.json"
REGISTRY_VERSION = 1


class RegistryError(ValueError):
    """Raised when the registry file is unreadable or inconsistent."""


def repository_id(path: str, remote: dict[str, str]) -> str:
    payload = json.dumps({"path": path, "remote": remote}, sort_keys=True)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


def primary_url(remote: dict[str, str]) -> str:
    """Browsable URL for a remote map: origin first, else the first remote."""
    if not remote:
        return ""
    url = remote.get("origin") or next(iter(remote.values()))
    m = re.match(r"^(?:ssh://)?git@([^:/]+)[:/](.+)$", url)
    if m:
        url = f"https://{m.group(1)}/{m.group(2)}"
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def new_project_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Repository(Serializable):
    """A git checkout known to the registry."""

    id: str
    path: str
    remote: dict[str, str] = field(default_factory=dict)
    branches: list[str] = field(default_factory=list)
    url: str = ""

    @classmethod
    def create(cls, path, remote: dict[str, str], branches: list[str]) -> "Repository":
        canonical = str(Path(path).resolve())
        return cls(
            id=repository_id(canonical, remote),
            path=canonical,
            remote=dict(remote),
            branches=list(branches),
            url=primary_url(remote),
        )


@dataclass
class Project(Serializable):
    """A named group of repositories sharing one branch."""

    id: str
    name: str
    branch: str
    repository_ids: list[str] = field(default_factory=list)


def index_repository(path, timeout: int | None = None) -> Repository:
    """Read remotes and branches of the checkout at path into a Repository."""
    resolved = Path(path).resolve()
    return Repository.create(
        resolved,
        read_remotes(resolved, timeout=timeout),
        read_branches(resolved, timeout=timeout),
    )


def discover_repositories(root: Path, timeout: int | None = None) -> list[Repository]:
    """Index root and its immediate children that are git checkouts."""
    root = Path(root).resolve()
    candidates = [root] if (root / ".git").exists() else []
    try:
        children = sorted(p for p in root.iterdir() if p.is_dir())
    except OSError as e:
        raise RegistryError(f"Cannot scan {root}: {e}") from e
    candidates.extend(p for p in children if (p / ".git").exists())

    repositories = []
    for candidate in candidates:
        repositories.append(index_repository(candidate, timeout=timeout))
        logger.debug("Indexed repository %s", candidate)
    return repositories


class Registry:
    """All known projects and repositories, with lookup maps."""

    def __init__(
        self,
        root: Path,
        projects: list[Project] | None = None,
        repositories: list[Repository] | None = None,
        config: NgmConfig | None = None,
    ):
        self.root = Path(root).resolve()
        self.projects: list[Project] = list(projects or [])
        self.repositories: list[Repository] = list(repositories or [])
        self.config = config or NgmConfig()
        self.refresh()

    @property
    def path(self) -> Path:
        return self.root / REGISTRY_FILE

    def refresh(self):
        """Rebuild the derived lookup maps after a mutation."""
        self.project_map = {p.id: p for p in self.projects}
        self.repository_map = {r.id: r for r in self.repositories}
        self.project_name_map = {}
        for p in self.projects:
            if p.name in self.project_name_map:
                raise RegistryError(f"Duplicate project name: {p.name}")
            self.project_name_map[p.name] = p
        self.repository_path_map = {r.path: r for r in self.repositories}

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def load(cls, root: Path) -> "Registry":
        root = Path(root).resolve()
        registry_path = root / REGISTRY_FILE
        try:
            data = json.loads(registry_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise RegistryError(f"Corrupt registry file {registry_path}: {e}") from e
        except OSError as e:
            raise RegistryError(f"Cannot read registry file {registry_path}: {e}") from e
        return cls.from_dict(root, data)

    @classmethod
    def from_dict(cls, root: Path, data: dict) -> "Registry":
        if not isinstance(data, dict):
            raise RegistryError("Registry file must contain a JSON object")
        version = data.get("version", REGISTRY_VERSION)
        if not isinstance(version, int) or version > REGISTRY_VERSION:
            raise RegistryError(
                f"Registry version {version!r} is not supported by this version of ngm"
            )
        try:
            config = load_config(data.get("config"))
            projects = [Project.from_dict(p) for p in data.get("projects", [])]
            repositories = [Repository.from_dict(r) for r in data.get("repositories", [])]
        except (ConfigError, MissingFieldError, TypeError) as e:
            raise RegistryError(f"Invalid registry file in {root}: {e}") from e

        known = {r.id for r in repositories}
        for project in projects:
            missing = [rid for rid in project.repository_ids if rid not in known]
            if missing:
                logger.warning(
                    "Project '%s' references unknown repositories (dropped): %s",
                    project.name,
                    ", ".join(missing),
                )
                project.repository_ids = [rid for rid in project.repository_ids if rid in known]
        return cls(root, projects, repositories, config)

    @classmethod
    def discover(cls, root: Path, config: NgmConfig | None = None) -> "Registry":
        config = config or NgmConfig()
        repositories = discover_repositories(root, timeout=config.git_timeout)
        return cls(root, [], repositories, config)

    @classmethod
    def find(cls, start_path: Path | None = None) -> "Registry":
        """Load the nearest registry at or above start_path, else discover one."""
        start = (start_path or Path.cwd()).resolve()
        path = start
        while True:
            if (path / REGISTRY_FILE).exists():
                logger.debug("Using registry %s", path / REGISTRY_FILE)
                return cls.load(path)
            if path == path.parent:
                break
            path = path.parent
        logger.debug("No %s found above %s; discovering repositories", REGISTRY_FILE, start)
        return cls.discover(start)

    # ── Persistence ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "version": REGISTRY_VERSION,
            "config": self.config.to_dict(),
            "projects": [p.to_dict() for p in self.projects],
            "repositories": [r.to_dict() for r in self.repositories],
        }

    def save(self) -> bool:
        """Write the registry atomically. Returns False if the write failed."""
        content = json.dumps(self.to_dict(), indent=2) + "\n"
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.root), prefix=f".{REGISTRY_FILE}.", suffix=".tmp"
            )
        except OSError as e:
            logger.error("Cannot write registry in %s: %s", self.root, e)
            return False
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            Path(tmp_path).replace(self.path)
        except OSError as e:
            logger.error("Failed to save registry %s: %s", self.path, e)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            return False
        return True

    # ── Mutation ──────────────────────────────────────────────────

    def add_project(self, project: Project):
        if project.name in self.project_name_map:
            raise ValueError(f"Project already exists: {project.name}")
        self.projects.append(project)
        self.refresh()

    def upsert_repository(self, repository: Repository):
        """Insert a repository, replacing any entry with the same id or path."""
        self.repositories = [
            r for r in self.repositories
            if r.id != repository.id and r.path != repository.path
        ]
        self.repositories.append(repository)
        self.refresh()
