"""State threaded through the argument pipeline for one invocation."""

from dataclasses import dataclass, field
from typing import Any

from .registry import Registry


@dataclass
class Options:
    """Flags stripped from the command line before classification."""

    json: bool = False
    verbose: bool = False
    quiet: bool = False


@dataclass
class CLIContext:
    registry: Registry
    command: str = ""
    # Set by the matched command's validator
    command_buffer: Any = None
    project_id: str | None = None
    repository_ids: list[str] | None = None
    options: Options = field(default_factory=Options)

    def __copy__(self) -> "CLIContext":
        # The registry is shared read-only; everything else is per-copy.
        return CLIContext(
            registry=self.registry,
            command=self.command,
            command_buffer=self.command_buffer,
            project_id=self.project_id,
            repository_ids=list(self.repository_ids) if self.repository_ids is not None else None,
            options=Options(**vars(self.options)),
        )

    @property
    def project(self):
        if self.project_id is None:
            return None
        return self.registry.project_map.get(self.project_id)
