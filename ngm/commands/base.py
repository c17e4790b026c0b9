"""Command table types and the errors commands raise."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable


class ArgumentError(ValueError):
    """Raised by a validator when a command's arguments are invalid."""


class OperationError(RuntimeError):
    """Raised by a handler when the command's work fails."""


# handler(api, context) performs the command's side effects.
Handler = Callable[..., None]
# validator(context, tokens) -> (context, remaining_tokens)
Validator = Callable[..., tuple]


@dataclass(frozen=True)
class Command:
    handler: Handler
    validator: Validator | None = None
    usage: str = ""
    summary: str = ""


class CommandTable(Mapping):
    """Command name -> Command, in registration order."""

    def __init__(self):
        self._commands: dict[str, Command] = {}

    def register(
        self,
        name: str,
        handler: Handler,
        validator: Validator | None = None,
        usage: str = "",
        summary: str = "",
    ) -> "CommandTable":
        if name in self._commands:
            raise ValueError(f"Command already registered: {name}")
        self._commands[name] = Command(handler, validator, usage or name, summary)
        return self

    def __getitem__(self, name: str) -> Command:
        return self._commands[name]

    def __iter__(self):
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)
