"""
Argument classifier stages

Run in this order after flag parsing, each consuming the tokens it
recognises:

1. match_project       - at most one known project name -> project_id
2. RepositoryMatcher   - paths of known repositories -> repository_ids
3. CommandMatcher      - first command name, then that command's validator
4. Dispatcher          - runs the matched command's handler

Tokens may appear in any order on the command line. Whatever is left
after the command's validator is reported as an unknown argument.
"""

import logging
import os
from pathlib import Path

from .api import NgmApi
from .commands import ArgumentError, CommandTable
from .pipeline import Completed, Continue, Failed

logger = logging.getLogger(__name__)


def match_project(context, tokens: list[str]):
    """Select the project named among the tokens, if any."""
    name_map = context.registry.project_name_map
    named = list(dict.fromkeys(t for t in tokens if t in name_map))

    if len(named) > 1:
        return Failed(f"You may only specify one project (got {', '.join(named)})")
    if named:
        tokens.remove(named[0])
        context.project_id = name_map[named[0]].id
        logger.debug("Selected project %s (%s)", named[0], context.project_id)
    return Continue(context, tokens)


class RepositoryMatcher:
    """Select known repositories named by path, relative to cwd.

    Every token except option-like ones is resolved; the registry's path
    map decides whether it names a repository.
    """

    def __init__(self, cwd: Path | None = None):
        self.cwd = cwd

    def _resolve(self, token: str, cwd: Path) -> str | None:
        if not token or token.startswith("-"):
            return None
        try:
            return str((cwd / os.path.expanduser(token)).resolve())
        except (OSError, RuntimeError, ValueError):
            return None

    def __call__(self, context, tokens: list[str]):
        cwd = Path(self.cwd) if self.cwd is not None else Path.cwd()
        path_map = context.registry.repository_path_map

        matched, remaining = [], []
        for token in tokens:
            repo = path_map.get(self._resolve(token, cwd))
            if repo is None:
                remaining.append(token)
            else:
                matched.append(repo.id)

        if matched:
            context.repository_ids = list(dict.fromkeys(matched))
            logger.debug("Selected repositories %s", context.repository_ids)
        return Continue(context, remaining)


class CommandMatcher:
    """Pick the command and validate its arguments.

    The first command name in token order wins; later command names are
    left for the validator or reported as unknown arguments. With no
    command token, a registered command already set on the context (the
    caller's default) is used.
    """

    def __init__(self, commands: CommandTable):
        self.commands = commands

    def __call__(self, context, tokens: list[str]):
        name = next((t for t in tokens if t in self.commands), None)
        if name is not None:
            tokens.remove(name)
            context.command = name
        elif context.command not in self.commands:
            return Failed("You must specify a command")

        command = self.commands[context.command]
        if command.validator is not None:
            try:
                context, tokens = command.validator(context, tokens)
            except ArgumentError as e:
                return Failed(str(e))

        if tokens:
            return Failed(f"Unknown arguments: {' '.join(tokens)}")
        return Continue(context, tokens)


class Dispatcher:
    """Run the matched command's handler and finish the pipeline."""

    def __init__(self, commands: CommandTable, api_factory=NgmApi):
        self.commands = commands
        self.api_factory = api_factory

    def __call__(self, context, tokens: list[str]):
        command = self.commands[context.command]
        logger.debug("Dispatching %s", context.command)
        command.handler(self.api_factory(context.registry), context)
        return Completed(context)
