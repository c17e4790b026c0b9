"""Command table: command name -> handler and optional argument validator."""

from .base import ArgumentError, Command, CommandTable, OperationError
from .index import index_command
from .project import ProjectBuffer, project_command, validate_project_args
from .status import status_command

__all__ = [
    "ArgumentError",
    "Command",
    "CommandTable",
    "OperationError",
    "ProjectBuffer",
    "build_commands",
]


def build_commands() -> CommandTable:
    commands = CommandTable()
    commands.register(
        "status",
        status_command,
        usage="status [PROJECT-NAME] [...repo-path]",
        summary="Show branch and working tree state of repositories",
    )
    commands.register(
        "project",
        project_command,
        validator=validate_project_args,
        usage="project create|add|remove|list|detail ...",
        summary="Create projects and manage their repositories",
    )
    commands.register(
        "index",
        index_command,
        usage="index",
        summary="Re-scan the registry root for git repositories",
    )
    return commands
