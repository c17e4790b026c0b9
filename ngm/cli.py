"""
ngm CLI

Manage groups of git repositories ("projects") that share one branch.

Usage:
    ngm [COMMAND] [PROJECT-NAME] [...OPTIONS] [...ARGS]

    ngm status [PROJECT-NAME] [...repo-path]
    ngm project create <project-name> <new-branch-name>
    ngm project add <project-name> <...repo-path>
    ngm project remove <project-name> <...repo-path>
    ngm project list
    ngm project detail <project-name>
    ngm index

Tokens may appear in any order: project names and repository paths are
recognised wherever they are. With no command, the configured default
command (status) runs.
"""

import json
import logging
import sys

from . import __version__
from .api import NgmApi
from .commands import CommandTable, build_commands
from .context import CLIContext
from .flags import SIMPLE_USAGE, FlagStage, parse_flags
from .pipeline import Failed, Pipeline
from .registry import Registry
from .stages import CommandMatcher, Dispatcher, RepositoryMatcher, match_project

logger = logging.getLogger(__name__)


def build_pipeline(commands: CommandTable, cwd=None, api_factory=NgmApi) -> Pipeline:
    return (
        Pipeline()
        .register(FlagStage(commands, __version__), "flags")
        .register(match_project, "project")
        .register(RepositoryMatcher(cwd), "repositories")
        .register(CommandMatcher(commands), "command")
        .register(Dispatcher(commands, api_factory), "dispatch")
    )


def configure_logging(argv: list[str]):
    try:
        flags, _ = parse_flags(argv)
    except ValueError:
        flags = None
    level = logging.WARNING
    if flags is not None and flags.verbose:
        level = logging.DEBUG
    elif flags is not None and flags.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="ngm: %(levelname)s: %(message)s", stream=sys.stderr)


def report_error(message: str, as_json: bool = False):
    if as_json:
        print(json.dumps({"error": message}, indent=2))
    else:
        print(f"Error: {message}\n\n{SIMPLE_USAGE}", file=sys.stderr)


def run(argv: list[str], registry: Registry | None = None,
        commands: CommandTable | None = None, cwd=None) -> int:
    """Run one invocation and return the process exit status."""
    commands = commands or build_commands()
    as_json = "--json" in argv
    try:
        if registry is None:
            registry = Registry.find(cwd)
        context = CLIContext(registry=registry, command=registry.config.default_command)
        outcome = build_pipeline(commands, cwd=cwd).execute(context, list(argv))
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        report_error(str(e), as_json)
        return 1

    if isinstance(outcome, Failed):
        report_error(outcome.message, as_json)
        return 1
    return 0


def main():
    argv = sys.argv[1:]
    configure_logging(argv)
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
