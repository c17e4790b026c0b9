"""
Flag parsing

Strips option tokens before classification. Positional tokens keep their
relative order and are handed on untouched.
"""

import argparse

from .pipeline import Completed, Continue, Failed

SIMPLE_USAGE = """usage: ngm [COMMAND] [PROJECT-NAME] [...OPTIONS] [...ARGS]
  use the -h option for more info"""


def build_flag_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ngm", add_help=False, allow_abbrev=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("-q", "--quiet", action="store_true")
    return parser


def parse_flags(tokens: list[str]) -> tuple[argparse.Namespace, list[str]]:
    """Split tokens into known flags and everything else.

    Raises ValueError for conflicting flags.
    """
    namespace, rest = build_flag_parser().parse_known_args(tokens)
    if namespace.verbose and namespace.quiet:
        raise ValueError("Conflicting options: -v/--verbose and -q/--quiet")
    return namespace, rest


def long_usage(commands) -> str:
    width = max((len(c.usage) for c in commands.values()), default=0)
    lines = [
        SIMPLE_USAGE.splitlines()[0],
        "",
        "Tokens may appear in any order. Flags:",
        "  -h, --help      show this help",
        "  --version       print the version",
        "  --json          machine-readable output",
        "  -v, --verbose   debug logging",
        "  -q, --quiet     only report errors",
        "",
        "Commands:",
    ]
    for command in commands.values():
        lines.append(f"  {command.usage.ljust(width)}  {command.summary}".rstrip())
    return "\n".join(lines)


class FlagStage:
    """Pipeline stage that records flags on context.options."""

    def __init__(self, commands, version: str):
        self.commands = commands
        self.version = version

    def __call__(self, context, tokens: list[str]):
        try:
            namespace, rest = parse_flags(tokens)
        except ValueError as e:
            return Failed(str(e))

        unknown = [t for t in rest if t.startswith("-") and t != "-"]
        if unknown:
            return Failed(f"Unknown option: {' '.join(unknown)}")

        context.options.json = namespace.json
        context.options.verbose = namespace.verbose
        context.options.quiet = namespace.quiet

        if namespace.help:
            print(long_usage(self.commands))
            return Completed(context)
        if namespace.version:
            print(f"ngm {self.version}")
            return Completed(context)
        return Continue(context, rest)
