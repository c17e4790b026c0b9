"""Terminal rendering helpers."""

import os
import sys
from contextlib import contextmanager


def pad_right(text: str, width: int) -> str:
    return text + " " * max(0, width - len(text))


def relative_path(path: str, start: str | None = None) -> str:
    """Path relative to start (default: cwd), './' for the start itself."""
    try:
        rel = os.path.relpath(path, start or os.getcwd())
    except ValueError:  # different drive on Windows
        return path
    return "./" if rel == "." else rel


def _use_color(stream) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def dim(text: str, stream=None) -> str:
    """Render text in gray when writing to a terminal."""
    if _use_color(stream or sys.stdout):
        return f"\033[90m{text}\033[0m"
    return text


@contextmanager
def progress(label: str, quiet: bool = False, stream=None):
    """Report the start and outcome of a step.

    Prints "label..." on entry and "✓ label" or "✗ label" on exit; any
    exception is re-raised after the failure mark is printed.
    """
    out = stream or sys.stdout
    if not quiet:
        print(f"{label}...", file=out, flush=True)
    try:
        yield
    except BaseException:
        if not quiet:
            print(f"✗ {label}", file=out, flush=True)
        raise
    if not quiet:
        print(f"✓ {label}", file=out, flush=True)
