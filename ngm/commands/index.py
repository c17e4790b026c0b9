"""
The index command

    ngm index

Re-scans the registry root for git checkouts and records them.
"""

import json

from ..display import progress, relative_path
from .base import OperationError


def index_command(api, context):
    options = context.options
    with progress("Indexing repositories", quiet=options.quiet or options.json):
        summary = api.index()
    if not api.save():
        raise OperationError("Failed to save registry")

    if options.json:
        print(json.dumps(summary, indent=2))
        return
    if options.quiet:
        return
    for label in ("added", "updated", "removed"):
        for path in summary[label]:
            print(f"  {label}: {relative_path(path)}")
    print(f"{len(api.registry.repositories)} repositories known")
