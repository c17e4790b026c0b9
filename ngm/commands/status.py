"""
The status command

    ngm [status] [PROJECT-NAME] [...repo-path]

Shows the working tree state of the named repositories, else of the
selected project's repositories, else of every known repository.
"""

import json

from ..display import dim, pad_right, relative_path
from ..git import GitError


def _selected_repository_ids(context) -> list[str]:
    if context.repository_ids:
        return list(context.repository_ids)
    project = context.project
    if project is not None:
        return list(project.repository_ids)
    return [r.id for r in context.registry.repositories]


def _summary(status) -> str:
    parts = []
    if status.head.ahead:
        parts.append(f"↑{status.head.ahead}")
    if status.head.behind:
        parts.append(f"↓{status.head.behind}")
    if status.staged.count():
        parts.append(f"{status.staged.count()} staged")
    if status.unstaged.count():
        parts.append(f"{status.unstaged.count()} unstaged")
    if status.untracked:
        parts.append(f"{len(status.untracked)} untracked")
    return ", ".join(parts) if parts else "clean"


def status_command(api, context):
    project = context.project
    repository_ids = _selected_repository_ids(context)
    results = api.status_many(repository_ids)

    if context.options.json:
        payload = {
            "project": project.to_dict() if project else None,
            "repositories": [
                {
                    "id": rid,
                    "path": api.repository(rid).path,
                    **(
                        {"error": str(result)}
                        if isinstance(result, GitError)
                        else {"status": result.to_dict()}
                    ),
                }
                for rid, result in results.items()
            ],
        }
        print(json.dumps(payload, indent=2))
        return

    if project is not None:
        print(f"Project: {project.name} ({project.branch})")
    if not results:
        print(dim("No repositories."))
        return

    paths = {rid: relative_path(api.repository(rid).path) for rid in results}
    path_len = max(len(p) for p in paths.values())
    branch_len = max(
        (len(r.branch) for r in results.values() if not isinstance(r, GitError)),
        default=0,
    )
    for rid, result in results.items():
        path = pad_right(paths[rid], path_len)
        if isinstance(result, GitError):
            print(f"  {path}  error: {result}")
            continue
        marker = "*" if project is not None and result.branch != project.branch else " "
        print(f"{marker} {path}  {pad_right(result.branch, branch_len)}  {_summary(result)}")
