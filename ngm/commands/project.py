"""
The project command

    ngm project create <project-name> <new-branch-name>
    ngm project add <project-name> <...repo-path>
    ngm project remove <project-name> <...repo-path>
    ngm project list
    ngm project detail <project-name>

Project names and repository paths are classified before this command's
validator runs, so they may appear anywhere on the command line.
"""

import json
import logging
from dataclasses import dataclass, field

from ..display import dim, pad_right, progress, relative_path
from .base import ArgumentError, OperationError

logger = logging.getLogger(__name__)

SUB_COMMANDS = ("create", "add", "remove", "list", "detail")

ID_WIDTH = 32


@dataclass(frozen=True)
class ProjectBuffer:
    """Validated arguments of the project command.

    args holds [name, branch] for create, repository ids for add and
    remove, and nothing for list and detail.
    """

    sub_cmd: str
    args: list[str] = field(default_factory=list)


# ── Validation ────────────────────────────────────────────────


def _missing_project(tokens: list[str]) -> ArgumentError:
    if tokens:
        return ArgumentError(f"Unknown project: {tokens[0]}")
    return ArgumentError("Missing project name")


def _not_repositories(tokens: list[str]) -> str:
    if not tokens:
        return ""
    if len(tokens) > 1:
        return f"\n\t{', '.join(tokens)} - are not repositories"
    return f"\n\t{tokens[0]} - is not a repository"


def _reject_repositories(context):
    if context.repository_ids:
        paths = [
            relative_path(context.registry.repository_map[rid].path)
            for rid in context.repository_ids
        ]
        raise ArgumentError(
            f"project create does not take repository paths: {' '.join(paths)}"
        )


def validate_project_args(context, tokens: list[str]):
    """Consume the project command's tokens into a ProjectBuffer.

    Returns (context, remaining_tokens); tokens this command does not
    recognise are left for the caller to report.
    """
    if not tokens or tokens[0] not in SUB_COMMANDS:
        raise ArgumentError(
            f"The project command requires specifier: {' | '.join(SUB_COMMANDS)}"
        )
    sub_cmd, tokens = tokens[0], list(tokens[1:])
    claimed: list[str] = []

    if sub_cmd == "create":
        if context.project_id:
            raise ArgumentError(f"That project already exists: {context.project.name}")
        _reject_repositories(context)
        if len(tokens) < 2:
            raise ArgumentError(
                "project create requires <project-name> and <new-branch-name>"
            )
        if len(tokens) > 2:
            raise ArgumentError(f"Too many arguments: {' '.join(tokens[2:])}")
        claimed = tokens[:2]
        args = list(claimed)

    elif sub_cmd in ("add", "remove"):
        if not context.project_id:
            raise _missing_project(tokens)
        if not context.repository_ids or tokens:
            raise ArgumentError(
                f"project {sub_cmd} requires <project-name> and <...repo-path>"
                f"{_not_repositories(tokens)}"
            )
        args = list(context.repository_ids)

    elif sub_cmd == "detail":
        if not context.project_id:
            raise _missing_project(tokens)
        args = []

    else:
        args = []

    for token in claimed:
        tokens.remove(token)

    context.command_buffer = ProjectBuffer(sub_cmd, args)
    return context, tokens


# ── Handler ───────────────────────────────────────────────────


def _save(api):
    if not api.save():
        raise OperationError("Failed to save registry")


def _raise_checkout_failures(api, results: dict):
    failed = {rid: out for rid, (out, code) in results.items() if code != 0}
    if not failed:
        return
    lines = [
        f"  {relative_path(api.repository(rid).path)}: {out or 'checkout failed'}"
        for rid, out in failed.items()
    ]
    raise OperationError("Checkout failed in:\n" + "\n".join(lines))


def _require_project_id(context) -> str:
    pid = context.project_id
    if not isinstance(pid, str):
        raise OperationError("Missing project")
    return pid


def _first_available(preferred: list[str], branches: list[str]) -> str | None:
    for branch in preferred:
        if branch in branches:
            return branch
    return None


def _print_list(registry, as_json: bool):
    projects = registry.projects
    if as_json:
        print(json.dumps([p.to_dict() for p in projects], indent=2))
        return
    name_len = max((len(p.name) for p in projects), default=0)
    branch_len = max((len(p.branch) for p in projects), default=0)
    lines = [
        f"{pad_right('ID', ID_WIDTH)}  {pad_right('Name', name_len)}  "
        f"{pad_right('Branch', branch_len)}".rstrip()
    ]
    for p in projects:
        lines.append(
            f"{dim(pad_right(p.id, ID_WIDTH))}  {pad_right(p.name, name_len)}  "
            f"{pad_right(p.branch, branch_len)}".rstrip()
        )
    print("\n".join(lines))


def _print_detail(registry, project, as_json: bool):
    repositories = [registry.repository_map[rid] for rid in project.repository_ids]
    if as_json:
        data = project.to_dict()
        data["repositories"] = [r.to_dict() for r in repositories]
        print(json.dumps(data, indent=2))
        return
    path_len = max((len(relative_path(r.path)) for r in repositories), default=0)
    url_len = max((len(r.url) for r in repositories), default=0)
    lines = [
        f"ID: {project.id}",
        f"Name: {project.name}",
        f"Branch: {project.branch}",
        f"Repositories: {dim('none') if not repositories else ''}".rstrip(),
    ]
    for r in repositories:
        lines.append(
            f"  {dim(r.id)}  {pad_right(relative_path(r.path), path_len)}  "
            f"{pad_right(r.url, url_len)}".rstrip()
        )
    print("\n".join(lines))


def project_command(api, context):
    buffer: ProjectBuffer = context.command_buffer
    options = context.options
    quiet = options.quiet or options.json

    if buffer.sub_cmd == "create":
        with progress("Creating project", quiet=quiet):
            project = api.create(buffer.args[0], buffer.args[1])
        _save(api)
        if options.json:
            print(json.dumps(project.to_dict(), indent=2))

    elif buffer.sub_cmd == "add":
        pid = _require_project_id(context)
        project = api.project(pid)
        with progress("Adding repositories", quiet=quiet):
            api.add(pid, *buffer.args)
        with progress("Checking out repositories", quiet=quiet):
            results = api.checkout_many({rid: project.branch for rid in buffer.args})
        _save(api)
        _raise_checkout_failures(api, results)

    elif buffer.sub_cmd == "remove":
        pid = _require_project_id(context)
        fallback = api.registry.config.fallback_branches
        with progress("Removing repositories", quiet=quiet):
            api.remove(pid, *buffer.args)
        targets = {}
        for rid in buffer.args:
            branch = _first_available(fallback, api.repository(rid).branches)
            if branch is None:
                logger.warning(
                    "No fallback branch (%s) in %s; left checked out as is",
                    ", ".join(fallback),
                    relative_path(api.repository(rid).path),
                )
                continue
            targets[rid] = branch
        with progress("Checking out repositories", quiet=quiet):
            results = api.checkout_many(targets)
        _save(api)
        _raise_checkout_failures(api, results)

    elif buffer.sub_cmd == "list":
        _print_list(api.registry, options.json)

    elif buffer.sub_cmd == "detail":
        project = api.project(_require_project_id(context))
        _print_detail(api.registry, project, options.json)

    else:
        raise OperationError(f"Unknown project specifier: {buffer.sub_cmd}")
