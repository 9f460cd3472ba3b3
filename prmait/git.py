"""Git operations: working-copy queries and the sync chain builders."""

from __future__ import annotations

import subprocess
from pathlib import Path

import anyio

from .effects import Effect, RunExternalCommand
from .errors import NotARepository


async def _run_git(args: list[str], cwd: Path, git: str = "git") -> str:
    """Run a git command and return stdout."""
    result = await anyio.to_thread.run_sync(
        lambda: subprocess.run(
            [git] + args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )
    )
    return result.stdout.strip()


def _existing_ancestor(path: Path) -> Path:
    path = path.expanduser().absolute()
    while not path.is_dir() and path != path.parent:
        path = path.parent
    return path


async def repo_root(path: str | Path, git: str = "git") -> Path:
    """Top-level directory of the working copy containing ``path``.

    ``path`` does not need to exist yet; the nearest existing ancestor is
    asked instead.
    """
    start = _existing_ancestor(Path(path))
    try:
        top = await _run_git(["rev-parse", "--show-toplevel"], start, git)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise NotARepository(path) from exc
    if not top:
        raise NotARepository(path)
    return Path(top)


def repo_directory_name(root: str | Path) -> str:
    return Path(root).name


async def current_project(cwd: str | Path, git: str = "git") -> str | None:
    """Name of the repository ``cwd`` is in, or None outside of one."""
    try:
        return repo_directory_name(await repo_root(cwd, git))
    except NotARepository:
        return None


# -------------------------------------------------------------------
# Effect builders
# -------------------------------------------------------------------

def add(root: str | Path, paths: list[str | Path], git: str = "git") -> RunExternalCommand:
    return RunExternalCommand(git, ["-C", str(root), "add", *[str(p) for p in paths]])


def commit(root: str | Path, message: str, git: str = "git") -> RunExternalCommand:
    return RunExternalCommand(git, ["-C", str(root), "commit", "-m", message])


def pull(root: str | Path, git: str = "git") -> RunExternalCommand:
    return RunExternalCommand(git, ["-C", str(root), "pull"])


def push(root: str | Path, git: str = "git") -> RunExternalCommand:
    return RunExternalCommand(git, ["-C", str(root), "push"])


def sync_change(
    root: str | Path,
    changed_paths: list[str | Path],
    commit_message: str,
    *,
    forgiving: bool = False,
    git: str = "git",
) -> list[Effect]:
    """The stage → commit → pull → push chain for one file change.

    Always four effects in this order, whatever the number of paths. The
    chain is not transactional: if a later step fails the working copy is
    left as the earlier steps made it.
    """
    return [
        Effect(add(root, changed_paths, git), forgiving),
        Effect(commit(root, commit_message, git), forgiving),
        Effect(pull(root, git), forgiving),
        Effect(push(root, git), forgiving),
    ]
