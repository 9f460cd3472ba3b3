"""Task list loading, identifier resolution and the task effect builders."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable

from . import git, render
from .effects import (
    CreateDirectory,
    EffectMachine,
    PrintToStdErr,
    PrintToStdOut,
    WriteFile,
)
from .errors import AmbiguousTaskMatch, NoTasksFound, ResolutionError
from .models import State, StateKind, Task, to_file_name
from .storage import encode_document, json_files, load_document

log = logging.getLogger(__name__)


@dataclass
class TaskDescription:
    """A task and the file it was loaded from (never renamed)."""

    task: Task
    file_name: str


@dataclass
class TaskList:
    location: Path
    tasks: list[TaskDescription] = field(default_factory=list)

    @classmethod
    def load(cls, directory: str | Path) -> TaskList:
        directory = Path(directory)
        tasks = [
            TaskDescription(load_document(p, Task.from_json), p.name)
            for p in json_files(directory)
        ]
        tasks.sort(key=lambda d: d.task.id)
        log.debug("loaded %d tasks from %s", len(tasks), directory)
        return cls(directory, tasks)

    def matching(self, identifier: str) -> list[TaskDescription]:
        """Tasks whose decimal id contains ``identifier``."""
        return [d for d in self.tasks if identifier in str(d.task.id)]


# ---------------------------------------------------------------------------
# Lifecycle / resolution
# ---------------------------------------------------------------------------

def mark(task: Task, new_state: State) -> Task:
    """Append ``new_state`` to the state log. Any state may follow any other."""
    task.state_log.append(new_state)
    return task


def resolve(task_list: TaskList, identifier: str) -> TaskDescription:
    """The single task ``identifier`` points at.

    Raises NoTasksFound for zero matches and AmbiguousTaskMatch, carrying
    every candidate, for more than one.
    """
    identifier = str(identifier).strip()
    matches = task_list.matching(identifier) if identifier else []
    if not matches:
        raise NoTasksFound(identifier)
    if len(matches) > 1:
        raise AmbiguousTaskMatch(identifier, matches)
    return matches[0]


# ---------------------------------------------------------------------------
# Effect builders
# ---------------------------------------------------------------------------

def new_task(
    task: Task,
    task_path: str | Path,
    repo_root: str | Path,
    file_name_format: str,
    git_binary: str = "git",
) -> EffectMachine:
    task_path = Path(task_path)
    file_name = to_file_name(task.time_created, file_name_format)
    file_path = task_path / file_name

    machine = EffectMachine()
    machine.append(CreateDirectory(task_path, ok_if_exists=True), forgiving=False)
    machine.append(
        WriteFile(
            content=encode_document(task.to_json(), file_name),
            path=file_path,
            can_create=True,
            can_overwrite=False,
        ),
        forgiving=False,
    )
    machine.extend(git.sync_change(
        repo_root,
        [file_path],
        f"feat(task): new task created {task.id}",
        git=git_binary,
    ))
    return machine


@dataclass
class MarkPlan:
    """Effects for every identifier that resolved, plus the ones that did not."""

    machine: EffectMachine
    failures: list[ResolutionError] = field(default_factory=list)
    marked: list[TaskDescription] = field(default_factory=list)


def mark_tasks(
    task_list: TaskList,
    marks: Iterable[tuple[str, State]],
    repo_root: str | Path,
    git_binary: str = "git",
) -> MarkPlan:
    """Build one write + sync chain per identifier.

    Identifiers are resolved independently: an unknown or ambiguous one is
    recorded in ``failures`` and the others still get their effects.
    """
    plan = MarkPlan(EffectMachine())
    for identifier, state in marks:
        try:
            target = resolve(task_list, identifier)
        except ResolutionError as exc:
            log.warning("skipping '%s': %s", identifier, exc)
            plan.failures.append(exc)
            continue

        mark(target.task, state)
        file_path = task_list.location / target.file_name
        plan.machine.append(
            WriteFile(
                content=encode_document(target.task.to_json(), target.file_name),
                path=file_path,
                can_create=False,
                can_overwrite=True,
            ),
            forgiving=False,
        )
        plan.machine.extend(git.sync_change(
            repo_root,
            [file_path],
            f"feat(task): mark task {target.task.id} as {state.kind.value.lower()}",
            git=git_binary,
        ))
        plan.marked.append(target)
    return plan


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------

@dataclass
class TodaysTasks:
    starting: list[TaskDescription] = field(default_factory=list)
    deadline: list[TaskDescription] = field(default_factory=list)
    overdue: list[TaskDescription] = field(default_factory=list)


def _in_project(desc: TaskDescription, project: str | None) -> bool:
    return project is None or project in desc.task.projects


def todays_tasks(
    task_list: TaskList, today: date, project: str | None = None
) -> TodaysTasks:
    """Open tasks starting today, tasks due today and overdue open tasks."""
    result = TodaysTasks()
    for desc in task_list.tasks:
        if not _in_project(desc, project):
            continue
        task = desc.task
        is_open = task.current_state.kind == StateKind.TODO
        if is_open and task.start == today:
            result.starting.append(desc)
        if task.end == today:
            result.deadline.append(desc)
        if is_open and task.end is not None and task.end < today:
            result.overdue.append(desc)
    return result


def tasks_by_state(
    task_list: TaskList, kind: StateKind, project: str | None = None
) -> list[TaskDescription]:
    return [
        d for d in task_list.tasks
        if d.task.current_state.kind == kind and _in_project(d, project)
    ]


def _date_banner(today: date) -> str:
    return render.heading(f"Date Today: {today.isoformat()}", bg="cyan")


def show_todays_tasks(
    task_list: TaskList, today: date, project: str | None = None
) -> EffectMachine:
    found = todays_tasks(task_list, today, project)
    parts = [_date_banner(today)]
    if found.starting:
        parts.append(render.task_section("Starting from today:", found.starting, today))
    if found.deadline:
        parts.append(render.task_section("Deadline at today:", found.deadline, today, bg="red"))
    if found.overdue:
        parts.append(render.task_section("Overdue:", found.overdue, today, bg="red"))

    machine = EffectMachine()
    machine.append(PrintToStdOut("\n\n".join(parts)), forgiving=False)
    return machine


def show_tasks_by_state(
    task_list: TaskList,
    kind: StateKind,
    today: date,
    project: str | None = None,
) -> EffectMachine:
    chosen = tasks_by_state(task_list, kind, project)
    machine = EffectMachine()
    if chosen:
        text = "\n\n".join([
            _date_banner(today),
            render.task_section(f"{kind.value} tasks:", chosen, today),
        ])
        machine.append(PrintToStdOut(text), forgiving=False)
    else:
        machine.append(PrintToStdErr(f"no {kind.value} tasks"), forgiving=False)
    return machine
