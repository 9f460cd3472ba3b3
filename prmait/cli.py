"""prmait CLI — typer-based command interface."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import typer

from .config import DEFAULT_CONFIG_PATH, DEFAULT_CONFIG_TEMPLATE, Config, load_config
from .effects import EffectMachine, Executor, GenerateShellCompletion
from .errors import AmbiguousTaskMatch, PrmaitError
from .logs import setup_logging
from .models import Area, Mood, State, StateKind

app = typer.Typer(
    name="prmait",
    help="prmait — journal, tasks and window manager bring-up",
    no_args_is_help=True,
)
journal_app = typer.Typer(
    name="jnl",
    help="Personal journaling, one git-tracked file per entry",
    no_args_is_help=True,
)
journal_edit_app = typer.Typer(help="Open entries in $EDITOR, then commit", no_args_is_help=True)
task_app = typer.Typer(
    name="tsk",
    help="Task tracking, one git-tracked file per task",
    no_args_is_help=True,
)
task_list_app = typer.Typer(help="List tasks", no_args_is_help=True)
river_app = typer.Typer(name="rvr", help="Bring up the river window manager")

app.add_typer(journal_app, name="journal")
app.add_typer(task_app, name="task")
journal_app.add_typer(journal_edit_app, name="edit")
task_app.add_typer(task_list_app, name="list")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

@dataclass
class CliState:
    config_path: Path | None = None
    verbose: bool = False


def _run_async(coro):
    """Run an async coroutine from sync context."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop and loop.is_running():
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()
    return asyncio.run(coro)


def _executor() -> Executor:
    return Executor()


def _execute(machine: EffectMachine) -> None:
    _run_async(machine.run_sequential(_executor()))


@contextmanager
def _reporting_errors():
    """Turn any PrmaitError into a message on stderr and exit code 1."""
    try:
        yield
    except PrmaitError as e:
        typer.echo(f"  Error: {e}", err=True)
        raise typer.Exit(1)


def _options(ctx: typer.Context, config: Path | None, verbose: bool) -> None:
    state = ctx.ensure_object(CliState)
    if config is not None:
        state.config_path = config
    if verbose:
        state.verbose = True
    setup_logging(state.verbose)


def _config(ctx: typer.Context) -> Config:
    state = ctx.ensure_object(CliState)
    return load_config(state.config_path)


ConfigOption = typer.Option(
    None, "--config", "-c", help=f"Config file [default: {DEFAULT_CONFIG_PATH}]",
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Log every effect")


def _completions(shell: str, typer_app: typer.Typer, prog_name: str) -> None:
    machine = EffectMachine()
    machine.append(
        GenerateShellCompletion(shell, typer.main.get_command(typer_app), prog_name),
        forgiving=False,
    )
    with _reporting_errors():
        _execute(machine)


# -------------------------------------------------------------------
# Top level
# -------------------------------------------------------------------

@app.callback()
def main(
    ctx: typer.Context,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
):
    _options(ctx, config, verbose)


@app.command()
def init(ctx: typer.Context):
    """Write a commented default config file."""
    from .effects import CreateDirectory, PrintToStdOut, WriteFile

    state = ctx.ensure_object(CliState)
    path = Path(state.config_path or DEFAULT_CONFIG_PATH).expanduser().absolute()
    if path.exists():
        typer.echo(f"  Exists  {path}")
        return
    machine = EffectMachine()
    machine.append(CreateDirectory(path.parent, ok_if_exists=True), forgiving=False)
    machine.append(
        WriteFile(
            content=DEFAULT_CONFIG_TEMPLATE.encode(),
            path=path,
            can_create=True,
            can_overwrite=False,
        ),
        forgiving=False,
    )
    machine.append(PrintToStdOut(f"  Created {path}"), forgiving=False)
    with _reporting_errors():
        _execute(machine)


@app.command("config")
def config_show(ctx: typer.Context):
    """Show the merged configuration."""
    from dataclasses import asdict
    import yaml

    with _reporting_errors():
        config = _config(ctx)
    typer.echo(yaml.safe_dump(asdict(config), default_flow_style=False, allow_unicode=True))


@app.command()
def completions(shell: str = typer.Argument(..., help="bash, zsh or fish")):
    """Print the shell completion script."""
    _completions(shell, app, "prmait")


def _river(ctx: typer.Context) -> None:
    from . import river

    with _reporting_errors():
        config = _config(ctx)
        _execute(river.run(config.river))


@app.command("river")
def river_command(ctx: typer.Context):
    """Configure river: options, key bindings, tags, startup programs."""
    _river(ctx)


@river_app.callback(invoke_without_command=True)
def river_main(
    ctx: typer.Context,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
):
    _options(ctx, config, verbose)
    _river(ctx)


# -------------------------------------------------------------------
# Journal
# -------------------------------------------------------------------

@journal_app.callback()
def journal_main(
    ctx: typer.Context,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
):
    _options(ctx, config, verbose)


def _journal_context(ctx: typer.Context):
    """Config, loaded book and repository root for the journal directory."""
    from . import git
    from .journal import Book

    config = _config(ctx)
    journal_path = config.journal_path()
    root = _run_async(git.repo_root(journal_path, config.git))
    return config, Book.load(journal_path), root


@journal_app.command("new")
def journal_new(
    ctx: typer.Context,
    body: str = typer.Argument(..., help="The entry text"),
    tag: list[str] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
    mood: Mood = typer.Option(Mood.NEUTRAL, "--mood", "-m", case_sensitive=False),
    people: list[str] = typer.Option(None, "--people", "-p", help="Person (repeatable)"),
):
    """Record a new entry and push it."""
    from . import git, journal
    from .models import Entry
    from .timeutils import now_in

    with _reporting_errors():
        config = _config(ctx)
        journal_path = config.journal_path()
        entry = Entry(
            at=now_in(config.utc_offset()),
            body=body,
            tags=list(tag or []),
            mood=mood,
            people=list(people or []),
        )
        root = _run_async(git.repo_root(journal_path, config.git))
        _execute(journal.new_entry(
            entry, journal_path, root, config.journal_file_name_format(), config.git,
        ))


@journal_app.command("list")
def journal_list(ctx: typer.Context):
    """Show every entry, oldest first."""
    from . import journal

    with _reporting_errors():
        config = _config(ctx)
        _execute(journal.list_entries(journal.Book.load(config.journal_path())))


@journal_app.command("delete")
def journal_delete(
    ctx: typer.Context,
    specifier: str = typer.Argument(..., help="Part of the entry's file name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete one entry and push the removal."""
    from . import journal

    with _reporting_errors():
        config, book, root = _journal_context(ctx)
        target = journal.find_entry(book, specifier)
        if not yes:
            typer.echo(journal.preview(target))
            if not typer.confirm("Delete this entry?", default=False):
                typer.echo("  Aborted.")
                raise typer.Exit(1)
        _execute(journal.delete_entry(book, specifier, root, config.git))


@journal_app.command("completions")
def journal_completions(shell: str = typer.Argument(..., help="bash, zsh or fish")):
    """Print the shell completion script for jnl."""
    _completions(shell, journal_app, "jnl")


@journal_edit_app.command("last")
def journal_edit_last(ctx: typer.Context):
    """Only edit the last entry."""
    from . import journal
    from .config import editor_from_env

    with _reporting_errors():
        config, book, root = _journal_context(ctx)
        _execute(journal.edit_last_entry(book, root, editor_from_env(), config.git))


@journal_edit_app.command("all")
def journal_edit_all(ctx: typer.Context):
    """Open every entry."""
    from . import journal
    from .config import editor_from_env

    with _reporting_errors():
        config, book, root = _journal_context(ctx)
        _execute(journal.edit_all_entries(book, root, editor_from_env(), config.git))


@journal_edit_app.command("specific")
def journal_edit_specific(
    ctx: typer.Context,
    item: str = typer.Argument(..., help="Part of the file names to open"),
):
    """Open the entries whose file name contains ITEM."""
    from . import journal
    from .config import editor_from_env

    with _reporting_errors():
        config, book, root = _journal_context(ctx)
        _execute(journal.edit_specific_entries(book, item, root, editor_from_env(), config.git))


# -------------------------------------------------------------------
# Tasks
# -------------------------------------------------------------------

@task_app.callback()
def task_main(
    ctx: typer.Context,
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
):
    _options(ctx, config, verbose)


def _area(value: str | None) -> Area | None:
    if value is None:
        return None
    try:
        return Area.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


@task_app.command("new")
def task_new(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", "-t", help="The main title of the task"),
    description: str = typer.Option(None, "--description", "-d"),
    area: str = typer.Option(None, "--area", "-a", callback=_area, help="work, home or personal"),
    people: list[str] = typer.Option(None, "--people", "-P", help="Person (repeatable)"),
    projects: list[str] = typer.Option(None, "--projects", "-p", help="Project (repeatable)"),
    deadline: str = typer.Option(None, "--deadline", "-D", help="e.g. tom, 3d, 2w, 2024-apr-10"),
    start: str = typer.Option(None, "--start", "-S", help="Best day to start, same forms"),
):
    """Create a task and push it."""
    from . import git, tasks
    from .models import Task
    from .timeutils import now_in, parse_date

    with _reporting_errors():
        config = _config(ctx)
        task_path = config.task_path()
        now = now_in(config.utc_offset())
        today = now.date()

        all_projects = list(projects or [])
        project = _run_async(git.current_project(Path.cwd(), config.git))
        if project and project not in all_projects:
            all_projects.append(project)

        task = Task.new(
            title,
            now,
            description=description,
            area=area,
            people=list(people or []),
            projects=all_projects,
            start=parse_date(start, today) if start else None,
            end=parse_date(deadline, today) if deadline else None,
        )
        root = _run_async(git.repo_root(task_path, config.git))
        _execute(tasks.new_task(task, task_path, root, config.task_file_name_format(), config.git))
    typer.echo(f"  Created task {task.id}")


def _report_failures(failures) -> None:
    for failure in failures:
        typer.echo(f"  Error: {failure}", err=True)
        if isinstance(failure, AmbiguousTaskMatch):
            for m in failure.matches:
                typer.echo(f"    {m.task.id}\t{m.task.title}", err=True)


def _mark(ctx: typer.Context, marks: Callable[..., list]) -> None:
    """Resolve, write and push every mark; unresolved identifiers exit 1."""
    from . import git, tasks
    from .timeutils import now_in

    with _reporting_errors():
        config = _config(ctx)
        task_path = config.task_path()
        task_list = tasks.TaskList.load(task_path)
        root = _run_async(git.repo_root(task_path, config.git))
        plan = tasks.mark_tasks(
            task_list, marks(now_in(config.utc_offset())), root, config.git,
        )
        _report_failures(plan.failures)
        if len(plan.machine):
            _execute(plan.machine)
    for desc in plan.marked:
        typer.echo(f"  {desc.task.id} → {desc.task.current_state.kind.value}")
    if plan.failures:
        raise typer.Exit(1)


IdsArgument = typer.Argument(..., help="Task ids, or unique parts of them")


@task_app.command("done")
def task_done(ctx: typer.Context, ids: list[str] = IdsArgument):
    """Mark tasks as done."""
    _mark(ctx, lambda now: [(i, State.done(now)) for i in ids])


@task_app.command("todo")
def task_todo(ctx: typer.Context, ids: list[str] = IdsArgument):
    """Mark tasks as todo."""
    _mark(ctx, lambda now: [(i, State.todo(now)) for i in ids])


@task_app.command("backlog")
def task_backlog(ctx: typer.Context, ids: list[str] = IdsArgument):
    """Move tasks to the backlog."""
    _mark(ctx, lambda now: [(i, State.backlog(now)) for i in ids])


@task_app.command("abandon")
def task_abandon(
    ctx: typer.Context,
    ids: list[str] = IdsArgument,
    reason: str = typer.Option(None, "--reason", "-r", help="Why the task was dropped"),
):
    """Mark tasks as abandoned."""
    _mark(ctx, lambda now: [(i, State.abandoned(now, reason)) for i in ids])


@task_app.command("bulk")
def task_bulk(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
):
    """Apply tab-separated <id> <action> <title> [<reason>] lines from FILE."""
    from .bulk import parse_lines, to_marks

    with _reporting_errors():
        actions = parse_lines(file.read_text())
    _mark(ctx, lambda now: to_marks(actions, now))


@task_app.command("completions")
def task_completions(shell: str = typer.Argument(..., help="bash, zsh or fish")):
    """Print the shell completion script for tsk."""
    _completions(shell, task_app, "tsk")


def _listing(ctx: typer.Context, build) -> None:
    from . import git, tasks
    from .timeutils import today_in

    with _reporting_errors():
        config = _config(ctx)
        task_list = tasks.TaskList.load(config.task_path())
        project = _run_async(git.current_project(Path.cwd(), config.git))
        _execute(build(task_list, today_in(config.utc_offset()), project))


@task_list_app.command("today")
def task_list_today(ctx: typer.Context):
    """Tasks starting today, due today, or overdue."""
    from .tasks import show_todays_tasks

    _listing(ctx, show_todays_tasks)


def _by_state(kind: StateKind):
    from .tasks import show_tasks_by_state

    return lambda task_list, today, project: show_tasks_by_state(task_list, kind, today, project)


@task_list_app.command("todo")
def task_list_todo(ctx: typer.Context):
    """Open tasks."""
    _listing(ctx, _by_state(StateKind.TODO))


@task_list_app.command("done")
def task_list_done(ctx: typer.Context):
    """Finished tasks."""
    _listing(ctx, _by_state(StateKind.DONE))


@task_list_app.command("abandoned")
def task_list_abandoned(ctx: typer.Context):
    """Abandoned tasks."""
    _listing(ctx, _by_state(StateKind.ABANDONED))


@task_list_app.command("backlogged")
def task_list_backlogged(ctx: typer.Context):
    """Tasks in the backlog."""
    _listing(ctx, _by_state(StateKind.BACKLOG))


if __name__ == "__main__":
    app()
