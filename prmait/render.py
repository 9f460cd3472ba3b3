"""Terminal rendering of entries and tasks."""

from __future__ import annotations

from datetime import date

import typer

from .models import Mood, StateKind, Task

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"

_MOOD_COLORS = {
    Mood.GOOD: typer.colors.GREEN,
    Mood.BAD: typer.colors.RED,
    Mood.NEUTRAL: typer.colors.WHITE,
}

_STATE_COLORS = {
    StateKind.TODO: typer.colors.MAGENTA,
    StateKind.DONE: typer.colors.GREEN,
    StateKind.BACKLOG: typer.colors.BLUE,
    StateKind.ABANDONED: typer.colors.RED,
}


def entry_table(entries, time_format: str = DISPLAY_FORMAT) -> str:
    """One row per entry: time, body and tags, colored by mood."""
    rows = []
    for desc in entries:
        entry = desc.entry
        color = _MOOD_COLORS[entry.mood]
        stamp = typer.style(entry.at.strftime(time_format), fg=typer.colors.BLACK, bg=color)
        line = f"{stamp}  {typer.style(entry.body, fg=color)}"
        if entry.tags:
            line += "  " + " ".join(f"#{t}" for t in entry.tags)
        rows.append(line)
    return "\n".join(rows)


def task_card(task: Task, today: date) -> str:
    state = task.current_state
    lines = [
        "{}\t{} {}".format(
            typer.style(state.label, fg=typer.colors.BLACK, bg=_STATE_COLORS[state.kind]),
            typer.style("⍙", fg=typer.colors.BRIGHT_BLACK),
            typer.style(str(task.id), fg=typer.colors.BRIGHT_BLACK, bold=True),
        ),
        f"⍜ {typer.style(task.title, bold=True)}",
    ]
    if task.description:
        lines.append(typer.style(f"⍘ {task.description}", fg=typer.colors.BRIGHT_BLACK))
    if state.kind == StateKind.ABANDONED and state.reason:
        lines.append(typer.style(f"☓ {state.reason}", fg=typer.colors.RED))

    labels = []
    if task.area:
        labels.append(typer.style(f"#{task.area}", fg=typer.colors.GREEN))
    labels += [typer.style(f"?{p}", fg=typer.colors.YELLOW) for p in task.projects]
    labels += [typer.style(f"@{p}", fg=typer.colors.BLUE) for p in task.people]
    if labels:
        lines.append(" ".join(labels))

    if task.start or task.end:
        span = task.start.strftime(DATE_FORMAT) if task.start else ""
        span += " ⇰ "
        if task.end:
            span += task.end.strftime(DATE_FORMAT)
            span += f" ◕ {(task.end - today).days}d"
        lines.append(typer.style(span, fg=typer.colors.BRIGHT_BLACK, italic=True))
    return "\n".join(lines)


def heading(text: str, bg: str = typer.colors.BRIGHT_BLUE) -> str:
    return typer.style(f"{text:<61}", fg=typer.colors.BLACK, bg=bg, bold=True)


def task_section(title: str, tasks, today: date, bg: str = typer.colors.BRIGHT_BLUE) -> str:
    parts = [heading(title, bg)]
    parts += [task_card(desc.task, today) for desc in tasks]
    return "\n\n".join(parts)
