"""Line grammar for bulk task edits.

Each line is tab separated::

    <identifier>\t<action>\t<title>[\t<reason>]

``done`` takes the rest of the line as the title, ``aban`` accepts an
optional reason after the title, and ``todo``/``back``/``ignr`` take a title
with no further fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .errors import BulkLineError
from .models import State


class Action(str, Enum):
    DONE = "done"
    TODO = "todo"
    BACKLOG = "back"
    ABANDON = "aban"
    IGNORE = "ignr"


@dataclass(frozen=True)
class BulkAction:
    identifier: str
    action: Action
    reason: str | None = None


def parse_line(line: str, line_no: int = 1) -> BulkAction:
    fields = line.split("\t")
    if len(fields) < 3:
        raise BulkLineError(line_no, line, "expected <id>\\t<action>\\t<title>")

    raw_id, raw_action, *rest = fields
    if not raw_id.isdecimal():
        raise BulkLineError(line_no, line, f"'{raw_id}' is not a task number")
    identifier = str(int(raw_id))

    try:
        action = Action(raw_action)
    except ValueError:
        raise BulkLineError(line_no, line, f"unknown action '{raw_action}'") from None

    if action == Action.DONE:
        return BulkAction(identifier, action)
    if action == Action.ABANDON:
        if len(rest) == 1:
            return BulkAction(identifier, action)
        if len(rest) == 2:
            return BulkAction(identifier, action, rest[1])
        raise BulkLineError(line_no, line, "too many fields")
    if len(rest) != 1:
        raise BulkLineError(line_no, line, "too many fields")
    return BulkAction(identifier, action)


def parse_lines(text: str) -> list[BulkAction]:
    """Parse every non-blank line; the first bad line raises."""
    return [
        parse_line(line, line_no)
        for line_no, line in enumerate(text.splitlines(), start=1)
        if line.strip()
    ]


def to_marks(actions: list[BulkAction], now: datetime) -> list[tuple[str, State]]:
    """The state each action appends, in file order; ignored lines drop out."""
    marks = []
    for item in actions:
        if item.action == Action.IGNORE:
            continue
        if item.action == Action.DONE:
            state = State.done(now)
        elif item.action == Action.TODO:
            state = State.todo(now)
        elif item.action == Action.BACKLOG:
            state = State.backlog(now)
        else:
            state = State.abandoned(now, item.reason)
        marks.append((item.identifier, state))
    return marks
