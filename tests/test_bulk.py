"""Tests for the bulk edit line grammar."""

from datetime import datetime, timezone

import pytest

from prmait.bulk import Action, BulkAction, parse_line, parse_lines, to_marks
from prmait.errors import BulkLineError
from prmait.models import StateKind


@pytest.mark.parametrize("line, expected", [
    ("1\tignr\ttask description, done ", BulkAction("1", Action.IGNORE)),
    ("0\tdone\ttask description", BulkAction("0", Action.DONE)),
    ("0\tdone\ttitle\twith\ttabs", BulkAction("0", Action.DONE)),
    ("2\ttodo\ttask description", BulkAction("2", Action.TODO)),
    ("10\taban\ttask description", BulkAction("10", Action.ABANDON)),
    ("10\taban\ttask description\tsome reason", BulkAction("10", Action.ABANDON, "some reason")),
    ("01\tback\ttask description", BulkAction("1", Action.BACKLOG)),
])
def test_valid_lines(line, expected):
    assert parse_line(line) == expected


@pytest.mark.parametrize("line", [
    "\tignr\ttask description, done\t ",
    "done\ttask description\t",
    "2\ttodo\ttask description\t0",
    "10 10\taban\ttask description",
    "01 back ttask description",
    "3\tfinish\ttitle",
    "²\tdone\ttitle",
])
def test_invalid_lines(line):
    with pytest.raises(BulkLineError):
        parse_line(line)


def test_multiple_lines_skip_blanks():
    text = "1\tignr\tx\n\n0\tdone\ty\n10\taban\tz\tsome reason\n"
    assert parse_lines(text) == [
        BulkAction("1", Action.IGNORE),
        BulkAction("0", Action.DONE),
        BulkAction("10", Action.ABANDON, "some reason"),
    ]


def test_error_reports_line_number():
    with pytest.raises(BulkLineError) as exc:
        parse_lines("1\tdone\tx\nbroken\n")
    assert exc.value.line_no == 2


def test_to_marks_drops_ignored():
    now = datetime(2024, 4, 10, tzinfo=timezone.utc)
    marks = to_marks(parse_lines("1\tignr\tx\n2\tback\ty\n3\taban\tz\tnope\n"), now)
    assert [(i, s.kind) for i, s in marks] == [("2", StateKind.BACKLOG), ("3", StateKind.ABANDONED)]
    assert marks[1][1].reason == "nope"
