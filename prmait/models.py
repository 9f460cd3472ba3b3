"""Core data models: journal entries, tasks and task states."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


def format_time(moment: datetime) -> str:
    return moment.isoformat()


def parse_time(raw: str) -> datetime:
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    moment = datetime.fromisoformat(raw)
    if moment.tzinfo is None:
        raise ValueError(f"timestamp without offset: {raw!r}")
    return moment


def to_file_name(moment: datetime, file_name_format: str) -> str:
    """File name for an item created at ``moment`` (strftime format)."""
    return moment.strftime(file_name_format)


def _optional_date(raw: Any) -> date | None:
    if raw is None:
        return None
    return date.fromisoformat(raw)


def _unique(items) -> list[str]:
    """Drop repeats, keeping the first occurrence."""
    return list(dict.fromkeys(items))


# -------------------------------------------------------------------
# Journal
# -------------------------------------------------------------------

class Mood(str, Enum):
    GOOD = "Good"
    BAD = "Bad"
    NEUTRAL = "Neutral"


@dataclass
class Entry:
    """A single journal entry."""

    at: datetime
    body: str
    tags: list[str] = field(default_factory=list)
    mood: Mood = Mood.NEUTRAL
    people: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.tags = _unique(self.tags)
        self.people = _unique(self.people)

    def to_json(self) -> dict:
        return {
            "at": format_time(self.at),
            "body": self.body,
            "tag": list(self.tags),
            "mood": self.mood.value,
            "people": list(self.people),
        }

    @classmethod
    def from_json(cls, data: dict) -> Entry:
        return cls(
            at=parse_time(data["at"]),
            body=data["body"],
            tags=list(data.get("tag", [])),
            mood=Mood(data.get("mood", Mood.NEUTRAL.value)),
            people=list(data.get("people", [])),
        )


# -------------------------------------------------------------------
# Tasks
# -------------------------------------------------------------------

class StateKind(str, Enum):
    BACKLOG = "Backlog"
    ABANDONED = "Abandoned"
    DONE = "Done"
    TODO = "ToDo"


_STATE_LABELS = {
    StateKind.BACKLOG: "⚏ BKLG",
    StateKind.ABANDONED: "☓ ABND",
    StateKind.DONE: "☑ DONE",
    StateKind.TODO: "☐ TODO",
}


@dataclass(frozen=True)
class State:
    """One entry of a task's state log."""

    kind: StateKind
    at: datetime
    reason: str | None = None  # only meaningful for ABANDONED

    @classmethod
    def backlog(cls, at: datetime) -> State:
        return cls(StateKind.BACKLOG, at)

    @classmethod
    def abandoned(cls, at: datetime, reason: str | None = None) -> State:
        return cls(StateKind.ABANDONED, at, reason)

    @classmethod
    def done(cls, at: datetime) -> State:
        return cls(StateKind.DONE, at)

    @classmethod
    def todo(cls, at: datetime) -> State:
        return cls(StateKind.TODO, at)

    @property
    def label(self) -> str:
        return _STATE_LABELS[self.kind]

    def to_json(self) -> dict:
        stamp = format_time(self.at)
        if self.kind == StateKind.ABANDONED:
            return {self.kind.value: [stamp, self.reason]}
        return {self.kind.value: stamp}

    @classmethod
    def from_json(cls, data: Any) -> State:
        if not isinstance(data, dict) or len(data) != 1:
            raise ValueError(f"invalid state: {data!r}")
        ((tag, value),) = data.items()
        kind = StateKind(tag)
        if kind == StateKind.ABANDONED:
            stamp, reason = value
            return cls(kind, parse_time(stamp), reason)
        return cls(kind, parse_time(value))


class Area(str, Enum):
    WORK = "Work"
    HOME = "Home"
    PERSONAL = "Personal"

    @classmethod
    def parse(cls, text: str) -> Area:
        """Accept the name or any prefix of it: ``w``, ``ho``, ``pers``..."""
        lowered = text.strip().lower()
        if lowered:
            for area in cls:
                if area.value.lower().startswith(lowered):
                    return area
        raise ValueError(f"'{text}' is not one of work, home, personal")

    def __str__(self) -> str:
        return self.value.lower()


@dataclass
class Task:
    """A tracked task. ``state_log`` is append-only; its last entry is current."""

    id: int
    time_created: datetime
    state_log: list[State]
    title: str
    description: str | None = None
    area: Area | None = None
    people: list[str] = field(default_factory=list)
    projects: list[str] = field(default_factory=list)
    start: date | None = None
    end: date | None = None

    def __post_init__(self):
        if not self.state_log:
            raise ValueError("every task needs at least one state")
        self.people = _unique(self.people)
        self.projects = _unique(self.projects)

    @classmethod
    def new(cls, title: str, now: datetime, **kwargs: Any) -> Task:
        return cls(
            id=int(now.timestamp()),
            time_created=now,
            state_log=[State.todo(now)],
            title=title,
            **kwargs,
        )

    @property
    def current_state(self) -> State:
        return self.state_log[-1]

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "time_created": format_time(self.time_created),
            "state_log": [s.to_json() for s in self.state_log],
            "title": self.title,
            "description": self.description,
            "area": self.area.value if self.area else None,
            "people": list(self.people),
            "projects": list(self.projects),
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }

    @classmethod
    def from_json(cls, data: dict) -> Task:
        area = data.get("area")
        return cls(
            id=int(data["id"]),
            time_created=parse_time(data["time_created"]),
            state_log=[State.from_json(s) for s in data["state_log"]],
            title=data["title"],
            description=data.get("description"),
            area=Area(area) if area else None,
            people=list(data.get("people", [])),
            projects=list(data.get("projects", [])),
            start=_optional_date(data.get("start")),
            end=_optional_date(data.get("end")),
        )
