"""Human-friendly date input: relative offsets and calendar dates."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, tzinfo

from .errors import DateParseError

_UNIT_DAYS = {
    "d": 1, "day": 1, "days": 1,
    "w": 7, "week": 7, "weeks": 7,
    "m": 30, "month": 30, "months": 30,
    "y": 365, "year": 365, "years": 365,
}

_NAMED = {
    "today": 0, "tod": 0,
    "tomorrow": 1, "tom": 1,
}

_MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_RELATIVE_RE = re.compile(r"(\d+)(days|day|d|weeks|week|w|months|month|m|years|year|y)")
_CALENDAR_RE = re.compile(r"(-?\d+)[-_.]([a-z]+|\d{1,2})[-_.](\d{1,2})")


def now_in(offset: tzinfo) -> datetime:
    return datetime.now(offset)


def today_in(offset: tzinfo) -> date:
    return now_in(offset).date()


def parse_date(text: str, today: date) -> date:
    """Resolve ``text`` to a calendar date, relative to ``today``.

    Accepted forms (case-insensitive):
      - ``today``/``tod``, ``tomorrow``/``tom``
      - ``<n>d``, ``<n>w``, ``<n>m`` (30 days), ``<n>y`` (365 days), each
        unit also spelled out in singular or plural
      - ``<year>-<month>-<day>`` with ``-``, ``_`` or ``.`` as separators and
        the month as a number or an English name or abbreviation
    """
    lowered = text.strip().lower()

    if lowered in _NAMED:
        return today + timedelta(days=_NAMED[lowered])

    match = _RELATIVE_RE.fullmatch(lowered)
    if match:
        count, unit = match.groups()
        return today + timedelta(days=int(count) * _UNIT_DAYS[unit])

    match = _CALENDAR_RE.fullmatch(lowered)
    if match:
        year, month_text, day = match.groups()
        month = int(month_text) if month_text.isdigit() else _MONTHS.get(month_text)
        if month is None:
            raise DateParseError(text)
        try:
            return date(int(year), month, int(day))
        except ValueError as exc:
            raise DateParseError(text) from exc

    raise DateParseError(text)
