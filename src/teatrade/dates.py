"""Parsing of the date formats used by catalog sheets and filter inputs."""
from __future__ import annotations

import re
from datetime import date, datetime

_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_YEAR_FIRST = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
_YEAR_LAST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_trade_date(value: str | date) -> date:
    """Parse YYYY-MM-DD, YYYY/MM/DD, DD/MM/YYYY or M/D/YYYY into a date.

    Slash dates with the year last are read day-first when the digits allow
    it, falling back to month-first (``12/31/2024``). Raises ``ValueError``
    for anything else, including impossible calendar days.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()

    match = _ISO.match(text) or _YEAR_FIRST.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return date(year, month, day)

    match = _YEAR_LAST.match(text)
    if match:
        first, second, year = (int(part) for part in match.groups())
        try:
            return date(year, second, first)
        except ValueError:
            return date(year, first, second)

    raise ValueError(f"Invalid date: {text!r}")


def is_trade_date(value: str) -> bool:
    try:
        parse_trade_date(value)
    except ValueError:
        return False
    return True


__all__ = ["parse_trade_date", "is_trade_date"]
