"""Date helpers."""

from __future__ import annotations

import re
from datetime import date

import pendulum

ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_iso_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` calendar date."""
    if not ISO_DATE_RE.fullmatch(value):
        raise ValueError(f"Not a YYYY-MM-DD date: {value!r}")
    parsed = pendulum.from_format(value, "YYYY-MM-DD")
    return date(parsed.year, parsed.month, parsed.day)


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")
