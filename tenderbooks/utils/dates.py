"""Mini README: Date coercion helpers shared by records and the web layer.

Storage rows carry dates as ISO strings, sometimes with a time component
(``2024-01-01T09:30:00``). The ledger only ever compares calendar days, so
every value is reduced to a ``date`` here.
"""

from __future__ import annotations

from datetime import date, datetime


def parse_date(value: object) -> date:
    """Parse ISO formatted strings or date objects, dropping any time part."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Dates must not be empty.")
        try:
            return date.fromisoformat(text[:10])
        except ValueError as error:
            raise ValueError(f"Unrecognised date: {value!r}") from error
    raise ValueError("Dates must be provided as ISO strings or date/datetime instances.")
