"""Turn heterogeneous cell values into ``datetime``."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Any

import pandas as pd

from crm_autopilot.errors import DateParseError

logger = logging.getLogger(__name__)

_ISO_T_RE = re.compile(r"(?<=\d)T(?=\d)")
_ISO_Z_RE = re.compile(r"Z$")

LONG_DATE_FMT = "%B %d, %Y"


def _row_prefix(row: int | None) -> str:
    return f"Row {row}: " if row is not None else ""


def clean_iso_string(text: str) -> str:
    """Drop the ``T`` separator and trailing ``Z`` of an ISO-8601 timestamp."""
    text = text.strip()
    text = _ISO_T_RE.sub(" ", text, count=1)
    return _ISO_Z_RE.sub("", text)


def parse_date_string(text: str) -> datetime:
    """Parse *text* (already cleaned) into a naive-or-aware ``datetime``.

    Raises
    ------
    DateParseError
        If the text holds no digits (pandas reads "today"/"now" as the
        current time) or pandas cannot make sense of it.
    """
    if not any(ch.isdigit() for ch in text):
        raise DateParseError(f"Unparseable date: {text!r}")
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        raise DateParseError(f"Unparseable date: {text!r}")
    return parsed.to_pydatetime()


def normalize(raw: Any, row: int | None = None) -> datetime | None:
    """Return *raw* as a ``datetime`` or ``None`` when it is missing/invalid.

    Structured values pass through (``date`` is promoted to midnight).
    Strings are ISO-cleaned and parsed; failures are logged, never raised.
    """
    if raw is pd.NaT:
        logger.debug("%sInvalid or missing date", _row_prefix(row))
        return None
    if isinstance(raw, pd.Timestamp):
        return raw.to_pydatetime()
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, date):
        return datetime.combine(raw, time())
    if isinstance(raw, str) and raw.strip():
        try:
            return parse_date_string(clean_iso_string(raw))
        except DateParseError:
            logger.debug("%sInvalid date format after parsing: %r", _row_prefix(row), raw)
            return None
    logger.debug("%sInvalid or missing date", _row_prefix(row))
    return None


def is_same_date(a: date, b: date) -> bool:
    """True when *a* and *b* fall on the same calendar day (time ignored)."""
    return a.year == b.year and a.month == b.month and a.day == b.day


def shift_days(value: datetime, days: int) -> datetime:
    """Move *value* by a whole number of calendar days."""
    return value + timedelta(days=days)


def format_long_date(value: date | None, missing: str = "N/A") -> str:
    """Render *value* as ``"March 01, 2024"`` (or *missing* when ``None``)."""
    if value is None:
        return missing
    return value.strftime(LONG_DATE_FMT)
