"""Stamp edited WorkingLeads rows and derive their follow-up month."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

from crm_autopilot import WORKING_LEADS
from crm_autopilot.io import TableStore, apply_writes
from crm_autopilot.models import CellWrite
from crm_autopilot.schema import cell, index_to_column

logger = logging.getLogger(__name__)

TERM_COLUMN = 6
FOLLOW_UP_MONTH_COLUMN = 8
STAMP_COLUMN = 9

_MONTH_COUNT_RE = re.compile(r"^(\d+)\s*(?:-?\s*(?:mo|month|months)\b)?", re.IGNORECASE)


def edit_stamp(now: datetime) -> str:
    """``"03/05/2024, 3:07 PM - Tue"``."""
    hour = now.hour % 12 or 12
    return f"{now:%m/%d/%Y}, {hour}:{now:%M} {now:%p} - {now:%a}"


def parse_month_count(value: Any) -> int | None:
    """Leading month count of a term cell (``"6"``, ``"6 months"``, ``"12-mo"``)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if not isinstance(value, str):
        return None
    match = _MONTH_COUNT_RE.match(value.strip())
    return int(match.group(1)) if match else None


def follow_up_month(now: date, months: int) -> str:
    """Month label (``"July 2025"``) for the first day ``months`` after *now*'s month."""
    total = now.month - 1 + months
    target = date(now.year + total // 12, total % 12 + 1, 1)
    return f"{target:%B %Y}"


def record_edit(
    store: TableStore, table: str, row: int, column: int, now: datetime
) -> list[CellWrite]:
    """React to an edit of (*row*, *column*) in *table*; returns the writes applied.

    Only WorkingLeads data rows are handled. Every edit refreshes the stamp in
    column I; an edit of the term column F also refreshes column H.
    """
    if table != WORKING_LEADS or row <= 1:
        logger.debug(
            "Edit not on '%s' data rows (%s!R%dC%d). Ignored.", WORKING_LEADS, table, row, column
        )
        return []

    writes = [CellWrite(row, STAMP_COLUMN, edit_stamp(now))]

    if column == TERM_COLUMN:
        rows = store.get_all_rows(table)
        value = cell(rows[row - 1], TERM_COLUMN - 1) if row <= len(rows) else None
        months = parse_month_count(value)
        if months is None:
            logger.warning(
                "Could not extract month count from %s%d: %r",
                index_to_column(TERM_COLUMN - 1),
                row,
                value,
            )
        else:
            writes.append(CellWrite(row, FOLLOW_UP_MONTH_COLUMN, follow_up_month(now, months)))

    apply_writes(store, table, writes)
    logger.debug("Edit on %s row %d recorded (%d writes)", table, row, len(writes))
    return writes
