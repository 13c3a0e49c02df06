"""Eligibility engine — date-driven scans over the CancellationTrack table.

Both scans walk the bounded view of the table: the first data row whose
first cell is blank ends the data, later rows are never read.
"""

from __future__ import annotations

import logging
from datetime import date

from crm_autopilot.dates import is_same_date, normalize, shift_days
from crm_autopilot.io import NOTIFIED_COLOR
from crm_autopilot.models import CellWrite, RecalcResult, ScanResult, TrackedLead
from crm_autopilot.schema import TRACKED_LEAD_SCHEMA, BoundedTable, Table

logger = logging.getLogger(__name__)

NOTIFIED = "Yes"
FOLLOW_UP_OFFSET_DAYS = 42


def _log_bounds(view: BoundedTable) -> None:
    if len(view) < len(view.rows) - 1:
        logger.debug(
            "Row %d: Blank row detected, stopping further processing.", len(view) + 2
        )


def scan_due_today(rows: Table, today: date) -> ScanResult:
    """Collect leads whose follow-up date is *today* and that were not notified yet.

    Mutations are returned rather than applied, so every eligibility check
    sees the flags as they were before this scan.
    """
    schema = TRACKED_LEAD_SCHEMA
    view = BoundedTable.of(rows)
    result = ScanResult()

    for sheet_row, record in view:
        follow_up = normalize(schema.get(record, "follow_up_date"), sheet_row)
        renewal = normalize(schema.get(record, "renewal_date"), sheet_row)
        if follow_up is None:
            continue

        flag = schema.get(record, "notified_flag")
        if is_same_date(follow_up, today) and flag != NOTIFIED:
            result.due_leads.append(
                TrackedLead(
                    row=sheet_row,
                    first_name=schema.get(record, "first_name"),
                    last_name=schema.get(record, "last_name"),
                    contact_number=schema.get(record, "contact_number"),
                    renewal_date=renewal,
                    follow_up_date=follow_up,
                )
            )
            result.mutations.append(
                CellWrite(
                    row=sheet_row,
                    column=schema.column("notified_flag"),
                    value=NOTIFIED,
                    background=NOTIFIED_COLOR,
                )
            )
        else:
            logger.debug("Row %d: Not eligible for notification.", sheet_row)

    _log_bounds(view)
    return result


def recalculate_follow_up_dates(rows: Table) -> RecalcResult:
    """Queue ``follow_up = renewal - 42 days`` for every row with a valid renewal date."""
    schema = TRACKED_LEAD_SCHEMA
    view = BoundedTable.of(rows)
    writes: list[CellWrite] = []

    for sheet_row, record in view:
        renewal = normalize(schema.get(record, "renewal_date"), sheet_row)
        if renewal is None:
            continue
        writes.append(
            CellWrite(
                row=sheet_row,
                column=schema.column("follow_up_date"),
                value=shift_days(renewal, -FOLLOW_UP_OFFSET_DAYS),
            )
        )

    _log_bounds(view)
    return RecalcResult(updated_count=len(writes), writes=writes)
