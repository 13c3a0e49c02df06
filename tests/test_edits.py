from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from conftest import WORKING_HEADER, make_tables

from crm_autopilot import CANCELLATION_TRACK, WORKING_LEADS
from crm_autopilot.edits import edit_stamp, follow_up_month, parse_month_count, record_edit
from crm_autopilot.io import WorkbookStore
from crm_autopilot.models import CellWrite

NOW = datetime(2024, 3, 5, 15, 7)


def _store(term: object) -> WorkbookStore:
    lead = ["Ann", "Lee", "L-1", "555", "ann@example.com", term, "Open", None, None]
    return WorkbookStore.from_tables(make_tables(WorkingLeads=[WORKING_HEADER, lead]))


def test_edit_stamp_format() -> None:
    assert edit_stamp(NOW) == "03/05/2024, 3:07 PM - Tue"
    assert edit_stamp(datetime(2024, 3, 9, 0, 5)) == "03/09/2024, 12:05 AM - Sat"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("6", 6),
        ("6 months", 6),
        ("12-mo", 12),
        (" 3 Month", 3),
        (24, 24),
        ("twelve", None),
        ("", None),
        (None, None),
        (True, None),
        (-1, None),
    ],
)
def test_parse_month_count(value: object, expected: int | None) -> None:
    assert parse_month_count(value) == expected


def test_follow_up_month_rolls_over_year() -> None:
    assert follow_up_month(date(2024, 11, 15), 3) == "February 2025"
    assert follow_up_month(date(2024, 1, 31), 1) == "February 2024"
    assert follow_up_month(date(2024, 5, 1), 0) == "May 2024"
    assert follow_up_month(date(2024, 5, 1), 24) == "May 2026"


def test_term_edit_writes_stamp_and_follow_up_month() -> None:
    store = _store("6 months")

    writes = record_edit(store, WORKING_LEADS, 2, 6, NOW)

    assert writes == [
        CellWrite(2, 9, "03/05/2024, 3:07 PM - Tue"),
        CellWrite(2, 8, "September 2024"),
    ]
    row = store.get_all_rows(WORKING_LEADS)[1]
    assert row[7] == "September 2024"
    assert row[8] == "03/05/2024, 3:07 PM - Tue"


def test_other_column_edit_only_stamps() -> None:
    store = _store("6")

    writes = record_edit(store, WORKING_LEADS, 2, 2, NOW)

    assert [w.column for w in writes] == [9]
    assert store.get_all_rows(WORKING_LEADS)[1][7] is None


def test_unreadable_term_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    store = _store("open-ended")

    with caplog.at_level(logging.WARNING, logger="crm_autopilot"):
        writes = record_edit(store, WORKING_LEADS, 2, 6, NOW)

    assert [w.column for w in writes] == [9]
    assert "Could not extract month count from F2" in caplog.text


def test_edits_outside_working_leads_data_are_ignored() -> None:
    store = _store("6")

    assert record_edit(store, CANCELLATION_TRACK, 2, 6, NOW) == []
    assert record_edit(store, WORKING_LEADS, 1, 6, NOW) == []
    assert store.get_all_rows(WORKING_LEADS)[0] == WORKING_HEADER
