"""Shared fixtures: in-memory CRM workbooks and a recording notifier."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

import pytest

from crm_autopilot import CANCELLATION_TRACK, LEAD_STAGE, LOGS, SETUP, WORKING_LEADS
from crm_autopilot.errors import TransportError
from crm_autopilot.io import WorkbookStore
from crm_autopilot.logs import reset_logging

TODAY = datetime(2024, 4, 20, 9, 30)

TRACK_HEADER = [
    "First Name", "Last Name", "Contact Number", "Notes",
    "Renewal Date", "Follow Up Date", "Notified",
]
WORKING_HEADER = [
    "First Name", "Last Name", "Lead ID", "Phone", "Email",
    "Term", "Status", "Follow Up Month", "Last Edited",
]
STAGE_HEADER = ["Lead ID", "First Name", "Last Name", "Phone", "Email", "Import Status"]

SETUP_ROWS: list[list[Any]] = [
    ["Attribute", "Value", "Destination Column", "Source Column"],
    ["LogLevel", "Detailed", None, None],
    ["RenewalEmails", "renewals@example.com", "C", "A"],
    ["MonthlyLeadsEmails", "a@example.com; b@example.com", "A", "B"],
    ["LeadImportStatusColumn", "F", "B", "C"],
    [None, None, "C", "A"],
    [None, None, "D", "D"],
]


def track_row(
    first: Any,
    follow_up: Any,
    flag: Any = "",
    renewal: Any = datetime(2024, 6, 1),
    last: str = "Doe",
    contact: str = "555-0100",
) -> list[Any]:
    return [first, last, contact, None, renewal, follow_up, flag]


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[list[str], str, str]] = []

    def send(self, recipients: Sequence[str], subject: str, body: str) -> None:
        if self.fail:
            raise TransportError("relay unreachable")
        self.sent.append((list(recipients), subject, body))


def make_tables(**overrides: list[list[Any]]) -> dict[str, list[list[Any]]]:
    tables: dict[str, list[list[Any]]] = {
        CANCELLATION_TRACK: [TRACK_HEADER],
        WORKING_LEADS: [WORKING_HEADER],
        LEAD_STAGE: [STAGE_HEADER],
        SETUP: [list(r) for r in SETUP_ROWS],
        LOGS: [["Timestamp", "Message"]],
    }
    tables.update(overrides)
    return tables


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    reset_logging()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> WorkbookStore:
    return WorkbookStore.from_tables(make_tables())
