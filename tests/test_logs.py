from __future__ import annotations

import logging

from crm_autopilot import LOGS
from crm_autopilot.io import WorkbookStore
from crm_autopilot.logs import (
    LOGGER_NAME,
    clear_logs,
    level_for,
    reset_logging,
    setup_logging,
)


def _messages(store: WorkbookStore) -> list[str]:
    return [row[1] for row in store.get_all_rows(LOGS)[1:]]


def test_level_for_maps_verbosity() -> None:
    assert level_for("Minimal") == logging.INFO
    assert level_for("DETAILED") == logging.DEBUG
    assert level_for("whatever") == logging.INFO


def test_minimal_logging_persists_info_but_not_debug(store: WorkbookStore) -> None:
    setup_logging("Minimal", store, console=False)
    log = logging.getLogger(f"{LOGGER_NAME}.actions")

    log.info("Started checkAndNotifyRenewals")
    log.debug("Row 2: Not eligible for notification.")

    assert _messages(store) == ["Started checkAndNotifyRenewals"]


def test_detailed_logging_persists_debug(store: WorkbookStore) -> None:
    setup_logging("Detailed", store, console=False)

    logging.getLogger(LOGGER_NAME).debug("Row 2: Not eligible for notification.")

    assert _messages(store) == ["Row 2: Not eligible for notification."]
    stamp = store.get_all_rows(LOGS)[1][0]
    assert stamp is not None


def test_setup_logging_replaces_previous_handlers(store: WorkbookStore) -> None:
    setup_logging("Minimal", store, console=False)
    setup_logging("Minimal", store, console=True)

    logging.getLogger(LOGGER_NAME).info("once")

    assert _messages(store) == ["once"]
    assert len(logging.getLogger(LOGGER_NAME).handlers) == 2


def test_reset_logging_detaches_handlers(store: WorkbookStore) -> None:
    setup_logging("Minimal", store, console=False)
    reset_logging()

    logging.getLogger(LOGGER_NAME).info("dropped")

    assert _messages(store) == []
    assert logging.getLogger(LOGGER_NAME).propagate is True


def test_clear_logs_keeps_header(store: WorkbookStore) -> None:
    for i in range(3):
        store.append_row(LOGS, [None, f"entry {i}"])

    removed = clear_logs(store)

    assert removed == 3
    assert store.get_all_rows(LOGS) == [["Timestamp", "Message"]]
    assert clear_logs(store) == 0
