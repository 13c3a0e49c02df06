"""Logging setup — rich console output plus the persisted Logs table.

``Minimal`` verbosity keeps INFO and above (run milestones, failures);
``Detailed`` adds DEBUG (per-row decisions, date parse failures).
"""

from __future__ import annotations

import logging
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler

from crm_autopilot import LOGS
from crm_autopilot.io import TableStore

__all__ = [
    "LOGGER_NAME",
    "SheetLogHandler",
    "clear_logs",
    "level_for",
    "reset_logging",
    "setup_logging",
]

LOGGER_NAME = "crm_autopilot"

_LEVELS = {
    "minimal": logging.INFO,
    "detailed": logging.DEBUG,
}

_installed: list[logging.Handler] = []


class SheetLogHandler(logging.Handler):
    """Append ``[timestamp, message]`` rows to the Logs table."""

    def __init__(self, store: TableStore, table: str = LOGS) -> None:
        super().__init__()
        self.store = store
        self.table = table

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stamp = datetime.fromtimestamp(record.created).replace(microsecond=0)
            self.store.append_row(self.table, [stamp, self.format(record)])
        except Exception:
            self.handleError(record)


def level_for(log_level: str) -> int:
    return _LEVELS.get(str(log_level).strip().lower(), logging.INFO)


def setup_logging(
    log_level: str = "Minimal",
    store: TableStore | None = None,
    *,
    console: bool = True,
) -> logging.Logger:
    """(Re)configure the package logger for one invocation.

    Handlers installed by a previous call are replaced, never stacked.
    """
    logger = logging.getLogger(LOGGER_NAME)
    reset_logging()
    level = level_for(log_level)
    logger.setLevel(level)

    if console:
        rich_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        rich_handler.setLevel(level)
        logger.addHandler(rich_handler)
        _installed.append(rich_handler)

    if store is not None:
        sheet_handler = SheetLogHandler(store)
        sheet_handler.setLevel(level)
        sheet_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(sheet_handler)
        _installed.append(sheet_handler)

    logger.propagate = False
    return logger


def reset_logging() -> None:
    """Remove every handler installed by :func:`setup_logging`."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def clear_logs(store: TableStore) -> int:
    """Delete every Logs row below the header; return how many were removed."""
    return store.clear_rows(LOGS, 2)
