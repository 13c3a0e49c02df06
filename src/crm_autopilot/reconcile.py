"""Import reconciler — move staged leads into the destination table.

Each staging row is either skipped (blank key), marked ``Duplicate`` (key
already present in the destination) or mapped column-by-column into a new
destination row and marked ``Imported``.

The duplicate check runs against a snapshot of the destination taken before
the first staging row is looked at. Rows appended by the same run are not
part of that snapshot, so two staging rows sharing a new key are both
imported.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any

from crm_autopilot.io import DUPLICATE_COLOR, IMPORTED_COLOR, TableStore, apply_writes
from crm_autopilot.models import (
    CellWrite,
    ImportOutcome,
    MappingEntry,
    ReconcileResult,
    RowOutcome,
)
from crm_autopilot.schema import Table, cell, column_to_index, is_blank

logger = logging.getLogger(__name__)

_NUMERIC_TEXT_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> float | None:
    text = str(value).strip()
    if not _NUMERIC_TEXT_RE.match(text):
        return None
    return float(text)


def loose_equals(a: Any, b: Any) -> bool:
    """Key comparison as a sheet formula would do it.

    Text is compared exactly, so ``"01001"`` and ``"1001"`` differ. Only when
    one side is a number is the other converted, so ``1001`` matches
    ``"1001"`` and ``" 1001 "``.
    """
    if a is None or b is None:
        return a is b
    if _is_number(a) == _is_number(b):
        return bool(a == b)
    number, other = (a, b) if _is_number(a) else (b, a)
    if isinstance(other, bool):
        return False
    converted = _as_number(other)
    return converted is not None and converted == float(number)


def build_row(record: Sequence[Any], resolved: Sequence[tuple[int, int]]) -> list[Any]:
    """Copy mapped source cells into a fresh row; unmapped positions stay ``None``."""
    if not resolved:
        return []
    row: list[Any] = [None] * (max(dest for dest, _src in resolved) + 1)
    for dest, src in resolved:
        row[dest] = cell(record, src)
    return row


def reconcile(
    staging: Table,
    destination: Table,
    mapping: Sequence[MappingEntry],
    primary_key_dest_col: str,
    primary_key_src_col: str,
    status_col: str,
) -> ReconcileResult:
    key_dest = column_to_index(primary_key_dest_col)
    key_src = column_to_index(primary_key_src_col)
    status_column = column_to_index(status_col) + 1
    resolved = [entry.resolve() for entry in mapping]

    existing_keys = [cell(record, key_dest) for record in destination]
    result = ReconcileResult()

    for sheet_row, record in enumerate(staging[1:], start=2):
        key = cell(record, key_src)
        if is_blank(key):
            result.outcomes.append(RowOutcome(sheet_row, ImportOutcome.SKIPPED))
            continue

        if any(loose_equals(existing, key) for existing in existing_keys):
            logger.debug("Row %d: key %r already present, marked Duplicate", sheet_row, key)
            result.outcomes.append(RowOutcome(sheet_row, ImportOutcome.DUPLICATE, key))
            result.status_writes.append(
                CellWrite(sheet_row, status_column, ImportOutcome.DUPLICATE.value, DUPLICATE_COLOR)
            )
            continue

        result.appended_rows.append(build_row(record, resolved))
        result.outcomes.append(RowOutcome(sheet_row, ImportOutcome.IMPORTED, key))
        result.status_writes.append(
            CellWrite(sheet_row, status_column, ImportOutcome.IMPORTED.value, IMPORTED_COLOR)
        )
        logger.debug("Row %d: key %r imported", sheet_row, key)

    return result


def apply_reconciliation(
    store: TableStore, staging_table: str, destination_table: str, result: ReconcileResult
) -> None:
    """Append rows and write statuses in staging-row order, one write at a time."""
    appended = iter(result.appended_rows)
    statuses = {write.row: write for write in result.status_writes}

    for outcome in result.outcomes:
        if outcome.outcome is ImportOutcome.SKIPPED:
            continue
        if outcome.outcome is ImportOutcome.IMPORTED:
            store.append_row(destination_table, next(appended))
        apply_writes(store, staging_table, [statuses[outcome.row]])
