"""I/O helpers — the workbook-backed table store and JSON artifacts."""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any, Protocol

import pandas as pd
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from crm_autopilot import (
    CANCELLATION_TRACK,
    LEAD_STAGE,
    LOGS,
    SETUP,
    WORKING_LEADS,
)
from crm_autopilot.errors import StructuralError
from crm_autopilot.models import CellWrite

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

NOTIFIED_COLOR = "#00FF00"
IMPORTED_COLOR = "#C6EFCE"
DUPLICATE_COLOR = "#FFC7CE"

# openpyxl stores any string starting with "=" as a formula.
_EXCEL_FORMULA_PREFIXES = ("=",)


# ── Table adapter ────────────────────────────────────────────────


class TableStore(Protocol):
    """Narrow interface the engines use to reach the host's tables.

    Rows and columns are 1-based, as in the sheet.
    """

    def has_table(self, table: str) -> bool: ...

    def get_all_rows(self, table: str) -> list[list[Any]]: ...

    def set_cell(self, table: str, row: int, column: int, value: Any) -> None: ...

    def set_cell_background(self, table: str, row: int, column: int, color: str) -> None: ...

    def append_row(self, table: str, record: Sequence[Any]) -> None: ...

    def clear_rows(self, table: str, start_row: int) -> int: ...

    def save(self) -> None: ...


def _excel_value(val: Any) -> Any:
    if val is None:
        return None
    if val is pd.NaT:
        return None

    if isinstance(val, pd.Timestamp):
        dt = val.to_pydatetime()
        return dt.replace(tzinfo=None) if dt.tzinfo else dt

    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)

    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


def _solid_fill(color: str) -> PatternFill:
    hex_color = color.lstrip("#").upper()
    return PatternFill(start_color=hex_color, end_color=hex_color, fill_type="solid")


class WorkbookStore:
    """:class:`TableStore` over an ``openpyxl`` workbook, one sheet per table.

    Writes land in the in-memory workbook immediately; :meth:`save` persists
    them to ``path`` (no-op for purely in-memory stores).
    """

    def __init__(self, workbook: Workbook, path: Path | None = None) -> None:
        self.workbook = workbook
        self.path = Path(path) if path is not None else None

    @classmethod
    def open(cls, path: Path) -> WorkbookStore:
        """Load an ``.xlsx`` workbook.

        Raises
        ------
        FileNotFoundError
            If *path* does not exist.
        ValueError
            If the extension is not a supported Excel workbook.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Workbook not found: {path}")
        suffix = path.suffix.lower()
        if suffix not in (".xlsx", ".xlsm", ".xltx", ".xltm"):
            raise ValueError(f"Unsupported file type: {suffix!r}. Use .xlsx")
        return cls(load_workbook(path), path)

    @classmethod
    def from_tables(
        cls, tables: dict[str, Sequence[Sequence[Any]]], path: Path | None = None
    ) -> WorkbookStore:
        """Build an in-memory workbook with one sheet per entry of *tables*."""
        wb = Workbook()
        active_sheet = wb.active
        if active_sheet is not None:
            wb.remove(active_sheet)
        for name, rows in tables.items():
            ws = wb.create_sheet(title=name)
            for record in rows:
                ws.append([_excel_value(v) for v in record])
        return cls(wb, path)

    # ── TableStore ───────────────────────────────────────────────

    def _sheet(self, table: str) -> Worksheet:
        if table not in self.workbook.sheetnames:
            raise StructuralError(f"Sheet not found: {table}")
        return self.workbook[table]

    def has_table(self, table: str) -> bool:
        return table in self.workbook.sheetnames

    def get_all_rows(self, table: str) -> list[list[Any]]:
        ws = self._sheet(table)
        return [list(values) for values in ws.iter_rows(values_only=True)]

    def set_cell(self, table: str, row: int, column: int, value: Any) -> None:
        self._sheet(table).cell(row=row, column=column, value=_excel_value(value))

    def set_cell_background(self, table: str, row: int, column: int, color: str) -> None:
        self._sheet(table).cell(row=row, column=column).fill = _solid_fill(color)

    def append_row(self, table: str, record: Sequence[Any]) -> None:
        self._sheet(table).append([_excel_value(v) for v in record])

    def clear_rows(self, table: str, start_row: int) -> int:
        """Delete every row from *start_row* down; return how many went."""
        ws = self._sheet(table)
        count = ws.max_row - start_row + 1
        if count <= 0:
            return 0
        ws.delete_rows(start_row, count)
        return count

    def save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.stem}.tmp{self.path.suffix}")
        self.workbook.save(tmp_path)
        tmp_path.replace(self.path)


def apply_writes(store: TableStore, table: str, writes: Sequence[CellWrite]) -> int:
    """Apply *writes* one by one (value, then fill). No rollback on failure."""
    for write in writes:
        store.set_cell(table, write.row, write.column, write.value)
        if write.background:
            store.set_cell_background(table, write.row, write.column, write.background)
    return len(writes)


# ── Template workbook ────────────────────────────────────────────

TEMPLATE_TABLES: dict[str, list[list[Any]]] = {
    CANCELLATION_TRACK: [
        ["First Name", "Last Name", "Contact Number", "Notes",
         "Renewal Date", "Follow Up Date", "Notified"],
    ],
    WORKING_LEADS: [
        ["First Name", "Last Name", "Lead ID", "Phone", "Email",
         "Term", "Status", "Follow Up Month", "Last Edited"],
    ],
    LEAD_STAGE: [
        ["Lead ID", "First Name", "Last Name", "Phone", "Email", "Import Status"],
    ],
    SETUP: [
        ["Attribute", "Value", "Destination Column", "Source Column"],
        ["LogLevel", "Minimal", None, None],
        ["RenewalEmails", "admin@example.com", "C", "A"],
        ["MonthlyLeadsEmails", "admin@example.com", "A", "B"],
        ["LeadImportStatusColumn", "F", "B", "C"],
        [None, None, "C", "A"],
        [None, None, "D", "D"],
        [None, None, "E", "E"],
    ],
    LOGS: [["Timestamp", "Message"]],
}


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        header = ws.cell(row=1, column=c)
        header.font = HEADER_FONT
        header.fill = HEADER_FILL
        header.alignment = HEADER_ALIGN


def create_template(path: Path) -> Path:
    """Write an empty CRM workbook with every expected sheet and header."""
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"Refusing to overwrite existing workbook: {path}")
    store = WorkbookStore.from_tables(TEMPLATE_TABLES, path)
    for ws in store.workbook.worksheets:
        _style_header(ws, ws.max_column)
        ws.freeze_panes = "A2"
    store.save()
    return path


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
