"""Data models used across the package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from numbers import Integral
from typing import Any

from crm_autopilot.schema import column_to_index


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_sheet_position(value: Any, field_name: str) -> int:
    result = _to_non_negative_int(value, field_name)
    if result < 1:
        raise ValueError(f"{field_name} must be >= 1 (sheet positions are 1-based)")
    return result


# ── Cell writes ──────────────────────────────────────────────────


@dataclass(frozen=True)
class CellWrite:
    """A single pending write: 1-based ``row``/``column`` plus optional fill."""

    row: int
    column: int
    value: Any
    background: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "row", _to_sheet_position(self.row, "row"))
        object.__setattr__(self, "column", _to_sheet_position(self.column, "column"))


# ── Eligibility ──────────────────────────────────────────────────


@dataclass(frozen=True)
class TrackedLead:
    """One CancellationTrack row that is due for follow-up."""

    row: int
    first_name: Any
    last_name: Any
    contact_number: Any
    renewal_date: datetime | None
    follow_up_date: datetime | None = None


@dataclass
class ScanResult:
    due_leads: list[TrackedLead] = field(default_factory=list)
    mutations: list[CellWrite] = field(default_factory=list)


@dataclass
class RecalcResult:
    """Recalculated follow-up dates.

    Contract invariant: ``updated_count == len(writes)``.
    """

    updated_count: int = 0
    writes: list[CellWrite] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.updated_count = _to_non_negative_int(self.updated_count, "updated_count")
        if self.updated_count != len(self.writes):
            raise ValueError("updated_count must equal the number of writes")


# ── Import ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class MappingEntry:
    """Copy staging column ``source`` into destination column ``destination``."""

    destination: str
    source: str

    def resolve(self) -> tuple[int, int]:
        return column_to_index(self.destination), column_to_index(self.source)


class ImportOutcome(str, Enum):
    IMPORTED = "Imported"
    DUPLICATE = "Duplicate"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class RowOutcome:
    row: int
    outcome: ImportOutcome
    key: Any = None


@dataclass
class ReconcileResult:
    outcomes: list[RowOutcome] = field(default_factory=list)
    appended_rows: list[list[Any]] = field(default_factory=list)
    status_writes: list[CellWrite] = field(default_factory=list)

    def _count(self, outcome: ImportOutcome) -> int:
        return sum(1 for item in self.outcomes if item.outcome is outcome)

    @property
    def imported(self) -> int:
        return self._count(ImportOutcome.IMPORTED)

    @property
    def duplicates(self) -> int:
        return self._count(ImportOutcome.DUPLICATE)

    @property
    def skipped(self) -> int:
        return self._count(ImportOutcome.SKIPPED)


# ── Run report ───────────────────────────────────────────────────


@dataclass
class RunReport:
    """Audit-trail record for a single action run."""

    action: str
    status: str = "success"
    message: str = ""
    counts: dict[str, int] = field(default_factory=dict)
    created_at_utc: str = ""
    tool: str = "crm-autopilot"
    version: str = ""

    def __post_init__(self) -> None:
        if self.status not in {"success", "failed", "skipped"}:
            raise ValueError(f"status must be success/failed/skipped, got {self.status!r}")
        self.counts = {
            key: _to_non_negative_int(value, f"counts[{key!r}]")
            for key, value in self.counts.items()
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "action": self.action,
            "status": self.status,
            "message": self.message,
            "counts": dict(self.counts),
            "created_at_utc": self.created_at_utc,
        }
