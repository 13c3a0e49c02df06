"""Column references, logical-field schemas and the bounded-table view."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from crm_autopilot.errors import ColumnReferenceError

Record = Sequence[Any]
Table = Sequence[Record]


# ── Column letters ───────────────────────────────────────────────


def column_to_index(ref: str) -> int:
    """Resolve a single-letter column reference to a zero-based index.

    Only ``A``-``Z`` (any case) are accepted, so tables are capped at 26 columns.
    """
    if not isinstance(ref, str):
        raise ColumnReferenceError(f"Column reference must be a letter, got {ref!r}")
    letter = ref.strip().upper()
    if len(letter) != 1 or not ("A" <= letter <= "Z"):
        raise ColumnReferenceError(f"Invalid column reference: {ref!r} (expected A-Z)")
    return ord(letter) - ord("A")


def index_to_column(index: int) -> str:
    if not 0 <= index < 26:
        raise ColumnReferenceError(f"Column index out of range: {index}")
    return chr(ord("A") + index)


# ── Cells ────────────────────────────────────────────────────────


def is_blank(value: Any) -> bool:
    """True for ``None`` and values whose string form is empty once stripped."""
    return value is None or str(value).strip() == ""


def cell(record: Record, index: int) -> Any:
    """Return ``record[index]`` or ``None`` when the record is shorter."""
    if 0 <= index < len(record):
        return record[index]
    return None


# ── Schemas ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class TableSchema:
    """Logical field name → zero-based column index, validated once."""

    name: str
    columns: Mapping[str, str]
    indices: dict[str, int] = field(init=False)

    def __post_init__(self) -> None:
        indices: dict[str, int] = {}
        for field_name, ref in self.columns.items():
            index = column_to_index(ref)
            if index in indices.values():
                raise ColumnReferenceError(
                    f"{self.name}: column {ref!r} assigned to more than one field"
                )
            indices[field_name] = index
        object.__setattr__(self, "indices", indices)

    def index(self, field_name: str) -> int:
        try:
            return self.indices[field_name]
        except KeyError:
            raise KeyError(f"{self.name} has no field {field_name!r}") from None

    def column(self, field_name: str) -> int:
        """1-based sheet column for *field_name*."""
        return self.index(field_name) + 1

    def get(self, record: Record, field_name: str) -> Any:
        return cell(record, self.index(field_name))


TRACKED_LEAD_SCHEMA = TableSchema(
    name="CancellationTrack",
    columns={
        "first_name": "A",
        "last_name": "B",
        "contact_number": "C",
        "renewal_date": "E",
        "follow_up_date": "F",
        "notified_flag": "G",
    },
)


# ── Bounded view ─────────────────────────────────────────────────


@dataclass(frozen=True)
class BoundedTable:
    """Data rows of *rows* up to (not including) the first blank first cell.

    ``length`` is computed once; rows past the sentinel are never exposed.
    """

    rows: Table
    length: int

    @classmethod
    def of(cls, rows: Table) -> BoundedTable:
        length = 0
        for record in rows[1:]:
            if is_blank(cell(record, 0)):
                break
            length += 1
        return cls(rows=rows, length=length)

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[tuple[int, Record]]:
        """Yield ``(sheet_row, record)`` pairs; the header is sheet row 1."""
        for offset in range(1, self.length + 1):
            yield offset + 1, self.rows[offset]
