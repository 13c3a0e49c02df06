"""Settings resolved once per invocation from the SetUp table.

Layout of the SetUp sheet:

- columns A/B hold ``attribute``/``value`` pairs (``LogLevel``,
  ``RenewalEmails``, ``MonthlyLeadsEmails``, ``LeadImportStatusColumn``);
- columns C/D hold the lead-import mapping: sheet row 3 is the primary-key
  ``destination``/``source`` pair, rows 4+ are ``destination``/``source``
  mapping entries. Row 2 of C/D is a label row and is ignored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from crm_autopilot import SETUP
from crm_autopilot.errors import ColumnReferenceError, SetupLookupError
from crm_autopilot.io import TableStore
from crm_autopilot.models import MappingEntry
from crm_autopilot.schema import Table, cell, column_to_index, is_blank

logger = logging.getLogger(__name__)

DEFAULT_LOG_LEVEL = "Minimal"
LOG_LEVELS = ("Minimal", "Detailed")

RENEWAL_EMAILS = "RenewalEmails"
MONTHLY_LEADS_EMAILS = "MonthlyLeadsEmails"
LEAD_IMPORT_STATUS_COLUMN = "LeadImportStatusColumn"
LOG_LEVEL = "LogLevel"

# Sheet row 3 is the first row of the C/D block that carries data.
_IMPORT_BLOCK_FIRST_ROW = 3
_RECIPIENT_SPLIT_RE = re.compile(r"[,;]")


@dataclass(frozen=True)
class ImportSettings:
    primary_key_destination: str
    primary_key_source: str
    status_column: str
    mapping: tuple[MappingEntry, ...]


@dataclass(frozen=True)
class Settings:
    attributes: dict[str, Any] = field(default_factory=dict)
    import_block: tuple[tuple[Any, Any], ...] = ()

    @classmethod
    def from_rows(cls, rows: Table) -> Settings:
        attributes: dict[str, Any] = {}
        for record in rows:
            name = cell(record, 0)
            if isinstance(name, str) and name.strip() and name.strip() not in attributes:
                attributes[name.strip()] = cell(record, 1)
        block = tuple(
            (cell(record, 2), cell(record, 3))
            for record in rows[_IMPORT_BLOCK_FIRST_ROW - 1:]
        )
        return cls(attributes=attributes, import_block=block)

    # ── Attribute lookups ────────────────────────────────────────

    def get(self, attribute: str, default: Any = None) -> Any:
        value = self.attributes.get(attribute)
        return default if is_blank(value) else value

    def require(self, attribute: str) -> Any:
        value = self.attributes.get(attribute)
        if is_blank(value):
            raise SetupLookupError(f"No setup value found for attribute: {attribute}")
        return value

    @property
    def log_level(self) -> str:
        raw = str(self.get(LOG_LEVEL, DEFAULT_LOG_LEVEL)).strip()
        for level in LOG_LEVELS:
            if raw.lower() == level.lower():
                return level
        logger.warning("Unknown LogLevel %r, using %s", raw, DEFAULT_LOG_LEVEL)
        return DEFAULT_LOG_LEVEL

    def recipients(self, attribute: str) -> list[str]:
        """Return the addresses listed under *attribute* (comma/semicolon separated)."""
        raw = self.attributes.get(attribute)
        addresses = [
            part.strip()
            for part in _RECIPIENT_SPLIT_RE.split("" if raw is None else str(raw))
            if part.strip()
        ]
        if not addresses:
            raise SetupLookupError(f"No email found for attribute: {attribute}")
        return addresses

    # ── Import mapping ───────────────────────────────────────────

    def import_settings(self) -> ImportSettings:
        """Resolve and validate the lead-import parameters.

        Raises
        ------
        SetupLookupError
            If the status column or the primary-key pair is missing.
        ColumnReferenceError
            If any reference is not a single letter, or a mapping row is half-filled.
        """
        status_column = str(self.require(LEAD_IMPORT_STATUS_COLUMN)).strip()
        column_to_index(status_column)

        if not self.import_block or any(is_blank(v) for v in self.import_block[0]):
            raise SetupLookupError(
                f"No primary key columns found in {SETUP}!C{_IMPORT_BLOCK_FIRST_ROW}:"
                f"D{_IMPORT_BLOCK_FIRST_ROW}"
            )
        pk_dest, pk_src = (str(v).strip() for v in self.import_block[0])
        column_to_index(pk_dest)
        column_to_index(pk_src)

        mapping: list[MappingEntry] = []
        for offset, (dest, src) in enumerate(self.import_block[1:], start=1):
            if is_blank(dest) and is_blank(src):
                continue
            sheet_row = _IMPORT_BLOCK_FIRST_ROW + offset
            if is_blank(dest) or is_blank(src):
                raise ColumnReferenceError(
                    f"{SETUP} row {sheet_row}: mapping needs both destination and source"
                )
            entry = MappingEntry(destination=str(dest).strip(), source=str(src).strip())
            entry.resolve()
            mapping.append(entry)

        return ImportSettings(
            primary_key_destination=pk_dest,
            primary_key_source=pk_src,
            status_column=status_column,
            mapping=tuple(mapping),
        )


def load_settings(store: TableStore) -> Settings:
    """Read the SetUp table once and return the resolved :class:`Settings`."""
    return Settings.from_rows(store.get_all_rows(SETUP))
