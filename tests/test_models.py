from __future__ import annotations

import pytest

from crm_autopilot.errors import ColumnReferenceError
from crm_autopilot.models import (
    CellWrite,
    ImportOutcome,
    MappingEntry,
    RecalcResult,
    ReconcileResult,
    RowOutcome,
    RunReport,
)


def test_cell_write_rejects_non_positive_positions() -> None:
    with pytest.raises(ValueError, match="row"):
        CellWrite(row=0, column=1, value="x")

    with pytest.raises(ValueError, match="column"):
        CellWrite(row=1, column=0, value="x")

    with pytest.raises(ValueError, match="row"):
        CellWrite(row=-3, column=1, value="x")


def test_cell_write_rejects_non_integer_positions() -> None:
    with pytest.raises(TypeError, match="row"):
        CellWrite(row=True, column=1, value="x")

    with pytest.raises(TypeError, match="column"):
        CellWrite(row=1, column=2.0, value="x")  # type: ignore[arg-type]


def test_recalc_result_count_must_match_writes() -> None:
    writes = [CellWrite(2, 6, None), CellWrite(3, 6, None)]

    assert RecalcResult(updated_count=2, writes=writes).updated_count == 2

    with pytest.raises(ValueError, match="updated_count"):
        RecalcResult(updated_count=1, writes=writes)

    with pytest.raises(ValueError, match="updated_count"):
        RecalcResult(updated_count=-1)


def test_mapping_entry_resolves_to_zero_based_indices() -> None:
    assert MappingEntry(destination="c", source="A").resolve() == (2, 0)

    with pytest.raises(ColumnReferenceError):
        MappingEntry(destination="AB", source="A").resolve()


def test_reconcile_result_counts_outcomes() -> None:
    result = ReconcileResult(
        outcomes=[
            RowOutcome(2, ImportOutcome.IMPORTED, "1"),
            RowOutcome(3, ImportOutcome.DUPLICATE, "2"),
            RowOutcome(4, ImportOutcome.SKIPPED),
            RowOutcome(5, ImportOutcome.IMPORTED, "3"),
        ]
    )

    assert (result.imported, result.duplicates, result.skipped) == (2, 1, 1)
    assert ImportOutcome.DUPLICATE.value == "Duplicate"


def test_run_report_rejects_unknown_status() -> None:
    with pytest.raises(ValueError, match="status"):
        RunReport(action="x", status="done")


def test_run_report_rejects_negative_counts() -> None:
    with pytest.raises(ValueError, match="imported"):
        RunReport(action="x", counts={"imported": -1})

    with pytest.raises(TypeError, match="due"):
        RunReport(action="x", counts={"due": "3"})  # type: ignore[dict-item]


def test_run_report_to_dict_returns_counts_copy() -> None:
    report = RunReport(
        action="importLeadsFromStaging",
        counts={"imported": 2},
        created_at_utc="2024-01-01T00:00:00+00:00",
        version="0.2.0",
    )

    payload = report.to_dict()
    payload["counts"]["imported"] = 99

    assert report.counts == {"imported": 2}
    assert payload["tool"] == "crm-autopilot"
    assert payload["status"] == "success"
    assert payload["action"] == "importLeadsFromStaging"
