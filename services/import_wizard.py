"""
Import wizard state machine.

Upload -> Mapping -> Validation -> Importing -> Done, with Validation -> Mapping
and Mapping -> Upload as the only backward steps. Each transition is a pure
function from one WizardSnapshot to the next; snapshots are never mutated.
"""

from typing import Any, Callable, Mapping, Optional, TypeVar, Union
import structlog

from exceptions import (
    ExtractionError,
    ImportRowNotFoundError,
    InvalidWizardTransitionError,
    MappingError,
    ValidationError,
)
from models.import_fields import FieldKey, required_fields
from models.import_report import ImportReport, RowType
from models.import_rows import CellValue, MappedRow, RawRow, TabularData, format_number
from models.wizard import WizardSnapshot, WizardState
from services.column_matcher import match_columns
from services.row_validator import apply_validation
from services.value_normalizer import parse_currency, parse_ratio

logger = structlog.get_logger(__name__)

T = TypeVar("T")
EditValue = Union[CellValue, str, int, float, None]


# Legal moves; anything else is rejected
ALLOWED_TRANSITIONS: dict[WizardState, set[WizardState]] = {
    WizardState.UPLOAD: {WizardState.MAPPING},
    WizardState.MAPPING: {WizardState.VALIDATION, WizardState.UPLOAD},
    WizardState.VALIDATION: {WizardState.IMPORTING, WizardState.MAPPING},
    WizardState.IMPORTING: {WizardState.DONE, WizardState.VALIDATION},
    WizardState.DONE: {WizardState.UPLOAD},
}

# Field key -> MappedRow attribute
FIELD_ATTRIBUTES: dict[FieldKey, str] = {
    FieldKey.SHIPPER_NAME: "shipper_name",
    FieldKey.TEU_QTY: "teu_qty",
    FieldKey.REVENUE_IN_CURRENCY: "revenue_in_currency",
    FieldKey.PROFITABILITY_RATIO: "profitability_ratio",
    FieldKey.NOTES: "notes",
}


def is_valid_wizard_transition(current: WizardState, new: WizardState) -> bool:
    """Check a state change against the transition table."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


# ===================
# SNAPSHOT HELPERS
# ===================

def new_snapshot(
    session_id: str,
    owner_id: str,
    period_key: str,
    row_type: RowType = RowType.ACTUAL,
) -> WizardSnapshot:
    """Fresh session waiting for a file."""
    return WizardSnapshot(
        session_id=session_id,
        owner_id=owner_id,
        period_key=period_key,
        row_type=row_type,
    )


def require_state(snapshot: WizardSnapshot, action: str, *states: WizardState) -> None:
    if snapshot.state not in states:
        raise InvalidWizardTransitionError(snapshot.state.value, action)


def _move(
    snapshot: WizardSnapshot,
    new_state: WizardState,
    action: str,
    **updates: Any,
) -> WizardSnapshot:
    if not is_valid_wizard_transition(snapshot.state, new_state):
        raise InvalidWizardTransitionError(snapshot.state.value, action)

    logger.info(
        "wizard_transition",
        session_id=snapshot.session_id,
        action=action,
        from_state=snapshot.state.value,
        to_state=new_state.value
    )
    return snapshot.model_copy(update={"state": new_state, **updates})


def _find_row(snapshot: WizardSnapshot, row_number: int) -> int:
    for idx, row in enumerate(snapshot.rows):
        if row.original_row_number == row_number:
            return idx
    raise ImportRowNotFoundError(row_number)


# ===================
# ROW BUILDING
# ===================

def _cell(raw: RawRow, header: Optional[str]) -> Optional[CellValue]:
    if not header:
        return None
    return raw.get(header)


def _text(raw: RawRow, header: Optional[str]) -> str:
    cell = _cell(raw, header)
    return cell.as_text().strip() if cell is not None else ""


def build_row(
    raw: RawRow,
    mapping: Mapping[FieldKey, Optional[str]],
    row_number: int,
) -> MappedRow:
    """
    Turn one raw row into a validated working row.

    Currency and ratio cells are normalized here, exactly once.
    """
    revenue_cell = _cell(raw, mapping.get(FieldKey.REVENUE_IN_CURRENCY))
    ratio_cell = _cell(raw, mapping.get(FieldKey.PROFITABILITY_RATIO))

    row = MappedRow(
        shipper_name=_text(raw, mapping.get(FieldKey.SHIPPER_NAME)),
        teu_qty=_text(raw, mapping.get(FieldKey.TEU_QTY)),
        revenue_in_currency=parse_currency(revenue_cell) if revenue_cell is not None else 0.0,
        profitability_ratio=parse_ratio(ratio_cell) if ratio_cell is not None else 0.0,
        notes=_text(raw, mapping.get(FieldKey.NOTES)) or None,
        original_row_number=row_number,
    )
    return apply_validation(row)


def edit_row(row: MappedRow, field: FieldKey, value: EditValue) -> MappedRow:
    """
    Apply one cell edit to a row.

    Revenue and profitability are re-derived through the normalizer; other
    fields take the value as typed. Validation is not run here.
    """
    if field == FieldKey.REVENUE_IN_CURRENCY:
        new_value: Any = parse_currency(value)
    elif field == FieldKey.PROFITABILITY_RATIO:
        new_value = parse_ratio(value)
    else:
        if isinstance(value, CellValue):
            text = value.as_text()
        elif isinstance(value, float):
            text = format_number(value)
        elif value is None:
            text = ""
        else:
            text = str(value)
        new_value = (text or None) if field == FieldKey.NOTES else text

    return row.model_copy(update={FIELD_ATTRIBUTES[field]: new_value})


# ===================
# TRANSITIONS
# ===================

def load_table(
    snapshot: WizardSnapshot,
    table: TabularData,
    file_name: Optional[str] = None,
) -> WizardSnapshot:
    """
    Upload -> Mapping.

    Seeds the column mapping from the headers.

    Raises:
        ExtractionError: If the file has no data rows (state stays Upload)
    """
    require_state(snapshot, "upload a file", WizardState.UPLOAD)

    if table.row_count == 0:
        logger.warning("upload_has_no_rows", session_id=snapshot.session_id, file_name=file_name)
        raise ExtractionError(
            message="No data found in the spreadsheet",
            details={"file_name": file_name}
        )

    return _move(
        snapshot,
        WizardState.MAPPING,
        "upload a file",
        file_name=file_name,
        headers=list(table.headers),
        raw_rows=list(table.rows),
        mapping=match_columns(table.headers),
        rows=[],
        report=None,
        error=None,
    )


def assign_column(
    snapshot: WizardSnapshot,
    field: FieldKey,
    header: Optional[str],
) -> WizardSnapshot:
    """Bind a field to a header, or unbind it with None. Mapping only."""
    require_state(snapshot, "change the column mapping", WizardState.MAPPING)

    if header is not None and header not in snapshot.headers:
        raise ValidationError(
            message=f"Column '{header}' is not in the uploaded file",
            code="UNKNOWN_COLUMN",
            details={"column": header, "available": snapshot.headers}
        )

    mapping = dict(snapshot.mapping)
    mapping[field] = header or None
    return snapshot.model_copy(update={"mapping": mapping, "error": None})


def assign_columns(
    snapshot: WizardSnapshot,
    overrides: Mapping[FieldKey, Optional[str]],
) -> WizardSnapshot:
    """Apply several overrides; all or nothing."""
    result = snapshot
    for field, header in overrides.items():
        result = assign_column(result, field, header)
    return result


def apply_mapping(snapshot: WizardSnapshot) -> WizardSnapshot:
    """
    Mapping -> Validation.

    Builds the working set from every raw row.

    Raises:
        MappingError: If a required field is unbound (nothing is applied)
    """
    require_state(snapshot, "apply the mapping", WizardState.MAPPING)

    missing = [f.display_label for f in required_fields() if not snapshot.mapping.get(f.key)]
    if missing:
        logger.info("mapping_incomplete", session_id=snapshot.session_id, missing=missing)
        raise MappingError(missing)

    rows = [
        build_row(raw, snapshot.mapping, idx + 1)
        for idx, raw in enumerate(snapshot.raw_rows)
    ]

    result = _move(snapshot, WizardState.VALIDATION, "apply the mapping", rows=rows, error=None)

    logger.info(
        "mapping_applied",
        session_id=snapshot.session_id,
        rows=len(rows),
        valid=result.valid_count,
        invalid=result.invalid_count
    )
    return result


def edit_cell(
    snapshot: WizardSnapshot,
    row_number: int,
    field: FieldKey,
    value: EditValue,
) -> WizardSnapshot:
    """Edit one cell and re-validate that row only. Validation only."""
    require_state(snapshot, "edit a row", WizardState.VALIDATION)

    idx = _find_row(snapshot, row_number)
    rows = list(snapshot.rows)
    rows[idx] = apply_validation(edit_row(rows[idx], field, value))
    return snapshot.model_copy(update={"rows": rows, "error": None})


def remove_row(snapshot: WizardSnapshot, row_number: int) -> WizardSnapshot:
    """Drop a row from the working set; other rows keep their numbers."""
    require_state(snapshot, "remove a row", WizardState.VALIDATION)

    _find_row(snapshot, row_number)
    rows = [r for r in snapshot.rows if r.original_row_number != row_number]
    return snapshot.model_copy(update={"rows": rows, "error": None})


def begin_commit(snapshot: WizardSnapshot) -> WizardSnapshot:
    """
    Validation -> Importing.

    Raises:
        InvalidWizardTransitionError: If not in Validation or no row is valid
    """
    require_state(snapshot, "import", WizardState.VALIDATION)

    if snapshot.valid_count == 0:
        raise InvalidWizardTransitionError(
            snapshot.state.value,
            "import",
            reason="No valid rows to import"
        )

    return _move(snapshot, WizardState.IMPORTING, "import", error=None)


def complete_commit(snapshot: WizardSnapshot, report: ImportReport) -> WizardSnapshot:
    """Importing -> Done."""
    require_state(snapshot, "finish the import", WizardState.IMPORTING)
    return _move(snapshot, WizardState.DONE, "finish the import", report=report)


def fail_commit(snapshot: WizardSnapshot, reason: str) -> WizardSnapshot:
    """Importing -> Validation, keeping the working set and the failure reason."""
    require_state(snapshot, "fail the import", WizardState.IMPORTING)
    return _move(snapshot, WizardState.VALIDATION, "fail the import", error=reason)


def go_back(snapshot: WizardSnapshot) -> WizardSnapshot:
    """
    Step back one stage, discarding what that stage derived.

    Validation -> Mapping drops the working set.
    Mapping -> Upload drops the file, headers and mapping.
    """
    if snapshot.state == WizardState.VALIDATION:
        return _move(snapshot, WizardState.MAPPING, "go back", rows=[], error=None)
    if snapshot.state == WizardState.MAPPING:
        return _move(
            snapshot,
            WizardState.UPLOAD,
            "go back",
            file_name=None,
            headers=[],
            raw_rows=[],
            mapping={},
            rows=[],
            error=None,
        )
    raise InvalidWizardTransitionError(snapshot.state.value, "go back")


def reset(snapshot: WizardSnapshot) -> WizardSnapshot:
    """Done -> Upload: start over with the same period and row type."""
    require_state(snapshot, "start a new import", WizardState.DONE)
    fresh = new_snapshot(
        snapshot.session_id,
        snapshot.owner_id,
        snapshot.period_key,
        snapshot.row_type,
    )
    return _move(snapshot, WizardState.UPLOAD, "start a new import", **{
        name: getattr(fresh, name)
        for name in ("file_name", "headers", "raw_rows", "mapping", "rows", "report", "error")
    })


def hand_off(snapshot: WizardSnapshot, continuation: Callable[[ImportReport], T]) -> T:
    """Pass the finished report to a caller-supplied continuation. Done only."""
    require_state(snapshot, "continue", WizardState.DONE)
    return continuation(snapshot.report)
