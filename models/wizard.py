"""
Import wizard snapshot and request schemas.

A snapshot is an immutable value; every wizard transition returns a new one.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import ConfigDict, Field, computed_field

from models.base import CamelSchema
from models.import_fields import FieldKey
from models.import_report import ImportReport, RowType
from models.import_rows import CellValue, MappedRow


class WizardState(str, Enum):
    """Wizard stages."""
    UPLOAD = "upload"
    MAPPING = "mapping"
    VALIDATION = "validation"
    IMPORTING = "importing"
    DONE = "done"


class WizardSnapshot(CamelSchema):
    """Complete state of one import session at a point in time."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    owner_id: str
    period_key: str
    row_type: RowType = RowType.ACTUAL
    state: WizardState = WizardState.UPLOAD

    file_name: Optional[str] = None
    headers: list[str] = Field(default_factory=list)
    raw_rows: list[dict[str, CellValue]] = Field(default_factory=list, exclude=True)
    mapping: dict[FieldKey, Optional[str]] = Field(default_factory=dict)
    rows: list[MappedRow] = Field(default_factory=list)

    report: Optional[ImportReport] = None
    error: Optional[str] = None

    @computed_field
    @property
    def raw_row_count(self) -> int:
        return len(self.raw_rows)

    @computed_field
    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.rows if not r.has_error)

    @computed_field
    @property
    def invalid_count(self) -> int:
        return sum(1 for r in self.rows if r.has_error)


# ===================
# REQUESTS
# ===================

class StartSessionRequest(CamelSchema):
    """Open a new import session for a period and row type."""

    period_key: str = Field(..., min_length=1)
    row_type: RowType = RowType.ACTUAL


class ColumnMappingUpdate(CamelSchema):
    """Override column bindings; None unmaps a field."""

    mapping: dict[FieldKey, Optional[str]]


class CellEditRequest(CamelSchema):
    """Edit one cell of a working row."""

    field: FieldKey
    value: Union[float, str, None] = None


class ImportDoneResponse(CamelSchema):
    """Hand-off payload once an import is done."""

    report: ImportReport
    redirect_to: str
