"""
Import group, commit request and import report schemas.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from models.base import BaseSchema, CamelSchema
from models.import_rows import MappedRow


class RowType(str, Enum):
    """Kind of data an import group holds."""
    ACTUAL = "actual"
    PROJECTION = "projection"
    PIPELINE = "pipeline"


class ImportGroupKey(BaseSchema):
    """Identity of an import group: one group per (owner, period, row type)."""
    model_config = ConfigDict(frozen=True)

    owner_id: str = Field(..., min_length=1)
    period_key: str = Field(..., min_length=1, description="e.g. Q1-FY2025-2026")
    row_type: RowType = RowType.ACTUAL

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.owner_id, self.period_key, self.row_type.value)


class ImportGroupResponse(BaseSchema):
    """Import group as stored."""

    id: str
    owner_id: str
    period_key: str
    row_type: RowType
    next_sequence_number: int = 1
    created_at: Optional[datetime] = None


class SkippedRow(CamelSchema):
    """A row the importer did not persist, with the reason."""

    row: int = Field(..., ge=1, description="1-based row number")
    reason: str


class ImportReport(CamelSchema):
    """Outcome of one batch import."""

    group_id: Optional[str] = None
    imported_count: int = 0
    skipped_count: int = 0
    skipped_details: list[SkippedRow] = Field(default_factory=list)
    imported_shippers: list[str] = Field(default_factory=list)
    sequence_numbers: list[int] = Field(default_factory=list)
    total: int = 0


class ImportCommitRequest(CamelSchema):
    """Body of POST /api/sales/import."""

    rows: list[MappedRow] = Field(..., min_length=1, description="Working set, valid and invalid rows")
    period_key: str = Field(..., min_length=1)
    row_type: RowType = RowType.ACTUAL


class ImportCommitResponse(CamelSchema):
    """Response of POST /api/sales/import."""

    message: str = "Import complete"
    imported: int
    skipped: int
    skipped_details: list[SkippedRow] = Field(default_factory=list)
    total: int

    @classmethod
    def from_report(cls, report: ImportReport) -> "ImportCommitResponse":
        return cls(
            imported=report.imported_count,
            skipped=report.skipped_count,
            skipped_details=report.skipped_details,
            total=report.total,
        )
