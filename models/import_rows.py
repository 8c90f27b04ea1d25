"""
Row and cell schemas for the import pipeline.

CellValue is the tagged variant produced at the extraction boundary. Only the
value normalizer resolves it into canonical numbers; everything else treats
it as opaque.
"""

import math
import numbers
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.base import CamelSchema


class CellKind(str, Enum):
    """Kinds of spreadsheet cell values."""
    NUMBER = "number"
    STRING = "string"


class CellValue(BaseModel):
    """A spreadsheet cell: either a number or a string."""
    model_config = ConfigDict(frozen=True)

    kind: CellKind
    value: Union[float, str]

    @classmethod
    def number(cls, value: float) -> "CellValue":
        return cls(kind=CellKind.NUMBER, value=float(value))

    @classmethod
    def string(cls, value: str) -> "CellValue":
        return cls(kind=CellKind.STRING, value=str(value))

    @classmethod
    def from_raw(cls, raw: Any) -> "CellValue":
        """
        Wrap a value as read by the spreadsheet engine.

        Empty and NaN cells become empty strings, dates become ISO strings,
        booleans are kept as their text.
        """
        if raw is None:
            return cls.string("")
        if isinstance(raw, bool):
            return cls.string(str(raw))
        if isinstance(raw, numbers.Real):
            as_float = float(raw)
            if math.isnan(as_float) or math.isinf(as_float):
                return cls.string("")
            return cls.number(as_float)
        if isinstance(raw, (datetime, date, time)):
            return cls.string(raw.isoformat())
        return cls.string(str(raw))

    @property
    def is_number(self) -> bool:
        return self.kind == CellKind.NUMBER

    def as_text(self) -> str:
        """Text form of the cell, with whole numbers rendered without '.0'."""
        if self.kind == CellKind.NUMBER:
            return format_number(float(self.value))
        return str(self.value)


def format_number(value: float) -> str:
    """Render 12.0 as '12' and 12.5 as '12.5'."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


RawRow = dict[str, CellValue]


class TabularData(BaseModel):
    """Headers and row records extracted from an uploaded file."""
    model_config = ConfigDict(frozen=True)

    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, CellValue]] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)


class MappedRow(CamelSchema):
    """
    One working row of an import.

    Built from a raw row and a column mapping, edited through the wizard, and
    sent to the batch importer. Immutable: edits produce a new row.
    """
    model_config = ConfigDict(frozen=True)

    shipper_name: str = Field("", description="Shipper / client name")
    teu_qty: str = Field("", description="TEU or quantity, kept as text")
    revenue_in_currency: float = Field(0.0, allow_inf_nan=False, description="Revenue in major units (rupees)")
    profitability_ratio: float = Field(0.0, allow_inf_nan=False, description="Profitability as a ratio (0.16 = 16%)")
    notes: Optional[str] = Field(None, description="Free-text remarks")
    period_label: Optional[str] = Field(None, description="Period label for this row, defaults to the group period")
    has_error: bool = Field(False, description="Row failed validation")
    error_reasons: list[str] = Field(default_factory=list, description="Validation failures in rule order")
    original_row_number: Optional[int] = Field(None, ge=1, description="1-based position in the uploaded file")

    @field_validator("shipper_name", "teu_qty", mode="before")
    @classmethod
    def coerce_text(cls, v):
        """Accept numbers and nulls for text columns."""
        if v is None:
            return ""
        if isinstance(v, bool):
            return str(v)
        if isinstance(v, (int, float)):
            return format_number(float(v))
        return v

    @field_validator("notes", "period_label", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def error_message(self) -> str:
        """Reasons joined for display and skip reports."""
        return "; ".join(self.error_reasons)
