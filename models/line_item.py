"""
Line item schemas.

A line item is one committed sales row of an import group. Money is stored
as integer minor units (paise); requests carry major-unit values.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from models.base import CamelSchema
from models.import_report import RowType
from models.import_rows import format_number


class LineItemCreate(CamelSchema):
    """Schema for adding a single entry by hand."""

    period_key: str = Field(..., min_length=1, description="Group period, e.g. Q1-FY2025-2026")
    row_type: RowType = RowType.ACTUAL
    shipper_name: str = Field(..., min_length=1)
    period_label: str = Field(..., min_length=1)
    teu_qty: str = ""
    revenue_in_currency: float = Field(..., allow_inf_nan=False, description="Revenue in rupees")
    profitability_ratio: float = Field(0.0, allow_inf_nan=False, description="0.16 = 16%")
    notes: Optional[str] = None

    @field_validator("teu_qty", mode="before")
    @classmethod
    def coerce_teu(cls, v):
        """Accept numeric TEU values."""
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return format_number(float(v))
        return v


class LineItemUpdate(CamelSchema):
    """Schema for editing an entry. Unset fields keep their stored value."""

    shipper_name: Optional[str] = Field(None, min_length=1)
    teu_qty: Optional[str] = None
    revenue_in_currency: Optional[float] = Field(None, allow_inf_nan=False)
    profitability_ratio: Optional[float] = Field(None, allow_inf_nan=False)
    notes: Optional[str] = None

    @field_validator("teu_qty", mode="before")
    @classmethod
    def coerce_teu(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return format_number(float(v))
        return v


class LineItemResponse(CamelSchema):
    """Line item as stored, with formatted amounts."""

    id: str
    group_id: str
    sequence_number: int
    shipper_name: str
    period_label: Optional[str] = None
    teu_qty: str = ""
    revenue_minor_units: int
    profitability_ratio: float
    profit_minor_units: int
    row_type: RowType
    notes: Optional[str] = None
    revenue_display: Optional[str] = None
    profit_display: Optional[str] = None
    created_at: Optional[datetime] = None


class LineItemCreatedResponse(CamelSchema):
    """Result of adding an entry."""

    message: str = "Entry added"
    id: str
    sequence_number: int
