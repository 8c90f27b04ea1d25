"""
Semantic field schema for spreadsheet imports.

The fixed set of slots an import fills, independent of how the source file
labels its columns. Aliases are lowercase and kept in declared order; the
column matcher relies on that order for its substring fallback.
"""

from enum import Enum
from pydantic import ConfigDict, Field

from models.base import CamelSchema


class FieldKey(str, Enum):
    """Stable keys of the semantic fields (public contract for mapping UIs)."""
    SHIPPER_NAME = "shipperName"
    TEU_QTY = "teuQty"
    REVENUE_IN_CURRENCY = "revenueInCurrency"
    PROFITABILITY_RATIO = "profitabilityRatio"
    NOTES = "notes"


class SemanticField(CamelSchema):
    """One schema slot: key, display label, required flag and aliases."""
    model_config = ConfigDict(frozen=True)

    key: FieldKey
    display_label: str
    required: bool = False
    aliases: tuple[str, ...] = Field(default_factory=tuple)


SEMANTIC_FIELDS: tuple[SemanticField, ...] = (
    SemanticField(
        key=FieldKey.SHIPPER_NAME,
        display_label="Shipper / Client Name",
        required=True,
        aliases=(
            "shipper",
            "shipper name",
            "client",
            "client name",
            "customer",
            "party",
            "party name",
            "consignee",
            "name",
        ),
    ),
    SemanticField(
        key=FieldKey.TEU_QTY,
        display_label="TEU / Quantity",
        required=False,
        aliases=(
            "teu",
            "teus",
            "total teu",
            "total teus",
            "qty",
            "quantity",
            "containers",
            "cntr",
            "no of teus",
            "no. of teus",
        ),
    ),
    SemanticField(
        key=FieldKey.REVENUE_IN_CURRENCY,
        display_label="Revenue (INR)",
        required=True,
        aliases=(
            "revenue",
            "total revenue",
            "revenue inr",
            "revenue (inr)",
            "rev",
            "amount",
            "total amount",
            "turnover",
            "sales",
            "billing",
            "value",
        ),
    ),
    SemanticField(
        key=FieldKey.PROFITABILITY_RATIO,
        display_label="Profitability %",
        required=True,
        aliases=(
            "profitability",
            "profitability %",
            "profitability%",
            "profit %",
            "profit%",
            "margin",
            "margin %",
            "margin%",
            "gp%",
            "gp %",
            "gross profit",
            "profit pct",
        ),
    ),
    SemanticField(
        key=FieldKey.NOTES,
        display_label="Notes / Remarks",
        required=False,
        aliases=(
            "notes",
            "remarks",
            "comment",
            "comments",
            "observation",
            "remark",
        ),
    ),
)


def get_field(key: FieldKey) -> SemanticField:
    """Look up a semantic field by key."""
    for field in SEMANTIC_FIELDS:
        if field.key == key:
            return field
    raise KeyError(key)


def required_fields() -> list[SemanticField]:
    """Fields that must be mapped before rows can be built."""
    return [f for f in SEMANTIC_FIELDS if f.required]
