"""
Business validation for import rows.

The same rules run in the wizard after every edit and again in the batch
importer before anything is persisted.
"""

import math
from dataclasses import dataclass, field

from config import settings
from exceptions import RowValidationError
from models.import_rows import MappedRow

MISSING_SHIPPER = "Missing shipper name"
ZERO_REVENUE = "Revenue is zero"
NEGATIVE_PROFITABILITY = "Negative profitability"
PROFITABILITY_OVER_100 = "Profitability exceeds 100%"
REVENUE_NOT_A_NUMBER = "Revenue is not a number"
REVENUE_TOO_LARGE = "Revenue is too large"
PROFITABILITY_NOT_A_NUMBER = "Profitability is not a number"

# line_items.revenue_minor_units is a bigint
MAX_MINOR_UNITS = 2 ** 63 - 1


@dataclass(frozen=True)
class RowVerdict:
    """Validation outcome for one row."""
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def has_error(self) -> bool:
        return len(self.reasons) > 0


def validate_row(row: MappedRow) -> RowVerdict:
    """
    Check a row against the business rules.

    All failing rules are reported, in rule order.
    """
    reasons: list[str] = []
    if not row.shipper_name or not row.shipper_name.strip():
        reasons.append(MISSING_SHIPPER)

    revenue = row.revenue_in_currency
    if not math.isfinite(revenue):
        reasons.append(REVENUE_NOT_A_NUMBER)
    elif revenue == 0:
        reasons.append(ZERO_REVENUE)
    elif abs(revenue) * settings.currency_minor_unit_scale > MAX_MINOR_UNITS:
        reasons.append(REVENUE_TOO_LARGE)

    ratio = row.profitability_ratio
    if not math.isfinite(ratio):
        reasons.append(PROFITABILITY_NOT_A_NUMBER)
    elif ratio < 0:
        reasons.append(NEGATIVE_PROFITABILITY)
    elif ratio > 1:
        reasons.append(PROFITABILITY_OVER_100)
    return RowVerdict(reasons=tuple(reasons))


def apply_validation(row: MappedRow) -> MappedRow:
    """Return the row with its error flag and reasons set from validate_row."""
    verdict = validate_row(row)
    return row.model_copy(update={
        "has_error": verdict.has_error,
        "error_reasons": list(verdict.reasons),
    })


def ensure_valid(row: MappedRow, row_number: int = 1) -> None:
    """
    Raise when a row breaks any rule.

    Raises:
        RowValidationError: With every failing reason
    """
    verdict = validate_row(row)
    if verdict.has_error:
        raise RowValidationError(row_number, list(verdict.reasons))
