"""
Value normalization for imported cells.

Turns currency strings, percentages and plain numbers into canonical floats,
and converts major-unit amounts to integer minor units for storage.
"""

import math
import re
import unicodedata
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional, Union

from config import settings
from models.import_rows import CellValue

RawValue = Union[CellValue, str, int, float, None]

_RATIO_STRIP = re.compile(r"[%,\s]")


def parse_currency(raw: RawValue) -> float:
    """
    Parse a revenue cell into a major-unit number.

    Numbers pass through. Strings lose currency symbols, thousands separators
    and whitespace before parsing: "₹ 2,13,000" -> 213000.0.
    Anything unparsable becomes 0.
    """
    raw = _unwrap(raw)
    if isinstance(raw, (int, float)):
        return _finite(float(raw))
    if raw is None:
        return 0.0

    cleaned = "".join(
        ch for ch in str(raw)
        if ch != "," and not ch.isspace() and unicodedata.category(ch) != "Sc"
    )
    return _to_float(cleaned)


def parse_ratio(raw: RawValue) -> float:
    """
    Parse a profitability cell into a ratio.

    Values above 1 are read as whole-number percentages (16 -> 0.16, "16%" ->
    0.16); values at or below 1 are already ratios. Unparsable input is 0.
    Apply once per raw value: a ratio above 1 would be rescaled again.
    """
    raw = _unwrap(raw)
    if isinstance(raw, (int, float)):
        value = _finite(float(raw))
    elif raw is None:
        return 0.0
    else:
        value = _to_float(_RATIO_STRIP.sub("", str(raw)))
    return value / 100 if value > 1 else value


def to_minor_units(amount: float, scale: Optional[int] = None) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up."""
    scale = scale or settings.currency_minor_unit_scale
    return int((Decimal(str(amount)) * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def profit_minor_units(revenue_minor_units: int, ratio: float) -> int:
    """Profit in minor units: round(revenue x ratio), half up."""
    product = Decimal(revenue_minor_units) * Decimal(str(ratio))
    return int(product.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _unwrap(raw: RawValue):
    if isinstance(raw, CellValue):
        return raw.value
    if isinstance(raw, bool):
        return str(raw)
    return raw


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _to_float(text: str) -> float:
    if not text:
        return 0.0
    try:
        return _finite(float(Decimal(text)))
    except (InvalidOperation, ValueError):
        return 0.0
