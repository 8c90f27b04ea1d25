"""
Rupee display helpers.

Amounts arrive as integer minor units (paise). Large values use Indian
numbering: crore (1,00,00,000) and lakh (1,00,000).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CRORE = Decimal(10_000_000)
LAKH = Decimal(100_000)


def group_indian(value: int) -> str:
    """
    Group digits the Indian way.

    Examples:
        - 1234 -> "1,234"
        - 213000 -> "2,13,000"
        - 12345678 -> "1,23,45,678"
    """
    sign = "-" if value < 0 else ""
    digits = str(abs(value))
    if len(digits) <= 3:
        return sign + digits

    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return sign + ",".join(pairs + [tail])


def format_inr(minor_units: Union[int, str], scale: int = 100) -> str:
    """
    Format a stored amount for display.

    Args:
        minor_units: Amount in paise
        scale: Minor units per rupee

    Returns:
        "₹ 1.2 Cr", "₹ 5.4 L", or "₹ 12,345"
    """
    rupees = Decimal(int(minor_units)) / Decimal(scale)

    if rupees >= CRORE:
        return f"₹ {(rupees / CRORE).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)} Cr"
    if rupees >= LAKH:
        return f"₹ {(rupees / LAKH).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)} L"

    whole = int(rupees.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return f"₹ {group_indian(whole)}"
