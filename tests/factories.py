"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from typing import Any, Optional

from models.import_rows import CellValue, MappedRow, TabularData
from services.row_validator import apply_validation


class MappedRowFactory:
    """
    Factory for working rows.

    Usage:
        # Valid row with defaults
        row = MappedRowFactory.create()

        # Invalid row, flagged the way the wizard would flag it
        row = MappedRowFactory.create(shipper_name="", validated=True)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        shipper_name: Optional[str] = None,
        teu_qty: str = "10",
        revenue_in_currency: float = 100000.0,
        profitability_ratio: float = 0.12,
        notes: Optional[str] = None,
        original_row_number: Optional[int] = None,
        validated: bool = False,
        **overrides: Any,
    ) -> MappedRow:
        """
        Create a single row.

        Args:
            validated: Run the business rules and set has_error/error_reasons
        """
        counter = cls._next_counter()
        row = MappedRow(
            shipper_name=f"Shipper {counter}" if shipper_name is None else shipper_name,
            teu_qty=teu_qty,
            revenue_in_currency=revenue_in_currency,
            profitability_ratio=profitability_ratio,
            notes=notes,
            original_row_number=original_row_number,
            **overrides,
        )
        return apply_validation(row) if validated else row

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list[MappedRow]:
        """Create several rows numbered 1..count."""
        return [
            cls.create(original_row_number=i + 1, **overrides)
            for i in range(count)
        ]


def make_table(headers: list[str], records: list[list[Any]]) -> TabularData:
    """
    Build extraction output from plain values.

    Usage:
        table = make_table(
            ["Shipper", "Revenue", "Profit %"],
            [["HMSI", "₹2,13,00,000", "16%"]],
        )
    """
    rows = [
        {header: CellValue.from_raw(value) for header, value in zip(headers, record)}
        for record in records
    ]
    return TabularData(headers=headers, rows=rows)


def sample_table() -> TabularData:
    """Three rows: one valid, one without shipper, one with zero revenue."""
    return make_table(
        ["Shipper", "Revenue", "Profit %"],
        [
            ["HMSI", "₹2,13,00,000", "16%"],
            ["", 100, 10],
            ["Acme", 0, 5],
        ],
    )
