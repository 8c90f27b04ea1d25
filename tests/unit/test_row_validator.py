"""
Unit tests for row validation rules.
"""

import pytest
from pydantic import ValidationError

from models.import_rows import MappedRow
from services.row_validator import (
    MISSING_SHIPPER,
    NEGATIVE_PROFITABILITY,
    PROFITABILITY_NOT_A_NUMBER,
    PROFITABILITY_OVER_100,
    REVENUE_NOT_A_NUMBER,
    REVENUE_TOO_LARGE,
    ZERO_REVENUE,
    apply_validation,
    validate_row,
)
from tests.factories import MappedRowFactory


class TestValidateRow:
    """Tests for validate_row."""

    def test_valid_row_has_no_reasons(self):
        verdict = validate_row(MappedRowFactory.create())

        assert verdict.has_error is False
        assert verdict.reasons == ()

    def test_whitespace_shipper_is_missing(self):
        row = MappedRowFactory.create().model_copy(update={"shipper_name": "   "})
        assert validate_row(row).reasons == (MISSING_SHIPPER,)

    def test_zero_revenue(self):
        row = MappedRowFactory.create(revenue_in_currency=0)
        assert validate_row(row).reasons == (ZERO_REVENUE,)

    def test_negative_revenue_is_allowed(self):
        row = MappedRowFactory.create(revenue_in_currency=-500)
        assert validate_row(row).has_error is False

    def test_profitability_bounds(self):
        assert validate_row(MappedRowFactory.create(profitability_ratio=-0.01)).reasons == (
            NEGATIVE_PROFITABILITY,
        )
        assert validate_row(MappedRowFactory.create(profitability_ratio=1.5)).reasons == (
            PROFITABILITY_OVER_100,
        )
        assert validate_row(MappedRowFactory.create(profitability_ratio=1.0)).has_error is False
        assert validate_row(MappedRowFactory.create(profitability_ratio=0.0)).has_error is False

    def test_all_failures_reported_in_rule_order(self):
        row = MappedRow(shipper_name="", revenue_in_currency=0, profitability_ratio=-1)

        assert validate_row(row).reasons == (
            MISSING_SHIPPER,
            ZERO_REVENUE,
            NEGATIVE_PROFITABILITY,
        )


class TestNonFiniteValues:
    """NaN, infinity and amounts too large to store."""

    @pytest.mark.parametrize("field", ["revenue_in_currency", "profitability_ratio"])
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_rejected_when_building_a_row(self, field, value):
        values = {"revenue_in_currency": 100, "profitability_ratio": 0.1, field: value}
        with pytest.raises(ValidationError):
            MappedRow(shipper_name="Acme", **values)

    def test_nan_ratio_is_flagged(self):
        row = MappedRowFactory.create().model_copy(update={"profitability_ratio": float("nan")})
        assert validate_row(row).reasons == (PROFITABILITY_NOT_A_NUMBER,)

    def test_infinite_ratio_is_flagged_once(self):
        row = MappedRowFactory.create().model_copy(update={"profitability_ratio": float("inf")})
        assert validate_row(row).reasons == (PROFITABILITY_NOT_A_NUMBER,)

    def test_infinite_revenue_is_flagged(self):
        row = MappedRowFactory.create().model_copy(update={"revenue_in_currency": float("-inf")})
        assert validate_row(row).reasons == (REVENUE_NOT_A_NUMBER,)

    def test_revenue_beyond_storage_range(self):
        assert validate_row(MappedRowFactory.create(revenue_in_currency=1e300)).reasons == (
            REVENUE_TOO_LARGE,
        )
        assert validate_row(MappedRowFactory.create(revenue_in_currency=-1e300)).reasons == (
            REVENUE_TOO_LARGE,
        )
        assert validate_row(MappedRowFactory.create(revenue_in_currency=9e16)).has_error is False


class TestApplyValidation:
    """Tests for apply_validation."""

    def test_sets_flag_and_reasons(self):
        row = apply_validation(MappedRow(shipper_name="", revenue_in_currency=10))

        assert row.has_error is True
        assert row.error_reasons == [MISSING_SHIPPER]
        assert row.error_message == MISSING_SHIPPER

    def test_clears_stale_flag(self):
        stale = MappedRowFactory.create().model_copy(
            update={"has_error": True, "error_reasons": ["old"]}
        )
        row = apply_validation(stale)

        assert row.has_error is False
        assert row.error_reasons == []

    def test_idempotent(self):
        row = MappedRow(shipper_name="", revenue_in_currency=0, profitability_ratio=2)
        once = apply_validation(row)
        twice = apply_validation(once)

        assert once == twice

    def test_does_not_mutate_input(self):
        row = MappedRow(shipper_name="", revenue_in_currency=0)
        apply_validation(row)

        assert row.has_error is False
        assert row.error_reasons == []
