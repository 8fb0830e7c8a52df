"""Tests for server-side order total recalculation."""

import re
from collections import namedtuple
from decimal import Decimal

import pytest

from security.order_integrity import (
    EMPTY_ORDER_ERROR,
    generate_order_id,
    validate_and_recalculate_total,
)

Line = namedtuple("Line", "price quantity")

ITEMS = [{"price": 10, "quantity": 2}, {"price": 5, "quantity": 1}]


class TestValidateAndRecalculateTotal:

    def test_matching_claim(self):
        check = validate_and_recalculate_total(ITEMS, 25)
        assert check.is_valid is True
        assert check.calculated_total == 25.0
        assert check.difference == 0.0
        assert check.error is None

    def test_inflated_claim_is_rejected(self):
        check = validate_and_recalculate_total(ITEMS, 26)
        assert check.is_valid is False
        assert check.calculated_total == 25.0
        assert check.difference == 1.0
        assert "25.00" in check.error

    def test_lowered_claim_is_rejected(self):
        check = validate_and_recalculate_total(ITEMS, 1)
        assert check.is_valid is False
        assert check.difference == 24.0

    def test_one_cent_tolerance(self):
        assert validate_and_recalculate_total(ITEMS, 25.01).is_valid is True
        assert validate_and_recalculate_total(ITEMS, 24.99).is_valid is True
        assert validate_and_recalculate_total(ITEMS, 25.02).is_valid is False

    def test_float_artifacts_do_not_matter(self):
        items = [{"price": 0.1, "quantity": 3}]
        check = validate_and_recalculate_total(items, 0.3)
        assert check.is_valid is True
        assert check.calculated_total == 0.3

    def test_half_up_rounding(self):
        check = validate_and_recalculate_total([{"price": 0.125, "quantity": 1}], 0.13)
        assert check.calculated_total == 0.13
        assert check.is_valid is True

    @pytest.mark.parametrize("items", [[], None, "not a list", {}])
    def test_empty_or_missing_items(self, items):
        check = validate_and_recalculate_total(items, 10)
        assert check.is_valid is False
        assert check.calculated_total == 0.0
        assert check.error == EMPTY_ORDER_ERROR

    @pytest.mark.parametrize("bad", [-5, 0, "10", None, True, float("nan"), float("inf")])
    def test_malformed_price_counts_as_zero(self, bad):
        items = [{"price": bad, "quantity": 2}, {"price": 5, "quantity": 1}]
        check = validate_and_recalculate_total(items, 5)
        assert check.is_valid is True
        assert check.calculated_total == 5.0

    @pytest.mark.parametrize("bad", [-1, 0, "3", None, False])
    def test_malformed_quantity_counts_as_zero(self, bad):
        items = [{"price": 10, "quantity": bad}]
        check = validate_and_recalculate_total(items, 0)
        assert check.is_valid is True
        assert check.calculated_total == 0.0

    @pytest.mark.parametrize("claim", ["25", " 25.00 ", "2.5e1"])
    def test_numeric_string_claim_is_parsed(self, claim):
        check = validate_and_recalculate_total(ITEMS, claim)
        assert check.is_valid is True
        assert check.difference == 0.0

    @pytest.mark.parametrize("claim", ["abc", "", None, True, "NaN", [25]])
    def test_non_numeric_claim_is_treated_as_zero(self, claim):
        check = validate_and_recalculate_total(ITEMS, claim)
        assert check.is_valid is False
        assert check.difference == 25.0

    def test_attribute_items_and_decimals(self):
        items = [Line(Decimal("19.99"), 3), Line(2.5, 2)]
        check = validate_and_recalculate_total(items, 64.97)
        assert check.is_valid is True
        assert check.calculated_total == 64.97

    def test_custom_tolerance(self):
        assert validate_and_recalculate_total(ITEMS, 25.5, tolerance=1).is_valid is True


class TestGenerateOrderId:

    def test_format(self):
        assert re.fullmatch(r"ORD-\d{13,}-[0-9A-F]{8}", generate_order_id())

    def test_unique(self):
        assert len({generate_order_id() for _ in range(200)}) == 200
