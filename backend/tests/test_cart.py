"""
Tests for cart helpers: 2x1 and cart totals.
"""

from decimal import Decimal

import pytest

from menu_pricing.services.pricing import CartLine, apply_two_for_one, calculate_cart_total
from shared.utils.exceptions import ValidationError


class TestCartLine:
    def test_totals(self):
        line = CartLine("a", Decimal("45.00"), 2, Decimal("50.00"))

        assert line.total == Decimal("90.00")
        assert line.original_total == Decimal("100.00")
        assert line.savings == Decimal("10.00")

    def test_list_price_defaults_to_unit_price(self):
        assert CartLine("a", Decimal("8.00"), 3).original_total == Decimal("24.00")

    def test_extras_are_charged_on_every_unit(self):
        line = CartLine("a", Decimal("35.00"), 2, Decimal("45.00"), extras_unit_price=Decimal("5.00"))

        assert line.total == Decimal("80.00")
        assert line.original_total == Decimal("100.00")
        assert line.savings == Decimal("20.00")

    @pytest.mark.parametrize("quantity", [0, -1, 100])
    def test_quantity_limits(self, quantity):
        with pytest.raises(ValidationError):
            CartLine("a", Decimal("8.00"), quantity)


class TestTwoForOne:
    def test_cheapest_unit_is_free(self):
        lines = [CartLine(1, Decimal("30.00"), 1), CartLine(2, Decimal("45.00"), 2)]
        assert apply_two_for_one(lines) == {1: Decimal("30.00"), 2: Decimal("0.00")}

    def test_one_line_with_four_units(self):
        assert apply_two_for_one([CartLine(1, Decimal("10.00"), 4)]) == {1: Decimal("20.00")}

    def test_single_unit_gets_nothing(self):
        assert apply_two_for_one([CartLine(1, Decimal("10.00"), 1)]) == {}

    def test_free_units_spread_over_cheapest_lines(self):
        lines = [CartLine("b", Decimal("12.00"), 1), CartLine("a", Decimal("8.00"), 3)]
        # 4 units -> 2 free, both from the 8.00 line
        assert apply_two_for_one(lines) == {"a": Decimal("16.00"), "b": Decimal("0.00")}

    def test_free_units_cross_lines(self):
        lines = [
            CartLine("a", Decimal("5.00"), 1),
            CartLine("b", Decimal("7.00"), 1),
            CartLine("c", Decimal("9.00"), 2),
        ]
        assert apply_two_for_one(lines) == {"a": Decimal("5.00"), "b": Decimal("7.00"), "c": Decimal("0.00")}

    def test_paired_units_use_list_price(self):
        # Happy hour brings the galleta to 7.20; the 2x1 frees one at 8.00
        line = CartLine(1, Decimal("7.20"), 2, Decimal("8.00"))

        assert apply_two_for_one([line]) == {1: Decimal("8.00")}

    def test_leftover_unit_keeps_daily_special(self):
        # Three 30cm subs on a daily special (list 45.00, special 35.00):
        # two are paired at 45.00 (one free), the third stays at 35.00
        line = CartLine(1, Decimal("35.00"), 3, Decimal("45.00"))

        assert apply_two_for_one([line]) == {1: Decimal("55.00")}

    def test_pairing_follows_list_price(self):
        lines = [
            CartLine("special", Decimal("20.00"), 1, Decimal("45.00")),
            CartLine("galleta", Decimal("8.00"), 1),
            CartLine("cola", Decimal("10.00"), 1),
        ]
        # Ranked by list price: galleta, cola, then the special left over
        assert apply_two_for_one(lines) == {"galleta": Decimal("8.00"), "cola": Decimal("0.00")}

    def test_empty(self):
        assert apply_two_for_one([]) == {}


class TestCartTotal:
    def test_promotion_savings_count_as_discount(self):
        totals = calculate_cart_total(
            [CartLine(1, Decimal("45.00"), 2, Decimal("50.00")), CartLine(2, Decimal("8.00"), 1)]
        )

        assert totals.subtotal == Decimal("108.00")
        assert totals.total_discount == Decimal("10.00")
        assert totals.total == Decimal("98.00")
        assert totals.items_count == 3

    def test_line_discount_replaces_own_savings(self):
        totals = calculate_cart_total(
            [CartLine(1, Decimal("45.00"), 2, Decimal("50.00")), CartLine(2, Decimal("8.00"), 1)],
            {1: Decimal("50.00")},
        )

        assert totals.total_discount == Decimal("50.00")
        assert totals.total == Decimal("58.00")

    def test_two_for_one_does_not_stack_with_promotion(self):
        line = CartLine(1, Decimal("7.20"), 2, Decimal("8.00"))

        totals = calculate_cart_total([line], apply_two_for_one([line]))

        assert totals.subtotal == Decimal("16.00")
        assert totals.total == Decimal("8.00")

    def test_unpaired_line_keeps_its_savings(self):
        lines = [CartLine("a", Decimal("10.00"), 2), CartLine("b", Decimal("35.00"), 1, Decimal("45.00"))]

        totals = calculate_cart_total(lines, apply_two_for_one(lines))

        assert totals.subtotal == Decimal("65.00")
        assert totals.total_discount == Decimal("20.00")
        assert totals.total == Decimal("45.00")

    def test_extras_are_never_discounted(self):
        line = CartLine(1, Decimal("35.00"), 2, Decimal("45.00"), extras_unit_price=Decimal("5.00"))

        totals = calculate_cart_total([line], apply_two_for_one([line]))

        assert totals.subtotal == Decimal("100.00")
        assert totals.total == Decimal("55.00")

    def test_total_never_negative(self):
        totals = calculate_cart_total([CartLine(1, Decimal("5.00"), 1)], {1: Decimal("20.00")})

        assert totals.total_discount == Decimal("5.00")
        assert totals.total == Decimal("0.00")

    def test_empty_cart(self):
        totals = calculate_cart_total([])

        assert totals.subtotal == Decimal("0.00")
        assert totals.total == Decimal("0.00")
        assert totals.items_count == 0
