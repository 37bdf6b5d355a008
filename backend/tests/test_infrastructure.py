"""
Tests for cross-cutting infrastructure: settings, structured logging,
correlation ids, domain exceptions and money helpers.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from shared.config.constants import PRICE_FIELDS, price_field
from shared.config.logging import (
    DevelopmentFormatter,
    StructuredFormatter,
    StructuredLogger,
    get_logger,
)
from shared.config.settings import Settings
from shared.infrastructure.clock import fixed_clock, local_time
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    correlation_scope,
    get_correlation_id,
)
from shared.utils.exceptions import (
    AppException,
    CategoryKindConflictError,
    InvalidRuleError,
    MissingSelectionError,
    NotFoundError,
    PriceNotDefinedError,
    ValidationError,
)
from shared.utils.money import apply_percentage_discount, quantize, to_money


class TestSettings:
    def test_defaults_are_valid(self):
        assert Settings(default_zone="capital", default_service_type="pickup").validate_production_settings() == []

    def test_production_checks(self):
        errors = Settings(
            environment="production",
            debug=True,
            database_url="sqlite:///./menu.db",
        ).validate_production_settings()

        assert any("DEBUG" in error for error in errors)
        assert any("DATABASE_URL" in error for error in errors)

    def test_unknown_defaults(self):
        errors = Settings(default_zone="moon", default_service_type="drone").validate_production_settings()
        assert len(errors) == 2


class TestLogging:
    def _record(self, logger_name="menu_pricing.test", **data):
        record = logging.LogRecord(logger_name, logging.WARNING, __file__, 10, "Rule excluded", (), None)
        record.extra_data = data or None
        record.correlation_id = "abc12345-0000"
        return record

    def test_get_logger_is_structured(self):
        assert isinstance(get_logger("menu_pricing.tests.structured"), StructuredLogger)

    def test_structured_formatter_emits_json(self):
        payload = json.loads(StructuredFormatter().format(self._record(item_id=7, reason="unknown")))

        assert payload["message"] == "Rule excluded"
        assert payload["level"] == "WARNING"
        assert payload["data"] == {"item_id": 7, "reason": "unknown"}
        assert payload["correlation_id"] == "abc12345-0000"

    def test_development_formatter(self):
        line = DevelopmentFormatter().format(self._record(item_id=7))

        assert "Rule excluded" in line
        assert "item_id=7" in line
        assert "abc12345" in line

    def test_keyword_data_is_attached(self, caplog):
        logger = get_logger("menu_pricing.tests.kwargs")

        with caplog.at_level(logging.INFO):
            logger.info("Cart priced", lines=3)

        assert caplog.records[-1].extra_data == {"lines": 3}


class TestCorrelation:
    def test_scope_sets_and_restores(self):
        assert get_correlation_id() == ""

        with correlation_scope() as outer:
            assert get_correlation_id() == outer
            with correlation_scope() as inner:
                assert inner == outer
            with correlation_scope("fixed-id") as explicit:
                assert explicit == "fixed-id"
            assert get_correlation_id() == outer

        assert get_correlation_id() == ""

    def test_filter_tags_records(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", (), None)

        CorrelationIdFilter().filter(record)
        assert record.correlation_id == "-"

        with correlation_scope("cart-1"):
            CorrelationIdFilter().filter(record)
        assert record.correlation_id == "cart-1"


class TestClock:
    def test_fixed_clock(self):
        moment = datetime(2024, 5, 7, 12, 0)
        assert fixed_clock(moment)() == moment

    def test_naive_time_is_kept(self):
        moment = datetime(2024, 5, 7, 12, 0)
        assert local_time(moment) == moment

    def test_aware_time_is_converted(self):
        converted = local_time(datetime(2024, 5, 7, 18, 0, tzinfo=timezone.utc))
        assert (converted.hour, converted.utcoffset().total_seconds()) == (12, -6 * 3600)


class TestExceptions:
    def test_status_codes(self):
        assert NotFoundError("Combo", 3).status_code == 404
        assert ValidationError("bad").status_code == 400
        assert CategoryKindConflictError(4, True, "product").status_code == 409
        assert PriceNotDefinedError("Product", 1, "price_pickup_capital").status_code == 422

    def test_details(self):
        assert NotFoundError("Combo", 3).detail == "Combo with id 3 not found"
        assert "Category 4 is a combo category" in CategoryKindConflictError(4, True, "product").detail

    def test_invalid_rule_is_a_validation_error(self):
        error = InvalidRuleError("unknown validity_type 'monthly'", item_id=8)

        assert isinstance(error, ValidationError)
        assert error.detail == "Invalid promotion rule (item 8): unknown validity_type 'monthly'"

    def test_missing_selection_detail(self):
        missing = MissingSelectionError(1, 9, "Bebida")
        invalid = MissingSelectionError(1, 9, "Bebida", option_id=99)

        assert "needs a selection" in missing.detail
        assert "option 99 is not a valid choice" in invalid.detail

    def test_exceptions_log_themselves(self, caplog):
        with caplog.at_level(logging.WARNING):
            AppException("Something broke", combo_id=3)

        assert "Something broke" in caplog.text
        assert caplog.records[-1].extra_data["combo_id"] == 3


class TestMoney:
    @pytest.mark.parametrize(
        "value, expected",
        [("45", "45.00"), (45.1, "45.10"), (Decimal("8.585"), "8.59"), (Decimal("8.584"), "8.58"), (None, None)],
    )
    def test_to_money(self, value, expected):
        assert to_money(value) == (Decimal(expected) if expected is not None else None)

    def test_quantize_half_up(self):
        assert quantize(Decimal("0.005")) == Decimal("0.01")

    def test_percentage_discount(self):
        assert apply_percentage_discount(Decimal("50.00"), Decimal("10")) == Decimal("45.00")
        assert apply_percentage_discount(Decimal("50.00"), Decimal("100")) == Decimal("0.00")

    def test_price_fields(self):
        assert price_field("interior", "delivery") == "price_delivery_interior"
        assert len(PRICE_FIELDS) == 4
