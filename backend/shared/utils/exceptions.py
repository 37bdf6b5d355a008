"""
Centralized domain exceptions for consistent error handling.

Every exception logs itself with context on construction and carries an
HTTP-like status code so the surrounding web layer can map it without
knowing the pricing internals.

Usage:
    from shared.utils.exceptions import NotFoundError, MissingSelectionError

    raise NotFoundError("Combo", combo_id)
    raise MissingSelectionError(combo_id=3, combo_item_id=9, choice_label="Bebida")
"""

from typing import Any

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(Exception):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and error format.
    """

    status_code: int = 500

    def __init__(
        self,
        detail: str,
        status_code: int | None = None,
        log_level: str = "warning",
        **log_context: Any,
    ):
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        self.context = log_context

        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=self.status_code, **log_context)

        super().__init__(detail)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Product", 123)
    """

    status_code = 404

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} with id {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("discount_percentage must be between 0 and 100")
        raise ValidationError("Invalid service type", field="service_type", value="walk_in")
    """

    status_code = 400

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(detail, log_level="warning", **log_context)


class InvalidRuleError(ValidationError):
    """
    A promotion item has an unrecognized or self-contradictory validity
    configuration.

    Raised at admin save time. During applicability scans it is caught,
    logged and the row is excluded.
    """

    def __init__(self, reason: str, item_id: int | None = None, **log_context: Any):
        if item_id is not None:
            detail = f"Invalid promotion rule (item {item_id}): {reason}"
        else:
            detail = f"Invalid promotion rule: {reason}"
        self.reason = reason
        self.item_id = item_id
        super().__init__(detail, item_id=item_id, reason=reason, **log_context)


class AmbiguousReferenceError(ValidationError):
    """
    A promotion item's category flag disagrees with whether its product_id
    resolves to a Product or a Combo. Surfaced at admin save time.
    """

    def __init__(
        self,
        reference_id: int,
        category_id: int | None,
        expected_kind: str,
        resolved_kind: str,
        **log_context: Any,
    ):
        detail = (
            f"Reference {reference_id} resolves to a {resolved_kind} but category "
            f"{category_id} expects a {expected_kind}"
        )
        super().__init__(
            detail,
            reference_id=reference_id,
            category_id=category_id,
            expected_kind=expected_kind,
            resolved_kind=resolved_kind,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("Category 4 already holds products")
    """

    status_code = 409

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(detail, log_level="warning", **log_context)


class CategoryKindConflictError(ConflictError):
    """A combo category would receive a product, or a product category a combo."""

    def __init__(self, category_id: int, is_combo_category: bool, attempted: str, **log_context: Any):
        kind = "combo" if is_combo_category else "product"
        detail = f"Category {category_id} is a {kind} category and cannot hold a {attempted}"
        super().__init__(
            detail,
            category_id=category_id,
            is_combo_category=is_combo_category,
            attempted=attempted,
            **log_context,
        )


# =============================================================================
# 422 Pricing Errors
# =============================================================================


class PricingError(AppException):
    """
    A line item cannot be priced (422).

    Checkout cannot silently proceed, so these always propagate.
    """

    status_code = 422

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(detail, log_level="warning", **log_context)


class VariantRequiredError(PricingError):
    """Product is variant-based; a variant must be priced instead."""

    def __init__(self, product_id: int, **log_context: Any):
        super().__init__(
            f"Product {product_id} has variants; a variant id is required for pricing",
            product_id=product_id,
            **log_context,
        )


class PriceNotDefinedError(PricingError):
    """The requested (zone, service type) price is not set on the entity."""

    def __init__(self, entity: str, entity_id: int, field: str, **log_context: Any):
        super().__init__(
            f"{entity} {entity_id} has no {field}",
            entity=entity,
            entity_id=entity_id,
            field=field,
            **log_context,
        )


class MissingSelectionError(PricingError):
    """A combo choice group was not resolved with a valid option."""

    def __init__(
        self,
        combo_id: int,
        combo_item_id: int,
        choice_label: str | None = None,
        option_id: int | None = None,
        **log_context: Any,
    ):
        label = f" '{choice_label}'" if choice_label else ""
        if option_id is None:
            detail = f"Combo {combo_id}: choice group{label} (item {combo_item_id}) needs a selection"
        else:
            detail = (
                f"Combo {combo_id}: option {option_id} is not a valid choice for "
                f"group{label} (item {combo_item_id})"
            )
        self.combo_id = combo_id
        self.combo_item_id = combo_item_id
        super().__init__(
            detail,
            combo_id=combo_id,
            combo_item_id=combo_item_id,
            option_id=option_id,
            **log_context,
        )


class UnavailableSelectionError(PricingError):
    """The chosen combo option references an inactive product; the user must reselect."""

    def __init__(
        self,
        combo_id: int,
        combo_item_id: int,
        option_id: int,
        product_id: int,
        **log_context: Any,
    ):
        self.combo_id = combo_id
        self.combo_item_id = combo_item_id
        self.option_id = option_id
        super().__init__(
            f"Combo {combo_id}: option {option_id} (product {product_id}) is unavailable",
            combo_id=combo_id,
            combo_item_id=combo_item_id,
            option_id=option_id,
            product_id=product_id,
            **log_context,
        )
