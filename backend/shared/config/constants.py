"""
Centralized constants for the pricing backend.
Avoids magic strings for zones, service types and promotion rule values.

Usage:
    from shared.config.constants import Zone, ServiceType, ValidityType

    if zone == Zone.CAPITAL:
        ...
"""

from decimal import Decimal
from enum import Enum
from typing import Final


# =============================================================================
# Pricing dimensions
# =============================================================================


class Zone(str, Enum):
    """Pricing region."""

    CAPITAL = "capital"
    INTERIOR = "interior"


class ServiceType(str, Enum):
    """How the order reaches the customer."""

    PICKUP = "pickup"
    DELIVERY = "delivery"


class ServiceTypeFilter(str, Enum):
    """Service type restriction stored on a promotion item."""

    BOTH = "both"
    DELIVERY_ONLY = "delivery_only"
    PICKUP_ONLY = "pickup_only"


# =============================================================================
# Promotion rule values
# =============================================================================


class ValidityType(str, Enum):
    """Validity mode of a promotion item."""

    PERMANENT = "permanent"
    WEEKDAYS = "weekdays"
    DATE_RANGE = "date_range"
    TIME_RANGE = "time_range"
    DATE_TIME_RANGE = "date_time_range"


class PromotionType(str, Enum):
    """Kind of offer a promotion represents."""

    PERCENTAGE_DISCOUNT = "percentage_discount"
    DAILY_SPECIAL = "daily_special"
    BUNDLE_SPECIAL = "bundle_special"
    TWO_FOR_ONE = "two_for_one"


class TargetKind(str, Enum):
    """What a promotion item's product_id refers to."""

    PRODUCT = "product"
    COMBO = "combo"


class MatchLevel(int, Enum):
    """How specifically a promotion item matched a target (lower wins)."""

    VARIANT = 1
    ENTITY = 2
    CATEGORY = 3


# =============================================================================
# Money
# =============================================================================

CENT: Final[Decimal] = Decimal("0.01")
HUNDRED: Final[Decimal] = Decimal("100")

ISO_WEEKDAYS: Final[frozenset[int]] = frozenset(range(1, 8))


def price_field(zone: Zone | str, service_type: ServiceType | str) -> str:
    """
    Name of the price column for a (zone, service type) pair.

    >>> price_field(Zone.CAPITAL, ServiceType.DELIVERY)
    'price_delivery_capital'
    """
    return f"price_{ServiceType(service_type).value}_{Zone(zone).value}"


PRICE_FIELDS: Final[tuple[str, ...]] = tuple(
    price_field(zone, service) for zone in Zone for service in ServiceType
)


class Limits:
    """Validation limits."""

    MIN_PRICE: Final[Decimal] = Decimal("0.00")
    MAX_PRICE: Final[Decimal] = Decimal("99999999.99")
    MIN_DISCOUNT_PERCENTAGE: Final[Decimal] = Decimal("0")
    MAX_DISCOUNT_PERCENTAGE: Final[Decimal] = Decimal("100")

    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    MAX_NAME_LENGTH: Final[int] = 200
