"""
Utilities module: Exceptions, money helpers.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    ValidationError,
    ConflictError,
    PricingError,
    MissingSelectionError,
    UnavailableSelectionError,
    InvalidRuleError,
    AmbiguousReferenceError,
)
from shared.utils.money import to_money, quantize, apply_percentage_discount

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "PricingError",
    "MissingSelectionError",
    "UnavailableSelectionError",
    "InvalidRuleError",
    "AmbiguousReferenceError",
    # money
    "to_money",
    "quantize",
    "apply_percentage_discount",
]
