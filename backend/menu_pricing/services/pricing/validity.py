"""
Promotion validity windows.

A promotion item's validity is one of a closed set of variants:

    Unconditional | Permanent | Weekdays | DateRange | TimeRange | DateTimeRange

plus UnknownValidity for a type the engine does not recognize. Only
Unconditional (no type stored at all) passes without looking at any field;
every structured variant requires its own fields and fails closed when one
is missing. An unknown type always fails.

Times are compared as zero-padded "HH:MM:SS" strings with both bounds
inclusive. A range whose start is after its end (e.g. 22:00 to 02:00) never
matches: ranges crossing midnight are not supported.

Usage:
    from menu_pricing.services.pricing.validity import evaluate_validity

    if evaluate_validity(item, at=datetime(2024, 5, 7, 18, 30)):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Union

from shared.config.constants import ISO_WEEKDAYS, PromotionType, ValidityType, Zone
from shared.config.logging import get_logger
from shared.infrastructure.clock import Clock, local_time, system_clock
from shared.utils.exceptions import InvalidRuleError

logger = get_logger(__name__)


# =============================================================================
# Validity variants
# =============================================================================


@dataclass(frozen=True, slots=True)
class Unconditional:
    """No validity type stored: the item is always valid."""

    def is_valid_at(self, at: datetime) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Permanent:
    def is_valid_at(self, at: datetime) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Weekdays:
    """ISO weekdays, 1=Monday .. 7=Sunday. An empty set never matches."""

    days: frozenset[int]

    def is_valid_at(self, at: datetime) -> bool:
        return bool(self.days) and at.isoweekday() in self.days


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive date window; time of day is ignored."""

    valid_from: date | None
    valid_until: date | None

    def is_valid_at(self, at: datetime) -> bool:
        if self.valid_from is None or self.valid_until is None:
            return False
        return self.valid_from <= at.date() <= self.valid_until


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Inclusive "HH:MM:SS" window within a single day."""

    time_from: str | None
    time_until: str | None

    def is_valid_at(self, at: datetime) -> bool:
        if self.time_from is None or self.time_until is None:
            return False
        return self.time_from <= at.strftime("%H:%M:%S") <= self.time_until


@dataclass(frozen=True, slots=True)
class DateTimeRange:
    dates: DateRange
    times: TimeRange

    def is_valid_at(self, at: datetime) -> bool:
        return self.dates.is_valid_at(at) and self.times.is_valid_at(at)


@dataclass(frozen=True, slots=True)
class UnknownValidity:
    validity_type: str

    def is_valid_at(self, at: datetime) -> bool:
        return False


Validity = Union[
    Unconditional, Permanent, Weekdays, DateRange, TimeRange, DateTimeRange, UnknownValidity
]

_VALIDITY_CLASSES = (
    Unconditional,
    Permanent,
    Weekdays,
    DateRange,
    TimeRange,
    DateTimeRange,
    UnknownValidity,
)


# =============================================================================
# Field normalization
# =============================================================================


def normalize_time(value: str | time | None, field_name: str = "time") -> str | None:
    """
    Normalize a stored time to "HH:MM:SS".

    >>> normalize_time("18:00")
    '18:00:00'

    Raises:
        InvalidRuleError: If the value is not a time of day.
    """
    if value is None:
        return None
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    text = str(value).strip()
    if not text:
        return None
    try:
        return time.fromisoformat(text).strftime("%H:%M:%S")
    except ValueError:
        raise InvalidRuleError(f"{field_name} '{text}' is not a valid HH:MM:SS time")


def normalize_date(value: date | str | None, field_name: str = "date") -> date | None:
    """
    Raises:
        InvalidRuleError: If the value is not an ISO date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise InvalidRuleError(f"{field_name} '{text}' is not a valid ISO date")


def normalize_weekdays(values: Iterable[Any] | None) -> frozenset[int]:
    """
    Stored weekday lists may hold ints or digit strings ("3").

    Raises:
        InvalidRuleError: If an entry is not an integer.
    """
    if not values:
        return frozenset()
    days = set()
    for value in values:
        try:
            days.add(int(value))
        except (TypeError, ValueError):
            raise InvalidRuleError(f"weekday '{value}' is not an ISO weekday number")
    return frozenset(days)


# =============================================================================
# Construction
# =============================================================================


def validity_from_fields(
    validity_type: str | ValidityType | None,
    *,
    valid_from: date | str | None = None,
    valid_until: date | str | None = None,
    time_from: str | time | None = None,
    time_until: str | time | None = None,
    weekdays: Iterable[Any] | None = None,
) -> Validity:
    """
    Build the Validity variant described by a row's raw fields.

    Only the fields the type uses are read. Missing fields are kept as
    None; the variant fails closed on them.

    Raises:
        InvalidRuleError: If a field that the type reads is malformed.
    """
    if validity_type is None or not str(validity_type).strip():
        return Unconditional()

    # Stored values are matched exactly; admin writes normalize case before saving
    raw = validity_type.value if isinstance(validity_type, ValidityType) else str(validity_type).strip()
    try:
        kind = ValidityType(raw)
    except ValueError:
        return UnknownValidity(raw)

    if kind is ValidityType.PERMANENT:
        return Permanent()
    if kind is ValidityType.WEEKDAYS:
        return Weekdays(normalize_weekdays(weekdays))

    dates = DateRange(
        normalize_date(valid_from, "valid_from"),
        normalize_date(valid_until, "valid_until"),
    )
    if kind is ValidityType.DATE_RANGE:
        return dates

    times = TimeRange(
        normalize_time(time_from, "time_from"),
        normalize_time(time_until, "time_until"),
    )
    if kind is ValidityType.TIME_RANGE:
        return times
    return DateTimeRange(dates, times)


def as_validity(rule: Any) -> Validity:
    """
    Accept a Validity variant as-is, or read the validity fields off any
    object carrying them (PromotionItemRecord, ORM PromotionItem, pydantic
    input).
    """
    if isinstance(rule, _VALIDITY_CLASSES):
        return rule
    return validity_from_fields(
        getattr(rule, "validity_type", None),
        valid_from=getattr(rule, "valid_from", None),
        valid_until=getattr(rule, "valid_until", None),
        time_from=getattr(rule, "time_from", None),
        time_until=getattr(rule, "time_until", None),
        weekdays=getattr(rule, "weekdays", None),
    )


# =============================================================================
# Evaluation
# =============================================================================


def evaluate_validity(rule: Any, at: datetime | None = None, *, clock: Clock = system_clock) -> bool:
    """
    Decide whether a validity rule holds at `at` (default: the clock's now).

    Never raises: a rule whose fields cannot be read is logged and treated
    as not valid.
    """
    moment = local_time(at if at is not None else clock())
    try:
        validity = as_validity(rule)
    except InvalidRuleError as exc:
        logger.warning(
            "Unreadable validity rule treated as not valid",
            item_id=getattr(rule, "id", None),
            reason=exc.reason,
        )
        return False
    return validity.is_valid_at(moment)


def check_rule(rule: Any) -> Validity:
    """
    Strict save-time validation of a validity rule.

    Unlike evaluate_validity, which quietly fails closed, this rejects
    anything that could never match or that the engine would not recognize.

    Raises:
        InvalidRuleError: Unknown type, missing or malformed bounds, empty or
            out-of-range weekdays, or a window whose start is after its end.
    """
    item_id = getattr(rule, "id", None)
    try:
        validity = as_validity(rule)
    except InvalidRuleError as exc:
        raise InvalidRuleError(exc.reason, item_id=item_id)

    if isinstance(validity, UnknownValidity):
        raise InvalidRuleError(
            f"unknown validity_type '{validity.validity_type}'", item_id=item_id
        )

    if isinstance(validity, Weekdays):
        if not validity.days:
            raise InvalidRuleError("weekdays validity needs at least one weekday", item_id=item_id)
        out_of_range = sorted(validity.days - ISO_WEEKDAYS)
        if out_of_range:
            raise InvalidRuleError(
                f"weekdays must be ISO numbers 1-7, got {out_of_range}", item_id=item_id
            )

    dates = validity.dates if isinstance(validity, DateTimeRange) else validity
    if isinstance(dates, DateRange):
        if dates.valid_from is None or dates.valid_until is None:
            raise InvalidRuleError("valid_from and valid_until are both required", item_id=item_id)
        if dates.valid_from > dates.valid_until:
            raise InvalidRuleError("valid_from is after valid_until", item_id=item_id)

    times = validity.times if isinstance(validity, DateTimeRange) else validity
    if isinstance(times, TimeRange):
        if times.time_from is None or times.time_until is None:
            raise InvalidRuleError("time_from and time_until are both required", item_id=item_id)
        if times.time_from > times.time_until:
            raise InvalidRuleError(
                "time_from is after time_until; ranges crossing midnight are not supported",
                item_id=item_id,
            )

    return validity


# =============================================================================
# Promotion-level window
# =============================================================================


def promotion_window_allows(promotion: Any, at: datetime | None = None, *, clock: Clock = system_clock) -> bool:
    """
    Coarse promotion-level gate, evaluated independently of each item's own
    validity.

    Every empty bound is open. is_permanent disables the date bounds; empty
    weekdays mean every day. Never raises: unreadable fields close the
    window.
    """
    moment = local_time(at if at is not None else clock())
    try:
        if not getattr(promotion, "is_permanent", False):
            valid_from = normalize_date(getattr(promotion, "valid_from", None), "valid_from")
            valid_until = normalize_date(getattr(promotion, "valid_until", None), "valid_until")
            if valid_from is not None and moment.date() < valid_from:
                return False
            if valid_until is not None and moment.date() > valid_until:
                return False

        current_time = moment.strftime("%H:%M:%S")
        time_from = normalize_time(getattr(promotion, "time_from", None), "time_from")
        time_until = normalize_time(getattr(promotion, "time_until", None), "time_until")
        if time_from is not None and current_time < time_from:
            return False
        if time_until is not None and current_time > time_until:
            return False

        days = normalize_weekdays(getattr(promotion, "weekdays", None))
    except InvalidRuleError as exc:
        logger.warning(
            "Unreadable promotion window treated as closed",
            promotion_id=getattr(promotion, "id", None),
            reason=exc.reason,
        )
        return False

    return not days or moment.isoweekday() in days


def bundle_price_for_zone(
    promotion: Any,
    zone: Zone | str,
    at: datetime | None = None,
    *,
    clock: Clock = system_clock,
) -> Decimal | None:
    """
    Flat bundle price of a bundle_special promotion for a zone.

    None when the promotion is not a bundle special, is inactive, its window
    is closed at `at`, or no price is set for the zone.
    """
    if getattr(promotion, "type", None) != PromotionType.BUNDLE_SPECIAL.value:
        return None
    if not getattr(promotion, "is_active", False):
        return None
    if not promotion_window_allows(promotion, at, clock=clock):
        return None
    if Zone(zone) is Zone.CAPITAL:
        return promotion.special_bundle_price_capital
    return promotion.special_bundle_price_interior
