"""
Combo composition and pricing.

A combo is sold at its own flat price for the requested (zone, service
type). Its items describe what the customer gets; their prices are never
added up. Choice groups must be resolved with the customer's selections
(combo_item_id -> option_id); no default option is ever picked here.

Availability is deliberately conservative: one inactive product anywhere
in the combo, including an option nobody chose, makes the whole combo
unavailable. Pricing a concrete selection only requires what was actually
chosen to be active.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from shared.config.constants import ServiceType, Zone, price_field
from shared.config.logging import get_logger
from shared.utils.exceptions import (
    MissingSelectionError,
    NotFoundError,
    PriceNotDefinedError,
    PricingError,
    UnavailableSelectionError,
)

from .records import CatalogSnapshot, ComboItemRecord, ComboOptionRecord, ComboRecord

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedComboItem:
    """A combo slot with its concrete product (chosen_option set for choice groups)."""

    item: ComboItemRecord
    product_id: int
    variant_id: int | None
    quantity: int
    chosen_option: ComboOptionRecord | None = None


def get_combo(snapshot: CatalogSnapshot, combo: ComboRecord | int) -> ComboRecord:
    """
    Raises:
        NotFoundError: If the combo id is not in the snapshot.
    """
    if isinstance(combo, ComboRecord):
        return combo
    record = snapshot.combo(combo)
    if record is None:
        raise NotFoundError("Combo", combo)
    return record


def _reference_active(snapshot: CatalogSnapshot, product_id: int | None, variant_id: int | None) -> bool:
    if not snapshot.product_is_active(product_id):
        return False
    return variant_id is None or snapshot.variant_is_active(variant_id)


def combo_list_price(
    combo: ComboRecord, zone: Zone | str, service_type: ServiceType | str
) -> Decimal | None:
    """The combo's own price for (zone, service type); the other three are never read."""
    return combo.prices.get(zone, service_type)


def expand_choice_groups(
    snapshot: CatalogSnapshot,
    combo: ComboRecord | int,
    selections: Mapping[int, int] | None = None,
) -> list[ResolvedComboItem]:
    """
    Expand every combo item into a concrete product, in item order.

    Args:
        snapshot: Catalog snapshot.
        combo: Combo record or id.
        selections: combo_item_id -> chosen option id, one per choice group.

    Raises:
        NotFoundError: Unknown combo id.
        MissingSelectionError: A choice group has no selection, or the
            selected id is not one of its options.
        UnavailableSelectionError: The chosen option's product or variant
            is inactive.
    """
    combo = get_combo(snapshot, combo)
    selections = selections or {}
    resolved: list[ResolvedComboItem] = []

    for item in combo.items:
        if not item.is_choice_group:
            if item.product_id is None:
                raise PricingError(
                    f"Combo {combo.id}: fixed item {item.id} has no product",
                    combo_id=combo.id,
                    combo_item_id=item.id,
                )
            resolved.append(ResolvedComboItem(item, item.product_id, item.variant_id, item.quantity))
            continue

        option_id = selections.get(item.id)
        if option_id is None:
            raise MissingSelectionError(combo.id, item.id, item.choice_label)

        option = item.option(option_id)
        if option is None:
            raise MissingSelectionError(combo.id, item.id, item.choice_label, option_id=option_id)

        if not _reference_active(snapshot, option.product_id, option.variant_id):
            raise UnavailableSelectionError(combo.id, item.id, option.id, option.product_id)

        resolved.append(
            ResolvedComboItem(item, option.product_id, option.variant_id, item.quantity, option)
        )

    return resolved


def resolve_combo_price(
    snapshot: CatalogSnapshot,
    combo: ComboRecord | int,
    zone: Zone | str,
    service_type: ServiceType | str,
    selections: Mapping[int, int] | None = None,
) -> Decimal:
    """
    Flat price of a combo for a concrete selection.

    Raises:
        NotFoundError: Unknown combo id.
        PricingError: The combo or one of its fixed products is inactive.
        MissingSelectionError / UnavailableSelectionError: See expand_choice_groups.
        PriceNotDefinedError: No price set for (zone, service type).
    """
    combo = get_combo(snapshot, combo)
    if not combo.is_active:
        raise PricingError(f"Combo {combo.id} is not available", combo_id=combo.id)

    for resolved in expand_choice_groups(snapshot, combo, selections):
        if resolved.chosen_option is None and not _reference_active(
            snapshot, resolved.product_id, resolved.variant_id
        ):
            raise PricingError(
                f"Combo {combo.id}: product {resolved.product_id} is not available",
                combo_id=combo.id,
                combo_item_id=resolved.item.id,
                product_id=resolved.product_id,
            )

    price = combo_list_price(combo, zone, service_type)
    if price is None:
        raise PriceNotDefinedError("Combo", combo.id, price_field(zone, service_type))

    logger.debug(
        "Combo priced",
        combo_id=combo.id,
        zone=Zone(zone).value,
        service_type=ServiceType(service_type).value,
        price=price,
    )
    return price


def is_available(snapshot: CatalogSnapshot, combo: ComboRecord | int) -> bool:
    """
    Conservative availability: the combo is active, every fixed product is
    active, and every option of every choice group is active. A choice group
    with no options also makes the combo unavailable.
    """
    combo = get_combo(snapshot, combo)
    if not combo.is_active:
        return False

    for item in combo.items:
        if not item.is_choice_group:
            if not _reference_active(snapshot, item.product_id, item.variant_id):
                return False
            continue
        if not item.options:
            return False
        for option in item.options:
            if not _reference_active(snapshot, option.product_id, option.variant_id):
                return False
    return True


def inactive_options_count(snapshot: CatalogSnapshot, combo: ComboRecord | int) -> int:
    """Options, across all choice groups, whose product or variant is inactive."""
    combo = get_combo(snapshot, combo)
    return sum(
        1
        for item in combo.items
        if item.is_choice_group
        for option in item.options
        if not _reference_active(snapshot, option.product_id, option.variant_id)
    )
