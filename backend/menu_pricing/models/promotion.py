"""
Promotion Models: Promotion, PromotionItem.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BIGINT, AuditMixin, Base, Money

if TYPE_CHECKING:
    from .catalog import Category, ProductVariant


class Promotion(AuditMixin, Base):
    """
    A named offer grouping promotion items.

    The window fields here are a coarse gate evaluated independently from
    each item's own validity; both must pass. Empty bounds are open and
    is_permanent disables the date bounds.
    """

    __tablename__ = "promotion"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(Text, nullable=False)  # PromotionType value
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    is_permanent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    valid_from: Mapped[Optional[date]] = mapped_column(Date)
    valid_until: Mapped[Optional[date]] = mapped_column(Date)
    time_from: Mapped[Optional[str]] = mapped_column(Text)  # "HH:MM:SS"
    time_until: Mapped[Optional[str]] = mapped_column(Text)  # "HH:MM:SS"
    weekdays: Mapped[Optional[list[int]]] = mapped_column(JSON)  # ISO 1..7, empty = every day

    # bundle_special only
    special_bundle_price_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    special_bundle_price_interior: Mapped[Optional[Decimal]] = mapped_column(Money)

    # Relationships
    items: Mapped[list["PromotionItem"]] = relationship(
        back_populates="promotion", cascade="all, delete-orphan", order_by="PromotionItem.id"
    )


class PromotionItem(AuditMixin, Base):
    """
    A promotion rule row.

    References one of: a variant (optionally with its product), a product
    or combo (product_id, disambiguated by target_kind), or a whole
    category. Carries its own validity window, service type filter and
    either special prices per (zone, service type) or a discount percentage.

    product_id has no foreign key: depending on target_kind it points at
    product.id or combo.id.
    """

    __tablename__ = "promotion_item"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    promotion_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("promotion.id"), nullable=False, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(BIGINT, index=True)
    variant_id: Mapped[Optional[int]] = mapped_column(
        BIGINT, ForeignKey("product_variant.id"), index=True
    )
    category_id: Mapped[Optional[int]] = mapped_column(
        BIGINT, ForeignKey("category.id"), index=True
    )
    # TargetKind value; empty on rows written before the column existed
    target_kind: Mapped[Optional[str]] = mapped_column(Text)

    special_price_pickup_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    special_price_delivery_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    special_price_pickup_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    special_price_delivery_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    discount_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2, asdecimal=True))

    service_type: Mapped[Optional[str]] = mapped_column(Text)  # ServiceTypeFilter value
    validity_type: Mapped[Optional[str]] = mapped_column(Text)  # ValidityType value
    valid_from: Mapped[Optional[date]] = mapped_column(Date)
    valid_until: Mapped[Optional[date]] = mapped_column(Date)
    time_from: Mapped[Optional[str]] = mapped_column(Text)
    time_until: Mapped[Optional[str]] = mapped_column(Text)
    weekdays: Mapped[Optional[list[int]]] = mapped_column(JSON)

    __table_args__ = (
        Index("ix_promotion_item_target", "product_id", "variant_id", "category_id"),
        CheckConstraint(
            "discount_percentage IS NULL OR (discount_percentage > 0 AND discount_percentage <= 100)",
            name="chk_promotion_item_discount_range",
        ),
    )

    # Relationships
    promotion: Mapped["Promotion"] = relationship(back_populates="items")
    variant: Mapped[Optional["ProductVariant"]] = relationship()
    category: Mapped[Optional["Category"]] = relationship()
