"""
Combo Models: Combo, ComboItem, ComboItemOption.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BIGINT, AuditMixin, Base, Money

if TYPE_CHECKING:
    from .catalog import Category, Product, ProductVariant


class Combo(AuditMixin, Base):
    """
    A bundle sold at its own flat price per (zone, service type).
    Item prices are informational and never summed into the combo price.
    """

    __tablename__ = "combo"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    category_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("category.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    price_pickup_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_pickup_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_interior: Mapped[Optional[Decimal]] = mapped_column(Money)

    # Relationships
    category: Mapped["Category"] = relationship(back_populates="combos")
    items: Mapped[list["ComboItem"]] = relationship(
        back_populates="combo",
        order_by="ComboItem.sort_order",
        cascade="all, delete-orphan",
    )


class ComboItem(AuditMixin, Base):
    """
    One slot of a combo.

    Either a fixed product (+ optional variant) with a quantity, or a choice
    group (is_choice_group) whose options the customer picks from. A product
    id stored on a choice group is a legacy default and is never used for
    pricing.
    """

    __tablename__ = "combo_item"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    combo_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("combo.id"), nullable=False, index=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(BIGINT, ForeignKey("product.id"))
    variant_id: Mapped[Optional[int]] = mapped_column(BIGINT, ForeignKey("product_variant.id"))
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_choice_group: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    choice_label: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_combo_item_qty_positive"),
    )

    # Relationships
    combo: Mapped["Combo"] = relationship(back_populates="items")
    product: Mapped[Optional["Product"]] = relationship()
    variant: Mapped[Optional["ProductVariant"]] = relationship()
    options: Mapped[list["ComboItemOption"]] = relationship(
        back_populates="combo_item",
        order_by="ComboItemOption.sort_order",
        cascade="all, delete-orphan",
    )


class ComboItemOption(AuditMixin, Base):
    """A selectable product (+ optional variant) inside a choice group."""

    __tablename__ = "combo_item_option"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    combo_item_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("combo_item.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[int]] = mapped_column(BIGINT, ForeignKey("product_variant.id"))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    combo_item: Mapped["ComboItem"] = relationship(back_populates="options")
    product: Mapped["Product"] = relationship()
    variant: Mapped[Optional["ProductVariant"]] = relationship()
