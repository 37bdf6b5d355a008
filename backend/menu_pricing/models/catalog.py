"""
Catalog Models: Category, Product, ProductVariant (+ legacy product/category link).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BIGINT, AuditMixin, Base, Money

if TYPE_CHECKING:
    from .combo import Combo
    from .section import Section


# Legacy many-to-many: a product may be listed under several categories on
# top of its primary category. Promotion category items match any of them.
product_category = Table(
    "product_category",
    Base.metadata,
    Column("product_id", BIGINT, ForeignKey("product.id"), primary_key=True),
    Column("category_id", BIGINT, ForeignKey("category.id"), primary_key=True),
)


class Category(AuditMixin, Base):
    """
    Menu category.

    is_combo_category marks categories that hold combos instead of
    products. Writes go through CatalogService, which keeps the two kinds
    apart.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_combo_category: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    products: Mapped[list["Product"]] = relationship(back_populates="category")
    combos: Mapped[list["Combo"]] = relationship(back_populates="category")

    __table_args__ = (
        UniqueConstraint("name", name="uq_category_name"),
    )


class Product(AuditMixin, Base):
    """
    Menu product.

    When has_variants is set, prices live on the variants and the product's
    own price columns are ignored.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        BIGINT, ForeignKey("category.id"), index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    has_variants: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    price_pickup_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_pickup_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_interior: Mapped[Optional[Decimal]] = mapped_column(Money)

    # Relationships
    category: Mapped[Optional["Category"]] = relationship(back_populates="products")
    categories: Mapped[list["Category"]] = relationship(secondary=product_category)
    variants: Mapped[list["ProductVariant"]] = relationship(
        back_populates="product", order_by="ProductVariant.sort_order"
    )
    sections: Mapped[list["Section"]] = relationship(secondary="product_section", back_populates="products")

    __table_args__ = (
        UniqueConstraint("slug", name="uq_product_slug"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name}', category_id={self.category_id})>"


class ProductVariant(AuditMixin, Base):
    """
    A sized/priced variant of a product, e.g. "Pollo 15cm" and "Pollo 30cm".

    A daily special overrides the base prices on the ISO weekdays listed in
    daily_special_days (1=Monday .. 7=Sunday). Each override column falls
    back to its base column when empty.
    """

    __tablename__ = "product_variant"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("product.id"), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    size: Mapped[Optional[str]] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    price_pickup_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_pickup_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    price_delivery_interior: Mapped[Optional[Decimal]] = mapped_column(Money)

    is_daily_special: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    daily_special_days: Mapped[Optional[list[int]]] = mapped_column(JSON)
    daily_special_price_pickup_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    daily_special_price_delivery_capital: Mapped[Optional[Decimal]] = mapped_column(Money)
    daily_special_price_pickup_interior: Mapped[Optional[Decimal]] = mapped_column(Money)
    daily_special_price_delivery_interior: Mapped[Optional[Decimal]] = mapped_column(Money)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="variants")

    __table_args__ = (
        UniqueConstraint("sku", name="uq_product_variant_sku"),
        Index("ix_product_variant_product_active", "product_id", "is_active"),
    )
