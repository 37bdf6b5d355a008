"""
Section Models: Section, SectionOption (+ product/section link).
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BIGINT, AuditMixin, Base, Money

if TYPE_CHECKING:
    from .catalog import Product


# A section (e.g. "Vegetales", "Extras") can be offered on many products
product_section = Table(
    "product_section",
    Base.metadata,
    Column("product_id", BIGINT, ForeignKey("product.id"), primary_key=True),
    Column("section_id", BIGINT, ForeignKey("section.id"), primary_key=True),
    Column("sort_order", Integer, default=0),
)


class Section(AuditMixin, Base):
    """
    A group of customization options for products.

    With bundle_discount_enabled, every bundle_size extras of the same price
    chosen in one line cost bundle_discount_amount less.
    """

    __tablename__ = "section"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_multiple: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    min_selections: Mapped[int] = mapped_column(Integer, default=0)
    max_selections: Mapped[Optional[int]] = mapped_column(Integer)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    bundle_discount_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bundle_size: Mapped[int] = mapped_column(Integer, default=2)
    bundle_discount_amount: Mapped[Optional[Decimal]] = mapped_column(Money)

    # Relationships
    options: Mapped[list["SectionOption"]] = relationship(
        back_populates="section", order_by="SectionOption.sort_order"
    )
    products: Mapped[list["Product"]] = relationship(secondary=product_section, back_populates="sections")

    __table_args__ = (
        CheckConstraint("bundle_size >= 2", name="chk_section_bundle_size"),
    )


class SectionOption(AuditMixin, Base):
    """
    One choice inside a section. price_modifier is added to the line's unit
    price; is_extra marks paid add-ons, which are the only options that
    count toward a section bundle.
    """

    __tablename__ = "section_option"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True)
    section_id: Mapped[int] = mapped_column(
        BIGINT, ForeignKey("section.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_extra: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price_modifier: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    section: Mapped["Section"] = relationship(back_populates="options")

    def __repr__(self) -> str:
        return f"<SectionOption(id={self.id}, name='{self.name}', price_modifier={self.price_modifier})>"
