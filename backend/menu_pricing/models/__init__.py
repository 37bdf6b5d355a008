"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, AuditMixin, column types
- catalog: Category, Product, ProductVariant, product_category link
- combo: Combo, ComboItem, ComboItemOption
- section: Section, SectionOption, product_section link
- promotion: Promotion, PromotionItem
"""

# Base classes
from .base import Base, AuditMixin

# Catalog (menu structure)
from .catalog import Category, Product, ProductVariant, product_category

# Combos
from .combo import Combo, ComboItem, ComboItemOption

# Customization sections
from .section import Section, SectionOption, product_section

# Promotions
from .promotion import Promotion, PromotionItem

__all__ = [
    # Base
    "Base",
    "AuditMixin",
    # Catalog
    "Category",
    "Product",
    "ProductVariant",
    "product_category",
    # Combos
    "Combo",
    "ComboItem",
    "ComboItemOption",
    # Sections
    "Section",
    "SectionOption",
    "product_section",
    # Promotions
    "Promotion",
    "PromotionItem",
]
