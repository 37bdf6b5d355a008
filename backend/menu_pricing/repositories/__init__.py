"""
Repository layer: data access for the pricing engine.
"""

from .catalog import CatalogRepository

__all__ = ["CatalogRepository"]
