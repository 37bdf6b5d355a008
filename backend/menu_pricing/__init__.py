"""
Menu pricing: promotion applicability, combo composition and effective
line prices over the admin-authored catalog.
"""

__version__ = "1.0.0"
