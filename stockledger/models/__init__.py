"""
Stock Ledger SQLAlchemy Models
"""

# Import all models to ensure they are registered with SQLAlchemy
from .taxonomy import Category, Brand
from .stock import StockItem, UsageEvent

__all__ = [
    "Category",
    "Brand",
    "StockItem",
    "UsageEvent",
]
