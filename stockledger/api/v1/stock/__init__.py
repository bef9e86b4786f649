"""Stock ledger API endpoints"""
from . import items, usage, alerts

__all__ = ["items", "usage", "alerts"]
