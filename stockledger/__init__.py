"""
Stock Ledger
Remaining-quantity tracking, usage events, lifecycle and alerts for
printing materials and accessories.
"""

__version__ = "1.0.0"
