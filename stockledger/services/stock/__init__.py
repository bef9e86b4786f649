"""
Stock Ledger Services
Item store, usage ledger, lifecycle state machine and alert projection
"""

from .stock_items import StockItemService, describe_item
from .usage_ledger import UsageLedgerService, UsageOutcome
from .lifecycle import LifecycleService
from .alerts import AlertService, project_alerts

__all__ = [
    'StockItemService',
    'describe_item',
    'UsageLedgerService',
    'UsageOutcome',
    'LifecycleService',
    'AlertService',
    'project_alerts',
]
