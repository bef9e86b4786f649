"""
Alert Projector
Derives "needs attention" entries from the current stock items.
Nothing is stored; alerts are recomputed on every request.
"""
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from stockledger.core.timeutils import utcnow, whole_days_between
from stockledger.models.stock import StockItem
from stockledger.schemas.stock import Alert, AlertType


def _label(item: StockItem) -> str:
    return item.name or item.color or item.id


def low_stock_alert(item: StockItem) -> Optional[Alert]:
    """
    Empty items always alert; items with a threshold alert once the balance
    drops below it.
    """
    remaining = Decimal(str(item.remaining_quantity))
    threshold = item.low_stock_threshold

    if remaining <= 0:
        message = f'"{_label(item)}" is used up, restock soon'
    elif threshold is not None and remaining < Decimal(str(threshold)):
        message = f'"{_label(item)}" is below its low stock threshold ({remaining} remaining)'
    else:
        return None

    return Alert(
        id=f"stock-{item.id}",
        item_id=item.id,
        item_name=_label(item),
        category_name=item.category.name if item.category else '',
        alert_type=AlertType.LOW_STOCK,
        message=message,
        remaining_quantity=remaining,
    )


def replacement_alert(item: StockItem, now: datetime) -> Optional[Alert]:
    if not item.replacement_cycle_days or item.last_replaced_at is None:
        return None

    days = whole_days_between(item.last_replaced_at, now)
    if days < item.replacement_cycle_days:
        return None

    return Alert(
        id=f"replacement-{item.id}",
        item_id=item.id,
        item_name=_label(item),
        category_name=item.category.name if item.category else '',
        alert_type=AlertType.REPLACEMENT_DUE,
        message=(
            f'"{_label(item)}" was last replaced {days} days ago '
            f'(cycle {item.replacement_cycle_days} days), replacement is due'
        ),
        remaining_quantity=Decimal(str(item.remaining_quantity)),
        days_since_replacement=days,
    )


def project_alerts(items: Iterable[StockItem], now: Optional[datetime] = None) -> List[Alert]:
    """Both checks run independently, so one item can yield zero, one or two alerts"""
    now = now or utcnow()
    alerts = []
    for item in items:
        for alert in (replacement_alert(item, now), low_stock_alert(item)):
            if alert is not None:
                alerts.append(alert)
    return alerts


class AlertService:
    """Read-only alert queries for one owner"""

    def __init__(self, db: Session):
        self.db = db

    def get_alerts(self, owner_id: str, now: Optional[datetime] = None) -> List[Alert]:
        items = self.db.query(StockItem).filter(
            StockItem.owner_id == owner_id
        ).order_by(StockItem.created_at, StockItem.id).all()
        return project_alerts(items, now)
