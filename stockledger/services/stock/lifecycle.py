"""
Lifecycle Service
Status transitions for stock items.

Consumable items:  unopened -> opened -> depleted -> opened (restore)
Durable items:     available <-> in_use

``low_stock`` and the durable ``depleted`` shown to users are projections of
the balance, never stored statuses.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import InvalidTransitionError, WrongKindError
from stockledger.core.logging import get_logger
from stockledger.core.timeutils import utcnow, parse_timestamp, whole_days_between, whole_minutes_between
from stockledger.models.stock import StockItem
from stockledger.schemas.stock import ItemKind, ItemStatus, DisplayStatus, LifecycleAction
from stockledger.services.stock.queries import load_item
from stockledger.services.stock.usage_ledger import UsageLedgerService

logger = get_logger("stock.lifecycle")


def initial_status(kind: ItemKind, is_opened: bool = False) -> ItemStatus:
    if kind == ItemKind.DURABLE:
        return ItemStatus.AVAILABLE
    return ItemStatus.OPENED if is_opened else ItemStatus.UNOPENED


def display_status(item: StockItem) -> DisplayStatus:
    """
    Status shown to users

    Durable items that are not in use report ``depleted`` or ``low_stock``
    from their balance; everything else shows its stored status.
    """
    if item.kind == ItemKind.DURABLE.value and item.status == ItemStatus.AVAILABLE.value:
        remaining = Decimal(str(item.remaining_quantity))
        if remaining <= 0:
            return DisplayStatus.DEPLETED
        if item.low_stock_threshold is not None and remaining < Decimal(str(item.low_stock_threshold)):
            return DisplayStatus.LOW_STOCK
    return DisplayStatus(item.status)


def opened_days(item: StockItem, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days since the item was opened, None if it never was"""
    if item.opened_at is None:
        return None
    return whole_days_between(item.opened_at, now or utcnow())


def guard_delete(item: StockItem):
    """An item in an open use session cannot be deleted"""
    if item.status == ItemStatus.IN_USE.value:
        raise InvalidTransitionError("Cannot delete an item that is in use")


@dataclass(frozen=True)
class Transition:
    kind: ItemKind
    allowed_from: FrozenSet[ItemStatus]
    apply: Callable


class LifecycleService:
    """
    Lifecycle state machine

    Each action is checked against the item kind first (WrongKindError) and
    then its current status (InvalidTransitionError). Rejected actions leave
    the item untouched.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = UsageLedgerService(db)
        self.transitions: Dict[LifecycleAction, Transition] = {
            LifecycleAction.OPEN: Transition(
                ItemKind.CONSUMABLE, frozenset({ItemStatus.UNOPENED}), self._open),
            LifecycleAction.DEPLETE: Transition(
                ItemKind.CONSUMABLE, frozenset({ItemStatus.OPENED}), self._deplete),
            LifecycleAction.RESTORE: Transition(
                ItemKind.CONSUMABLE, frozenset({ItemStatus.DEPLETED}), self._restore),
            LifecycleAction.START_USE: Transition(
                ItemKind.DURABLE, frozenset({ItemStatus.AVAILABLE}), self._start_use),
            LifecycleAction.STOP_USE: Transition(
                ItemKind.DURABLE, frozenset({ItemStatus.IN_USE}), self._stop_use),
        }

    def transition(
        self,
        owner_id: str,
        item_id: str,
        action,
        occurred_at: Optional[datetime] = None,
        note: Optional[str] = None
    ) -> StockItem:
        """Apply one lifecycle action to an item in a single transaction"""
        action = LifecycleAction(action)
        rule = self.transitions[action]

        with unit_of_work(self.db):
            item = load_item(self.db, owner_id, item_id, for_update=True)

            if ItemKind(item.kind) != rule.kind:
                raise WrongKindError(
                    f"Action '{action.value}' applies only to {rule.kind.value} items"
                )
            current = ItemStatus(item.status)
            if current not in rule.allowed_from:
                raise InvalidTransitionError(
                    f"Cannot {action.value} an item in status '{current.value}'"
                )

            now = utcnow()
            rule.apply(item, now, occurred_at, note)
            previous = current.value

        logger.info(f"Item {item_id} {action.value}: {previous} -> {item.status}")
        return item

    def _open(self, item: StockItem, now: datetime, occurred_at: Optional[datetime], note: Optional[str]):
        item.status = ItemStatus.OPENED.value
        item.opened_at = parse_timestamp(occurred_at, 'opened date') if occurred_at else now

    def _deplete(self, item: StockItem, now: datetime, occurred_at: Optional[datetime], note: Optional[str]):
        item.status = ItemStatus.DEPLETED.value
        item.depleted_at = now
        item._write_balance(Decimal('0'))

    def _restore(self, item: StockItem, now: datetime, occurred_at: Optional[datetime], note: Optional[str]):
        # Quantity is only ever given back by deleting usage events
        item.status = ItemStatus.OPENED.value
        item.depleted_at = None
        if item.opened_at is None:
            item.opened_at = now

    def _start_use(self, item: StockItem, now: datetime, occurred_at: Optional[datetime], note: Optional[str]):
        item.status = ItemStatus.IN_USE.value
        item.in_use_since = now

    def _stop_use(self, item: StockItem, now: datetime, occurred_at: Optional[datetime], note: Optional[str]):
        duration = None
        if item.in_use_since is not None:
            duration = whole_minutes_between(item.in_use_since, now)
        self.ledger.append_session_event(item, now, duration, note)
        item.status = ItemStatus.AVAILABLE.value
        item.in_use_since = None
