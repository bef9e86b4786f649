"""
Usage Ledger Service
Records, edits and removes usage events. Each mutation adjusts the parent
item's running balance in the same transaction as the event row.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Dict, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import InvalidAmountError, InvalidArgumentError
from stockledger.core.logging import get_logger
from stockledger.core.timeutils import utcnow, as_utc, parse_timestamp
from stockledger.models.stock import StockItem, UsageEvent
from stockledger.schemas.stock import ItemKind, ItemStatus
from stockledger.services.stock.overuse_policy import policy_for
from stockledger.services.stock.queries import load_item, load_event

logger = get_logger("stock.ledger")

EDITABLE_FIELDS = ('amount', 'occurred_at', 'note', 'project_name')


@dataclass
class UsageOutcome:
    """Result of a ledger write: the event, its item, and any over-use warning"""
    event: UsageEvent
    item: StockItem
    warning: Optional[str] = None


def _parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError("Amount used must be a number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Amount used must be positive")
    return amount


class UsageLedgerService:
    """
    Usage event ledger

    The item's remaining quantity is a running balance: every method here
    reads it under a row lock, applies a delta and writes it back together
    with the event change. It is never recomputed from event history.
    """

    def __init__(self, db: Session):
        self.db = db

    def record_usage(self, owner_id: str, usage_data: Dict) -> UsageOutcome:
        """
        Record a consumption against one item

        Consumable over-use is clamped to zero and returned with a warning;
        durable over-use raises ExceedsStockError. A consumable whose balance
        reaches zero is moved to ``depleted``.
        """
        amount = _parse_amount(usage_data.get('amount'))
        occurred_at = parse_timestamp(usage_data.get('occurred_at'), 'usage date')

        with unit_of_work(self.db):
            item = load_item(self.db, owner_id, usage_data.get('item_id'), for_update=True)
            remaining = Decimal(str(item.remaining_quantity))

            warning = policy_for(item.kind).check(item.id, amount, remaining)

            event = UsageEvent(
                owner_id=owner_id,
                item_id=item.id,
                amount=amount,
                occurred_at=occurred_at,
                note=usage_data.get('note'),
                project_name=usage_data.get('project_name'),
            )
            self.db.add(event)
            new_remaining = item._write_balance(remaining - amount)
            self._mark_depleted_if_empty(item, new_remaining)

        logger.info(
            f"Usage recorded on item {item.id}: amount {amount}, remaining {remaining} -> {new_remaining}"
        )
        return UsageOutcome(event=event, item=item, warning=warning)

    def update_usage(self, owner_id: str, event_id: str, update_data: Dict) -> UsageOutcome:
        """
        Edit an event and re-apply the amount difference to its item

        The over-use check runs against the increase only, so shrinking an
        event never warns or fails.
        """
        unknown = set(update_data) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Fields not editable: {', '.join(sorted(unknown))}")

        new_amount = None
        if update_data.get('amount') is not None:
            new_amount = _parse_amount(update_data['amount'])
        new_occurred_at = None
        if update_data.get('occurred_at') is not None:
            new_occurred_at = parse_timestamp(update_data['occurred_at'], 'usage date')

        warning = None
        with unit_of_work(self.db):
            event, item = self._lock_event(owner_id, event_id)
            remaining = Decimal(str(item.remaining_quantity))
            old_amount = Decimal(str(event.amount))

            delta = Decimal('0') if new_amount is None else new_amount - old_amount
            if delta > 0:
                warning = policy_for(item.kind).check(item.id, delta, remaining)

            if new_amount is not None:
                event.amount = new_amount
            if new_occurred_at is not None:
                event.occurred_at = new_occurred_at
            if 'note' in update_data:
                event.note = update_data['note']
            if 'project_name' in update_data:
                event.project_name = update_data['project_name']

            new_remaining = item._write_balance(remaining - delta)
            if delta > 0:
                self._mark_depleted_if_empty(item, new_remaining)

        logger.info(
            f"Usage {event_id} updated on item {item.id}: delta {delta}, remaining {remaining} -> {new_remaining}"
        )
        return UsageOutcome(event=event, item=item, warning=warning)

    def delete_usage(self, owner_id: str, event_id: str) -> StockItem:
        """
        Remove an event and give its amount back to the item

        The restored balance never exceeds the item's total quantity. The
        item's lifecycle status is left alone.
        """
        with unit_of_work(self.db):
            event, item = self._lock_event(owner_id, event_id)
            remaining = Decimal(str(item.remaining_quantity))
            amount = Decimal(str(event.amount))

            self.db.delete(event)
            new_remaining = item._write_balance(remaining + amount)

        logger.info(
            f"Usage {event_id} deleted on item {item.id}: restored {amount}, remaining {remaining} -> {new_remaining}"
        )
        return item

    def append_session_event(
        self,
        item: StockItem,
        occurred_at: datetime,
        duration_minutes: Optional[int],
        note: Optional[str] = None
    ) -> UsageEvent:
        """
        Add the audit event for a finished durable use session

        Does not commit: the caller's lifecycle transition owns the
        transaction. A session consumes no stock, so the amount is zero and
        the balance is untouched.
        """
        event = UsageEvent(
            owner_id=item.owner_id,
            item_id=item.id,
            amount=Decimal('0'),
            occurred_at=as_utc(occurred_at),
            note=note,
            duration_minutes=duration_minutes,
        )
        self.db.add(event)
        return event

    def get_usage(self, owner_id: str, event_id: str) -> UsageEvent:
        return load_event(self.db, owner_id, event_id)

    def list_usage(
        self,
        owner_id: str,
        item_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[UsageEvent]:
        """Usage events for an owner, newest first"""
        query = self.db.query(UsageEvent).filter(UsageEvent.owner_id == owner_id)

        if item_id:
            query = query.filter(UsageEvent.item_id == item_id)
        if start:
            query = query.filter(UsageEvent.occurred_at >= as_utc(start))
        if end:
            query = query.filter(UsageEvent.occurred_at <= as_utc(end))

        return query.order_by(UsageEvent.occurred_at.desc()).all()

    def total_usage(self, owner_id: str, item_id: str) -> Decimal:
        """Sum of live event amounts for one item"""
        total = self.db.query(func.sum(UsageEvent.amount)).filter(
            UsageEvent.owner_id == owner_id,
            UsageEvent.item_id == item_id
        ).scalar()
        return Decimal(str(total)) if total is not None else Decimal('0')

    def _lock_event(self, owner_id: str, event_id: str) -> Tuple[UsageEvent, StockItem]:
        """
        Lock the parent item, then the event, and return both freshly read

        The item lock comes first so every writer takes locks in the same
        order. The event is re-read after it: an amount another transaction
        committed while this one waited is the one the delta starts from, and
        an event deleted meanwhile raises NotFoundError.
        """
        event = load_event(self.db, owner_id, event_id)
        item = load_item(self.db, owner_id, event.item_id, for_update=True)
        event = load_event(self.db, owner_id, event_id, for_update=True)
        return event, item

    def _mark_depleted_if_empty(self, item: StockItem, new_remaining: Decimal):
        if item.kind != ItemKind.CONSUMABLE.value or new_remaining > 0:
            return
        if item.status != ItemStatus.DEPLETED.value:
            item.status = ItemStatus.DEPLETED.value
            item.depleted_at = utcnow()
            logger.info(f"Item {item.id} depleted by usage")
