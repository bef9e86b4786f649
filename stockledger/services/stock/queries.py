"""
Owner-scoped lookups shared by the stock services

Every query filters on owner_id, so a record that belongs to another
tenant is indistinguishable from one that does not exist.
"""
from sqlalchemy.orm import Session

from stockledger.core.exceptions import NotFoundError
from stockledger.models.stock import StockItem, UsageEvent


def load_item(db: Session, owner_id: str, item_id: str, for_update: bool = False) -> StockItem:
    """
    Fetch one stock item for its owner

    With ``for_update`` the row is locked (SELECT ... FOR UPDATE) until the
    current transaction ends, which serializes concurrent balance writes.
    """
    query = db.query(StockItem).filter(
        StockItem.id == item_id,
        StockItem.owner_id == owner_id
    )
    if for_update:
        query = query.with_for_update(of=StockItem).populate_existing()

    item = query.first()
    if item is None:
        raise NotFoundError("Stock item not found")
    return item


def load_event(db: Session, owner_id: str, event_id: str, for_update: bool = False) -> UsageEvent:
    """
    Fetch one usage event for its owner

    With ``for_update`` the row is locked and re-read from the database, so
    an edit committed by another transaction replaces any copy already held
    in this session.
    """
    query = db.query(UsageEvent).filter(
        UsageEvent.id == event_id,
        UsageEvent.owner_id == owner_id
    )
    if for_update:
        query = query.with_for_update().populate_existing()

    event = query.first()
    if event is None:
        raise NotFoundError("Usage record not found")
    return event
