"""
Stock Ledger Models
SQLAlchemy models for stock items and their usage events
"""
import uuid
from decimal import Decimal

from sqlalchemy import (
    Column, String, Integer, Numeric, Date, DateTime, Text,
    ForeignKey, CheckConstraint, Index
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockledger.core.config import settings
from stockledger.core.database import Base

QUANTITY = Numeric(12, settings.QUANTITY_DECIMAL_PLACES)


def _new_id() -> str:
    return str(uuid.uuid4())


class StockItem(Base):
    """
    Stock Item - one spool, bottle or accessory unit

    ``remaining_quantity`` is read-only on the instance. The running balance
    is written only through ``_write_balance`` by the usage ledger and the
    lifecycle service, so the balance and the event log move together.
    """
    __tablename__ = "stock_items"

    # Identity
    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), nullable=False, index=True, doc="Owning tenant")
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    brand_id = Column(String(36), ForeignKey("brands.id", ondelete="RESTRICT"), nullable=True)
    kind = Column(String(12), nullable=False, doc="consumable or durable")

    # Descriptive attributes
    name = Column(String(100), nullable=False, default='')
    color = Column(String(50), default='')
    color_hex = Column(String(7))
    price = Column(Numeric(10, 2), default=Decimal('0.00'))
    purchase_date = Column(Date)
    notes = Column(Text)

    # Quantity
    total_quantity = Column(QUANTITY, nullable=False, doc="Quantity at purchase, immutable")
    _remaining_quantity = Column("remaining_quantity", QUANTITY, nullable=False, doc="Running balance")

    # Lifecycle
    status = Column(String(12), nullable=False)
    opened_at = Column(DateTime(timezone=True))
    depleted_at = Column(DateTime(timezone=True))
    in_use_since = Column(DateTime(timezone=True))
    last_replaced_at = Column(DateTime(timezone=True))

    # Alert policy
    low_stock_threshold = Column(QUANTITY, nullable=True)
    replacement_cycle_days = Column(Integer, nullable=True)

    # Audit Trail
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    # Relationships
    category = relationship("Category")
    brand = relationship("Brand")
    usage_events = relationship(
        "UsageEvent", back_populates="item",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("kind IN ('consumable', 'durable')", name='valid_kind'),
        CheckConstraint(
            "status IN ('unopened', 'opened', 'depleted', 'available', 'in_use')",
            name='valid_status'
        ),
        CheckConstraint("total_quantity > 0", name='positive_total'),
        CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= total_quantity",
            name='remaining_in_range'
        ),
        Index("ix_stock_items_owner_status", "owner_id", "status"),
    )

    @hybrid_property
    def remaining_quantity(self):
        return self._remaining_quantity

    def _write_balance(self, new_remaining) -> Decimal:
        """Store a new balance clamped to [0, total_quantity]"""
        value = max(Decimal('0'), min(Decimal(str(self.total_quantity)), Decimal(str(new_remaining))))
        self._remaining_quantity = value
        return value

    def __repr__(self):
        return (
            f"<StockItem(id='{self.id}', kind='{self.kind}', status='{self.status}', "
            f"remaining={self._remaining_quantity}/{self.total_quantity})>"
        )


class UsageEvent(Base):
    """
    Usage Event - one consumption record against one stock item

    The item reference is fixed at creation. ``owner_id`` is denormalized so
    every lookup can filter on the tenant without a join.
    """
    __tablename__ = "usage_events"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(36), nullable=False, index=True)
    item_id = Column(String(36), ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(QUANTITY, nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    note = Column(Text)
    project_name = Column(String(100))
    duration_minutes = Column(Integer, doc="Session length for durable stop-use events")
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp())

    item = relationship("StockItem", back_populates="usage_events")

    __table_args__ = (
        CheckConstraint("amount >= 0", name='non_negative_amount'),
        Index("ix_usage_events_owner_occurred", "owner_id", "occurred_at"),
    )

    def __repr__(self):
        return f"<UsageEvent(id='{self.id}', item_id='{self.item_id}', amount={self.amount})>"
