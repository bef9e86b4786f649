"""
Stock Item Service
Batch creation, queries and descriptive maintenance of stock items
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Dict

from sqlalchemy import or_
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import (
    InvalidArgumentError, InvalidQuantityError, InvalidReferenceError
)
from stockledger.core.logging import get_logger
from stockledger.core.timeutils import utcnow, parse_timestamp
from stockledger.models.stock import StockItem
from stockledger.models.taxonomy import Category, Brand
from stockledger.schemas.stock import ItemKind, StockItemResponse, HEX_COLOR
from stockledger.services.stock.lifecycle import (
    initial_status, display_status, opened_days, guard_delete
)
from stockledger.services.stock.queries import load_item

logger = get_logger("stock.items")

# Fields a caller may change after creation. Balance and lifecycle fields
# are absent on purpose: they move only through the ledger and state machine.
UPDATABLE_FIELDS = (
    'brand_id', 'name', 'color', 'color_hex', 'price', 'purchase_date', 'notes',
    'low_stock_threshold', 'replacement_cycle_days', 'last_replaced_at',
)

# Updatable fields backed by NOT NULL columns
REQUIRED_FIELDS = ('name',)


def _decimal(value, field: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidArgumentError(f"Invalid {field}")
    if not result.is_finite():
        raise InvalidArgumentError(f"Invalid {field}")
    return result


def _optional_timestamp(value, field: str) -> Optional[datetime]:
    return None if value is None else parse_timestamp(value, field)


def describe_item(item: StockItem, now: Optional[datetime] = None) -> StockItemResponse:
    """Response view of an item with its derived display fields"""
    response = StockItemResponse.model_validate(item)
    return response.model_copy(update={
        'display_status': display_status(item),
        'opened_days': opened_days(item, now),
    })


class StockItemService:
    """Stock item creation and maintenance, always scoped to one owner"""

    def __init__(self, db: Session):
        self.db = db

    def batch_create(self, owner_id: str, batch_data: Dict) -> List[StockItem]:
        """
        Create ``quantity`` identical items in one transaction

        Every unit gets its own id and starts with a full balance. Any
        validation or storage failure leaves no item behind.
        """
        try:
            count = int(batch_data.get('quantity', 1))
        except (TypeError, ValueError):
            raise InvalidQuantityError("Quantity must be a whole number")
        if count < 1:
            raise InvalidQuantityError("Quantity must be at least 1")
        if count > settings.MAX_BATCH_SIZE:
            raise InvalidQuantityError(f"Quantity cannot exceed {settings.MAX_BATCH_SIZE}")

        try:
            kind = ItemKind(batch_data.get('kind', ItemKind.CONSUMABLE))
        except ValueError:
            raise InvalidArgumentError("Invalid item kind")

        total = _decimal(batch_data.get('total_quantity'), 'total quantity')
        if total <= 0:
            raise InvalidQuantityError("Total quantity must be positive")
        price = _decimal(batch_data.get('price', 0) or 0, 'price')
        if price < 0:
            raise InvalidArgumentError("Price cannot be negative")

        color_hex = batch_data.get('color_hex')
        if color_hex and not HEX_COLOR.match(color_hex):
            raise InvalidArgumentError("Invalid color format")

        attrs = self._validated_policy_fields(batch_data)
        last_replaced_at = _optional_timestamp(batch_data.get('last_replaced_at'), 'replacement date')

        self._resolve_category(owner_id, batch_data.get('category_id'))
        if batch_data.get('brand_id'):
            self._resolve_brand(owner_id, batch_data['brand_id'])

        is_opened = bool(batch_data.get('is_opened')) and kind == ItemKind.CONSUMABLE
        opened_at = None
        if is_opened:
            opened_at = _optional_timestamp(batch_data.get('opened_at'), 'opened date') or utcnow()
        status = initial_status(kind, is_opened)

        items = []
        with unit_of_work(self.db):
            for _ in range(count):
                item = StockItem(
                    owner_id=owner_id,
                    category_id=batch_data['category_id'],
                    brand_id=batch_data.get('brand_id'),
                    kind=kind.value,
                    name=(batch_data.get('name') or '').strip(),
                    color=batch_data.get('color') or '',
                    color_hex=color_hex,
                    price=price,
                    purchase_date=batch_data.get('purchase_date'),
                    notes=batch_data.get('notes'),
                    total_quantity=total,
                    _remaining_quantity=total,
                    status=status.value,
                    opened_at=opened_at,
                    last_replaced_at=last_replaced_at,
                    **attrs
                )
                self.db.add(item)
                items.append(item)
            self.db.flush()

        logger.info(f"Created batch of {count} {kind.value} items for owner {owner_id}")
        return items

    def get_item(self, owner_id: str, item_id: str) -> StockItem:
        return load_item(self.db, owner_id, item_id)

    def list_items(
        self,
        owner_id: str,
        kind: Optional[str] = None,
        status: Optional[str] = None,
        category_id: Optional[str] = None
    ) -> List[StockItem]:
        query = self.db.query(StockItem).filter(StockItem.owner_id == owner_id)

        if kind:
            query = query.filter(StockItem.kind == ItemKind(kind).value)
        if status:
            query = query.filter(StockItem.status == status)
        if category_id:
            query = query.filter(StockItem.category_id == category_id)

        return query.order_by(StockItem.created_at.desc(), StockItem.id).all()

    def update_item(self, owner_id: str, item_id: str, update_data: Dict) -> StockItem:
        """Change descriptive and alert-policy fields of an item"""
        unknown = set(update_data) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Fields not editable: {', '.join(sorted(unknown))}")
        for field in REQUIRED_FIELDS:
            if field in update_data and update_data[field] is None:
                raise InvalidArgumentError(f"Field cannot be null: {field}")

        if update_data.get('color_hex') and not HEX_COLOR.match(update_data['color_hex']):
            raise InvalidArgumentError("Invalid color format")
        if update_data.get('price') is not None and _decimal(update_data['price'], 'price') < 0:
            raise InvalidArgumentError("Price cannot be negative")
        policy_fields = self._validated_policy_fields(update_data)

        with unit_of_work(self.db):
            item = load_item(self.db, owner_id, item_id, for_update=True)

            if update_data.get('brand_id'):
                self._resolve_brand(owner_id, update_data['brand_id'])

            for field, value in update_data.items():
                if field in policy_fields:
                    value = policy_fields[field]
                elif field == 'name':
                    value = value.strip()
                elif field == 'last_replaced_at':
                    value = _optional_timestamp(value, 'replacement date')
                setattr(item, field, value)

        logger.info(f"Item {item_id} updated: {', '.join(sorted(update_data))}")
        return item

    def delete_item(self, owner_id: str, item_id: str):
        """Delete an item together with its usage events"""
        with unit_of_work(self.db):
            item = load_item(self.db, owner_id, item_id, for_update=True)
            guard_delete(item)
            self.db.delete(item)

        logger.info(f"Item {item_id} deleted for owner {owner_id}")

    def _validated_policy_fields(self, data: Dict) -> Dict:
        fields = {}
        if data.get('low_stock_threshold') is not None:
            threshold = _decimal(data['low_stock_threshold'], 'low stock threshold')
            if threshold < 0:
                raise InvalidArgumentError("Low stock threshold cannot be negative")
            fields['low_stock_threshold'] = threshold
        if data.get('replacement_cycle_days') is not None:
            try:
                cycle = int(data['replacement_cycle_days'])
            except (TypeError, ValueError):
                raise InvalidArgumentError("Invalid replacement cycle")
            if cycle <= 0:
                raise InvalidArgumentError("Replacement cycle must be positive")
            fields['replacement_cycle_days'] = cycle
        return fields

    def _resolve_category(self, owner_id: str, category_id: Optional[str]) -> Category:
        category = None
        if category_id:
            category = self.db.query(Category).filter(
                Category.id == category_id,
                or_(Category.owner_id == owner_id, Category.is_preset.is_(True))
            ).first()
        if category is None:
            raise InvalidReferenceError("Category not found")
        return category

    def _resolve_brand(self, owner_id: str, brand_id: str) -> Brand:
        brand = self.db.query(Brand).filter(
            Brand.id == brand_id,
            Brand.owner_id == owner_id
        ).first()
        if brand is None:
            raise InvalidReferenceError("Brand not found")
        return brand
