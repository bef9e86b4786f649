"""Stock Ledger Schemas"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
import re

HEX_COLOR = re.compile(r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$')


# Enums
class ItemKind(str, Enum):
    CONSUMABLE = "consumable"
    DURABLE = "durable"


class ItemStatus(str, Enum):
    UNOPENED = "unopened"
    OPENED = "opened"
    DEPLETED = "depleted"
    AVAILABLE = "available"
    IN_USE = "in_use"


class DisplayStatus(str, Enum):
    UNOPENED = "unopened"
    OPENED = "opened"
    DEPLETED = "depleted"
    AVAILABLE = "available"
    IN_USE = "in_use"
    LOW_STOCK = "low_stock"


class LifecycleAction(str, Enum):
    OPEN = "open"
    DEPLETE = "deplete"
    RESTORE = "restore"
    START_USE = "start_use"
    STOP_USE = "stop_use"


class AlertType(str, Enum):
    LOW_STOCK = "low_stock"
    REPLACEMENT_DUE = "replacement_due"


def _check_hex(v: Optional[str]) -> Optional[str]:
    if v is not None and not HEX_COLOR.match(v):
        raise ValueError("Invalid color format")
    return v


# Item Schemas
class StockItemAttributes(BaseModel):
    category_id: str
    brand_id: Optional[str] = None
    kind: ItemKind = ItemKind.CONSUMABLE
    name: str = Field(default='', max_length=100)
    color: str = Field(default='', max_length=50)
    color_hex: Optional[str] = None
    total_quantity: Decimal = Field(..., gt=0, description="Quantity per unit, e.g. grams per spool")
    price: Decimal = Field(default=Decimal('0'), ge=0)
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    low_stock_threshold: Optional[Decimal] = Field(None, ge=0)
    replacement_cycle_days: Optional[int] = Field(None, gt=0)
    last_replaced_at: Optional[datetime] = None

    @field_validator("color_hex")
    @classmethod
    def validate_color_hex(cls, v):
        return _check_hex(v)


class StockItemBatchCreate(StockItemAttributes):
    quantity: int = Field(1, description="Number of units to create")
    is_opened: bool = False
    opened_at: Optional[datetime] = None


class StockItemUpdate(BaseModel):
    """Descriptive fields only; balance and lifecycle fields are not writable here"""
    model_config = ConfigDict(extra='forbid')

    brand_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    color_hex: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    low_stock_threshold: Optional[Decimal] = Field(None, ge=0)
    replacement_cycle_days: Optional[int] = Field(None, gt=0)
    last_replaced_at: Optional[datetime] = None

    @field_validator("color_hex")
    @classmethod
    def validate_color_hex(cls, v):
        return _check_hex(v)


class StockItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    category_id: str
    brand_id: Optional[str] = None
    kind: ItemKind
    name: str
    color: Optional[str] = None
    color_hex: Optional[str] = None
    price: Optional[Decimal] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None
    total_quantity: Decimal
    remaining_quantity: Decimal
    status: ItemStatus
    display_status: Optional[DisplayStatus] = None
    opened_at: Optional[datetime] = None
    opened_days: Optional[int] = None
    depleted_at: Optional[datetime] = None
    in_use_since: Optional[datetime] = None
    last_replaced_at: Optional[datetime] = None
    low_stock_threshold: Optional[Decimal] = None
    replacement_cycle_days: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BatchCreateResponse(BaseModel):
    items: List[StockItemResponse]
    count: int


class TransitionRequest(BaseModel):
    action: LifecycleAction
    occurred_at: Optional[datetime] = Field(None, description="Explicit opened_at for 'open'")
    note: Optional[str] = Field(None, description="Annotation for the stop_use session event")


# Usage Schemas
class UsageEventCreate(BaseModel):
    item_id: str
    amount: Decimal
    occurred_at: datetime
    note: Optional[str] = None
    project_name: Optional[str] = Field(None, max_length=100)


class UsageEventUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    amount: Optional[Decimal] = None
    occurred_at: Optional[datetime] = None
    note: Optional[str] = None
    project_name: Optional[str] = Field(None, max_length=100)


class UsageEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    item_id: str
    amount: Decimal
    occurred_at: datetime
    note: Optional[str] = None
    project_name: Optional[str] = None
    duration_minutes: Optional[int] = None
    created_at: Optional[datetime] = None


class UsageResult(BaseModel):
    event: UsageEventResponse
    item: StockItemResponse
    warning: Optional[str] = None


# Alert Schemas
class Alert(BaseModel):
    id: str
    item_id: str
    item_name: str
    category_name: str = ''
    alert_type: AlertType
    message: str
    remaining_quantity: Decimal
    days_since_replacement: Optional[int] = None
