"""
Stock Items API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.stock import (
    BatchCreateResponse, ItemKind, ItemStatus, StockItemBatchCreate,
    StockItemResponse, StockItemUpdate, TransitionRequest
)
from stockledger.services.stock import StockItemService, LifecycleService, describe_item

router = APIRouter()


@router.post("/batch", response_model=BatchCreateResponse, status_code=status.HTTP_201_CREATED)
def create_batch(
    batch: StockItemBatchCreate,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Create ``quantity`` identical stock items in one all-or-nothing step.
    """
    items = StockItemService(db).batch_create(owner_id, batch.model_dump())
    return BatchCreateResponse(
        items=[describe_item(item) for item in items],
        count=len(items)
    )


@router.get("/", response_model=List[StockItemResponse])
def list_stock_items(
    kind: Optional[ItemKind] = None,
    item_status: Optional[ItemStatus] = Query(None, alias="status"),
    category_id: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Retrieve the caller's stock items with optional filtering.
    """
    items = StockItemService(db).list_items(
        owner_id,
        kind=kind.value if kind else None,
        status=item_status.value if item_status else None,
        category_id=category_id
    )
    return [describe_item(item) for item in items]


@router.get("/{item_id}", response_model=StockItemResponse)
def get_stock_item(
    item_id: str,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    return describe_item(StockItemService(db).get_item(owner_id, item_id))


@router.patch("/{item_id}", response_model=StockItemResponse)
def update_stock_item(
    item_id: str,
    update: StockItemUpdate,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Update descriptive and alert fields. Quantities are not editable here.
    """
    item = StockItemService(db).update_item(owner_id, item_id, update.model_dump(exclude_unset=True))
    return describe_item(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_stock_item(
    item_id: str,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    StockItemService(db).delete_item(owner_id, item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{item_id}/transitions", response_model=StockItemResponse)
def transition_stock_item(
    item_id: str,
    request: TransitionRequest,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Apply a lifecycle action: open, deplete, restore, start_use or stop_use.
    """
    item = LifecycleService(db).transition(
        owner_id, item_id, request.action,
        occurred_at=request.occurred_at,
        note=request.note
    )
    return describe_item(item)
