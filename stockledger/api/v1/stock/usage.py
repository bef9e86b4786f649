"""
Usage Events API endpoints
"""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.stock import (
    UsageEventCreate, UsageEventResponse, UsageEventUpdate, UsageResult
)
from stockledger.services.stock import UsageLedgerService, UsageOutcome, describe_item

router = APIRouter()


def _result(outcome: UsageOutcome) -> UsageResult:
    return UsageResult(
        event=UsageEventResponse.model_validate(outcome.event),
        item=describe_item(outcome.item),
        warning=outcome.warning
    )


@router.get("/", response_model=List[UsageEventResponse])
def list_usage(
    item_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Usage events for the caller, newest first.
    """
    return UsageLedgerService(db).list_usage(owner_id, item_id=item_id, start=start, end=end)


@router.get("/{event_id}", response_model=UsageEventResponse)
def get_usage(
    event_id: str,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    return UsageLedgerService(db).get_usage(owner_id, event_id)


@router.post("/", response_model=UsageResult, status_code=status.HTTP_201_CREATED)
def record_usage(
    usage: UsageEventCreate,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Record usage against an item. Over-use of a consumable succeeds with a
    warning; over-use of a durable item is rejected.
    """
    return _result(UsageLedgerService(db).record_usage(owner_id, usage.model_dump()))


@router.patch("/{event_id}", response_model=UsageResult)
def update_usage(
    event_id: str,
    update: UsageEventUpdate,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    outcome = UsageLedgerService(db).update_usage(owner_id, event_id, update.model_dump(exclude_unset=True))
    return _result(outcome)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_usage(
    event_id: str,
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    UsageLedgerService(db).delete_usage(owner_id, event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
