"""
Alerts API endpoint
"""

from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.stock import Alert
from stockledger.services.stock import AlertService

router = APIRouter()


@router.get("/", response_model=List[Alert])
def get_alerts(
    db: Session = Depends(deps.get_db),
    owner_id: str = Depends(deps.get_current_owner)
):
    """
    Low stock and replacement-due alerts, computed on request.
    """
    return AlertService(db).get_alerts(owner_id)
