"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter

from stockledger.api.v1.stock import items, usage, alerts

api_router = APIRouter()

api_router.include_router(items.router, prefix="/items", tags=["stock-items"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
