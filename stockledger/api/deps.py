"""
API Dependencies
Common dependencies for API endpoints
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from stockledger.core.database import get_db
from stockledger.core.security import verify_token

# Security scheme
security = HTTPBearer()

__all__ = ["get_db", "get_current_owner"]


async def get_current_owner(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> str:
    """
    Owner id of the caller, taken from the bearer token subject.
    """
    payload = verify_token(credentials.credentials)
    owner_id = payload.get("sub") if payload else None
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return str(owner_id)
