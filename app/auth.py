import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, SECRET_KEY
from .database import get_db
from .models import Business
from .shared.errors import ForbiddenError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_access_token(owner_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a bearer token for an owner.

    Args:
        owner_id: Stored as the ``sub`` claim
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode({"sub": owner_id, "exp": expire}, SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a bearer token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


async def get_current_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Owner identity from the bearer token's ``sub`` claim"""
    if credentials is None:
        raise HTTPException(
            status_code=401, detail="Not authenticated", headers={"WWW-Authenticate": "Bearer"}
        )

    payload = verify_access_token(credentials.credentials)
    owner_id = payload.get("sub") if payload else None
    if not owner_id:
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return owner_id


async def get_current_business(
    owner_id: str = Depends(get_current_owner_id),
    db: Session = Depends(get_db),
) -> Business:
    """
    Tenant for the authenticated owner.
    Use this dependency for every route that reads or writes tenant data.
    """
    business = db.query(Business).filter(Business.owner_id == owner_id).first()
    if not business or not business.is_onboarded:
        logger.warning(f"Owner {owner_id} accessed a tenant route without an onboarded business")
        raise ForbiddenError("Business onboarding required")
    return business
