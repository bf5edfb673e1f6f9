"""Dependencies for API endpoints."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from beatmarket.db.base import get_db
from beatmarket.models.user import User
from beatmarket.models.enums import UserRole
from beatmarket.core.security import decode_token

security = HTTPBearer(auto_error=False)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(token: str, db: Session) -> Optional[User]:
    payload = decode_token(token)
    if payload is None or payload.get("type") != "access":
        return None

    try:
        user_id = UUID(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    return db.query(User).filter(User.id == user_id).first()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token."""
    if credentials is None:
        raise _credentials_exception()

    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise _credentials_exception()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Authenticated user if a valid token was sent, else None (guest checkout)."""
    if credentials is None:
        return None

    user = _user_from_token(credentials.credentials, db)
    if user is None:
        raise _credentials_exception()
    return user if user.is_active else None


async def get_current_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Verify user is an admin."""
    if current_user.role != UserRole.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
