"""Authentication endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import logging

from beatmarket.db.base import get_db
from beatmarket.models.user import User
from beatmarket.repositories.user_repo import UserRepository
from beatmarket.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    TokenResponse,
)
from beatmarket.core.security import create_access_token, hash_password, needs_rehash, verify_password
from beatmarket.api.deps import get_current_user
from beatmarket.core.rate_limiter import get_client_ip

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_response(user: User) -> TokenResponse:
    access_token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return TokenResponse(user=UserResponse.model_validate(user), access_token=access_token)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Create a customer account.

    - Email is stored lower-cased and must be unique
    - Returns an access token so the client is logged in immediately
    """
    users = UserRepository(db)
    if users.get_by_email(request.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email already exists"
        )

    user = users.create_user(name=request.name, email=request.email, password=request.password)
    logger.info(f"User registered: {user.id}")
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    users = UserRepository(db)
    user = users.get_by_email(request.email)

    if user is None or not verify_password(request.password, user.hashed_password):
        logger.warning(f"Failed login for {request.email} from {get_client_ip(http_request)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    if needs_rehash(user.hashed_password):
        user.hashed_password = hash_password(request.password)
        db.commit()

    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user profile."""
    return current_user
