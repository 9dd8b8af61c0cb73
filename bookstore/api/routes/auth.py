"""Auth Routes - register, login, logout, and account deletion.

Invariants:
    - register/login are the only user routes without an Access-Token
    - logout and account deletion resolve the token first
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookstore.api.dependencies import get_current_user, get_password_hasher
from bookstore.core.domain_types import UserIdentity
from bookstore.infrastructure.database import get_db
from bookstore.infrastructure.password_hasher import PasswordHasher
from bookstore.schemas.auth import Credentials, MessageResponse, TokenResponse
from bookstore.services.auth_service import AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register", response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: Credentials,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Create an account (zero balance) and sign it in."""
    token = await AuthService(db, hasher).register(body.username, body.password)
    return TokenResponse(access_token=token)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: Credentials,
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Exchange credentials for a fresh access token."""
    token = await AuthService(db, hasher).login(body.username, body.password)
    return TokenResponse(access_token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    user: UserIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    await AuthService(db, hasher).logout(user)
    return MessageResponse(message="Signed out successfully")


@router.delete("/account", response_model=MessageResponse)
async def delete_account(
    user: UserIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Delete the signed-in account together with its owned books."""
    await AuthService(db, hasher).delete_account(user)
    return MessageResponse(message="Deleted user successfully")
