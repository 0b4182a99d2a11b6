from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from ndrop.core.security import create_access_token, create_refresh_token, verify_token
from ndrop.db import SessionDep
from ndrop.models import User
from ndrop.schemas import RefreshTokenRequest, TokenPair, UserCreate, UserLogin, UserRead
from ndrop.services import accounts

router = APIRouter()


def _token_pair(user_id: UUID | str) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
    )


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register a participant account",
)
def register(payload: UserCreate, session: SessionDep) -> User:
    return accounts.register_user(session, payload.email, payload.password, payload.full_name)


@router.post("/login", response_model=TokenPair, summary="Exchange credentials for tokens")
def login(payload: UserLogin, session: SessionDep) -> TokenPair:
    user = accounts.authenticate_user(session, payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")
    return _token_pair(user.id)


@router.post("/refresh", response_model=TokenPair, summary="Rotate the token pair")
def refresh(payload: RefreshTokenRequest, session: SessionDep) -> TokenPair:
    try:
        claims = verify_token(payload.refresh_token, token_type="refresh")
        user_id = UUID(claims.get("sub") or "")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token") from None

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return _token_pair(user.id)
