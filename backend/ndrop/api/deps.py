from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordBearer
from sqlmodel import select

from ndrop.core.config import settings
from ndrop.core.security import verify_token
from ndrop.db import SessionDep
from ndrop.models import AdminAccount, User
from ndrop.services.ai_client import RecommendationRanker, get_ai_client

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login")
admin_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    session: SessionDep,
    token: str = Depends(oauth2_scheme),
) -> User:
    try:
        payload = verify_token(token, token_type="access")
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise _unauthorized("Could not validate credentials") from None

    user = session.exec(select(User).where(User.id == user_id)).one_or_none()
    if not user or not user.is_active:
        raise _unauthorized("Inactive or missing user")
    return user


@dataclass(frozen=True)
class AdminContext:
    """Identity carried by a verified admin token."""

    admin_id: UUID
    username: str
    role_id: int


def get_current_admin(
    session: SessionDep,
    credentials: HTTPAuthorizationCredentials | None = Depends(admin_bearer),
) -> AdminContext:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Admin token required")
    try:
        payload = verify_token(credentials.credentials, token_type="admin")
        admin_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise _unauthorized("Invalid admin token") from None

    if payload.get("role_id") != settings.ADMIN_ROLE_ID:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    if session.get(AdminAccount, admin_id) is None:
        raise _unauthorized("Admin account not found")
    return AdminContext(admin_id=admin_id, username=payload.get("username", ""), role_id=payload["role_id"])


CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentAdmin = Annotated[AdminContext, Depends(get_current_admin)]
AIClientDep = Annotated[RecommendationRanker, Depends(get_ai_client)]
