"""Participant and organizer accounts."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ndrop.core.config import settings
from ndrop.core.security import get_password_hash, verify_password
from ndrop.models import AdminAccount, User
from ndrop.services.errors import ConflictError, ValidationError
from ndrop.services.profiles import apply_profile_changes

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == normalize_email(email))).one_or_none()


def register_user(session: Session, email: str, password: str, full_name: str | None = None) -> User:
    """Create the account together with its profile and business card."""
    email = normalize_email(email)
    if get_user_by_email(session, email) is not None:
        raise ConflictError("Email is already registered", reason="email_taken")

    user = User(email=email, hashed_password=get_password_hash(password), role_id=settings.USER_ROLE_ID)
    session.add(user)
    try:
        session.flush()
        apply_profile_changes(session, user.id, {"email": email, "full_name": full_name})
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Email is already registered", reason="email_taken") from None
    session.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def authenticate_user(session: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(session, email)
    if user is None or not verify_password(password, user.hashed_password):
        return None
    return user


def authenticate_admin(session: Session, username: str, password: str) -> AdminAccount | None:
    admin = session.exec(select(AdminAccount).where(AdminAccount.username == username.strip())).one_or_none()
    if admin is None or not verify_password(password, admin.hashed_password):
        return None
    return admin


def create_admin_account(
    session: Session,
    username: str,
    password: str,
    display_name: str | None = None,
) -> AdminAccount:
    username = username.strip()
    if not username or not password:
        raise ValidationError("Username and password are required")
    existing = session.exec(select(AdminAccount).where(AdminAccount.username == username)).one_or_none()
    if existing:
        raise ConflictError(f"Admin {username} already exists")

    admin = AdminAccount(
        username=username,
        hashed_password=get_password_hash(password),
        display_name=display_name,
        role_id=settings.ADMIN_ROLE_ID,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Created admin account %s", admin.username)
    return admin
