from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow


class Role(SQLModel, table=True):
    """Role lookup table (1 = user, 2 = admin)."""

    __tablename__ = "roles"

    id: int = Field(primary_key=True)
    name: str = Field(max_length=50, unique=True)


class User(SQLModel, table=True):
    """Participant account."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: str = Field(max_length=255, unique=True, index=True)
    hashed_password: str = Field(max_length=255)
    is_active: bool = Field(default=True)
    role_id: int = Field(default=1, foreign_key="roles.id")
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
