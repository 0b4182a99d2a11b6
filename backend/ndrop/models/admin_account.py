from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from ndrop.core.timeutils import utcnow


class AdminAccount(SQLModel, table=True):
    """Organizer account, authenticated separately from participants."""

    __tablename__ = "admin_accounts"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    username: str = Field(max_length=100, unique=True, index=True)
    hashed_password: str = Field(max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    role_id: int = Field(default=2, foreign_key="roles.id")
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
