from __future__ import annotations

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session, SQLModel, create_engine

from ndrop.core.config import settings
from ndrop.models import Role


def _build_engine():
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(settings.DATABASE_URL, connect_args=connect_args)


engine = _build_engine()

DEFAULT_ROLES = {
    settings.USER_ROLE_ID: "user",
    settings.ADMIN_ROLE_ID: "admin",
}


def seed_roles(session: Session) -> None:
    for role_id, name in DEFAULT_ROLES.items():
        if session.get(Role, role_id) is None:
            session.add(Role(id=role_id, name=name))
    session.commit()


def init_db(bind=None) -> None:
    """Create database tables in environments without migrations."""
    bind = bind or engine
    SQLModel.metadata.create_all(bind=bind)
    with Session(bind) as session:
        seed_roles(session)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]
