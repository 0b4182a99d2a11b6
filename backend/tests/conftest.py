import os
import tempfile
from datetime import timedelta

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REALTIME_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="ndrop-uploads-"))
os.environ.setdefault("NEXT_PUBLIC_BASE_URL", "https://ndrop.example.com")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from ndrop.core.timeutils import utcnow
from ndrop.db import get_session, init_db
from ndrop.main import app
from ndrop.models import Event, EventParticipant, User
from ndrop.services import profiles
from ndrop.services.accounts import create_admin_account
from ndrop.services.events import generate_event_code


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make_user(name=None, **profile_fields):
        counter["n"] += 1
        email = f"user{counter['n']}@example.com"
        user = User(email=email, hashed_password="not-used")
        session.add(user)
        session.commit()
        session.refresh(user)
        fields = {"email": email, "full_name": name or f"User {counter['n']}"}
        fields.update(profile_fields)
        profiles.update_profile(session, user.id, fields)
        return user

    return _make_user


@pytest.fixture
def make_event(session):
    def _make_event(title="Networking Night", starts_in=timedelta(hours=-1), duration=timedelta(hours=3), **fields):
        start = utcnow() + starts_in
        event = Event(
            title=title,
            start_date=start,
            end_date=start + duration,
            event_code=generate_event_code(),
            **fields,
        )
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return _make_event


@pytest.fixture
def add_participant(session):
    def _add(event, user, status="confirmed"):
        participant = EventParticipant(event_id=event.id, user_id=user.id, status=status)
        session.add(participant)
        if status == "confirmed":
            event.current_participants += 1
            session.add(event)
        session.commit()
        session.refresh(participant)
        return participant

    return _add


@pytest.fixture
def admin(session):
    return create_admin_account(session, "organizer", "organizer-pass", "Organizer")

