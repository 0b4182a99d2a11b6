import pytest
from sqlmodel import select

from ndrop.models import BusinessCard, User, UserProfile
from ndrop.services import accounts
from ndrop.services.errors import ConflictError, ValidationError


def test_register_creates_user_profile_and_card(session):
    user = accounts.register_user(session, "  New@Example.com ", "secret-pass", "New Person")

    assert user.email == "new@example.com"
    assert session.get(UserProfile, user.id).full_name == "New Person"
    card = session.exec(select(BusinessCard).where(BusinessCard.user_id == user.id)).one()
    assert card.full_name == "New Person"


def test_failed_profile_step_leaves_no_account(session, monkeypatch):
    def broken_profile(*args, **kwargs):
        raise ValidationError("profile rejected")

    monkeypatch.setattr(accounts, "apply_profile_changes", broken_profile)

    with pytest.raises(ValidationError):
        accounts.register_user(session, "half@example.com", "secret-pass", "Half")
    session.rollback()

    assert session.exec(select(User)).all() == []
    assert session.exec(select(UserProfile)).all() == []


def test_duplicate_email_is_a_conflict(session):
    accounts.register_user(session, "dup@example.com", "secret-pass")

    with pytest.raises(ConflictError) as excinfo:
        accounts.register_user(session, "DUP@example.com", "other-pass")

    assert excinfo.value.reason == "email_taken"
