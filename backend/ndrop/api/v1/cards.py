from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from ndrop.api.deps import CurrentUser
from ndrop.db import SessionDep
from ndrop.schemas import BusinessCardRead
from ndrop.services import profiles

router = APIRouter()


@router.get("/{card_id}", response_model=BusinessCardRead, summary="View a business card")
def get_business_card(card_id: UUID, session: SessionDep, current_user: CurrentUser) -> BusinessCardRead:
    return profiles.get_card_for_viewer(session, card_id, current_user.id)
