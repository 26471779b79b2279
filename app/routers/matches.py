import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.db.db import get_session
from app.errors import NotFoundError
from app.models.enums import UserRole
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.models.user import User
from app.services.matching import MAX_MATCHES, MatchCandidate, find_matches_for_found_item, find_matches_for_lost_item
from app.services.redaction import redact_item
from app.utils.auth_helper import get_current_db_user

router = APIRouter()


def _render(matches: List[MatchCandidate], viewer_id: int, side: str) -> List[dict]:
    # side is the candidate side shown to the viewer
    return [
        {
            "score": m.score,
            "explanation": m.explanation,
            "item": redact_item(m.found_item if side == "found" else m.lost_item, viewer_id),
        }
        for m in matches
    ]


@router.get("/lost/{item_id}")
async def get_matches_for_lost_item(
    item_id: uuid.UUID,
    limit: Optional[int] = Query(MAX_MATCHES, ge=1, le=50),
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    lost_item = session.get(LostItem, item_id)
    if not lost_item:
        raise NotFoundError("Item not found")

    if lost_item.user_id != user.id and user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Unauthorized to view matches for this item")

    matches = find_matches_for_lost_item(session, lost_item, limit)

    return {"matches": _render(matches, user.id, "found")}


@router.get("/found/{item_id}")
async def get_matches_for_found_item(
    item_id: uuid.UUID,
    limit: Optional[int] = Query(MAX_MATCHES, ge=1, le=50),
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    found_item = session.get(FoundItem, item_id)
    if not found_item:
        raise NotFoundError("Item not found")

    # Cooperative staff help finders reach owners
    staff_roles = (UserRole.ADMIN.value, UserRole.COOP_STAFF.value)
    if found_item.user_id != user.id and user.role not in staff_roles:
        raise HTTPException(status_code=403, detail="Unauthorized to view matches for this item")

    matches = find_matches_for_found_item(session, found_item, limit)

    return {"matches": _render(matches, user.id, "lost")}
