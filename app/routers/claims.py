import uuid
from typing import List
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from app.db.db import get_session
from app.models.user import User
from app.services import claims as claim_service
from app.services.handover import HandoverPoint
from app.utils.auth_helper import get_current_db_user
from app.utils.timeutils import utcnow

router = APIRouter()


class CreateClaimRequest(BaseModel):
    lost_item_id: uuid.UUID
    found_item_id: uuid.UUID


class VerifyRequest(BaseModel):
    answers: List[str]


class HandoverRequest(BaseModel):
    code: str


@router.post("/")
async def create_claim(
    payload: CreateClaimRequest,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    claim = claim_service.create_claim(session, user.id, payload.lost_item_id, payload.found_item_id, utcnow())

    return claim_service.get_claim_for_actor(session, claim.id, user)


@router.get("/mine")
async def get_my_claims(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    claims = claim_service.list_claims_for_user(session, user.id)

    return {
        "claims": [
            {
                "id": c.id,
                "status": c.status,
                "role": "claimant" if c.claimant_id == user.id else "finder",
                "lost_item_id": c.lost_item_id,
                "found_item_id": c.found_item_id,
                "created_at": c.created_at,
            }
            for c in claims
        ]
    }


@router.get("/{claim_id}")
async def get_claim(
    claim_id: uuid.UUID,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    return claim_service.get_claim_for_actor(session, claim_id, user)


@router.get("/{claim_id}/questions")
async def get_verification_questions(
    claim_id: uuid.UUID,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    return claim_service.get_verification_questions(session, claim_id, user.id)


@router.post("/{claim_id}/verify", response_model=claim_service.VerificationResult)
async def submit_verification(
    claim_id: uuid.UUID,
    payload: VerifyRequest,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    return claim_service.submit_verification(session, claim_id, user.id, payload.answers, utcnow())


@router.post("/{claim_id}/otp", response_model=claim_service.HandoverCode)
async def issue_handover_code(
    claim_id: uuid.UUID,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    return claim_service.issue_otp(session, claim_id, user.id, utcnow())


@router.post("/{claim_id}/confirm-handover")
async def confirm_handover(
    claim_id: uuid.UUID,
    payload: HandoverRequest,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    claim = claim_service.confirm_handover(session, claim_id, user.id, payload.code, utcnow())

    return {"ok": True, "status": claim.status}


@router.get("/{claim_id}/handover-locations", response_model=List[HandoverPoint])
async def get_handover_locations(
    claim_id: uuid.UUID,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    return claim_service.get_handover_locations(session, claim_id, user.id)
