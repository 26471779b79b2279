import uuid
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from app.db.db import get_session
from app.errors import NotFoundError
from app.models.enums import UserRole
from app.models.trust_ledger import TrustLedgerEntry
from app.models.user import User
from app.services import trust as trust_service
from app.services.fraud import assess_fraud_risk
from app.services.moderation import file_scam_report
from app.utils.auth_helper import get_current_db_user, require_role
from app.utils.timeutils import utcnow

router = APIRouter()


class ScamReportRequest(BaseModel):
    reported_user_id: str  # public id
    reason: str = Field(min_length=10, max_length=500)
    claim_id: Optional[uuid.UUID] = None


def get_user_by_public_id(session: Session, public_id: str) -> User:
    user = session.exec(select(User).where(User.public_id == public_id)).first()
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/me", response_model=trust_service.TrustInfo)
async def get_my_trust(
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    info = trust_service.get_trust_info(session, user.id, utcnow())
    session.commit()  # persists a freshly created profile
    return info


@router.get("/levels")
async def get_trust_levels():
    levels = [
        (trust_service.TrustLevel.SUSPENDED, None, trust_service.SUSPENDED_AT),
        (trust_service.TrustLevel.RESTRICTED, trust_service.SUSPENDED_AT + 1, trust_service.RESTRICTED_BELOW - 1),
        (trust_service.TrustLevel.NEW, trust_service.RESTRICTED_BELOW, trust_service.NEW_BELOW - 1),
        (trust_service.TrustLevel.ESTABLISHED, trust_service.NEW_BELOW, trust_service.ESTABLISHED_BELOW - 1),
        (trust_service.TrustLevel.TRUSTED, trust_service.ESTABLISHED_BELOW, None),
    ]

    return {
        "levels": [
            {
                "level": level,
                "min_score": low if low is not None else trust_service.SCORE_MIN,
                "max_score": high if high is not None else trust_service.SCORE_MAX,
                "claim_limit": trust_service.get_claim_attempt_limit(level),
                "report_limit": trust_service.get_report_daily_limit(level),
            }
            for level, low, high in levels
        ],
        "events": {event.value: delta for event, delta in trust_service.TRUST_CHANGES.items()},
    }


@router.get("/users/{public_id}")
async def get_user_trust(
    public_id: str,
    session: Session = Depends(get_session),
    admin: User = Depends(require_role(UserRole.ADMIN.value)),
):
    user = get_user_by_public_id(session, public_id)
    now = utcnow()

    info = trust_service.get_trust_info(session, user.id, now)
    profile = trust_service.get_or_create_profile(session, user.id)
    risk = assess_fraud_risk(user, profile, now)

    history = session.exec(
        select(TrustLedgerEntry)
        .where(TrustLedgerEntry.user_id == user.id)
        .order_by(TrustLedgerEntry.created_at.desc(), TrustLedgerEntry.id.desc())
        .limit(20)
    ).all()

    session.commit()

    return {
        "public_id": user.public_id,
        "trust": info,
        "fraud_risk": risk,
        "history": history,
    }


@router.post("/scam-reports")
async def report_scam(
    payload: ScamReportRequest,
    session: Session = Depends(get_session),
    user: User = Depends(get_current_db_user),
):
    reported = get_user_by_public_id(session, payload.reported_user_id)
    report = file_scam_report(session, user.id, reported.id, payload.reason, payload.claim_id)

    return {"ok": True, "report_id": report.id}
