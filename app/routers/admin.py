from typing import List, Literal, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select, func
from sqlalchemy.orm import aliased
from pydantic import BaseModel

from app.db.db import atomic, get_session
from app.models.claim import Claim
from app.models.enums import ClaimStatus, ScamReportStatus, UserRole
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.models.scam_report import ScamReport
from app.models.user import User
from app.routers.trust import get_user_by_public_id
from app.services.moderation import record_contact_verification, resolve_scam_report
from app.services.trust import recalculate_trust_score
from app.utils.auth_helper import require_role
from app.utils.timeutils import utcnow

router = APIRouter()

require_admin = require_role(UserRole.ADMIN.value)


# Response Models
class OverviewStats(BaseModel):
    lost_items: int
    found_items: int
    claims_by_status: dict
    open_scam_reports: int


class ScamReportDetail(BaseModel):
    id: int
    reporter_name: str
    reporter_id: str
    reported_user_name: str
    reported_user_id: str
    claim_id: Optional[str]
    reason: str
    status: str
    created_at: datetime
    reviewed_at: Optional[datetime]


class ContactVerificationRequest(BaseModel):
    channel: Literal["email", "phone", "identity"]


class ResolveScamReportRequest(BaseModel):
    action: Literal["confirm", "dismiss"]


@router.get("/stats", response_model=OverviewStats)
async def get_overview_stats(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Get overview statistics for the admin dashboard"""
    lost_items = session.exec(select(func.count(LostItem.id))).one()
    found_items = session.exec(select(func.count(FoundItem.id))).one()

    counts = dict(session.exec(
        select(Claim.status, func.count(Claim.id)).group_by(Claim.status)
    ).all())

    open_reports = session.exec(
        select(func.count(ScamReport.id)).where(ScamReport.status == ScamReportStatus.OPEN.value)
    ).one()

    return OverviewStats(
        lost_items=lost_items,
        found_items=found_items,
        claims_by_status={s.value: counts.get(s.value, 0) for s in ClaimStatus},
        open_scam_reports=open_reports,
    )


@router.get("/scam-reports", response_model=List[ScamReportDetail])
async def get_scam_reports(
    status: Optional[ScamReportStatus] = None,
    limit: int = Query(50, ge=1, le=100),
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Get scam reports for moderation"""
    Reported = aliased(User)

    query = (
        select(ScamReport, User, Reported)
        .join(User, ScamReport.reporter_id == User.id)
        .join(Reported, ScamReport.reported_user_id == Reported.id)
        .order_by(ScamReport.created_at.desc())
        .limit(limit)
    )

    if status:
        query = query.where(ScamReport.status == status.value)

    return [
        ScamReportDetail(
            id=report.id,
            reporter_name=reporter.name,
            reporter_id=reporter.public_id,
            reported_user_name=reported.name,
            reported_user_id=reported.public_id,
            claim_id=str(report.claim_id) if report.claim_id else None,
            reason=report.reason,
            status=report.status,
            created_at=report.created_at,
            reviewed_at=report.reviewed_at,
        )
        for report, reporter, reported in session.exec(query).all()
    ]


@router.post("/scam-reports/{report_id}/resolve")
async def resolve_report(
    report_id: int,
    payload: ResolveScamReportRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Confirm or dismiss a scam report, adjusting trust on both sides"""
    report = resolve_scam_report(session, report_id, admin.id, payload.action == "confirm", utcnow())

    return {
        "ok": True,
        "status": report.status,
    }


@router.post("/users/{public_id}/verify-contact")
async def verify_contact(
    public_id: str,
    payload: ContactVerificationRequest,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Record a verified contact channel; credited once per channel"""
    user = get_user_by_public_id(session, public_id)
    credited = record_contact_verification(session, user.id, payload.channel, utcnow())

    return {
        "ok": True,
        "credited": credited,
        "message": f"{payload.channel.capitalize()} verified" if credited else f"{payload.channel.capitalize()} was already verified",
    }


@router.post("/users/{public_id}/recalculate-trust")
async def recalculate_trust(
    public_id: str,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin)
):
    """Rebuild a user's trust score from their ledger"""
    user = get_user_by_public_id(session, public_id)

    with atomic(session):
        score = recalculate_trust_score(session, user.id, utcnow())

    return {"ok": True, "score": score}
