"""
Admin moderation: scam reports and contact verification credits.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.db.db import atomic
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models.claim import Claim
from app.models.enums import ScamReportStatus
from app.models.scam_report import ScamReport
from app.models.user import User
from app.services.trust import TrustEvent, apply_trust_event
from app.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

# channel -> (user flag, trust event)
CONTACT_CHANNELS = {
    "email": ("email_verified", TrustEvent.EMAIL_VERIFIED),
    "phone": ("phone_verified", TrustEvent.PHONE_VERIFIED),
    "identity": ("identity_verified", TrustEvent.IDENTITY_VERIFIED),
}


def file_scam_report(
    session: Session,
    reporter_id: int,
    reported_user_id: int,
    reason: str,
    claim_id: Optional[uuid.UUID] = None,
) -> ScamReport:
    if reporter_id == reported_user_id:
        raise ValidationError("You cannot report yourself")

    if not session.get(User, reported_user_id):
        raise NotFoundError("User not found")

    if claim_id is not None:
        claim = session.get(Claim, claim_id)
        if not claim:
            raise NotFoundError("Claim not found")
        if {reporter_id, reported_user_id} != {claim.claimant_id, claim.finder_id}:
            raise ValidationError("Both users must be parties to the reported claim")

    report = ScamReport(
        reporter_id=reporter_id,
        reported_user_id=reported_user_id,
        claim_id=claim_id,
        reason=reason.strip(),
    )

    try:
        with atomic(session):
            session.add(report)
    except IntegrityError:
        raise ConflictError("You have already reported this user")

    session.refresh(report)
    logger.info("Scam report %s filed against user %s", report.id, reported_user_id)

    return report


def resolve_scam_report(
    session: Session,
    report_id: int,
    admin_id: int,
    confirm: bool,
    now: Optional[datetime] = None,
) -> ScamReport:
    """
    Confirm or dismiss an open report.

    Confirming penalises the reported user and credits the reporter;
    dismissing penalises the reporter. A report resolves exactly once.
    """
    now = as_utc(now or utcnow())

    report = session.get(ScamReport, report_id)
    if not report:
        raise NotFoundError("Scam report not found")

    target = ScamReportStatus.CONFIRMED if confirm else ScamReportStatus.DISMISSED

    with atomic(session):
        result = session.exec(
            update(ScamReport)
            .where(ScamReport.id == report_id)
            .where(ScamReport.status == ScamReportStatus.OPEN.value)
            .values(status=target.value, reviewed_by=admin_id, reviewed_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Scam report already resolved")

        if confirm:
            apply_trust_event(session, report.reported_user_id, TrustEvent.SCAM_CONFIRMED, now=now)
            apply_trust_event(session, report.reporter_id, TrustEvent.ACCURATE_REPORT_CONFIRMED, now=now)
        else:
            apply_trust_event(session, report.reporter_id, TrustEvent.FALSE_SCAM_REPORT, now=now)

    session.refresh(report)
    logger.info("Scam report %s %s by admin %s", report.id, target.value.lower(), admin_id)

    return report


def record_contact_verification(session: Session, user_id: int, channel: str, now: Optional[datetime] = None) -> bool:
    """Mark a contact channel verified; returns False if it already was."""
    if channel not in CONTACT_CHANNELS:
        raise ValidationError(f"Unknown verification channel '{channel}'")

    now = as_utc(now or utcnow())
    flag, event = CONTACT_CHANNELS[channel]

    if not session.get(User, user_id):
        raise NotFoundError("User not found")

    with atomic(session):
        column = getattr(User, flag)
        result = session.exec(
            update(User)
            .where(User.id == user_id)
            .where(column.is_(False))
            .values({flag: True})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False

        apply_trust_event(session, user_id, event, now=now)

    logger.info("User %s verified %s", user_id, channel)

    return True
