"""
Trust and reputation engine.

Scores live on ``TrustProfile`` rows keyed by user id. Every change is an
atomic, clamped ``UPDATE ... SET score = score + delta`` so concurrent
claims touching the same user never lose an update. The level is always
recomputed from the score; the stored ``level`` column is only a cache.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import case, func, update
from sqlmodel import Session, select

from app.errors import AuthorizationError, NotFoundError, RateLimitedError
from app.models.claim import ACTIVE_CLAIM_STATUSES, Claim
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.models.trust_ledger import TrustLedgerEntry
from app.models.trust_profile import TrustProfile
from app.models.user import User
from app.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

SCORE_MIN = -100
SCORE_MAX = 100

# Level floors
SUSPENDED_AT = -10  # score <= this is suspended
RESTRICTED_BELOW = 0
NEW_BELOW = 5
ESTABLISHED_BELOW = 15

FAILURE_WINDOW = timedelta(hours=24)
REPORT_WINDOW = timedelta(hours=24)


class TrustLevel(str, Enum):
    SUSPENDED = "SUSPENDED"
    RESTRICTED = "RESTRICTED"
    NEW = "NEW"
    ESTABLISHED = "ESTABLISHED"
    TRUSTED = "TRUSTED"


class TrustEvent(str, Enum):
    SUCCESSFUL_RETURN_FINDER = "SUCCESSFUL_RETURN_FINDER"
    SUCCESSFUL_RECOVERY_OWNER = "SUCCESSFUL_RECOVERY_OWNER"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    PHONE_VERIFIED = "PHONE_VERIFIED"
    IDENTITY_VERIFIED = "IDENTITY_VERIFIED"
    FAILED_VERIFICATION = "FAILED_VERIFICATION"
    MULTIPLE_FAILED_CLAIMS = "MULTIPLE_FAILED_CLAIMS"
    SCAM_CONFIRMED = "SCAM_CONFIRMED"
    FALSE_SCAM_REPORT = "FALSE_SCAM_REPORT"
    ACCURATE_REPORT_CONFIRMED = "ACCURATE_REPORT_CONFIRMED"


TRUST_CHANGES = {
    TrustEvent.SUCCESSFUL_RETURN_FINDER: 3,
    TrustEvent.SUCCESSFUL_RECOVERY_OWNER: 2,
    TrustEvent.EMAIL_VERIFIED: 1,
    TrustEvent.PHONE_VERIFIED: 2,
    TrustEvent.IDENTITY_VERIFIED: 2,
    TrustEvent.FAILED_VERIFICATION: -2,
    TrustEvent.MULTIPLE_FAILED_CLAIMS: -5,
    TrustEvent.SCAM_CONFIRMED: -20,
    TrustEvent.FALSE_SCAM_REPORT: -3,
    TrustEvent.ACCURATE_REPORT_CONFIRMED: 1,
}

TRUST_REASONS = {
    TrustEvent.SUCCESSFUL_RETURN_FINDER: "Successfully returned a found item",
    TrustEvent.SUCCESSFUL_RECOVERY_OWNER: "Successfully recovered lost item",
    TrustEvent.EMAIL_VERIFIED: "Email address verified",
    TrustEvent.PHONE_VERIFIED: "Phone number verified",
    TrustEvent.IDENTITY_VERIFIED: "Identity verified",
    TrustEvent.FAILED_VERIFICATION: "Failed verification attempt",
    TrustEvent.MULTIPLE_FAILED_CLAIMS: "Claim rejected after repeated failed verification",
    TrustEvent.SCAM_CONFIRMED: "Scam confirmed by admin",
    TrustEvent.FALSE_SCAM_REPORT: "Filed false scam report",
    TrustEvent.ACCURATE_REPORT_CONFIRMED: "Scam report confirmed accurate",
}

CLAIM_LIMITS = {
    TrustLevel.SUSPENDED: 0,
    TrustLevel.RESTRICTED: 1,
    TrustLevel.NEW: 3,
    TrustLevel.ESTABLISHED: 5,
    TrustLevel.TRUSTED: 7,
}

REPORT_LIMITS = {
    TrustLevel.SUSPENDED: 0,
    TrustLevel.RESTRICTED: 1,
    TrustLevel.NEW: 3,
    TrustLevel.ESTABLISHED: 5,
    TrustLevel.TRUSTED: 10,
}


def clamp_score(score: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, score))


def get_trust_level(score: int) -> TrustLevel:
    if score <= SUSPENDED_AT:
        return TrustLevel.SUSPENDED
    if score < RESTRICTED_BELOW:
        return TrustLevel.RESTRICTED
    if score < NEW_BELOW:
        return TrustLevel.NEW
    if score < ESTABLISHED_BELOW:
        return TrustLevel.ESTABLISHED
    return TrustLevel.TRUSTED


def get_claim_attempt_limit(level: TrustLevel) -> int:
    return CLAIM_LIMITS[TrustLevel(level)]


def get_report_daily_limit(level: TrustLevel) -> int:
    return REPORT_LIMITS[TrustLevel(level)]


def get_cooldown_minutes(failures_today: int) -> int:
    if failures_today <= 0:
        return 0
    if failures_today == 1:
        return 60
    if failures_today == 2:
        return 240
    return 1440


def _clamped_expression(delta: int):
    raw = TrustProfile.score + delta
    return case(
        (raw > SCORE_MAX, SCORE_MAX),
        (raw < SCORE_MIN, SCORE_MIN),
        else_=raw,
    )


def _level_expression(score):
    # SQL mirror of get_trust_level so the cache is written with the score
    return case(
        (score <= SUSPENDED_AT, TrustLevel.SUSPENDED.value),
        (score < RESTRICTED_BELOW, TrustLevel.RESTRICTED.value),
        (score < NEW_BELOW, TrustLevel.NEW.value),
        (score < ESTABLISHED_BELOW, TrustLevel.ESTABLISHED.value),
        else_=TrustLevel.TRUSTED.value,
    )


def get_or_create_profile(session: Session, user_id: int) -> TrustProfile:
    profile = session.exec(
        select(TrustProfile).where(TrustProfile.user_id == user_id)
    ).first()

    if profile:
        return profile

    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    profile = TrustProfile(
        user_id=user_id,
        account_created_at=user.created_at,
        level=TrustLevel.NEW.value,
    )
    session.add(profile)
    session.flush()

    return profile


def apply_trust_event(
    session: Session,
    user_id: int,
    event: TrustEvent,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Apply the canonical delta for ``event`` and return the new score.

    Does not commit; the caller owns the transaction so a terminal claim
    event and its trust changes land together.
    """
    now = as_utc(now or utcnow())
    event = TrustEvent(event)
    delta = TRUST_CHANGES[event]

    profile = get_or_create_profile(session, user_id)

    new_score = _clamped_expression(delta)
    session.exec(
        update(TrustProfile)
        .where(TrustProfile.user_id == user_id)
        .values(
            score=new_score,
            level=_level_expression(new_score),
            version=TrustProfile.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(profile)

    session.add(TrustLedgerEntry(
        user_id=user_id,
        event=event.value,
        delta=delta,
        score_after=profile.score,
        reason=reason or TRUST_REASONS[event],
        created_at=now,
    ))

    logger.info("Trust %s for user %s: %+d -> %d", event.value, user_id, delta, profile.score)

    return profile.score


def effective_failures(profile: TrustProfile, now: datetime) -> int:
    """Failures in the current streak; a quiet 24h resets it."""
    last = as_utc(profile.last_failure_at)
    if last is None or as_utc(now) - last > FAILURE_WINDOW:
        return 0
    return profile.failures_today


def record_verification_failure(session: Session, user_id: int, now: Optional[datetime] = None) -> int:
    """Count one failed verification for the user and return failures today."""
    now = as_utc(now or utcnow())
    profile = get_or_create_profile(session, user_id)

    cutoff = now - FAILURE_WINDOW
    session.exec(
        update(TrustProfile)
        .where(TrustProfile.user_id == user_id)
        .values(
            failures_today=case(
                (TrustProfile.last_failure_at.is_(None), 1),
                (TrustProfile.last_failure_at < cutoff, 1),
                else_=TrustProfile.failures_today + 1,
            ),
            last_failure_at=now,
            version=TrustProfile.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(profile)

    return profile.failures_today


@dataclass
class CooldownStatus:
    can_attempt: bool
    failures_today: int
    cooldown_minutes: int
    cooldown_until: Optional[datetime]
    remaining_seconds: int

    @property
    def message(self) -> str:
        if self.can_attempt:
            return "No cooldown active."

        hours, rest = divmod(self.remaining_seconds, 3600)
        minutes = -(-rest // 60)
        if hours:
            return f"Please wait {hours}h {minutes}m before trying again."
        return f"Please wait {minutes} minute{'s' if minutes != 1 else ''} before trying again."


def check_cooldown(profile: TrustProfile, now: Optional[datetime] = None) -> CooldownStatus:
    now = as_utc(now or utcnow())
    failures = effective_failures(profile, now)
    minutes = get_cooldown_minutes(failures)

    if minutes == 0:
        return CooldownStatus(True, failures, 0, None, 0)

    until = as_utc(profile.last_failure_at) + timedelta(minutes=minutes)
    if now >= until:
        return CooldownStatus(True, failures, minutes, None, 0)

    remaining = math.ceil((until - now).total_seconds())
    return CooldownStatus(False, failures, minutes, until, remaining)


def count_active_claims(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count(Claim.id))
        .where(Claim.claimant_id == user_id)
        .where(Claim.status.in_(ACTIVE_CLAIM_STATUSES))
    ).one()


def count_recent_reports(session: Session, user_id: int, now: datetime) -> int:
    since = now - REPORT_WINDOW
    lost = session.exec(
        select(func.count(LostItem.id))
        .where(LostItem.user_id == user_id)
        .where(LostItem.created_at >= since)
    ).one()
    found = session.exec(
        select(func.count(FoundItem.id))
        .where(FoundItem.user_id == user_id)
        .where(FoundItem.created_at >= since)
    ).one()
    return lost + found


def ensure_claim_allowed(session: Session, user_id: int, now: Optional[datetime] = None) -> TrustProfile:
    """Refuse a new claim when the level, ceiling or cooldown forbids it."""
    now = as_utc(now or utcnow())
    profile = get_or_create_profile(session, user_id)
    level = get_trust_level(profile.score)

    if level == TrustLevel.SUSPENDED:
        logger.info("Claim refused for suspended user %s", user_id)
        raise AuthorizationError("Your account is suspended due to a low trust score")

    limit = get_claim_attempt_limit(level)
    if count_active_claims(session, user_id) >= limit:
        logger.info("Claim ceiling %s reached for user %s", limit, user_id)
        raise RateLimitedError(f"You can have at most {limit} open claims at your trust level")

    cooldown = check_cooldown(profile, now)
    if not cooldown.can_attempt:
        logger.info("Claim refused for user %s, cooldown %ss left", user_id, cooldown.remaining_seconds)
        raise RateLimitedError(cooldown.message, cooldown.remaining_seconds)

    return profile


def ensure_report_allowed(session: Session, user_id: int, now: Optional[datetime] = None) -> None:
    now = as_utc(now or utcnow())
    profile = get_or_create_profile(session, user_id)
    level = get_trust_level(profile.score)

    if level == TrustLevel.SUSPENDED:
        raise AuthorizationError("Your account is suspended due to a low trust score")

    limit = get_report_daily_limit(level)
    if count_recent_reports(session, user_id, now) >= limit:
        raise RateLimitedError(f"You can file at most {limit} reports per day at your trust level")


class TrustInfo(BaseModel):
    score: int
    level: TrustLevel
    claim_limit: int
    report_limit: int
    active_claims: int
    failures_today: int
    cooldown_until: Optional[datetime] = None
    cooldown_remaining_seconds: int = 0
    account_age_days: float


def get_trust_info(session: Session, user_id: int, now: Optional[datetime] = None) -> TrustInfo:
    now = as_utc(now or utcnow())
    profile = get_or_create_profile(session, user_id)
    level = get_trust_level(profile.score)
    cooldown = check_cooldown(profile, now)

    return TrustInfo(
        score=profile.score,
        level=level,
        claim_limit=get_claim_attempt_limit(level),
        report_limit=get_report_daily_limit(level),
        active_claims=count_active_claims(session, user_id),
        failures_today=cooldown.failures_today,
        cooldown_until=cooldown.cooldown_until,
        cooldown_remaining_seconds=cooldown.remaining_seconds,
        account_age_days=round((now - as_utc(profile.account_created_at)).total_seconds() / 86400, 2),
    )


def recalculate_trust_score(session: Session, user_id: int, now: Optional[datetime] = None) -> int:
    """Rebuild the score by replaying the ledger, for admin correction."""
    now = as_utc(now or utcnow())
    profile = get_or_create_profile(session, user_id)

    entries = session.exec(
        select(TrustLedgerEntry)
        .where(TrustLedgerEntry.user_id == user_id)
        .order_by(TrustLedgerEntry.created_at, TrustLedgerEntry.id)
    ).all()

    score = 0
    for entry in entries:
        score = clamp_score(score + entry.delta)

    session.exec(
        update(TrustProfile)
        .where(TrustProfile.user_id == user_id)
        .values(
            score=score,
            level=get_trust_level(score).value,
            version=TrustProfile.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    session.refresh(profile)

    logger.info("Trust score for user %s recalculated to %d", user_id, score)

    return profile.score
