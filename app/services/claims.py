"""
Claim lifecycle.

PENDING -> VERIFIED -> RETURNED on the success path, PENDING -> REJECTED
once the verification budget is spent. REJECTED and RETURNED are terminal.

Every transition is a conditional UPDATE on the status the request
observed; when another request got there first the UPDATE matches no row
and the whole unit of work is rolled back with a ConflictError, so trust
deltas are never applied twice.
"""

import hashlib
import hmac
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.config import OTP_TTL_MINUTES
from app.db.db import atomic
from app.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models.claim import ACTIVE_CLAIM_STATUSES, MAX_VERIFICATION_ATTEMPTS, Claim
from app.models.enums import ClaimStatus, ItemStatus, UserRole
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.models.user import User
from app.services.fraud import assess_fraud_risk
from app.services.handover import HandoverPoint, recommend_handover_locations
from app.services.notifier import notify
from app.services.redaction import redact_item
from app.services.trust import TrustEvent, apply_trust_event, ensure_claim_allowed, record_verification_failure
from app.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 2
OTP_LENGTH = 6
_OTP_SHAPE = re.compile(r"^\d{%d}$" % OTP_LENGTH)

ALLOWED_TRANSITIONS: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {
    ClaimStatus.PENDING: frozenset({ClaimStatus.VERIFIED, ClaimStatus.REJECTED}),
    ClaimStatus.VERIFIED: frozenset({ClaimStatus.RETURNED}),
    ClaimStatus.REJECTED: frozenset(),
    ClaimStatus.RETURNED: frozenset(),
}

ALREADY_RESOLVED = "Claim already resolved"
ITEM_UNAVAILABLE = "This item is no longer available"


class VerificationResult(BaseModel):
    claim_id: uuid.UUID
    passed: bool
    score: int
    status: ClaimStatus
    attempts_remaining: int
    message: str


class HandoverCode(BaseModel):
    claim_id: uuid.UUID
    code: str
    expires_at: datetime


def _hash_otp(claim_id: uuid.UUID, code: str) -> str:
    return hashlib.sha256(f"{claim_id}:{code}".encode()).hexdigest()


def _normalize_answer(answer: str) -> str:
    return answer.strip().casefold()


def score_answers(submitted: Sequence[str], stored: Sequence[str]) -> int:
    """Count answers matching the stored ones position by position."""
    return sum(
        1 for given, expected in zip(submitted, stored)
        if _normalize_answer(given) == _normalize_answer(expected)
    )


def _load_claim(session: Session, claim_id: uuid.UUID) -> Claim:
    claim = session.get(Claim, claim_id)
    if not claim:
        raise NotFoundError("Claim not found")
    return claim


def _ensure_party(claim: Claim, actor_id: int) -> None:
    # Deliberately says nothing about the claim's state
    if actor_id not in (claim.claimant_id, claim.finder_id):
        raise AuthorizationError("Not authorized to act on this claim")


def _compare_and_set(session: Session, claim: Claim, expected: ClaimStatus, conditions=(), **values) -> None:
    stmt = (
        update(Claim)
        .where(Claim.id == claim.id)
        .where(Claim.status == expected.value)
    )
    for condition in conditions:
        stmt = stmt.where(condition)

    result = session.exec(stmt.values(**values).execution_options(synchronize_session=False))
    if result.rowcount != 1:
        logger.warning("Claim %s changed under us (expected %s)", claim.id, expected.value)
        raise ConflictError(ALREADY_RESOLVED)

    session.refresh(claim)


def _transition(session: Session, claim: Claim, source: ClaimStatus, target: ClaimStatus, conditions=(), **values) -> None:
    if target not in ALLOWED_TRANSITIONS[source]:
        raise ConflictError(ALREADY_RESOLVED)

    _compare_and_set(session, claim, source, conditions, status=target.value, **values)
    logger.info("Claim %s: %s -> %s", claim.id, source.value, target.value)


def _set_item_status(session: Session, model, item_id: uuid.UUID, to_status: ItemStatus, from_statuses: Sequence[ItemStatus]) -> int:
    result = session.exec(
        update(model)
        .where(model.id == item_id)
        .where(model.status.in_([s.value for s in from_statuses]))
        .values(status=to_status.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _ensure_items_open(session: Session, claim: Claim) -> None:
    # Another claim on either item may already have completed its handover
    lost_item = session.get(LostItem, claim.lost_item_id)
    found_item = session.get(FoundItem, claim.found_item_id)

    if ItemStatus.CLOSED.value in (lost_item.status, found_item.status):
        raise ConflictError(ITEM_UNAVAILABLE)


def create_claim(
    session: Session,
    claimant_id: int,
    lost_item_id: uuid.UUID,
    found_item_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> Claim:
    now = as_utc(now or utcnow())

    lost_item = session.get(LostItem, lost_item_id)
    if not lost_item:
        raise NotFoundError("Lost item not found")

    found_item = session.get(FoundItem, found_item_id)
    if not found_item:
        raise NotFoundError("Found item not found")

    if lost_item.user_id != claimant_id:
        raise AuthorizationError("You can only claim items for your own lost reports")

    # Prevent self-claim
    if found_item.user_id == claimant_id:
        raise ValidationError("You cannot claim an item you reported as found")

    if ItemStatus.CLOSED.value in (lost_item.status, found_item.status):
        raise ConflictError(ITEM_UNAVAILABLE)

    existing = session.exec(
        select(Claim)
        .where(Claim.lost_item_id == lost_item_id)
        .where(Claim.found_item_id == found_item_id)
        .where(Claim.status.in_(ACTIVE_CLAIM_STATUSES))
    ).first()

    if existing:
        raise ConflictError("An active claim already exists for these items")

    profile = ensure_claim_allowed(session, claimant_id, now)

    risk = assess_fraud_risk(session.get(User, claimant_id), profile, now)
    if risk.requires_review:
        logger.warning("Claim by user %s flagged for review (risk %d): %s", claimant_id, risk.score, "; ".join(risk.factors))

    claim = Claim(
        claimant_id=claimant_id,
        finder_id=found_item.user_id,
        lost_item_id=lost_item_id,
        found_item_id=found_item_id,
        created_at=now,
    )

    try:
        with atomic(session):
            session.add(claim)
    except IntegrityError:
        # A concurrent request opened a claim on the same pair first
        raise ConflictError("An active claim already exists for these items")

    session.refresh(claim)
    logger.info("Claim %s created by user %s", claim.id, claimant_id)

    notify(
        session,
        claim.finder_id,
        "claim_created",
        "New claim received",
        "Someone has claimed an item you reported as found. They must answer the owner's questions first.",
        claim.id,
    )

    return claim


def get_verification_questions(session: Session, claim_id: uuid.UUID, actor_id: int) -> dict:
    claim = _load_claim(session, claim_id)
    _ensure_party(claim, actor_id)

    if actor_id != claim.claimant_id:
        raise AuthorizationError("Only the claimant can answer the verification questions")

    if claim.status != ClaimStatus.PENDING.value:
        raise ConflictError(ALREADY_RESOLVED)

    lost_item = session.get(LostItem, claim.lost_item_id)

    return {
        "claim_id": claim.id,
        "questions": lost_item.questions,
        "attempts_remaining": MAX_VERIFICATION_ATTEMPTS - claim.verification_attempts,
    }


def submit_verification(
    session: Session,
    claim_id: uuid.UUID,
    actor_id: int,
    answers: List[str],
    now: Optional[datetime] = None,
) -> VerificationResult:
    """
    Check the claimant's three answers against the stored ones.

    Two of three correct moves the claim to VERIFIED. A failed attempt
    costs the claimant trust and counts towards the cooldown; the third
    failed attempt rejects the claim.
    """
    if not isinstance(answers, (list, tuple)) or len(answers) != 3 or not all(isinstance(a, str) for a in answers):
        raise ValidationError("Exactly 3 answers are required, in question order")

    now = as_utc(now or utcnow())
    claim = _load_claim(session, claim_id)
    _ensure_party(claim, actor_id)

    if actor_id != claim.claimant_id:
        raise AuthorizationError("Only the claimant can answer the verification questions")

    if claim.status != ClaimStatus.PENDING.value or claim.verification_attempts >= MAX_VERIFICATION_ATTEMPTS:
        raise ConflictError(ALREADY_RESOLVED)

    _ensure_items_open(session, claim)

    lost_item = session.get(LostItem, claim.lost_item_id)
    score = score_answers(answers, lost_item.answers)
    passed = score >= PASS_THRESHOLD

    observed = claim.verification_attempts
    attempts = observed + 1
    same_attempt = (Claim.verification_attempts == observed,)
    rejected = False

    with atomic(session):
        if passed:
            _transition(
                session, claim, ClaimStatus.PENDING, ClaimStatus.VERIFIED, same_attempt,
                verification_attempts=attempts,
                verification_score=score,
                last_attempt_at=now,
                verified_at=now,
            )
            _set_item_status(session, LostItem, claim.lost_item_id, ItemStatus.MATCHED, (ItemStatus.ACTIVE,))
            _set_item_status(session, FoundItem, claim.found_item_id, ItemStatus.MATCHED, (ItemStatus.ACTIVE,))
        else:
            rejected = attempts >= MAX_VERIFICATION_ATTEMPTS
            if rejected:
                _transition(
                    session, claim, ClaimStatus.PENDING, ClaimStatus.REJECTED, same_attempt,
                    verification_attempts=attempts,
                    verification_score=score,
                    last_attempt_at=now,
                    rejected_at=now,
                )
            else:
                _compare_and_set(
                    session, claim, ClaimStatus.PENDING, same_attempt,
                    verification_attempts=attempts,
                    verification_score=score,
                    last_attempt_at=now,
                )

            record_verification_failure(session, claim.claimant_id, now)
            apply_trust_event(session, claim.claimant_id, TrustEvent.FAILED_VERIFICATION, now=now)
            if rejected:
                apply_trust_event(session, claim.claimant_id, TrustEvent.MULTIPLE_FAILED_CLAIMS, now=now)

    logger.info("Verification attempt %d on claim %s: %d/3 correct", attempts, claim.id, score)

    remaining = 0 if passed or rejected else MAX_VERIFICATION_ATTEMPTS - attempts

    if passed:
        message = "Verification successful! You can now arrange the handover."
        notify(session, claim.finder_id, "claim_verified", "Claim verified",
               "The claimant answered the owner's questions. Expect a handover code at the meeting.", claim.id)
    elif rejected:
        message = f"Verification failed ({score}/3 correct). The claim has been rejected."
        notify(session, claim.claimant_id, "claim_rejected", "Your claim has been rejected",
               "Too many failed verification attempts.", claim.id)
    else:
        message = f"Verification failed ({score}/3 correct). {remaining} attempt{'s' if remaining != 1 else ''} remaining."

    return VerificationResult(
        claim_id=claim.id,
        passed=passed,
        score=score,
        status=ClaimStatus(claim.status),
        attempts_remaining=remaining,
        message=message,
    )


def issue_otp(session: Session, claim_id: uuid.UUID, actor_id: int, now: Optional[datetime] = None) -> HandoverCode:
    """Issue a fresh handover code; any earlier code for the claim stops working."""
    now = as_utc(now or utcnow())
    claim = _load_claim(session, claim_id)
    _ensure_party(claim, actor_id)

    if actor_id != claim.claimant_id:
        raise AuthorizationError("Only the verified claimant can request a handover code")

    if claim.status != ClaimStatus.VERIFIED.value:
        raise ConflictError("Claim must be verified before a handover code can be issued")

    _ensure_items_open(session, claim)

    code = f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"
    expires_at = now + timedelta(minutes=OTP_TTL_MINUTES)

    with atomic(session):
        _compare_and_set(
            session, claim, ClaimStatus.VERIFIED,
            otp_code_hash=_hash_otp(claim.id, code),
            otp_expires_at=expires_at,
        )

    logger.info("Handover code issued for claim %s, expires %s", claim.id, expires_at.isoformat())

    notify(
        session,
        claim.claimant_id,
        "handover_code",
        "Your handover code",
        f"Your handover code is {code}. Share it only when you physically receive your item. "
        f"It expires in {OTP_TTL_MINUTES} minutes.",
        claim.id,
    )

    return HandoverCode(claim_id=claim.id, code=code, expires_at=expires_at)


def confirm_handover(
    session: Session,
    claim_id: uuid.UUID,
    actor_id: int,
    code: str,
    now: Optional[datetime] = None,
) -> Claim:
    """
    Finder enters the claimant's code at the physical handover.

    A match closes both items and credits both parties. A wrong, expired or
    superseded code changes nothing and costs nobody trust.
    """
    code = code.strip() if isinstance(code, str) else ""
    if not _OTP_SHAPE.match(code):
        raise ValidationError(f"Handover code must be {OTP_LENGTH} digits")

    now = as_utc(now or utcnow())
    claim = _load_claim(session, claim_id)
    _ensure_party(claim, actor_id)

    if actor_id == claim.claimant_id:
        raise AuthorizationError("The finder must enter the handover code, not the claimant")

    if claim.status != ClaimStatus.VERIFIED.value:
        raise ConflictError(ALREADY_RESOLVED)

    if not claim.otp_code_hash or now > as_utc(claim.otp_expires_at):
        raise ConflictError("Handover code has expired or was never issued")

    issued_hash = claim.otp_code_hash
    if not hmac.compare_digest(issued_hash, _hash_otp(claim.id, code)):
        logger.info("Wrong handover code entered for claim %s", claim.id)
        raise ConflictError("Invalid or superseded handover code")

    with atomic(session):
        _transition(
            session, claim, ClaimStatus.VERIFIED, ClaimStatus.RETURNED,
            (Claim.otp_code_hash == issued_hash,),
            returned_at=now,
            otp_code_hash=None,
            otp_expires_at=None,
        )
        open_statuses = (ItemStatus.ACTIVE, ItemStatus.MATCHED)
        closed = (
            _set_item_status(session, LostItem, claim.lost_item_id, ItemStatus.CLOSED, open_statuses)
            + _set_item_status(session, FoundItem, claim.found_item_id, ItemStatus.CLOSED, open_statuses)
        )
        if closed != 2:
            # An item can only be handed over once
            logger.warning("Claim %s: item already closed by another handover", claim.id)
            raise ConflictError(ITEM_UNAVAILABLE)

        apply_trust_event(session, claim.finder_id, TrustEvent.SUCCESSFUL_RETURN_FINDER, now=now)
        apply_trust_event(session, claim.claimant_id, TrustEvent.SUCCESSFUL_RECOVERY_OWNER, now=now)

    for user_id in (claim.claimant_id, claim.finder_id):
        notify(session, user_id, "item_returned", "Item returned",
               "The handover was confirmed. Thank you for helping return a lost item.", claim.id)

    return claim


def get_handover_locations(session: Session, claim_id: uuid.UUID, actor_id: int) -> List[HandoverPoint]:
    """Meeting points near where the item was found, for the two parties of a verified claim."""
    claim = _load_claim(session, claim_id)
    _ensure_party(claim, actor_id)

    if claim.status != ClaimStatus.VERIFIED.value:
        raise ConflictError("Handover locations are only available for a verified claim")

    lost_item = session.get(LostItem, claim.lost_item_id)
    found_item = session.get(FoundItem, claim.found_item_id)

    return recommend_handover_locations(found_item.location_area, lost_item.category)


def get_claim_for_actor(session: Session, claim_id: uuid.UUID, actor: User) -> dict:
    """Claim view for a party to the claim (or an admin), items redacted for the viewer."""
    claim = _load_claim(session, claim_id)

    if actor.role != UserRole.ADMIN.value:
        _ensure_party(claim, actor.id)

    data = claim.model_dump(exclude={"otp_code_hash"})
    data["otp_active"] = claim.otp_code_hash is not None and utcnow() <= as_utc(claim.otp_expires_at)
    data["lost_item"] = redact_item(session.get(LostItem, claim.lost_item_id), actor.id)
    data["found_item"] = redact_item(session.get(FoundItem, claim.found_item_id), actor.id)

    return data


def list_claims_for_user(session: Session, user_id: int) -> List[Claim]:
    return session.exec(
        select(Claim)
        .where(or_(Claim.claimant_id == user_id, Claim.finder_id == user_id))
        .order_by(Claim.created_at.desc())
    ).all()
