"""
Behavioural risk scoring for claim creation.

Combines the account-age, contact-verification, recent-failure and
trust-trajectory signals into a 0-100 score. The assessment is advisory:
it is logged at claim creation and shown to admins, it never blocks.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from app.models.trust_profile import TrustProfile
from app.models.user import User
from app.services.trust import effective_failures
from app.utils.timeutils import as_utc, utcnow

CRITICAL_THRESHOLD = 70
REVIEW_THRESHOLD = 40

VERY_NEW_ACCOUNT_DAYS = 1
NEW_ACCOUNT_DAYS = 7


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class FraudRiskAssessment(BaseModel):
    score: int
    level: RiskLevel
    factors: List[str]
    requires_review: bool


def assess_fraud_risk(user: User, profile: TrustProfile, now: Optional[datetime] = None) -> FraudRiskAssessment:
    now = as_utc(now or utcnow())
    score = 0
    factors: List[str] = []

    age_days = (now - as_utc(profile.account_created_at)).total_seconds() / 86400
    if age_days < VERY_NEW_ACCOUNT_DAYS:
        score += 20
        factors.append(f"Very new account ({round(age_days * 24)}h old): +20")
    elif age_days < NEW_ACCOUNT_DAYS:
        score += 10
        factors.append(f"New account ({round(age_days)}d old): +10")

    if not user.email_verified and not user.phone_verified:
        score += 15
        factors.append("No email or phone verified: +15")
    elif not user.phone_verified:
        score += 5
        factors.append("Phone not verified: +5")

    failures = effective_failures(profile, now)
    if failures:
        failure_score = min(failures * 10, 30)
        score += failure_score
        factors.append(f"{failures} failed verification(s) in 24h: +{failure_score}")

    if profile.score < 0:
        score += 20
        factors.append(f"Negative trust score ({profile.score}): +20")

    score = min(score, 100)

    if score >= CRITICAL_THRESHOLD:
        level = RiskLevel.CRITICAL
    elif score >= REVIEW_THRESHOLD:
        level = RiskLevel.HIGH
    elif score >= 20:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return FraudRiskAssessment(
        score=score,
        level=level,
        factors=factors,
        requires_review=score >= REVIEW_THRESHOLD,
    )
