from typing import Optional
import uuid
from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from app.models.enums import ClaimStatus

MAX_VERIFICATION_ATTEMPTS = 3

ACTIVE_CLAIM_STATUSES = (ClaimStatus.PENDING.value, ClaimStatus.VERIFIED.value)

_ACTIVE_PAIR_PREDICATE = text("status IN ('PENDING', 'VERIFIED')")


class Claim(SQLModel, table=True):
    __tablename__ = "claims"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Parties
    claimant_id: int = Field(foreign_key="users.id", index=True)  # owner of the lost report
    finder_id: int = Field(foreign_key="users.id", index=True)  # reporter of the found item

    # Linked reports
    lost_item_id: uuid.UUID = Field(foreign_key="lost_items.id", index=True)
    found_item_id: uuid.UUID = Field(foreign_key="found_items.id", index=True)

    status: str = Field(default=ClaimStatus.PENDING.value, index=True)  # PENDING/VERIFIED/REJECTED/RETURNED

    # Verification challenge
    verification_attempts: int = Field(default=0)
    verification_score: Optional[int] = None
    last_attempt_at: Optional[datetime] = None

    # Handover code, only the latest one is stored
    otp_code_hash: Optional[str] = None
    otp_expires_at: Optional[datetime] = None

    verified_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    __table_args__ = (
        # One open claim per (lost, found) pair, even under concurrent creation
        Index(
            "uq_claims_active_pair",
            "lost_item_id",
            "found_item_id",
            unique=True,
            sqlite_where=_ACTIVE_PAIR_PREDICATE,
            postgresql_where=_ACTIVE_PAIR_PREDICATE,
        ),
    )
