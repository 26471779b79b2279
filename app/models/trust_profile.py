from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class TrustProfile(SQLModel, table=True):
    __tablename__ = "trust_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True, unique=True)

    score: int = Field(default=0)  # always within [-100, 100]
    level: str = Field(default="NEW")  # cache, derivable from score

    # Failed verifications in the current 24h streak
    failures_today: int = Field(default=0)
    last_failure_at: Optional[datetime] = None

    account_created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Bumped on every write
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
