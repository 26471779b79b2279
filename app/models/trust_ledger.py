from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class TrustLedgerEntry(SQLModel, table=True):
    __tablename__ = "trust_ledger"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    user_id: int = Field(foreign_key="users.id", index=True)

    event: str = Field(index=True)
    delta: int
    score_after: int
    reason: str
