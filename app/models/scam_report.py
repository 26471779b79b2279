from typing import Optional
import uuid
from sqlmodel import Field, SQLModel, UniqueConstraint
from datetime import datetime, timezone

from app.models.enums import ScamReportStatus


class ScamReport(SQLModel, table=True):
    __tablename__ = "scam_reports"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    reporter_id: int = Field(foreign_key="users.id", index=True)
    reported_user_id: int = Field(foreign_key="users.id", index=True)
    claim_id: Optional[uuid.UUID] = Field(default=None, foreign_key="claims.id", index=True)

    reason: str

    status: str = Field(default=ScamReportStatus.OPEN.value, index=True)  # OPEN/CONFIRMED/DISMISSED
    reviewed_by: Optional[int] = Field(default=None, foreign_key="users.id")
    reviewed_at: Optional[datetime] = Field(default=None)

    __table_args__ = (
        # A user can report the same person over the same claim only once
        UniqueConstraint(
            "reporter_id",
            "reported_user_id",
            "claim_id",
            name="uq_scam_report_reporter_target_claim"
        ),
    )
