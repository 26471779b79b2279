from typing import Optional
import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

class Notification(SQLModel, table=True):
    __tablename__ = "notifications"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Recipient
    user_id: int = Field(foreign_key="users.id", index=True)

    # values: "claim_created", "claim_verified", "claim_rejected", "handover_code", "item_returned"
    type: str = Field(index=True)

    title: str
    message: str

    claim_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="claims.id",
        index=True
    )

    is_read: bool = Field(default=False)
