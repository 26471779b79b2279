import uuid
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from app.models.enums import ItemStatus


class FoundItem(SQLModel, table=True):
    __tablename__ = "found_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Finder info
    user_id: int = Field(foreign_key="users.id", index=True)

    # Item fields
    title: str
    category: str = Field(index=True)
    description: str
    location_area: str
    found_date: datetime
    status: str = Field(default=ItemStatus.ACTIVE.value, index=True)  # ACTIVE/MATCHED/CLOSED
