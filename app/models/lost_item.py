import uuid
from typing import List
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

from app.models.enums import ItemStatus


class LostItem(SQLModel, table=True):
    __tablename__ = "lost_items"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Owner info
    user_id: int = Field(foreign_key="users.id", index=True)

    # Item fields
    title: str
    category: str = Field(index=True)
    description: str
    location_area: str
    lost_date: datetime
    status: str = Field(default=ItemStatus.ACTIVE.value, index=True)  # ACTIVE/MATCHED/CLOSED

    # Verification secrets, written once at creation
    question_1: str
    answer_1: str
    question_2: str
    answer_2: str
    question_3: str
    answer_3: str

    @property
    def questions(self) -> List[str]:
        return [self.question_1, self.question_2, self.question_3]

    @property
    def answers(self) -> List[str]:
        return [self.answer_1, self.answer_2, self.answer_3]


# Never rendered to anyone through list or detail views
SECRET_FIELDS = {"question_1", "answer_1", "question_2", "answer_2", "question_3", "answer_3"}
