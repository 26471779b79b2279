from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from app.errors import ValidationError
from app.models.enums import ItemCategory


class SecurityQuestion(BaseModel):
    question: str = Field(min_length=1, max_length=200)
    answer: str = Field(min_length=1, max_length=200)


class CreateFoundItem(BaseModel):
    title: str = Field(min_length=3, max_length=80)
    description: str = Field(min_length=10, max_length=1000)
    category: ItemCategory
    location_area: str = Field(min_length=2, max_length=60)
    date: datetime

    @field_validator("title", "description", "location_area")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class CreateLostItem(CreateFoundItem):
    security_questions: List[SecurityQuestion]


def validate_security_questions(pairs: List[SecurityQuestion]) -> List[SecurityQuestion]:
    # Exactly three pairs, each answer non-blank once trimmed
    if len(pairs) != 3:
        raise ValidationError("Exactly 3 security questions are required")

    cleaned = []
    for pair in pairs:
        question, answer = pair.question.strip(), pair.answer.strip()
        if not question or not answer:
            raise ValidationError("Security questions and answers cannot be blank")
        cleaned.append(SecurityQuestion(question=question, answer=answer))

    return cleaned
