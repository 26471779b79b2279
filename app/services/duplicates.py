"""
Report-time duplicate detection.

Compares a new report with the same reporter's recent open reports of the
same kind and category. The result is advisory: the new report is always
kept, the reporter is only told about near-identical earlier ones.
"""

import math
import uuid
from datetime import datetime, timedelta
from typing import FrozenSet, List, Optional, Union

from pydantic import BaseModel
from sqlmodel import Session, select

from app.models.enums import ItemStatus
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.services.geo import resolve_district
from app.services.matching import extract_keywords
from app.utils.timeutils import as_utc, utcnow

SAME_CATEGORY_SCORE = 5
SAME_LOCATION_SCORE = 3
SAME_DISTRICT_SCORE = 1
WITHIN_3_DAYS_SCORE = 2
WITHIN_7_DAYS_SCORE = 1

TITLE_SIMILARITY_THRESHOLD = 0.6
DESCRIPTION_SIMILARITY_THRESHOLD = 0.4
DUPLICATE_THRESHOLD = 8

LOOKBACK_DAYS = 30
MAX_COMPARED = 20
MAX_CANDIDATES = 5

Item = Union[LostItem, FoundItem]


class DuplicateCandidate(BaseModel):
    id: uuid.UUID
    title: str
    location_area: str
    date: datetime
    similarity_score: int
    similarity_reasons: List[str]


class DuplicateCheckResult(BaseModel):
    has_potential_duplicates: bool
    candidates: List[DuplicateCandidate]
    highest_score: int


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Jaccard similarity of the two texts' keyword sets."""
    words_a: FrozenSet[str] = extract_keywords(a)
    words_b: FrozenSet[str] = extract_keywords(b)

    if not words_a or not words_b:
        return 0.0

    return len(words_a & words_b) / len(words_a | words_b)


def _days_between(a: datetime, b: datetime) -> int:
    return math.ceil(abs(as_utc(a) - as_utc(b)) / timedelta(days=1))


def _item_date(item: Item) -> datetime:
    return item.lost_date if isinstance(item, LostItem) else item.found_date


def score_duplicate(new_item: Item, earlier: Item) -> DuplicateCandidate:
    verb = "Lost" if isinstance(new_item, LostItem) else "Found"
    score = SAME_CATEGORY_SCORE
    reasons = [f"Same category: {new_item.category}"]

    new_area = " ".join(new_item.location_area.split()).lower()
    district = resolve_district(new_item.location_area)
    if new_area == " ".join(earlier.location_area.split()).lower():
        score += SAME_LOCATION_SCORE
        reasons.append(f"Same location: {new_item.location_area}")
    elif district and district == resolve_district(earlier.location_area):
        score += SAME_DISTRICT_SCORE
        reasons.append(f"Same district: {district}")

    days = _days_between(_item_date(new_item), _item_date(earlier))
    if days <= 3:
        score += WITHIN_3_DAYS_SCORE
        reasons.append(f"{verb} within 3 days of each other")
    elif days <= 7:
        score += WITHIN_7_DAYS_SCORE
        reasons.append(f"{verb} within 7 days of each other")

    title_similarity = text_similarity(new_item.title, earlier.title)
    if title_similarity > TITLE_SIMILARITY_THRESHOLD:
        score += round(title_similarity * 3)
        reasons.append(f"Similar title ({round(title_similarity * 100)}% match)")

    description_similarity = text_similarity(new_item.description, earlier.description)
    if description_similarity > DESCRIPTION_SIMILARITY_THRESHOLD:
        score += round(description_similarity * 2)
        reasons.append("Similar description")

    return DuplicateCandidate(
        id=earlier.id,
        title=earlier.title,
        location_area=earlier.location_area,
        date=_item_date(earlier),
        similarity_score=score,
        similarity_reasons=reasons,
    )


def check_duplicate_reports(session: Session, new_item: Item, now: Optional[datetime] = None) -> DuplicateCheckResult:
    """Earlier open reports by the same user that look like ``new_item``."""
    now = as_utc(now or utcnow())
    model = type(new_item)

    earlier_items = session.exec(
        select(model)
        .where(model.user_id == new_item.user_id)
        .where(model.category == new_item.category)
        .where(model.status == ItemStatus.ACTIVE.value)
        .where(model.id != new_item.id)
        .where(model.created_at > now - timedelta(days=LOOKBACK_DAYS))
        .order_by(model.created_at.desc())
        .limit(MAX_COMPARED)
    ).all()

    candidates = [
        candidate
        for candidate in (score_duplicate(new_item, earlier) for earlier in earlier_items)
        if candidate.similarity_score >= DUPLICATE_THRESHOLD
    ]
    candidates.sort(key=lambda c: c.similarity_score, reverse=True)
    candidates = candidates[:MAX_CANDIDATES]

    return DuplicateCheckResult(
        has_potential_duplicates=bool(candidates),
        candidates=candidates,
        highest_score=candidates[0].similarity_score if candidates else 0,
    )
