"""
Deterministic, explainable matching between lost and found reports.

Scoring is a pure function of two item snapshots plus the district table.
The ``find_matches_*`` helpers only read from the session.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from sqlmodel import Session, select

from app.models.enums import ItemStatus
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.services.geo import resolve_district
from app.utils.timeutils import as_utc

WEIGHTS = {
    "CATEGORY_MATCH": 5,
    "SAME_DISTRICT": 3,
    "WITHIN_WINDOW": 2,
    "KEYWORD_MATCH": 1,
}

MATCH_WINDOW_HOURS = 72
MINIMUM_SCORE = 5
MAX_MATCHES = 5

# Statuses still worth surfacing as candidates
CANDIDATE_STATUSES = (ItemStatus.ACTIVE.value, ItemStatus.MATCHED.value)

STOPWORDS: FrozenSet[str] = frozenset({
    # English
    "the", "and", "for", "was", "been", "being", "have", "has", "had", "does", "did",
    "will", "would", "could", "should", "may", "might", "must", "shall", "can", "need",
    "used", "my", "your", "his", "her", "its", "our", "their", "this", "that", "these",
    "those", "you", "she", "they", "what", "which", "who", "whom", "whose", "where",
    "when", "why", "how", "all", "each", "every", "both", "few", "more", "most", "other",
    "some", "such", "not", "only", "same", "than", "too", "very", "just", "also", "now",
    "here", "there", "then", "once", "with", "about", "after", "before", "above", "below",
    "between", "into", "through", "during", "under", "again", "further", "while",
    "lost", "found", "item", "near", "inside",
    # Kinyarwanda
    "dufite", "nta", "hari", "ndi", "uri", "ari", "bya", "cya", "rya",
})

_NON_WORD = re.compile(r"[^\w\s]|_")

Item = Union[LostItem, FoundItem]


@dataclass(frozen=True)
class MatchCandidate:
    lost_item: LostItem
    found_item: FoundItem
    score: int
    explanation: List[str] = field(default_factory=list)
    # Report timestamp of the candidate side, used to break score ties
    reported_at: Optional[datetime] = None


def extract_keywords(text: Optional[str]) -> FrozenSet[str]:
    """Lowercased tokens of at least 3 characters, minus stopwords."""
    if not text:
        return frozenset()

    tokens = _NON_WORD.sub(" ", text.lower()).split()

    return frozenset(t for t in tokens if len(t) >= 3 and t not in STOPWORDS)


def item_keywords(item: Item) -> FrozenSet[str]:
    return extract_keywords(f"{item.title} {item.description}")


def is_within_window(lost_date: datetime, found_date: datetime, hours: int = MATCH_WINDOW_HOURS) -> bool:
    return abs(as_utc(lost_date) - as_utc(found_date)) <= timedelta(hours=hours)


def compute_match_score(lost: LostItem, found: FoundItem) -> Optional[Tuple[int, List[str]]]:
    """
    Score a (lost, found) pair.

    Returns None when the categories differ; category is a gate, not a bonus.
    Explanation entries follow the order the components are evaluated in.
    """
    if lost.category != found.category:
        return None

    score = WEIGHTS["CATEGORY_MATCH"]
    explanation = ["same category"]

    lost_district = resolve_district(lost.location_area)
    if lost_district is not None and lost_district == resolve_district(found.location_area):
        score += WEIGHTS["SAME_DISTRICT"]
        explanation.append(f"same district: {lost_district}")

    if is_within_window(lost.lost_date, found.found_date):
        score += WEIGHTS["WITHIN_WINDOW"]
        explanation.append(f"reported within {MATCH_WINDOW_HOURS} hours")

    shared = item_keywords(lost) & item_keywords(found)
    if shared:
        score += WEIGHTS["KEYWORD_MATCH"] * len(shared)
        explanation.append(f"{len(shared)} shared keyword{'s' if len(shared) != 1 else ''}")

    return score, explanation


def rank_candidates(subject: Item, candidates: Iterable[Item], limit: Optional[int] = MAX_MATCHES) -> List[MatchCandidate]:
    """Score ``subject`` against every candidate of the opposite kind and rank them."""
    ranked: List[MatchCandidate] = []

    for candidate in candidates:
        if isinstance(subject, LostItem):
            lost, found = subject, candidate
        else:
            lost, found = candidate, subject

        result = compute_match_score(lost, found)
        if result is None:
            continue

        score, explanation = result
        if score < MINIMUM_SCORE:
            continue

        ranked.append(MatchCandidate(
            lost_item=lost,
            found_item=found,
            score=score,
            explanation=explanation,
            reported_at=as_utc(candidate.created_at),
        ))

    # Highest score first, then the most recently reported candidate
    ranked.sort(key=lambda m: (m.score, m.reported_at), reverse=True)

    return ranked if limit is None else ranked[:limit]


def find_matches_for_lost_item(session: Session, lost_item: LostItem, limit: Optional[int] = MAX_MATCHES) -> List[MatchCandidate]:
    found_items = session.exec(
        select(FoundItem)
        .where(FoundItem.category == lost_item.category)
        .where(FoundItem.status.in_(CANDIDATE_STATUSES))
    ).all()

    return rank_candidates(lost_item, found_items, limit)


def find_matches_for_found_item(session: Session, found_item: FoundItem, limit: Optional[int] = MAX_MATCHES) -> List[MatchCandidate]:
    lost_items = session.exec(
        select(LostItem)
        .where(LostItem.category == found_item.category)
        .where(LostItem.status.in_(CANDIDATE_STATUSES))
    ).all()

    return rank_candidates(found_item, lost_items, limit)
