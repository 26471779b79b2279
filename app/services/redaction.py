"""
Pattern-based redaction of personal data in item text shown to non-owners.

National ID numbers, phone numbers and email addresses are masked in place
while the rest of the description stays readable. Descriptions of ID and
WALLET items are also cut to a fixed length until the viewer is verified.
"""

import re
from enum import Enum
from typing import Callable, Iterable, List, NamedTuple, Optional

from pydantic import BaseModel

from app.models.lost_item import SECRET_FIELDS

SENSITIVE_CATEGORIES = {"ID", "WALLET"}
SENSITIVE_TRUNCATE_AT = 200
TRUNCATION_NOTICE = "... [Full details visible after verification]"
PRIVACY_NOTICE = "Some sensitive information has been redacted for privacy protection."


class SensitivityLevel(str, Enum):
    NONE = "NONE"
    HIGH = "HIGH"


class RedactionMatch(BaseModel):
    pattern_type: str
    original_length: int
    position: int
    reason: str


class RedactionResult(BaseModel):
    redacted_text: str
    redactions_applied: List[RedactionMatch]
    sensitivity_level: SensitivityLevel
    truncated: bool = False


class _Pattern(NamedTuple):
    name: str
    regex: "re.Pattern[str]"
    reason: str
    mask: Callable[[str], str]


def _mask_national_id(value: str) -> str:
    return value[0] + "*" * (len(value) - 2) + value[-1]


def _mask_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    return digits[:4] + "***" + digits[-2:]


def _mask_email(value: str) -> str:
    local, domain = value.split("@", 1)
    return local[0] + "***@" + domain


PATTERNS = [
    _Pattern(
        name="NATIONAL_ID",
        # 16 digits starting with 1
        regex=re.compile(r"(?<!\d)1\d{15}(?!\d)"),
        reason="National ID number detected",
        mask=_mask_national_id,
    ),
    _Pattern(
        name="PHONE_NUMBER",
        # +250 7XX XXX XXX, 250 7XX..., or 07XX XXX XXX
        regex=re.compile(r"(?<![\d+])(?:\+?250[\s-]?|0)7\d{2}[\s.-]?\d{3}[\s.-]?\d{3}(?!\d)"),
        reason="Phone number detected - hidden for privacy",
        mask=_mask_phone,
    ),
    _Pattern(
        name="EMAIL",
        regex=re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        reason="Email address detected",
        mask=_mask_email,
    ),
]


def redact(text: Optional[str], category: Optional[str] = None, is_owner: bool = False) -> RedactionResult:
    """
    Mask sensitive patterns in ``text`` for a viewer who does not own the item.

    The owner always sees the text unchanged.
    """
    text = text or ""

    if is_owner:
        return RedactionResult(
            redacted_text=text,
            redactions_applied=[],
            sensitivity_level=SensitivityLevel.NONE,
        )

    redacted = text
    redactions: List[RedactionMatch] = []

    for pattern in PATTERNS:
        def _replace(match: "re.Match[str]", pattern=pattern) -> str:
            redactions.append(RedactionMatch(
                pattern_type=pattern.name,
                original_length=len(match.group(0)),
                position=match.start(),
                reason=pattern.reason,
            ))
            return pattern.mask(match.group(0))

        redacted = pattern.regex.sub(_replace, redacted)

    truncated = False
    if (category or "").upper() in SENSITIVE_CATEGORIES and len(redacted) > SENSITIVE_TRUNCATE_AT:
        redacted = redacted[:SENSITIVE_TRUNCATE_AT] + TRUNCATION_NOTICE
        truncated = True

    return RedactionResult(
        redacted_text=redacted,
        redactions_applied=redactions,
        sensitivity_level=SensitivityLevel.HIGH if redactions else SensitivityLevel.NONE,
        truncated=truncated,
    )


def redact_item(item, viewer_id: Optional[int]) -> dict:
    """Render an item for ``viewer_id``; anonymous viewers are never owners."""
    is_owner = viewer_id is not None and item.user_id == viewer_id

    data = item.model_dump(exclude=SECRET_FIELDS)

    description = redact(item.description, item.category, is_owner)
    title = redact(item.title, item.category, is_owner)

    data["description"] = description.redacted_text
    data["title"] = title.redacted_text

    redaction_count = len(description.redactions_applied) + len(title.redactions_applied)
    if redaction_count:
        data["privacy_notice"] = PRIVACY_NOTICE
        data["redaction_count"] = redaction_count

    return data


def redact_item_list(items: Iterable, viewer_id: Optional[int]) -> List[dict]:
    return [redact_item(item, viewer_id) for item in items]
