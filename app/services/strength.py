"""
Verification strength analysis.

Scores the security questions a reporter sets on a lost item for
specificity, guessability and redundancy, and coaches them with
category templates. It only informs; submission is never blocked.
"""

import re
from enum import Enum
from typing import Dict, List, Set

from pydantic import BaseModel

from app.errors import ValidationError


class StrengthLevel(str, Enum):
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"


class QuestionAnalysis(BaseModel):
    question_index: int
    strength: StrengthLevel
    score: int
    issues: List[str]
    suggestions: List[str]


class VerificationStrengthResult(BaseModel):
    overall_strength: StrengthLevel
    overall_score: int
    questions: List[QuestionAnalysis]
    redundancy_warning: bool
    improvement_tips: List[str]


class QuestionTemplate(BaseModel):
    category: str
    question: str
    why_effective: str


def _templates(category: str, pairs) -> List[QuestionTemplate]:
    return [QuestionTemplate(category=category, question=q, why_effective=w) for q, w in pairs]


QUESTION_TEMPLATES: Dict[str, List[QuestionTemplate]] = {
    "PHONE": _templates("PHONE", [
        ("What is your lockscreen wallpaper?", "Only the owner would know this, it cannot be read off the phone exterior."),
        ("What color/design is the phone case?", "Physical detail that requires having seen the phone."),
        ("What are the last 4 digits of the IMEI number?", "Unique identifier the owner would have recorded."),
        ("Name one specific app on the home screen", "Personal customization unique to each user."),
    ]),
    "ID": _templates("ID", [
        ("What are the last 3 characters of the ID number?", "Partial identifier that the holder knows."),
        ("What are the name initials on the document?", "Ties the document to the claimant."),
        ("Which district issued the document?", "Administrative detail only the holder would know."),
        ("What year was the document issued?", "Temporal detail specific to this document."),
    ]),
    "WALLET": _templates("WALLET", [
        ("How many cards are inside the wallet?", "Content count that requires having owned the wallet."),
        ("Name one specific card (bank/ID/other) inside", "Identifies contents only the owner would know."),
        ("Approximately how much cash was inside (in RWF)?", "Hard to guess correctly."),
        ("What color is the wallet interior?", "Only visible when the wallet is open."),
    ]),
    "BAG": _templates("BAG", [
        ("Describe any distinctive marks, stickers, or damage", "Unique physical features of this bag."),
        ("How many compartments does it have?", "Structural detail requiring familiarity with the bag."),
        ("Name one specific item that was inside", "Contents knowledge only the owner has."),
    ]),
    "KEYS": _templates("KEYS", [
        ("How many keys are on the keyring?", "A count the owner would know."),
        ("Describe the keychain or any attachment", "Decorative details unique to this key set."),
        ("Are any of the keys an unusual shape? Describe it.", "Physical detail that distinguishes these keys."),
    ]),
    "OTHER": _templates("OTHER", [
        ("Describe a specific unique mark or feature on the item", "Physical uniqueness proves familiarity."),
        ("What was the item being used for when last seen?", "Context only the owner would know."),
        ("Where exactly was the item stored before it was lost?", "Specific location knowledge."),
    ]),
}

# Per-question thresholds
BASELINE_SCORE = 50
QUESTION_MIN_LENGTH = 15
ANSWER_MIN_LENGTH = 3
ANSWER_SHORT_LENGTH = 5
ANSWER_DETAILED_LENGTH = 10
STRONG_QUESTION_SCORE = 65
MODERATE_QUESTION_SCORE = 35

# Overall thresholds
STRONG_OVERALL_SCORE = 70
MODERATE_OVERALL_SCORE = 40
REDUNDANCY_PENALTY = 15
REDUNDANCY_OVERLAP = 0.5

YES_NO_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r"^\s*(is|are|was|were|do|does|did|can|has|have)\b",
)]

GENERIC_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r"^\s*what colou?r",
    r"^\s*what is the colou?r",
    r"^\s*what brand",
    r"^\s*where did",
    r"^\s*when did",
    r"^\s*how old",
)]

SPECIFIC_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    r"how many",
    r"describe",
    r"what specific",
    r"\bspecific\b",
    r"\bexact",
    r"last \d",
    r"name (one|a|the)\b",
)]

# Nouns that point at details hard to guess for each category
CATEGORY_DETAIL_NOUNS: Dict[str, Set[str]] = {
    "PHONE": {"wallpaper", "lockscreen", "imei", "ringtone", "app", "apps", "case", "contact"},
    "ID": {"initials", "digits", "characters", "issued", "district", "signature"},
    "WALLET": {"card", "cards", "cash", "receipt", "photo", "interior"},
    "BAG": {"compartment", "compartments", "sticker", "stickers", "zip", "zipper", "pocket"},
    "KEYS": {"keychain", "keyring", "tag", "fob"},
    "OTHER": {"mark", "engraving", "scratch", "serial"},
}

COMMON_ANSWERS = {"yes", "no", "black", "white", "red", "blue", "green", "1", "2", "3", "none", "n/a"}
VAGUE_WORDS = {"thing", "stuff", "something", "object"}

REDUNDANCY_STOPWORDS = {
    "what", "is", "the", "a", "an", "of", "my", "your", "it", "this", "that", "how", "where",
    "when", "which", "does", "do", "are", "was", "were", "on", "in", "about", "can", "you",
    "tell", "me",
}

# Spelling variants and synonyms collapsed before comparing questions
NORMALIZE_MAP = {
    "colour": "color", "colours": "color", "coloured": "color", "colored": "color", "colors": "color",
    "grey": "gray", "favourite": "favorite", "centre": "center",
    "describe": "detail", "description": "detail", "explain": "detail",
}


def get_templates_for_category(category: str) -> List[QuestionTemplate]:
    return QUESTION_TEMPLATES.get((category or "").strip().upper(), QUESTION_TEMPLATES["OTHER"])


def _question_strength(score: int) -> StrengthLevel:
    if score >= STRONG_QUESTION_SCORE:
        return StrengthLevel.STRONG
    if score >= MODERATE_QUESTION_SCORE:
        return StrengthLevel.MODERATE
    return StrengthLevel.WEAK


def analyze_question(question: str, answer: str, category: str, item_description: str, index: int) -> QuestionAnalysis:
    question = (question or "").strip()
    answer = (answer or "").strip()
    question_lower = question.lower()
    answer_lower = answer.lower()
    words = set(re.findall(r"[a-z0-9]+", question_lower))

    score = BASELINE_SCORE
    issues: List[str] = []
    suggestions: List[str] = []

    if len(question) < QUESTION_MIN_LENGTH:
        score -= 20
        issues.append("Question is too short and vague")
        suggestions.append("Add more specific details to your question")

    if any(p.search(question) for p in YES_NO_PATTERNS):
        score -= 25
        issues.append("Yes/no questions are easy to guess (50% chance)")
        suggestions.append('Rephrase as an open-ended question (e.g. "What is..." or "Describe...")')

    if any(p.search(question) for p in GENERIC_PATTERNS):
        score -= 15
        issues.append("This is a very common question type that others might guess")
        suggestions.append("Ask about something more specific and personal to the item")

    if len(answer) < ANSWER_MIN_LENGTH:
        score -= 20
        issues.append("Answer is too short - easy to guess")
        suggestions.append(f"Use a more detailed answer (at least {ANSWER_MIN_LENGTH} characters)")
    elif len(answer) <= ANSWER_SHORT_LENGTH:
        score -= 10
        issues.append("Short answers are easier to brute-force")
    elif len(answer) >= ANSWER_DETAILED_LENGTH:
        score += 10

    if len(answer_lower) >= ANSWER_MIN_LENGTH and answer_lower in (item_description or "").lower():
        score -= 30
        issues.append("Your answer appears in the item description, anyone can read it")
        suggestions.append("Choose a secret that is NOT mentioned in your public item description")

    if answer_lower in COMMON_ANSWERS:
        score -= 15
        issues.append("This answer is very common and easy to guess")
        suggestions.append("Use a more unique and specific answer")

    if words & VAGUE_WORDS:
        score -= 10
        issues.append("Question uses vague words")
        suggestions.append("Replace vague terms with specific details")

    detail_nouns = CATEGORY_DETAIL_NOUNS.get((category or "").upper(), CATEGORY_DETAIL_NOUNS["OTHER"])
    if any(p.search(question) for p in SPECIFIC_PATTERNS) or words & detail_nouns:
        score += 15

    score = max(0, min(100, score))

    return QuestionAnalysis(
        question_index=index,
        strength=_question_strength(score),
        score=score,
        issues=issues,
        suggestions=suggestions,
    )


def _topic_terms(question: str) -> Set[str]:
    words = re.sub(r"[?.,!]", "", (question or "").lower()).split()
    return {NORMALIZE_MAP.get(w, w) for w in words if w not in REDUNDANCY_STOPWORDS and len(w) > 2}


def check_redundancy(questions: List[str]) -> bool:
    """True when any two questions probe the same attribute."""
    topics = [_topic_terms(q) for q in questions]

    for i in range(len(topics)):
        for j in range(i + 1, len(topics)):
            smaller = min(len(topics[i]), len(topics[j]))
            if smaller and len(topics[i] & topics[j]) / smaller >= REDUNDANCY_OVERLAP:
                return True

    return False


def analyze_strength(questions: List[str], answers: List[str], category: str, item_description: str) -> VerificationStrengthResult:
    if len(questions) != 3 or len(answers) != 3:
        raise ValidationError("Exactly 3 security questions and 3 answers are required")

    analyses = [
        analyze_question(question, answer, category, item_description, i)
        for i, (question, answer) in enumerate(zip(questions, answers))
    ]

    redundancy_warning = check_redundancy(questions)

    average = sum(a.score for a in analyses) / len(analyses)
    overall_score = max(0, round(average - (REDUNDANCY_PENALTY if redundancy_warning else 0)))

    if overall_score >= STRONG_OVERALL_SCORE:
        overall_strength = StrengthLevel.STRONG
    elif overall_score >= MODERATE_OVERALL_SCORE:
        overall_strength = StrengthLevel.MODERATE
    else:
        overall_strength = StrengthLevel.WEAK

    tips: List[str] = []
    if overall_strength == StrengthLevel.WEAK:
        tips.append("Your verification questions may not protect your item. Consider using the suggested templates.")
    if redundancy_warning:
        tips.append("Your questions are too similar. Use different types of questions.")

    weak = [a for a in analyses if a.strength == StrengthLevel.WEAK]
    if weak:
        tips.append(f"{len(weak)} of your {len(analyses)} questions are weak.")

    if overall_strength != StrengthLevel.STRONG:
        template = get_templates_for_category(category)[0]
        tips.append(f'For {(category or "other").lower()} items, try questions like: "{template.question}"')

    return VerificationStrengthResult(
        overall_strength=overall_strength,
        overall_score=overall_score,
        questions=analyses,
        redundancy_warning=redundancy_warning,
        improvement_tips=tips,
    )
