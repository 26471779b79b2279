import logging
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from app.db.db import get_session
from app.errors import NotFoundError
from app.models.enums import ItemCategory, ItemStatus
from app.models.found_item import FoundItem
from app.models.lost_item import LostItem
from app.services.duplicates import check_duplicate_reports
from app.services.redaction import redact_item, redact_item_list
from app.services.strength import QuestionTemplate, VerificationStrengthResult, analyze_strength, get_templates_for_category
from app.services.trust import ensure_report_allowed
from app.utils.auth_helper import get_current_db_user, get_current_user_optional, get_viewer_id
from app.utils.form_validator import CreateFoundItem, CreateLostItem, validate_security_questions
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


class StrengthRequest(BaseModel):
    questions: List[str]
    answers: List[str]
    category: ItemCategory
    description: str = ""


@router.post("/lost")
async def report_lost_item(
    payload: CreateLostItem,
    session: Session = Depends(get_session),
    user=Depends(get_current_db_user),
):
    ensure_report_allowed(session, user.id, utcnow())

    pairs = validate_security_questions(payload.security_questions)

    db_item = LostItem(
        user_id=user.id,
        title=payload.title,
        category=payload.category.value,
        description=payload.description,
        location_area=payload.location_area,
        lost_date=payload.date,
        question_1=pairs[0].question,
        answer_1=pairs[0].answer,
        question_2=pairs[1].question,
        answer_2=pairs[1].answer,
        question_3=pairs[2].question,
        answer_3=pairs[2].answer,
    )

    session.add(db_item)
    session.commit()
    session.refresh(db_item)

    logger.info("Lost item %s reported by user %s", db_item.id, user.id)

    # Coaching only, a weak set of questions is still accepted
    strength = analyze_strength(
        [p.question for p in pairs],
        [p.answer for p in pairs],
        db_item.category,
        db_item.description,
    )

    return {
        "item": redact_item(db_item, user.id),
        "verification_strength": strength,
        "duplicate_check": check_duplicate_reports(session, db_item),
    }


@router.post("/found")
async def report_found_item(
    payload: CreateFoundItem,
    session: Session = Depends(get_session),
    user=Depends(get_current_db_user),
):
    ensure_report_allowed(session, user.id, utcnow())

    db_item = FoundItem(
        user_id=user.id,
        title=payload.title,
        category=payload.category.value,
        description=payload.description,
        location_area=payload.location_area,
        found_date=payload.date,
    )

    session.add(db_item)
    session.commit()
    session.refresh(db_item)

    logger.info("Found item %s reported by user %s", db_item.id, user.id)

    return {
        "item": redact_item(db_item, user.id),
        "duplicate_check": check_duplicate_reports(session, db_item),
    }


def _list_items(model, session: Session, category: Optional[ItemCategory], status: Optional[ItemStatus]):
    query = select(model).order_by(model.created_at.desc())

    if category:
        query = query.where(model.category == category.value)

    if status:
        query = query.where(model.status == status.value)
    else:
        query = query.where(model.status != ItemStatus.CLOSED.value)

    return session.exec(query).all()


@router.get("/lost")
async def get_lost_items(
    category: Optional[ItemCategory] = None,
    status: Optional[ItemStatus] = None,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_optional),
):
    viewer_id = get_viewer_id(session, current_user)
    items = _list_items(LostItem, session, category, status)

    return {"items": redact_item_list(items, viewer_id)}


@router.get("/found")
async def get_found_items(
    category: Optional[ItemCategory] = None,
    status: Optional[ItemStatus] = None,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_optional),
):
    viewer_id = get_viewer_id(session, current_user)
    items = _list_items(FoundItem, session, category, status)

    return {"items": redact_item_list(items, viewer_id)}


@router.get("/lost/{item_id}")
async def get_lost_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_optional),
):
    item = session.get(LostItem, item_id)
    if not item:
        raise NotFoundError("Item not found")

    return {"item": redact_item(item, get_viewer_id(session, current_user))}


@router.get("/found/{item_id}")
async def get_found_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user=Depends(get_current_user_optional),
):
    item = session.get(FoundItem, item_id)
    if not item:
        raise NotFoundError("Item not found")

    return {"item": redact_item(item, get_viewer_id(session, current_user))}


@router.post("/verification-strength", response_model=VerificationStrengthResult)
async def check_verification_strength(payload: StrengthRequest):
    return analyze_strength(payload.questions, payload.answers, payload.category.value, payload.description)


@router.get("/verification-templates/{category}", response_model=List[QuestionTemplate])
async def get_verification_templates(category: str):
    # Unknown categories fall back to the generic templates
    return get_templates_for_category(category)
