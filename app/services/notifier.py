"""
Fire-and-forget notification dispatch.

Notifications are written to the recipient's inbox after the claim
transaction has committed. A failed write is logged and never undoes or
blocks the state change that triggered it.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.notification import Notification

logger = logging.getLogger(__name__)


def notify(
    session: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    claim_id: Optional[uuid.UUID] = None,
) -> None:
    try:
        session.add(Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            claim_id=claim_id,
        ))
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to dispatch %s notification to user %s", type, user_id)
