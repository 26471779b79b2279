import uuid
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session, select

from app.db.db import get_session
from app.models.user import User
from app.utils.auth_helper import create_access_token

router = APIRouter()


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    email: str = Field(min_length=3, max_length=120)
    phone: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    user_id: str


@router.post("/register", response_model=TokenResponse)
async def register(payload: RegisterRequest, session: Session = Depends(get_session)):
    email = payload.email.strip().lower()

    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise HTTPException(status_code=409, detail="Email already registered")

    # New accounts are always citizens, staff roles are granted out of band
    db_user = User(
        public_id=uuid.uuid4().hex,
        name=payload.name.strip(),
        email=email,
        phone=payload.phone,
    )
    session.add(db_user)
    session.commit()
    session.refresh(db_user)

    return TokenResponse(
        access_token=create_access_token(db_user),
        user_id=db_user.public_id,
    )
