from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    public_id: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    name: str
    email: str
    phone: Optional[str] = Field(default=None)

    role: str = Field(default="citizen")  # Possible roles: citizen, coop_staff, admin

    # Contact verification, each credited to the trust score once
    email_verified: bool = Field(default=False)
    phone_verified: bool = Field(default=False)
    identity_verified: bool = Field(default=False)
