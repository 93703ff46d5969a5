from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import UserRole, UserStatus


class UserInviteCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.SELLER
    region: Optional[str] = Field(default=None, max_length=120)


class UserInviteAccept(BaseModel):
    token: str = Field(..., min_length=8, description="Invitation token")


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    region: Optional[str] = Field(default=None, max_length=120)


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    name: str
    role: str
    status: str
    region: Optional[str] = None
    phone_e164: Optional[str] = None

    invited_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserInviteOut(UserOut):
    invite_token: Optional[str] = None
    invite_expires_at: Optional[datetime] = None
