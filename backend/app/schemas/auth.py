# backend/app/schemas/auth.py
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

_E164_RE = re.compile(r"^\+[1-9]\d{1,14}$")


def _normalize_phone_e164(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip()
    if not v:
        return None
    v = re.sub(r"[^\d+]", "", v)
    if not _E164_RE.match(v):
        raise ValueError("Must be a valid E.164 phone number (e.g., +5511987654321).")
    return v


def _normalize_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(value.strip().split())
    return v or None


class MagicCodeRequest(BaseModel):
    email: EmailStr


class MagicCodeVerify(BaseModel):
    email: EmailStr
    code: str = Field(min_length=4, max_length=64)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, max_length=200)
    phone_e164: Optional[str] = Field(default=None, max_length=20)
    region: Optional[str] = Field(default=None, max_length=120)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_name(v)

    @field_validator("phone_e164")
    @classmethod
    def validate_phone_e164(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_phone_e164(v)


class MeResponse(BaseModel):
    id: str
    email: EmailStr
    name: str
    role: str
    status: str
    is_admin: bool

    phone_e164: Optional[str] = None
    region: Optional[str] = None
