# backend/app/api/v1/auth.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_user
from app.core.config import settings
from app.core.enums import UserRole, UserStatus
from app.core.security import create_access_token, generate_magic_code
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import MagicCodeRequest, MagicCodeVerify, MeResponse, ProfileUpdateRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

MAGIC_CODE_EXPIRY_MINUTES = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _should_return_magic_code_in_response() -> bool:
    """In staging/production the code only travels by email."""
    return not settings.is_production


async def purge_expired_magic_codes(db: AsyncSession) -> None:
    """
    Clear all expired magic codes globally.
    """
    stmt = (
        update(User)
        .where(User.magic_code_expires_at.is_not(None))
        .where(User.magic_code_expires_at < _utcnow())
        .values(magic_code=None, magic_code_expires_at=None)
    )
    await db.execute(stmt)


@router.post("/request-code")
async def request_code(payload: MagicCodeRequest, db: AsyncSession = Depends(get_db)):
    """
    Body: {"email": "user@example.com"}
    Generates a magic code (stored on user record).

    Unknown or inactive emails get the same "ok" answer without a code.
    The very first user of an empty deployment is created as admin.
    """
    email = User.normalize_email(payload.email)

    await purge_expired_magic_codes(db)

    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()

    if user is None:
        user_count = (await db.execute(select(func.count(User.id)))).scalar_one()
        if user_count:
            await db.commit()
            return {"status": "ok", "expires_in_minutes": MAGIC_CODE_EXPIRY_MINUTES}
        user = User(email=email, name="", role=UserRole.ADMIN.value, status=UserStatus.ACTIVE.value)
        db.add(user)
        await db.flush()
        logger.info("Bootstrapped first admin user %s", user.id)

    if not user.is_active:
        await db.commit()
        return {"status": "ok", "expires_in_minutes": MAGIC_CODE_EXPIRY_MINUTES}

    code = generate_magic_code()
    user.magic_code = code
    user.magic_code_expires_at = _utcnow() + timedelta(minutes=MAGIC_CODE_EXPIRY_MINUTES)

    await db.commit()

    resp = {"status": "ok", "expires_in_minutes": MAGIC_CODE_EXPIRY_MINUTES}
    if _should_return_magic_code_in_response():
        resp["code"] = code
    return resp


@router.post("/verify-code", response_model=TokenResponse)
async def verify_code(payload: MagicCodeVerify, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """
    Body: {"email":"user@example.com","code":"123456"}
    Returns: access_token
    """
    email = User.normalize_email(payload.email)
    code = payload.code.strip()

    if not code:
        raise HTTPException(status_code=400, detail="code is required")

    res = await db.execute(select(User).where(User.email == email))
    user = res.scalar_one_or_none()

    if not user or not user.magic_code or not user.magic_code_expires_at:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid code")

    if user.magic_code != code:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid code")

    if as_utc(user.magic_code_expires_at) < _utcnow():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Code expired")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User inactive")

    # One-time use: clear after successful verification
    user.magic_code = None
    user.magic_code_expires_at = None
    await db.commit()

    access_token = create_access_token(
        subject=str(user.id),
        role=user.role,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    return TokenResponse(access_token=access_token)


def _to_me_response(user: User) -> MeResponse:
    return MeResponse(
        id=str(user.id),
        email=user.email,
        name=user.name or "",
        role=user.role,
        status=user.status,
        is_admin=bool(user.is_admin),
        phone_e164=user.phone_e164,
        region=user.region,
    )


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    return _to_me_response(user)


@router.patch("/me", response_model=MeResponse)
async def update_me(
    payload: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MeResponse:
    """
    Updates the current user's own profile fields. Role and status are admin-only (see /users).
    """
    data = payload.model_dump(exclude_unset=True)

    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields provided to update.")

    if "name" in data:
        user.name = User.normalize_name(data["name"])

    if "phone_e164" in data:
        try:
            user.phone_e164 = User.normalize_phone_e164(data["phone_e164"])
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    if "region" in data:
        user.region = (data["region"] or "").strip() or None

    await db.commit()
    await db.refresh(user)

    return _to_me_response(user)
