"""Auth routes: register, login, current user. Bearer-token auth via JWT."""
from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from assessor.core.security import (
    create_access_token,
    hash_password,
    user_id_from_token,
    verify_password,
)
from assessor.db.session import get_db
from assessor.models.user import User
from assessor.schemas.auth import LoginSchema, MeSchema, RegisterSchema, TokenOutSchema, UserBriefSchema

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)

# Shape check only; delivery is never verified
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 5

REGISTRATION_ERRORS = {
    "email": "Invalid email",
    "short": "Password too short",
    "toolong": "Password too long",
    "exists": "Email already registered",
}


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def authenticate(db: AsyncSession, email: str, password: str) -> User | None:
    """Return the user when the credentials match; else None."""
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password or "", user.hashed_password):
        return None
    return user


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    """Resolve the bearer token to a user or fail with 401."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user_id = user_id_from_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return user


def ensure_same_user(current_user: User, user_id: int | None) -> None:
    """Requests may name a user only if it is the token's own."""
    if user_id is not None and user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


async def registration_error(db: AsyncSession, email_norm: str, pwd: str) -> str | None:
    """Return a REGISTRATION_ERRORS code, or None when the account can be created."""
    if not email_norm or not EMAIL_RE.match(email_norm):
        return "email"
    if len(pwd) < MIN_PASSWORD_LENGTH:
        return "short"
    # bcrypt hard limit: 72 bytes (UTF-8)
    if len(pwd.encode("utf-8")) > 72:
        return "toolong"
    if await get_user_by_email(db, email_norm):
        return "exists"
    return None


async def create_user(db: AsyncSession, username: str, email_norm: str, pwd: str) -> User | None:
    """Insert the account; None when a concurrent registration took the email first."""
    user = User(display_name=username.strip(), email=email_norm, hashed_password=hash_password(pwd))
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return None
    logger.info("Registered user %s", user.id)
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a user account."""
    email_norm = normalize_email(body.email)
    pwd = body.password or ""

    error = await registration_error(db, email_norm, pwd)
    if error is None and await create_user(db, body.username, email_norm, pwd) is None:
        error = "exists"
    if error:
        raise HTTPException(status_code=400, detail=REGISTRATION_ERRORS[error])
    return {"success": True}


@router.post("/login", response_model=TokenOutSchema)
async def login(
    body: LoginSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Verify credentials and issue a bearer token."""
    user = await authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    return TokenOutSchema(
        token=create_access_token(user.id),
        user=UserBriefSchema(id=user.id, name=user.display_name, level=user.skill_level),
    )


@router.get("/me", response_model=MeSchema)
async def me(current_user: Annotated[User, Depends(get_current_user)]):
    return MeSchema(
        id=current_user.id,
        name=current_user.display_name,
        email=current_user.email,
        level=current_user.skill_level,
    )
