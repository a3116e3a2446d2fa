from __future__ import annotations
import structlog
from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from arena.db import get_session
from arena.auth_deps import get_current_user
from arena.models.user import User
from arena.schemas.auth import RegisterRequest, LoginRequest, UserPublic, TokenPair
from arena.security import TokenError, hash_password, verify_password, make_access_token, make_refresh_token, token_subject

router = APIRouter(prefix="/auth", tags=["auth"])
log = structlog.get_logger()

def _to_public(user: User) -> UserPublic:
    return UserPublic(id=user.id, email=user.email, full_name=user.full_name, role=user.role, created_at=user.created_at)

@router.post("/register", status_code=201, response_model=UserPublic)
async def register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    email = payload.email.lower().strip()
    exists = await session.scalar(select(User).where(User.email == email))
    if exists:
        raise HTTPException(status_code=409, detail="Email already registered")
    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        full_name=(payload.full_name or "").strip() or None,
        role="user",
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    await session.refresh(user)
    log.info("auth.registered", user_id=str(user.id))
    return _to_public(user)

@router.post("/login", response_model=TokenPair)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    user = await session.scalar(select(User).where(User.email == payload.email.lower().strip()))
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    log.info("auth.login", user_id=str(user.id))
    return TokenPair(access=make_access_token(user.id), refresh=make_refresh_token(user.id))

@router.post("/refresh", response_model=TokenPair)
async def refresh(authorization: str | None = Header(None), session: AsyncSession = Depends(get_session)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing refresh token")
    try:
        user_id = token_subject(authorization.split(" ", 1)[1], "refresh")
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return TokenPair(access=make_access_token(user.id), refresh=make_refresh_token(user.id))

@router.get("/me", response_model=UserPublic)
async def me(user: User = Depends(get_current_user)):
    return _to_public(user)
