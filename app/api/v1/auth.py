from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.core.dependencies import get_current_user
from app.core.rate_limit import limiter
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_otp,
    hash_password,
    is_expired,
    otp_matches,
    otp_expiry,
    verify_password,
)
from app.models.profile import CollaboratorProfile, ProjectOwnerProfile
from app.models.user import User
from app.schemas.auth import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    TokenResponse,
    UpdateUserRequest,
    UserResponse,
    VerifyOtpRequest,
)
from app.services.email import build_otp_email, dispatch_email

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        full_name=user.full_name,
        role=user.role,
        is_verified=user.is_verified,
    )


def _issue_tokens(user: User) -> TokenResponse:
    token_data = {"sub": str(user.id), "role": user.role}
    return TokenResponse(
        access_token=create_access_token(token_data),
        refresh_token=create_refresh_token(token_data),
        user=_user_response(user),
    )


def _parse_sub(payload: dict) -> UUID:
    try:
        return UUID(str(payload.get("sub", "")))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")


async def _get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(request: Request, data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if data.password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")

    email = data.email.lower()
    if await _get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail="Email already registered")

    settings = get_settings()
    otp = generate_otp()
    user = User(
        email=email,
        password_hash=hash_password(data.password),
        full_name=data.full_name.strip(),
        role=data.role,
        is_verified=False,
        otp_code=otp,
        otp_expires_at=otp_expiry(settings.OTP_EXPIRE_MINUTES),
    )
    db.add(user)
    await db.flush()

    if user.role == "project_owner":
        db.add(ProjectOwnerProfile(user_id=user.id, name=user.full_name, email=email))
    else:
        db.add(CollaboratorProfile(user_id=user.id, name=user.full_name, email=email))
    await db.flush()

    subject, html = build_otp_email(user.full_name, otp, settings.OTP_EXPIRE_MINUTES)
    dispatch_email(email, subject, html)

    logger.info("user_registered", user_id=str(user.id), role=user.role)

    return RegisterResponse(
        message="User registered successfully. OTP sent to email.",
        user_id=str(user.id),
    )


@router.post("/verify-otp")
@limiter.limit("10/minute")
async def verify_otp(request: Request, data: VerifyOtpRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_by_email(db, data.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.is_verified:
        raise HTTPException(status_code=400, detail="Account already verified")

    if not otp_matches(user.otp_code, data.otp):
        logger.info("otp_rejected", user_id=str(user.id))
        raise HTTPException(status_code=400, detail="Invalid OTP")

    if is_expired(user.otp_expires_at):
        raise HTTPException(status_code=400, detail="OTP has expired")

    user.is_verified = True
    user.otp_code = None
    user.otp_expires_at = None
    await db.flush()

    logger.info("user_verified", user_id=str(user.id))

    return {"status": "ok", "message": "Email verified successfully, you can now log in."}


@router.post("/resend-otp")
@limiter.limit("3/minute")
async def resend_otp(request: Request, data: ResendOtpRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_by_email(db, data.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user.is_verified:
        raise HTTPException(status_code=400, detail="Account already verified")

    settings = get_settings()
    otp = generate_otp()
    user.otp_code = otp
    user.otp_expires_at = otp_expiry(settings.OTP_RESEND_EXPIRE_MINUTES)
    await db.flush()

    subject, html = build_otp_email(user.full_name, otp, settings.OTP_RESEND_EXPIRE_MINUTES)
    dispatch_email(user.email, subject, html)

    return {"status": "ok", "message": "A new OTP has been sent to your email"}


@router.post("/login", response_model=TokenResponse)
@limiter.limit("5/minute")
async def login(request: Request, data: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await _get_user_by_email(db, data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    if not user.is_verified:
        raise HTTPException(
            status_code=403,
            detail="Your email is not verified. Please verify your account.",
        )

    logger.info("user_login", user_id=str(user.id))
    return _issue_tokens(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    payload = decode_token(data.refresh_token)
    if not payload or payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    result = await db.execute(select(User).where(User.id == _parse_sub(payload)))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    return _issue_tokens(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return _user_response(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UpdateUserRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if data.full_name is not None:
        current_user.full_name = data.full_name.strip()
    await db.flush()
    return _user_response(current_user)
