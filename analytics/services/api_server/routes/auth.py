"""Registration, login and profile endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import User
from analytics.services.api_server.schemas import (
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    envelope,
    user_to_dict,
)
from analytics.services.api_server.security import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    if session.scalar(select(User).where(User.email == request.email)) is not None:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = User(
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
        password_hash=hash_password(request.password, rounds=settings.bcrypt_rounds),
        phone=request.phone,
        city=request.city,
        country=request.country,
    )
    session.add(user)
    session.commit()
    logger.info("user_registered", user_id=user.id)

    return envelope(
        "User registered successfully",
        {"user": user_to_dict(user), "token": create_access_token(user.id, settings)},
    )


@router.post("/login")
def login(
    request: LoginRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    user = session.scalar(select(User).where(User.email == request.email))
    if user is None or not verify_password(request.password, user.password_hash):
        logger.info("login_rejected", reason="bad_credentials")
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    user.last_login = datetime.now(timezone.utc)
    session.commit()
    logger.info("user_logged_in", user_id=user.id)

    return envelope(
        "Login successful",
        {"user": user_to_dict(user), "token": create_access_token(user.id, settings)},
    )


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return envelope("Profile retrieved", {"user": user_to_dict(user)})


@router.put("/profile")
def update_profile(
    request: ProfileUpdate,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(user, field, value)
    session.commit()
    return envelope("Profile updated successfully", {"user": user_to_dict(user)})
