"""Password hashing, access tokens and the auth dependencies."""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from analytics.services.api_server.config import Settings, get_settings
from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import User

logger = structlog.get_logger(__name__)

JWT_ALGORITHM = "HS256"

_bearer = HTTPBearer(auto_error=False)


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user_id: int, settings: Settings, now: datetime | None = None) -> str:
    """Sign a token whose subject is ``user_id``, valid for ``jwt_expire_days``."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, settings: Settings) -> int:
    """Return the user id of a valid token.

    Raises:
        jwt.PyJWTError: Bad signature, malformed or expired token
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
    try:
        return int(payload["sub"])
    except ValueError:
        raise jwt.InvalidTokenError("Token subject is not a user id") from None


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Resolve the active user of the request's bearer token (401 otherwise)."""
    if credentials is None:
        raise _unauthorized("Access denied. No token provided.")

    try:
        user_id = decode_access_token(credentials.credentials, settings)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token expired") from None
    except jwt.PyJWTError as e:
        logger.info("invalid_access_token", error=str(e))
        raise _unauthorized("Invalid token") from None

    user = session.get(User, user_id)
    if user is None:
        raise _unauthorized("Invalid token. User not found.")
    if not user.is_active:
        raise _unauthorized("Account is deactivated")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return user
