"""User administration endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import User
from analytics.services.api_server.schemas import envelope, user_to_dict
from analytics.services.api_server.security import get_current_user, require_admin

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("")
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    role: str | None = Query(default=None),
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    stmt = select(User)
    count_stmt = select(func.count()).select_from(User)
    if role:
        stmt = stmt.where(User.role == role)
        count_stmt = count_stmt.where(User.role == role)

    total = session.scalar(count_stmt) or 0
    users = session.scalars(
        stmt.order_by(User.created_at.desc(), User.id.desc()).limit(limit).offset((page - 1) * limit)
    )
    return envelope(
        "Users retrieved",
        {
            "users": [user_to_dict(u) for u in users],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        },
    )


@router.get("/{user_id}")
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
    current: User = Depends(get_current_user),
):
    if current.id != user_id and not current.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return envelope("User retrieved", {"user": user_to_dict(user)})


@router.delete("/{user_id}")
def deactivate_user(
    user_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """Soft delete: the account is deactivated, its purchases are kept."""
    if admin.id == user_id:
        raise HTTPException(status_code=400, detail="Admins cannot deactivate themselves")
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    user.is_active = False
    session.commit()
    logger.info("user_deactivated", user_id=user_id, by=admin.id)
    return envelope("User deactivated successfully")
