"""Marketing campaigns targeted at segments."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import Campaign, Segment, User
from analytics.services.api_server.schemas import CampaignCreate, envelope
from analytics.services.api_server.security import require_admin

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/campaigns", tags=["campaigns"])


def _campaign_to_dict(campaign: Campaign) -> dict:
    return {
        "id": campaign.id,
        "name": campaign.name,
        "description": campaign.description,
        "type": campaign.type,
        "target_segment_ids": campaign.target_segment_ids or [],
        "content": campaign.content or {},
        "promotion": campaign.promotion or {},
        "schedule": campaign.schedule or {},
        "status": campaign.status,
        "metrics": campaign.metrics or {},
        "created_by": campaign.created_by,
        "created_at": campaign.created_at,
    }


@router.get("")
def list_campaigns(
    status_filter: str | None = Query(default=None, alias="status"),
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    stmt = select(Campaign).order_by(Campaign.created_at.desc(), Campaign.id.desc())
    if status_filter:
        stmt = stmt.where(Campaign.status == status_filter)
    campaigns = session.scalars(stmt)
    return envelope(
        "Campaigns retrieved",
        {"campaigns": [_campaign_to_dict(c) for c in campaigns]},
    )


@router.post("", status_code=status.HTTP_201_CREATED)
def create_campaign(
    request: CampaignCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    if request.target_segment_ids:
        found = set(
            session.scalars(
                select(Segment.id).where(
                    Segment.id.in_(request.target_segment_ids), Segment.is_active.is_(True)
                )
            )
        )
        missing = sorted(set(request.target_segment_ids) - found)
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown target segments: {missing}")

    campaign = Campaign(**request.model_dump(), created_by=admin.id)
    session.add(campaign)
    session.commit()
    logger.info("campaign_created", campaign_id=campaign.id, by=admin.id)
    return envelope("Campaign created successfully", {"campaign": _campaign_to_dict(campaign)})
