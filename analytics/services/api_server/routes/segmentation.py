"""Segment definitions, segmentation runs and the analytics overview."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from analytics.services.api_server.database import get_session
from analytics.services.api_server.models import Segment, User
from analytics.services.api_server.repositories import PurchaseRepository, SegmentRepository
from analytics.services.api_server.runner import SegmentationRunner, get_runner
from analytics.services.api_server.schemas import (
    RunSegmentationRequest,
    SegmentCreate,
    SegmentUpdate,
    envelope,
    segment_to_dict,
)
from analytics.services.api_server.security import get_current_user, require_admin
from customer_segmentation.analyses import build_overview

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/segmentation", tags=["segmentation"])


def _get_segment_or_404(segments: SegmentRepository, segment_id: int) -> Segment:
    segment = segments.get(segment_id)
    if segment is None:
        raise HTTPException(status_code=404, detail="Segment not found")
    return segment


def _run_segmentation_impl(
    request: RunSegmentationRequest,
    session: Session,
    runner: SegmentationRunner,
) -> dict[str, Any]:
    """Run a segmentation over all completed purchases and store it on the segment.

    The segment's previous results stay in place if the run fails.
    """
    segments = SegmentRepository(session)
    segment = _get_segment_or_404(segments, request.segment_id)

    purchases = PurchaseRepository(session).iter_completed_purchases()
    result = runner.run(request.algorithm, segment.criteria, purchases, k=request.k)
    segments.save_run(segment, result)

    return {
        "segment_id": segment.id,
        "version": segment.version,
        "last_trained": result.completed_at,
        **result.as_dict(),
    }


@router.post("/run")
def run_segmentation(
    request: RunSegmentationRequest,
    session: Session = Depends(get_session),
    runner: SegmentationRunner = Depends(get_runner),
    admin: User = Depends(require_admin),
):
    logger.info(
        "segmentation_run_requested",
        segment_id=request.segment_id,
        algorithm=request.algorithm,
        by=admin.id,
    )
    data = _run_segmentation_impl(request, session, runner)
    return envelope("Segmentation completed successfully", data)


@router.get("/analytics")
def analytics_overview(
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    purchases = PurchaseRepository(session)
    overview = build_overview(
        purchases.all_purchase_records(),
        purchases.category_sales(),
        total_users=purchases.count_users(),
    )
    return envelope("Analytics retrieved", overview.as_dict())


@router.get("/segments")
def list_segments(
    session: Session = Depends(get_session),
    _user: User = Depends(get_current_user),
):
    segments = SegmentRepository(session).list_active()
    return envelope("Segments retrieved", {"segments": [segment_to_dict(s) for s in segments]})


@router.post("/segments", status_code=status.HTTP_201_CREATED)
def create_segment(
    request: SegmentCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    segments = SegmentRepository(session)
    if segments.get_by_name(request.name) is not None:
        raise HTTPException(status_code=400, detail="Segment with this name already exists")

    segment = Segment(
        name=request.name,
        description=request.description,
        criteria=request.criteria,
        created_by=admin.id,
    )
    session.add(segment)
    session.commit()
    logger.info("segment_created", segment_id=segment.id, by=admin.id)
    return envelope("Segment created successfully", {"segment": segment_to_dict(segment)})


@router.get("/segments/{segment_id}")
def get_segment(
    segment_id: int,
    session: Session = Depends(get_session),
    _user: User = Depends(get_current_user),
):
    segment = _get_segment_or_404(SegmentRepository(session), segment_id)
    return envelope(
        "Segment retrieved",
        {"segment": segment_to_dict(segment, include_assignments=True)},
    )


@router.put("/segments/{segment_id}")
def update_segment(
    segment_id: int,
    request: SegmentUpdate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_admin),
):
    segments = SegmentRepository(session)
    segment = _get_segment_or_404(segments, segment_id)

    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes and changes["name"] != segment.name:
        if segments.get_by_name(changes["name"]) is not None:
            raise HTTPException(status_code=400, detail="Segment with this name already exists")
    for field, value in changes.items():
        setattr(segment, field, value)
    session.commit()
    return envelope("Segment updated successfully", {"segment": segment_to_dict(segment)})


@router.delete("/segments/{segment_id}")
def delete_segment(
    segment_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    segment = _get_segment_or_404(SegmentRepository(session), segment_id)
    segment.is_active = False
    session.commit()
    logger.info("segment_deactivated", segment_id=segment_id, by=admin.id)
    return envelope("Segment deleted successfully")
