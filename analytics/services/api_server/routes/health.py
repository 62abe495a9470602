"""Health, API index and Prometheus scrape endpoints."""

import time
from datetime import datetime, timezone

import psutil
import structlog
from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from analytics.services.api_server.config import VERSION, Settings, get_settings
from analytics.services.api_server.database import get_session
from analytics.services.api_server.metrics import METRICS_CONTENT_TYPE, get_metrics_text
from analytics.services.api_server.schemas import envelope

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])

# Track server start time
_SERVER_START_TIME = time.time()


class HealthCheckResponse(BaseModel):
    """Health check response with system status."""

    status: str = Field(description="Overall health status: 'healthy' or 'unhealthy'")
    timestamp: str = Field(description="ISO timestamp of health check")
    environment: str
    version: str
    checks: dict[str, str] = Field(description="Individual component health checks")
    uptime_seconds: float
    resource_usage: dict[str, float] | None = None


def _health_check_impl(session: Session, settings: Settings) -> HealthCheckResponse:
    checks: dict[str, str] = {"api": "healthy"}
    status = "healthy"

    try:
        session.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        checks["database"] = f"unhealthy: {e}"
        status = "unhealthy"
        logger.error("database_check_failed", error=str(e))

    resource_usage: dict[str, float] | None = None
    try:
        process = psutil.Process()
        memory_info = process.memory_info()
        resource_usage = {
            "memory_rss_mb": memory_info.rss / 1024 / 1024,
            "memory_percent": process.memory_percent(),
        }
    except psutil.Error as e:
        logger.warning("resource_usage_check_failed", error=str(e))

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.environment,
        version=VERSION,
        checks=checks,
        uptime_seconds=time.time() - _SERVER_START_TIME,
        resource_usage=resource_usage,
    )


@router.get("/api/health")
def health_check(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    result = _health_check_impl(session, settings)
    return envelope("Customer Segmentation API is running", result.model_dump())


@router.get("/api")
def api_index():
    return envelope(
        "Customer Segmentation API",
        {
            "version": VERSION,
            "endpoints": {
                "auth": "/api/auth",
                "users": "/api/users",
                "segmentation": "/api/segmentation",
                "payments": "/api/payments",
                "campaigns": "/api/campaigns",
                "health": "/api/health",
                "metrics": "/metrics",
            },
        },
    )


@router.get("/metrics", include_in_schema=False)
def prometheus_metrics() -> Response:
    return Response(content=get_metrics_text(), media_type=METRICS_CONTENT_TYPE)
