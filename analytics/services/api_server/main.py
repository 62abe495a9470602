"""
Customer Segmentation API Server

Configures structured logging, observability, CORS and error handling, and
registers every route module on the application instance.
"""

import logging
import sys
from contextlib import asynccontextmanager

import structlog
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from analytics.services.api_server.config import SERVICE_NAME, VERSION, get_settings

# Configure structlog to write JSON lines to stderr
logging.basicConfig(
    format="%(message)s",
    stream=sys.stderr,
    level=logging.INFO,
)

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
    logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def app_lifespan(app):
    """Initialize and cleanup API server resources.

    Sets up OpenTelemetry providers (unless tracing is disabled) and binds
    the database session factory before the first request.
    """
    from analytics.services.api_server.database import init_database
    from analytics.services.api_server.observability import (
        configure_observability,
        shutdown_observability,
    )

    settings = get_settings()
    logger.info("api_server_starting", version=VERSION, environment=settings.environment)

    if settings.enable_tracing:
        configure_observability(
            service_name=SERVICE_NAME,
            environment=settings.environment,
            otlp_endpoint=settings.otlp_endpoint,
            sampling_rate=settings.sampling_rate,
        )
        logger.info(
            "observability_initialized",
            otlp_enabled=settings.otlp_endpoint is not None,
            sampling_rate=settings.sampling_rate,
        )

    init_database(settings.database_url)

    yield

    # Shutdown
    logger.info("api_server_stopping")
    if settings.enable_tracing:
        shutdown_observability()


# Import app instance (must be imported before routes to avoid circular imports)
from analytics.services.api_server.instance import app  # noqa: E402
from analytics.services.api_server.payments import (  # noqa: E402
    PaymentGatewayError,
    PaymentNotFoundError,
    PaymentStateError,
)
from analytics.services.api_server.routes import (  # noqa: E402
    auth,
    campaigns,
    health,
    payments,
    segmentation,
    users,
)
from analytics.services.api_server.runner import SegmentationRunner  # noqa: E402
from customer_segmentation.segmentation import SegmentationError  # noqa: E402

# Configure lifespan
app.router.lifespan_context = app_lifespan

# One stateless runner per process, injected into the segmentation routes
app.state.segmentation_runner = SegmentationRunner(default_k=get_settings().kmeans_default_k)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (health, auth, users, segmentation, payments, campaigns):
    app.include_router(module.router)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(
        422,
        "Validation failed",
        errors=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(SegmentationError)
async def segmentation_error_handler(request: Request, exc: SegmentationError):
    return _error(422, str(exc))


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning("concurrent_update_rejected", path=request.url.path)
    return _error(
        status.HTTP_409_CONFLICT,
        "The segment was updated by another run; reload and try again",
    )


@app.exception_handler(PaymentNotFoundError)
async def payment_not_found_handler(request: Request, exc: PaymentNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, "Payment not found")


@app.exception_handler(PaymentStateError)
async def payment_state_handler(request: Request, exc: PaymentStateError):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(PaymentGatewayError)
async def payment_gateway_handler(request: Request, exc: PaymentGatewayError):
    return _error(status.HTTP_502_BAD_GATEWAY, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
