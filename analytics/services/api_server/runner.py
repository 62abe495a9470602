"""Segmentation runner used by the API.

Wraps :func:`customer_segmentation.segmentation.run_segmentation` with a
trace span, structured logs and Prometheus metrics. The runner holds no
per-run state; one instance is created at startup and injected into the
route handlers.
"""

import time
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

import structlog
from fastapi import Request
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from analytics.services.api_server.metrics import record_segmentation_run
from customer_segmentation.foundation import PurchaseRecord
from customer_segmentation.segmentation import (
    DEFAULT_K,
    SegmentationAlgorithm,
    SegmentationError,
    SegmentationResult,
    run_segmentation,
)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class SegmentationRunner:
    def __init__(self, default_k: int = DEFAULT_K):
        self.default_k = default_k

    def run(
        self,
        algorithm: str | SegmentationAlgorithm,
        criteria: Mapping[str, Any] | None,
        purchases: Iterable[PurchaseRecord],
        *,
        k: int | None = None,
        now: datetime | None = None,
    ) -> SegmentationResult:
        """Run one segmentation over ``purchases``.

        Raises:
            SegmentationError: Unsupported algorithm or a cohort that cannot
                be segmented. The failure is counted before re-raising.
        """
        k = self.default_k if k is None else k
        algorithm_name = getattr(algorithm, "value", str(algorithm))

        with tracer.start_as_current_span("segmentation_run") as span:
            span.set_attribute("algorithm", algorithm_name)
            start = time.perf_counter()
            try:
                result = run_segmentation(algorithm, criteria, purchases, k=k, now=now)
            except SegmentationError as e:
                duration = time.perf_counter() - start
                record_segmentation_run(algorithm_name, duration, success=False)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                span.record_exception(e)
                logger.warning(
                    "segmentation_run_failed",
                    algorithm=algorithm_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            duration = time.perf_counter() - start
            cohort_size = len(result.assignments)
            record_segmentation_run(
                result.algorithm.value, duration, success=True, cohort_size=cohort_size
            )
            span.set_attribute("total_customers", cohort_size)
            span.set_attribute("average_score", float(result.metrics.average_score))

        logger.info(
            "segmentation_run_completed",
            algorithm=result.algorithm.value,
            total_customers=cohort_size,
            duration_seconds=round(duration, 4),
        )
        return result


def get_runner(request: Request) -> SegmentationRunner:
    """FastAPI dependency returning the runner created at startup."""
    return request.app.state.segmentation_runner
