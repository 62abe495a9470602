"""Prometheus metrics for the segmentation service.

Metrics exported:
- segmentation_runs_total: Counter of segmentation runs by algorithm and status
- segmentation_run_duration_seconds: Histogram of run durations by algorithm
- segmentation_cohort_size: Gauge of customers in the latest run per algorithm
- system_memory_bytes: Gauge of process memory usage
- system_cpu_percent: Gauge of CPU usage

The text exposition is served by the API at ``/metrics``.
"""

import psutil
import structlog
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

logger = structlog.get_logger(__name__)

METRICS_CONTENT_TYPE = CONTENT_TYPE_LATEST

segmentation_runs_total = Counter(
    "segmentation_runs_total",
    "Total segmentation runs",
    ["algorithm", "status"],  # status: success or failure
)

segmentation_run_duration = Histogram(
    "segmentation_run_duration_seconds",
    "Segmentation run duration in seconds",
    ["algorithm"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

segmentation_cohort_size = Gauge(
    "segmentation_cohort_size",
    "Customers assigned in the most recent run",
    ["algorithm"],
)

system_memory_bytes = Gauge("system_memory_bytes", "Process memory usage in bytes")

system_cpu_percent = Gauge("system_cpu_percent", "Process CPU usage percentage")


def get_metrics_text() -> bytes:
    """Get current Prometheus metrics in text format.

    System gauges are refreshed first so every scrape sees current values.
    """
    update_system_metrics()
    return generate_latest()


def record_segmentation_run(
    algorithm: str, duration_seconds: float, success: bool, cohort_size: int | None = None
):
    """Record a finished segmentation run.

    Args:
        algorithm: Algorithm name ('rfm' or 'kmeans'), or the rejected name on failure
        duration_seconds: Run duration in seconds
        success: Whether the run produced assignments
        cohort_size: Number of customers assigned (successful runs only)

    Example:
        >>> record_segmentation_run('rfm', 0.2, True, cohort_size=120)
    """
    status = "success" if success else "failure"
    segmentation_runs_total.labels(algorithm=algorithm, status=status).inc()
    segmentation_run_duration.labels(algorithm=algorithm).observe(duration_seconds)
    if success and cohort_size is not None:
        segmentation_cohort_size.labels(algorithm=algorithm).set(cohort_size)

    logger.debug(
        "segmentation_run_recorded",
        algorithm=algorithm,
        duration_seconds=duration_seconds,
        status=status,
    )


def update_system_metrics():
    """Update system resource metrics (memory, CPU)."""
    try:
        process = psutil.Process()
        system_memory_bytes.set(process.memory_info().rss)
        system_cpu_percent.set(process.cpu_percent(interval=None))
    except psutil.Error as e:
        logger.warning("system_metrics_update_failed", error=str(e), error_type=type(e).__name__)
