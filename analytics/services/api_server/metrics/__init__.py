"""Metrics package for the segmentation service."""

from analytics.services.api_server.metrics.prometheus_exporter import (
    METRICS_CONTENT_TYPE,
    get_metrics_text,
    record_segmentation_run,
    update_system_metrics,
)

__all__ = [
    "METRICS_CONTENT_TYPE",
    "get_metrics_text",
    "record_segmentation_run",
    "update_system_metrics",
]
