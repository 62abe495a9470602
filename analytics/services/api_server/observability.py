"""
Observability configuration for the Customer Segmentation API

Sets up the OpenTelemetry tracer and meter providers used by the segmentation
runner. Telemetry is printed to the console unless an OTLP collector endpoint
is configured. Providers are flushed by ``shutdown_observability`` when the
app stops.
"""

import structlog
from opentelemetry import metrics, trace
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricExporter,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBasedTraceIdRatio, Sampler, TraceIdRatioBased

from analytics.services.api_server.config import SERVICE_NAME, VERSION

logger = structlog.get_logger(__name__)

METRIC_EXPORT_INTERVAL_MS = 60_000

_providers: list = []


def _otlp_exporters(endpoint: str) -> tuple[SpanExporter, MetricExporter] | None:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as e:
        # Shipped in the optional ``otlp`` extra
        logger.warning(
            "otlp_exporter_not_available_falling_back_to_console",
            error=str(e),
            message="Install customer-segmentation[otlp] for OTLP export",
        )
        return None
    return (
        OTLPSpanExporter(endpoint=endpoint, insecure=True),
        OTLPMetricExporter(endpoint=endpoint, insecure=True),
    )


def configure_observability(
    service_name: str = SERVICE_NAME,
    environment: str = "development",
    otlp_endpoint: str | None = None,
    sampling_rate: float = 1.0,
):
    """
    Install global OpenTelemetry tracer and meter providers.

    Args:
        service_name: Reported as ``service.name`` on every span and metric
        environment: Reported as ``deployment.environment``
        otlp_endpoint: OTLP gRPC collector (e.g. 'localhost:4317'). Console
                      exporters are used when None or when the OTLP exporter
                      package is missing.
        sampling_rate: Fraction of root traces to keep (0.0-1.0)

    Returns:
        Tuple of (tracer, meter) named after the service
    """
    exporters = _otlp_exporters(otlp_endpoint) if otlp_endpoint else None
    otlp_enabled = exporters is not None
    span_exporter, metric_exporter = exporters or (ConsoleSpanExporter(), ConsoleMetricExporter())

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": VERSION,
            "deployment.environment": environment,
        }
    )
    tracer_provider = TracerProvider(resource=resource, sampler=_create_sampler(sampling_rate))
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[
            PeriodicExportingMetricReader(
                metric_exporter, export_interval_millis=METRIC_EXPORT_INTERVAL_MS
            )
        ],
    )

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)
    _providers[:] = [tracer_provider, meter_provider]

    logger.info(
        "observability_configured",
        service_name=service_name,
        environment=environment,
        otlp_enabled=otlp_enabled,
        endpoint=otlp_endpoint if otlp_enabled else None,
        sampling_rate=sampling_rate,
    )
    return trace.get_tracer(service_name), metrics.get_meter(service_name)


def shutdown_observability() -> None:
    """Flush and stop the providers installed by ``configure_observability``."""
    while _providers:
        _providers.pop().shutdown()
    logger.info("observability_shutdown")


def _create_sampler(sampling_rate: float) -> Sampler:
    # Child spans follow their parent's decision
    if sampling_rate <= 0.0:
        return TraceIdRatioBased(0.0)
    return ParentBasedTraceIdRatio(min(sampling_rate, 1.0))
