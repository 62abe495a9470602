"""Tests for app startup and shutdown and the telemetry helpers."""

from unittest.mock import Mock, patch

import pytest
from opentelemetry.sdk.trace.sampling import ParentBasedTraceIdRatio, TraceIdRatioBased

from analytics.services.api_server import observability
from analytics.services.api_server.config import Settings
from analytics.services.api_server.main import app, app_lifespan
from analytics.services.api_server.runner import SegmentationRunner


@pytest.mark.asyncio
async def test_lifespan_configures_tracing_and_database():
    settings = Settings(
        database_url="sqlite://",
        environment="staging",
        otlp_endpoint="http://collector:4317",
        sampling_rate=0.5,
        enable_tracing=True,
    )
    with patch(
        "analytics.services.api_server.main.get_settings", return_value=settings
    ), patch(
        "analytics.services.api_server.observability.configure_observability"
    ) as configure, patch(
        "analytics.services.api_server.database.init_database"
    ) as init_database:
        async with app_lifespan(app):
            configure.assert_called_once_with(
                service_name="customer-segmentation-api",
                environment="staging",
                otlp_endpoint="http://collector:4317",
                sampling_rate=0.5,
            )
            init_database.assert_called_once_with("sqlite://")


@pytest.mark.asyncio
async def test_lifespan_skips_tracing_when_disabled():
    settings = Settings(database_url="sqlite://", enable_tracing=False)
    with patch(
        "analytics.services.api_server.main.get_settings", return_value=settings
    ), patch(
        "analytics.services.api_server.observability.configure_observability"
    ) as configure, patch("analytics.services.api_server.database.init_database"):
        async with app_lifespan(app):
            pass
    configure.assert_not_called()


def test_runner_is_created_at_import():
    assert isinstance(app.state.segmentation_runner, SegmentationRunner)


class TestSampler:
    def test_zero_rate_drops_everything(self):
        sampler = observability._create_sampler(0.0)
        assert isinstance(sampler, TraceIdRatioBased)
        assert sampler.rate == 0.0

    def test_rate_follows_parent(self):
        assert isinstance(observability._create_sampler(0.5), ParentBasedTraceIdRatio)


def test_shutdown_flushes_installed_providers():
    provider = Mock()
    with patch.object(observability, "_providers", [provider]):
        observability.shutdown_observability()
        assert observability._providers == []
    provider.shutdown.assert_called_once_with()
