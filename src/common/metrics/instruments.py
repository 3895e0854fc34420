"""
OpenTelemetry metrics for the location pipeline.

Exports geocoding latency/failure counts and debounce scheduler activity
via OTLP to an OpenTelemetry Collector when OTEL_EXPORTER_OTLP_ENDPOINT is set.

Metrics are fire-and-forget: if the collector is down, the app continues normally.
"""

from opentelemetry import metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from common.config import OTEL_ENDPOINT
from common.logging_config import get_logger

logger = get_logger("common_metrics")

# Setup OTEL metrics
_resource = Resource.create({"service.name": "bus-booking"})
_provider = None

if OTEL_ENDPOINT:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter

        _exporter = OTLPMetricExporter(endpoint=OTEL_ENDPOINT, insecure=True)
        _reader = PeriodicExportingMetricReader(_exporter, export_interval_millis=5000)
        _provider = MeterProvider(resource=_resource, metric_readers=[_reader])
        metrics.set_meter_provider(_provider)
        logger.info(f"OpenTelemetry metrics enabled, exporting to {OTEL_ENDPOINT}")
    except Exception as e:
        logger.warning(f"OpenTelemetry setup failed (metrics disabled): {e}")
        _provider = None

# Create meter and instruments
_meter = metrics.get_meter("bus_booking", version="0.1.0")

geocoding_duration = _meter.create_histogram(
    name="geocoding.request_duration",
    description="Geocoding provider round-trip duration (ms)",
    unit="ms",
)

geocoding_failures = _meter.create_counter(
    name="geocoding.failures",
    description="Geocoding calls that degraded to an empty result",
    unit="requests",
)

scheduler_executions = _meter.create_counter(
    name="scheduler.executions",
    description="Debounced queries that reached the downstream executor",
    unit="requests",
)

stale_responses = _meter.create_counter(
    name="scheduler.stale_responses",
    description="Late responses discarded because a newer request had started",
    unit="responses",
)
