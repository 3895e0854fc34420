"""OpenTelemetry metrics for the location pipeline."""

from common.metrics.instruments import (
    geocoding_duration,
    geocoding_failures,
    scheduler_executions,
    stale_responses,
)

__all__ = [
    "geocoding_duration",
    "geocoding_failures",
    "scheduler_executions",
    "stale_responses",
]
