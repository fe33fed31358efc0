"""Monitoring

Optional, best-effort observability for the delivery loop:
- HTTP event tracking (startup, failed writes, forced shutdown)
- Prometheus metrics
- Sentry error capture
"""

from .base import AttemptFailure, MonitoringBackend, describe_error
from .manager import Monitoring, build_monitoring
from .prometheus import PrometheusBackend
from .sentry import SentryBackend
from .tracking import TrackingBackend

__all__ = [
    "AttemptFailure",
    "MonitoringBackend",
    "describe_error",
    "Monitoring",
    "build_monitoring",
    "PrometheusBackend",
    "SentryBackend",
    "TrackingBackend",
]
