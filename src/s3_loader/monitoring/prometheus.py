"""Prometheus metrics backend."""

from __future__ import annotations

from typing import Optional

from loguru import logger
from prometheus_client import start_http_server

from ..metrics.registry import metrics_registry
from ..models import BatchMeta
from .base import AttemptFailure, MonitoringBackend
from .tracking import STORAGE_NAME


class PrometheusBackend(MonitoringBackend):
    name = "prometheus"

    def __init__(self, port: Optional[int] = None, registry=metrics_registry) -> None:
        self.port = port
        self.metrics = registry
        self._serving = False

    def initialize(self) -> None:
        if self.port is not None and not self._serving:
            start_http_server(self.port)
            self._serving = True
            logger.info(f"Prometheus metrics exposed on :{self.port}")

    def report_attempt_failure(self, failure: AttemptFailure) -> None:
        self.metrics.delivery_failures_total.labels(storage=STORAGE_NAME).inc()
        self.metrics.delivery_retry_elapsed_seconds.labels(storage=STORAGE_NAME).observe(
            failure.elapsed_ms / 1000.0
        )

    def report_shutdown(self) -> None:
        self.metrics.shutdowns_total.inc()

    def report_batch_metrics(self, meta: BatchMeta) -> None:
        self.metrics.batch_records_total.inc(meta.count)
        latency = meta.latency_seconds()
        if latency is not None:
            self.metrics.batch_latency_seconds.observe(latency)
