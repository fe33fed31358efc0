"""
Fan-out of monitoring events to the configured backends.

Calls are fire-and-forget: each backend hook runs on a small thread pool so a
slow collector never stalls delivery. The one exception is
:meth:`Monitoring.report_shutdown`, which waits (bounded) so the event has a
chance to leave the process before it is halted.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional, Sequence

from loguru import logger

from ..config import Settings
from ..models import BatchMeta
from .base import AttemptFailure, MonitoringBackend
from .prometheus import PrometheusBackend
from .sentry import SentryBackend
from .tracking import TrackingBackend


class Monitoring:
    """Composite over zero or more :class:`MonitoringBackend` instances.

    With no backends every method is a no-op and nothing is scheduled.

    Example:
        monitoring = Monitoring([PrometheusBackend(port=9102)])
        monitoring.initialize()
        monitoring.report_batch_metrics(BatchMeta(earliest, 500))
    """

    def __init__(
        self,
        backends: Sequence[MonitoringBackend] = (),
        *,
        shutdown_flush_seconds: float = 5.0,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._backends = list(backends)
        self.shutdown_flush_seconds = shutdown_flush_seconds
        self._executor = executor
        if self._executor is None and self._backends:
            self._executor = ThreadPoolExecutor(
                max_workers=max(2, len(self._backends)),
                thread_name_prefix="s3-loader-monitoring",
            )
        self._closed = False

    @property
    def backends(self) -> list[MonitoringBackend]:
        return list(self._backends)

    @property
    def enabled(self) -> bool:
        return bool(self._backends)

    def is_enabled(self, name: str) -> bool:
        return any(b.name == name for b in self._backends)

    # --------------------------- events

    def initialize(self) -> list[Future]:
        """Send startup events (and start metric exporters)."""
        return self._dispatch("initialize")

    def report_attempt_failure(self, failure: AttemptFailure) -> list[Future]:
        return self._dispatch("report_attempt_failure", failure)

    def report_batch_metrics(self, meta: BatchMeta) -> list[Future]:
        return self._dispatch("report_batch_metrics", meta)

    def capture_error(self, error: BaseException) -> list[Future]:
        return self._dispatch("capture_error", error)

    def report_shutdown(self, error: Optional[BaseException] = None) -> bool:
        """Emit shutdown events and wait up to ``shutdown_flush_seconds`` for them.

        When ``error`` is given each backend captures it before its shutdown
        hook runs, and both fall under the same bounded wait.

        Returns:
            True if every backend finished within the pause
        """
        hooks: list[tuple] = []
        if error is not None:
            hooks.append(("capture_error", error))
        hooks.append(("report_shutdown",))
        futures = self._dispatch_chain(hooks)
        if not futures:
            return True
        done, not_done = wait(futures, timeout=self.shutdown_flush_seconds)
        if not_done:
            logger.warning(f"{len(not_done)} shutdown event(s) still pending after flush pause")
        return not not_done

    def close(self, wait_pending: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait_pending)
        for backend in self._backends:
            try:
                backend.close()
            except Exception as exc:
                logger.debug(f"Monitoring backend {backend.name} close error (ignored): {exc}")

    # --------------------------- internals

    def _dispatch(self, hook: str, *args) -> list[Future]:
        if not self._backends or self._closed:
            return []
        return [self._executor.submit(self._call, backend, hook, *args) for backend in self._backends]

    def _dispatch_chain(self, hooks: Sequence[tuple]) -> list[Future]:
        if not self._backends or self._closed:
            return []
        return [self._executor.submit(self._call_chain, backend, hooks) for backend in self._backends]

    @classmethod
    def _call_chain(cls, backend: MonitoringBackend, hooks: Sequence[tuple]) -> None:
        for hook, *args in hooks:
            cls._call(backend, hook, *args)

    @staticmethod
    def _call(backend: MonitoringBackend, hook: str, *args) -> None:
        try:
            getattr(backend, hook)(*args)
        except Exception as exc:
            # best-effort: one backend failing must not affect the others
            logger.warning(
                f"Monitoring backend {backend.name} failed on {hook} (ignored): "
                f"{type(exc).__name__}: {exc}"
            )


def build_monitoring(settings: Settings) -> Monitoring:
    """Enable each backend whose configuration is present."""
    flush_seconds = settings.SHUTDOWN_FLUSH_MS / 1000.0
    backends: list[MonitoringBackend] = []
    if settings.TRACKING_COLLECTOR_URL:
        backends.append(TrackingBackend(settings.TRACKING_COLLECTOR_URL, app_id=settings.TRACKING_APP_ID))
    if settings.metrics_enabled:
        backends.append(PrometheusBackend(port=settings.PROMETHEUS_PORT))
    if settings.SENTRY_DSN:
        backends.append(SentryBackend(settings.SENTRY_DSN, flush_timeout=flush_seconds))

    if backends:
        logger.info(f"Monitoring backends enabled: {', '.join(b.name for b in backends)}")
    return Monitoring(backends, shutdown_flush_seconds=flush_seconds)
