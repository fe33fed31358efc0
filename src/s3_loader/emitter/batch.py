from __future__ import annotations

from typing import Optional

from loguru import logger

from ..models import Batch
from ..monitoring import Monitoring
from .failures import FailureRouter
from .s3_emitter import S3Emitter


class BatchEmitter:
    """Deliver one flushed batch: bad rows first, then every stream, then metrics."""

    def __init__(
        self,
        emitter: S3Emitter,
        router: FailureRouter,
        monitoring: Optional[Monitoring] = None,
    ) -> None:
        self.emitter = emitter
        self.router = router
        self.monitoring = monitoring or emitter.monitoring

    def emit(self, batch: Batch) -> list[str]:
        try:
            failed = self.router.send_failures(batch.inputs)
        except Exception as exc:
            logger.error(f"Dead-letter sink failed: {type(exc).__name__}: {exc}")
            self.monitoring.capture_error(exc)
            raise

        keys = [self.emitter.attempt_emit(stream) for stream in batch.streams]
        logger.info(
            f"Batch delivered: streams={len(keys)} records={batch.meta.count} failed={failed}"
        )
        self.monitoring.report_batch_metrics(batch.meta)
        return keys
