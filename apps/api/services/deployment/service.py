from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Protocol

from services.pipeline.types import PipelineResult
from services.pipeline.util import utc_iso

from .config import ConcurrencyPolicy

LOGGER = logging.getLogger(__name__)

BUSY_MESSAGE = "deployment already in progress"


class DeploymentBusyError(RuntimeError):
    """Another deployment holds the checkout; the request was not started."""


class Executor(Protocol):
    def run(self) -> PipelineResult: ...


@dataclass(frozen=True)
class DeployRequestMeta:
    received_at: str
    client_host: Optional[str] = None
    trigger: Optional[str] = None
    timestamp: Optional[str] = None


class DeploymentService:
    """
    Single-flight wrapper around the pipeline executor.

    The checkout and the pm2-managed process are one shared resource, so the
    lock is held for the whole command sequence. Policy "reject" refuses a
    second trigger while one runs; "queue" makes it wait its turn.
    """

    def __init__(self, executor: Executor, *, policy: ConcurrencyPolicy = "reject") -> None:
        self._executor = executor
        self._policy = policy
        self._lock = threading.Lock()

    @property
    def policy(self) -> ConcurrencyPolicy:
        return self._policy

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        acquired = self._lock.acquire(blocking=self._policy == "queue")
        if not acquired:
            raise DeploymentBusyError(BUSY_MESSAGE)
        try:
            yield
        finally:
            self._lock.release()

    def trigger(self, meta: DeployRequestMeta) -> PipelineResult:
        LOGGER.info(
            "deployment request received from %s at %s (trigger=%s, client timestamp %s)",
            meta.client_host or "unknown",
            meta.received_at,
            meta.trigger or "-",
            meta.timestamp or "-",
        )

        try:
            with self._exclusive():
                result = self._run_executor()
        except DeploymentBusyError:
            LOGGER.warning(
                "rejected deployment from %s: %s",
                meta.client_host or "unknown",
                BUSY_MESSAGE,
            )
            raise

        if result.success:
            LOGGER.info("deployment successful in %.1fs", result.duration_seconds)
            LOGGER.info("STDOUT: %s", result.stdout)
            if result.stderr:
                LOGGER.info("STDERR: %s", result.stderr)
        else:
            LOGGER.error(
                "deployment failed (%s): %s", result.status, result.error_message
            )
            if result.stderr:
                LOGGER.error("STDERR: %s", result.stderr)
        return result

    def _run_executor(self) -> PipelineResult:
        started_at = utc_iso()
        try:
            return self._executor.run()
        except Exception as exc:
            LOGGER.exception("pipeline executor crashed")
            return PipelineResult(
                status="failed",
                error_message=f"deployment crashed: {exc}",
                started_at=started_at,
                finished_at=utc_iso(),
            )
