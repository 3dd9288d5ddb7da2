"""Repeating detection cadence on a background thread."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

from ..utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)

STOPPED = "stopped"
RUNNING = "running"


@dataclass
class CadenceJob:
    interval_minutes: int
    cancelled: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None


class CadenceScheduler:
    """Runs `callback` every N minutes. At most one cadence is active.

    Stopping a cadence does not abort a callback that is already running.
    """

    def __init__(self, callback: Callable[[], object], *, unit_seconds: float = 60.0):
        self._callback = callback
        self._unit_seconds = unit_seconds
        self._lock = threading.Lock()
        self._job: CadenceJob | None = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._job is not None

    @property
    def interval(self) -> int:
        with self._lock:
            return self._job.interval_minutes if self._job else 0

    @property
    def state(self) -> str:
        return RUNNING if self.is_running else STOPPED

    def start(self, minutes: int) -> CadenceJob:
        if minutes <= 0:
            raise ValueError(f"cadence interval must be positive, got {minutes}")
        with self._lock:
            self._cancel_locked()
            job = CadenceJob(interval_minutes=minutes)
            job.thread = threading.Thread(
                target=self._run,
                args=(job,),
                name=f"relayprobe-cadence-{minutes}m",
                daemon=True,
            )
            self._job = job
            job.thread.start()
        logger.info("Cadence started", interval_minutes=minutes)
        return job

    def stop(self) -> None:
        with self._lock:
            stopped = self._cancel_locked()
        if stopped is not None:
            logger.info("Cadence stopped", interval_minutes=stopped.interval_minutes)

    def reconfigure(self, minutes: int) -> None:
        if minutes <= 0:
            self.stop()
            return
        self.start(minutes)

    def _cancel_locked(self) -> CadenceJob | None:
        job = self._job
        if job is not None:
            job.cancelled.set()
            self._job = None
        return job

    def _run(self, job: CadenceJob) -> None:
        period = job.interval_minutes * self._unit_seconds
        while not job.cancelled.wait(period):
            logger.info("Running scheduled detection", interval_minutes=job.interval_minutes)
            try:
                self._callback()
            except Exception as exc:
                logger.exception("Scheduled detection failed", error=str(exc))
