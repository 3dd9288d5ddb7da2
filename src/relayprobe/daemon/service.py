"""Detection service: the surface the API and CLI layers talk to."""

from __future__ import annotations

import threading

from ..detector import Detector, DetectorConfig, Result
from ..utils.logging_config import StructuredLogger
from .scheduler import CadenceScheduler

logger = StructuredLogger(__name__)


class DetectionService:
    def __init__(
        self,
        config: DetectorConfig | None = None,
        *,
        detector: Detector | None = None,
        scheduler: CadenceScheduler | None = None,
    ):
        self._lock = threading.Lock()
        if detector is None:
            if config is None:
                raise ValueError("either config or detector is required")
            detector = Detector(config)
        self.detector = detector
        self.scheduler = scheduler or CadenceScheduler(self._scheduled_detection)

    def _scheduled_detection(self) -> Result:
        result = self.detector.detect_once()
        logger.info(
            "Scheduled detection completed",
            verdict="genuine" if result.is_real_api else "relay",
        )
        return result

    def start(self) -> None:
        """Begin the configured cadence, if any."""
        config = self.get_config()
        if config.interval > 0:
            self.scheduler.start(config.interval)

    def shutdown(self) -> None:
        self.scheduler.stop()
        self.detector.close()

    def get_config(self) -> DetectorConfig:
        return self.detector.config

    def run_detection_cycle(self) -> Result:
        return self.detector.detect_once()

    def detect_now(self) -> bool:
        return self.detector.detect_now()

    def get_history(self) -> list[Result]:
        return self.detector.get_results()

    def get_latest(self) -> Result | None:
        return self.detector.get_latest_result()

    def update_configuration(self, config: DetectorConfig) -> None:
        with self._lock:
            self._apply_locked(config)

    def merge_configuration(self, update: DetectorConfig) -> DetectorConfig:
        """Apply a partial update on top of the current config and return the result."""
        with self._lock:
            config = self.detector.config.merged(update)
            self._apply_locked(config)
        return config

    def _apply_locked(self, config: DetectorConfig) -> None:
        old_interval = self.detector.config.interval
        self.detector.update_config(config)
        if old_interval != config.interval:
            self.scheduler.reconfigure(config.interval)

    def start_cadence(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValueError(f"cadence interval must be positive, got {minutes}")
        with self._lock:
            self.detector.update_config(self.detector.config.model_copy(update={"interval": minutes}))
            self.scheduler.start(minutes)

    def stop_cadence(self) -> None:
        with self._lock:
            self.scheduler.stop()
            self.detector.update_config(self.detector.config.model_copy(update={"interval": 0}))
