"""relayprobe daemon: cadence scheduling, detection service and HTTP API."""

from .scheduler import CadenceScheduler
from .service import DetectionService

__all__ = ["CadenceScheduler", "DetectionService"]
