"""relayprobe daemon lifecycle: build the detection service at startup, tear it down at shutdown."""

from ...utils.logging_config import StructuredLogger
from ...utils.settings import Settings
from ..service import DetectionService

logger = StructuredLogger(__name__)

_service: DetectionService | None = None


def get_service() -> DetectionService:
    global _service
    if _service is None:
        settings = Settings.from_env()
        _service = DetectionService(settings.detector_config())
    return _service


def set_service(service: DetectionService | None) -> None:
    global _service
    _service = service


async def startup_event():
    """Called on FastAPI startup."""
    service = get_service()
    config = service.get_config()
    if not config.endpoint or not config.api_key:
        logger.warning("Endpoint or API key not configured; detections will fail until set")
    service.start()
    logger.info("relayprobe daemon started", **config.masked())


async def shutdown_event():
    """Called on FastAPI shutdown."""
    global _service
    if _service is not None:
        _service.shutdown()
        _service = None
