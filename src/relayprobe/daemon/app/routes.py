"""relayprobe HTTP endpoints: config, results, manual detection, cadence control."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from ... import __version__
from ...detector import DetectorConfig
from ...utils.logging_config import StructuredLogger
from ..service import DetectionService
from .lifecycle import get_service

logger = StructuredLogger(__name__)
router = APIRouter()


class ScheduleRequest(BaseModel):
    interval: int = Field(..., ge=1)


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "version": __version__,
        "ts": datetime.now(UTC).isoformat(),
    }


@router.get("/api/config")
async def get_config(service: DetectionService = Depends(get_service)):
    return service.get_config().masked()


@router.post("/api/config")
async def update_config(body: DetectorConfig, service: DetectionService = Depends(get_service)):
    config = service.merge_configuration(body)
    return {"message": "Configuration updated", "config": config.masked()}


@router.get("/api/results")
async def get_results(service: DetectionService = Depends(get_service)):
    return [result.to_dict() for result in service.get_history()]


@router.get("/api/results/latest")
async def get_latest_result(service: DetectionService = Depends(get_service)):
    started_at = service.detector.detection_started_at()
    result = service.get_latest()

    # A cycle is running and nothing newer than its start has landed yet.
    if started_at is not None and (result is None or result.timestamp < started_at):
        return {
            "status": "detecting",
            "message": "Detection in progress",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    if result is None:
        return {"message": "No detection results yet"}

    return result.to_dict()


@router.post("/api/detect")
async def detect_now(service: DetectionService = Depends(get_service)):
    if not service.detect_now():
        return {"message": "Detection already pending"}
    return {"message": "Detection started"}


@router.post("/api/schedule/start")
async def start_schedule(body: ScheduleRequest, service: DetectionService = Depends(get_service)):
    try:
        service.start_cadence(body.interval)
    except ValueError as e:
        logger.error("Failed to start cadence", error=str(e))
        raise HTTPException(status_code=500, detail=f"Failed to start schedule: {e}")
    return {"message": f"Scheduled detection started, every {body.interval} minutes"}


@router.post("/api/schedule/stop")
async def stop_schedule(service: DetectionService = Depends(get_service)):
    service.stop_cadence()
    return {"message": "Scheduled detection stopped"}


@router.get("/api/endpoint/available")
async def endpoint_available(service: DetectionService = Depends(get_service)):
    available = await run_in_threadpool(service.detector.check_endpoint_available)
    return {"available": available}
