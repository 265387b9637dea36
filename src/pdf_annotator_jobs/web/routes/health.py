"""Health check and readiness endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import Settings
    from pdf_annotator_jobs.web.app import Collaborators


__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health_check(_request: Request) -> dict[str, Any]:
    """Liveness probe.

    Returns 200 if the service is running. Does not check
    collaborators.
    """
    from pdf_annotator_jobs import __version__

    return {
        "status": "ok",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness probe.

    The service is ready once the queue transport is delivering. OCR is
    reported but does not gate readiness; unconfigured OCR only fails OCR
    jobs.

    Args:
        request: The incoming HTTP request.

    Returns:
        200 with status details if ready, 503 if not.
    """
    settings: Settings = request.app.state.settings
    collaborators: Collaborators = request.app.state.collaborators

    checks = {"queue": collaborators.queue.is_running}
    all_ready = all(checks.values())

    return JSONResponse(
        status_code=200 if all_ready else 503,
        content={
            "status": "ready" if all_ready else "not_ready",
            "checks": checks,
            "ocrConfigured": collaborators.ocr_backend is not None,
            "consumersEnabled": settings.queues.consumers_enabled,
        },
    )
