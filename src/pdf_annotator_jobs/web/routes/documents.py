"""Export and OCR job start endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from pdf_annotator_jobs.jobs.initiation import JobInitiator, parse_json_body
from pdf_annotator_jobs.jobs.models import Identity  # noqa: TC001
from pdf_annotator_jobs.web.auth import require_identity


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import Settings
    from pdf_annotator_jobs.web.app import Collaborators


__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["documents"])

CurrentIdentity = Annotated[Identity, Depends(require_identity)]


def _initiator(request: Request) -> JobInitiator:
    settings: Settings = request.app.state.settings
    collaborators: Collaborators = request.app.state.collaborators
    return JobInitiator(
        job_store=collaborators.job_store,
        document_store=collaborators.document_store,
        queue=collaborators.queue,
        queues=settings.queues,
    )


@router.post("/docs/{doc_id}/export")
async def start_export(
    request: Request,
    doc_id: str,
    identity: CurrentIdentity,
) -> JSONResponse:
    """Queue an export of a document.

    The body is optional; ``{"format": "pdf"}`` is the only accepted
    format. Malformed JSON is treated as an empty body.

    Args:
        request: The incoming HTTP request.
        doc_id: The document to export.
        identity: The authenticated caller.

    Returns:
        202 with ``{"jobId": ...}``.
    """
    body = parse_json_body(await request.body())
    job_id = await _initiator(request).start_export(identity, doc_id, body)
    return JSONResponse(status_code=202, content={"jobId": job_id})


@router.post("/docs/{doc_id}/ocr")
async def start_ocr(
    request: Request,
    doc_id: str,
    identity: CurrentIdentity,
) -> JSONResponse:
    """Queue OCR of a document.

    Args:
        request: The incoming HTTP request.
        doc_id: The document to analyze.
        identity: The authenticated caller.

    Returns:
        202 with ``{"jobId": ...}``.
    """
    body = parse_json_body(await request.body())
    job_id = await _initiator(request).start_ocr(identity, doc_id, body)
    return JSONResponse(status_code=202, content={"jobId": job_id})
