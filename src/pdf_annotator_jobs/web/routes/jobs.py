"""Job status endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any

from fastapi import APIRouter, Depends, Request

from pdf_annotator_jobs.jobs.models import Identity  # noqa: TC001
from pdf_annotator_jobs.jobs.status import get_job_status
from pdf_annotator_jobs.web.auth import require_identity


if TYPE_CHECKING:
    from pdf_annotator_jobs.web.app import Collaborators


__all__ = ["router"]

router = APIRouter(prefix="/api", tags=["jobs"])


@router.get("/jobs/{job_id}")
async def get_job(
    request: Request,
    job_id: str,
    identity: Annotated[Identity, Depends(require_identity)],
) -> dict[str, Any]:
    """Get the status of a job owned by the caller.

    Args:
        request: The incoming HTTP request.
        job_id: The job ID.
        identity: The authenticated caller.

    Returns:
        ``{jobId, status, type, resultUri, error, updatedAt}``.
    """
    collaborators: Collaborators = request.app.state.collaborators
    return await get_job_status(collaborators.job_store, identity, job_id)
