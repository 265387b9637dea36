"""Job status query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pdf_annotator_jobs.jobs.exceptions import ForbiddenError, NotFoundError


if TYPE_CHECKING:
    from pdf_annotator_jobs.jobs.models import Identity, Job
    from pdf_annotator_jobs.storage.contracts import JobStore


__all__ = ["get_job_status", "project_job_status"]


def project_job_status(job: Job) -> dict[str, Any]:
    """Project a job row onto the canonical status response.

    Legacy or partially written rows are tolerated: a missing status
    reads as ``"unknown"``, a missing type as ``""``, and missing
    ``resultUri``/``error``/``updatedAt`` as ``None``.
    """
    return {
        "jobId": job.job_id,
        "status": str(job.status or "unknown"),
        "type": str(job.type or ""),
        "resultUri": job.result_uri or None,
        "error": job.error or None,
        "updatedAt": job.updated_at or None,
    }


async def get_job_status(
    job_store: JobStore,
    identity: Identity,
    job_id: str,
) -> dict[str, Any]:
    """Return the status of a job owned by ``identity``.

    Raises:
        NotFoundError: No such job.
        ForbiddenError: The job belongs to someone else.
    """
    job = await job_store.get_job(job_id)
    if job is None:
        msg = "Job not found"
        raise NotFoundError(msg)
    if not identity.owns(job.owner_email):
        msg = "You do not own this job"
        raise ForbiddenError(msg)
    return project_job_status(job)
