"""Asynchronous job lifecycle: initiation, queue codec, workers, status.

Example:
    ```python
    from pdf_annotator_jobs.jobs import ExportWorker, JobInitiator

    initiator = JobInitiator(
        job_store=jobs, document_store=documents, queue=queue,
        queues=settings.queues,
    )
    job_id = await initiator.start_export(identity, doc_id, {})

    worker = ExportWorker(
        job_store=jobs, document_store=documents, blob_store=blobs,
        storage=settings.storage,
    )
    await worker.handle(raw_message)
    ```
"""

from __future__ import annotations

from pdf_annotator_jobs.jobs.codec import decode, encode
from pdf_annotator_jobs.jobs.exceptions import (
    ApiError,
    AuthError,
    DecodeError,
    DomainError,
    ForbiddenError,
    JobsError,
    NotFoundError,
    TransportError,
    UnauthenticatedError,
    ValidationError,
)
from pdf_annotator_jobs.jobs.initiation import JobInitiator, parse_json_body
from pdf_annotator_jobs.jobs.models import (
    Document,
    Identity,
    Job,
    JobPatch,
    JobStatus,
    JobType,
    TaskMessage,
    normalize_email,
)
from pdf_annotator_jobs.jobs.status import get_job_status, project_job_status
from pdf_annotator_jobs.jobs.workers import ExportWorker, OcrWorker, QueueWorker


__all__ = [
    "ApiError",
    "AuthError",
    "DecodeError",
    "Document",
    "DomainError",
    "ExportWorker",
    "ForbiddenError",
    "Identity",
    "Job",
    "JobInitiator",
    "JobPatch",
    "JobStatus",
    "JobType",
    "JobsError",
    "NotFoundError",
    "OcrWorker",
    "QueueWorker",
    "TaskMessage",
    "TransportError",
    "UnauthenticatedError",
    "ValidationError",
    "decode",
    "encode",
    "get_job_status",
    "normalize_email",
    "parse_json_body",
    "project_job_status",
]
