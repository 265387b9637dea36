"""Export and OCR job initiation.

Both start operations share one algorithm: authorize the caller against the
document, validate the task input, persist a ``queued`` job and only then
enqueue the task envelope. A worker can therefore never dequeue a message
whose job row does not exist yet.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

import structlog

from pdf_annotator_jobs.jobs.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from pdf_annotator_jobs.jobs.models import Job, JobType, TaskMessage


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import QueuesConfig
    from pdf_annotator_jobs.jobs.models import Document, Identity
    from pdf_annotator_jobs.storage.contracts import (
        DocumentStore,
        JobStore,
        QueueTransport,
    )


__all__ = [
    "SUPPORTED_EXPORT_FORMAT",
    "JobInitiator",
    "parse_json_body",
    "validate_export_format",
    "validate_pages",
]


SUPPORTED_EXPORT_FORMAT = "pdf"

_PAGES_PATTERN = re.compile(r"^[0-9,\-]*$")


def parse_json_body(raw: bytes | str | None) -> dict[str, Any]:
    """Parse a request body, treating anything but a JSON object as ``{}``."""
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


def validate_export_format(value: object) -> str:
    """Normalize the requested export format.

    Raises:
        ValidationError: The format is anything but ``pdf``.
    """
    export_format = str(value or SUPPORTED_EXPORT_FORMAT).strip().lower()
    if export_format != SUPPORTED_EXPORT_FORMAT:
        msg = "Only pdf export format is supported"
        raise ValidationError(msg)
    return export_format


def validate_pages(value: object) -> str:
    """Normalize an OCR page selection such as ``"1-3,5"``.

    Raises:
        ValidationError: The selection contains anything other than digits,
            commas and dashes.
    """
    pages = str(value) if value else ""
    if not _PAGES_PATTERN.fullmatch(pages):
        msg = "pages must contain only digits, commas, and dashes"
        raise ValidationError(msg)
    return pages


class JobInitiator:
    """Creates jobs and hands them to the worker queues.

    Stateless apart from its collaborators; one instance can serve any
    number of concurrent requests.

    Example:
        ```python
        initiator = JobInitiator(
            job_store=jobs,
            document_store=documents,
            queue=queue,
            queues=settings.queues,
        )
        job_id = await initiator.start_export(identity, doc_id, {"format": "pdf"})
        ```
    """

    def __init__(
        self,
        *,
        job_store: JobStore,
        document_store: DocumentStore,
        queue: QueueTransport,
        queues: QueuesConfig,
    ) -> None:
        self._jobs = job_store
        self._documents = document_store
        self._queue = queue
        self._queues = queues
        self._logger = structlog.get_logger(__name__)

    async def _authorize(self, identity: Identity, doc_id: str) -> Document:
        document = await self._documents.get_document(doc_id)
        if document is None:
            msg = "Document not found"
            raise NotFoundError(msg)
        if not identity.owns(document.owner_email):
            self._logger.info(
                "job_start_forbidden",
                doc_id=doc_id,
                email=identity.email,
            )
            msg = "You do not own this document"
            raise ForbiddenError(msg)
        return document

    async def _submit(self, job: Job, queue_name: str) -> str:
        await self._jobs.create_job(job)
        await self._queue.send_queue_message(
            queue_name,
            TaskMessage.from_job(job).to_payload(),
        )
        self._logger.info(
            "job_queued",
            job_id=job.job_id,
            type=job.type,
            doc_id=job.doc_id,
            queue=queue_name,
        )
        return job.job_id

    async def start_export(
        self,
        identity: Identity,
        doc_id: str,
        body: dict[str, Any],
    ) -> str:
        """Start an export job.

        Args:
            identity: Authenticated caller.
            doc_id: Document to export.
            body: Parsed request body; ``format`` defaults to ``"pdf"``.

        Returns:
            The new job's ID.

        Raises:
            NotFoundError: The document does not exist.
            ForbiddenError: The caller does not own the document.
            ValidationError: The requested format is not ``pdf``.
        """
        await self._authorize(identity, doc_id)
        export_format = validate_export_format(body.get("format"))

        job = Job.queued(
            job_type=JobType.EXPORT,
            doc_id=doc_id,
            owner_email=identity.email,
            requested_format=export_format,
        )
        return await self._submit(job, self._queues.export)

    async def start_ocr(
        self,
        identity: Identity,
        doc_id: str,
        body: dict[str, Any],
    ) -> str:
        """Start an OCR job.

        Args:
            identity: Authenticated caller.
            doc_id: Document to analyze.
            body: Parsed request body; ``pages`` defaults to ``""`` (all).

        Returns:
            The new job's ID.

        Raises:
            NotFoundError: The document does not exist.
            ForbiddenError: The caller does not own the document.
            ValidationError: ``pages`` is malformed.
        """
        await self._authorize(identity, doc_id)
        pages = validate_pages(body.get("pages"))

        job = Job.queued(
            job_type=JobType.OCR,
            doc_id=doc_id,
            owner_email=identity.email,
            pages=pages,
        )
        return await self._submit(job, self._queues.ocr)
