"""Queue workers driving the job state machine.

Per delivered message::

    decode -> validate envelope -> running -> load document
           -> transform -> completed
                        \\-> failed (then re-raise)

Undecodable or unaddressable messages are dropped after logging; without a
job ID there is no row to mark failed. Every other failure is written to
the job before the original exception propagates to the queue runtime,
whose redelivery policy then applies.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar, cast

import structlog

from pdf_annotator_jobs.jobs.codec import decode
from pdf_annotator_jobs.jobs.exceptions import DecodeError, DomainError
from pdf_annotator_jobs.jobs.models import (
    MISSING_SOURCE_MESSAGE,
    OCR_NOT_CONFIGURED_MESSAGE,
    JobPatch,
    JobType,
    TaskMessage,
    iso_now,
    normalize_email,
)
from pdf_annotator_jobs.observability import bind_job_context, clear_job_context


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import StorageConfig
    from pdf_annotator_jobs.jobs.models import Document
    from pdf_annotator_jobs.ocr import OcrBackend
    from pdf_annotator_jobs.storage.contracts import (
        BlobStore,
        DocumentStore,
        JobStore,
    )


__all__ = [
    "ExportWorker",
    "OcrWorker",
    "QueueWorker",
    "error_message",
]


def error_message(exc: BaseException) -> str:
    """Return the text persisted as a failed job's ``error``."""
    return str(exc) or type(exc).__name__


class QueueWorker(ABC):
    """Base class of the export and OCR workers.

    Subclasses implement :meth:`process`, which performs the
    type-specific transformation and returns the result's signed URL.
    """

    job_type: ClassVar[JobType]

    def __init__(
        self,
        *,
        job_store: JobStore,
        document_store: DocumentStore,
        blob_store: BlobStore,
        storage: StorageConfig,
    ) -> None:
        self._jobs = job_store
        self._documents = document_store
        self._blobs = blob_store
        self._storage = storage
        self._logger = structlog.get_logger(__name__).bind(
            worker=f"{self.job_type}-worker",
        )

    def _parse(self, message: object) -> TaskMessage | None:
        try:
            payload = decode(message)
        except DecodeError as exc:
            self._logger.error(
                "queue_message_dropped",
                reason="undecodable",
                error=exc.message,
                raw_length=exc.raw_length,
            )
            return None

        task = TaskMessage.from_payload(payload)
        if task is None or not task.is_addressable:
            self._logger.error(
                "queue_message_dropped",
                reason="invalid_payload",
                has_job_id=bool(task and task.job_id),
                has_doc_id=bool(task and task.doc_id),
            )
            return None
        return task

    async def should_skip(self, task: TaskMessage) -> bool:
        """Hook run before the ``running`` write; True ends handling early."""
        del task
        return False

    async def handle(self, message: object) -> None:
        """Process one delivered queue message.

        Args:
            message: The message as delivered: an object, a JSON string or a
                base64-encoded JSON string.

        Raises:
            Exception: Whatever the transformation raised, unchanged, after
                the job has been marked failed.
        """
        task = self._parse(message)
        if task is None:
            return

        bind_job_context(task.job_id, self.job_type)
        try:
            await self._run(task)
        finally:
            clear_job_context()

    async def _run(self, task: TaskMessage) -> None:
        if await self.should_skip(task):
            return

        await self._jobs.update_job(task.job_id, JobPatch.running(attempt=task.attempt))
        self._logger.info("job_running", doc_id=task.doc_id, attempt=task.attempt)

        try:
            document = await self._documents.get_document(task.doc_id)
            if document is None or not document.source_blob_name:
                raise DomainError(MISSING_SOURCE_MESSAGE)

            result_uri = await self.process(task, document)
            await self._jobs.update_job(task.job_id, JobPatch.completed(result_uri))
        except Exception as exc:
            self._logger.error(
                "job_failed",
                error=error_message(exc),
                error_type=type(exc).__name__,
            )
            try:
                await self._jobs.update_job(
                    task.job_id,
                    JobPatch.failed(error_message(exc)),
                )
            except Exception:
                self._logger.exception("job_failure_not_recorded")
            raise

        self._logger.info("job_completed")

    def result_blob_name(
        self,
        task: TaskMessage,
        document: Document,
        extension: str,
    ) -> str:
        """Return the deterministic result path for a task.

        The owner segment comes from the envelope, or from the document
        when the envelope does not carry one.
        """
        owner = normalize_email(task.owner_email) or normalize_email(
            document.owner_email,
        )
        return f"{owner}/{task.doc_id}/{task.job_id}.{extension}"

    async def read_source(self, document: Document) -> bytes:
        """Download the document's source PDF."""
        return await self._blobs.download_to_buffer(
            self._storage.source_container,
            document.source_blob_name or "",
        )

    @abstractmethod
    async def process(self, task: TaskMessage, document: Document) -> str:
        """Perform the job's work and return the result's signed URL."""


class ExportWorker(QueueWorker):
    """Copies the source PDF to the export container.

    The destination ``<ownerEmail>/<docId>/<jobId>.pdf`` depends only on the
    envelope, so a redelivered message overwrites the same blob.
    """

    job_type = JobType.EXPORT

    async def process(self, task: TaskMessage, document: Document) -> str:
        source = await self.read_source(document)

        blob_name = self.result_blob_name(task, document, "pdf")
        container = self._storage.export_container
        await self._blobs.upload_buffer(container, blob_name, source, "application/pdf")

        sas = self._blobs.build_blob_sas_url(
            container,
            blob_name,
            "r",
            self._storage.sas_ttl_minutes,
        )
        self._logger.debug("export_uploaded", blob_name=blob_name, size=len(source))
        return sas.url


class OcrWorker(QueueWorker):
    """Runs OCR on the source PDF and stores the analysis as JSON.

    Without an OCR backend the job is failed with
    "Document Intelligence not configured" in a single write and the
    message is acknowledged normally.
    """

    job_type = JobType.OCR

    def __init__(
        self,
        *,
        job_store: JobStore,
        document_store: DocumentStore,
        blob_store: BlobStore,
        storage: StorageConfig,
        ocr_backend: OcrBackend | None,
    ) -> None:
        super().__init__(
            job_store=job_store,
            document_store=document_store,
            blob_store=blob_store,
            storage=storage,
        )
        self._ocr = ocr_backend

    async def should_skip(self, task: TaskMessage) -> bool:
        if self._ocr is not None:
            return False

        await self._jobs.update_job(
            task.job_id,
            JobPatch.failed(OCR_NOT_CONFIGURED_MESSAGE),
        )
        self._logger.warning("ocr_not_configured")
        return True

    async def process(self, task: TaskMessage, document: Document) -> str:
        # should_skip has already failed the job when no backend is set
        ocr = cast("OcrBackend", self._ocr)

        source = await self.read_source(document)
        result = await ocr.analyze(source, pages=task.pages or "")

        record = {
            "docId": task.doc_id,
            "jobId": task.job_id,
            "model": ocr.model_id,
            "pages": task.pages or None,
            "analyzedAt": iso_now(),
            "result": result,
        }
        blob_name = self.result_blob_name(task, document, "json")
        container = self._storage.ocr_container
        await self._blobs.upload_buffer(
            container,
            blob_name,
            json.dumps(record, indent=2).encode("utf-8"),
            "application/json",
        )

        sas = self._blobs.build_blob_sas_url(
            container,
            blob_name,
            "r",
            self._storage.sas_ttl_minutes,
        )
        return sas.url
