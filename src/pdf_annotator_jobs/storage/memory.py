"""In-memory job and document stores."""

from __future__ import annotations

import asyncio

import structlog

from pdf_annotator_jobs.jobs.models import Document, Job, JobPatch


__all__ = [
    "InMemoryDocumentStore",
    "InMemoryJobStore",
]


class InMemoryJobStore:
    """Job store backed by a dict guarded by an asyncio lock.

    Updates follow upsert-merge semantics: patching an unknown job creates a
    row holding only the patched fields, and concurrent writers resolve as
    last write wins.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    async def create_job(self, job: Job) -> None:
        """Insert a new job.

        Raises:
            ValueError: A job with the same ID already exists.
        """
        async with self._lock:
            if job.job_id in self._jobs:
                msg = f"Job already exists: {job.job_id}"
                raise ValueError(msg)
            self._jobs[job.job_id] = job
        self._logger.debug("job_created", job_id=job.job_id, type=job.type)

    async def get_job(self, job_id: str) -> Job | None:
        async with self._lock:
            return self._jobs.get(job_id)

    async def update_job(self, job_id: str, patch: JobPatch) -> None:
        async with self._lock:
            current = self._jobs.get(job_id) or Job(job_id=job_id)
            self._jobs[job_id] = current.apply(patch)
        self._logger.debug("job_updated", job_id=job_id, **patch.changes())

    def __len__(self) -> int:
        return len(self._jobs)


class InMemoryDocumentStore:
    """Document metadata lookup backed by a dict.

    Only :meth:`get_document` is part of the document store contract;
    :meth:`add_document` exists to seed the store.
    """

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._documents: dict[str, Document] = {
            doc.doc_id: doc for doc in documents or []
        }
        self._lock = asyncio.Lock()

    async def get_document(self, doc_id: str) -> Document | None:
        async with self._lock:
            return self._documents.get(doc_id)

    async def add_document(self, document: Document) -> None:
        """Insert or replace a document."""
        async with self._lock:
            self._documents[document.doc_id] = document
