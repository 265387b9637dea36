"""Interfaces of the external collaborators consumed by the job lifecycle.

Handlers and workers receive these as constructor arguments, so swapping
the production engines for fakes in tests is a matter of passing another
object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from pdf_annotator_jobs.jobs.models import Document, Job, JobPatch


__all__ = [
    "BlobStore",
    "DocumentStore",
    "JobStore",
    "QueueTransport",
    "SasUrl",
]


@dataclass(frozen=True, slots=True)
class SasUrl:
    """A time-limited, permission-scoped signed blob URL.

    Attributes:
        url: The full URL including the signature query string.
        expires_on: ISO-8601 expiry timestamp.
    """

    url: str
    expires_on: str


@runtime_checkable
class JobStore(Protocol):
    """Persistence of Job rows (read-after-write consistent)."""

    async def create_job(self, job: Job) -> None:
        """Insert a new job row."""
        ...

    async def get_job(self, job_id: str) -> Job | None:
        """Return the job row, or None if it does not exist."""
        ...

    async def update_job(self, job_id: str, patch: JobPatch) -> None:
        """Merge the fields set on ``patch`` into the job row."""
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Read-only lookup of document metadata."""

    async def get_document(self, doc_id: str) -> Document | None:
        """Return the document, or None if it does not exist."""
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Blob bytes and signed URL minting."""

    async def download_to_buffer(self, container: str, blob_name: str) -> bytes:
        """Return the full content of a blob."""
        ...

    async def upload_buffer(
        self,
        container: str,
        blob_name: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Create or overwrite a blob."""
        ...

    def build_blob_sas_url(
        self,
        container: str,
        blob_name: str,
        permissions: str,
        ttl_minutes: int = 30,
    ) -> SasUrl:
        """Mint a signed URL granting ``permissions`` (e.g. ``"r"``)."""
        ...


@runtime_checkable
class QueueTransport(Protocol):
    """Producer side of the task queues."""

    async def send_queue_message(
        self,
        queue_name: str,
        payload: dict[str, Any],
    ) -> None:
        """Enqueue ``payload`` on ``queue_name``."""
        ...
