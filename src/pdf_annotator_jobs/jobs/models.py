"""Models for asynchronous export and OCR jobs.

Field names are snake_case in Python and camelCase on the wire and in the
stores (``job_id`` <-> ``jobId``), matching the JSON the web client polls.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


__all__ = [
    "MISSING_SOURCE_MESSAGE",
    "OCR_NOT_CONFIGURED_MESSAGE",
    "Document",
    "Identity",
    "Job",
    "JobPatch",
    "JobStatus",
    "JobType",
    "TaskMessage",
    "iso_now",
    "new_job_id",
    "normalize_email",
]


MISSING_SOURCE_MESSAGE = "Document metadata missing source blob reference"
OCR_NOT_CONFIGURED_MESSAGE = "Document Intelligence not configured"


class JobStatus(StrEnum):
    """Status of a job.

    Attributes:
        QUEUED: Created and enqueued, not yet picked up by a worker.
        RUNNING: A worker is processing the job.
        COMPLETED: Finished successfully; ``result_uri`` is set.
        FAILED: Finished with an error; ``error`` is set.
    """

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True for COMPLETED and FAILED."""
        return self in {JobStatus.COMPLETED, JobStatus.FAILED}


class JobType(StrEnum):
    """Kind of derived work a job performs."""

    EXPORT = "export"
    OCR = "ocr"


def iso_now() -> str:
    """Return the current UTC time as ISO-8601 with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_job_id() -> str:
    """Return a new random UUIDv4 job identifier."""
    return str(uuid.uuid4())


def normalize_email(value: object) -> str:
    """Return the canonical (trimmed, lowercased) form of an email."""
    return str(value or "").strip().lower()


class JobsBaseModel(BaseModel):
    """Base model with camelCase aliases for stored and queued records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


@dataclass(frozen=True, slots=True)
class Identity:
    """The authenticated caller.

    Attributes:
        email: Lowercased account email.
        role: Account role claim (``user`` unless stated otherwise).
    """

    email: str
    role: str = "user"

    def owns(self, owner_email: object) -> bool:
        """Return True if ``owner_email`` matches this identity."""
        return normalize_email(owner_email) == normalize_email(self.email)


class Document(JobsBaseModel):
    """Owning document metadata, read from the document store.

    Attributes:
        doc_id: Document identifier.
        owner_email: Email of the uploading user.
        source_blob_name: Blob name of the uploaded PDF inside the source
            container. Missing on broken or legacy rows.
    """

    doc_id: str
    owner_email: str = ""
    source_blob_name: str | None = None


class Job(JobsBaseModel):
    """A unit of asynchronous work bound to one document and owner.

    Everything except ``job_id`` is optional because rows written by older
    versions, or only partially written, must still be readable.

    Attributes:
        job_id: UUIDv4 generated at creation.
        doc_id: Document the job derives from.
        owner_email: Lowercased owner email, immutable after creation.
        type: ``export`` or ``ocr``.
        status: Current lifecycle status.
        attempt: Reserved for a retry policy; starts at 0.
        result_uri: Signed read URL of the result once completed.
        error: Failure message once failed.
        created_at: ISO-8601 creation timestamp.
        updated_at: ISO-8601 timestamp of the last write.
        requested_format: Export target format.
        pages: OCR page selection (digits, commas and dashes).
    """

    job_id: str
    doc_id: str = ""
    owner_email: str = ""
    type: str | None = None
    status: str | None = None
    attempt: int = 0
    result_uri: str | None = None
    error: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    requested_format: str | None = None
    pages: str | None = None

    @classmethod
    def queued(
        cls,
        *,
        job_type: JobType,
        doc_id: str,
        owner_email: str,
        **task_fields: str,
    ) -> Self:
        """Build a freshly created job in the ``queued`` state."""
        now = iso_now()
        return cls(
            job_id=new_job_id(),
            doc_id=doc_id,
            owner_email=normalize_email(owner_email),
            type=job_type,
            status=JobStatus.QUEUED,
            attempt=0,
            created_at=now,
            updated_at=now,
            **task_fields,
        )

    def apply(self, patch: JobPatch) -> Self:
        """Return a copy with the fields set on ``patch`` overwritten."""
        return self.model_copy(update=patch.changes())

    def to_record(self) -> dict[str, Any]:
        """Serialize to the camelCase record shape used by stores."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JobPatch(JobsBaseModel):
    """Partial update of a job.

    Restricted to the fields a worker may legitimately change. Only fields
    explicitly passed to the constructor are written; everything else on the
    stored job is left untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    status: JobStatus | None = None
    result_uri: str | None = None
    error: str | None = None
    updated_at: str | None = None
    attempt: int | None = None

    @classmethod
    def running(cls, *, attempt: int = 0) -> Self:
        """Patch entering the ``running`` state."""
        return cls(status=JobStatus.RUNNING, updated_at=iso_now(), attempt=attempt)

    @classmethod
    def completed(cls, result_uri: str) -> Self:
        """Patch entering ``completed``; clears any previous error."""
        return cls(
            status=JobStatus.COMPLETED,
            updated_at=iso_now(),
            result_uri=result_uri,
            error=None,
        )

    @classmethod
    def failed(cls, message: str) -> Self:
        """Patch entering ``failed``; ``result_uri`` is left as is."""
        return cls(status=JobStatus.FAILED, updated_at=iso_now(), error=message)

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set fields, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class TaskMessage(JobsBaseModel):
    """Queue envelope handed from an initiation handler to a worker.

    Parsing is lenient: values are coerced to strings the way the producer
    wrote them, and missing fields fall back to empty values so the worker
    can decide whether the message is addressable.
    """

    job_id: str = ""
    doc_id: str = ""
    owner_email: str = ""
    created_at: str = ""
    attempt: int = 0
    requested_format: str | None = None
    pages: str | None = None

    @field_validator("job_id", "doc_id", "owner_email", "created_at", mode="before")
    @classmethod
    def coerce_text(cls, value: object) -> str:
        """Coerce falsy values to ``""`` and everything else to ``str``."""
        return str(value) if value else ""

    @field_validator("attempt", mode="before")
    @classmethod
    def coerce_attempt(cls, value: object) -> int:
        """Coerce unparseable attempt counters to 0."""
        try:
            return int(value or 0)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            return 0

    @field_validator("requested_format", "pages", mode="before")
    @classmethod
    def coerce_optional_text(cls, value: object) -> str | None:
        """Keep None as is and coerce everything else to ``str``."""
        return None if value is None else str(value)

    @classmethod
    def from_job(cls, job: Job) -> Self:
        """Build the envelope for a newly created job."""
        return cls(
            job_id=job.job_id,
            doc_id=job.doc_id,
            owner_email=job.owner_email,
            created_at=job.created_at or "",
            attempt=job.attempt,
            requested_format=job.requested_format,
            pages=job.pages,
        )

    @classmethod
    def from_payload(cls, payload: object) -> Self | None:
        """Parse a decoded queue payload, or return None if it is not one."""
        if not isinstance(payload, dict):
            return None
        try:
            return cls.model_validate(payload)
        except PydanticValidationError:
            return None

    @property
    def is_addressable(self) -> bool:
        """Return True if the envelope names both a job and a document."""
        return bool(self.job_id and self.doc_id)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase dict placed on the queue."""
        return self.model_dump(by_alias=True, exclude_none=True)
