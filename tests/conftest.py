"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
import structlog

from pdf_annotator_jobs.config import Settings
from pdf_annotator_jobs.jobs.models import Document, Identity, JobPatch
from pdf_annotator_jobs.storage import (
    InMemoryDocumentStore,
    InMemoryJobStore,
    LocalBlobStore,
)


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


OWNER_EMAIL = "alice@example.com"
OTHER_EMAIL = "mallory@example.com"
DOC_ID = "doc-1"
SOURCE_BLOB = f"{OWNER_EMAIL}/{DOC_ID}/source.pdf"
SOURCE_PDF = b"%PDF-1.7\n1 0 obj <<>> endobj\ntrailer <<>>\n%%EOF\n"


class RecordingJobStore(InMemoryJobStore):
    """In-memory job store that records every update in call order."""

    def __init__(self) -> None:
        super().__init__()
        self.updates: list[tuple[str, JobPatch]] = []

    async def update_job(self, job_id: str, patch: JobPatch) -> None:
        self.updates.append((job_id, patch))
        await super().update_job(job_id, patch)

    def statuses(self) -> list[str | None]:
        """Return the status written by each recorded update."""
        return [patch.status for _, patch in self.updates]


class FakeOcrBackend:
    """OCR backend returning a canned analysis result."""

    model_id = "prebuilt-read"

    def __init__(self, result: dict[str, Any] | None = None) -> None:
        self.result = result or {"content": "Hello world", "pages": [{"pageNumber": 1}]}
        self.calls: list[tuple[bytes, str]] = []
        self.error: Exception | None = None

    async def analyze(self, content: bytes, *, pages: str = "") -> dict[str, Any]:
        self.calls.append((content, pages))
        if self.error is not None:
            raise self.error
        return self.result


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    """Create a Settings instance rooted in a temporary directory."""
    sections: dict[str, Any] = {
        "auth": {"jwt_secret": "test-jwt-secret-0123456789abcdef0123"},
        "storage": {
            "root_dir": str(tmp_path / "blobs"),
            "public_base_url": "http://jobs.test",
            "signing_secret": "test-signing-secret",
        },
    }
    sections.update(overrides)
    return Settings(**sections)


def write_source(settings: Settings, blob_name: str = SOURCE_BLOB) -> None:
    """Place the sample source PDF in the source container."""
    path = settings.storage.root_dir / settings.storage.source_container / blob_name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(SOURCE_PDF)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Return test settings writing blobs under ``tmp_path``."""
    return make_settings(tmp_path)


@pytest.fixture
def identity() -> Identity:
    """Return the document owner."""
    return Identity(email=OWNER_EMAIL)


@pytest.fixture
def other_identity() -> Identity:
    """Return an authenticated user who owns nothing."""
    return Identity(email=OTHER_EMAIL)


@pytest.fixture
def document() -> Document:
    """Return a document with an uploaded source PDF."""
    return Document(doc_id=DOC_ID, owner_email=OWNER_EMAIL, source_blob_name=SOURCE_BLOB)


@pytest.fixture
def job_store() -> RecordingJobStore:
    """Return an empty recording job store."""
    return RecordingJobStore()


@pytest.fixture
def document_store(document: Document) -> InMemoryDocumentStore:
    """Return a document store holding the sample document."""
    return InMemoryDocumentStore([document])


@pytest.fixture
def blob_store(settings: Settings) -> LocalBlobStore:
    """Return a blob store holding the sample source PDF."""
    write_source(settings)
    return LocalBlobStore.from_config(settings.storage)


@pytest.fixture
def ocr_backend() -> FakeOcrBackend:
    """Return a fake OCR backend."""
    return FakeOcrBackend()


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Reset structlog before and after each test.

    ``configure_logging`` caches loggers bound to the stream that was
    ``sys.stderr`` at the time, which CliRunner replaces and then closes.
    """
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
