"""Unit tests for the in-memory job and document stores."""

from __future__ import annotations

import pytest

from pdf_annotator_jobs.jobs.models import Document, Job, JobPatch, JobStatus, JobType
from pdf_annotator_jobs.storage import InMemoryDocumentStore, InMemoryJobStore


class TestInMemoryJobStore:
    """Tests for InMemoryJobStore."""

    async def test_create_and_get(self) -> None:
        """Test a created job is readable immediately."""
        store = InMemoryJobStore()
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d1", owner_email="A@B.c")

        await store.create_job(job)

        stored = await store.get_job(job.job_id)
        assert stored == job
        assert stored.owner_email == "a@b.c"
        assert len(store) == 1

    async def test_create_duplicate_raises(self) -> None:
        """Test inserting the same job ID twice is rejected."""
        store = InMemoryJobStore()
        job = Job.queued(job_type=JobType.OCR, doc_id="d1", owner_email="a@b.c")
        await store.create_job(job)

        with pytest.raises(ValueError, match="already exists"):
            await store.create_job(job)

    async def test_get_unknown_returns_none(self) -> None:
        """Test an unknown job ID reads as None."""
        assert await InMemoryJobStore().get_job("missing") is None

    async def test_update_merges_patch(self) -> None:
        """Test an update only touches the fields set on the patch."""
        store = InMemoryJobStore()
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d1", owner_email="a@b.c")
        await store.create_job(job)

        await store.update_job(job.job_id, JobPatch.failed("boom"))

        stored = await store.get_job(job.job_id)
        assert stored is not None
        assert stored.status == JobStatus.FAILED
        assert stored.error == "boom"
        assert stored.doc_id == "d1"
        assert stored.created_at == job.created_at

    async def test_update_unknown_job_upserts(self) -> None:
        """Test patching an unknown job creates a row with the patch fields."""
        store = InMemoryJobStore()

        await store.update_job("j1", JobPatch.running(attempt=2))

        stored = await store.get_job("j1")
        assert stored is not None
        assert stored.status == JobStatus.RUNNING
        assert stored.attempt == 2
        assert stored.doc_id == ""


class TestInMemoryDocumentStore:
    """Tests for InMemoryDocumentStore."""

    async def test_seeded_documents(self) -> None:
        """Test documents passed to the constructor are readable."""
        store = InMemoryDocumentStore([Document(doc_id="d1", owner_email="a@b.c")])

        document = await store.get_document("d1")

        assert document is not None
        assert document.owner_email == "a@b.c"
        assert await store.get_document("d2") is None

    async def test_add_document_replaces(self) -> None:
        """Test add_document inserts and later replaces by ID."""
        store = InMemoryDocumentStore()

        await store.add_document(Document(doc_id="d1", owner_email="a@b.c"))
        await store.add_document(
            Document(doc_id="d1", owner_email="a@b.c", source_blob_name="a/d1.pdf"),
        )

        document = await store.get_document("d1")
        assert document is not None
        assert document.source_blob_name == "a/d1.pdf"
