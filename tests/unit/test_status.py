"""Unit tests for the job status query."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pdf_annotator_jobs.jobs import (
    ForbiddenError,
    Job,
    JobPatch,
    JobType,
    NotFoundError,
    get_job_status,
    project_job_status,
)


if TYPE_CHECKING:
    from conftest import RecordingJobStore

    from pdf_annotator_jobs.jobs import Identity


_STATUS_KEYS = {"jobId", "status", "type", "resultUri", "error", "updatedAt"}


class TestProjectJobStatus:
    """Tests for project_job_status()."""

    def test_projection_keys(self) -> None:
        """Test the projection always has the same six keys."""
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d", owner_email="a@b.c")

        status = project_job_status(job)

        assert set(status) == _STATUS_KEYS
        assert status["status"] == "queued"
        assert status["type"] == "export"
        assert status["resultUri"] is None
        assert status["error"] is None
        assert status["updatedAt"] == job.updated_at

    def test_legacy_row_defaults(self) -> None:
        """Test a partially written row projects to safe defaults."""
        status = project_job_status(Job(job_id="j1"))

        assert status == {
            "jobId": "j1",
            "status": "unknown",
            "type": "",
            "resultUri": None,
            "error": None,
            "updatedAt": None,
        }

    def test_projection_excludes_private_fields(self) -> None:
        """Test owner and document are not exposed."""
        job = Job.queued(job_type=JobType.OCR, doc_id="d", owner_email="a@b.c")

        status = project_job_status(job)

        assert "ownerEmail" not in status
        assert "docId" not in status


class TestGetJobStatus:
    """Tests for get_job_status()."""

    async def test_owner_sees_completed_job(
        self,
        job_store: RecordingJobStore,
        identity: Identity,
    ) -> None:
        """Test the owner gets the status and result URL."""
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d", owner_email=identity.email)
        await job_store.create_job(job)
        await job_store.update_job(job.job_id, JobPatch.completed("http://x/r.pdf"))

        status = await get_job_status(job_store, identity, job.job_id)

        assert status["status"] == "completed"
        assert status["resultUri"] == "http://x/r.pdf"
        assert status["error"] is None

    async def test_unknown_job(
        self,
        job_store: RecordingJobStore,
        identity: Identity,
    ) -> None:
        """Test an unknown job is not found."""
        with pytest.raises(NotFoundError, match="Job not found"):
            await get_job_status(job_store, identity, "missing")

    async def test_other_owner_is_forbidden(
        self,
        job_store: RecordingJobStore,
        identity: Identity,
        other_identity: Identity,
    ) -> None:
        """Test another user's job is forbidden without leaking its result."""
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d", owner_email=identity.email)
        await job_store.create_job(job)
        await job_store.update_job(job.job_id, JobPatch.completed("http://x/secret"))

        with pytest.raises(ForbiddenError) as exc_info:
            await get_job_status(job_store, other_identity, job.job_id)

        assert "secret" not in str(exc_info.value)
        assert str(exc_info.value) == "You do not own this job"
