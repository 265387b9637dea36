"""Unit tests for job models."""

from __future__ import annotations

import re
import uuid

from pdf_annotator_jobs.jobs import (
    Identity,
    Job,
    JobPatch,
    JobStatus,
    JobType,
    TaskMessage,
)
from pdf_annotator_jobs.jobs.models import iso_now


_ISO_MS = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestJobStatus:
    """Tests for JobStatus enum."""

    def test_status_values(self) -> None:
        """Test JobStatus enum values."""
        assert JobStatus.QUEUED == "queued"
        assert JobStatus.RUNNING == "running"
        assert JobStatus.COMPLETED == "completed"
        assert JobStatus.FAILED == "failed"

    def test_terminal_states(self) -> None:
        """Test only completed and failed are terminal."""
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert not JobStatus.QUEUED.is_terminal
        assert not JobStatus.RUNNING.is_terminal


class TestIsoNow:
    """Tests for iso_now()."""

    def test_format(self) -> None:
        """Test timestamps are UTC with millisecond precision."""
        assert _ISO_MS.match(iso_now())


class TestIdentity:
    """Tests for Identity ownership checks."""

    def test_owns_is_case_insensitive(self) -> None:
        """Test owner emails compare after lowercasing."""
        identity = Identity(email="alice@example.com")

        assert identity.owns("Alice@Example.com")
        assert identity.owns(" alice@example.com ")

    def test_owns_rejects_other_owner(self) -> None:
        """Test a different owner is not matched."""
        assert not Identity(email="alice@example.com").owns("bob@example.com")

    def test_owns_rejects_missing_owner(self) -> None:
        """Test a row without an owner is never owned."""
        assert not Identity(email="alice@example.com").owns(None)


class TestJob:
    """Tests for the Job model."""

    def test_queued_job(self) -> None:
        """Test a new job starts queued with attempt 0."""
        job = Job.queued(
            job_type=JobType.EXPORT,
            doc_id="doc-1",
            owner_email="Alice@Example.com",
            requested_format="pdf",
        )

        assert uuid.UUID(job.job_id).version == 4
        assert job.status == JobStatus.QUEUED
        assert job.type == "export"
        assert job.attempt == 0
        assert job.owner_email == "alice@example.com"
        assert job.created_at == job.updated_at
        assert job.result_uri is None
        assert job.error is None

    def test_job_ids_are_unique(self) -> None:
        """Test every queued job gets a fresh ID."""
        ids = {
            Job.queued(job_type=JobType.OCR, doc_id="d", owner_email="a@b.c").job_id
            for _ in range(50)
        }
        assert len(ids) == 50

    def test_record_uses_camel_case(self) -> None:
        """Test stored records use camelCase keys."""
        job = Job.queued(
            job_type=JobType.OCR,
            doc_id="doc-1",
            owner_email="a@b.c",
            pages="1-3",
        )
        record = job.to_record()

        assert record["jobId"] == job.job_id
        assert record["docId"] == "doc-1"
        assert record["ownerEmail"] == "a@b.c"
        assert record["pages"] == "1-3"
        assert "resultUri" not in record

    def test_legacy_row_is_readable(self) -> None:
        """Test a row with only an ID and camelCase keys validates."""
        job = Job.model_validate({"jobId": "j1", "someLegacyField": 1})

        assert job.job_id == "j1"
        assert job.status is None
        assert job.type is None


class TestJobPatch:
    """Tests for JobPatch merge semantics."""

    def test_running_patch(self) -> None:
        """Test the running patch writes status, timestamp and attempt."""
        changes = JobPatch.running(attempt=2).changes()

        assert set(changes) == {"status", "updated_at", "attempt"}
        assert changes["status"] == JobStatus.RUNNING
        assert changes["attempt"] == 2

    def test_completed_patch_clears_error(self) -> None:
        """Test the completed patch explicitly clears the error."""
        changes = JobPatch.completed("http://x/y").changes()

        assert changes["result_uri"] == "http://x/y"
        assert "error" in changes
        assert changes["error"] is None

    def test_failed_patch_leaves_result_uri(self) -> None:
        """Test the failed patch does not touch result_uri."""
        changes = JobPatch.failed("boom").changes()

        assert changes["error"] == "boom"
        assert "result_uri" not in changes

    def test_apply_merges_only_set_fields(self) -> None:
        """Test applying a patch keeps unrelated fields."""
        job = Job.queued(job_type=JobType.EXPORT, doc_id="d", owner_email="a@b.c")
        completed = job.apply(JobPatch.completed("http://x/y"))
        failed = completed.apply(JobPatch.failed("later failure"))

        assert failed.owner_email == "a@b.c"
        assert failed.created_at == job.created_at
        assert failed.status == JobStatus.FAILED
        assert failed.result_uri == "http://x/y"
        assert failed.error == "later failure"


class TestTaskMessage:
    """Tests for the queue envelope."""

    def test_from_job_round_trips_through_payload(self) -> None:
        """Test the envelope built from a job parses back unchanged."""
        job = Job.queued(
            job_type=JobType.OCR,
            doc_id="doc-1",
            owner_email="a@b.c",
            pages="2",
        )
        payload = TaskMessage.from_job(job).to_payload()

        assert payload == {
            "jobId": job.job_id,
            "docId": "doc-1",
            "ownerEmail": "a@b.c",
            "createdAt": job.created_at,
            "attempt": 0,
            "pages": "2",
        }
        parsed = TaskMessage.from_payload(payload)
        assert parsed is not None
        assert parsed.model_dump() == TaskMessage.from_job(job).model_dump()

    def test_from_payload_coerces_values(self) -> None:
        """Test non-string IDs and bad attempt counters are coerced."""
        task = TaskMessage.from_payload({"jobId": 7, "docId": "d", "attempt": "x"})

        assert task is not None
        assert task.job_id == "7"
        assert task.attempt == 0
        assert task.owner_email == ""

    def test_from_payload_coerces_task_options(self) -> None:
        """Test numeric page selections and formats become strings."""
        task = TaskMessage.from_payload(
            {"jobId": "j", "docId": "d", "pages": 1, "requestedFormat": None},
        )

        assert task is not None
        assert task.is_addressable
        assert task.pages == "1"
        assert task.requested_format is None

    def test_from_payload_rejects_non_objects(self) -> None:
        """Test lists and scalars are not envelopes."""
        assert TaskMessage.from_payload([1, 2]) is None
        assert TaskMessage.from_payload("job") is None

    def test_addressable_requires_job_and_doc(self) -> None:
        """Test an envelope needs both IDs to be processed."""
        assert TaskMessage(job_id="j", doc_id="d").is_addressable
        assert not TaskMessage(job_id="j").is_addressable
        assert not TaskMessage(doc_id="d").is_addressable
