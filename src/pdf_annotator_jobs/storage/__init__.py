"""Collaborator contracts and their bundled implementations.

The job lifecycle only depends on the protocols in
:mod:`pdf_annotator_jobs.storage.contracts`. The concrete classes here let
the service run standalone: in-memory job and document stores, a
filesystem blob store with signed URLs, and an in-process queue transport.
"""

from __future__ import annotations

from pdf_annotator_jobs.storage.blobs import LocalBlobStore
from pdf_annotator_jobs.storage.contracts import (
    BlobStore,
    DocumentStore,
    JobStore,
    QueueTransport,
    SasUrl,
)
from pdf_annotator_jobs.storage.memory import InMemoryDocumentStore, InMemoryJobStore
from pdf_annotator_jobs.storage.queue import InProcessQueue, QueueMessage


__all__ = [
    "BlobStore",
    "DocumentStore",
    "InMemoryDocumentStore",
    "InMemoryJobStore",
    "InProcessQueue",
    "JobStore",
    "LocalBlobStore",
    "QueueMessage",
    "QueueTransport",
    "SasUrl",
]
