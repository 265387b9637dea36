"""API routes."""

from __future__ import annotations

from pdf_annotator_jobs.web.routes.blobs import (
    router as blobs_router,
)
from pdf_annotator_jobs.web.routes.documents import (
    router as documents_router,
)
from pdf_annotator_jobs.web.routes.health import (
    router as health_router,
)
from pdf_annotator_jobs.web.routes.jobs import (
    router as jobs_router,
)


__all__ = ["blobs_router", "documents_router", "health_router", "jobs_router"]
