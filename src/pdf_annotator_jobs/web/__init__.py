"""HTTP surface (FastAPI)."""

from __future__ import annotations

from pdf_annotator_jobs.web.app import Collaborators, create_app


__all__ = ["Collaborators", "create_app"]
