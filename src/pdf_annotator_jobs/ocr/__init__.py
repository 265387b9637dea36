"""OCR backend integration (Azure Document Intelligence)."""

from __future__ import annotations

from pdf_annotator_jobs.ocr.client import (
    DocumentIntelligenceClient,
    OcrBackend,
    create_ocr_backend,
)


__all__ = [
    "DocumentIntelligenceClient",
    "OcrBackend",
    "create_ocr_backend",
]
