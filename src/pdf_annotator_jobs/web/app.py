"""FastAPI application factory for pdf-annotator-jobs."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import (
    BaseHTTPMiddleware,
    RequestResponseEndpoint,
)
from starlette.responses import Response  # noqa: TC002

from pdf_annotator_jobs.jobs.exceptions import ApiError
from pdf_annotator_jobs.observability import (
    clear_request_context,
    get_logger,
    set_request_id,
)


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from pdf_annotator_jobs.config import Settings
    from pdf_annotator_jobs.ocr import OcrBackend
    from pdf_annotator_jobs.storage import (
        BlobStore,
        DocumentStore,
        InProcessQueue,
        JobStore,
    )


__all__ = [
    "Collaborators",
    "RequestIDMiddleware",
    "create_app",
    "error_response",
]


# -------------------------------------------------------------------
# Collaborators
# -------------------------------------------------------------------


@dataclass
class Collaborators:
    """Storage, queue and OCR services the application runs against.

    Attributes:
        job_store: Job persistence.
        document_store: Document metadata lookup.
        blob_store: Blob storage with signed URLs.
        queue: Queue transport the workers consume.
        ocr_backend: OCR engine, or None when OCR is not configured.
    """

    job_store: JobStore
    document_store: DocumentStore
    blob_store: BlobStore
    queue: InProcessQueue
    ocr_backend: OcrBackend | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Collaborators:
        """Build the bundled standalone implementations.

        The document store is seeded from the ``documents`` settings section.
        """
        from pdf_annotator_jobs.jobs.models import Document
        from pdf_annotator_jobs.ocr import create_ocr_backend
        from pdf_annotator_jobs.storage import (
            InMemoryDocumentStore,
            InMemoryJobStore,
            InProcessQueue,
            LocalBlobStore,
        )

        return cls(
            job_store=InMemoryJobStore(),
            document_store=InMemoryDocumentStore(
                [
                    Document.model_validate(seed.model_dump())
                    for seed in settings.documents
                ],
            ),
            blob_store=LocalBlobStore.from_config(settings.storage),
            queue=InProcessQueue(config=settings.queues),
            ocr_backend=create_ocr_backend(settings.ocr),
        )


def _register_workers(settings: Settings, collaborators: Collaborators) -> None:
    """Subscribe the export and OCR workers to their queues."""
    from pdf_annotator_jobs.jobs.workers import ExportWorker, OcrWorker

    export_worker = ExportWorker(
        job_store=collaborators.job_store,
        document_store=collaborators.document_store,
        blob_store=collaborators.blob_store,
        storage=settings.storage,
    )
    ocr_worker = OcrWorker(
        job_store=collaborators.job_store,
        document_store=collaborators.document_store,
        blob_store=collaborators.blob_store,
        storage=settings.storage,
        ocr_backend=collaborators.ocr_backend,
    )
    collaborators.queue.register(settings.queues.export, export_worker.handle)
    collaborators.queue.register(settings.queues.ocr, ocr_worker.handle)


# -------------------------------------------------------------------
# Lifespan
# -------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan (startup/shutdown).

    On startup:
    - Subscribes the workers to their queues (unless consumers are
      disabled) and starts the queue transport.

    On shutdown:
    - Stops the queue transport (waits for in-flight deliveries).
    - Closes the OCR client.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup completes.
    """
    logger = get_logger(__name__)
    settings: Settings = app.state.settings
    collaborators: Collaborators = app.state.collaborators

    # --- Startup ---
    logger.info(
        "app_starting",
        host=settings.web.host,
        port=settings.web.port,
    )

    if settings.queues.consumers_enabled:
        _register_workers(settings, collaborators)
    await collaborators.queue.start()

    logger.info(
        "app_started",
        consumers_enabled=settings.queues.consumers_enabled,
        ocr_configured=collaborators.ocr_backend is not None,
    )

    yield

    # --- Shutdown ---
    logger.info("app_shutting_down")

    await collaborators.queue.stop()
    close = getattr(collaborators.ocr_backend, "close", None)
    if close is not None:
        await close()

    logger.info("app_shutdown_complete")


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assign and propagate a unique request ID per request.

    Checks for an incoming ``X-Request-ID`` header. If present, uses
    it; otherwise generates a new one. The ID is bound to the
    structlog context and included in the response headers.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request with request ID tracking."""
        clear_request_context()

        incoming_id = request.headers.get("x-request-id")
        request_id = set_request_id(incoming_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# -------------------------------------------------------------------
# Exception handlers
# -------------------------------------------------------------------


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """Build the ``{"error": {"code", "message"}}`` envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: The FastAPI application.
    """
    logger = get_logger(__name__)

    @app.exception_handler(ApiError)
    async def api_error_handler(
        _request: Request,
        exc: ApiError,
    ) -> JSONResponse:
        logger.info(
            "api_error",
            status_code=exc.status_code,
            code=exc.code,
            error=exc.message,
        )
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(Exception)
    async def generic_error_handler(
        _request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception(
            "unhandled_error",
            error_type=type(exc).__name__,
        )
        return error_response(500, "internal_error", "Internal server error")


# -------------------------------------------------------------------
# Router registration
# -------------------------------------------------------------------


def _include_routers(app: FastAPI) -> None:
    """Include API route routers.

    Args:
        app: The FastAPI application.
    """
    from pdf_annotator_jobs.web.routes import (
        blobs_router,
        documents_router,
        health_router,
        jobs_router,
    )

    app.include_router(health_router)
    app.include_router(documents_router)
    app.include_router(jobs_router)
    app.include_router(blobs_router)


# -------------------------------------------------------------------
# Application factory
# -------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    *,
    collaborators: Collaborators | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from default
            configuration sources via ``load_settings()``.
        collaborators: Storage, queue and OCR services. If None, the
            in-memory stores, local blob store and in-process queue are
            built from ``settings``.

    Returns:
        Configured FastAPI application instance.
    """
    from pdf_annotator_jobs import __version__
    from pdf_annotator_jobs.config import load_settings

    if settings is None:
        settings = load_settings()
    if collaborators is None:
        collaborators = Collaborators.from_settings(settings)

    app = FastAPI(
        title="pdf-annotator-jobs",
        version=__version__,
        description="Asynchronous PDF export and OCR jobs",
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.collaborators = collaborators

    app.add_middleware(RequestIDMiddleware)
    _register_exception_handlers(app)
    _include_routers(app)

    return app
