"""Async HTTP client for the Azure Document Intelligence analyze API."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

import httpx
import structlog

from pdf_annotator_jobs.jobs.exceptions import TransportError


if TYPE_CHECKING:
    from pdf_annotator_jobs.config import OCRConfig


__all__ = [
    "DocumentIntelligenceClient",
    "OcrBackend",
    "create_ocr_backend",
]


@runtime_checkable
class OcrBackend(Protocol):
    """An OCR engine the OCR worker submits source PDFs to."""

    @property
    def model_id(self) -> str:
        """Identifier of the analysis model, recorded with each result."""
        ...

    async def analyze(self, content: bytes, *, pages: str = "") -> dict[str, Any]:
        """Run OCR on a PDF and return the analysis result."""
        ...


class DocumentIntelligenceClient:
    """Client for the Document Intelligence long-running analyze operation.

    The analyze call is a two-step protocol: the document is POSTed to the
    model's ``:analyze`` endpoint, which answers ``202 Accepted`` with an
    ``Operation-Location`` header; that URL is then polled until the
    operation reports ``succeeded`` or ``failed``.

    Example:
        ```python
        async with DocumentIntelligenceClient(
            endpoint="https://example.cognitiveservices.azure.com",
            key="...",
        ) as client:
            result = await client.analyze(pdf_bytes, pages="1-3")
            print(result["content"])
        ```
    """

    DEFAULT_API_VERSION = "2023-07-31"
    DEFAULT_MAX_POLLS = 300
    _PENDING_STATES = frozenset({"notStarted", "running"})

    def __init__(  # noqa: PLR0913
        self,
        endpoint: str,
        key: str,
        *,
        model_id: str = "prebuilt-read",
        api_version: str = DEFAULT_API_VERSION,
        poll_interval: float = 1.0,
        timeout: float = 30.0,  # noqa: ASYNC109
        max_polls: int = DEFAULT_MAX_POLLS,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Resource endpoint URL.
            key: Subscription key sent as ``Ocp-Apim-Subscription-Key``.
            model_id: Analysis model to run.
            api_version: REST API version.
            poll_interval: Seconds between status polls when the service
                sends no ``Retry-After``.
            timeout: Per-request timeout in seconds.
            max_polls: Polls before the operation is abandoned.
        """
        self.endpoint = endpoint.rstrip("/")
        self._key = key
        self._model_id = model_id
        self.api_version = api_version
        self.poll_interval = poll_interval
        self.timeout = httpx.Timeout(timeout)
        self.max_polls = max_polls
        self._client: httpx.AsyncClient | None = None
        self._logger = structlog.get_logger(__name__)

    @classmethod
    def from_config(cls, config: OCRConfig) -> Self:
        """Create a client from a configured ``ocr`` settings section.

        Raises:
            ValueError: The section lacks an endpoint or key.
        """
        if not config.endpoint or not config.key:
            msg = "OCR endpoint and key are required"
            raise ValueError(msg)
        return cls(
            config.endpoint,
            config.key,
            model_id=config.model_id,
            api_version=config.api_version,
            poll_interval=config.poll_interval_seconds,
            timeout=config.timeout_seconds,
        )

    @property
    def model_id(self) -> str:
        """Return the analysis model identifier."""
        return self._model_id

    @property
    def _headers(self) -> dict[str, str]:
        return {"Ocp-Apim-Subscription-Key": self._key}

    async def __aenter__(self) -> Self:
        await self._ensure_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        request_headers = dict(self._headers)
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method,
                url,
                params=params,
                content=content,
                headers=request_headers,
            )
        except httpx.TimeoutException as exc:
            msg = "OCR request timed out"
            raise TransportError(msg, operation="ocr") from exc
        except httpx.HTTPError as exc:
            msg = "Failed to connect to the OCR service"
            raise TransportError(msg, operation="ocr") from exc

        if not response.is_success:
            self._logger.warning(
                "ocr_request_failed",
                method=method,
                status_code=response.status_code,
            )
            msg = f"OCR service returned HTTP {response.status_code}"
            raise TransportError(msg, operation="ocr")

        return response

    def _retry_after(self, response: httpx.Response) -> float:
        header = response.headers.get("Retry-After")
        if header:
            try:
                return float(header)
            except ValueError:
                pass
        return self.poll_interval

    async def analyze(self, content: bytes, *, pages: str = "") -> dict[str, Any]:
        """Analyze a PDF and return the ``analyzeResult`` object.

        Args:
            content: PDF bytes.
            pages: Optional page selection such as ``"1-3,5"``.

        Returns:
            The ``analyzeResult`` of the finished operation.

        Raises:
            TransportError: An HTTP call failed, the operation failed, or it
                did not finish within ``max_polls`` polls.
        """
        params = {"api-version": self.api_version}
        if pages:
            params["pages"] = pages

        response = await self._send(
            "POST",
            f"/formrecognizer/documentModels/{self._model_id}:analyze",
            params=params,
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        )

        operation_url = response.headers.get("Operation-Location")
        if not operation_url:
            msg = "OCR service did not return an operation location"
            raise TransportError(msg, operation="ocr")

        log = self._logger.bind(model_id=self._model_id)
        log.debug("ocr_operation_started", size=len(content), pages=pages or None)

        delay = self._retry_after(response)
        for _ in range(self.max_polls):
            await asyncio.sleep(delay)
            poll = await self._send("GET", operation_url)
            body = poll.json()
            status = body.get("status")

            if status == "succeeded":
                log.debug("ocr_operation_succeeded")
                result: dict[str, Any] = body.get("analyzeResult") or {}
                return result

            if status not in self._PENDING_STATES:
                error = body.get("error") or {}
                msg = f"OCR analysis failed: {error.get('message') or status}"
                raise TransportError(msg, operation="ocr")

            delay = self._retry_after(poll)

        msg = f"OCR analysis did not finish after {self.max_polls} polls"
        raise TransportError(msg, operation="ocr")


def create_ocr_backend(config: OCRConfig) -> DocumentIntelligenceClient | None:
    """Return a client for a configured OCR section, or None if unconfigured."""
    if not config.is_configured:
        return None
    return DocumentIntelligenceClient.from_config(config)
