"""Configuration schema models for pdf-annotator-jobs.

Each section is a frozen Pydantic model so a loaded configuration can be
handed to handlers and workers by value without risk of one component
mutating what another sees.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


__all__ = [
    "AuthConfig",
    "ConfigBaseModel",
    "DocumentSeedConfig",
    "LogLevel",
    "LoggingConfig",
    "OCRConfig",
    "ObservabilityConfig",
    "QueuesConfig",
    "StorageConfig",
    "WebConfig",
]


class LogLevel(StrEnum):
    """Log verbosity level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ConfigBaseModel(BaseModel):
    """Base model for all configuration sections.

    Unknown keys are rejected so that typos in the YAML file surface as
    validation errors instead of silently falling back to defaults.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
        validate_default=True,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class AuthConfig(ConfigBaseModel):
    """Bearer token verification settings.

    Attributes:
        jwt_secret: HMAC secret used to sign and verify access tokens.
        jwt_expires_minutes: Lifetime of tokens minted by this service.
        issuer: Expected ``iss`` claim.
        audience: Expected ``aud`` claim.
    """

    jwt_secret: str = Field(
        default="change-me",
        description="HMAC secret for access tokens (supports ${VAR})",
    )
    jwt_expires_minutes: Annotated[int, Field(ge=1, le=10080)] = 480
    issuer: str = "redarm-cheap-backend"
    audience: str = "redarm-cheap-ui"


# ---------------------------------------------------------------------------
# Blob storage
# ---------------------------------------------------------------------------


class StorageConfig(ConfigBaseModel):
    """Blob container and signed URL settings.

    Attributes:
        root_dir: Directory holding one sub-directory per container.
        public_base_url: Base URL used when minting signed blob URLs.
        signing_secret: HMAC secret for signed blob URLs.
        source_container: Container holding uploaded source PDFs.
        export_container: Container receiving exported PDFs.
        ocr_container: Container receiving OCR analysis JSON.
        sas_ttl_minutes: Lifetime of read URLs handed back in ``resultUri``.
    """

    root_dir: Path = Field(default=Path("./data/blobs"))
    public_base_url: str = "http://localhost:8080"
    signing_secret: str = "change-me"
    source_container: str = "pdf-source"
    export_container: str = "pdf-export"
    ocr_container: str = "ocr-json"
    sas_ttl_minutes: Annotated[int, Field(ge=1, le=10080)] = 60 * 24

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return value.rstrip("/")


# ---------------------------------------------------------------------------
# Queues
# ---------------------------------------------------------------------------


class QueuesConfig(ConfigBaseModel):
    """Queue names and delivery policy of the in-process transport.

    Attributes:
        export: Queue consumed by the export worker.
        ocr: Queue consumed by the OCR worker.
        max_dequeue_count: Deliveries attempted before a message is moved
            to the ``<queue>-poison`` list.
        redelivery_delay_seconds: Pause before a failed message is
            delivered again.
        workers: Maximum concurrent deliveries.
        consumers_enabled: Run the export and OCR workers in this process.
            Disable for an API-only instance.
    """

    export: str = "q-export"
    ocr: str = "q-ocr"
    max_dequeue_count: Annotated[int, Field(ge=1, le=100)] = 5
    redelivery_delay_seconds: Annotated[float, Field(ge=0, le=3600)] = 0.0
    workers: Annotated[int, Field(ge=1, le=32)] = 2
    consumers_enabled: bool = True


# ---------------------------------------------------------------------------
# OCR backend
# ---------------------------------------------------------------------------


class OCRConfig(ConfigBaseModel):
    """Document Intelligence connection settings.

    OCR is optional: when either ``endpoint`` or ``key`` is empty the OCR
    worker fails jobs with "Document Intelligence not configured".

    Attributes:
        endpoint: Resource endpoint, e.g. ``https://x.cognitiveservices.azure.com``.
        key: Subscription key (supports ${VAR} interpolation).
        model_id: Analysis model to run.
        api_version: REST API version query parameter.
        poll_interval_seconds: Delay between operation status polls.
        timeout_seconds: Per-request HTTP timeout.
    """

    endpoint: str | None = None
    key: str | None = None
    model_id: str = "prebuilt-read"
    api_version: str = "2023-07-31"
    poll_interval_seconds: Annotated[float, Field(ge=0, le=60)] = 1.0
    timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 30.0

    @field_validator("endpoint", "key")
    @classmethod
    def empty_as_none(cls, value: str | None) -> str | None:
        """Treat empty strings (e.g. an unset ${VAR}) as not configured."""
        return value or None

    @property
    def is_configured(self) -> bool:
        """Return True when both endpoint and key are present."""
        return bool(self.endpoint and self.key)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentSeedConfig(ConfigBaseModel):
    """A document preloaded into the in-memory document store.

    The standalone service has no upload flow of its own, so the documents
    it may start jobs for are listed here.

    Attributes:
        doc_id: Document identifier.
        owner_email: Email of the owning user.
        source_blob_name: Blob name of the PDF inside ``source_container``.
    """

    doc_id: Annotated[str, Field(min_length=1)]
    owner_email: Annotated[str, Field(min_length=1)]
    source_blob_name: str | None = None


# ---------------------------------------------------------------------------
# Web server & observability
# ---------------------------------------------------------------------------


class WebConfig(ConfigBaseModel):
    """HTTP server settings."""

    host: str = Field(default="0.0.0.0")  # noqa: S104
    port: Annotated[int, Field(ge=1, le=65535)] = 8080


class LoggingConfig(ConfigBaseModel):
    """Logging settings."""

    level: LogLevel = Field(default=LogLevel.INFO)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        """Accept level names in any case (``debug``, ``Debug``)."""
        return value.upper() if isinstance(value, str) else value


class ObservabilityConfig(ConfigBaseModel):
    """Observability settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
