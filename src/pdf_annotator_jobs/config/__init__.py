"""Configuration module for pdf-annotator-jobs.

Configuration comes from YAML files and ``PDFJOBS_*`` environment variables
and is validated with Pydantic settings. YAML values support ${VAR} and
${VAR:-default} interpolation.

Example:
    >>> from pdf_annotator_jobs.config import load_settings
    >>> settings = load_settings()
    >>> settings.storage.export_container
    'pdf-export'
    >>> settings.ocr.is_configured
    False
"""

from __future__ import annotations

from pdf_annotator_jobs.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from pdf_annotator_jobs.config.schema import (
    AuthConfig,
    ConfigBaseModel,
    DocumentSeedConfig,
    LoggingConfig,
    LogLevel,
    ObservabilityConfig,
    OCRConfig,
    QueuesConfig,
    StorageConfig,
    WebConfig,
)
from pdf_annotator_jobs.config.settings import (
    Settings,
    find_config_file,
    load_settings,
)


__all__ = [
    "AuthConfig",
    "ConfigBaseModel",
    "DocumentSeedConfig",
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
    "LogLevel",
    "LoggingConfig",
    "OCRConfig",
    "ObservabilityConfig",
    "QueuesConfig",
    "Settings",
    "StorageConfig",
    "WebConfig",
    "find_config_file",
    "load_settings",
]
