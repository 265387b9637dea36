"""Settings loading for pdf-annotator-jobs.

Settings are loaded once by the entry point (CLI or app factory) and passed
explicitly to every component that needs them. There is no
cached module-level instance.

Example:
    >>> from pdf_annotator_jobs.config import load_settings
    >>> settings = load_settings()
    >>> settings.queues.export
    'q-export'
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from pdf_annotator_jobs.config.exceptions import (
    ConfigurationError,
    ConfigurationFileNotFoundError,
    ConfigurationValidationError,
)
from pdf_annotator_jobs.config.schema import (
    AuthConfig,
    DocumentSeedConfig,
    ObservabilityConfig,
    OCRConfig,
    QueuesConfig,
    StorageConfig,
    WebConfig,
)


if TYPE_CHECKING:
    from collections.abc import Sequence


__all__ = [
    "Settings",
    "find_config_file",
    "load_settings",
]


# ${VAR} and ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _interpolate_env_vars(value: object) -> object:
    """Recursively substitute ${VAR} references in loaded YAML values.

    Example:
        >>> os.environ["DOCINTEL_KEY"] = "secret"
        >>> _interpolate_env_vars({"key": "${DOCINTEL_KEY}"})
        {'key': 'secret'}
        >>> _interpolate_env_vars("${MISSING:-fallback}")
        'fallback'
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            env_value = os.environ.get(match.group(1))
            if env_value is not None:
                return env_value
            return match.group(2) or ""

        return _ENV_VAR_PATTERN.sub(replace, value)

    if isinstance(value, dict):
        return {k: _interpolate_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [_interpolate_env_vars(item) for item in value]

    return value


class _InterpolatingYamlConfigSettingsSource(YamlConfigSettingsSource):
    """YAML settings source that expands ${VAR} references."""

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file: Path | str | None = None,
    ) -> None:
        if yaml_file is not None:
            super().__init__(settings_cls, yaml_file=yaml_file)
        else:
            super().__init__(settings_cls)

    def _read_files(
        self,
        files: Path | str | Sequence[Path | str] | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        interpolated = _interpolate_env_vars(super()._read_files(files, **kwargs))
        if not isinstance(interpolated, dict):  # pragma: no cover
            return {}
        return interpolated


class Settings(BaseSettings):
    """Application settings.

    Sources in priority order (highest first):
    1. Constructor arguments
    2. ``PDFJOBS_*`` environment variables (``__`` separates sections,
       e.g. ``PDFJOBS_OCR__ENDPOINT``)
    3. YAML configuration file, with ${VAR} interpolation
    4. Defaults

    Attributes:
        auth: Bearer token verification.
        storage: Blob containers and signed URLs.
        queues: Queue names and redelivery policy.
        ocr: Document Intelligence connection.
        web: HTTP server.
        observability: Logging.
        documents: Documents preloaded into the in-memory document store.
    """

    model_config = SettingsConfigDict(
        yaml_file=None,
        yaml_file_encoding="utf-8",
        env_prefix="PDFJOBS_",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    CONFIG_SEARCH_PATHS: ClassVar[list[Path]] = [
        Path("config.yaml"),
        Path("config.yml"),
        Path.home() / ".config" / "pdf-annotator-jobs" / "config.yaml",
        Path("/etc/pdf-annotator-jobs/config.yaml"),
    ]

    # Set by load_settings() for the duration of one instantiation
    _yaml_file_override: ClassVar[Path | str | None] = None

    auth: AuthConfig = AuthConfig()
    storage: StorageConfig = StorageConfig()
    queues: QueuesConfig = QueuesConfig()
    ocr: OCRConfig = OCRConfig()
    web: WebConfig = WebConfig()
    observability: ObservabilityConfig = ObservabilityConfig()
    documents: list[DocumentSeedConfig] = []

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Order sources as init > env > YAML > secrets (dotenv unused)."""
        return (
            init_settings,
            env_settings,
            _InterpolatingYamlConfigSettingsSource(
                settings_cls,
                yaml_file=cls._yaml_file_override,
            ),
            file_secret_settings,
        )


def find_config_file(config_path: Path | str | None = None) -> Path | None:
    """Locate the configuration file.

    Args:
        config_path: Explicit path, or None to search the default locations.

    Returns:
        The path if it exists, otherwise None.
    """
    if config_path is not None:
        path = Path(config_path)
        return path if path.is_file() else None

    for search_path in Settings.CONFIG_SEARCH_PATHS:
        if search_path.is_file():
            return search_path

    return None


def load_settings(
    config_path: Path | str | None = None,
    *,
    require_config_file: bool = False,
) -> Settings:
    """Load and validate application settings.

    Args:
        config_path: Path to a YAML config file. If None, the default
            locations are searched.
        require_config_file: Raise when no config file is found instead of
            falling back to environment variables and defaults.

    Returns:
        A validated Settings instance.

    Raises:
        ConfigurationFileNotFoundError: No config file and one is required.
        ConfigurationValidationError: The configuration is invalid.
    """
    config_file = find_config_file(config_path)

    if config_file is None and require_config_file:
        raise ConfigurationFileNotFoundError(
            path=str(config_path) if config_path else None,
            searched_paths=[str(p) for p in Settings.CONFIG_SEARCH_PATHS],
        )

    try:
        Settings._yaml_file_override = config_file  # noqa: SLF001
        try:
            return Settings()
        finally:
            Settings._yaml_file_override = None  # noqa: SLF001
    except ConfigurationError:
        raise
    except Exception as exc:
        msg = f"Failed to load configuration: {exc}"
        errors = exc.errors() if hasattr(exc, "errors") else None
        raise ConfigurationValidationError(msg, errors=errors) from exc
