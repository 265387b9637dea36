"""Configuration-specific exceptions for pdf-annotator-jobs."""

from __future__ import annotations


__all__ = [
    "ConfigurationError",
    "ConfigurationFileNotFoundError",
    "ConfigurationValidationError",
]


class ConfigurationError(Exception):
    """Base exception for configuration errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationFileNotFoundError(ConfigurationError):
    """Raised when a configuration file was required but not found.

    Attributes:
        path: The explicitly requested path, if any.
        searched_paths: Default locations that were searched.
    """

    def __init__(
        self,
        path: str | None = None,
        searched_paths: list[str] | None = None,
    ) -> None:
        self.path = path
        self.searched_paths = searched_paths or []

        if path:
            message = f"Configuration file not found: {path}"
        elif self.searched_paths:
            message = (
                "Configuration file not found. Searched: "
                + ", ".join(self.searched_paths)
            )
        else:
            message = "Configuration file not found"

        super().__init__(message)


class ConfigurationValidationError(ConfigurationError):
    """Raised when loaded configuration fails validation.

    Attributes:
        errors: Validation error details reported by Pydantic.
    """

    def __init__(
        self,
        message: str,
        errors: list[dict[str, object]] | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
