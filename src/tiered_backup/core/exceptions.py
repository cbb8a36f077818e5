"""
Tiered Backup Exception Hierarchy.

Defines all custom exceptions used across the backup system.
Provides consistent error handling and debugging information.
"""

from typing import Any


class TieredBackupError(Exception):
    """
    Base exception for all Tiered Backup errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize a TieredBackupError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(TieredBackupError):
    """
    Errors in configuration loading or validation.

    Raised when:
    - Configuration files are missing or malformed
    - No valid backup targets remain
    - Retention tier fields are invalid
    """

    def __init__(
        self,
        message: str,
        *,
        config_file: str | None = None,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize a ConfigurationError.

        Args:
            message: Human-readable error message
            config_file: Path to configuration file if applicable
            config_key: Configuration key if applicable
            details: Optional structured data for debugging
        """
        details = details or {}
        if config_file:
            details["config_file"] = config_file
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, details=details)
        self.config_file = config_file
        self.config_key = config_key


class DurationFormatError(ConfigurationError):
    """Raised when a duration literal such as ``1D2H30M`` cannot be parsed."""

    def __init__(self, message: str, *, literal: str | None = None, **kwargs):
        details = kwargs.pop("details", {}) or {}
        if literal is not None:
            details["literal"] = literal
        kwargs["details"] = details

        super().__init__(message, **kwargs)
        self.literal = literal


class ArchiveError(TieredBackupError):
    """
    Fatal errors while producing an archive.

    Raised when the output directory cannot be created or the
    container stream cannot be opened or written. Per-file read
    failures are not fatal and never raise this.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize an ArchiveError.

        Args:
            message: Human-readable error message
            path: Filesystem path involved in the failure
            details: Optional structured data for debugging
        """
        details = details or {}
        if path:
            details["path"] = path

        super().__init__(message, details=details)
        self.path = path


class RetentionError(TieredBackupError):
    """Errors while listing or pruning backup artifacts."""

    def __init__(
        self,
        message: str,
        *,
        directory: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if directory:
            details["directory"] = directory

        super().__init__(message, details=details)
        self.directory = directory


def format_exception(error: Exception) -> str:
    """
    Format an exception for user-friendly display.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, TieredBackupError):
        return str(error)
    return f"{error.__class__.__name__}: {error}"
