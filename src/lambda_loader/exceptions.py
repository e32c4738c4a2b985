"""
Custom exceptions for lambda-loader.

This module defines the error taxonomy of the acquisition pipeline. "Nothing
published" is never an exception: resolvers return None for that case so the
stable to snapshot fallback can tell it apart from a failed fetch.
"""

from typing import Optional, Sequence


class LoaderError(Exception):
    """
    Base exception for all lambda-loader errors.

    All custom exceptions in lambda-loader inherit from this class
    to allow for easy catching of all application-specific errors.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LoaderError):
    """
    Exception raised when configuration is invalid.

    This includes unknown release modes and values of the wrong type.
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or written."""

    def __init__(
        self, message: str, path: Optional[str] = None, details: Optional[str] = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Repository Errors
# =============================================================================


class FetchError(LoaderError):
    """
    Exception raised when a repository endpoint cannot be fetched or parsed.

    This includes connection failures, timeouts, HTTP error statuses and
    malformed metadata documents.

    Attributes:
        url: The URL that was being fetched.
        status_code: The HTTP status code, when the server answered.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Whether the server answered that the resource does not exist."""
        return self.status_code == 404


# =============================================================================
# Acquisition Errors
# =============================================================================


class AcquisitionError(LoaderError):
    """
    Base exception for failures of a single acquisition attempt.

    Attributes:
        artifact_name: The artifact being acquired.
        is_fatal: Whether the caller should stop instead of retrying.
    """

    is_fatal = False

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.artifact_name = artifact_name


class NoVersionAvailable(AcquisitionError):
    """
    Exception raised when no channel publishes a compatible version.

    This is terminal: the repository was reachable and nothing qualifies, so
    retrying will not help.
    """

    is_fatal = True

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        repository_url: Optional[str] = None,
        version_constraint: Optional[str] = None,
        channels: Sequence[str] = (),
    ) -> None:
        details = f"repository: {repository_url}"
        if version_constraint:
            details += f", target version: {version_constraint}"
        if channels:
            details += f", channels checked: {', '.join(channels)}"
        super().__init__(message, artifact_name, details)
        self.repository_url = repository_url
        self.version_constraint = version_constraint
        self.channels = tuple(channels)


class ChecksumUnavailable(AcquisitionError):
    """Exception raised when the published checksum cannot be fetched."""

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, artifact_name, details)
        self.url = url


class DownloadFailed(AcquisitionError):
    """Exception raised when the artifact binary cannot be downloaded."""

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, artifact_name, details)
        self.url = url


class ChecksumMismatch(AcquisitionError):
    """
    Exception raised when downloaded bytes do not match the published checksum.

    The bytes are discarded; nothing is written to the cache.
    """

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
    ) -> None:
        super().__init__(
            message, artifact_name, f"expected: {expected}, got: {actual}"
        )
        self.expected = expected
        self.actual = actual


class CacheVerificationFailed(AcquisitionError):
    """Exception raised when a stored file fails its post-write checksum check."""

    def __init__(
        self,
        message: str,
        artifact_name: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, artifact_name, details)
        self.path = path
