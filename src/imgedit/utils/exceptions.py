"""
Custom exceptions for imgedit.

This module defines all custom exceptions used throughout the application.
"""


class ImgeditError(Exception):
    """Base exception for all imgedit errors."""

    pass


class DecodeError(ImgeditError):
    """Raised when a selected file cannot be turned into an EncodedImage."""

    def __init__(self, message: str, source: str = "") -> None:
        """
        Initialize decode error.

        Args:
            message: Error message
            source: Path or name of the file that failed to decode (optional)
        """
        self.source = source
        super().__init__(message)


class NoImageInResponse(ImgeditError):
    """Raised when the service answered but returned no inline image."""

    def __init__(self, message: str, response: str = "") -> None:
        """
        Initialize no-image error.

        Args:
            message: Error message
            response: Raw API response (if available)
        """
        self.response = response
        super().__init__(message)


class TransportError(ImgeditError):
    """Raised when an edit request cannot complete (network, auth, rate limit, service)."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response: str = "",
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize transport error.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response: Raw API response (if available)
            original_error: The underlying exception that caused this error
        """
        self.status_code = status_code
        self.response = response
        self.original_error = original_error
        super().__init__(message)


class RequestTimeoutError(TransportError):
    """Raised when the edit request times out."""

    pass


class PreconditionError(ImgeditError):
    """Raised when a submit is attempted without a valid image and prompt."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize precondition error.

        Args:
            message: Error message
            field: Name of the missing or invalid input (optional)
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(ImgeditError):
    """Raised when there is a configuration problem."""

    pass
