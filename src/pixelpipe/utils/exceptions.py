"""
Custom exceptions for pixelpipe.

This module defines all custom exceptions used throughout the package.
Stage failures carry the name of the filter that failed so callers can
report where a pipeline run stopped.
"""


class PixelpipeError(Exception):
    """Base exception for all pixelpipe errors."""

    pass


class ValidationError(PixelpipeError):
    """Raised when pipeline input validation fails."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field or filter that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class UnknownFilterError(ValidationError):
    """Raised for an unrecognised filter name when the unknown-filter policy is 'error'."""

    pass


class ConfigurationError(PixelpipeError):
    """Raised when there is a configuration or asset manifest problem."""

    pass


class AssetNotReadyError(PixelpipeError):
    """Raised when template assets are requested before the cache finished loading."""

    pass


class AssetMissingError(PixelpipeError):
    """Raised when a template is unknown or its resource could not be decoded."""

    def __init__(self, message: str, template_id: str = "") -> None:
        self.template_id = template_id
        super().__init__(message)


class TransformError(PixelpipeError):
    """Raised when a pipeline stage fails."""

    def __init__(
        self, message: str, stage: str = "", original_error: Exception | None = None
    ) -> None:
        """
        Initialize transform error.

        Args:
            message: Error message
            stage: Name of the filter whose stage failed
            original_error: The underlying exception that caused this error
        """
        self.stage = stage
        self.original_error = original_error
        super().__init__(message)


class DecodeError(TransformError):
    """Raised when a stage input is not a decodable raster image."""

    pass


class StageTimeoutError(PixelpipeError, TimeoutError):
    """Raised when a stage exceeds its time budget."""

    def __init__(self, message: str, stage: str = "", timeout: float = 0.0) -> None:
        self.stage = stage
        self.timeout = timeout
        super().__init__(message)


class CancellationError(PixelpipeError):
    """Raised when a pipeline run is cancelled by the caller."""

    pass
