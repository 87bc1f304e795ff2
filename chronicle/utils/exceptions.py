"""
Custom exception hierarchy for Chronicle.

Provides structured error types so adapters can map failures to transport
responses. All exceptions inherit from ChronicleError for easy catching.
"""


class ChronicleError(Exception):
    """
    Base exception for all Chronicle errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(self, message: str, context: dict | None = None):
        """
        Initialize Chronicle error.
        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ValidationError(ChronicleError):
    """
    Validation errors.
    Raised when input is malformed or missing, always before any mutation.
    """

    pass


class NotFoundError(ChronicleError):
    """
    Resource not found errors.
    Raised when an event, entity, relation or memory doesn't exist (or has expired).
    """

    pass


class StorageError(ChronicleError):
    """
    Storage engine errors.
    Raised when the underlying SQLite operation fails for a reason not otherwise classified.
    """

    pass


class ConfigurationError(ChronicleError):
    """
    Configuration errors.
    Raised when configuration is invalid or missing required values.
    """

    pass
