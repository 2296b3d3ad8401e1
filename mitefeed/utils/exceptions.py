"""
MiteFeed Custom Exceptions
=========================

Custom exception hierarchy for MiteFeed with error codes, context information
and display-ready error messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"

    # Storage errors (D001-D099)
    STORAGE_ERROR = "D006"

    # Feed errors (F001-F099)
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"
    FEED_AUTH_REQUIRED = "F007"
    FEED_RATE_LIMITED = "F008"
    FEED_HTTP_ERROR = "F009"
    FEED_UNSUPPORTED_FORMAT = "F010"
    FEED_UNKNOWN_FORMAT = "F011"
    FEED_STRUCTURE_INVALID = "F012"

    # Resource management errors (R001-R099)
    RESOURCE_NOT_FOUND = "R002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"


class MiteFeedError(Exception):
    """Base exception for all MiteFeed errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize MiteFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(MiteFeedError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        kwargs.setdefault("error_code", ErrorCode.CONFIG_INVALID)
        kwargs.setdefault("user_message", f"Configuration error: {message}")
        super().__init__(message, context=context, **kwargs)


class FeedError(MiteFeedError):
    """Feed fetching and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for MiteFeedError
        """
        context = kwargs.pop("context", {})
        if feed_url:
            context["feed_url"] = feed_url
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        kwargs.setdefault("user_message", message)
        super().__init__(message, context=context, **kwargs)


class FeedParseError(FeedError):
    """Document could not be turned into a Feed."""

    pass


class MalformedDocumentError(FeedParseError):
    """Document is not well-formed enough to build a tree from."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        kwargs.setdefault(
            "user_message", "The document could not be read as XML."
        )
        super().__init__(message, **kwargs)


class UnsupportedFormatError(FeedParseError):
    """Recognized feed format that is deliberately not supported (RSS 1.0)."""

    def __init__(self, message: str = "RSS 1.0 documents not supported.", **kwargs):
        context = kwargs.pop("context", {})
        context.setdefault("format", "rdf")
        kwargs.setdefault("error_code", ErrorCode.FEED_UNSUPPORTED_FORMAT)
        super().__init__(message, context=context, **kwargs)


class UnknownFormatError(FeedParseError):
    """Document root matches none of the recognized feed shapes."""

    def __init__(self, message: str = "Feed type unknown or unsupported.", **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_UNKNOWN_FORMAT)
        super().__init__(message, **kwargs)


class StructuralError(FeedParseError):
    """A field the feed format requires is missing."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if field_name:
            context["field_name"] = field_name
        kwargs.setdefault("error_code", ErrorCode.FEED_STRUCTURE_INVALID)
        kwargs.setdefault("user_message", f"Feed is malformed: {message}")
        super().__init__(message, context=context, **kwargs)


# Well-known HTTP statuses and their error codes
_STATUS_CODES = {
    401: ErrorCode.FEED_AUTH_REQUIRED,
    403: ErrorCode.FEED_ACCESS_DENIED,
    404: ErrorCode.FEED_NOT_FOUND,
    429: ErrorCode.FEED_RATE_LIMITED,
}


class FetchError(FeedError):
    """Non-success HTTP response."""

    def __init__(self, status: int, message: Optional[str] = None, **kwargs):
        """Initialize fetch error.

        Args:
            status: HTTP status code of the response
            message: Display-ready message (defaults to a generic one)
            **kwargs: Additional arguments for FeedError
        """
        self.status = status
        message = message or f"Could not fetch URL due to code {status}"

        context = kwargs.pop("context", {})
        context["status"] = status
        kwargs.setdefault(
            "error_code", _STATUS_CODES.get(status, ErrorCode.FEED_HTTP_ERROR)
        )
        kwargs.setdefault("recoverable", status == 429 or status >= 500)
        super().__init__(message, context=context, **kwargs)


class FeedNetworkError(FeedError):
    """Connection failures and timeouts below the HTTP layer."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_NETWORK_ERROR)
        kwargs.setdefault("user_message", "Network connection failed")
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class StorageError(MiteFeedError):
    """Subscription or content storage errors."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path
        kwargs.setdefault("error_code", ErrorCode.STORAGE_ERROR)
        kwargs.setdefault("user_message", "Storage operation failed")
        super().__init__(message, context=context, **kwargs)


class SubscriptionNotFoundError(StorageError):
    """Subscription id is not present in the store."""

    def __init__(self, subscription_id: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.RESOURCE_NOT_FOUND)
        kwargs.setdefault("user_message", "Could not find feed in file")
        kwargs.setdefault("context", {"subscription_id": subscription_id})
        super().__init__(f"Subscription not found: {subscription_id}", **kwargs)


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> MiteFeedError:
    """Convert generic exceptions to MiteFeed exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        MiteFeed exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, MiteFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedNetworkError(
            f"Network error during {operation}: {str(exception)}",
            context=context,
        )

    elif isinstance(exception, PermissionError):
        error = MiteFeedError(
            message=f"Permission denied during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
        )

    elif isinstance(exception, FileNotFoundError):
        error = StorageError(
            f"Required file not found during {operation}: {str(exception)}",
            context=context,
            user_message="A required data file is missing",
        )

    else:
        error = MiteFeedError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def is_retryable_error(exception: MiteFeedError) -> bool:
    """Check if an error is worth retrying by the caller.

    Args:
        exception: MiteFeed exception to check

    Returns:
        True if the error is potentially retryable
    """
    if not exception.recoverable:
        return False

    retryable_codes = {
        ErrorCode.FEED_NETWORK_ERROR,
        ErrorCode.FEED_FETCH_TIMEOUT,
        ErrorCode.FEED_RATE_LIMITED,
        ErrorCode.FEED_HTTP_ERROR,
    }

    return exception.error_code in retryable_codes


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, MiteFeedError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
