"""Exception hierarchy for lfs-watchdog.

Every error raised while classifying a push inherits from WatchdogError so
callers can catch tool-specific failures with a single handler. None of these
errors is fatal to the service: they are scoped to one file or one commit.
"""

from typing import Any


class WatchdogError(Exception):
    """Base exception for all lfs-watchdog errors.

    Attributes:
        message: Human-readable error message
        **kwargs: Additional context stored as attributes
    """

    def __init__(self, message: str, **kwargs: Any) -> None:
        """Initialize exception with message and optional context.

        Args:
            message: Human-readable error description
            **kwargs: Additional context (e.g., ref, path, kind)
        """
        super().__init__(message)
        self.message = message

        for key, value in kwargs.items():
            setattr(self, key, value)

    def __str__(self) -> str:
        return self.message


class ConfigLoadError(WatchdogError):
    """Raised when a repository's watchdog configuration cannot be used.

    Recoverable: the built-in defaults apply, but the error is still logged.

    Common scenarios:
    - Config file missing at the ref
    - Invalid YAML syntax
    - Unknown keys (typos) or wrong value types
    """

    pass


class SizeLookupError(WatchdogError):
    """Base class for failures to resolve a file size from a directory listing."""

    pass


class ListingTruncatedError(SizeLookupError):
    """Raised when a file is absent from a listing that hit the entry ceiling.

    The file may exist beyond the first entries; its size is unknown, it is
    not known to be absent.
    """

    pass


class WrongEntryKindError(SizeLookupError):
    """Raised when the pushed path is listed as a symlink, submodule, etc."""

    pass


class MissingExpectedFileError(SizeLookupError):
    """Raised when the push payload names a path the listing does not contain.

    Indicates a mismatch between the webhook payload and the queried ref.
    """

    pass


class InvalidPointerError(WatchdogError):
    """Raised when an LFS-declared file is not a well-formed LFS pointer.

    This is a classification result rather than a failure.
    """

    pass


class TransportError(WatchdogError):
    """Raised when a call to the hosting platform fails.

    Attributes:
        retryable: Whether the call may succeed if repeated
        status: HTTP status code, if any
    """

    def __init__(self, message: str, retryable: bool = False, **kwargs: Any) -> None:
        super().__init__(message, retryable=retryable, **kwargs)


class ContentNotFoundError(TransportError):
    """Raised when the requested path does not exist at the ref (HTTP 404)."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.pop("retryable", None)
        super().__init__(message, retryable=False, **kwargs)


class ReportPublishError(WatchdogError):
    """Raised when a commit comment or status could not be posted.

    Logged and never retried; other commits are unaffected.
    """

    pass
