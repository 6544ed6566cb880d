"""
Error Taxonomy (v1.0.0)
Exceptions shared by the search pipeline stages.

Zero-result searches and unmet composition preconditions are valid empty
outcomes and are reported as diagnostic notes, not raised.
"""
from typing import Optional


class StylistError(Exception):
    """Base class for pipeline errors."""


class RemoteError(StylistError):
    """Failure reported by a remote collaborator."""


class TransientRemoteError(RemoteError):
    """Rate-limit or overload condition; eligible for retry."""


class TerminalRemoteError(RemoteError):
    """Remote failure that must not be retried."""


class RemoteFailure(StylistError):
    """A remote call gave up, either after exhausting retries or on a terminal error."""
    def __init__(self, message: str, kind: str = "terminal", attempts: int = 1, cause: Optional[BaseException] = None):
        self.message = message
        self.kind = kind
        self.attempts = attempts
        self.cause = cause
        super().__init__(message)


class ParseError(StylistError):
    """Structured response did not match the expected schema."""


class ValidationError(StylistError):
    """Invalid request input."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class FetchError(RemoteError):
    """Content-fetch proxy could not retrieve a URL."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SearchError(RemoteError):
    """Search provider reported an error or returned an unusable payload."""
