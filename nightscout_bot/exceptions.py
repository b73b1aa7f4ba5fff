"""
Error taxonomy for the Nightscout lookup pipeline.

Resolution and aggregation report failures as ``ClassifiedError`` values
drawn from the closed ``ErrorKind`` set. Only the remote client raises;
its ``RemoteFetchError`` subclasses carry the cause of a failed fetch until
the error classifier turns them into values.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .models import Identity

# Nightscout tokens travel as a query parameter and show up in requests errors
TOKEN_QUERY_PATTERN = re.compile(r"(token=)[^&\s'\"]+", re.IGNORECASE)


def mask_token(text: str) -> str:
    """Replace the value of any ``token=`` query parameter in ``text``."""
    return TOKEN_QUERY_PATTERN.sub(r"\1***", text)


def describe_cause(error: BaseException) -> str:
    """Exception type and message, safe to log."""
    return f"{type(error).__name__}: {mask_token(str(error))}"


class ErrorKind(str, Enum):
    """Closed set of failure kinds a lookup can end with."""

    # Resolution Errors
    UNCONFIGURED = "Unconfigured"
    NO_CONFIGURED_URL = "NoConfiguredUrl"
    TOO_MANY_MENTIONS = "TooManyMentions"
    EVERYONE_MENTIONED = "EveryoneMentioned"
    PRIVATE_DATA = "PrivateData"
    INVALID_ARGUMENT = "InvalidArgument"

    # Aggregation Errors
    NO_REMOTE_DATA = "NoRemoteData"
    MALFORMED_REMOTE_DATA = "MalformedRemoteData"
    REMOTE_STATUS = "RemoteStatus"
    HOST_UNREACHABLE = "HostUnreachable"
    UNEXPECTED = "Unexpected"


RESOLUTION_KINDS = frozenset({
    ErrorKind.UNCONFIGURED,
    ErrorKind.NO_CONFIGURED_URL,
    ErrorKind.TOO_MANY_MENTIONS,
    ErrorKind.EVERYONE_MENTIONED,
    ErrorKind.PRIVATE_DATA,
    ErrorKind.INVALID_ARGUMENT,
})


@dataclass(frozen=True)
class ClassifiedError:
    """
    A final, user-reportable failure of one lookup request.

    ``identity`` names the user involved (the unconfigured or private user,
    or the owner of the endpoint that failed). ``url`` is kept for
    diagnostics only.
    """

    kind: ErrorKind
    identity: Optional[Identity] = None
    reason: Optional[str] = None
    status_code: Optional[int] = None
    url: Optional[str] = None
    cause: Optional[BaseException] = None

    @property
    def is_resolution_error(self) -> bool:
        return self.kind in RESOLUTION_KINDS

    @property
    def full_message(self) -> str:
        """Returns the complete error message with kind and details."""
        parts = [f"[{self.kind.value}]"]
        if self.identity is not None:
            parts.append(f"Identity: {self.identity.display_name}")
        if self.reason:
            parts.append(f"Reason: {self.reason}")
        if self.status_code is not None:
            parts.append(f"Status: {self.status_code}")
        if self.url:
            parts.append(f"URL: {self.url}")
        if self.cause is not None:
            parts.append(f"Caused by: {describe_cause(self.cause)}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to a dictionary for API responses."""
        return {
            "error": self.kind.value,
            "identity": self.identity.display_name if self.identity else None,
            "reason": self.reason,
            "status_code": self.status_code,
        }

    # =========================================================================
    # Constructors
    # =========================================================================

    @classmethod
    def unconfigured(cls) -> "ClassifiedError":
        return cls(ErrorKind.UNCONFIGURED)

    @classmethod
    def no_configured_url(cls, identity: Identity) -> "ClassifiedError":
        return cls(ErrorKind.NO_CONFIGURED_URL, identity=identity)

    @classmethod
    def too_many_mentions(cls) -> "ClassifiedError":
        return cls(ErrorKind.TOO_MANY_MENTIONS)

    @classmethod
    def everyone_mentioned(cls) -> "ClassifiedError":
        return cls(ErrorKind.EVERYONE_MENTIONED)

    @classmethod
    def private_data(cls, identity: Optional[Identity] = None) -> "ClassifiedError":
        return cls(ErrorKind.PRIVATE_DATA, identity=identity)

    @classmethod
    def invalid_argument(cls, reason: str) -> "ClassifiedError":
        return cls(ErrorKind.INVALID_ARGUMENT, reason=reason)


# =============================================================================
# Remote Fetch Exceptions
# =============================================================================

class RemoteFetchError(Exception):
    """Base exception for failed Nightscout fetches."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.url = url
        self.original_error = original_error
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        """Returns the complete error message with URL and cause."""
        parts = [self.message]
        if self.url:
            parts.append(f"URL: {self.url}")
        if self.original_error:
            parts.append(f"Caused by: {describe_cause(self.original_error)}")
        return " | ".join(parts)


class NoRemoteDataError(RemoteFetchError):
    """Raised when a Nightscout endpoint returns no data."""

    def __init__(self, message: str = "No data returned by Nightscout", url: Optional[str] = None):
        super().__init__(message=message, url=url)


class MalformedRemoteDataError(RemoteFetchError):
    """Raised when a Nightscout payload cannot be parsed."""

    def __init__(
        self,
        message: str = "Malformed data returned by Nightscout",
        url: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message=message, url=url, original_error=original_error)


class RemoteStatusError(RemoteFetchError):
    """Raised when a Nightscout endpoint answers with an error status."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        super().__init__(message=f"Nightscout responded with status {status_code}", url=url)
        self.status_code = status_code
