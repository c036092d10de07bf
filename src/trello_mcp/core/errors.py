"""
Classified errors for the Trello client.

Every failure that leaves ``TrelloClient`` is one of the ``TrelloError``
subclasses below. Raw httpx exceptions are only ever attached as ``__cause__``.
"""

from __future__ import annotations

import enum
import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Type

import httpx

REDACTED = "***"
DETAIL_MAX_CHARS = 200

_DELTA_SECONDS_RE = re.compile(r"^\d+(?:\.\d+)?$")


class ErrorKind(str, enum.Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMITED,
        ErrorKind.NETWORK,
        ErrorKind.TIMEOUT,
        ErrorKind.SERVER_ERROR,
    }
)


class TrelloError(Exception):
    """Base error for every failure surfaced by the Trello client."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retry_after = retry_after
        self.operation = operation

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )


class TrelloAuthenticationError(TrelloError):
    kind = ErrorKind.AUTHENTICATION


class TrelloAuthorizationError(TrelloError):
    kind = ErrorKind.AUTHORIZATION


class TrelloNotFoundError(TrelloError):
    kind = ErrorKind.NOT_FOUND


class TrelloRateLimitError(TrelloError):
    kind = ErrorKind.RATE_LIMITED


class TrelloValidationError(TrelloError):
    kind = ErrorKind.VALIDATION


class TrelloNetworkError(TrelloError):
    kind = ErrorKind.NETWORK


class TrelloTimeoutError(TrelloError):
    kind = ErrorKind.TIMEOUT


class TrelloServerError(TrelloError):
    kind = ErrorKind.SERVER_ERROR


class TrelloUnknownError(TrelloError):
    kind = ErrorKind.UNKNOWN


ERROR_CLASSES: Dict[ErrorKind, Type[TrelloError]] = {
    cls.kind: cls
    for cls in (
        TrelloAuthenticationError,
        TrelloAuthorizationError,
        TrelloNotFoundError,
        TrelloRateLimitError,
        TrelloValidationError,
        TrelloNetworkError,
        TrelloTimeoutError,
        TrelloServerError,
        TrelloUnknownError,
    )
}


# --- Helpers --------------------------------------------------------------- #


def redact(text: str, secrets: Iterable[str] = ()) -> str:
    """Replace every occurrence of each non-empty secret with a placeholder."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header value.
    Accepts delta-seconds ("5", "1.5") or an HTTP date. Returns finite seconds >= 0,
    or None when the value is missing or unparseable.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if _DELTA_SECONDS_RE.match(value):
        seconds = float(value)
        return seconds if math.isfinite(seconds) else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _upstream_detail(body: Any, secrets: Iterable[str] = ()) -> Optional[str]:
    # Trello answers with either JSON ({"message": ..., "error": ...}) or plain text
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        return redact(str(detail), secrets) if detail else None
    if isinstance(body, str):
        # Redact before truncating
        text = redact(body.strip(), secrets)
        return text[:DETAIL_MAX_CHARS] if text else None
    return None


def _with_detail(summary: str, detail: Optional[str]) -> str:
    if detail and detail.casefold() != summary.casefold():
        return f"{summary}: {detail}"
    return summary


def _for_operation(message: str, operation: Optional[str]) -> str:
    return f"{message} ({operation})" if operation else message


def _format_seconds(seconds: float) -> str:
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:.1f}s"


# --- Classification -------------------------------------------------------- #


def kind_for_status(status_code: int) -> ErrorKind:
    """Map a non-2xx HTTP status to an error kind. 429 is checked before other 4xx."""
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    if status_code == 401:
        return ErrorKind.AUTHENTICATION
    if status_code == 403:
        return ErrorKind.AUTHORIZATION
    if status_code in (404, 410):
        return ErrorKind.NOT_FOUND
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code in (400, 409, 422):
        return ErrorKind.VALIDATION
    return ErrorKind.UNKNOWN


def classify_response(
    status_code: int,
    *,
    body: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    operation: Optional[str] = None,
    secrets: Iterable[str] = (),
    retry_after: Optional[float] = None,
) -> TrelloError:
    """
    Translate a non-2xx response into a classified error.
    - body: parsed JSON dict, raw text, or None
    - retry_after: overrides the Retry-After header when the caller already
      knows the wait (e.g. the backoff estimate)
    """
    kind = kind_for_status(status_code)
    detail = _upstream_detail(body, secrets)

    if kind is ErrorKind.RATE_LIMITED:
        if retry_after is None and headers is not None:
            retry_after = parse_retry_after(headers.get("retry-after"))
        summary = "rate limit exceeded"
        if retry_after is not None:
            summary += f", retry after {_format_seconds(retry_after)}"
        else:
            summary += ", retry later"
        # The upstream text for 429 is noise next to the wait hint
        detail = None
    elif kind is ErrorKind.AUTHENTICATION:
        summary = "authentication failed: check the Trello API key and token"
    elif kind is ErrorKind.AUTHORIZATION:
        summary = "permission denied"
    elif kind is ErrorKind.NOT_FOUND:
        summary = "resource not found"
    elif kind is ErrorKind.VALIDATION:
        summary = "invalid request"
    elif kind is ErrorKind.TIMEOUT:
        summary = "request timed out"
    elif kind is ErrorKind.SERVER_ERROR:
        summary = f"Trello server error ({status_code})"
    else:
        summary = f"unexpected response ({status_code})"

    message = _for_operation(_with_detail(summary, detail), operation)
    cls = ERROR_CLASSES[kind]
    return cls(
        redact(message, secrets),
        status_code=status_code,
        retry_after=retry_after if kind is ErrorKind.RATE_LIMITED else None,
        operation=operation,
    )


def classify_exception(
    exc: BaseException,
    *,
    operation: Optional[str] = None,
    secrets: Iterable[str] = (),
) -> TrelloError:
    """Translate a transport-level exception into a classified error."""
    if isinstance(exc, TrelloError):
        return exc

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        cls: Type[TrelloError] = TrelloTimeoutError
        summary = "request timed out"
    elif isinstance(exc, httpx.TransportError):
        cls = TrelloNetworkError
        summary = "network error: could not reach Trello"
    elif isinstance(exc, httpx.HTTPError):
        cls = TrelloUnknownError
        summary = "HTTP client error"
    else:
        cls = TrelloUnknownError
        summary = "unexpected error"

    reason = type(exc).__name__
    text = redact(str(exc).strip(), secrets)
    if text:
        reason = f"{reason}: {text[:DETAIL_MAX_CHARS]}"

    message = _for_operation(f"{summary} ({reason})", operation)
    return cls(redact(message, secrets), operation=operation)


__all__ = [
    "ErrorKind",
    "RETRYABLE_KINDS",
    "TrelloError",
    "TrelloAuthenticationError",
    "TrelloAuthorizationError",
    "TrelloNotFoundError",
    "TrelloRateLimitError",
    "TrelloValidationError",
    "TrelloNetworkError",
    "TrelloTimeoutError",
    "TrelloServerError",
    "TrelloUnknownError",
    "ERROR_CLASSES",
    "classify_response",
    "classify_exception",
    "kind_for_status",
    "parse_retry_after",
    "redact",
]
