"""Error hierarchy for the capability router."""

from __future__ import annotations

from typing import Any


class RouterError(Exception):
    """Base error for everything raised by capability_router."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigurationError(RouterError):
    """The upstream credential is missing.  Raised before any network call."""


class UpstreamUnavailableError(RouterError):
    """The model catalog could not be fetched."""


class RequestError(RouterError):
    """A chat-completion call failed."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.body = body


class RetryableRequestError(RequestError):
    """HTTP 429, any 5xx, or a timeout / dropped connection."""

    retryable = True


class TerminalRequestError(RequestError):
    """Any other 4xx or a malformed response.  Never retried."""


class ResponseParseError(RouterError):
    """Model output did not have the shape the caller expected."""

    def __init__(self, message: str, *, content: str = "", cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.content = content


def error_for_status(status_code: int, body: Any = None) -> RequestError:
    """Map an upstream HTTP status to the matching RequestError subclass."""
    message = f"Upstream returned HTTP {status_code}"
    if isinstance(body, dict):
        err = body.get("error")
        detail = err.get("message") if isinstance(err, dict) else err
        if detail:
            message = f"{message}: {detail}"
    if status_code == 429 or 500 <= status_code < 600:
        return RetryableRequestError(message, status_code=status_code, body=body)
    return TerminalRequestError(message, status_code=status_code, body=body)
