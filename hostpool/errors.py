"""Exceptions raised by the pool."""

from __future__ import annotations

import httpx


class PoolError(Exception):
    """Base class for every error the pool raises."""


class ServiceUnavailableError(PoolError):
    """Every backend tried for a request failed with a retryable error.

    The last underlying error is chained as ``__cause__``.
    """


class NoHostAvailableError(ServiceUnavailableError):
    """No backend was eligible when the request started; nothing was sent."""

    def __init__(self, message: str = "No host available"):
        super().__init__(message)


class RequestError(PoolError):
    """The server rejected the request (3xx/4xx). Not retried."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.status_code = response.status_code
        self.body = response.text
        self.request = response.request
        super().__init__(
            f"A {response.status_code} {response.reason_phrase} error occurred: {self.body}"
        )


class DecodeError(PoolError, ValueError):
    """A successful response body could not be decoded as requested."""

    def __init__(self, message: str, body: str):
        self.body = body
        super().__init__(message)
