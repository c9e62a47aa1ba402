from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

import httpx

from .backends import Backend
from .backoff import BackoffStrategy, ExponentialBackoff
from .clock import Clock, SystemClock
from .errors import DecodeError, NoHostAvailableError, RequestError, ServiceUnavailableError
from .logging import get_logger
from .ping import VERSION_HEADER, PingStats, ping_backends

if TYPE_CHECKING:
    from .config import PoolSettings

logger = get_logger(__name__)


class Decode(Enum):
    DISCARD = "discard"
    TEXT = "text"
    JSON = "json"


class Outcome(Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


def classify(status_code: int) -> Outcome:
    if status_code >= 500:
        return Outcome.RETRYABLE
    if status_code >= 300:
        return Outcome.TERMINAL
    return Outcome.SUCCESS


@dataclass(frozen=True)
class RequestOptions:
    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: str | bytes | None = None
    headers: Mapping[str, str] | None = None
    timeout: float | None = None  # seconds, falls back to Pool.timeout


class Pool:
    """
    Round-robin pool of interchangeable HTTP backends.

    Failed backends (network errors, timeouts, 5xx) are disabled for a backoff
    window and the request is retried on the next eligible backend. 3xx/4xx
    responses are the caller's problem: raised as RequestError, no retry.
    """

    def __init__(
        self,
        backoff: BackoffStrategy | None = None,
        timeout: float = 10.0,
        clock: Clock | None = None,
    ):
        self.backends: list[Backend] = []
        self._backoff = backoff if backoff is not None else ExponentialBackoff()
        self._timeout = timeout
        self._clock = clock if clock is not None else SystemClock()
        self._rr_index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: PoolSettings, clock: Clock | None = None) -> Pool:
        pool = cls(backoff=settings.backoff.build(), timeout=settings.timeout, clock=clock)
        for host in settings.hosts:
            pool.add_host(host.url, host.options)
        return pool

    @property
    def timeout(self) -> float:
        return self._timeout

    @timeout.setter
    def timeout(self, value: float) -> None:
        self._timeout = value

    @property
    def hosts(self) -> list[Backend]:
        return list(self.backends)

    def add_host(self, url: str, options: dict[str, Any] | None = None) -> Backend:
        """Register a backend. It starts eligible, with a fresh backoff."""
        backend = Backend(url=url, backoff=self._backoff.reset(), options=dict(options or {}))
        self.backends.append(backend)
        logger.info("backend_added", url=url)
        return backend

    def hosts_available(self) -> list[Backend]:
        now = self._clock.monotonic()
        return [b for b in self.backends if b.is_available(now)]

    def hosts_disabled(self) -> list[Backend]:
        now = self._clock.monotonic()
        return [b for b in self.backends if not b.is_available(now)]

    def host_is_available(self) -> bool:
        return len(self.hosts_available()) > 0

    def pick_backend(self, candidates: list[Backend]) -> Backend:
        with self._lock:
            self._rr_index %= len(candidates)
            b = candidates[self._rr_index]
            self._rr_index = (self._rr_index + 1) % len(candidates)
        return b

    async def request(self, options: RequestOptions, decode: Decode = Decode.TEXT) -> Any:
        """
        Send ``options`` to an eligible backend and decode the response.

        Each backend eligible when the call starts is tried at most once.
        """
        eligible = self.hosts_available()
        if not eligible:
            logger.warning("no_host_available", method=options.method, path=options.path)
            raise NoHostAvailableError()

        tried: set[Backend] = set()
        last_error: Exception | None = None
        for _ in range(len(eligible)):
            now = self._clock.monotonic()
            candidates = [b for b in eligible if b not in tried and b.is_available(now)]
            if not candidates:
                break
            backend = self.pick_backend(candidates)
            tried.add(backend)

            try:
                response = await self._send(backend, options)
            except (httpx.TransportError, asyncio.TimeoutError) as e:
                last_error = e
                self._record_failure(backend, e)
                continue
            except httpx.DecodingError as e:
                # the backend answered but its Content-Encoding is broken
                raise DecodeError(f"Undecodable body from {backend.url}: {e}", "") from e

            outcome = classify(response.status_code)
            if outcome is Outcome.RETRYABLE:
                last_error = httpx.HTTPStatusError(
                    f"Server error '{response.status_code} {response.reason_phrase}' for url '{response.url}'",
                    request=response.request,
                    response=response,
                )
                self._record_failure(backend, last_error)
                continue
            if outcome is Outcome.TERMINAL:
                logger.debug(
                    "request_terminal",
                    url=backend.url,
                    path=options.path,
                    status_code=response.status_code,
                )
                raise RequestError(response)

            self._record_success(backend)
            return self._decode(backend, response, decode)

        if last_error is None:
            raise NoHostAvailableError()
        logger.error(
            "service_unavailable",
            method=options.method,
            path=options.path,
            attempts=len(tried),
            error=repr(last_error),
        )
        raise ServiceUnavailableError(
            f"All {len(tried)} host(s) failed, last error: {last_error!r}"
        ) from last_error

    async def discard(self, options: RequestOptions) -> None:
        await self.request(options, Decode.DISCARD)

    async def text(self, options: RequestOptions) -> str:
        return await self.request(options, Decode.TEXT)

    async def json(self, options: RequestOptions) -> Any:
        return await self.request(options, Decode.JSON)

    async def ping(
        self,
        timeout: float,
        path: str = "/ping",
        version_header: str = VERSION_HEADER,
    ) -> list[PingStats]:
        return await ping_backends(self.hosts, timeout, path, version_header)

    async def aclose(self) -> None:
        for b in self.backends:
            await b.aclose()

    async def __aenter__(self) -> Pool:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(self, backend: Backend, options: RequestOptions) -> httpx.Response:
        timeout = options.timeout if options.timeout is not None else self._timeout
        # httpx timeouts are per phase, wait_for bounds the whole exchange
        return await asyncio.wait_for(
            backend.client.request(
                options.method,
                options.path,
                params=dict(options.query),
                content=options.body,
                headers=options.headers,
                timeout=timeout,
            ),
            timeout,
        )

    def _decode(self, backend: Backend, response: httpx.Response, decode: Decode) -> Any:
        if decode is Decode.DISCARD:
            return None
        if decode is Decode.TEXT:
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {backend.url}: {e}", response.text) from e

    def _record_failure(self, backend: Backend, error: Exception) -> None:
        try:
            delay = backend.record_failure(self._clock.monotonic())
        except Exception:
            logger.exception("health_update_failed", url=backend.url)
            return
        logger.warning(
            "backend_failed",
            url=backend.url,
            error=repr(error),
            delay=delay,
            attempt=getattr(backend.backoff, "attempt", None),
        )

    def _record_success(self, backend: Backend) -> None:
        try:
            recovered = backend.record_success()
        except Exception:
            logger.exception("health_update_failed", url=backend.url)
            return
        if recovered:
            logger.info("backend_recovered", url=backend.url)
