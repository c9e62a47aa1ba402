import threading
from dataclasses import dataclass, field
from typing import Any

import httpx

from .backoff import BackoffStrategy


@dataclass(eq=False)
class Backend:
    """One HTTP endpoint of the cluster plus its health state.

    ``unavailable_until`` is a monotonic timestamp; ``0.0`` means the backend
    has never failed or has recovered. Health fields are only changed while
    holding ``lock``.
    """

    url: str  # http://influx1:8086
    backoff: BackoffStrategy
    options: dict[str, Any] = field(default_factory=dict)
    unavailable_until: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    def is_available(self, now: float) -> bool:
        with self.lock:
            return self.unavailable_until == 0.0 or now >= self.unavailable_until

    def record_failure(self, now: float) -> float:
        """Disable the backend for the current backoff delay and return it."""
        with self.lock:
            delay = self.backoff.delay()
            self.unavailable_until = now + delay
            self.backoff = self.backoff.next()
            return delay

    def record_success(self) -> bool:
        """Restore the backend; returns True if it had been failing."""
        with self.lock:
            recovered = self.unavailable_until != 0.0
            self.unavailable_until = 0.0
            self.backoff = self.backoff.reset()
            return recovered

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.url, **self.options)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
