import asyncio
import time
from dataclasses import dataclass
from typing import Sequence

import httpx

from .backends import Backend
from .logging import get_logger

logger = get_logger(__name__)

VERSION_HEADER = "X-Influxdb-Version"


@dataclass(frozen=True)
class PingStats:
    url: str
    online: bool
    rtt: float | None = None  # seconds
    version: str | None = None
    status_code: int | None = None


async def ping_backend(
    backend: Backend,
    timeout: float,
    path: str = "/ping",
    version_header: str = VERSION_HEADER,
) -> PingStats:
    """
    Probe a single backend. Never raises for network problems or bad
    statuses; those are reported as ``online=False``. Health state of the
    backend is left alone.
    """
    start = time.perf_counter()
    try:
        r = await asyncio.wait_for(
            backend.client.get(path, timeout=timeout), timeout
        )
    except asyncio.TimeoutError:
        logger.debug("ping_failed", url=backend.url, error="timeout")
        return PingStats(url=backend.url, online=False)
    except httpx.HTTPError as e:
        logger.debug("ping_failed", url=backend.url, error=repr(e))
        return PingStats(url=backend.url, online=False)

    rtt = time.perf_counter() - start
    if r.status_code >= 300:
        logger.debug("ping_failed", url=backend.url, status_code=r.status_code)
        return PingStats(url=backend.url, online=False, status_code=r.status_code)

    return PingStats(
        url=backend.url,
        online=True,
        rtt=rtt,
        version=r.headers.get(version_header),
        status_code=r.status_code,
    )


async def ping_backends(
    backends: Sequence[Backend],
    timeout: float,
    path: str = "/ping",
    version_header: str = VERSION_HEADER,
) -> list[PingStats]:
    """Probe every backend concurrently; results keep registration order.

    A probe that raises (a bad client option, say) is reported offline instead of failing the whole sweep.
    """
    results = await asyncio.gather(
        *(ping_backend(b, timeout, path, version_header) for b in backends),
        return_exceptions=True,
    )
    stats = []
    for backend, result in zip(backends, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("ping_failed", url=backend.url, error=repr(result))
            result = PingStats(url=backend.url, online=False)
        stats.append(result)
    return stats
