"""Shared fixtures.

The fake database servers are small FastAPI apps served in-process through
``httpx.ASGITransport``; each pool backend gets the transport through its
client options, exactly like a real deployment would pass ``verify`` or
``cert``.
"""

import asyncio
from collections import defaultdict

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request, Response

from hostpool import ExponentialBackoff, MockClock, Pool

VERSION = "v1.0.0"


def create_app(ping_latency: float = 0.0) -> FastAPI:
    """Fake database server with one route per behaviour the pool cares about."""
    app = FastAPI()
    alt_fail_counter: dict = defaultdict(int)

    @app.get("/ping")
    async def ping():
        if ping_latency:
            await asyncio.sleep(ping_latency)
        return Response(status_code=204, headers={"X-Influxdb-Version": VERSION})

    @app.get("/pool/json")
    def pool_json():
        return {"ok": True}

    @app.get("/pool/badjson")
    def pool_badjson():
        return Response(content='{"not really json', media_type="application/json")

    @app.api_route("/pool/echo", methods=["GET", "POST"])
    async def pool_echo(request: Request):
        body = await request.body()
        return {
            "query": request.url.query,
            "body": body.decode("utf-8"),
            "method": request.method,
            "content_length": request.headers.get("content-length"),
        }

    @app.get("/pool/204")
    def pool_204():
        return Response(status_code=204)

    @app.get("/pool/400")
    def pool_400():
        return Response(status_code=400, content="bad request body")

    @app.get("/pool/502")
    def pool_502():
        return Response(status_code=502)

    @app.get("/pool/slow")
    async def pool_slow():
        await asyncio.sleep(1.0)
        return {"ok": True}

    @app.get("/pool/altFail-{sid}/json")
    def alt_fail_json(sid: str):
        # first call for a sid fails, the next one succeeds, and so on
        alt_fail_counter[sid] += 1
        if alt_fail_counter[sid] % 2 == 1:
            return Response(status_code=500)
        return {"ok": True}

    @app.get("/pool/altFail-{sid}/ping")
    def alt_fail_ping(sid: str):
        alt_fail_counter[sid] += 1
        if alt_fail_counter[sid] % 2 == 1:
            return Response(status_code=500)
        return Response(status_code=204, headers={"X-Influxdb-Version": VERSION})

    return app


def create_broken_app(status_code: int = 502) -> FastAPI:
    """Server answering every request with the same error status."""
    app = FastAPI()

    @app.api_route("/{full_path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def fail_all(full_path: str):
        return Response(status_code=status_code, content=f"{full_path} unavailable")

    return app


def asgi_options(app: FastAPI) -> dict:
    return {"transport": httpx.ASGITransport(app=app)}


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=1000.0)


@pytest.fixture
def backoff() -> ExponentialBackoff:
    # powers of two keep simulated timestamps exact
    return ExponentialBackoff(initial=0.25, max=10.0, jitter=0)


@pytest.fixture
def app() -> FastAPI:
    return create_app()


@pytest_asyncio.fixture
async def pool(app, clock, backoff):
    """Two backends pointing at the same fake server."""
    p = Pool(backoff=backoff, clock=clock)
    for i in range(2):
        p.add_host(f"http://influx{i}:8086", asgi_options(app))
    yield p
    await p.aclose()


@pytest_asyncio.fixture
async def make_pool(clock, backoff):
    """Factory for pools over arbitrary apps; closes everything it created."""
    created = []

    def _make(*apps: FastAPI) -> Pool:
        p = Pool(backoff=backoff, clock=clock)
        for i, a in enumerate(apps):
            p.add_host(f"http://influx{i}:8086", asgi_options(a))
        created.append(p)
        return p

    yield _make
    for p in created:
        await p.aclose()
