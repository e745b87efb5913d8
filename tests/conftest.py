# tests/conftest.py
import json
from typing import Callable, Dict, List, Tuple

import httpx
import pytest
import pytest_asyncio

from doceria.alarm import AlarmController
from doceria.gateway import RemoteDataGateway
from doceria.models import COLLECTIONS
from doceria.sync import PollingSynchronizer

API_URL = "http://api.test/api"


class FakeBackend:
    """API REST em memória servida por httpx.MockTransport."""

    def __init__(self):
        self.collections: Dict[str, List[dict]] = {name: [] for name in COLLECTIONS + ("users",)}
        self.overrides: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []
        self._next_id = 100

    def respond(self, method: str, path: str, factory: Callable[[httpx.Request], httpx.Response]) -> None:
        self.overrides[(method, path)] = factory

    def fail(self, method: str, path: str, status: int = 500) -> None:
        self.respond(method, path, lambda request: httpx.Response(status, json={"error": "falha"}))

    def clear(self, method: str, path: str) -> None:
        self.overrides.pop((method, path), None)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and self._path(r) == path)

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api/").strip("/")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        override = self.overrides.get((request.method, path))
        if override is not None:
            return override(request)

        parts = path.split("/")
        records = self.collections.get(parts[0])
        if records is None:
            return httpx.Response(404, json={"error": "not found"})

        if request.method == "GET" and len(parts) == 1:
            return httpx.Response(200, json=records)
        if request.method == "POST" and len(parts) == 1:
            record = json.loads(request.content)
            self._next_id += 1
            record["id"] = str(self._next_id)
            records.append(record)
            return httpx.Response(201, json=record)

        matches = [r for r in records if str(r.get("id")) == parts[1]] if len(parts) > 1 else []
        if not matches:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "PUT":
            matches[0].update(json.loads(request.content))
            return httpx.Response(200, json=matches[0])
        if request.method == "DELETE":
            records.remove(matches[0])
            return httpx.Response(204)
        return httpx.Response(405)


class FakeTone:
    def __init__(self):
        self.opened = False
        self.closed = False
        self.pulses: List[int] = []

    def open(self):
        self.opened = True

    def pulse(self, duration_ms):
        self.pulses.append(duration_ms)

    def close(self):
        self.closed = True


def order(id, status="Pendente", origem="Manual", total=10.0, created_at=None):
    record = {"id": str(id), "clienteId": "1", "itens": [], "status": status, "origem": origem, "total": total}
    if created_at is not None:
        record["createdAt"] = created_at
    return record


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def gateway(backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    yield RemoteDataGateway(API_URL, client=client)
    await client.aclose()


@pytest.fixture
def sync(gateway):
    return PollingSynchronizer(gateway, interval=0.01)


@pytest.fixture
def tones():
    return []


@pytest.fixture
def alarm(tones):
    def factory():
        tone = FakeTone()
        tones.append(tone)
        return tone
    return AlarmController(factory, period=0.01, pulse_ms=50)
