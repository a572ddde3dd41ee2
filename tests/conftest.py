import fakeredis
import httpx
import pytest

import utils
from app import app
from backend import RedisBackend
from routers.signalling import get_store

START = 1_700_000_000


class Clock:
    """Stands in for utils.now so tests can move time."""

    def __init__(self, t: int):
        self.t = t

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int):
        self.t += seconds


@pytest.fixture()
def clock(monkeypatch):
    c = Clock(START)
    monkeypatch.setattr(utils, "now", c)
    return c


@pytest.fixture()
def store():
    return RedisBackend(fakeredis.FakeAsyncRedis(decode_responses=True))


@pytest.fixture()
async def client(store, clock):
    app.dependency_overrides[get_store] = lambda: store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://broker") as c:
        yield c
    app.dependency_overrides.clear()
