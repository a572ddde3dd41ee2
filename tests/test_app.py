import pytest

import app as app_module
from exceptions import StorageError


@pytest.fixture()
def no_cleanup(monkeypatch, store):
    monkeypatch.setattr(app_module, "redis_backend", store)
    monkeypatch.setattr(app_module, "CLEANUP_INTERVAL", 0)
    return store


async def test_lifespan_pings_store(no_cleanup, monkeypatch):
    pings = []
    real_ping = no_cleanup.ping

    async def counting_ping():
        pings.append(1)
        return await real_ping()

    monkeypatch.setattr(no_cleanup, "ping", counting_ping)
    async with app_module.lifespan(app_module.app):
        pass

    assert pings == [1]


async def test_lifespan_fails_when_store_unreachable(no_cleanup, monkeypatch):
    async def broken_ping():
        raise StorageError("down")

    monkeypatch.setattr(no_cleanup, "ping", broken_ping)
    with pytest.raises(StorageError):
        async with app_module.lifespan(app_module.app):
            pass
