"""CacheService against a mocked redis client."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from academy.domain.exceptions import CacheUnavailableException
from academy.infrastructure.cache.redis_cache import CacheService


class FakePipeline:
    def __init__(self, results):
        self.commands = []
        self._results = results

    def __getattr__(self, name):
        def command(*args):
            self.commands.append((name, args))

        return command

    async def execute(self):
        return self._results(self.commands)


@pytest.fixture
def client():
    c = AsyncMock()
    c.pipelines = []

    @asynccontextmanager
    async def pipeline(transaction=True):
        pipe = FakePipeline(lambda commands: [len(args) for _, args in commands])
        c.pipelines.append(pipe)
        yield pipe

    c.pipeline = MagicMock(side_effect=pipeline)
    return c


@pytest.fixture
def service(client, settings):
    return CacheService(redis_client=client, settings=settings)


async def test_injected_client_is_available(service):
    assert service.is_available()


async def test_get_decodes_json(service, client):
    client.get = AsyncMock(return_value=json.dumps({"id": "y1"}))
    assert await service.get("k") == {"id": "y1"}


async def test_get_miss_and_undecodable(service, client):
    client.get = AsyncMock(side_effect=[None, "{not json"])
    assert await service.get("k") is None
    assert await service.get("k") is None


async def test_set_uses_setex(service, client):
    assert await service.set("k", [1, 2], ttl=60) is True
    client.setex.assert_awaited_once_with("k", 60, "[1, 2]")


async def test_other_redis_errors_are_logged_not_raised(service, client):
    client.setex = AsyncMock(side_effect=redis.ResponseError("WRONGTYPE"))
    assert await service.set("k", 1) is False


async def test_connection_loss_without_reconnect_raises_unavailable(service, client, monkeypatch):
    client.get = AsyncMock(side_effect=redis.ConnectionError("down"))
    monkeypatch.setattr(service, "_reconnect", AsyncMock(return_value=False))
    with pytest.raises(CacheUnavailableException) as exc_info:
        await service.get("k")
    assert exc_info.value.details == {"operation": "get", "key": "k"}


async def test_connection_loss_retries_once_after_reconnect(service, client, monkeypatch):
    client.get = AsyncMock(side_effect=[redis.TimeoutError("slow"), json.dumps(3)])
    monkeypatch.setattr(service, "_reconnect", AsyncMock(return_value=True))
    assert await service.get("k") == 3
    assert client.get.await_count == 2


async def test_disconnected_service_returns_defaults():
    svc = CacheService(redis_client=None, settings=MagicMock(cache_scan_batch_size=10))
    assert not svc.is_available()
    assert await svc.get("k") is None
    assert await svc.set("k", 1) is False
    assert await svc.delete_many(["k"]) == 0
    assert await svc.scan_keys("t:") == []


async def test_delete_many_chunks_unlink(service, client, monkeypatch):
    monkeypatch.setattr(service.settings, "cache_scan_batch_size", 2)
    deleted = await service.delete_many(["a", "b", "c"])
    assert deleted == 3
    assert [pipe.commands for pipe in client.pipelines] == [
        [("unlink", ("a", "b"))],
        [("unlink", ("c",))],
    ]


async def test_scan_keys_matches_prefix(service, client):
    seen = {}

    async def scan_iter(match, count):
        seen["match"] = match
        for key in ("t:note:test:t1:y", "t:note:test:t1:y=y1"):
            yield key

    client.scan_iter = MagicMock(side_effect=scan_iter)
    assert await service.scan_keys("t:note:test:t1:") == [
        "t:note:test:t1:y",
        "t:note:test:t1:y=y1",
    ]
    assert seen["match"] == "t:note:test:t1:*"


async def test_index_add_and_members(service, client):
    await service.add_to_index("idx:t:", "t:a:b:c:y", 120)
    assert client.pipelines[0].commands == [
        ("sadd", ("idx:t:", "t:a:b:c:y")),
        ("expire", ("idx:t:", 120)),
    ]
    client.smembers = AsyncMock(return_value={"b", "a"})
    assert await service.index_members("idx:t:") == ["a", "b"]


async def test_disconnect_closes_client(service, client):
    await service.disconnect()
    client.aclose.assert_awaited_once()
    assert not service.is_available()
