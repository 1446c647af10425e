"""Tests for the Redis backed cache service with a mocked client."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import redis.asyncio as redis

from hackex.core.cache import CacheKeys, CacheService, CacheTTL
from hackex.core.config import settings


def _service_with_client():
    service = CacheService()
    client = MagicMock()
    service._client = client
    service._pool = MagicMock()
    return service, client


def _pipeline(client):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[True, 1, True])
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=pipe)
    context.__aexit__ = AsyncMock(return_value=False)
    client.pipeline.return_value = context
    return pipe


class TestCacheKeys:
    def test_view_and_index_keys(self):
        assert CacheKeys.scan_view("tok") == "scan:view:tok"
        assert CacheKeys.scan_tokens("id") == "scan:tokens:id"

    def test_view_ttl_follows_settings(self):
        assert CacheTTL.SCAN_VIEW == settings.TOKEN_TTL_HOURS * 3600
        assert CacheTTL.SCAN_VIEW > 0


class TestCacheService:
    def test_get_decodes_json(self):
        service, client = _service_with_client()
        client.get = AsyncMock(return_value=json.dumps({"scan_id": "s"}))
        assert asyncio.run(service.get("k")) == {"scan_id": "s"}
        client.get.assert_called_once_with(f"{settings.CACHE_PREFIX}k")

    def test_set_uses_setex_with_default_ttl(self):
        service, client = _service_with_client()
        client.setex = AsyncMock()
        assert asyncio.run(service.set("k", {"a": 1}))
        key, ttl, _ = client.setex.call_args.args
        assert key == f"{settings.CACHE_PREFIX}k"
        assert ttl == settings.TOKEN_TTL_HOURS * 3600

    def test_set_only_if_exists_refreshes_ttl(self):
        service, client = _service_with_client()
        client.set = AsyncMock(return_value=True)
        assert asyncio.run(service.set("k", {"a": 1}, ttl_seconds=7200, only_if_exists=True)) is True
        assert client.set.call_args.kwargs == {"xx": True, "ex": 7200}

    def test_set_only_if_exists_on_expired_key(self):
        service, client = _service_with_client()
        client.set = AsyncMock(return_value=None)
        assert asyncio.run(service.set("k", {"a": 1}, only_if_exists=True)) is False
        assert client.set.call_args.kwargs["xx"] is True

    def test_refresh_ttl(self):
        service, client = _service_with_client()
        client.expire = AsyncMock(return_value=1)
        assert asyncio.run(service.refresh_ttl("index", 30))
        client.expire.assert_called_once_with(f"{settings.CACHE_PREFIX}index", 30)

    def test_refresh_ttl_of_missing_key(self):
        service, client = _service_with_client()
        client.expire = AsyncMock(return_value=0)
        assert asyncio.run(service.refresh_ttl("index", 30)) is False

    def test_set_and_index_runs_in_transaction(self):
        service, client = _service_with_client()
        pipe = _pipeline(client)
        assert asyncio.run(service.set_and_index("view", {"a": 1}, "index", "tok", ttl_seconds=30))
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.setex.assert_called_once()
        pipe.sadd.assert_called_once_with(f"{settings.CACHE_PREFIX}index", "tok")
        pipe.expire.assert_called_once_with(f"{settings.CACHE_PREFIX}index", 30)

    def test_remove_from_index(self):
        service, client = _service_with_client()
        pipe = _pipeline(client)
        assert asyncio.run(service.remove_from_index("index", ["a", "b"]))
        pipe.srem.assert_called_once_with(f"{settings.CACHE_PREFIX}index", "a", "b")

    def test_connection_error_degrades(self):
        service, client = _service_with_client()
        client.get = AsyncMock(side_effect=redis.ConnectionError("down"))
        assert asyncio.run(service.get("k")) is None
        assert asyncio.run(service.set("k", 1)) is False
        assert asyncio.run(service.members("k")) == set()
