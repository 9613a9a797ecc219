# tests/conftest.py

from __future__ import annotations

import logging

import fakeredis
import pytest
from loguru import logger
from redis import ConnectionPool, Redis
from redis.backoff import NoBackoff
from redis.retry import Retry

from oplock.core.coordinator import LockCoordinator
from oplock.store.client import RedisPoolClient
from oplock.store.redis_store import RedisLockStore

NAMESPACE = "test-system:"


@pytest.fixture
def server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture
def pool_client(server) -> RedisPoolClient:
    pool = ConnectionPool(
        connection_class=fakeredis.FakeRedisConnection,
        server=server,
        decode_responses=True,
    )
    client = RedisPoolClient(pool=pool)
    yield client
    client.close()


@pytest.fixture
def unreachable_client(server) -> RedisPoolClient:
    """Pool on the fake server with retries off, so a downed server fails fast."""
    pool = ConnectionPool(
        connection_class=fakeredis.FakeRedisConnection,
        server=server,
        decode_responses=True,
        retry=Retry(NoBackoff(), 0),
    )
    return RedisPoolClient(pool=pool)


@pytest.fixture
def redis_view(server) -> Redis:
    """Direct client on the same fake server, for asserting on raw keys."""
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def store(pool_client) -> RedisLockStore:
    return RedisLockStore(pool_client)


@pytest.fixture
def coordinator(store) -> LockCoordinator:
    return LockCoordinator(store=store, namespace=NAMESPACE)


@pytest.fixture
def caplog(caplog):
    """Route loguru records into pytest's caplog."""
    handler_id = logger.add(caplog.handler, format="{message}", level=0)
    caplog.set_level(logging.DEBUG)
    yield caplog
    logger.remove(handler_id)
