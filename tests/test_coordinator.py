# tests/test_coordinator.py

from __future__ import annotations

import threading
import uuid
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from oplock.config import LockSettings
from oplock.core.coordinator import LockCoordinator
from oplock.errors import LockContentionError, LockSpecError, LockStoreError, StoreUnavailableError
from oplock.store.redis_store import RedisLockStore

from conftest import NAMESPACE


def test_acquire_writes_namespaced_key(coordinator, redis_view):
    grant = coordinator.acquire("order:X1", 60)

    assert grant.granted
    assert not grant.degraded
    assert redis_view.get(f"{NAMESPACE}order:X1") == grant.token
    uuid.UUID(grant.token)


def test_second_acquire_is_denied_even_from_same_thread(coordinator):
    first = coordinator.acquire("order:X1", 60)
    second = coordinator.acquire("order:X1", 60)

    assert first.granted
    assert not second.granted
    assert first.token != second.token


def test_release_deletes_key(coordinator, redis_view):
    grant = coordinator.acquire("order:X1", 60)

    coordinator.release("order:X1", grant.token)

    assert redis_view.exists(f"{NAMESPACE}order:X1") == 0
    assert coordinator.acquire("order:X1", 60).granted


def test_stale_release_does_not_delete_new_owner(coordinator, redis_view):
    first = coordinator.acquire("order:X1", 60)
    # first owner's lock expires, somebody else takes it
    redis_view.delete(f"{NAMESPACE}order:X1")
    second = coordinator.acquire("order:X1", 60)
    assert second.granted

    coordinator.release("order:X1", first.token)

    assert redis_view.get(f"{NAMESPACE}order:X1") == second.token


def test_release_of_expired_lock_is_logged(coordinator, caplog):
    coordinator.release("order:X1", "gone")

    assert "already expired or taken over" in caplog.text


def test_namespaces_isolate_systems(store):
    a = LockCoordinator(store=store, namespace="sys-a:")
    b = LockCoordinator(store=store, namespace="sys-b:")

    assert a.acquire("k", 60).granted
    assert b.acquire("k", 60).granted


def test_concurrent_acquire_grants_at_most_one(coordinator):
    workers = 8
    barrier = threading.Barrier(workers)
    results = []
    results_lock = threading.Lock()

    def attempt():
        barrier.wait()
        grant = coordinator.acquire("contended", 60)
        with results_lock:
            results.append(grant.granted)

    threads = [threading.Thread(target=attempt) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(results) == workers
    assert results.count(True) == 1


def test_acquire_fails_open_without_connection(caplog):
    store = MagicMock()
    store.try_set.side_effect = StoreUnavailableError("no connection")
    coordinator = LockCoordinator(store=store)

    grant = coordinator.acquire("k", 60)

    assert grant.granted
    assert grant.degraded
    uuid.UUID(grant.token)
    assert "granted by default" in caplog.text


@pytest.mark.parametrize("error", [LockStoreError("boom"), RedisConnectionError("reset"), OSError("broken pipe")])
def test_acquire_fails_open_on_backend_error(error):
    store = MagicMock()
    store.try_set.side_effect = error
    coordinator = LockCoordinator(store=store)

    grant = coordinator.acquire("k", 60)

    assert grant.granted
    assert grant.degraded


@pytest.mark.parametrize("error", [StoreUnavailableError("no connection"), LockStoreError("boom"), RuntimeError("x")])
def test_release_never_raises(error, caplog):
    store = MagicMock()
    store.compare_and_delete.side_effect = error
    coordinator = LockCoordinator(store=store)

    coordinator.release("k", "token")

    assert "lockKey=k" in caplog.text


def test_unreachable_redis_end_to_end(server, unreachable_client):
    server.connected = False
    coordinator = LockCoordinator(store=RedisLockStore(unreachable_client), namespace=NAMESPACE)

    grant = coordinator.acquire("k", 60)
    coordinator.release("k", grant.token)

    assert grant.granted
    assert grant.degraded


def test_store_key_prepends_namespace():
    coordinator = LockCoordinator(store=MagicMock(), namespace="billing:")

    assert coordinator.store_key("p:1") == "billing:p:1"


def test_hold_releases_after_block(coordinator, redis_view):
    with coordinator.hold("k", 60, "pay") as grant:
        assert redis_view.get(f"{NAMESPACE}k") == grant.token

    assert redis_view.exists(f"{NAMESPACE}k") == 0


def test_hold_releases_when_block_raises(coordinator, redis_view):
    with pytest.raises(KeyError):
        with coordinator.hold("k", 60, "pay"):
            raise KeyError("business failure")

    assert redis_view.exists(f"{NAMESPACE}k") == 0


def test_hold_raises_contention(coordinator):
    coordinator.acquire("k", 60)

    with pytest.raises(LockContentionError) as exc_info:
        with coordinator.hold("k", 60, "pay"):
            pytest.fail("block must not run")

    assert exc_info.value.operation_name == "pay"
    assert "pay" in str(exc_info.value)


def test_from_settings_wires_redis_store():
    settings = LockSettings(redis_url="redis://localhost:6399/0", namespace="ns:")

    coordinator = LockCoordinator.from_settings(settings)

    assert isinstance(coordinator.store, RedisLockStore)
    assert coordinator.namespace == "ns:"


@pytest.mark.parametrize("ttl", [0, -1, 1.5, None])
def test_acquire_rejects_invalid_ttl_before_store(ttl):
    store = MagicMock()
    coordinator = LockCoordinator(store=store)

    with pytest.raises(LockSpecError):
        coordinator.acquire("k", ttl)

    store.try_set.assert_not_called()


def test_invalid_ttl_does_not_fail_open(coordinator, redis_view):
    with pytest.raises(LockSpecError):
        coordinator.acquire("k", 0)

    assert redis_view.keys("*") == []
