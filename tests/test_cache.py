import pytest
from sqlalchemy.exc import OperationalError

from orgindex.core.cache import PersistentCache
from orgindex.core.errors import StorageError


def test_get_returns_none_for_missing_key(cache: PersistentCache) -> None:
    assert cache.get("/missing") is None


def test_set_then_get_returns_fresh_payload(cache: PersistentCache, clock) -> None:
    cache.set("/orgs/acme/repos", [{"name": "demo"}])
    clock.advance(10)

    hit = cache.get("/orgs/acme/repos")

    assert hit is not None
    assert hit.payload == [{"name": "demo"}]
    assert hit.age == 10
    assert hit.is_stale is False


def test_entry_becomes_stale_after_ttl(cache: PersistentCache, clock) -> None:
    cache.set("/key", {"a": 1})

    clock.advance(300)
    assert cache.get("/key").is_stale is False

    clock.advance(1)
    assert cache.get("/key").is_stale is True


def test_set_overwrites_existing_entry(cache: PersistentCache, clock) -> None:
    cache.set("/key", {"version": 1})
    clock.advance(500)
    cache.set("/key", {"version": 2})

    hit = cache.get("/key")

    assert hit.payload == {"version": 2}
    assert hit.is_stale is False


def test_evict_older_than_removes_only_old_entries(cache: PersistentCache, clock) -> None:
    cache.set("/old", 1)
    clock.advance(1000)
    cache.set("/new", 2)
    clock.advance(100)

    removed = cache.evict_older_than(500)

    assert removed == 1
    assert cache.get("/old") is None
    assert cache.get("/new").payload == 2


def test_prune_uses_six_ttl_periods(cache: PersistentCache, clock) -> None:
    cache.set("/key", 1)

    clock.advance(6 * 300)
    assert cache.prune() == 0

    clock.advance(1)
    assert cache.prune() == 1


def test_clear_only_touches_own_namespace(session_factory, clock) -> None:
    ours = PersistentCache(session_factory, ttl_seconds=60, namespace="ours", clock=clock)
    theirs = PersistentCache(session_factory, ttl_seconds=60, namespace="theirs", clock=clock)
    ours.set("/key", "a")
    theirs.set("/key", "b")

    assert ours.clear() == 1
    assert ours.get("/key") is None
    assert theirs.get("/key").payload == "b"


def test_get_treats_storage_failure_as_miss(cache: PersistentCache) -> None:
    def broken_factory():
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    cache._session_factory = broken_factory

    assert cache.get("/key") is None


def test_set_evicts_and_retries_once_when_storage_is_full(
    cache: PersistentCache, monkeypatch
) -> None:
    calls: list[str] = []
    evictions: list[float] = []
    original_write = cache._write

    def flaky_write(key, payload, ttl):
        calls.append(key)
        if len(calls) == 1:
            raise StorageError("database or disk is full")
        original_write(key, payload, ttl)

    monkeypatch.setattr(cache, "_write", flaky_write)
    monkeypatch.setattr(cache, "evict_older_than", lambda age: evictions.append(age) or 0)

    cache.set("/key", {"a": 1})

    assert calls == ["/key", "/key"]
    assert evictions == [1800]
    assert cache.get("/key").payload == {"a": 1}


def test_set_drops_write_after_second_failure(cache: PersistentCache, monkeypatch) -> None:
    calls: list[str] = []

    def always_full(key, payload, ttl):
        calls.append(key)
        raise StorageError("database or disk is full")

    monkeypatch.setattr(cache, "_write", always_full)

    cache.set("/key", {"a": 1})

    assert len(calls) == 2
    assert cache.get("/key") is None


@pytest.mark.parametrize("payload", [None, [], {"nested": [1, 2, {"x": "y"}]}])
def test_json_payload_shapes_are_preserved(cache: PersistentCache, payload) -> None:
    cache.set("/key", payload)

    assert cache.get("/key").payload == payload
