import json

import pytest
from sqlalchemy.orm import sessionmaker

from flighttrack.db import init_db, make_engine
from flighttrack.domain import CacheMiss
from flighttrack.services.cache import (
    EnrichmentCache,
    JsonFileStore,
    SqlCacheStore,
    build_cache_store,
)


@pytest.mark.anyio
async def test_entry_expires_after_ttl(tmp_path, clock):
    cache = EnrichmentCache(JsonFileStore(tmp_path / "cache.json"), clock=clock)

    await cache.put("route:BAW117", {"origin": "LHR"}, ttl_s=1000)

    clock.advance(999)
    assert cache.get("route:BAW117") == {"origin": "LHR"}

    clock.advance(1)
    with pytest.raises(CacheMiss):
        cache.get("route:BAW117")
    assert "route:BAW117" not in cache
    # expired entries are left in place until overwritten
    assert len(cache) == 1


@pytest.mark.anyio
async def test_missing_key_is_a_miss(tmp_path, clock):
    cache = EnrichmentCache(JsonFileStore(tmp_path / "cache.json"), clock=clock)

    with pytest.raises(KeyError):
        cache.get("photo:abc123")


@pytest.mark.anyio
async def test_overwrite_after_expiry_refreshes_timestamp(tmp_path, clock):
    cache = EnrichmentCache(JsonFileStore(tmp_path / "cache.json"), clock=clock)

    await cache.put("k", "old", ttl_s=10)
    clock.advance(20)
    await cache.put("k", "new", ttl_s=10)

    assert cache.get("k") == "new"


@pytest.mark.anyio
async def test_json_store_survives_restart(tmp_path, clock):
    path = tmp_path / "nested" / "cache.json"
    payload = {"callsign": "BAW117", "origin": {"iata": "LHR", "latitude": 51.47}, "tags": [1, 2]}

    cache = EnrichmentCache(JsonFileStore(path), clock=clock)
    await cache.put("route:BAW117", payload, ttl_s=1800)
    await cache.put("photo:abc123", None, ttl_s=86400)

    document = json.loads(path.read_text())
    assert document["route:BAW117"] == {
        "payload": payload,
        "timestamp": clock.now,
        "ttl": 1800,
    }

    reloaded = EnrichmentCache(JsonFileStore(path), clock=clock)
    assert reloaded.get("route:BAW117") == payload
    assert reloaded.get("photo:abc123") is None


def test_json_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")

    assert JsonFileStore(path).load() == {}


def test_json_store_skips_malformed_entries(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(
        json.dumps(
            {
                "good": {"payload": 1, "timestamp": 10.0, "ttl": 5.0},
                "bad": "oops",
                "worse": {"payload": 1, "timestamp": "yesterday"},
            }
        )
    )

    entries = JsonFileStore(path).load()

    assert list(entries) == ["good"]


@pytest.mark.anyio
async def test_sql_store_survives_restart(tmp_path, clock):
    engine = make_engine(f"sqlite:///{tmp_path}/cache.db")
    init_db(engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    cache = EnrichmentCache(SqlCacheStore(session_factory), clock=clock)
    await cache.put("route:BAW117", {"origin": "LHR"}, ttl_s=1800)
    await cache.put("route:BAW117", {"origin": "LGW"}, ttl_s=1800)
    await cache.put("photo:abc123", None, ttl_s=60)

    reloaded = EnrichmentCache(SqlCacheStore(session_factory), clock=clock)

    assert len(reloaded) == 2
    assert reloaded.get("route:BAW117") == {"origin": "LGW"}
    assert reloaded.get("photo:abc123") is None
    clock.advance(60)
    with pytest.raises(CacheMiss):
        reloaded.get("photo:abc123")


@pytest.mark.anyio
async def test_persist_failure_keeps_entry_in_memory(tmp_path, clock):
    class BrokenStore:
        def load(self):
            return {}

        def persist(self, entry, snapshot):
            raise OSError("disk full")

    cache = EnrichmentCache(BrokenStore(), clock=clock)
    await cache.put("k", "v")

    assert cache.get("k") == "v"


def test_build_cache_store_rejects_unknown_backend(tmp_path):
    assert isinstance(build_cache_store("json", path=tmp_path / "c.json"), JsonFileStore)
    with pytest.raises(ValueError):
        build_cache_store("redis", path=tmp_path / "c.json")
