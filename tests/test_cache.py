import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from inventory_codes.core.cache import TTLCache
from inventory_codes.core.security import issue_token_pair
from inventory_codes.deps.auth import authenticate_bearer


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("user:1", {"role": "cashier"})
    assert cache.get("user:1") == {"role": "cashier"}
    clock.now += 10
    assert cache.get("user:1") is None
    assert len(cache) == 0


def test_per_entry_ttl_and_invalidate():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("a", 1, ttl=60)
    cache.set("b", 2)
    clock.now += 30
    assert cache.get("a") == 1
    assert cache.get("b", "gone") == "gone"
    cache.invalidate("a")
    assert cache.get("a") is None
    cache.set("c", 3)
    cache.invalidate()
    assert len(cache) == 0


def test_set_prunes_expired_entries():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("token-a", 1)
    cache.set("token-b", 2, ttl=60)
    clock.now += 20
    cache.set("token-c", 3)
    assert "token-a" not in cache._entries
    assert set(cache._entries) == {"token-b", "token-c"}


def test_non_positive_ttl_drops_entry():
    cache = TTLCache(default_ttl=10)
    cache.set("a", 1)
    cache.set("a", 2, ttl=0)
    assert cache.get("a") is None
    with pytest.raises(ValueError):
        TTLCache(default_ttl=0)


def test_authenticate_bearer_reuses_cached_payload():
    cache = TTLCache(default_ttl=60)
    token = issue_token_pair("api-client", store_id="002").access_token

    first = authenticate_bearer(token, cache)
    assert first.sub == "api-client"
    assert first.store_id == "002"
    assert len(cache) == 1
    assert authenticate_bearer(token, cache) is first


def test_authenticate_bearer_rejects_refresh_tokens():
    cache = TTLCache(default_ttl=60)
    refresh = issue_token_pair("api-client").refresh_token
    with pytest.raises(ValueError):
        authenticate_bearer(refresh, cache)
    assert len(cache) == 0
