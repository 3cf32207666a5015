"""Tests for the per-IP geo cache."""

import asyncio

import httpx
import pytest

from pnode_monitor.schemas.common import GeoInfo
from pnode_monitor.services.geo_cache import GEO_TTL, GeoCache
from tests.fakes import FakeClock, FakeGeo

PARIS = GeoInfo(city="Paris", country="France", latitude=48.85, longitude=2.35, provider="OVH")


def test_second_lookup_within_ttl_hits_the_cache() -> None:
    geo = FakeGeo({"1.2.3.4": PARIS})
    clock = FakeClock()
    cache = GeoCache(geo, clock=clock)

    first = asyncio.run(cache.lookup("1.2.3.4"))
    clock.advance(GEO_TTL - 1)
    second = asyncio.run(cache.lookup("1.2.3.4"))

    assert first == second == PARIS
    assert geo.calls == ["1.2.3.4"]


def test_entry_is_refetched_once_ttl_elapses() -> None:
    geo = FakeGeo({"1.2.3.4": PARIS})
    clock = FakeClock()
    cache = GeoCache(geo, clock=clock)

    asyncio.run(cache.lookup("1.2.3.4"))
    clock.advance(GEO_TTL)
    asyncio.run(cache.lookup("1.2.3.4"))

    assert geo.calls == ["1.2.3.4", "1.2.3.4"]
    assert cache.peek("1.2.3.4").fetched_at == clock.now


def test_failed_lookup_degrades_to_unknown_and_is_cached() -> None:
    geo = FakeGeo(error=httpx.ConnectError("no route"))
    cache = GeoCache(geo, clock=FakeClock())

    result = asyncio.run(cache.lookup("1.2.3.4"))
    asyncio.run(cache.lookup("1.2.3.4"))

    assert result == GeoInfo(city="Unknown", country="Unknown", latitude=0, longitude=0, provider="Unknown")
    assert geo.calls == ["1.2.3.4"]


def test_lru_bound_evicts_least_recently_used() -> None:
    geo = FakeGeo()
    cache = GeoCache(geo, max_entries=2, clock=FakeClock())

    async def scenario():
        await cache.lookup("a")
        await cache.lookup("b")
        await cache.lookup("a")  # a becomes most recent
        await cache.lookup("c")

    asyncio.run(scenario())

    assert len(cache) == 2
    assert "a" in cache
    assert "c" in cache
    assert "b" not in cache


def test_concurrent_lookups_of_one_ip_share_a_call() -> None:
    calls = []

    async def scenario():
        gate = asyncio.Event()

        async def slow_lookup(ip):
            calls.append(ip)
            await gate.wait()
            return PARIS

        cache = GeoCache(slow_lookup, clock=FakeClock())
        tasks = [asyncio.ensure_future(cache.lookup("1.2.3.4")) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        return await asyncio.gather(*tasks)

    results = asyncio.run(scenario())

    assert calls == ["1.2.3.4"]
    assert results == [PARIS, PARIS, PARIS]


@pytest.mark.parametrize("ip", ["", "   "])
def test_blank_ip_never_reaches_the_provider(ip) -> None:
    geo = FakeGeo({"": PARIS})
    cache = GeoCache(geo, clock=FakeClock())

    result = asyncio.run(cache.lookup(ip))

    assert result == GeoInfo()
    assert geo.calls == []
    assert len(cache) == 0
