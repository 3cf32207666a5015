"""Tests for the pRPC and ipapi.co HTTP collaborators."""

import asyncio
import json

import httpx
import pytest

from pnode_monitor.schemas.common import GeoInfo
from pnode_monitor.services.errors import GeoLookupError, PrpcError
from pnode_monitor.services.ipapi import lookup_geo, parse_geo
from pnode_monitor.services.prpc import fetch_roster, parse_pods, rpc_url


def _run_with(handler, coro_factory):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)

    return asyncio.run(go())


@pytest.mark.parametrize(
    "endpoint, expected",
    [
        ("1.2.3.4", "http://1.2.3.4:6000/rpc"),
        ("1.2.3.4:7000", "http://1.2.3.4:7000/rpc"),
        ("https://rpc.example.net/rpc", "https://rpc.example.net/rpc"),
    ],
)
def test_rpc_url(endpoint, expected) -> None:
    assert rpc_url(endpoint) == expected


def test_fetch_roster_posts_json_rpc_and_parses_pods() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "jsonrpc": "2.0",
            "id": 1,
            "result": {
                "pods": [
                    {"address": "5.6.7.8:9001", "pubkey": "abc", "version": "0.7.3",
                     "last_seen_timestamp": 1700000000, "last_seen": "2023-11-14 22:13:20 UTC"},
                    {"address": "5.6.7.9:9001", "pubkey": None, "version": "0.7.3",
                     "last_seen_timestamp": 1700000001},
                ],
                "total_count": 2,
            },
        })

    pods = _run_with(handler, lambda c: fetch_roster("1.2.3.4", method="get-pods", client=c))

    assert seen["url"] == "http://1.2.3.4:6000/rpc"
    assert seen["body"]["method"] == "get-pods"
    assert seen["body"]["jsonrpc"] == "2.0"
    assert [p.address for p in pods] == ["5.6.7.8:9001", "5.6.7.9:9001"]
    assert pods[1].pubkey is None


def test_fetch_roster_raises_on_http_error() -> None:
    with pytest.raises(httpx.HTTPStatusError):
        _run_with(lambda request: httpx.Response(503), lambda c: fetch_roster("1.2.3.4", client=c))


@pytest.mark.parametrize(
    "body",
    [
        [],
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}},
        {"jsonrpc": "2.0", "id": 1, "result": {}},
        {"jsonrpc": "2.0", "id": 1, "result": {"pods": [{"pubkey": "no-address"}]}},
    ],
)
def test_malformed_pod_payloads_raise_prpc_error(body) -> None:
    with pytest.raises(PrpcError):
        parse_pods(body)


def test_lookup_geo_sends_user_agent_and_maps_fields() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["ua"] = request.headers.get("user-agent")
        return httpx.Response(200, json={
            "ip": "5.6.7.8", "city": "Paris", "country_name": "France",
            "latitude": 48.85, "longitude": 2.35, "org": "OVH SAS",
        })

    geo = _run_with(handler, lambda c: lookup_geo("5.6.7.8", user_agent="pNode-Monitor/test", client=c))

    assert seen["url"] == "https://ipapi.co/5.6.7.8/json/"
    assert seen["ua"] == "pNode-Monitor/test"
    assert geo == GeoInfo(city="Paris", country="France", latitude=48.85, longitude=2.35, provider="OVH SAS")


def test_partial_geo_payload_defaults_missing_fields() -> None:
    geo = parse_geo({"country_name": "Germany", "latitude": None})

    assert geo == GeoInfo(city="Unknown", country="Germany", latitude=0, longitude=0, provider="Unknown")


def test_provider_error_payload_raises() -> None:
    with pytest.raises(GeoLookupError, match="RateLimited"):
        parse_geo({"error": True, "reason": "RateLimited"})


def test_incomplete_pod_keeps_the_roster() -> None:
    pods = parse_pods({
        "jsonrpc": "2.0",
        "id": 1,
        "result": {
            "pods": [
                {"address": "5.6.7.8:9001", "pubkey": "abc", "version": "0.7.3", "last_seen_timestamp": 1700000000},
                {"address": "5.6.7.9:9001", "pubkey": None, "version": None, "last_seen_timestamp": 1700000001.75},
                {"address": "5.6.7.10:9001", "last_seen_timestamp": None},
            ]
        },
    })

    assert [p.address for p in pods] == ["5.6.7.8:9001", "5.6.7.9:9001", "5.6.7.10:9001"]
    assert pods[1].version == "Unknown"
    assert pods[1].last_seen_timestamp == 1700000001
    assert pods[2].version == "Unknown"
    assert pods[2].last_seen_timestamp == 0
