"""
Tests for registry loading, response-shape probing and field aliasing
"""
import asyncio

import aiohttp
from aiohttp import test_utils, web
import pytest

from conftest import BRAINS_MINT, FakeFetch, USDC_MINT
from wallet_metadata.models import RegistryEntry
from wallet_metadata.registry_client import (
    RegistryClient,
    build_registry_table,
    extract_entries,
    first_populated,
)

REGISTRY_URL = "https://registry.example/api/tokens"


def load(fetch):
    client = RegistryClient(None, url=REGISTRY_URL, fetch=fetch)
    table = asyncio.run(client.load_registry())
    return client, table


def test_bare_array():
    payload = [{"mint": BRAINS_MINT, "name": "Brains", "symbol": "BRAINS", "decimals": 9, "logo": "ipfs://x"}]
    client, table = load(FakeFetch({REGISTRY_URL: payload}))
    assert client.loaded
    assert table == {BRAINS_MINT: RegistryEntry(BRAINS_MINT, "Brains", "BRAINS", 9, "ipfs://x")}


@pytest.mark.parametrize("key", ["data", "tokens", "result", "items", "list"])
def test_wrapped_array(key):
    payload = {"success": True, key: [{"address": USDC_MINT, "symbol": "USDC"}]}
    assert list(build_registry_table(payload)) == [USDC_MINT]


def test_wrapper_keys_probed_in_order():
    payload = {"tokens": [{"mint": "second"}], "data": [{"mint": "first"}]}
    assert [entry["mint"] for entry in extract_entries(payload)] == ["first"]


def test_nested_wrapper():
    payload = {"data": {"tokens": [{"mint": BRAINS_MINT}]}}
    assert list(build_registry_table(payload)) == [BRAINS_MINT]


def test_unknown_shape_is_empty():
    assert build_registry_table({"unexpected": [{"mint": BRAINS_MINT}]}) == {}
    assert build_registry_table("garbage") == {}
    assert build_registry_table(None) == {}


def test_field_aliases_first_populated_wins():
    raw = {
        "mint": "",
        "tokenAddress": BRAINS_MINT,
        "tokenName": "Brains",
        "ticker": "BRAINS",
        "decimal": "9",
        "logo": None,
        "logoURI": "",
        "image": "https://cdn.example/brains.png",
    }
    table = build_registry_table([raw])
    assert table[BRAINS_MINT] == RegistryEntry(
        mint=BRAINS_MINT, name="Brains", symbol="BRAINS", decimals=9, logo="https://cdn.example/brains.png"
    )


def test_first_populated_skips_blank_strings():
    assert first_populated({"a": "  ", "b": "x"}, ("a", "b")) == "x"
    assert first_populated({"a": 0}, ("a",)) == 0
    assert first_populated({}, ("a",)) is None


def test_entries_without_address_skipped_and_duplicates_last_write_wins():
    payload = [
        {"name": "No address"},
        "not an object",
        {"mint": BRAINS_MINT, "name": "Old"},
        {"mint": BRAINS_MINT, "name": "New"},
    ]
    table = build_registry_table(payload)
    assert list(table) == [BRAINS_MINT]
    assert table[BRAINS_MINT].name == "New"


def test_bad_decimals_tolerated():
    table = build_registry_table([{"mint": BRAINS_MINT, "decimals": "nine"}])
    assert table[BRAINS_MINT].decimals is None


@pytest.mark.parametrize("failure", [
    aiohttp.ClientConnectionError("refused"),
    asyncio.TimeoutError(),
    ValueError("Expecting value"),
])
def test_failed_load_degrades_to_empty_and_completes(failure):
    client, table = load(FakeFetch({REGISTRY_URL: failure}))
    assert table == {}
    assert client.loaded is True


def test_loads_only_once():
    fetch = FakeFetch({REGISTRY_URL: [{"mint": BRAINS_MINT}]})
    client = RegistryClient(None, url=REGISTRY_URL, fetch=fetch)

    async def _twice():
        await client.load_registry()
        return await client.load_registry()

    assert list(asyncio.run(_twice())) == [BRAINS_MINT]
    assert fetch.calls == [REGISTRY_URL]


def test_failed_load_is_not_retried():
    fetch = FakeFetch({REGISTRY_URL: aiohttp.ClientConnectionError("down")})
    client = RegistryClient(None, url=REGISTRY_URL, fetch=fetch)

    async def _twice():
        await client.load_registry()
        await client.load_registry()

    asyncio.run(_twice())
    assert fetch.calls == [REGISTRY_URL]


async def _load_from_server(handler):
    app = web.Application()
    app.router.add_get("/api/tokens", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            client = RegistryClient(session, url=str(server.make_url("/api/tokens")))
            table = await client.load_registry()
            return client, table
    finally:
        await server.close()


def test_http_500_yields_empty_completed_registry():
    async def handler(request):
        return web.Response(status=500, text="Internal Server Error")

    client, table = asyncio.run(_load_from_server(handler))
    assert table == {}
    assert client.loaded is True


def test_unparseable_body_yields_empty_registry():
    async def handler(request):
        return web.Response(status=200, text="<html>maintenance</html>", content_type="text/html")

    client, table = asyncio.run(_load_from_server(handler))
    assert table == {}
    assert client.loaded is True


def test_live_http_wrapped_response():
    async def handler(request):
        return web.json_response({"data": [{"mintAddress": BRAINS_MINT, "name": "Brains", "symbol": "BRAINS"}]})

    client, table = asyncio.run(_load_from_server(handler))
    assert table[BRAINS_MINT].symbol == "BRAINS"


def test_timeout_read_from_environment(monkeypatch):
    assert RegistryClient(None, url=REGISTRY_URL).timeout == 15.0
    monkeypatch.setenv("REGISTRY_TIMEOUT_SECONDS", "2.5")
    assert RegistryClient(None, url=REGISTRY_URL).timeout == 2.5
    assert RegistryClient(None, url=REGISTRY_URL, timeout=7).timeout == 7


def test_timeout_passed_to_fetch(monkeypatch):
    monkeypatch.setenv("REGISTRY_TIMEOUT_SECONDS", "3")
    seen = []

    async def fetch(session, url, timeout):
        seen.append(timeout)
        return []

    asyncio.run(RegistryClient(None, url=REGISTRY_URL, fetch=fetch).load_registry())
    assert seen == [3.0]
