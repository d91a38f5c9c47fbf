from __future__ import annotations

import httpx
import pytest

from chain.chains import ChainId
from chain.explorer import ExplorerGateway
from chain.types import BlockRecord, GatewayResult

ADDRESS = "0x1111111111111111111111111111111111111111"


def _gateway(handler) -> ExplorerGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ExplorerGateway(client=client, urls={"base": "http://explorer.test/api/v2"})


@pytest.mark.asyncio
async def test_get_address_success_uses_chain_endpoint():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"hash": ADDRESS, "coin_balance": "1"})

    gateway = _gateway(handler)
    result = await gateway.get_address(ADDRESS, "base")
    await gateway.aclose()

    assert result.success is True
    assert result.chain == ChainId.BASE
    assert result.data["coin_balance"] == "1"
    assert result.status == 200
    assert seen == [f"http://explorer.test/api/v2/addresses/{ADDRESS}"]


@pytest.mark.asyncio
async def test_unknown_chain_resolves_to_default():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return httpx.Response(200, json={})

    gateway = _gateway(handler)
    result = await gateway.get_stats("solana")

    assert result.success is True
    assert result.chain == ChainId.ETH
    assert seen == ["eth.blockscout.com"]


@pytest.mark.asyncio
async def test_http_error_status_becomes_failure_with_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not found"})

    gateway = _gateway(handler)
    result = await gateway.get_token(ADDRESS, "base")

    assert result == GatewayResult(success=False, chain=ChainId.BASE, error="Not found", status=404)


@pytest.mark.asyncio
async def test_error_status_without_message_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    result = await _gateway(handler).get_smart_contract(ADDRESS, "base")

    assert result.success is False
    assert result.error == "HTTP 502"
    assert result.status == 502


@pytest.mark.asyncio
async def test_transport_error_becomes_failure_without_status():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    result = await _gateway(handler).get_address(ADDRESS, "base")

    assert result.success is False
    assert result.status is None
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_invalid_json_becomes_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    result = await _gateway(handler).get_address(ADDRESS, "base")

    assert result.success is False
    assert result.error.startswith("invalid JSON")


@pytest.mark.asyncio
async def test_tokens_and_search_pass_query_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"items": []})

    gateway = _gateway(handler)
    await gateway.get_address_tokens(ADDRESS, "base")
    await gateway.search("usdc", "base")

    assert seen == [{"type": "ERC-20"}, {"q": "usdc"}]


@pytest.mark.asyncio
async def test_get_recent_blocks_maps_and_truncates():
    items = [
        {
            "height": 100 - i,
            "timestamp": "2024-05-01T12:00:00.000000Z",
            "hash": f"0x{i:064x}",
            "gas_used": "21000",
            "size": 512,
            "tx_count": i + 1,
            "base_fee_per_gas": "1000000000",
        }
        for i in range(8)
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["type"] == "block"
        return httpx.Response(200, json={"items": items})

    result = await _gateway(handler).get_recent_blocks("base", limit=3)

    assert result.success is True
    assert [b.number for b in result.data] == [100, 99, 98]
    first = result.data[0]
    assert isinstance(first, BlockRecord)
    assert first.gas_used == 21000
    assert first.transaction_count == 1
    assert first.base_fee_per_gas == 1_000_000_000
    assert first.chain == ChainId.BASE


@pytest.mark.asyncio
async def test_get_recent_blocks_without_items_is_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"next_page_params": None})

    result = await _gateway(handler).get_recent_blocks("base")

    assert result.success is False
    assert result.error == "No blocks found in API response"


def test_gateway_result_invariants():
    with pytest.raises(ValueError):
        GatewayResult(success=True, chain=ChainId.ETH, data=None)
    with pytest.raises(ValueError):
        GatewayResult(success=False, chain=ChainId.ETH, error="")
    assert GatewayResult.fail(ChainId.ETH, "").error == "Unknown error"


@pytest.mark.asyncio
async def test_entity_reads_hit_expected_paths():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"ok": True})

    gateway = _gateway(handler)
    await gateway.get_transaction("0xdead", "base")
    await gateway.get_block(123, "base")
    await gateway.get_address_transactions(ADDRESS, "base")

    assert seen == [
        "/api/v2/transactions/0xdead",
        "/api/v2/blocks/123",
        f"/api/v2/addresses/{ADDRESS}/transactions",
    ]
