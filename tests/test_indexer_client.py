from __future__ import annotations

import json

import httpx
import pytest

from chain.chains import ChainId
from chain.indexer import IndexerClient, _quantity


def _client(handler, **kwargs) -> IndexerClient:
    return IndexerClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), **kwargs)


def _payload():
    return {
        "archive_height": 1001,
        "data": [
            {
                "blocks": [
                    {"number": 998, "timestamp": "0x66322a00", "hash": "0xaa", "gas_used": "0x5208", "size": "0x200"},
                    {"number": 1000, "timestamp": 1714563596, "hash": "0xcc", "gas_used": 42000, "size": 600,
                     "base_fee_per_gas": 7},
                    {"number": 999, "timestamp": 1714563584, "hash": "0xbb", "gas_used": 21000, "size": 500,
                     "base_fee_per_gas": "0x3"},
                ],
                "transactions": [
                    {"block_number": 1000, "gas_price": 10},
                    {"block_number": 1000, "gas_price": 20},
                    {"block_number": 998, "gas_price": "0x5"},
                ],
            }
        ],
    }


@pytest.mark.asyncio
async def test_recent_blocks_with_activity_aggregates_per_block():
    queries = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/height"):
            return httpx.Response(200, json={"height": 1000})
        queries.append(json.loads(request.content))
        return httpx.Response(200, json=_payload())

    result = await _client(handler).get_recent_blocks_with_activity("polygon", limit=2, window=50)

    assert result.success is True
    assert result.chain == ChainId.POLYGON
    assert queries[0]["from_block"] == 950
    assert queries[0]["to_block"] == 1001
    assert queries[0]["include_all_blocks"] is False

    blocks = result.data.blocks
    assert [b.number for b in blocks] == [1000, 999]
    assert blocks[0].transaction_count == 2
    assert blocks[0].avg_gas_price == 15
    assert blocks[0].gas_fee == pytest.approx(42000 * 15 / 1e18)
    # no transactions in block 999: base fee stands in for the average
    assert blocks[1].transaction_count == 0
    assert blocks[1].avg_gas_price == 3
    assert blocks[0].timestamp.startswith("2024-05-01T")
    assert result.data.archive_height == 1001


@pytest.mark.asyncio
async def test_bearer_token_header_is_configured():
    client = IndexerClient(bearer_token="secret")
    assert client._client.headers["Authorization"] == "Bearer secret"
    await client.aclose()

    anonymous = IndexerClient()
    assert "Authorization" not in anonymous._client.headers
    await anonymous.aclose()


@pytest.mark.asyncio
async def test_empty_block_list_is_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/height"):
            return httpx.Response(200, json={"height": 10})
        return httpx.Response(200, json={"data": [{"blocks": []}]})

    result = await _client(handler).get_recent_blocks_with_activity("eth")

    assert result.success is False
    assert result.error == "No blocks returned from indexer"


@pytest.mark.asyncio
async def test_missing_height_is_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    result = await _client(handler).get_recent_blocks_with_activity("eth")

    assert result.success is False
    assert "latest block" in result.error


@pytest.mark.asyncio
async def test_upstream_error_status_is_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized"})

    result = await _client(handler).get_recent_blocks_with_activity("base")

    assert result.success is False
    assert result.status == 401


def test_quantity_parses_hex_and_decimal():
    assert _quantity("0x10") == 16
    assert _quantity("16") == 16
    assert _quantity(16) == 16
    assert _quantity(None) == 0
