from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

import httpx

from chain.chains import INDEXER_URLS, ChainId, build_url_table, resolve_chain
from chain.types import BlockRecord, GatewayResult, IndexerBlocks
from chain.units import normalize

logger = logging.getLogger(__name__)

BLOCK_FIELDS = ["number", "timestamp", "hash", "gas_used", "size", "base_fee_per_gas"]
TX_FIELDS = ["block_number", "gas_price"]


class IndexerError(RuntimeError):
    pass


def _quantity(value: Any) -> int:
    """HyperSync returns quantities either as ints or 0x-prefixed hex strings."""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text, 16) if text.lower().startswith("0x") else int(text)


def _iso_from_unix(value: Any) -> str | None:
    try:
        seconds = _quantity(value)
    except ValueError:
        return None
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).isoformat()


def _batches(payload: Dict[str, Any]) -> Iterable[Dict[str, Any]]:
    data = payload.get("data")
    if isinstance(data, list):
        return [b for b in data if isinstance(b, dict)]
    if isinstance(data, dict):
        return [data]
    return []


class IndexerClient:
    """
    Block-range query client for a HyperSync-style indexer.

    Used for block/gas aggregation only. A query that returns no block list is
    reported as a failure.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        urls: Dict[str, str] | None = None,
        bearer_token: str | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self.endpoints = build_url_table(INDEXER_URLS, urls)
        self.timeout_s = timeout_s
        headers = {"Content-Type": "application/json"}
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s, headers=headers)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _height(self, base_url: str) -> int:
        response = await self._client.get(f"{base_url}/height", timeout=self.timeout_s)
        response.raise_for_status()
        height = response.json().get("height")
        if not height:
            raise IndexerError("Could not determine latest block")
        return _quantity(height)

    async def _query(self, base_url: str, query: Dict[str, Any]) -> Dict[str, Any]:
        response = await self._client.post(f"{base_url}/query", json=query, timeout=self.timeout_s)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise IndexerError("unexpected indexer response")
        return payload

    async def get_recent_blocks_with_activity(
        self,
        chain: str | ChainId = ChainId.ETH,
        limit: int = 5,
        window: int = 50,
    ) -> GatewayResult:
        """
        Fetch the most recent blocks carrying transactions, with per-block
        transaction counts and average gas price (falls back to base fee).
        """
        chain_id = resolve_chain(chain)
        base_url = self.endpoints[chain_id]
        try:
            latest = await self._height(base_url)
            query = {
                "from_block": max(0, latest - max(window, limit)),
                "to_block": latest + 1,
                "transactions": [{}],
                "field_selection": {"block": BLOCK_FIELDS, "transaction": TX_FIELDS},
                "include_all_blocks": False,
            }
            payload = await self._query(base_url, query)
        except (httpx.HTTPError, IndexerError, ValueError) as e:
            status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            logger.warning("Indexer query failed chain=%s: %s", chain_id.value, e)
            return GatewayResult.fail(chain_id, str(e) or type(e).__name__, status=status)

        raw_blocks: List[Dict[str, Any]] = []
        raw_txs: List[Dict[str, Any]] = []
        saw_block_list = False
        for batch in _batches(payload):
            if isinstance(batch.get("blocks"), list):
                saw_block_list = True
                raw_blocks.extend(b for b in batch["blocks"] if isinstance(b, dict))
            if isinstance(batch.get("transactions"), list):
                raw_txs.extend(t for t in batch["transactions"] if isinstance(t, dict))

        if not saw_block_list or not raw_blocks:
            logger.warning("No blocks returned chain=%s", chain_id.value)
            return GatewayResult.fail(chain_id, "No blocks returned from indexer")

        tx_counts: Dict[int, int] = defaultdict(int)
        gas_prices: Dict[int, List[int]] = defaultdict(list)
        for tx in raw_txs:
            try:
                block_number = _quantity(tx.get("block_number"))
                tx_counts[block_number] += 1
                if tx.get("gas_price") is not None:
                    gas_prices[block_number].append(_quantity(tx.get("gas_price")))
            except ValueError:
                continue

        blocks: List[BlockRecord] = []
        for raw in raw_blocks:
            try:
                number = _quantity(raw.get("number"))
                gas_used = _quantity(raw.get("gas_used"))
                base_fee = _quantity(raw.get("base_fee_per_gas"))
                size = _quantity(raw.get("size"))
            except ValueError as e:
                logger.warning("Skipping malformed block chain=%s: %s", chain_id.value, e)
                continue
            prices = gas_prices.get(number) or []
            avg_gas_price = sum(prices) // len(prices) if prices else base_fee
            blocks.append(
                BlockRecord(
                    number=number,
                    timestamp=_iso_from_unix(raw.get("timestamp")),
                    hash=raw.get("hash") or "N/A",
                    gas_used=gas_used,
                    size=size,
                    transaction_count=tx_counts.get(number, 0),
                    chain=chain_id,
                    base_fee_per_gas=base_fee,
                    avg_gas_price=avg_gas_price,
                    gas_fee=normalize(str(gas_used * avg_gas_price), 18),
                )
            )

        blocks.sort(key=lambda b: b.number, reverse=True)
        archive_height = payload.get("archive_height") or payload.get("next_block") or latest
        logger.info("Indexer returned %s blocks chain=%s", len(blocks[:limit]), chain_id.value)
        return GatewayResult.ok(
            chain_id,
            IndexerBlocks(chain=chain_id, blocks=blocks[:limit], archive_height=_quantity(archive_height)),
        )
