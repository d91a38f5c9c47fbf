from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from chain.chains import ChainId, resolve_chain
from chain.explorer import ExplorerGateway
from chain.indexer import IndexerClient
from chain.types import BlockRecord, GatewayResult
from chain.units import wei_to_gwei

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GasQuote:
    chain: ChainId
    low: float
    standard: float
    fast: float
    source: str
    blocks_analyzed: int | None = None
    latest_block: Optional[BlockRecord] = None


class GasFeeSource(Protocol):
    name: str

    async def quote(self, chain: str | ChainId) -> GatewayResult: ...


def _gwei(value: Any) -> float | None:
    if isinstance(value, dict):
        value = value.get("price")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ExplorerGasFeeSource:
    """Gas prices straight from the explorer stats endpoint (already in Gwei)."""

    name = "Blockscout"

    def __init__(self, gateway: ExplorerGateway) -> None:
        self.gateway = gateway

    async def quote(self, chain: str | ChainId) -> GatewayResult:
        result = await self.gateway.get_stats(chain)
        if not result.success:
            return result
        gas_prices = result.data.get("gas_prices") if isinstance(result.data, dict) else None
        if not isinstance(gas_prices, dict):
            return GatewayResult.fail(result.chain, "Gas price data not available")

        slow = _gwei(gas_prices.get("slow"))
        average = _gwei(gas_prices.get("average"))
        fast = _gwei(gas_prices.get("fast"))
        if average is None:
            return GatewayResult.fail(result.chain, "Gas price data not available")

        quote = GasQuote(
            chain=result.chain,
            low=slow if slow is not None else average,
            standard=average,
            fast=fast if fast is not None else average,
            source=self.name,
        )
        return GatewayResult.ok(result.chain, quote, status=result.status)


class IndexerGasFeeSource:
    """
    Gas prices derived from recent-block statistics.

    low/standard/fast are the min/mean/max of the per-block average gas price
    across the sampled blocks.
    """

    name = "Envio HyperSync"

    def __init__(self, indexer: IndexerClient, *, blocks: int = 10) -> None:
        self.indexer = indexer
        self.blocks = blocks

    async def quote(self, chain: str | ChainId) -> GatewayResult:
        chain_id = resolve_chain(chain)
        result = await self.indexer.get_recent_blocks_with_activity(chain_id, limit=self.blocks)
        if not result.success:
            return result

        blocks = result.data.blocks
        prices = [wei_to_gwei(b.avg_gas_price) for b in blocks if b.avg_gas_price > 0]
        if not prices:
            return GatewayResult.fail(chain_id, "No gas price data in recent blocks")

        quote = GasQuote(
            chain=chain_id,
            low=min(prices),
            standard=sum(prices) / len(prices),
            fast=max(prices),
            source=self.name,
            blocks_analyzed=len(blocks),
            latest_block=blocks[0],
        )
        return GatewayResult.ok(chain_id, quote)


def build_gas_fee_source(
    kind: str,
    *,
    gateway: ExplorerGateway,
    indexer: IndexerClient,
) -> GasFeeSource:
    if (kind or "").lower() == "indexer":
        return IndexerGasFeeSource(indexer)
    if (kind or "").lower() != "explorer":
        logger.warning("Unknown gas fee source %r, using explorer", kind)
    return ExplorerGasFeeSource(gateway)
