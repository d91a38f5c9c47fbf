from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app.core.logging import utc_iso
from chain.chains import ChainId, resolve_chain
from chain.indexer import IndexerClient
from chain.types import BlockRecord

logger = logging.getLogger(__name__)

FETCH_ERROR = "Failed to fetch blocks from indexer"


def _parse_ts(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def compute_metrics(blocks: List[BlockRecord]) -> Dict[str, Any]:
    """Block time, TPS and totals over blocks ordered newest first."""
    block_times: List[float] = []
    for newer, older in zip(blocks, blocks[1:]):
        t_new, t_old = _parse_ts(newer.timestamp), _parse_ts(older.timestamp)
        if t_new is None or t_old is None:
            continue
        diff = (t_new - t_old).total_seconds()
        if diff > 0:
            block_times.append(diff)

    total_txs = sum(b.transaction_count for b in blocks)
    total_time = sum(block_times)
    return {
        "avgBlockTime": round(total_time / len(block_times), 2) if block_times else 0,
        "tps": round(total_txs / total_time, 2) if total_time > 0 else 0,
        "totalTxs": total_txs,
        "blocksAnalyzed": len(blocks),
    }


class DashboardStatsService:
    """
    Per-chain network stats with a short TTL cache.

    Entries are recomputed lazily on the first read after expiry. Failures are
    returned as an envelope and never cached.
    """

    def __init__(
        self,
        indexer: IndexerClient,
        *,
        ttl_s: float = 8.0,
        block_limit: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.indexer = indexer
        self.ttl_s = ttl_s
        self.block_limit = block_limit
        self._clock = clock
        self._cache: Dict[ChainId, Dict[str, Any]] = {}

    def _cached(self, chain: ChainId) -> Optional[Dict[str, Any]]:
        entry = self._cache.get(chain)
        if not entry:
            return None
        if entry["expires_at"] <= self._clock():
            self._cache.pop(chain, None)
            return None
        return entry["data"]

    def clear(self) -> None:
        self._cache.clear()

    async def get_stats(self, chain: str | ChainId) -> Dict[str, Any]:
        chain_id = resolve_chain(chain)
        cached = self._cached(chain_id)
        if cached is not None:
            logger.info("Dashboard cache hit chain=%s", chain_id.value)
            return cached

        logger.info("Fetching fresh dashboard data chain=%s", chain_id.value)
        result = await self.indexer.get_recent_blocks_with_activity(chain_id, limit=self.block_limit)
        if not result.success or not result.data.blocks:
            logger.warning("Dashboard fetch failed chain=%s: %s", chain_id.value, result.error)
            return {"success": False, "error": FETCH_ERROR, "blocks": []}

        blocks = result.data.blocks
        data = {
            "success": True,
            "chain": chain_id.value,
            "timestamp": utc_iso(),
            "blocks": [b.to_dict() for b in blocks],
            "gasStats": None,
            "archiveHeight": result.data.archive_height or blocks[0].number,
            "metrics": compute_metrics(blocks),
        }
        self._cache[chain_id] = {"data": data, "expires_at": self._clock() + self.ttl_s}
        return data
