from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from chain.chains import DEFAULT_CHAIN, SUPPORTED_CHAINS, ChainId, resolve_chain
from chain.types import ActiveChain, GatewayResult

logger = logging.getLogger(__name__)


class AddressReader(Protocol):
    async def get_address(self, address: str, chain: str | ChainId = ...) -> GatewayResult: ...


def has_activity(info: Dict[str, Any] | None) -> bool:
    """Nonzero native balance, token-transfer flag, or a positive transaction count."""
    if not isinstance(info, dict):
        return False
    balance = info.get("coin_balance")
    if balance not in (None, "", "0", 0):
        return True
    if info.get("has_token_transfers"):
        return True
    try:
        return int(info.get("transactions_count") or 0) > 0
    except (TypeError, ValueError):
        return False


async def _probe(gateway: AddressReader, address: str, chain: ChainId) -> Optional[Dict[str, Any]]:
    try:
        result = await gateway.get_address(address, chain)
    except Exception as e:
        logger.warning("Address probe raised chain=%s: %s", chain.value, e)
        return None
    if not result.success or not isinstance(result.data, dict):
        logger.info("Address not found or unavailable chain=%s error=%s", chain.value, result.error)
        return None
    return result.data


async def discover_active_chains(
    gateway: AddressReader,
    address: str,
    chain_hint: str | ChainId | None = None,
) -> List[ActiveChain]:
    """
    Decide which chains to query for an address.

    With a hint only that chain is probed and it is always returned. Otherwise every
    supported chain is probed concurrently and kept when it shows activity. The
    result is never empty: with no activity anywhere the default chain comes back
    with info=None.
    """
    if chain_hint is not None:
        chain = resolve_chain(chain_hint)
        info = await _probe(gateway, address, chain)
        return [ActiveChain(chain=chain, info=info)]

    infos = await asyncio.gather(*(_probe(gateway, address, c) for c in SUPPORTED_CHAINS))

    active: Dict[ChainId, ActiveChain] = {}
    for chain, info in zip(SUPPORTED_CHAINS, infos):
        if chain in active or not has_activity(info):
            continue
        active[chain] = ActiveChain(chain=chain, info=info)
        logger.info("Found activity chain=%s address=%s", chain.value, address)

    if not active:
        logger.info("No active chains detected for %s, falling back to %s", address, DEFAULT_CHAIN.value)
        return [ActiveChain(chain=DEFAULT_CHAIN, info=None)]

    return list(active.values())
