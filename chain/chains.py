from __future__ import annotations

import logging
from enum import Enum
from typing import Dict

logger = logging.getLogger(__name__)


class ChainId(str, Enum):
    ETH = "eth"
    POLYGON = "polygon"
    BASE = "base"
    OPTIMISM = "optimism"
    ARBITRUM = "arbitrum"
    GNOSIS = "gnosis"


DEFAULT_CHAIN = ChainId.ETH

# Order matters: discovery probes walk this list and report active chains in it.
SUPPORTED_CHAINS: tuple[ChainId, ...] = (
    ChainId.ETH,
    ChainId.POLYGON,
    ChainId.BASE,
    ChainId.OPTIMISM,
    ChainId.ARBITRUM,
    ChainId.GNOSIS,
)

EXPLORER_URLS: Dict[ChainId, str] = {
    ChainId.ETH: "https://eth.blockscout.com/api/v2",
    ChainId.POLYGON: "https://polygon.blockscout.com/api/v2",
    ChainId.BASE: "https://base.blockscout.com/api/v2",
    ChainId.OPTIMISM: "https://optimism.blockscout.com/api/v2",
    ChainId.ARBITRUM: "https://arbitrum.blockscout.com/api/v2",
    ChainId.GNOSIS: "https://gnosis.blockscout.com/api/v2",
}

INDEXER_URLS: Dict[ChainId, str] = {
    ChainId.ETH: "https://eth.hypersync.xyz",
    ChainId.POLYGON: "https://polygon.hypersync.xyz",
    ChainId.BASE: "https://base.hypersync.xyz",
    ChainId.OPTIMISM: "https://optimism.hypersync.xyz",
    ChainId.ARBITRUM: "https://arbitrum.hypersync.xyz",
    ChainId.GNOSIS: "https://gnosis.hypersync.xyz",
}

NATIVE_SYMBOLS: Dict[ChainId, str] = {
    ChainId.ETH: "ETH",
    ChainId.POLYGON: "POL",
    ChainId.BASE: "ETH",
    ChainId.OPTIMISM: "ETH",
    ChainId.ARBITRUM: "ETH",
    ChainId.GNOSIS: "xDAI",
}


def resolve_chain(chain: str | ChainId | None) -> ChainId:
    """
    Map any chain token to a supported ChainId.

    Unknown or empty values fall back to DEFAULT_CHAIN with a warning so a single
    bad token never aborts a multi-chain fan-out.
    """
    if isinstance(chain, ChainId):
        return chain
    key = (chain or "").strip().lower()
    try:
        return ChainId(key)
    except ValueError:
        logger.warning("Unknown chain %r, defaulting to %s", chain, DEFAULT_CHAIN.value)
        return DEFAULT_CHAIN


def is_supported_chain(chain: str | None) -> bool:
    return (chain or "").strip().lower() in {c.value for c in SUPPORTED_CHAINS}


def native_symbol(chain: ChainId | str) -> str:
    chain_id = resolve_chain(chain)
    return NATIVE_SYMBOLS.get(chain_id, chain_id.value.upper())


def build_url_table(
    defaults: Dict[ChainId, str],
    overrides: Dict[str, str] | None = None,
) -> Dict[ChainId, str]:
    """
    Merge settings-provided base URLs over the built-in table.
    Override keys that are not supported chains are ignored.
    """
    table = dict(defaults)
    for key, url in (overrides or {}).items():
        if not is_supported_chain(key):
            logger.warning("Ignoring URL override for unsupported chain %r", key)
            continue
        table[ChainId(key.lower())] = url.rstrip("/")
    return table
