from __future__ import annotations

import re

from app.chat.contracts import Intent
from chain.chains import SUPPORTED_CHAINS, ChainId

ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")
BLOCK_COUNT_RE = re.compile(r"(\d+)\s*blocks?", re.IGNORECASE)
RECENT_BLOCKS_RE = re.compile(r"recent \d+ blocks")

DEFAULT_BLOCK_COUNT = 5
MAX_BLOCK_COUNT = 10

_ANALYZE_TERMS = ("analyze", "analyse", "analysis")
_CONTRACT_TERMS = ("contract", "smartcontract")
_GAS_TERMS = ("fee", "price", "cost")
_TX_TERMS = ("transaction", "tx", "transfers", "recent activity")
_TOKEN_TERMS = ("token", "balance", "holdings", "assets")

CHAIN_ALIASES: dict[ChainId, tuple[str, ...]] = {
    ChainId.ETH: ("ethereum",),
    ChainId.POLYGON: ("matic",),
    ChainId.BASE: (),
    ChainId.OPTIMISM: ("op mainnet",),
    ChainId.ARBITRUM: ("arb",),
    ChainId.GNOSIS: ("xdai",),
}

# Extraction tie-break order; independent of the discovery order in SUPPORTED_CHAINS.
EXTRACTION_ORDER: tuple[ChainId, ...] = (
    ChainId.BASE,
    ChainId.POLYGON,
    ChainId.ETH,
    ChainId.OPTIMISM,
    ChainId.ARBITRUM,
    ChainId.GNOSIS,
)


def _names(chain: ChainId) -> str:
    return "|".join(re.escape(name) for name in (chain.value, *CHAIN_ALIASES[chain]))


_ON_CHAIN_PATTERNS: list[tuple[ChainId, re.Pattern[str]]] = [
    (chain, re.compile(r"\bon\s+(?:" + _names(chain) + r")\b")) for chain in EXTRACTION_ORDER
]
_BARE_CHAIN_PATTERNS: list[tuple[ChainId, re.Pattern[str]]] = [
    (chain, re.compile(r"\b(?:" + _names(chain) + r")\b")) for chain in EXTRACTION_ORDER
]

_NETWORK_MENTION_RE = re.compile(
    r"\bon\s+(?:" + "|".join(_names(chain) for chain in SUPPORTED_CHAINS) + r")\b"
)


def _any(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def classify(message: str) -> Intent:
    """
    Keyword heuristic over the lower-cased message.

    Rules are checked in priority order and the first hit wins:
    contract_analysis > gas_fees > blocks > transactions > analysis > tokens > general.
    """
    msg = (message or "").lower()

    if _any(msg, _ANALYZE_TERMS) and _any(msg, _CONTRACT_TERMS) and _NETWORK_MENTION_RE.search(msg):
        return Intent.CONTRACT_ANALYSIS
    if "gas" in msg and _any(msg, _GAS_TERMS):
        return Intent.GAS_FEES
    if "block" in msg or RECENT_BLOCKS_RE.search(msg):
        return Intent.BLOCKS
    if _any(msg, _TX_TERMS):
        return Intent.TRANSACTIONS
    if "analy" in msg:
        return Intent.ANALYSIS
    if _any(msg, _TOKEN_TERMS):
        return Intent.TOKENS
    return Intent.GENERAL


def extract_chain(message: str) -> ChainId | None:
    """An explicit "on <chain>" beats a bare chain name; ties go to EXTRACTION_ORDER."""
    msg = (message or "").lower()
    for patterns in (_ON_CHAIN_PATTERNS, _BARE_CHAIN_PATTERNS):
        for chain, pattern in patterns:
            if pattern.search(msg):
                return chain
    return None


def extract_address(message: str) -> str | None:
    match = ADDRESS_RE.search(message or "")
    return match.group(0) if match else None


def extract_block_count(message: str) -> int:
    match = BLOCK_COUNT_RE.search(message or "")
    if not match:
        return DEFAULT_BLOCK_COUNT
    return max(1, min(MAX_BLOCK_COUNT, int(match.group(1))))
