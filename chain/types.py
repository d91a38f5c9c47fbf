"""Data types shared by the explorer gateway, indexer and discovery."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chain.chains import ChainId


@dataclass(frozen=True)
class GatewayResult:
    """Uniform envelope returned by every explorer/indexer read."""
    success: bool
    chain: ChainId
    data: Any = None
    error: Optional[str] = None
    status: Optional[int] = None

    def __post_init__(self) -> None:
        if self.success and (self.data is None or self.error is not None):
            raise ValueError("successful GatewayResult needs data and no error")
        if not self.success and not self.error:
            raise ValueError("failed GatewayResult needs an error message")

    @classmethod
    def ok(cls, chain: ChainId, data: Any, status: Optional[int] = None) -> "GatewayResult":
        return cls(success=True, chain=chain, data=data, status=status)

    @classmethod
    def fail(cls, chain: ChainId, error: str, status: Optional[int] = None) -> "GatewayResult":
        return cls(success=False, chain=chain, error=error or "Unknown error", status=status)


@dataclass(frozen=True)
class BlockRecord:
    number: int
    timestamp: Optional[str]
    hash: str
    gas_used: int
    size: int
    transaction_count: int
    chain: ChainId
    base_fee_per_gas: int = 0
    avg_gas_price: int = 0
    gas_fee: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "timestamp": self.timestamp,
            "hash": self.hash,
            "gasUsed": self.gas_used,
            "size": self.size,
            "transactionCount": self.transaction_count,
            "baseFeePerGas": self.base_fee_per_gas,
            "avgGasPrice": self.avg_gas_price,
            "gasFee": self.gas_fee,
            "chain": self.chain.value,
        }


@dataclass(frozen=True)
class ActiveChain:
    """A chain where the queried address shows presence, or the one explicitly requested."""
    chain: ChainId
    info: Optional[Dict[str, Any]] = None


@dataclass
class IndexerBlocks:
    chain: ChainId
    blocks: List[BlockRecord] = field(default_factory=list)
    archive_height: Optional[int] = None
