"""Normalized per-chain records handed to the prompt synthesizers.

Builders here turn raw explorer payloads into plain values (floats in native or
token units, strings for identifiers). They are pure and never raise on odd
upstream shapes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chain.chains import ChainId, native_symbol
from chain.types import GatewayResult
from chain.units import normalize

MAX_TRANSACTIONS_PER_CHAIN = 10


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _hash_of(party: Any) -> str:
    if isinstance(party, dict):
        return party.get("hash") or "N/A"
    return party or "N/A"


@dataclass(frozen=True)
class TransactionRow:
    hash: str
    sender: str
    recipient: str
    value: float
    method: str
    timestamp: str
    status: str


@dataclass
class ChainTransactions:
    chain: ChainId
    success: bool
    rows: List[TransactionRow] = field(default_factory=list)
    error: Optional[str] = None
    has_more: bool = False

    @property
    def native_symbol(self) -> str:
        return native_symbol(self.chain)


@dataclass(frozen=True)
class TokenHolding:
    name: str
    symbol: str
    address: Optional[str]
    balance: float
    usd: float


@dataclass
class ChainHoldings:
    chain: ChainId
    native_balance: float = 0.0
    native_usd: float = 0.0
    tokens: List[TokenHolding] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def native_symbol(self) -> str:
        return native_symbol(self.chain)

    @property
    def usd_value(self) -> float:
        return self.native_usd + sum(t.usd for t in self.tokens)

    @property
    def is_empty_failure(self) -> bool:
        return bool(self.error) and not self.tokens and self.native_balance == 0


@dataclass
class ContractReport:
    chain: ChainId
    address: str
    contract: Optional[Dict[str, Any]] = None
    contract_error: Optional[str] = None
    token: Optional[Dict[str, Any]] = None
    token_error: Optional[str] = None
    token_missing: bool = False


def transactions_from_result(result: GatewayResult) -> ChainTransactions:
    if not result.success:
        return ChainTransactions(chain=result.chain, success=False, error=result.error or "Unknown error")

    data = result.data if isinstance(result.data, dict) else {}
    items = data.get("items") if isinstance(data.get("items"), list) else []
    rows = [
        TransactionRow(
            hash=tx.get("hash") or "N/A",
            sender=_hash_of(tx.get("from")),
            recipient=_hash_of(tx.get("to")),
            value=normalize(tx.get("value") or "0", 18),
            method=tx.get("method") or "Transfer",
            timestamp=tx.get("timestamp") or "N/A",
            status=tx.get("status") or "N/A",
        )
        for tx in items[:MAX_TRANSACTIONS_PER_CHAIN]
        if isinstance(tx, dict)
    ]
    return ChainTransactions(
        chain=result.chain,
        success=True,
        rows=rows,
        has_more=bool(data.get("next_page_params")),
    )


def holdings_from_results(
    chain: ChainId,
    address_result: GatewayResult,
    tokens_result: GatewayResult,
) -> ChainHoldings:
    holdings = ChainHoldings(chain=chain)
    errors: List[str] = []

    if address_result.success and isinstance(address_result.data, dict):
        info = address_result.data
        if info.get("coin_balance"):
            holdings.native_balance = normalize(info["coin_balance"], info.get("coin_decimals"))
        rate = _float(info.get("exchange_rate"))
        if rate > 0:
            holdings.native_usd = holdings.native_balance * rate
    elif not address_result.success:
        errors.append(f"Failed to fetch address info: {address_result.error}")

    if tokens_result.success and isinstance(tokens_result.data, dict):
        for item in tokens_result.data.get("items") or []:
            if not isinstance(item, dict):
                continue
            meta = item.get("token") or {}
            balance = normalize(item.get("value") or "0", meta.get("decimals"))
            if balance <= 0:
                continue
            rate = _float(meta.get("exchange_rate"))
            holdings.tokens.append(
                TokenHolding(
                    name=meta.get("name") or meta.get("symbol") or "Unknown",
                    symbol=meta.get("symbol") or "UNKNOWN",
                    address=meta.get("address") or meta.get("address_hash"),
                    balance=balance,
                    usd=balance * rate if rate else 0.0,
                )
            )
    elif not tokens_result.success:
        errors.append(f"Failed to fetch tokens: {tokens_result.error}")

    if errors:
        holdings.error = "; ".join(errors)
    return holdings


def contract_report(
    chain: ChainId,
    address: str,
    contract_result: GatewayResult,
    token_result: GatewayResult,
) -> ContractReport:
    report = ContractReport(chain=chain, address=address)
    if contract_result.success and isinstance(contract_result.data, dict):
        report.contract = contract_result.data
    else:
        report.contract_error = contract_result.error or "Unknown error"

    if token_result.success and isinstance(token_result.data, dict):
        token = dict(token_result.data)
        if token.get("total_supply"):
            token["total_supply_normalized"] = normalize(token["total_supply"], token.get("decimals"))
        report.token = token
    elif token_result.status == 404:
        report.token_missing = True
    else:
        report.token_error = token_result.error or "Unknown error"
    return report
