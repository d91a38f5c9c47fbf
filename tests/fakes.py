from __future__ import annotations

from typing import Any, Dict, List, Tuple

from app.chat.gas import GasQuote
from chain.chains import ChainId, resolve_chain
from chain.types import GatewayResult

ADDRESS = "0x1111111111111111111111111111111111111111"


class FakeGateway:
    """
    In-memory stand-in for ExplorerGateway.

    Responses are keyed by (operation, chain). A value may be a GatewayResult, an
    exception instance (raised) or plain data (wrapped as success). Missing keys
    produce a 404 failure.
    """

    def __init__(self, responses: Dict[Tuple[str, ChainId], Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[Tuple[str, ChainId]] = []

    def set(self, op: str, chain: ChainId, value: Any) -> None:
        self.responses[(op, chain)] = value

    async def _respond(self, op: str, chain: Any) -> GatewayResult:
        chain_id = resolve_chain(chain)
        self.calls.append((op, chain_id))
        value = self.responses.get((op, chain_id))
        if isinstance(value, Exception):
            raise value
        if isinstance(value, GatewayResult):
            return value
        if value is None:
            return GatewayResult.fail(chain_id, "Not found", status=404)
        return GatewayResult.ok(chain_id, value, status=200)

    async def get_address(self, address, chain=ChainId.ETH):
        return await self._respond("address", chain)

    async def get_address_transactions(self, address, chain=ChainId.ETH, query=None):
        return await self._respond("transactions", chain)

    async def get_address_tokens(self, address, chain=ChainId.ETH, token_type="ERC-20", query=None):
        return await self._respond("tokens", chain)

    async def get_smart_contract(self, address, chain=ChainId.ETH):
        return await self._respond("contract", chain)

    async def get_token(self, address, chain=ChainId.ETH):
        return await self._respond("token", chain)

    async def get_stats(self, chain=ChainId.ETH):
        return await self._respond("stats", chain)

    async def get_recent_blocks(self, chain=ChainId.ETH, limit=5):
        return await self._respond("blocks", chain)


class FakeGenerator:
    def __init__(self, response: str = "generated answer", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str, max_retries: int | None = None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class FakeGasSource:
    name = "Blockscout"

    def __init__(self, result: GatewayResult | None = None) -> None:
        self.result = result
        self.calls: List[ChainId] = []

    async def quote(self, chain: ChainId) -> GatewayResult:
        self.calls.append(chain)
        if self.result is not None:
            return self.result
        return GatewayResult.ok(chain, GasQuote(chain=chain, low=1.0, standard=2.0, fast=3.0, source=self.name))
