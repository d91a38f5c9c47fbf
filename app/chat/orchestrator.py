from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Protocol, Sequence

from web3 import Web3

from app.chat.contracts import ChatResult, Intent
from app.chat.gas import GasFeeSource
from app.chat.intents import classify, extract_address, extract_block_count, extract_chain
from app.chat.prompts import synthesize
from app.chat.records import (
    ChainHoldings,
    ChainTransactions,
    contract_report,
    holdings_from_results,
    transactions_from_result,
)
from app.core.context import set_intent
from app.core.logging import utc_iso
from chain.chains import DEFAULT_CHAIN, ChainId
from chain.discovery import discover_active_chains
from chain.explorer import ExplorerGateway
from chain.types import ActiveChain, GatewayResult

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = (
    "I'm sorry, but I encountered a critical error while processing your request. "
    "Please try again later."
)
CONTRACT_CHAIN_MESSAGE = (
    "Please specify which network to analyze the contract on "
    "(e.g., 'analyze contract 0x... on base')."
)


class TextGenerator(Protocol):
    async def generate(self, prompt: str, max_retries: int | None = None) -> str: ...


async def _guarded(chain: ChainId, call: Callable[[], Awaitable[GatewayResult]]) -> GatewayResult:
    """Run one gateway call so that nothing it raises can escape into a fan-out join."""
    try:
        return await call()
    except Exception as e:
        logger.warning("Gateway call raised: %s", e, extra={"chain": chain.value})
        return GatewayResult.fail(chain, str(e) or type(e).__name__)


class ChatOrchestrator:
    """
    Runs one chat turn: classify, extract, dispatch, gather, synthesize, generate.

    Every path returns a ChatResult. Terminal failures are logged with detail and
    turned into a single user-safe message.
    """

    def __init__(
        self,
        *,
        gateway: ExplorerGateway,
        generator: TextGenerator,
        gas_source: GasFeeSource,
        default_chain: ChainId = DEFAULT_CHAIN,
    ) -> None:
        self.gateway = gateway
        self.generator = generator
        self.gas_source = gas_source
        self.default_chain = default_chain

    async def chat(self, message: str) -> ChatResult:
        try:
            return await self._handle(message)
        except Exception:
            logger.exception("Chat turn failed")
            return ChatResult(response=FAILURE_MESSAGE, timestamp=utc_iso(), success=False)
        finally:
            set_intent(None)

    async def _handle(self, message: str) -> ChatResult:
        intent = classify(message)
        set_intent(intent.value)
        requested_chain = extract_chain(message)
        logger.info(
            "Chat turn intent=%s chain=%s",
            intent.value,
            requested_chain.value if requested_chain else "any",
        )

        if intent == Intent.BLOCKS:
            return await self._blocks(message, requested_chain or self.default_chain)
        if intent == Intent.GAS_FEES:
            return await self._gas_fees(message, requested_chain or self.default_chain)

        raw_address = extract_address(message)
        if intent == Intent.GENERAL or raw_address is None:
            logger.info("Answering general question (no address detected)")
            return await self._generate(synthesize(Intent.GENERAL, message, {}), [])

        address = Web3.to_checksum_address(raw_address)
        if intent == Intent.CONTRACT_ANALYSIS:
            if requested_chain is None:
                return self._result(CONTRACT_CHAIN_MESSAGE, [])
            return await self._contract_analysis(message, address, requested_chain)
        if intent == Intent.TRANSACTIONS:
            return await self._transactions(message, address, requested_chain)
        return await self._wallet(intent, message, address, requested_chain)

    # ---------------------------
    # Helpers
    # ---------------------------

    def _result(
        self,
        response: str,
        tools_used: Sequence[str],
        logs: List[str] | None = None,
    ) -> ChatResult:
        return ChatResult(
            response=response,
            tools_used=tuple(tools_used),
            timestamp=utc_iso(),
            logs=tuple(logs) if logs is not None else None,
        )

    async def _generate(
        self,
        prompt: str,
        tools_used: Sequence[str],
        logs: List[str] | None = None,
    ) -> ChatResult:
        response = await self.generator.generate(prompt)
        return self._result(response, tools_used, logs)

    # ---------------------------
    # Addressless intents
    # ---------------------------

    async def _blocks(self, message: str, chain: ChainId) -> ChatResult:
        tools = ["getBlocks"]
        count = extract_block_count(message)
        logger.info("Fetching recent blocks chain=%s count=%s", chain.value, count)
        result = await _guarded(chain, lambda: self.gateway.get_recent_blocks(chain, count))
        if not result.success or not result.data:
            reason = result.error or "The API might be temporarily unavailable."
            return self._result(f"Sorry, I couldn't fetch recent blocks from {chain.value}. {reason}", tools)
        prompt = synthesize(Intent.BLOCKS, message, {"chain": chain, "blocks": result.data})
        return await self._generate(prompt, tools)

    async def _gas_fees(self, message: str, chain: ChainId) -> ChatResult:
        tools = ["getGasFees"]
        logger.info("Fetching gas fee data chain=%s source=%s", chain.value, self.gas_source.name)
        result = await _guarded(chain, lambda: self.gas_source.quote(chain))
        if not result.success:
            reason = result.error or "The network might be temporarily unavailable."
            return self._result(
                f"Sorry, I couldn't fetch current gas fee data for {chain.value.upper()}. {reason}",
                tools,
            )
        return await self._generate(synthesize(Intent.GAS_FEES, message, {"quote": result.data}), tools)

    # ---------------------------
    # Address intents
    # ---------------------------

    async def _contract_analysis(self, message: str, address: str, chain: ChainId) -> ChatResult:
        logger.info("Analyzing contract address=%s chain=%s", address, chain.value)
        contract_res, token_res = await asyncio.gather(
            _guarded(chain, lambda: self.gateway.get_smart_contract(address, chain)),
            _guarded(chain, lambda: self.gateway.get_token(address, chain)),
        )
        report = contract_report(chain, address, contract_res, token_res)
        return await self._generate(
            synthesize(Intent.CONTRACT_ANALYSIS, message, {"report": report}),
            ["getSmartContract", "getToken"],
        )

    async def _transactions(self, message: str, address: str, requested_chain: ChainId | None) -> ChatResult:
        logs: List[str] = []
        active = await discover_active_chains(self.gateway, address, requested_chain)
        chains = [a.chain for a in active]
        logs.append(f"Fetching transactions for {len(chains)} chain(s): {', '.join(c.value for c in chains)}")

        async def fetch(chain: ChainId) -> ChainTransactions:
            res = await _guarded(chain, lambda: self.gateway.get_address_transactions(address, chain))
            if res.success:
                count = len(res.data.get("items") or []) if isinstance(res.data, dict) else 0
                logs.append(f"Fetched {count} transactions for {chain.value}.")
            else:
                logs.append(f"Failed to fetch transactions for {chain.value}: {res.error} (Status: {res.status})")
            return transactions_from_result(res)

        results = await asyncio.gather(*(fetch(c) for c in chains))
        logs.append("Generating analysis for transactions...")
        prompt = synthesize(
            Intent.TRANSACTIONS,
            message,
            {"address": address, "results": results, "requested_chain": requested_chain},
        )
        return await self._generate(prompt, ["getAddress", "getAddressTransactions"], logs)

    async def _wallet(
        self,
        intent: Intent,
        message: str,
        address: str,
        requested_chain: ChainId | None,
    ) -> ChatResult:
        active = await discover_active_chains(self.gateway, address, requested_chain)
        logger.info("Chains to query: %s", ", ".join(a.chain.value for a in active))

        async def fetch(item: ActiveChain) -> ChainHoldings:
            chain = item.chain

            async def address_info() -> GatewayResult:
                # discovery already holds the address payload when the probe succeeded
                if item.info is not None:
                    return GatewayResult.ok(chain, item.info)
                return await self.gateway.get_address(address, chain)

            address_res, tokens_res = await asyncio.gather(
                _guarded(chain, address_info),
                _guarded(chain, lambda: self.gateway.get_address_tokens(address, chain, "ERC-20")),
            )
            return holdings_from_results(chain, address_res, tokens_res)

        holdings = await asyncio.gather(*(fetch(a) for a in active))
        prompt = synthesize(
            intent,
            message,
            {"address": address, "holdings": holdings, "requested_chain": requested_chain},
        )
        return await self._generate(prompt, ["getAddress", "getAddressTokens"])
