from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from chain.chains import EXPLORER_URLS, ChainId, build_url_table, resolve_chain
from chain.types import BlockRecord, GatewayResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 30.0


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"


def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class ExplorerGateway:
    """
    Read-only accessor over a Blockscout-style REST API (v2), one base URL per chain.

    Every operation:
    - resolves the chain (unknown values fall back to the default chain)
    - performs exactly one GET with a fixed timeout
    - returns a GatewayResult and never raises
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        urls: Dict[str, str] | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self.endpoints = build_url_table(EXPLORER_URLS, urls)
        self.timeout_s = timeout_s
        self._client = client or httpx.AsyncClient(
            timeout=timeout_s,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def get_endpoint(self, chain: str | ChainId | None) -> str:
        return self.endpoints[resolve_chain(chain)]

    async def _request(
        self,
        chain: str | ChainId | None,
        path: str,
        params: Dict[str, Any] | None = None,
    ) -> GatewayResult:
        chain_id = resolve_chain(chain)
        url = f"{self.endpoints[chain_id]}{path}"
        try:
            response = await self._client.get(url, params=params or None, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            logger.warning("Explorer request failed chain=%s url=%s: %s", chain_id.value, url, e)
            return GatewayResult.fail(chain_id, str(e) or type(e).__name__)

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "Explorer error url=%s: %s",
                url,
                message,
                extra={"chain": chain_id.value, "status": response.status_code},
            )
            return GatewayResult.fail(chain_id, message, status=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("Explorer returned invalid JSON chain=%s url=%s", chain_id.value, url)
            return GatewayResult.fail(chain_id, f"invalid JSON: {e}", status=response.status_code)
        if data is None:
            return GatewayResult.fail(chain_id, "empty response body", status=response.status_code)

        return GatewayResult.ok(chain_id, data, status=response.status_code)

    # ---------------------------
    # Address reads
    # ---------------------------

    async def get_address(self, address: str, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        logger.info("Fetching address info address=%s chain=%s", address, chain)
        return await self._request(chain, f"/addresses/{address}")

    async def get_address_transactions(
        self,
        address: str,
        chain: str | ChainId = ChainId.ETH,
        query: Dict[str, Any] | None = None,
    ) -> GatewayResult:
        logger.info("Fetching transactions address=%s chain=%s", address, chain)
        return await self._request(chain, f"/addresses/{address}/transactions", query)

    async def get_address_tokens(
        self,
        address: str,
        chain: str | ChainId = ChainId.ETH,
        token_type: str = "ERC-20",
        query: Dict[str, Any] | None = None,
    ) -> GatewayResult:
        logger.info("Fetching %s tokens address=%s chain=%s", token_type, address, chain)
        params = dict(query or {})
        params["type"] = token_type
        return await self._request(chain, f"/addresses/{address}/tokens", params)

    # ---------------------------
    # Entity reads
    # ---------------------------

    async def get_transaction(self, tx_hash: str, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        return await self._request(chain, f"/transactions/{tx_hash}")

    async def get_block(self, block: str | int, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        return await self._request(chain, f"/blocks/{block}")

    async def get_smart_contract(self, address: str, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        logger.info("Fetching smart contract address=%s chain=%s", address, chain)
        return await self._request(chain, f"/smart-contracts/{address}")

    async def get_token(self, address: str, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        logger.info("Fetching token info address=%s chain=%s", address, chain)
        return await self._request(chain, f"/tokens/{address}")

    async def search(self, query: str, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        return await self._request(chain, "/search", {"q": query})

    async def get_stats(self, chain: str | ChainId = ChainId.ETH) -> GatewayResult:
        return await self._request(chain, "/stats")

    async def get_recent_blocks(self, chain: str | ChainId = ChainId.ETH, limit: int = 5) -> GatewayResult:
        """
        Fetch the paginated block list and reshape it into BlockRecords.

        A response without an `items` list is a failure, not an empty success.
        """
        result = await self._request(chain, "/blocks", {"type": "block"})
        if not result.success:
            return result

        items = result.data.get("items") if isinstance(result.data, dict) else None
        if not isinstance(items, list):
            logger.warning("Block list response missing items chain=%s", result.chain.value)
            return GatewayResult.fail(result.chain, "No blocks found in API response", status=result.status)

        blocks = [
            BlockRecord(
                number=_to_int(item.get("height")),
                timestamp=item.get("timestamp"),
                hash=item.get("hash") or "N/A",
                gas_used=_to_int(item.get("gas_used")),
                size=_to_int(item.get("size")),
                transaction_count=_to_int(item.get("tx_count", item.get("transaction_count"))),
                chain=result.chain,
                base_fee_per_gas=_to_int(item.get("base_fee_per_gas")),
            )
            for item in items[: max(limit, 0)]
            if isinstance(item, dict)
        ]
        logger.info("Formatted %s blocks chain=%s", len(blocks), result.chain.value)
        return GatewayResult.ok(result.chain, blocks, status=result.status)
