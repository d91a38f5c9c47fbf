from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from app.chat.contracts import Intent
from app.chat.gas import GasQuote
from app.chat.records import ChainHoldings, ChainTransactions, ContractReport
from chain.chains import ChainId
from chain.types import BlockRecord

MAX_TOKENS_PER_CHAIN = 10

GENERAL_SYSTEM = (
    "You are ChainScope AI, a blockchain analytics assistant with real-time access to "
    "blockchain data.\n\n"
    "**YOUR CAPABILITIES:**\n"
    "- Direct access to blockchain explorers and an indexer for live data\n"
    "- Current gas fees, recent blocks and network statistics\n"
    "- Wallet, transaction and smart contract analysis\n"
    "- Supported networks: Ethereum, Polygon, Base, Optimism, Arbitrum and Gnosis\n\n"
    "**IMPORTANT INSTRUCTIONS:**\n"
    "- NEVER say you cannot access real-time data\n"
    "- NEVER suggest external websites or tools\n"
    "- NEVER state specific on-chain numbers; none were fetched for this question\n"
    "- If the user wants wallet data, ask them to include a 0x address in the message\n"
)

FORBIDDEN_COMMON = (
    "- DO NOT generate code examples in ANY programming language\n"
    "- DO NOT suggest external websites, wallets or developer tools\n"
    "- DO NOT say you cannot access live or real-time data; the data is provided above\n"
    "- DO NOT state numbers that are not present in the data above\n"
)

# Canonical qualitative bands in Gwei: (exclusive upper bound, label), ascending.
GAS_PRICE_BANDS: Dict[ChainId, List[Tuple[float, str]]] = {
    ChainId.ETH: [(1, "Very Low"), (20, "Low"), (50, "Medium"), (100, "High"), (float("inf"), "Very High")],
    ChainId.POLYGON: [(30, "Low"), (80, "Medium"), (150, "High"), (float("inf"), "Very High")],
    ChainId.BASE: [(0.01, "Low"), (0.1, "Medium"), (float("inf"), "High")],
    ChainId.OPTIMISM: [(0.01, "Low"), (0.1, "Medium"), (float("inf"), "High")],
    ChainId.ARBITRUM: [(0.01, "Low"), (0.1, "Medium"), (float("inf"), "High")],
}


def classify_gas_price(chain: ChainId, gwei: float) -> str | None:
    for upper, label in GAS_PRICE_BANDS.get(chain, []):
        if gwei < upper:
            return label
    return None


def _band_text(chain: ChainId) -> str:
    bands = GAS_PRICE_BANDS.get(chain)
    if not bands:
        return f"- No fixed ranges are defined for {chain.value.upper()}; do not label the price as high or low\n"
    parts = []
    lower = None
    for upper, label in bands:
        if lower is None:
            parts.append(f"<{upper:g} Gwei = {label}")
        elif upper == float("inf"):
            parts.append(f">{lower:g} Gwei = {label}")
        else:
            parts.append(f"{lower:g}-{upper:g} Gwei = {label}")
        lower = upper
    return f"- {chain.value.upper()}: " + ", ".join(parts) + "\n"


def _question(user_message: str, label: str = "User Question") -> str:
    return f'{label}: "{user_message}"\n\n'


def _short_hash(value: str | None) -> str:
    if not value or value == "N/A":
        return "N/A"
    if len(value) <= 20:
        return value
    return f"{value[:10]}...{value[-8:]}"


def _format_timestamp(value: str | None) -> str:
    if not value:
        return "N/A"
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return ts.strftime("%b %d, %Y, %I:%M:%S %p UTC")


# ---------------------------
# General
# ---------------------------

def build_general_prompt(user_message: str) -> str:
    return (
        GENERAL_SYSTEM
        + "\n"
        + _question(user_message)
        + "Provide a helpful response. If the question is about gas fees, recent blocks, "
        "or blockchain data, acknowledge that you have access and offer to help."
    )


# ---------------------------
# Gas fees
# ---------------------------

def build_gas_fees_prompt(user_message: str, quote: GasQuote) -> str:
    chain = quote.chain.value.upper()
    band = classify_gas_price(quote.chain, quote.standard)

    prompt = "You are a blockchain data assistant helping users understand current gas fees.\n\n"
    prompt += _question(user_message)
    prompt += f"## Current Gas Fee Information for {chain} Network\n\n"
    if quote.latest_block is not None:
        prompt += "**Latest Block Data:**\n"
        prompt += f"- Block Number: {quote.latest_block.number}\n"
        prompt += f"- Timestamp: {_format_timestamp(quote.latest_block.timestamp)}\n"
        prompt += f"- Blocks Analyzed: {quote.blocks_analyzed}\n\n"
    prompt += f"**Gas Prices (from {quote.source}):**\n"
    prompt += f"- Low: {quote.low:.3f} Gwei\n"
    prompt += f"- Standard: {quote.standard:.3f} Gwei\n"
    prompt += f"- Fast: {quote.fast:.3f} Gwei\n"
    if band:
        prompt += f"- Classification of the standard price: {band}\n"
    prompt += "\n---\n\n"
    prompt += "## STRICT RESPONSE INSTRUCTIONS:\n\n"
    required = [
        f'State the current STANDARD gas price: "{quote.standard:.3f} Gwei"',
        f"Mention the range: Low ({quote.low:.3f}), Standard ({quote.standard:.3f}), Fast ({quote.fast:.3f})",
    ]
    if quote.chain in GAS_PRICE_BANDS:
        required.append("Say whether this is low, medium or high using ONLY the ranges below")
    if quote.blocks_analyzed:
        required.append(f"Mention this is based on {quote.blocks_analyzed} recent blocks from {chain}")
    required.append(f"Credit {quote.source} for this real-time data")
    prompt += "**REQUIRED:**\n"
    prompt += "".join(f"{i}. {item}\n" for i, item in enumerate(required, start=1)) + "\n"
    prompt += "**CONTEXT FOR GAS FEES:**\n"
    prompt += _band_text(quote.chain)
    prompt += "\n**ABSOLUTELY FORBIDDEN:**\n"
    prompt += FORBIDDEN_COMMON
    prompt += "- DO NOT provide historical trends\n\n"
    prompt += "**Response Format:**\n"
    prompt += "Write in natural, conversational language. Be concise (2-4 sentences). Focus on the STANDARD gas price.\n"
    return prompt


# ---------------------------
# Blocks
# ---------------------------

def build_blocks_prompt(user_message: str, chain: ChainId, blocks: Sequence[BlockRecord]) -> str:
    network = chain.value.upper()
    prompt = "You are a blockchain data assistant helping users understand blockchain block information.\n\n"
    prompt += _question(user_message)

    if not blocks:
        prompt += "## No Block Data Available\n\n"
        prompt += f"No recent block data could be retrieved from the {network} network at this time.\n\n"
        prompt += "**Your Response Instructions:**\n"
        prompt += "- Inform the user that block data couldn't be retrieved\n"
        prompt += "- Keep your response brief and helpful\n"
        prompt += "- Do NOT provide code examples or technical workarounds\n"
        return prompt

    ordered = sorted(blocks, key=lambda b: b.number, reverse=True)
    prompt += f"## Recent Blocks from {network} Network\n\n"
    prompt += f"Successfully retrieved {len(ordered)} recent block(s):\n\n"
    prompt += "| Block # | Timestamp | Transactions | Gas Used | Hash (Short) |\n"
    prompt += "|---------|-----------|--------------|----------|--------------|\n"
    for block in ordered:
        prompt += (
            f"| {block.number} | {_format_timestamp(block.timestamp)} | {block.transaction_count} "
            f"| {block.gas_used:,} | {_short_hash(block.hash)} |\n"
        )
    prompt += "\n---\n\n"
    prompt += "## STRICT RESPONSE INSTRUCTIONS:\n\n"
    prompt += "**REQUIRED:**\n"
    prompt += "1. Present the block data table exactly as shown above\n"
    prompt += "2. Add a friendly 1-2 sentence introduction before the table\n"
    prompt += "3. Optionally add 1-2 brief observations about the blocks (transaction volume, time between blocks)\n"
    prompt += "4. Credit the block explorer for providing this data\n\n"
    prompt += "**ABSOLUTELY FORBIDDEN:**\n"
    prompt += FORBIDDEN_COMMON
    prompt += "- DO NOT explain how to fetch this data programmatically\n"
    prompt += "- DO NOT add fields or data not present in the table above\n\n"
    prompt += "**Response Format:**\n"
    prompt += "Write in natural, conversational language. Present the table clearly. Keep it concise.\n"
    return prompt


# ---------------------------
# Transactions
# ---------------------------

def build_transactions_prompt(
    user_message: str,
    address: str,
    results: Iterable[ChainTransactions],
    requested_chain: ChainId | None = None,
) -> str:
    results = list(results)
    prompt = _question(user_message, "User asked")
    if requested_chain:
        prompt += f"# Transaction History for {address} on {requested_chain.value.upper()}\n\n"
    else:
        prompt += f"# Multi-chain Transaction History for {address}\n\n"

    for result in results:
        prompt += f"## {result.chain.value.upper()} Network\n"
        if not result.success:
            prompt += f"- Error fetching transactions: {result.error or 'Unknown error'}\n\n"
            continue
        if not result.rows:
            prompt += "- No recent transactions found.\n\n"
            continue
        prompt += f"- Showing the latest {len(result.rows)} transactions:\n"
        for i, tx in enumerate(result.rows, start=1):
            prompt += f"  {i}. **Hash:** {tx.hash}\n"
            prompt += f"     - **From:** {tx.sender}\n"
            prompt += f"     - **To:** {tx.recipient}\n"
            prompt += f"     - **Value:** {tx.value:.6f} {result.native_symbol}\n"
            prompt += f"     - **Method:** {tx.method}\n"
            prompt += f"     - **Time:** {tx.timestamp}\n"
            prompt += f"     - **Status:** {tx.status}\n"
        if result.has_more:
            prompt += "- (More transactions may be available for this chain)\n"
        prompt += "\n"

    if results and all(r.success and not r.rows for r in results):
        prompt += "No transactions found on the checked chain(s).\n\n"

    prompt += "\n## Instructions\n"
    prompt += "Based *only* on the data provided above, provide a clear, concise summary of the transaction history. "
    if requested_chain:
        prompt += f"Focus the summary on the {requested_chain.value.upper()} network. "
    else:
        prompt += "Summarize activity across all chains shown. "
    prompt += (
        "Highlight the number of recent transactions found per chain, any notable methods or value "
        "transfers, and mention any errors encountered.\n\n"
    )
    prompt += "**FORBIDDEN:**\n" + FORBIDDEN_COMMON + "\n"
    prompt += "Use natural language and markdown formatting."
    return prompt


# ---------------------------
# Wallet holdings (tokens / analysis)
# ---------------------------

def build_wallet_prompt(
    user_message: str,
    address: str,
    holdings: Iterable[ChainHoldings],
    requested_chain: ChainId | None = None,
) -> str:
    holdings = list(holdings)
    prompt = _question(user_message, "User asked")
    if requested_chain:
        prompt += f"# Wallet Analysis for {address} (Filtered for {requested_chain.value.upper()})\n\n"
    else:
        prompt += f"# Multi-chain Wallet Analysis for {address}\n\n"

    consolidated = 0.0
    for data in holdings:
        prompt += f"## {data.chain.value.upper()} Network\n"
        if data.is_empty_failure:
            prompt += f"- Error fetching data: {data.error}\n\n"
            continue
        prompt += f"- Native balance ({data.native_symbol}): {data.native_balance:.6f}\n"
        if not data.tokens:
            prompt += "- No ERC-20 tokens found.\n"
        else:
            shown = data.tokens[:MAX_TOKENS_PER_CHAIN]
            prompt += f"- Token holdings (Top {len(shown)}):\n"
            for tok in shown:
                usd = f" (≈ ${tok.usd:.2f})" if tok.usd else ""
                prompt += f"  - {tok.name} ({tok.symbol}): {tok.balance:.6f}{usd}\n"
            if len(data.tokens) > MAX_TOKENS_PER_CHAIN:
                prompt += f"  - ...and {len(data.tokens) - MAX_TOKENS_PER_CHAIN} more tokens.\n"
        if data.error:
            prompt += f"- Note: Encountered issues fetching some data ({data.error})\n"
        prompt += f"\n- Chain subtotal (USD): ${data.usd_value:.2f}\n\n"
        consolidated += data.usd_value

    if not requested_chain and len(holdings) > 1:
        prompt += "# Consolidated Portfolio Value\n"
        prompt += f"- Total USD value across chains: ${consolidated:.2f}\n\n"

    prompt += "\n## Instructions\n"
    prompt += (
        "Provide a clear, human-readable summary. If multiple chains were analyzed, give a consolidated "
        "overview first, then break down by chain. If filtered for one chain, focus on that. Highlight "
        "notable assets and USD values. Mention any errors encountered.\n\n"
    )
    prompt += "**FORBIDDEN:**\n" + FORBIDDEN_COMMON + "\n"
    prompt += "Use ONLY the data provided. Be accurate and clear. Use markdown formatting."
    return prompt


# ---------------------------
# Contract analysis
# ---------------------------

def _abi_counts(abi: Any) -> Tuple[int, int] | None:
    if not isinstance(abi, list):
        return None
    functions = sum(1 for item in abi if isinstance(item, dict) and item.get("type") == "function")
    events = sum(1 for item in abi if isinstance(item, dict) and item.get("type") == "event")
    return functions, events


def build_contract_analysis_prompt(user_message: str, report: ContractReport) -> str:
    network = report.chain.value.upper()
    prompt = _question(user_message, "Smart Contract Analysis Request")
    prompt += f"Analyzing contract {report.address} on {network} network\n\n"

    prompt += "## Smart Contract Information\n"
    contract = report.contract
    if contract is not None:
        prompt += f"- Name: {contract.get('name') or 'Not Available'}\n"
        prompt += f"- Verified: {'Yes' if contract.get('is_verified') else 'No'}\n"
        if contract.get("is_verified"):
            prompt += f"- Verification Date: {contract.get('verified_at') or 'N/A'}\n"
            prompt += f"- Compiler Version: {contract.get('compiler_version') or 'N/A'}\n"
            prompt += f"- Optimization: {'Enabled' if contract.get('optimization_enabled') else 'Disabled'}\n"
            prompt += f"- EVM Version: {contract.get('evm_version') or 'N/A'}\n"
            counts = _abi_counts(contract.get("abi"))
            if counts:
                prompt += f"- Functions Found: {counts[0]}\n"
                prompt += f"- Events Found: {counts[1]}\n"
        prompt += f"- Is Proxy: {'Yes' if contract.get('is_proxy') else 'No'}\n"
        if contract.get("is_proxy") and contract.get("implementation_address"):
            prompt += f"  - Implementation Address: {contract['implementation_address']}\n"
            prompt += f"  - Implementation Name: {contract.get('implementation_name') or 'N/A'}\n"
    else:
        prompt += f"- Error: failed to fetch contract data: {report.contract_error}\n"

    prompt += "\n## Token Information\n"
    token = report.token
    if token is not None:
        prompt += f"- Token Type: {token.get('type') or 'N/A'}\n"
        prompt += f"- Name: {token.get('name') or 'N/A'}\n"
        prompt += f"- Symbol: {token.get('symbol') or 'N/A'}\n"
        prompt += f"- Decimals: {token.get('decimals') or 'N/A'}\n"
        if "total_supply_normalized" in token:
            prompt += f"- Total Supply: {token['total_supply_normalized']:,.4f} {token.get('symbol') or ''}".rstrip() + "\n"
        prompt += f"- Holders: {token.get('holders') or token.get('holders_count') or 'N/A'}\n"
        if token.get("circulating_market_cap"):
            try:
                prompt += f"- Market Cap: ${float(token['circulating_market_cap']):,.2f}\n"
            except (TypeError, ValueError):
                pass
    elif report.token_missing:
        prompt += "- This address is not recognized as a standard token contract.\n"
    else:
        prompt += f"- Error: failed to fetch token data: {report.token_error}\n"

    prompt += "\n## Analysis Instructions\n"
    prompt += f"Based on the above data from {network} network, provide a detailed analysis:\n"
    prompt += "1. Contract type and purpose\n"
    prompt += "2. Key features and functionality\n"
    prompt += "3. Token details (if applicable)\n"
    prompt += "4. Notable characteristics\n"
    prompt += "5. Security considerations\n\n"
    prompt += "**FORBIDDEN:**\n" + FORBIDDEN_COMMON
    prompt += "- DO NOT reproduce or invent contract source code\n\n"
    prompt += "Format the response with markdown headers and bullet points.\n"
    prompt += f"Focus ONLY on data from {network} network.\n"
    return prompt


def synthesize(intent: Intent, user_message: str, data: Dict[str, Any]) -> str:
    """
    Render the prompt for an intent from already-normalized data.

    Expected keys per intent:
      gas_fees: quote; blocks: chain, blocks; transactions: address, results,
      requested_chain; analysis/tokens: address, holdings, requested_chain;
      contract_analysis: report.
    """
    if intent == Intent.GAS_FEES:
        return build_gas_fees_prompt(user_message, data["quote"])
    if intent == Intent.BLOCKS:
        return build_blocks_prompt(user_message, data["chain"], data.get("blocks") or [])
    if intent == Intent.TRANSACTIONS:
        return build_transactions_prompt(
            user_message, data["address"], data.get("results") or [], data.get("requested_chain")
        )
    if intent in (Intent.ANALYSIS, Intent.TOKENS):
        return build_wallet_prompt(
            user_message, data["address"], data.get("holdings") or [], data.get("requested_chain")
        )
    if intent == Intent.CONTRACT_ANALYSIS:
        return build_contract_analysis_prompt(user_message, data["report"])
    return build_general_prompt(user_message)
