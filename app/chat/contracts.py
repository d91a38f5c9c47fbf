from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Intent(str, Enum):
    CONTRACT_ANALYSIS = "contract_analysis"
    GAS_FEES = "gas_fees"
    BLOCKS = "blocks"
    TRANSACTIONS = "transactions"
    ANALYSIS = "analysis"
    TOKENS = "tokens"
    GENERAL = "general"


class ChatResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    response: str
    tools_used: tuple[str, ...] = Field(default_factory=tuple)
    timestamp: str
    logs: tuple[str, ...] | None = None
    success: bool = True
