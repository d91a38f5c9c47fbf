from __future__ import annotations

import json
from functools import lru_cache
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # generation
    llm_provider: str = "openai"
    llm_model: str = "gpt-4o-mini"  # safe default- override via env
    openai_api_key: str | None = None
    llm_temperature: float = 0.7
    llm_max_output_tokens: int = 2048
    llm_timeout_s: int = 60
    llm_max_retries: int = 3

    # explorer / indexer
    explorer_timeout_s: float = 30.0
    explorer_urls: str = ""  # JSON override, e.g. '{"eth":"https://eth.blockscout.com/api/v2"}'
    indexer_urls: str = ""
    indexer_timeout_s: float = 30.0
    hypersync_bearer_token: str | None = None
    default_chain: str = "eth"
    gas_fee_source: str = "explorer"  # explorer | indexer

    # dashboard
    dashboard_cache_ttl_s: float = 8.0
    dashboard_block_limit: int = 5

    # app
    log_level: str = "INFO"
    log_json: bool = False
    allowed_origins: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def LLM_MODEL(self) -> str:
        return self.llm_model

    @property
    def OPENAI_API_KEY(self) -> str | None:
        return self.openai_api_key

    @property
    def EXPLORER_URLS(self) -> Dict[str, str]:
        return _parse_url_map(self.explorer_urls, "EXPLORER_URLS")

    @property
    def INDEXER_URLS(self) -> Dict[str, str]:
        return _parse_url_map(self.indexer_urls, "INDEXER_URLS")

    @property
    def ALLOWED_ORIGINS(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


def _parse_url_map(raw: str, name: str) -> Dict[str, str]:
    """
    Parse a chain -> base URL override map.

    Expected env format:
      EXPLORER_URLS='{"eth":"https://eth.blockscout.com/api/v2"}'
    """
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except Exception as e:
        raise ValueError(f"{name} must be valid JSON") from e
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a JSON object")

    urls: Dict[str, str] = {}
    for k, v in data.items():
        if not isinstance(v, str) or not v:
            raise ValueError(f"Invalid URL for chain {k} in {name}")
        urls[str(k).lower()] = v.rstrip("/")
    return urls


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader (process-level).
    """
    return Settings()
