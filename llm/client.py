from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

UNAVAILABLE_STATUS = 503


class GenerationError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GenerationUnavailableError(GenerationError):
    """Upstream signalled transient unavailability (retryable)."""


def _status_of(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


class GenerationClient:
    """
    Sole entry point to the text-generation model.

    generate() retries only on the unavailable status with exponential backoff
    (2**attempt seconds, attempt 0-based); any other failure propagates at once.
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        provider: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        timeout_s: int = 60,
        max_retries: int = 3,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.model = model
        self.provider = provider
        self.api_key = api_key
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self._sleep = sleep

    async def generate(self, prompt: str, max_retries: int | None = None) -> str:
        attempts = max(1, max_retries if max_retries is not None else self.max_retries)
        last_error: BaseException | None = None

        for attempt in range(attempts):
            try:
                return await self._call_provider(prompt=prompt)
            except Exception as e:
                status = _status_of(e)
                logger.warning(
                    "Generation attempt %s/%s failed status=%s: %s",
                    attempt + 1,
                    attempts,
                    status,
                    e,
                )
                if status != UNAVAILABLE_STATUS:
                    if isinstance(e, GenerationError):
                        raise
                    raise GenerationError(str(e) or type(e).__name__, status=status) from e
                last_error = e
                if attempt < attempts - 1:
                    wait_ms = 2 ** attempt * 1000
                    logger.info("Waiting %sms before retry", wait_ms)
                    await self._sleep(wait_ms / 1000)

        raise GenerationUnavailableError(
            f"Generation unavailable after {attempts} attempts",
            status=UNAVAILABLE_STATUS,
        ) from last_error

    async def _call_provider(self, *, prompt: str) -> str:
        if self.provider == "openai":
            return await self._call_openai(prompt=prompt)
        raise GenerationError("LLM provider not configured")

    async def _call_openai(self, *, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("OPENAI_API_KEY is not set")

        from langchain_core.messages import HumanMessage
        from langchain_openai import ChatOpenAI

        logger.info("LLM call start provider=openai model=%s", self.model or "gpt-4o-mini")
        llm = ChatOpenAI(
            model=self.model or "gpt-4o-mini",
            temperature=self.temperature,
            max_tokens=self.max_output_tokens,
            timeout=self.timeout_s,
            api_key=self.api_key,
            max_retries=0,
        )
        response = await llm.ainvoke([HumanMessage(content=prompt)])
        output_text = response.content
        if not output_text:
            raise GenerationError("OpenAI returned empty content")
        if not isinstance(output_text, str):
            output_text = json.dumps(output_text)
        logger.info("LLM call success provider=openai output_len=%s", len(output_text))
        return output_text
