from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1.chat import router as chat_router
from api.v1.dashboard import router as dashboard_router
from app.chat.gas import build_gas_fee_source
from app.chat.orchestrator import ChatOrchestrator
from app.config import Settings, get_settings
from app.core.logging import configure_logging, utc_iso
from app.core.middleware import RequestContextMiddleware
from app.dashboard.stats import DashboardStatsService
from chain.chains import resolve_chain
from chain.explorer import ExplorerGateway
from chain.indexer import IndexerClient
from llm.client import GenerationClient

logger = logging.getLogger(__name__)


@dataclass
class AppComponents:
    orchestrator: ChatOrchestrator
    dashboard: DashboardStatsService
    closers: List[Callable[[], Awaitable[Any]]]


def build_components(settings: Settings) -> AppComponents:
    """
    Construct the process-wide collaborators once, at startup.
    """
    gateway = ExplorerGateway(urls=settings.EXPLORER_URLS, timeout_s=settings.explorer_timeout_s)
    indexer = IndexerClient(
        urls=settings.INDEXER_URLS,
        bearer_token=settings.hypersync_bearer_token,
        timeout_s=settings.indexer_timeout_s,
    )
    generator = GenerationClient(
        model=settings.LLM_MODEL,
        provider=settings.llm_provider,
        api_key=settings.OPENAI_API_KEY,
        temperature=settings.llm_temperature,
        max_output_tokens=settings.llm_max_output_tokens,
        timeout_s=settings.llm_timeout_s,
        max_retries=settings.llm_max_retries,
    )
    gas_source = build_gas_fee_source(settings.gas_fee_source, gateway=gateway, indexer=indexer)
    return AppComponents(
        orchestrator=ChatOrchestrator(
            gateway=gateway,
            generator=generator,
            gas_source=gas_source,
            default_chain=resolve_chain(settings.default_chain),
        ),
        dashboard=DashboardStatsService(
            indexer,
            ttl_s=settings.dashboard_cache_ttl_s,
            block_limit=settings.dashboard_block_limit,
        ),
        closers=[gateway.aclose, indexer.aclose],
    )


def create_app(components: AppComponents | None = None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        built = components or build_components(settings)
        app.state.orchestrator = built.orchestrator
        app.state.dashboard = built.dashboard
        logger.info("ChainScope AI started gas_fee_source=%s", settings.gas_fee_source)
        try:
            yield
        finally:
            for close in built.closers:
                await close()

    app = FastAPI(title="ChainScope AI", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Message is required and must be a string"},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": utc_iso()}

    app.include_router(chat_router)
    app.include_router(dashboard_router)
    return app


app = create_app()
