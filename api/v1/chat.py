from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.schemas.chat import ChatMessageRequest, ChatMessageResponse, ErrorResponse
from app.chat.orchestrator import ChatOrchestrator
from app.deps import get_orchestrator

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger(__name__)


@router.post(
    "/message",
    response_model=ChatMessageResponse,
    responses={500: {"model": ErrorResponse}},
)
async def chat_message(
    req: ChatMessageRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    logger.info("Received chat message len=%s", len(req.message))
    result = await orchestrator.chat(req.message)
    if not result.success:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Failed to process message",
                message=result.response,
                timestamp=result.timestamp,
            ).model_dump(),
        )
    return ChatMessageResponse(
        success=True,
        response=result.response,
        toolsUsed=list(result.tools_used),
        timestamp=result.timestamp,
        logs=list(result.logs) if result.logs is not None else None,
    )
