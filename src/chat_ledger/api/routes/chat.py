import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from chat_ledger.api.dependencies import get_orchestrator
from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.logger import get_logger
from chat_ledger.models import ChatReply, ChatRequest
from chat_ledger.orchestrator import CommandOrchestrator

logger = get_logger(__name__)

router = APIRouter()


@router.post("/chat", response_model=ChatReply, response_model_by_alias=True)
async def chat(
    req: ChatRequest,
    orchestrator: Annotated[CommandOrchestrator, Depends(get_orchestrator)],
) -> ChatReply:
    try:
        return await asyncio.to_thread(orchestrator.process, req)
    except ProfileStoreError as exc:
        logger.error("[CHAT] Profile store failure for user %s: %s", exc.user_id, exc)
        raise HTTPException(status_code=500, detail="Failed to persist user profile") from exc
