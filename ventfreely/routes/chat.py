import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ventfreely.ai.chatbot import chatbot_service
from ventfreely.core.config import settings
from ventfreely.core.dependencies import CurrentUser, get_access, get_current_user
from ventfreely.core.limiter import limiter
from ventfreely.db.session import get_db
from ventfreely.schemas.access import AccessResult
from ventfreely.schemas.chat import ChatRequest
from ventfreely.services.conversations import get_active_history, save_exchange
from ventfreely.services.memory import build_memory_block, get_user_memory, memory_enabled_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def chat(
    request: Request,
    body: ChatRequest,
    user: CurrentUser = Depends(get_current_user),
    access: AccessResult = Depends(get_access),
    db: Session = Depends(get_db),
):
    if not access.has_access:
        raise HTTPException(status_code=402, detail={"error": "PAYWALL", "access": access.to_payload()})

    messages = [m.model_dump() for m in body.messages]

    memory_block = ""
    if await asyncio.to_thread(memory_enabled_for, db, user.id):
        memory = await asyncio.to_thread(get_user_memory, db, user.id)
        memory_block = build_memory_block(memory)

    try:
        reply = await chatbot_service.reply(messages, memory_block)
    except Exception as e:
        logger.error(f"Error in /api/chat for {user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate reply")

    last_user_message = next((m["content"] for m in reversed(messages) if m["role"] == "user"), None)
    if last_user_message:
        # Persistence never costs the user their reply.
        try:
            summary = await chatbot_service.summarize(messages, reply)
            await asyncio.to_thread(save_exchange, db, user.id, last_user_message, reply, summary)
        except Exception as e:
            logger.error(f"Error while updating conversation for {user.id}: {e}")

    return {"reply": reply}


@router.get("/history")
def chat_history(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        conversation_id, messages = get_active_history(db, user.id)
    except Exception as e:
        logger.error(f"history: conversations read error for {user.id}: {e}")
        return {"conversationId": None, "messages": []}

    return {"conversationId": conversation_id, "messages": messages}
