"""Admin chat relay routes."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from walkin.shared.errors import ValidationError
from walkin.shared.models import ChatMessage

from ..core.dependencies import get_chat_service, require_admin, require_webhook_secret
from ..services import AdminPrincipal, ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: str = Field(alias="userId")
    message: str
    is_from_user: bool = Field(alias="isFromUser")
    timestamp: datetime

    @classmethod
    def from_message(cls, msg: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=msg.id,
            user_id=msg.user_id,
            message=msg.message,
            is_from_user=msg.is_from_user,
            timestamp=msg.timestamp,
        )


class PostMessageRequest(BaseModel):
    message: str = ""


class AiReplyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(default="", alias="userId")
    message: str = ""


@router.get("/ai-chat/history", response_model=list[ChatMessageResponse])
async def get_chat_history(
    admin: AdminPrincipal = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
) -> list[ChatMessageResponse]:
    """The caller's conversation, oldest first."""
    try:
        history = await service.history(admin.user_id)
        return [ChatMessageResponse.from_message(m) for m in history]
    except Exception as e:
        logger.exception(f"Failed to fetch chat history: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch chat history") from None


@router.post("/ai-chat/message", response_model=ChatMessageResponse)
async def post_chat_message(
    body: PostMessageRequest,
    admin: AdminPrincipal = Depends(require_admin),
    service: ChatService = Depends(get_chat_service),
) -> ChatMessageResponse:
    """Store a message from the admin."""
    try:
        msg = await service.post_user_message(admin.user_id, body.message)
        return ChatMessageResponse.from_message(msg)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to store chat message: {e}")
        raise HTTPException(status_code=500, detail="Failed to store chat message") from None


@router.post("/webhook/ai-response", dependencies=[Depends(require_webhook_secret)])
async def receive_ai_response(
    body: AiReplyRequest,
    service: ChatService = Depends(get_chat_service),
) -> dict:
    """Store an assistant reply and push it to the user's open sockets."""
    try:
        await service.deliver_reply(body.user_id, body.message)
        return {"success": True}
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except Exception as e:
        logger.exception(f"Failed to process AI response: {e}")
        raise HTTPException(status_code=500, detail="Failed to process AI response") from None
