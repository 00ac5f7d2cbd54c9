"""Admin chat relay: store-and-forward over the broadcast hub."""

from __future__ import annotations

import logging

from walkin.shared.errors import ValidationError
from walkin.shared.models import ChatMessage
from walkin.shared.repositories import ChatStore

from .broadcast_hub import BroadcastHub

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, store: ChatStore, hub: BroadcastHub) -> None:
        self.store = store
        self.hub = hub

    async def history(self, user_id: str) -> list[ChatMessage]:
        return await self.store.get_history(user_id)

    async def post_user_message(self, user_id: str, message: str) -> ChatMessage:
        """Store a message written by the user."""
        if not message or not message.strip():
            raise ValidationError("message must not be empty")
        return await self.store.add_message(user_id, message, is_from_user=True)

    async def deliver_reply(self, user_id: str, message: str) -> ChatMessage:
        """Store a system reply, then push it to the user's live connections."""
        if not user_id:
            raise ValidationError("userId is required")
        if not message or not message.strip():
            raise ValidationError("message must not be empty")

        stored = await self.store.add_message(user_id, message, is_from_user=False)
        delivered = self.hub.route_chat_message(user_id, message, is_from_user=False)
        logger.info(f"Chat reply {stored.id} for user {user_id} pushed to {delivered} connection(s)")
        return stored
