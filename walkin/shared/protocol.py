"""WebSocket wire protocol.

JSON text frames tagged by ``type``:

Client → Server:
- ``{"type": "auth", "userId": str}``

Server → Client:
- ``{"type": "queue_update", "count": int, "estimatedWait": str,
  "businessStatus": {"isOpen": bool, "message": str, "nextOpenTime"?: str}}``
- ``{"type": "ai_chat", "message": str, "isFromUser": bool}``

Unknown types and unknown fields are ignored on both sides.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .business_hours import BusinessStatus

logger = logging.getLogger(__name__)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ============================================
# Snapshot payloads
# ============================================


class BusinessStatusPayload(_WireModel):
    is_open: bool = Field(alias="isOpen")
    message: str
    next_open_time: str | None = Field(default=None, alias="nextOpenTime")

    @classmethod
    def from_status(cls, status: BusinessStatus) -> BusinessStatusPayload:
        return cls(
            is_open=status.is_open,
            message=status.message,
            next_open_time=status.next_open_time,
        )


class QueueStatusPayload(_WireModel):
    """Snapshot body shared by ``GET /queue/status`` and ``queue_update`` frames."""

    count: int = 0
    estimated_wait: str = Field(default="No wait", alias="estimatedWait")
    business_status: BusinessStatusPayload | None = Field(default=None, alias="businessStatus")
    last_update: datetime | None = Field(default=None, alias="lastUpdate")


# ============================================
# Frames
# ============================================


class AuthMessage(_WireModel):
    type: Literal["auth"] = "auth"
    user_id: str = Field(alias="userId", min_length=1)


class QueueUpdateMessage(QueueStatusPayload):
    type: Literal["queue_update"] = "queue_update"


class AiChatMessage(_WireModel):
    type: Literal["ai_chat"] = "ai_chat"
    message: str
    is_from_user: bool = Field(alias="isFromUser")


ClientMessage = AuthMessage
ServerMessage = QueueUpdateMessage | AiChatMessage

_CLIENT_TYPES: dict[str, type[_WireModel]] = {"auth": AuthMessage}
_SERVER_TYPES: dict[str, type[_WireModel]] = {
    "queue_update": QueueUpdateMessage,
    "ai_chat": AiChatMessage,
}


def encode(message: _WireModel) -> str:
    """Serialize a frame with wire (camelCase) field names, omitting unset optionals."""
    return message.model_dump_json(by_alias=True, exclude_none=True)


def _parse(raw: str | bytes, registry: dict[str, type[_WireModel]]) -> Any:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed frame")
        return None
    if not isinstance(data, dict):
        return None

    mtype = data.get("type")
    model = registry.get(mtype) if isinstance(mtype, str) else None
    if model is None:
        logger.debug(f"Ignoring frame of unknown type {mtype!r}")
        return None

    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.debug(f"Ignoring invalid {data['type']!r} frame: {e.error_count()} error(s)")
        return None


def parse_client_message(raw: str | bytes) -> ClientMessage | None:
    """Decode a client frame; ``None`` for anything unrecognized."""
    return _parse(raw, _CLIENT_TYPES)


def parse_server_message(raw: str | bytes) -> ServerMessage | None:
    """Decode a server frame; ``None`` for anything unrecognized."""
    return _parse(raw, _SERVER_TYPES)
