"""Dependency injection utilities for FastAPI

Services live on ``app.state.services`` (built by the app factory), so every
application instance, and every test, gets its own hub and stores.
"""

import hmac
import logging
from dataclasses import dataclass

from fastapi import Header, HTTPException, Request
from starlette.requests import HTTPConnection

from walkin.shared.database import DatabaseManager

from ..services import AdminGate, AdminPrincipal, BroadcastHub, ChatService, QueueService
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    hub: BroadcastHub
    queue: QueueService
    chat: ChatService
    admin_gate: AdminGate
    database: DatabaseManager | None = None


def get_services(conn: HTTPConnection) -> AppServices:
    return conn.app.state.services


# ============================================
# Service Dependencies
# ============================================


def get_queue_service(request: Request) -> QueueService:
    return get_services(request).queue


def get_chat_service(request: Request) -> ChatService:
    return get_services(request).chat


# ============================================
# Access Dependencies
# ============================================


def require_admin(request: Request) -> AdminPrincipal:
    """Ask the configured admin gate; 403 when it denies."""
    principal = get_services(request).admin_gate.authorize(request)
    if principal is None:
        raise HTTPException(status_code=403, detail="Admin access required")
    return principal


def require_webhook_secret(
    request: Request,
    x_webhook_secret: str | None = Header(default=None),
) -> None:
    expected = get_services(request).settings.webhook_secret
    if expected and not hmac.compare_digest((x_webhook_secret or "").encode(), expected.encode()):
        logger.warning("Rejected AI webhook call with invalid secret")
        raise HTTPException(status_code=403, detail="Invalid webhook secret")
