"""Services layer - Business logic

Service classes are constructed once per application in the app factory and
reached from routes through dependency injection.
"""

from .admin_gate import AdminGate, AdminPrincipal, HeaderAdminGate, JwtCookieAdminGate
from .broadcast_hub import BroadcastHub, Connection
from .chat_service import ChatService
from .queue_service import QueueService

__all__ = [
    "AdminGate",
    "AdminPrincipal",
    "BroadcastHub",
    "ChatService",
    "Connection",
    "HeaderAdminGate",
    "JwtCookieAdminGate",
    "QueueService",
]
