"""API Routers package

Routers are organized by feature domain.
"""

from . import chat_router, queue_router, realtime_router

__all__ = [
    "chat_router",
    "queue_router",
    "realtime_router",
]
