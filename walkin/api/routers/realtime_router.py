"""WebSocket endpoint bridging sockets to the broadcast hub."""

import logging

from fastapi import APIRouter, WebSocket

from ..core.dependencies import get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def queue_socket(websocket: WebSocket) -> None:
    services = get_services(websocket)
    hub = services.hub

    await websocket.accept()
    connection = hub.accept(websocket)
    try:
        # New clients get the current state right away instead of waiting for a change
        hub.send_initial(connection, await services.queue.current_snapshot())
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            payload = message.get("text") or message.get("bytes")
            if payload:
                hub.on_message(connection, payload)
    except Exception as e:
        logger.warning(f"WebSocket {connection} closed with error: {type(e).__name__}: {e}")
    finally:
        hub.disconnect(connection)
