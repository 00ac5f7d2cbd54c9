"""Client sync agent.

Keeps a local copy of the queue snapshot in step with the server: pushed
``queue_update`` frames over a WebSocket, plus a periodic ``GET /queue/status``
pull as a fallback for the window before the first push. Once any push has
landed the agent never goes back to pulled data.

State machine::

    DISCONNECTED --start / reconnect timer--> CONNECTING --handshake--> CONNECTED
    CONNECTING | CONNECTED --error / close--> DISCONNECTED (+ one reconnect timer)

The reconnect timer and the socket are never live at the same time: the
timer is cancelled before a connection attempt starts, and it is only armed
after the socket is gone.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Literal

import aiohttp

from walkin.shared.errors import ConnectionLost
from walkin.shared.protocol import (
    AiChatMessage,
    AuthMessage,
    QueueStatusPayload,
    QueueUpdateMessage,
    encode,
    parse_server_message,
)

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 3.0
PULL_INTERVAL = 30.0


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class LocalSnapshot:
    snapshot: QueueStatusPayload
    source: Literal["push", "pull"]
    received_at: datetime


def websocket_url(base_url: str) -> str:
    base = base_url.rstrip("/")
    if base.startswith("https://"):
        return "wss://" + base[len("https://") :] + "/ws"
    if base.startswith("http://"):
        return "ws://" + base[len("http://") :] + "/ws"
    return base + "/ws"


class QueueSyncAgent:
    """One agent per client session; see the module docstring for the state machine."""

    def __init__(
        self,
        base_url: str,
        *,
        user_id: str | None = None,
        session: aiohttp.ClientSession | None = None,
        reconnect_delay: float = RECONNECT_DELAY,
        pull_interval: float = PULL_INTERVAL,
        request_timeout: float = 10.0,
        on_snapshot: Callable[[LocalSnapshot], None] | None = None,
        on_chat: Callable[[AiChatMessage], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.ws_url = websocket_url(base_url)
        self.status_url = f"{self.base_url}/queue/status"
        self.user_id = user_id
        self.reconnect_delay = reconnect_delay
        self.pull_interval = pull_interval
        self.request_timeout = request_timeout
        self.on_snapshot = on_snapshot
        self.on_chat = on_chat

        self.state = ConnectionState.DISCONNECTED
        self.local: LocalSnapshot | None = None

        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._socket_task: asyncio.Task | None = None
        self._pull_task: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._push_received = False
        self._started = False
        self._stopped = False

    # -------------------- lifecycle --------------------

    async def start(self) -> None:
        """Start the pull loop and the first connection attempt."""
        if self._stopped:
            raise RuntimeError("QueueSyncAgent cannot be restarted after stop()")
        if self._started:
            return
        self._started = True

        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
        self._pull_task = asyncio.create_task(self._pull_loop(), name="queue-pull")
        self._connect()

    async def stop(self) -> None:
        """Cancel the timer, the socket and the pull loop; close owned resources."""
        self._stopped = True
        self._cancel_reconnect()

        tasks = [t for t in (self._socket_task, self._pull_task) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._socket_task = None
        self._pull_task = None

        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

        self.state = ConnectionState.DISCONNECTED
        logger.info("Queue sync agent stopped")

    async def __aenter__(self) -> QueueSyncAgent:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # -------------------- state machine --------------------

    @property
    def reconnect_scheduled_at(self) -> float | None:
        """Loop time at which the pending reconnect fires, if one is armed."""
        return self._reconnect_handle.when() if self._reconnect_handle else None

    @property
    def has_push(self) -> bool:
        return self._push_received

    def handle_open(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """CONNECTING -> CONNECTED."""
        self._cancel_reconnect()
        self._ws = ws
        self.state = ConnectionState.CONNECTED
        logger.info(f"Connected to {self.ws_url}")

    def handle_message(self, raw: str) -> None:
        """Apply one server frame; unknown frames are ignored."""
        message = parse_server_message(raw)
        if isinstance(message, QueueUpdateMessage):
            self._push_received = True
            self._adopt(message, "push")
        elif isinstance(message, AiChatMessage):
            if self.on_chat is not None:
                try:
                    self.on_chat(message)
                except Exception as e:
                    logger.exception(f"Chat callback failed: {e}")
        else:
            logger.debug("Ignoring unrecognized server frame")

    def handle_close(self, error: ConnectionLost | None = None) -> bool:
        """CONNECTING | CONNECTED -> DISCONNECTED; arm at most one reconnect.

        Returns True when this call armed the reconnect timer.
        """
        if error is not None:
            logger.warning(f"Connection lost: {error}")
        self._ws = None
        self.state = ConnectionState.DISCONNECTED
        return self._schedule_reconnect()

    def apply_pull(self, snapshot: QueueStatusPayload) -> bool:
        """Adopt a pulled snapshot unless a push has ever been received."""
        if self._push_received:
            return False
        self._adopt(snapshot, "pull")
        return True

    # -------------------- internals --------------------

    def _adopt(self, snapshot: QueueStatusPayload, source: Literal["push", "pull"]) -> None:
        self.local = LocalSnapshot(snapshot=snapshot, source=source, received_at=datetime.now(UTC))
        if self.on_snapshot is not None:
            try:
                self.on_snapshot(self.local)
            except Exception as e:
                logger.exception(f"Snapshot callback failed: {e}")

    def _connect(self) -> None:
        """DISCONNECTED -> CONNECTING."""
        if self._stopped or self.state is not ConnectionState.DISCONNECTED:
            return
        self._cancel_reconnect()
        self.state = ConnectionState.CONNECTING
        self._socket_task = asyncio.create_task(self._run_socket(), name="queue-socket")

    def _schedule_reconnect(self) -> bool:
        if self._stopped or self._reconnect_handle is not None:
            return False
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._on_reconnect_timer)
        logger.info(f"Reconnecting in {self.reconnect_delay}s")
        return True

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        self._connect()

    async def _run_socket(self) -> None:
        assert self._session is not None
        error: ConnectionLost | None = None
        try:
            ws = await self._session.ws_connect(self.ws_url, heartbeat=30.0)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            self.handle_close(ConnectionLost(f"{type(e).__name__}: {e}"))
            return

        self.handle_open(ws)
        try:
            if self.user_id:
                await ws.send_str(encode(AuthMessage(user_id=self.user_id)))
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self.handle_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = ConnectionLost(f"socket error: {ws.exception()}")
                    break
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            error = ConnectionLost(f"{type(e).__name__}: {e}")
        except Exception as e:
            # Any other failure still has to end in DISCONNECTED with a reconnect armed
            logger.exception(f"Unexpected error on queue socket: {e}")
            error = ConnectionLost(f"{type(e).__name__}: {e}")
        finally:
            if not ws.closed:
                await ws.close()

        self.handle_close(error)

    async def pull_once(self) -> QueueStatusPayload:
        assert self._session is not None
        async with self._session.get(self.status_url) as resp:
            resp.raise_for_status()
            data = await resp.json()
        return QueueStatusPayload.model_validate(data)

    async def _pull_loop(self) -> None:
        while True:
            try:
                self.apply_pull(await self.pull_once())
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.warning(f"Queue status pull failed: {type(e).__name__}: {e}")
            await asyncio.sleep(self.pull_interval)
