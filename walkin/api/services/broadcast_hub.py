"""Broadcast hub: fans queue snapshots and chat messages out to live sockets.

Every accepted socket gets one outbound queue drained by one writer task, so
frames reach a given connection in the order they were submitted. Submitting
never awaits a socket: a slow or dead connection cannot hold up a mutation or
the other connections. A connection whose send fails (or whose buffer
overflows) is dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from typing import Protocol

from walkin.shared.errors import TransportError
from walkin.shared.protocol import AiChatMessage, AuthMessage, encode, parse_client_message
from walkin.shared.snapshot import QueueSnapshot

logger = logging.getLogger(__name__)

_connection_ids = itertools.count(1)


class Socket(Protocol):
    """The part of a WebSocket the hub needs (Starlette's WebSocket fits)."""

    async def send_text(self, data: str) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class Connection:
    """Handle for one live socket, owned by the hub."""

    def __init__(self, socket: Socket, max_pending: int) -> None:
        self.id = next(_connection_ids)
        self.socket = socket
        self.outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self.submitted = 0
        self.writer: asyncio.Task | None = None

    def discard_pending(self) -> None:
        while True:
            try:
                self.outbox.get_nowait()
            except asyncio.QueueEmpty:
                return
            self.outbox.task_done()

    def __repr__(self) -> str:
        return f"<Connection #{self.id}>"


class BroadcastHub:
    """Registry of live connections, each optionally tagged with a user id."""

    def __init__(self, *, max_pending: int = 100) -> None:
        self.max_pending = max_pending
        self._connections: dict[Connection, str | None] = {}
        self._closers: set[asyncio.Task] = set()

    # -------------------- registry --------------------

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def tagged_count(self, user_id: str) -> int:
        return sum(1 for tag in self._connections.values() if tag == user_id)

    def tag_of(self, connection: Connection) -> str | None:
        return self._connections.get(connection)

    def is_live(self, connection: Connection) -> bool:
        return connection in self._connections

    def accept(self, socket: Socket) -> Connection:
        """Register an untagged connection and start its writer."""
        connection = Connection(socket, self.max_pending)
        self._connections[connection] = None
        connection.writer = asyncio.create_task(
            self._write_loop(connection), name=f"ws-writer-{connection.id}"
        )
        logger.info(f"WebSocket client connected: {connection} (live={self.connection_count})")
        return connection

    def on_message(self, connection: Connection, payload: str | bytes) -> None:
        """Handle a client frame. Unrecognized frames are ignored."""
        if connection not in self._connections:
            return

        message = parse_client_message(payload)
        if isinstance(message, AuthMessage):
            self._connections[connection] = message.user_id
            logger.info(f"{connection} authenticated as user {message.user_id}")
        else:
            logger.debug(f"Ignoring client frame on {connection}")

    def disconnect(self, connection: Connection) -> bool:
        """Remove a connection. Safe to call more than once."""
        if connection not in self._connections:
            return False
        del self._connections[connection]
        connection.discard_pending()

        writer = connection.writer
        if writer is not None and not writer.done() and writer is not _current_task():
            writer.cancel()
        logger.info(f"WebSocket client disconnected: {connection} (live={self.connection_count})")
        return True

    # -------------------- fan-out --------------------

    def broadcast_queue_update(self, snapshot: QueueSnapshot) -> int:
        """Queue a ``queue_update`` frame on every live connection."""
        frame = encode(snapshot.to_message())
        recipients = list(self._connections)
        for connection in recipients:
            self._submit(connection, frame)
        logger.debug(f"Broadcast queue_update count={snapshot.count} to {len(recipients)} connection(s)")
        return len(recipients)

    def route_chat_message(self, user_id: str, body: str, is_from_user: bool) -> int:
        """Queue an ``ai_chat`` frame on connections tagged with ``user_id``.

        With no such connection the frame is dropped; the message itself is
        already stored and shows up on the next history pull.
        """
        frame = encode(AiChatMessage(message=body, is_from_user=is_from_user))
        recipients = [c for c, tag in self._connections.items() if tag == user_id]
        for connection in recipients:
            self._submit(connection, frame)
        if not recipients:
            logger.debug(f"No live connection for user {user_id}, chat message not pushed")
        return len(recipients)

    def send_initial(self, connection: Connection, snapshot: QueueSnapshot) -> bool:
        """Queue the connect-time snapshot unless a newer frame already went out.

        The snapshot is computed after ``accept``, so a broadcast may have been
        queued to this connection in between; that one is at least as fresh.
        """
        if connection not in self._connections or connection.submitted:
            return False
        self._submit(connection, encode(snapshot.to_message()))
        return True

    async def flush(self) -> None:
        """Wait until every live connection has written its pending frames."""
        await asyncio.gather(*(c.outbox.join() for c in list(self._connections)))

    async def close(self) -> None:
        """Disconnect and close every socket (shutdown)."""
        connections = list(self._connections)
        for connection in connections:
            self.disconnect(connection)
        for connection in connections:
            await _close_quietly(connection)
        if self._closers:
            await asyncio.gather(*self._closers, return_exceptions=True)

    # -------------------- internals --------------------

    def _submit(self, connection: Connection, frame: str) -> None:
        try:
            connection.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            self._drop(connection, TransportError(f"outbound buffer full ({self.max_pending} frames)"))
        else:
            connection.submitted += 1

    def _drop(self, connection: Connection, error: TransportError) -> None:
        logger.warning(f"Dropping {connection}: {error}")
        if self.disconnect(connection):
            task = asyncio.create_task(_close_quietly(connection))
            self._closers.add(task)
            task.add_done_callback(self._closers.discard)

    async def _write_loop(self, connection: Connection) -> None:
        while True:
            frame = await connection.outbox.get()
            try:
                await connection.socket.send_text(frame)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._drop(connection, TransportError(f"send failed: {type(e).__name__}: {e}"))
                return
            finally:
                connection.outbox.task_done()


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


async def _close_quietly(connection: Connection) -> None:
    with contextlib.suppress(Exception):
        await connection.socket.close()
