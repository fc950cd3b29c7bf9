"""
Chat hub module.

This module owns the state shared by every connection: the registry of
joined clients, the chat history and the admission counter. One lock
guards all three so that joins, leaves and messages are seen by every
client in a single order.
"""

import asyncio
from typing import Dict, List, Optional, Set

from tcp_chat.common.constants import MAX_CLIENTS
from tcp_chat.common.protocol_definitions import (
    create_user_joined_message, create_user_left_message, encode_line
)
from tcp_chat.server.utils.logger import logger


class ChatHub:
    """Shared registry, history and broadcast for all connections.

    Methods documented as requiring the lock must be awaited while
    ``hub.lock`` is held; the others take the lock themselves.
    """

    def __init__(self, max_clients: int = MAX_CLIENTS, write_timeout: Optional[float] = None):
        self.max_clients = max_clients
        self.write_timeout = write_timeout
        self.clients: Dict[asyncio.StreamWriter, str] = {}  # writer -> display name
        self.history: List[str] = []
        self.connections: Set[asyncio.StreamWriter] = set()  # admitted, joined or not
        self.lock = asyncio.Lock()  # Protect shared state

    def _require_lock(self):
        if not self.lock.locked():
            raise RuntimeError("ChatHub lock must be held for this operation")

    # Admission

    async def admit(self, writer: asyncio.StreamWriter) -> bool:
        """Take an admission slot for a new connection, False when full."""
        async with self.lock:
            if len(self.connections) >= self.max_clients:
                return False
            self.connections.add(writer)
            return True

    async def release(self, writer: asyncio.StreamWriter):
        """Give back the admission slot held by a connection."""
        async with self.lock:
            self.connections.discard(writer)

    # Primitives (lock required)

    def register(self, writer: asyncio.StreamWriter, name: str):
        """Add a named client to the registry. Requires the lock."""
        self._require_lock()
        self.clients[writer] = name

    def unregister(self, writer: asyncio.StreamWriter) -> Optional[str]:
        """Remove a client if present and return its name. Requires the lock."""
        self._require_lock()
        return self.clients.pop(writer, None)

    def append_history(self, line: str):
        """Record a chat line for future joiners. Requires the lock."""
        self._require_lock()
        self.history.append(line)

    async def _drain(self, writer: asyncio.StreamWriter):
        """Flush one writer, bounded by write_timeout when set."""
        if self.write_timeout is None:
            await writer.drain()
        else:
            await asyncio.wait_for(writer.drain(), self.write_timeout)

    async def replay_history(self, writer: asyncio.StreamWriter):
        """Write every stored history line to one client. Requires the lock."""
        self._require_lock()
        if not self.history:
            return
        writer.write(b''.join(encode_line(line) for line in self.history))
        await self._drain(writer)

    async def broadcast(self, line: str):
        """Write a line to every registered client. Requires the lock.

        A failing peer is logged and skipped; its own read loop notices the
        disconnect and cleans up. A peer that does not drain within
        write_timeout is closed so it stops holding up the others.
        """
        self._require_lock()
        data = encode_line(line)
        for writer, name in list(self.clients.items()):
            if writer.is_closing():
                continue
            try:
                writer.write(data)
                await self._drain(writer)
            except asyncio.TimeoutError:
                logger.warning(f"'{name}' stalled for {self.write_timeout}s, dropping")
                writer.close()
            except Exception as e:
                logger.error(f"Failed to broadcast to '{name}': {e}")

    # Composite operations

    async def join(self, writer: asyncio.StreamWriter, name: str):
        """Register a client, replay history to it, then announce it to everyone."""
        async with self.lock:
            self.register(writer, name)
            try:
                await self.replay_history(writer)
            except asyncio.TimeoutError:
                logger.warning(f"'{name}' stalled during history replay, dropping")
                writer.close()
            except Exception as e:
                logger.error(f"Failed to replay history to '{name}': {e}")
            await self.broadcast(create_user_joined_message(name))

    async def leave(self, writer: asyncio.StreamWriter) -> Optional[str]:
        """Announce a client's departure to everyone, then unregister it.

        Safe to call for a connection that never joined; nothing is sent then.
        """
        async with self.lock:
            name = self.clients.get(writer)
            if name is not None:
                await self.broadcast(create_user_left_message(name))
            self.unregister(writer)
            return name

    async def publish(self, line: str):
        """Append a chat line to history and broadcast it as one step."""
        async with self.lock:
            self.append_history(line)
            await self.broadcast(line)

    # Introspection

    def get_participants(self) -> List[str]:
        """Names of the currently joined clients."""
        return list(self.clients.values())

    def get_connection_count(self) -> int:
        """Number of admitted connections, joined or still naming."""
        return len(self.connections)

    async def close_all(self):
        """Close every admitted connection (server shutdown)."""
        async with self.lock:
            writers = list(self.connections)
        for writer in writers:
            writer.close()
