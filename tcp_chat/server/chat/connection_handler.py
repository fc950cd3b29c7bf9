"""
Connection handler module.

Runs the per-connection state machine:
Connecting -> Naming -> Active -> Closed.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

from tcp_chat.common.constants import ENCODING
from tcp_chat.common.protocol_definitions import (
    SessionState, utc_now, decode_line, create_welcome_message,
    create_invalid_name_message, create_chat_message
)
from tcp_chat.server.chat.chat_hub import ChatHub
from tcp_chat.server.utils.logger import logger


class ConnectionHandler:
    """Handles one admitted client connection until it closes."""

    def __init__(self, hub: ChatHub, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 idle_timeout: Optional[float] = None, clock: Callable[[], datetime] = utc_now):
        self.hub = hub
        self.reader = reader
        self.writer = writer
        self.idle_timeout = idle_timeout
        self.clock = clock
        self.addr = writer.get_extra_info('peername')
        self.name: Optional[str] = None
        self.state = SessionState.CONNECTING

    async def run(self):
        """Drive the connection through its states; always ends Closed."""
        try:
            await self._send(create_welcome_message())
            self.state = SessionState.NAMING

            if await self._negotiate_name():
                self.state = SessionState.ACTIVE
                await self._chat_loop()

        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for {self.addr}")
            raise
        except (ConnectionError, OSError) as e:
            logger.debug(f"Connection lost for {self.addr}: {e}")
        finally:
            await self._close()

    async def _negotiate_name(self) -> bool:
        """Read the display name; False means the connection should close."""
        line = await self._read_line()
        if line is None:
            logger.debug(f"{self.addr} disconnected before naming")
            return False

        if not line:
            await self._send(create_invalid_name_message())
            logger.info(f"Invalid name from {self.addr}, closing")
            return False

        self.name = line
        await self.hub.join(self.writer, self.name)
        logger.log_join(self.name, self.addr)
        return True

    async def _chat_loop(self):
        """Broadcast each non-blank line until the peer goes away."""
        while True:
            line = await self._read_line()
            if line is None:
                break
            if not line:
                continue

            logger.log_chat(self.name, line)
            await self.hub.publish(create_chat_message(self.name, line, self.clock()))

    async def _read_line(self) -> Optional[str]:
        """Read one trimmed line, or None on EOF, reset, overlong line or idle timeout."""
        try:
            if self.idle_timeout is None:
                data = await self.reader.readline()
            else:
                data = await asyncio.wait_for(self.reader.readline(), self.idle_timeout)
        except asyncio.TimeoutError:
            logger.info(f"Idle timeout for {self.addr}")
            return None
        except ValueError as e:
            logger.warning(f"Line too long from {self.addr}: {e}")
            return None
        except (ConnectionError, OSError) as e:
            logger.debug(f"Read failed for {self.addr}: {e}")
            return None

        # A line cut off by EOF counts as a failed read
        if not data.endswith(b'\n'):
            return None
        return decode_line(data)

    async def _send(self, text: str):
        """Write raw text to this connection only."""
        self.writer.write(text.encode(ENCODING))
        await self.writer.drain()

    async def _close(self):
        """Unregister, free the admission slot and close the socket."""
        self.state = SessionState.CLOSED
        try:
            name = await self.hub.leave(self.writer)
            if name is not None:
                logger.log_leave(name, self.addr)
        finally:
            await self.hub.release(self.writer)
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"Error while closing {self.addr}: {e}")
