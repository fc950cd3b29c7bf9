#!/usr/bin/env python3
"""
TCP-Chat Server - Main Entry Point

Accepts connections, enforces the concurrent client cap and hands each
admitted connection to its own handler task.
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from tcp_chat.common.constants import DEFAULT_PORT, DEFAULT_SERVER_HOST
from tcp_chat.server.chat.chat_hub import ChatHub
from tcp_chat.server.chat.connection_handler import ConnectionHandler
from tcp_chat.server.utils.config import ServerConfig
from tcp_chat.server.utils.logger import logger


class ChatTCPServer:
    """Listener/acceptor that owns the chat hub."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.hub = ChatHub(self.config.max_clients, write_timeout=self.config.write_timeout)
        self.server: Optional[asyncio.AbstractServer] = None

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Admit or reject a new connection, then run its handler."""
        addr = writer.get_extra_info('peername')

        if not await self.hub.admit(writer):
            # Full: close without reading or sending anything
            logger.log_rejected(addr, self.config.max_clients)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError) as e:
                logger.debug(f"Error while closing rejected {addr}: {e}")
            return

        logger.log_connection(addr, self.hub.get_connection_count(), self.config.max_clients)
        handler = ConnectionHandler(self.hub, reader, writer, idle_timeout=self.config.idle_timeout)
        await handler.run()

    def _handle_loop_exception(self, loop, context):
        """Log errors the event loop reports (e.g. a failed accept) and keep serving."""
        error = context.get('exception')
        message = context.get('message', 'event loop error')
        if error is not None:
            logger.log_error(message, error)
        else:
            logger.error(message)

    async def start_server(self) -> asyncio.AbstractServer:
        """Bind the listening socket. Raises OSError when binding fails."""
        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)
        self.server = await asyncio.start_server(
            self.handle_client,
            self.config.host,
            self.config.port,
            limit=self.config.get_stream_limit()
        )

        addr = ', '.join(str(sock.getsockname()) for sock in self.server.sockets)
        logger.info(f"Listening on {addr}")
        return self.server

    async def start(self):
        """Start the server and serve until cancelled."""
        server = await self.start_server()
        try:
            await server.serve_forever()
        finally:
            await self.stop()

    async def stop(self):
        """Stop accepting and close every client connection."""
        if self.server is not None:
            self.server.close()
            await self.hub.close_all()
            await self.server.wait_closed()
            self.server = None
        logger.info("Server stopped")

    def get_port(self) -> int:
        """Port actually bound (useful when configured with port 0)."""
        return self.server.sockets[0].getsockname()[1]


def positive_port(value: str) -> int:
    """argparse type for the listen port."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port '{value}': must be a number")
    if port <= 0 or port > 65535:
        raise argparse.ArgumentTypeError(f"invalid port '{value}': must be between 1 and 65535")
    return port


def positive_seconds(value: str) -> float:
    """argparse type for timeouts."""
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timeout '{value}'")
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"invalid timeout '{value}': must be positive")
    return seconds


def positive_bytes(value: str) -> int:
    """argparse type for the line limit."""
    try:
        limit = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid line limit '{value}': must be a number")
    if limit <= 0:
        raise argparse.ArgumentTypeError(f"invalid line limit '{value}': must be positive")
    return limit


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tcp-chat', description='TCP-Chat Server')
    parser.add_argument('port', nargs='?', type=positive_port, default=DEFAULT_PORT,
                        help=f'TCP port to listen on (default: {DEFAULT_PORT})')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--idle-timeout', type=positive_seconds, default=None,
                        help='Disconnect clients silent for this many seconds (default: never)')
    parser.add_argument('--write-timeout', type=positive_seconds, default=None,
                        help='Drop clients that take longer than this to accept a broadcast (default: wait)')
    parser.add_argument('--line-limit', type=positive_bytes, default=None,
                        help='Disconnect clients sending lines longer than this many bytes (default: no limit)')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Also write the server log to this directory')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser


def parse_config(argv=None) -> ServerConfig:
    """Parse command line arguments into a ServerConfig; exits on usage errors."""
    args = build_parser().parse_args(argv)
    return ServerConfig(
        host=args.host,
        port=args.port,
        idle_timeout=args.idle_timeout,
        write_timeout=args.write_timeout,
        line_limit=args.line_limit,
        logs_dir=args.log_dir,
        log_level=logging.DEBUG if args.debug else logging.INFO
    )


def main(argv=None) -> int:
    config = parse_config(argv)
    logger.configure(**config.get_log_settings())

    server = ChatTCPServer(config)
    try:
        asyncio.run(server.start())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    except OSError as e:
        logger.error(f"Server failed to start on {config.host}:{config.port}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
