#!/usr/bin/env python3
"""
TCP-Chat Server - Main Entry Point

Usage:
    python main_server.py [port]

Optional arguments:
    port                  TCP port to listen on (default: 8989)
    --host HOST           Bind address (default: 0.0.0.0)
    --idle-timeout SECS   Disconnect silent clients (default: never)
    --write-timeout SECS  Drop clients that stall a broadcast (default: wait)
    --line-limit BYTES    Disconnect clients sending longer lines (default: no limit)
    --log-dir DIR         Also write the server log to DIR
    --debug               Enable debug logging
"""

import sys

from tcp_chat.server.main_server import main


if __name__ == "__main__":
    sys.exit(main())
