"""
Shared constants for TCP-Chat.

This module contains all constants used across server components.
"""

import sys

# Network Configuration
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 8989

# Admission
MAX_CLIENTS = 10

# Stream limits
LINE_LIMIT = None  # bytes per line; None accepts lines of any length
UNBOUNDED_LINE_LIMIT = sys.maxsize
ENCODING = 'utf-8'

# Timeouts
IDLE_TIMEOUT = None  # seconds; None disables idle disconnects
WRITE_TIMEOUT = None  # seconds per broadcast write; None waits for slow peers

# Logging
LOG_DIR = None
SERVER_LOG_FILE = 'server.log'
LOGGER_NAME = 'tcp_chat'

# Timestamps (UTC)
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


# Wire literals
class Wire:
    NEWLINE = '\n'
    WELCOME = 'Welcome to TCP-Chat!\n[ENTER YOUR NAME]: '
    INVALID_NAME = 'Invalid name. Connection closed.\n'
    JOINED = '{name} has joined the chat'
    LEFT = '{name} has left the chat'
    CHAT_LINE = '[{timestamp}][{name}]: {message}'
