"""
Protocol definitions for TCP-Chat.

This module defines the session states and the text lines exchanged between
the server and its clients. Every builder returns the line without its
trailing newline; the hub appends the newline when it writes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from tcp_chat.common.constants import Wire, TIMESTAMP_FORMAT, ENCODING


class SessionState(Enum):
    """Lifecycle of one client connection."""
    CONNECTING = 'connecting'
    NAMING = 'naming'
    ACTIVE = 'active'
    CLOSED = 'closed'


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a moment as fixed-width 'YYYY-MM-DD HH:MM:SS' in UTC."""
    if moment is None:
        moment = utc_now()
    elif moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def create_welcome_message() -> str:
    """Create the greeting and name prompt (no trailing newline)."""
    return Wire.WELCOME


def create_invalid_name_message() -> str:
    """Create the notice sent before closing on an empty name."""
    return Wire.INVALID_NAME


def create_user_joined_message(name: str) -> str:
    """Create a join notice."""
    return Wire.JOINED.format(name=name)


def create_user_left_message(name: str) -> str:
    """Create a leave notice."""
    return Wire.LEFT.format(name=name)


def create_chat_message(name: str, message: str, moment: Optional[datetime] = None) -> str:
    """Create a stamped chat line: [YYYY-MM-DD HH:MM:SS][name]: message"""
    return Wire.CHAT_LINE.format(timestamp=format_timestamp(moment), name=name, message=message)


def encode_line(line: str) -> bytes:
    """Encode a line for the wire, terminated by a newline."""
    return (line + Wire.NEWLINE).encode(ENCODING)


def decode_line(data: bytes) -> str:
    """Decode a received line and trim surrounding whitespace."""
    return data.decode(ENCODING, errors='replace').strip()
