"""
Server configuration module.

This module handles server-side configuration settings.
"""

import logging
from typing import Optional

from tcp_chat.common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, MAX_CLIENTS, LINE_LIMIT, UNBOUNDED_LINE_LIMIT,
    IDLE_TIMEOUT, WRITE_TIMEOUT, LOG_DIR
)


class ServerConfig:
    """Server configuration class."""
    
    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 max_clients: int = MAX_CLIENTS, idle_timeout: Optional[float] = IDLE_TIMEOUT,
                 write_timeout: Optional[float] = WRITE_TIMEOUT, line_limit: Optional[int] = LINE_LIMIT,
                 logs_dir: Optional[str] = LOG_DIR, log_level: int = logging.INFO):
        if max_clients < 1:
            raise ValueError(f"max_clients must be positive, got {max_clients}")
        if idle_timeout is not None and idle_timeout <= 0:
            raise ValueError(f"idle_timeout must be positive, got {idle_timeout}")
        if write_timeout is not None and write_timeout <= 0:
            raise ValueError(f"write_timeout must be positive, got {write_timeout}")
        if line_limit is not None and line_limit < 1:
            raise ValueError(f"line_limit must be positive, got {line_limit}")
        
        self.host = host
        self.port = port
        
        # Admission settings
        self.max_clients = max_clients
        
        # Connection settings
        self.idle_timeout = idle_timeout
        self.write_timeout = write_timeout
        self.line_limit = line_limit
        
        # Logging configuration
        self.logs_dir = logs_dir
        self.log_level = log_level
    
    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }
    
    def get_stream_limit(self) -> int:
        """Byte limit handed to the stream reader; unbounded unless line_limit is set."""
        return self.line_limit if self.line_limit is not None else UNBOUNDED_LINE_LIMIT
    
    def get_log_settings(self):
        """Get logging settings."""
        return {
            'logs_dir': self.logs_dir,
            'log_level': self.log_level
        }
