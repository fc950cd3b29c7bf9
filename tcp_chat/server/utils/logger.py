"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from pathlib import Path
from typing import Optional

from tcp_chat.common.constants import LOGGER_NAME, SERVER_LOG_FILE


class ServerLogger:
    """Server logging class."""
    
    def __init__(self, logs_dir: Optional[str] = None, log_level: int = logging.INFO):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.log_path: Optional[Path] = None
        self.configure(logs_dir, log_level)
    
    def configure(self, logs_dir: Optional[str] = None, log_level: int = logging.INFO):
        """(Re)build handlers: console always, a log file when logs_dir is set."""
        self.logger.setLevel(log_level)
        
        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)
            handler.close()
        
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)
        
        self.log_path = None
        if logs_dir:
            logs_path = Path(logs_dir)
            logs_path.mkdir(parents=True, exist_ok=True)
            self.log_path = logs_path / SERVER_LOG_FILE
            file_handler = logging.FileHandler(self.log_path, encoding='utf-8')
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
    
    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)
    
    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)
    
    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)
    
    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)
    
    def log_connection(self, addr, active: int, limit: int):
        """Log an admitted connection."""
        self.info(f"New connection from {addr} ({active}/{limit} slots in use)")
    
    def log_rejected(self, addr, limit: int):
        """Log a connection closed at the admission cap."""
        self.warning(f"Rejected connection from {addr}: server full ({limit} clients)")
    
    def log_join(self, name: str, addr):
        """Log a client completing name negotiation."""
        self.info(f"'{name}' joined from {addr}")
    
    def log_leave(self, name: str, addr):
        """Log a joined client disconnecting."""
        self.info(f"'{name}' ({addr}) left")
    
    def log_chat(self, name: str, message: str):
        """Log chat message."""
        self.info(f"Chat from {name}: {message}")
    
    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
