"""
TCP-Chat: a line-oriented multi-client chat broadcaster.

This package contains:
- Shared wire literals and formatting helpers (common)
- The asyncio server: acceptor, chat hub and connection handlers (server)
"""

__version__ = "1.0.0"
