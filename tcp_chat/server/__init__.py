"""
Server package for TCP-Chat.

This package contains all server-side functionality including:
- Connection acceptance and admission control
- The shared chat hub (registry, history, broadcast)
- Per-connection handlers
- Configuration and utilities
"""
