"""
Chat module for server-side messaging functionality.

Handles:
- Client registry and admission counting
- Message history and replay
- Broadcasting to joined clients
- The per-connection naming / chat loop
"""
