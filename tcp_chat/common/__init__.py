"""
Shared definitions used by the chat server and its tests.
"""
