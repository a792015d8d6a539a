"""
Channels package — connection mediums between clients and the application.

Architecture:
    BaseChannel            — abstract interface every channel implements
    └─ WebSocketChannel    — real-time browser UI connection

Each channel handles its own lifecycle (connect, receive, send, disconnect)
while delegating command processing to the session's orchestrator.

Usage:
    from channels import WebSocketChannel
"""

from .base import BaseChannel
from .websocket_channel import WebSocketChannel

__all__ = [
    "BaseChannel",
    "WebSocketChannel",
]
