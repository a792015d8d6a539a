"""
BaseChannel — abstract interface for communication channels.

A channel is a connection medium that lets a frontend drive a simulator
session (send commands, receive state pushes and step feedback). Concrete
implementations handle protocol-specific details while this base class
enforces a uniform lifecycle contract.

Lifecycle:
    1. ``connect()``     — establish the transport connection.
    2. ``send()``        — push a message to one client.
    3. ``broadcast()``   — fan-out to every client of this channel.
    4. ``disconnect()``  — tear down the connection cleanly.
"""

from __future__ import annotations

from typing import Any

from core.engine import RuntimeObject


class BaseChannel(RuntimeObject):
    """Runtime contract for all communication channels."""

    name: str = "channel"

    async def connect(self, **kwargs: Any) -> None:
        """Establish the channel connection."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement connect().")

    async def disconnect(self) -> None:
        """Cleanly tear down the channel."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement disconnect().")

    async def send(self, payload: dict, **kwargs: Any) -> None:
        """Send a single JSON-serialisable message to one client."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement send().")

    async def broadcast(self, payload: dict, *, session_id: str | None = None) -> None:
        """Fan-out a message to connected clients, optionally only one session's."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement broadcast().")
