"""
WebSocketChannel — real-time browser UI connection.

Tracks every open WebSocket together with the browser session it drives,
and provides scoped-send and broadcast capabilities.

Used by the FastAPI WebSocket endpoint in ``app/main.py`` to push session
snapshots, chat turns and choreography steps to connected tabs.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import WebSocket
from pydantic import PrivateAttr

from core.logging_core import log_info, log_warning

from .base import BaseChannel


class WebSocketChannel(BaseChannel):
    """WebSocket channel — manages browser connections."""

    name: str = "websocket"
    _connections: dict[WebSocket, str] = PrivateAttr(default_factory=dict)

    @property
    def connections(self) -> dict[WebSocket, str]:
        """Read-only access to the connection → session id map."""
        return self._connections

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket, *, session_id: str = "", **kwargs: Any) -> None:  # type: ignore[override]
        """Accept the socket. Bind it to a session later with ``bind``."""
        await ws.accept()
        self._connections[ws] = session_id
        log_info(__name__, "WebSocket connected (total=%d)", len(self._connections))

    def bind(self, ws: WebSocket, session_id: str) -> None:
        self._connections[ws] = session_id

    async def disconnect(self, ws: WebSocket | None = None) -> None:  # type: ignore[override]
        """Remove a specific connection, or close all connections."""
        if ws is not None:
            self._connections.pop(ws, None)
            log_info(__name__, "WebSocket disconnected (%d remaining)", len(self._connections))
        else:
            for _ws in list(self._connections):
                try:
                    await _ws.close()
                except Exception as exc:
                    log_warning(__name__, "WebSocket close failed: %s", exc)
            self._connections.clear()

    async def send(self, payload: dict, *, ws: WebSocket | None = None, **kwargs: Any) -> None:
        """Send a message to a specific WebSocket client."""
        if ws is None or ws not in self._connections:
            return
        try:
            await ws.send_text(json.dumps(payload))
        except Exception:
            self._connections.pop(ws, None)

    async def broadcast(self, payload: dict, *, session_id: str | None = None) -> None:
        """Send a message to all clients, or only those bound to ``session_id``."""
        data = json.dumps(payload)
        for ws, bound in list(self._connections.items()):
            if session_id is not None and bound != session_id:
                continue
            try:
                await ws.send_text(data)
            except Exception:
                self._connections.pop(ws, None)

    async def receive_text(self, ws: WebSocket) -> str:
        """Receive raw text from a specific WebSocket."""
        return await ws.receive_text()
