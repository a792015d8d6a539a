"""
WebSocket message protocol — the contract between the simulator backend and any frontend.

Any frontend that speaks these message types can render a session.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ═════════════════════════════════════════════════════════════════════════════
# Outbound (server → client)
# ═════════════════════════════════════════════════════════════════════════════


class WSMessage(BaseModel):
    """Base WebSocket message."""

    type: str
    timestamp: str = Field(default_factory=_utc_now_iso)
    data: dict[str, Any] = Field(default_factory=dict)


class StateSync(WSMessage):
    """Full session snapshot, sent once on connect."""

    type: str = "state_sync"


class StateUpdate(WSMessage):
    """Session snapshot after a change; ``data.kind`` says what changed."""

    type: str = "state_update"


class ChatResponse(WSMessage):
    """Assistant chat turn."""

    type: str = "chat_response"


class StatusUpdate(WSMessage):
    """Processing status change (thinking, done, cleared)."""

    type: str = "status"


class StepEvent(WSMessage):
    """One choreography step for the activity feed."""

    type: str = "step"


class ErrorEvent(WSMessage):
    """An error notification."""

    type: str = "error"


# ═════════════════════════════════════════════════════════════════════════════
# Inbound (client → server)
# ═════════════════════════════════════════════════════════════════════════════


class InboundMessage(BaseModel):
    """Message received from the frontend."""

    type: str  # "chat", "open_result", "reset"
    data: dict[str, Any] = Field(default_factory=dict)


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def state_sync(state: dict) -> dict:
    return StateSync(data=state).model_dump()


def state_update(kind: str, state: dict) -> dict:
    return StateUpdate(data={"kind": kind, "state": state}).model_dump()


def chat_response(content: str) -> dict:
    return ChatResponse(data={"content": content, "role": "assistant"}).model_dump()


def status_update(status: str, detail: str = "") -> dict:
    return StatusUpdate(data={"status": status, "detail": detail}).model_dump()


def error_event(message: str) -> dict:
    return ErrorEvent(data={"content": message}).model_dump()


def step_event(event: dict) -> dict:
    """Project an observability event onto the activity-feed shape."""
    return StepEvent(
        data={
            "step_type": event.get("type", ""),
            "source": event.get("source") or "",
            "message": event.get("message") or "",
            "meta": event.get("meta") or {},
            "trace_id": event.get("trace_id") or "",
        }
    ).model_dump()
