"""
FastAPI backend — one simulated browser session per WebSocket connection.

Routes:
    GET  /api/sites       — Site keys + quick-action commands
    GET  /api/health      — Liveness probe
    GET  /api/history     — Exported conversations of closed sessions
    GET  /api/events      — Recent observability events
    WS   /ws              — Bidirectional WebSocket (one session per socket)
"""

from __future__ import annotations

import asyncio
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app import protocol
from app.state import SessionHandle, session_registry
from browser.errors import BrowserSimError
from browser.sites import quick_actions, site_keys
from channels.websocket_channel import WebSocketChannel
from core import observability
from core.logging_core import configure_logging, log_error, log_info, log_warning

# ── logging ──────────────────────────────────────────────────────────────────

configure_logging(os.getenv("LOG_LEVEL", "INFO"))

# ── WebSocket channel ────────────────────────────────────────────────────────

ws_channel = WebSocketChannel()

# Per-session outbound queues; a single writer per socket keeps pushes ordered.
_outboxes: dict[str, asyncio.Queue] = {}


def _enqueue(session_id: str | None, payload: dict) -> None:
    if not session_id:
        return
    outbox = _outboxes.get(session_id)
    if outbox is not None:
        outbox.put_nowait(payload)


# ── lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: channel + observability bridge. Shutdown: close every session."""

    await ws_channel.initialize()
    loop = asyncio.get_running_loop()

    def _obs_sink(event: dict) -> None:
        """Forward session-scoped observability events as ``step`` messages.

        Events without a session (server lifecycle) stay in the JSONL log only.
        """
        session_id = event.get("session_id")
        if not session_id or session_id not in _outboxes:
            return
        loop.call_soon_threadsafe(_enqueue, session_id, protocol.step_event(event))

    observability.register_sink(_obs_sink)
    observability.log_event("system", message="server_start", source="server")
    log_info(__name__, "Server ready")

    try:
        yield
    finally:
        log_info(__name__, "Shutting down...")
        observability.log_event("system", message="server_shutdown", source="server")
        observability.unregister_sink(_obs_sink)

        await session_registry.close_all()
        await ws_channel.disconnect()
        await ws_channel.shutdown()


# ── app ──────────────────────────────────────────────────────────────────────

app = FastAPI(title="Agentic Browser Simulator", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API routes ───────────────────────────────────────────────────────────────


@app.get("/api/sites")
async def get_sites():
    return {"sites": site_keys(), "quick_actions": quick_actions()}


@app.get("/api/health")
async def health():
    return {"status": "ok", "sessions": session_registry.live_count}


@app.get("/api/history")
async def get_history():
    return {"sessions": session_registry.history()}


@app.get("/api/events")
async def get_events(limit: int = 200, session_id: str | None = None):
    return {"events": observability.read_recent_events(limit=limit, session_id=session_id)}


# ── WebSocket ────────────────────────────────────────────────────────────────


def _session_listener(session_id: str):
    """Translate session change notifications into outbound messages."""

    def _listener(kind: str, snapshot: dict) -> None:
        _enqueue(session_id, protocol.state_update(kind, snapshot))
        if kind == "conversation":
            messages = snapshot.get("messages") or []
            if messages and messages[-1].get("role") == "assistant":
                _enqueue(session_id, protocol.chat_response(messages[-1].get("text", "")))
        elif kind == "status":
            _enqueue(session_id, protocol.status_update("thinking" if snapshot.get("is_processing") else "done"))

    return _listener


async def _writer(ws: WebSocket, outbox: asyncio.Queue) -> None:
    while True:
        payload = await outbox.get()
        await ws_channel.send(payload, ws=ws)


async def _handle_inbound(ws: WebSocket, handle: SessionHandle, message: protocol.InboundMessage) -> None:
    data = message.data
    if message.type == "open_result":
        try:
            handle.orchestrator.open_result(int(data.get("index", -1)))
        except (BrowserSimError, TypeError, ValueError) as exc:
            await ws_channel.send(protocol.error_event(str(exc)), ws=ws)
    elif message.type == "reset":
        handle.orchestrator.reset_to_home()
    else:
        await ws_channel.send(protocol.error_event(f"Unknown message type: {message.type}"), ws=ws)


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    seen_request_ids: set[str] = set()
    last_accepted_chat_text: str = ""
    last_accepted_chat_at: float = 0.0
    await ws_channel.connect(ws)

    try:
        handle = await session_registry.open()
    except Exception as e:
        log_error(__name__, "Session start failed: %s", e)
        await ws_channel.send(protocol.error_event(f"Session could not start: {e}"), ws=ws)
        await ws_channel.disconnect(ws)
        await ws.close()
        return

    session = handle.session
    session_id = handle.session_id
    ws_channel.bind(ws, session_id)
    outbox: asyncio.Queue = asyncio.Queue()
    _outboxes[session_id] = outbox
    unsubscribe = session.subscribe(_session_listener(session_id))
    await ws_channel.send(protocol.state_sync(session.get_full_state()), ws=ws)
    writer = asyncio.create_task(_writer(ws, outbox), name=f"ws-writer-{session_id}")

    try:
        while True:
            raw = await ws_channel.receive_text(ws)
            try:
                message = protocol.InboundMessage.model_validate_json(raw)
            except ValidationError:
                await ws_channel.send(protocol.error_event("Invalid message"), ws=ws)
                continue

            if message.type != "chat":
                await _handle_inbound(ws, handle, message)
                continue

            text = str(message.data.get("content") or "").strip()
            if not text:
                continue
            request_id = str(message.data.get("request_id") or "").strip()
            if request_id:
                if request_id in seen_request_ids:
                    continue
                seen_request_ids.add(request_id)
                # Keep the set bounded for long-lived sessions.
                if len(seen_request_ids) > 1024:
                    seen_request_ids.clear()
                    seen_request_ids.add(request_id)
            else:
                now = time.monotonic()
                if text == last_accepted_chat_text and (now - last_accepted_chat_at) < 1.0:
                    continue
                last_accepted_chat_text = text
                last_accepted_chat_at = now

            session.spawn(handle.orchestrator.handle(text), name=f"command-{session_id}")

    except WebSocketDisconnect:
        pass
    except Exception as e:
        log_error(__name__, "WebSocket error: %s", e)
    finally:
        unsubscribe()
        _outboxes.pop(session_id, None)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        except Exception as e:
            log_warning(__name__, "WebSocket writer stopped with error: %s", e)
        await session_registry.close(session_id)
        await ws_channel.disconnect(ws)
