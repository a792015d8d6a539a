"""
Lightweight observability — append-only JSONL step trace with in-memory fan-out.

Every handled command opens a trace; every primitive, state transition,
classification and search inside it emits one event.

Usage:
    from core.observability import log_event, trace_scope

    with trace_scope("orchestrator", command, session_id=sid) as trace_id:
        log_event("click", source="primitives", meta={"x": 20, "y": 10})
"""

from __future__ import annotations

import json
import os
import threading
import time
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator
from uuid import uuid4

# ── internal state ───────────────────────────────────────────────────────────

_TRACE_ID: ContextVar[str | None] = ContextVar("trace_id", default=None)
_SESSION_ID: ContextVar[str | None] = ContextVar("session_id", default=None)
_EVENT_SEQ = 0
_LOCK = threading.Lock()
_SINKS: list[Callable[[dict], None]] = []


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _next_seq() -> int:
    global _EVENT_SEQ
    with _LOCK:
        _EVENT_SEQ += 1
        return _EVENT_SEQ


def _log_path() -> Path:
    return Path(os.getenv("OBSERVABILITY_LOG_PATH", "data/observability.jsonl"))


def _enabled() -> bool:
    return os.getenv("OBSERVABILITY_ENABLED", "true").lower() in ("true", "1", "yes")


def _truncate(text: str | None, max_len: int) -> str | None:
    if text is None:
        return None
    if max_len <= 0 or len(text) <= max_len:
        return text
    return text[: max(0, max_len - 3)] + "..."


def _sanitize(value: Any, max_len: int) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        return _truncate(value, max_len)
    if isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_sanitize(item, max_len) for item in value]
    if isinstance(value, dict):
        return {str(k): _sanitize(v, max_len) for k, v in value.items()}
    try:
        return _truncate(json.dumps(value, ensure_ascii=False), max_len)
    except Exception:
        return _truncate(str(value), max_len)


def _write_event(event: dict) -> None:
    path = _log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(event, ensure_ascii=False)
    with _LOCK:
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")


# ── public API ───────────────────────────────────────────────────────────────


def register_sink(sink: Callable[[dict], None]) -> None:
    """Register a callback that receives every event dict."""
    if sink not in _SINKS:
        _SINKS.append(sink)


def unregister_sink(sink: Callable[[dict], None]) -> None:
    if sink in _SINKS:
        _SINKS.remove(sink)


def current_trace_id() -> str | None:
    return _TRACE_ID.get()


def new_trace_id() -> str:
    return f"trc_{uuid4().hex}"


def log_event(
    event_type: str,
    message: str | None = None,
    *,
    source: str | None = None,
    trace_id: str | None = None,
    session_id: str | None = None,
    status: str | None = None,
    meta: dict | None = None,
) -> dict | None:
    """Append an event to the JSONL log and fan out to sinks.

    This function **never** raises — observability must not break a choreography.
    """
    if not _enabled():
        return None

    max_len = int(os.getenv("OBSERVABILITY_MAX_DETAIL", "2000"))

    event: dict[str, Any] = {
        "id": f"evt_{uuid4().hex[:12]}",
        "seq": _next_seq(),
        "ts": _utc_now_iso(),
        "type": event_type,
        "source": source,
        "trace_id": trace_id or _TRACE_ID.get(),
        "session_id": session_id or _SESSION_ID.get(),
    }
    if message:
        event["message"] = _truncate(message, max_len)
    if status:
        event["status"] = status
    if meta:
        event["meta"] = _sanitize(meta, max_len)

    try:
        _write_event(event)
    except Exception:
        pass

    for sink in list(_SINKS):
        try:
            sink(event)
        except Exception:
            continue

    return event


@contextmanager
def trace_scope(
    source: str,
    query: str | None = None,
    *,
    session_id: str | None = None,
    meta: dict | None = None,
) -> Iterator[str]:
    """Open a fresh trace for one handled command and emit start/end events.

    The trace and session ids are bound to the current task's context, so
    overlapping commands on the same loop keep separate traces.
    """
    trace_id = new_trace_id()
    trace_token = _TRACE_ID.set(trace_id)
    session_token = _SESSION_ID.set(session_id) if session_id else None
    start = time.perf_counter()

    log_event("trace_start", message=query, source=source, trace_id=trace_id, meta=meta)
    try:
        yield trace_id
    finally:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log_event("trace_end", source=source, trace_id=trace_id, meta={"duration_ms": duration_ms})
        if session_token is not None:
            _SESSION_ID.reset(session_token)
        _TRACE_ID.reset(trace_token)


def read_recent_events(limit: int = 200, *, session_id: str | None = None) -> list[dict]:
    """Read the most recent events from the JSONL log file."""
    path = _log_path()
    if not path.exists():
        return []

    events: deque[dict] = deque(maxlen=max(1, limit))
    try:
        with path.open("r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or (session_id is not None and session_id not in line):
                    continue
                try:
                    event = json.loads(line)
                except Exception:
                    continue
                if session_id is not None and event.get("session_id") != session_id:
                    continue
                events.append(event)
    except Exception:
        return []
    return list(events)
