"""
Runtime engine — lifecycle base ``RuntimeObject`` and prompt-driven ``BaseAgent``.

``RuntimeObject`` provides:
    • Idempotent async ``initialize()`` / ``shutdown()`` under a lock
    • ``is_alive`` — the liveness flag long-running work checks before mutating state

``BaseAgent`` provides:
    • System prompt loaded from ``agents/prompts/{name}.md``
    • Prompt rendering (system instructions + context + response format + request)
    • Inference object attached from ``model_id``
"""

from __future__ import annotations

import asyncio as _asyncio_mod
import inspect
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from .responses import BaseResponse

_DEFAULT_MODEL_ID = "openai/gpt-4o-mini"
_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "agents" / "prompts"

# ── RuntimeObject: lifecycle base for long-lived services ─────────────────


class RuntimeObject(BaseModel):
    """Shared lifecycle contract for runtime objects (sessions, channels)."""

    model_config = {"arbitrary_types_allowed": True}

    name: str = Field(default="runtime_object")

    _is_initialized: bool = PrivateAttr(default=False)
    _lifecycle_lock: _asyncio_mod.Lock = PrivateAttr(default_factory=_asyncio_mod.Lock)

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def is_alive(self) -> bool:
        """True between ``initialize()`` and ``shutdown()``."""
        return self._is_initialized

    async def initialize(self) -> "RuntimeObject":
        async with self._lifecycle_lock:
            if self._is_initialized:
                return self
            result = self._initialize_impl()
            if inspect.isawaitable(result):
                await result
            self._is_initialized = True
            return self

    async def shutdown(self) -> None:
        async with self._lifecycle_lock:
            if not self._is_initialized:
                return
            # Flip first so work resumed during teardown already sees a dead object.
            self._is_initialized = False
            result = self._shutdown_impl()
            if inspect.isawaitable(result):
                await result

    def _initialize_impl(self) -> Any:
        """Override in subclass for startup logic."""

    def _shutdown_impl(self) -> Any:
        """Override in subclass for teardown logic."""


# ═════════════════════════════════════════════════════════════════════════════
# BaseAgent
# ═════════════════════════════════════════════════════════════════════════════


class BaseAgent(BaseModel):
    """Base for single-shot prompted agents.

    Every downstream agent automatically gets:
        • System prompt loaded from ``agents/prompts/{system_instructions}.md``
        • Response-format instructions generated from ``response_model``
        • Inference object attached from ``model_id`` (or injected for tests)
    """

    model_config = {"arbitrary_types_allowed": True}

    name: str = Field(default="Agent")
    description: str = Field(default="A single-shot prompted agent.")
    system_instructions: str = Field(default="default")
    model_id: str = Field(default_factory=lambda: os.getenv("MODEL_ID", _DEFAULT_MODEL_ID))
    response_model: type = Field(default=BaseResponse)
    inference: Any = Field(default=None, exclude=True)

    _system_instructions: str = PrivateAttr(default="")
    _response_instructions: str = PrivateAttr(default="")

    def __init__(self, **data: Any) -> None:
        super().__init__(**data)
        self._system_instructions = self._load_system_instructions()
        self._response_instructions = self.response_model.get_instructions()

        if self.inference is None:
            from .inference import get_implementation

            self.inference = get_implementation(self.model_id)

    # ── prompt loading ───────────────────────────────────────────────────

    def _load_system_instructions(self) -> str:
        prompt_path = _PROMPTS_DIR / f"{self.system_instructions}.md"
        return prompt_path.read_text(encoding="utf-8").strip() if prompt_path.exists() else ""

    @property
    def system_prompt(self) -> str:
        return self._system_instructions

    # ── prompt rendering ─────────────────────────────────────────────────

    def render(self, user_input: str, context: str | None = None) -> str:
        parts: list[str] = []

        now_utc = datetime.now(timezone.utc)
        ctx = f"## CONTEXT\nCurrent UTC time: {now_utc.isoformat().replace('+00:00', 'Z')}"
        parts.append(f"{ctx}\n\n{context}" if context else ctx)

        parts.append(self._response_instructions)
        parts.append(f"## CURRENT REQUEST\n\n{user_input}")
        return "\n\n".join(parts)
