"""
Intent classifier — turns one free-text command into one ``ClassifiedAction``.

Wraps the hosted language model behind ``classify(command, context)``. Every
transport error, timeout or unparseable reply surfaces as
``ClassificationError``; shape problems inside a decodable reply are already
degraded to ``UnknownAction`` by ``agents.actions``.
"""

from __future__ import annotations

import asyncio
import os
import time

from pydantic import BaseModel, Field

from core import observability
from core.engine import BaseAgent
from core.logging_core import log_info

from .actions import ActionEnvelope, ClassificationError, ClassifiedAction


def _timeout_from_env() -> float | None:
    raw = os.getenv("CLASSIFIER_TIMEOUT_S", "").strip()
    try:
        value = float(raw) if raw else 0.0
    except ValueError:
        value = 0.0
    return value if value > 0 else None


class ClassifierContext(BaseModel):
    """What the classifier is told about the session besides the command."""

    surface: str
    booking_step: str
    known_targets: list[str] = Field(default_factory=list)

    def render(self) -> str:
        return (
            "## BROWSER STATE\n"
            f"Current surface: {self.surface}\n"
            f"Booking step: {self.booking_step}\n"
            f"Known targets: {', '.join(self.known_targets) or 'none'}"
        )


class IntentClassifier(BaseAgent):
    """Single-shot LLM classifier over the closed action set."""

    name: str = "intent_classifier"
    description: str = "Classifies a browser command into one structured action."
    system_instructions: str = "intent_classifier"
    response_model: type = ActionEnvelope
    timeout_s: float | None = Field(default_factory=_timeout_from_env)

    async def classify(self, command: str, context: ClassifierContext) -> ClassifiedAction:
        prompt = self.render(command, context.render())
        start = time.perf_counter()
        try:
            call = self.inference.invoke(
                prompt,
                instructions=self.system_prompt or None,
                response_model=self.response_model,
            )
            envelope = await asyncio.wait_for(call, self.timeout_s) if self.timeout_s else await call
        except ClassificationError:
            raise
        except Exception as exc:
            raise ClassificationError(f"{type(exc).__name__}: {exc}") from exc

        if not isinstance(envelope, ActionEnvelope):
            # Inference backends without response_model support hand back text.
            envelope = ActionEnvelope.from_raw(envelope)
        action = envelope.to_action()

        duration_ms = int((time.perf_counter() - start) * 1000)
        observability.log_event(
            "classified",
            message=action.narration,
            source=self.name,
            meta={"action": action.action, "duration_ms": duration_ms},
        )
        log_info(__name__, "Classified %r as %s (%dms)", command[:80], action.action, duration_ms)
        return action
