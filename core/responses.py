"""
Structured response models for LLM output parsing.

Hierarchy:
    BaseResponse          — JSON extraction + instruction generation
    ConversationTurn      — single entry of a session's conversation log
"""

from __future__ import annotations

import json
import re
from typing import Any, Literal, get_origin

from pydantic import BaseModel, ConfigDict, Field

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class BaseResponse(BaseModel):
    """Base structured response parsed from a single JSON object.

    Subclasses declare fields; parsing and prompt instructions are inherited.
    Unlike free-text answers, a structured response with no JSON object in it
    is a hard parse failure (``ValueError``).
    """

    # ── instruction generation ───────────────────────────────────────────

    @classmethod
    def get_instructions(cls) -> str:
        """Generate response-format instructions for inclusion in prompts."""
        fields_doc = []
        for name, field in cls.model_fields.items():
            desc = field.description or ""
            annotation = field.annotation
            if get_origin(annotation) is list:
                type_str = "list"
            elif annotation is str:
                type_str = "string"
            elif hasattr(annotation, "__args__"):
                type_str = " | ".join(str(a) for a in annotation.__args__)
            else:
                type_str = getattr(annotation, "__name__", str(annotation))
            fields_doc.append(f"- **{name}** ({type_str}): {desc}")

        fields_text = "\n".join(fields_doc)
        return (
            "## RESPONSE FORMAT\n\n"
            "Respond with a single JSON object containing these fields:\n\n"
            f"{fields_text}\n\n"
            "Important: Output ONLY the JSON object, no markdown fences.\n"
        )

    # ── parsing ──────────────────────────────────────────────────────────

    @staticmethod
    def _extract_json_object(text: str) -> str:
        depth, start = 0, -1
        in_string = escaped = False
        for i, ch in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"' and depth > 0:
                in_string = True
            elif ch == "{":
                if depth == 0:
                    start = i
                depth += 1
            elif ch == "}" and depth > 0:
                depth -= 1
                if depth == 0 and start >= 0:
                    return text[start : i + 1]
        raise ValueError("No JSON object found")

    @classmethod
    def extract_payload(cls, raw: Any) -> dict[str, Any]:
        """Return the first JSON object in ``raw`` as a dict.

        Raises ``ValueError`` when no object can be decoded.
        """
        if isinstance(raw, dict):
            return raw
        if not isinstance(raw, str):
            raw = str(raw)
        text = _FENCE_RE.sub("", raw).strip()
        try:
            data = json.loads(cls._extract_json_object(text))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed JSON object: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON value is not an object")
        return data

    @classmethod
    def from_raw(cls, raw: Any) -> "BaseResponse":
        """Parse raw LLM output into a typed response.

        Tries: already-correct type → dict → first JSON object in text.
        """
        if isinstance(raw, cls):
            return raw
        return cls.model_validate(cls.extract_payload(raw))


class ConversationTurn(BaseModel):
    """A single turn in the conversation log. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    text: str = Field(default="")
