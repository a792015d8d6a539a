"""
Classified actions — the closed set of things a command can turn into.

The classifier's raw output is untrusted. ``ActionEnvelope`` extracts the JSON
object and ``to_action()`` validates it into exactly one variant of the
``ClassifiedAction`` tagged union. Anything that does not fit a known variant
becomes ``UnknownAction`` (narration only); only output with no decodable JSON
object at all is a ``ClassificationError``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, ValidationError, model_validator

from core.logging_core import log_warning
from core.responses import BaseResponse


class ClassificationError(Exception):
    """The intent classifier failed or returned something unparseable."""


# ═════════════════════════════════════════════════════════════════════════════
# Variants
# ═════════════════════════════════════════════════════════════════════════════


class _ActionBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    narration: str = Field(default="", validation_alias=AliasChoices("narration", "response_text", "response"))

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class NavigateAction(_ActionBase):
    action: Literal["NAVIGATE"] = "NAVIGATE"
    target: str = Field(min_length=1)


class SearchGoogleAction(_ActionBase):
    action: Literal["SEARCH_GOOGLE"] = "SEARCH_GOOGLE"
    search_term: str = Field(
        default="",
        validation_alias=AliasChoices("search_term", "searchTerm", "search_query", "query"),
    )


class UberAction(_ActionBase):
    action: Literal["UBER_INIT", "UBER_ENTER_DEST"] = "UBER_INIT"
    destination: str = ""


class UberConfirmAction(_ActionBase):
    action: Literal["UBER_CONFIRM"] = "UBER_CONFIRM"


class UnknownAction(_ActionBase):
    action: Literal["UNKNOWN"] = "UNKNOWN"


ClassifiedAction = Annotated[
    Union[NavigateAction, SearchGoogleAction, UberAction, UberConfirmAction, UnknownAction],
    Field(discriminator="action"),
]

_ACTION_ADAPTER: TypeAdapter = TypeAdapter(ClassifiedAction)

ACTION_TAGS = ("NAVIGATE", "SEARCH_GOOGLE", "UBER_INIT", "UBER_ENTER_DEST", "UBER_CONFIRM", "UNKNOWN")

# Spellings models produce for the same intent.
_TAG_ALIASES = {
    "GOOGLE_SEARCH": "SEARCH_GOOGLE",
    "SEARCH": "SEARCH_GOOGLE",
    "UBER": "UBER_INIT",
    "UBER_DESTINATION": "UBER_ENTER_DEST",
    "EXPLAIN": "UNKNOWN",
    "SCROLL": "UNKNOWN",
}


def _normalize_tag(value: Any) -> str:
    tag = str(value or "").strip().upper().replace("-", "_").replace(" ", "_")
    return _TAG_ALIASES.get(tag, tag)


def _narration_of(data: dict[str, Any]) -> str:
    for key in ("narration", "response_text", "response"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def action_from_payload(data: dict[str, Any]) -> ClassifiedAction:
    """Validate a decoded payload into one variant, degrading to UNKNOWN."""
    tag = _normalize_tag(data.get("action") or data.get("type"))
    if tag not in ACTION_TAGS:
        if tag:
            log_warning(__name__, "Unrecognised action tag %r; treating as UNKNOWN", tag)
        return UnknownAction(narration=_narration_of(data))
    try:
        return _ACTION_ADAPTER.validate_python({**data, "action": tag})
    except ValidationError as exc:
        log_warning(__name__, "Invalid %s payload (%d errors); treating as UNKNOWN", tag, exc.error_count())
        return UnknownAction(narration=_narration_of(data))


# ═════════════════════════════════════════════════════════════════════════════
# Envelope: the response model handed to the inference layer
# ═════════════════════════════════════════════════════════════════════════════


class ActionEnvelope(BaseResponse):
    """Loose view of the classifier JSON; documents the format in the prompt."""

    model_config = ConfigDict(extra="allow")

    action: str = Field(
        default="UNKNOWN",
        description="Exactly one of: " + ", ".join(ACTION_TAGS) + ".",
    )
    target: str = Field(default="", description="Site key from the known targets list. Only for NAVIGATE.")
    search_term: str = Field(default="", description="What to type into Google. Only for SEARCH_GOOGLE.")
    destination: str = Field(
        default="",
        description="Ride destination as the user said it. Only for UBER_ENTER_DEST / UBER_INIT.",
    )
    narration: str = Field(default="", description="One short sentence to tell the user what you are doing.")

    _payload: dict[str, Any] = PrivateAttr(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "ActionEnvelope":
        if isinstance(raw, cls):
            return raw
        try:
            payload = cls.extract_payload(raw)
        except ValueError as exc:
            raise ClassificationError(str(exc)) from exc
        envelope = cls.model_construct(**payload)
        # Keep the untouched keys so field aliases survive into to_action().
        envelope._payload = dict(payload)
        return envelope

    def to_action(self) -> ClassifiedAction:
        return action_from_payload(self._payload or self.model_dump(exclude_defaults=True))


def parse_classified_action(raw: Any) -> ClassifiedAction:
    """Raw model output → one ``ClassifiedAction``; raises ``ClassificationError``."""
    return ActionEnvelope.from_raw(raw).to_action()
