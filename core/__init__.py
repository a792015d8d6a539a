"""Core package — public API."""

from .engine import BaseAgent, RuntimeObject
from .inference import BaseInference, OpenAIInference, get_implementation
from .responses import BaseResponse, ConversationTurn

__all__ = [
    "BaseAgent",
    "RuntimeObject",
    "BaseInference",
    "OpenAIInference",
    "get_implementation",
    "BaseResponse",
    "ConversationTurn",
]
