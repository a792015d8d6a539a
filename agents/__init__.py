"""
Agent definitions — intent classifier, search grounding and the orchestrator.
"""

from .actions import (
    ActionEnvelope,
    ClassificationError,
    ClassifiedAction,
    NavigateAction,
    SearchGoogleAction,
    UberAction,
    UberConfirmAction,
    UnknownAction,
    parse_classified_action,
)
from .intent_classifier import ClassifierContext, IntentClassifier
from .orchestrator import ActionOrchestrator
from .web_search import WebSearchGrounding

__all__ = [
    "ActionEnvelope",
    "ActionOrchestrator",
    "ClassificationError",
    "ClassifiedAction",
    "ClassifierContext",
    "IntentClassifier",
    "NavigateAction",
    "SearchGoogleAction",
    "UberAction",
    "UberConfirmAction",
    "UnknownAction",
    "WebSearchGrounding",
    "parse_classified_action",
]
