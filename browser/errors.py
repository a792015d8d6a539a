"""Exceptions raised by the simulated browser state machines."""

from __future__ import annotations


class BrowserSimError(Exception):
    """Base class for simulator errors."""


class InvalidTransitionError(BrowserSimError):
    """A state machine was asked for a transition its current state does not allow."""

    def __init__(self, machine: str, current: str, target: str) -> None:
        super().__init__(f"{machine}: cannot transition {current} -> {target}")
        self.machine = machine
        self.current = current
        self.target = target
