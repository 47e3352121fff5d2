"""
Exception classes for the TrialFlow timeline engine.

All engine errors derive from TrialFlowError so callers can catch the whole
family at once. Errors raised by user predicates are never wrapped.
"""

from typing import Iterable, Optional


class TrialFlowError(Exception):
    """Base class for all TrialFlow errors."""


class InvalidNodeSpec(TrialFlowError, ValueError):
    """
    Malformed timeline description.

    Raised when a description is constructed or instantiated, never later.
    """

    def __init__(self, message: str, node_name: Optional[str] = None):
        self.node_name = node_name
        if node_name:
            message = f"{message} (node '{node_name}')"
        super().__init__(message)


class UndefinedVariable(TrialFlowError, KeyError):
    """
    A timeline variable was not bound in any enclosing scope.

    Args:
        name: Variable that failed to resolve
        available: Names that were visible at the point of lookup
    """

    def __init__(self, name: str, available: Iterable[str] = ()):
        self.name = name
        self.available = sorted(available)
        super().__init__(name)

    def __str__(self):
        if self.available:
            return f"Undefined timeline variable '{self.name}' (available: {', '.join(self.available)})"
        return f"Undefined timeline variable '{self.name}' (no variables in scope)"


class EngineStateError(TrialFlowError, RuntimeError):
    """The engine control surface was used out of order."""
