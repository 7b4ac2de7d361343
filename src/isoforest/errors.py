"""
This module contains the exceptions raised by the isolation forest engine.
"""


class IsolationForestError(Exception):
    """Base class for all errors raised by the isolation forest engine."""


class EmptyPoolError(IsolationForestError):
    """Raised when a forest is created from an empty training pool."""


class InvalidStateError(IsolationForestError):
    """
    Raised when an operation is called at the wrong point of the forest
    lifecycle: creating twice, adding samples after creation, or scoring
    before creation.
    """


class DegenerateConfigError(IsolationForestError):
    """Raised when the sub-sampling size makes score normalization undefined."""
