"""
Runtime Data Module

Per-run state shared between agents:
- Context: ordered message history plus keyed outputs
- StepResult / StepStatus: outcome of each executed unit of work
"""

from .state import (
    NOT_FOUND,
    Context,
    Message,
    StepResult,
    StepStatus,
    validate_inputs,
)

__all__ = [
    "NOT_FOUND",
    "Context",
    "Message",
    "StepResult",
    "StepStatus",
    "validate_inputs",
]
