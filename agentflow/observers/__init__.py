"""
Execution observers: lifecycle hooks for logging and persistence.
"""

from .base import (
    AgentEvent,
    CompositeObserver,
    ExecutionObserver,
    LoggingObserver,
    WorkflowEvent,
)
from .execution_log import ExecutionLogObserver
from .history import HistoryObserver

__all__ = [
    "AgentEvent",
    "WorkflowEvent",
    "ExecutionObserver",
    "CompositeObserver",
    "LoggingObserver",
    "ExecutionLogObserver",
    "HistoryObserver",
]
