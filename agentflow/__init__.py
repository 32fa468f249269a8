"""
agentflow: multi-agent workflow engine.

Agents backed by a text generation service cooperate through a shared
context. Workflows run their steps sequentially, as concurrent branches with
a join step, or conditionally on a trigger step's output.
"""

from .agents import Agent
from .errors import (
    AgentNotFoundError,
    DelegationTargetNotFound,
    MissingRequiredInputError,
    StepExecutionError,
    WorkflowError,
    WorkflowLoadError,
    WorkflowValidationError,
)
from .runtime_data import NOT_FOUND, Context, Message
from .workflows import (
    WorkflowDefinition,
    WorkflowExecutionResult,
    WorkflowExecutor,
    WorkflowStatus,
    WorkflowType,
    load_workflow_file,
    load_workflow_yaml,
)

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "Context",
    "Message",
    "NOT_FOUND",
    "WorkflowDefinition",
    "WorkflowType",
    "WorkflowExecutor",
    "WorkflowExecutionResult",
    "WorkflowStatus",
    "load_workflow_file",
    "load_workflow_yaml",
    "WorkflowError",
    "AgentNotFoundError",
    "MissingRequiredInputError",
    "StepExecutionError",
    "DelegationTargetNotFound",
    "WorkflowLoadError",
    "WorkflowValidationError",
]
