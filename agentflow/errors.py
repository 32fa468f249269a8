"""
Workflow Errors

Failures raised while running a workflow. AgentNotFoundError,
MissingRequiredInputError and StepExecutionError are governed by the
workflow's stop_on_error flag; DelegationTargetNotFound is always recovered
inside the agent that hit it.
"""

from typing import List, Optional


class WorkflowError(Exception):
    """Base class for workflow failures."""


class AgentNotFoundError(WorkflowError):
    """A step references an agent ID that is not in the roster."""

    def __init__(self, agent_id: str, step_id: Optional[str] = None):
        self.agent_id = agent_id
        self.step_id = step_id
        where = f" for step '{step_id}'" if step_id else ""
        super().__init__(f"Agent with ID '{agent_id}' not found{where}")


class MissingRequiredInputError(WorkflowError):
    """A required input key has not been produced by any earlier step."""

    def __init__(self, step_id: str, missing: List[str]):
        self.step_id = step_id
        self.missing = list(missing)
        super().__init__(
            f"Missing required inputs for step '{step_id}': {', '.join(self.missing)}"
        )


class StepExecutionError(WorkflowError):
    """The agent bound to a step failed while generating its output."""

    def __init__(self, step_id: str, agent_id: str, cause: BaseException):
        self.step_id = step_id
        self.agent_id = agent_id
        self.cause = cause
        super().__init__(
            f"Error executing agent '{agent_id}' in step '{step_id}': {cause}"
        )


class DelegationTargetNotFound(WorkflowError):
    """An agent asked to delegate to a sub-agent it does not own."""

    def __init__(self, agent_id: str, sub_agent_id: str):
        self.agent_id = agent_id
        self.sub_agent_id = sub_agent_id
        super().__init__(
            f"Agent '{agent_id}' has no sub-agent '{sub_agent_id}'"
        )


class WorkflowLoadError(WorkflowError):
    """A workflow file could not be read or parsed."""


class WorkflowValidationError(WorkflowError):
    """A workflow file parsed but failed validation."""

    def __init__(self, errors: List[str], source: Optional[str] = None):
        self.errors = list(errors)
        self.source = source
        prefix = f"Invalid workflow {source}" if source else "Invalid workflow"
        super().__init__(f"{prefix}: {'; '.join(self.errors)}")
