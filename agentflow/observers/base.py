"""
Execution Observer

Lifecycle hooks the executor calls at workflow and agent boundaries. Observers
watch a run without influencing it: the executor discards anything they raise.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class WorkflowEvent:
    """Workflow start/end notification."""

    workflow_id: str
    workflow_type: str
    execution_id: str
    timestamp: datetime = field(default_factory=datetime.now)
    duration_ms: Optional[float] = None
    success: Optional[bool] = None
    status: Optional[str] = None
    agent_count: int = 0
    step_count: int = 0
    branch_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass
class AgentEvent:
    """Agent start/end notification for one step."""

    agent_id: str
    step_id: str
    workflow_id: str
    execution_id: str
    timestamp: datetime = field(default_factory=datetime.now)
    duration_ms: Optional[float] = None
    success: Optional[bool] = None
    message_count: int = 0
    output_length: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class ExecutionObserver:
    """
    Base observer. Every hook is a no-op; subclasses override what they need.

    Hooks receive the executor's context object where useful, so persistence
    observers can snapshot it, but must treat it as read-only.
    """

    def on_workflow_start(self, event: WorkflowEvent, workflow: Any, context: Any) -> None:
        pass

    def on_workflow_end(self, event: WorkflowEvent, workflow: Any, context: Any) -> None:
        pass

    def on_agent_start(self, event: AgentEvent) -> None:
        pass

    def on_agent_end(self, event: AgentEvent) -> None:
        pass


class CompositeObserver(ExecutionObserver):
    """Fan each notification out to several observers."""

    def __init__(self, observers: Optional[List[ExecutionObserver]] = None):
        self.observers: List[ExecutionObserver] = list(observers or [])

    def add(self, observer: ExecutionObserver) -> "CompositeObserver":
        """Add an observer."""
        self.observers.append(observer)
        return self

    def _each(self, hook: str, *args) -> None:
        for observer in self.observers:
            try:
                getattr(observer, hook)(*args)
            except Exception as e:
                logger.error(
                    f"Observer {observer.__class__.__name__}.{hook} failed: {e}",
                    exc_info=True,
                )

    def on_workflow_start(self, event, workflow, context):
        self._each("on_workflow_start", event, workflow, context)

    def on_workflow_end(self, event, workflow, context):
        self._each("on_workflow_end", event, workflow, context)

    def on_agent_start(self, event):
        self._each("on_agent_start", event)

    def on_agent_end(self, event):
        self._each("on_agent_end", event)


class LoggingObserver(ExecutionObserver):
    """Report lifecycle events through the standard logging module."""

    def __init__(self, preview_chars: int = 200):
        self.logger = logging.getLogger("agentflow.execution")
        self.preview_chars = preview_chars

    def on_workflow_start(self, event, workflow, context):
        self.logger.info(
            f"Starting workflow '{event.workflow_id}' ({event.workflow_type}) "
            f"with {event.agent_count} agents, stop_on_error="
            f"{getattr(workflow, 'stop_on_error', None)}"
        )

    def on_workflow_end(self, event, workflow, context):
        if event.success:
            self.logger.info(
                f"Workflow '{event.workflow_id}' completed in {event.duration_ms:.0f}ms"
            )
        else:
            self.logger.error(
                f"Workflow '{event.workflow_id}' failed after "
                f"{event.duration_ms:.0f}ms: {event.error}"
            )

    def on_agent_start(self, event):
        self.logger.info(f"[{event.step_id}] Running agent '{event.agent_id}'")

    def on_agent_end(self, event):
        if event.success:
            self.logger.info(
                f"[{event.step_id}] Agent '{event.agent_id}' finished in "
                f"{event.duration_ms:.0f}ms ({event.output_length} chars)"
            )
        else:
            self.logger.warning(
                f"[{event.step_id}] Agent '{event.agent_id}' failed: {event.error}"
            )
