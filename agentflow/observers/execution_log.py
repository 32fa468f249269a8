"""
Execution Log Observer

Persist lifecycle events as JSON lines so a run can be inspected afterwards.
"""

from typing import Any, Dict

from utils.logs import JsonlLogWriter

from .base import AgentEvent, ExecutionObserver, WorkflowEvent


class ExecutionLogObserver(ExecutionObserver):
    """Write one JSON line per lifecycle event through a ``JsonlLogWriter``."""

    def __init__(self, writer: JsonlLogWriter):
        self.writer = writer

    @classmethod
    def from_settings(cls, settings) -> "ExecutionLogObserver":
        """Build from ``config.types.LogSettings``."""
        return cls(
            JsonlLogWriter(
                settings.execution_log_path,
                prefix="execution",
                max_bytes=settings.max_bytes,
                max_files=settings.max_files,
                enabled=settings.execution_log_enabled,
            )
        )

    def _write(self, event_type: str, payload: Dict[str, Any]):
        self.writer.write({"event": event_type, **payload})

    def on_workflow_start(self, event: WorkflowEvent, workflow, context):
        self._write("workflow_start", event.to_dict())

    def on_workflow_end(self, event: WorkflowEvent, workflow, context):
        payload = event.to_dict()
        payload["output_keys"] = sorted(context.outputs) if context is not None else []
        self._write("workflow_end", payload)

    def on_agent_start(self, event: AgentEvent):
        self._write("agent_start", event.to_dict())

    def on_agent_end(self, event: AgentEvent):
        self._write("agent_end", event.to_dict())
