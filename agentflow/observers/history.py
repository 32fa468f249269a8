"""
History Observer

Record each run into a ``RunStorage`` so it can be listed and inspected later.
"""

import logging
from typing import Dict

from ..history import RunRecord, RunStatus, RunStorage
from .base import AgentEvent, ExecutionObserver, WorkflowEvent

logger = logging.getLogger(__name__)


class HistoryObserver(ExecutionObserver):
    """Build a ``RunRecord`` from lifecycle events and save it when the run ends."""

    def __init__(self, storage: RunStorage):
        self.storage = storage
        self._records: Dict[str, RunRecord] = {}

    def on_workflow_start(self, event: WorkflowEvent, workflow, context):
        self._records[event.execution_id] = RunRecord(
            run_id=event.execution_id,
            workflow_id=event.workflow_id,
            workflow_type=event.workflow_type,
            status=RunStatus.RUNNING,
            started_at=event.timestamp,
            workflow=workflow.to_dict(),
        )

    def on_agent_end(self, event: AgentEvent):
        record = self._records.get(event.execution_id)
        if record is not None:
            record.agent_events.append(event.to_dict())

    def on_workflow_end(self, event: WorkflowEvent, workflow, context):
        record = self._records.pop(event.execution_id, None)
        if record is None:
            logger.warning(f"No run in progress for execution {event.execution_id}")
            return

        if event.success:
            record.status = (
                RunStatus.PARTIAL if event.status == "partial" else RunStatus.COMPLETED
            )
        else:
            record.status = RunStatus.FAILED
        record.completed_at = event.timestamp
        record.error = event.error
        record.messages = context.get_messages()
        record.outputs = context.outputs

        self.storage.save_run(record)
        logger.info(f"Saved run {record.run_id} ({record.status.value})")
