"""Tests for execution observers"""

import logging

import pytest

from agentflow.errors import MissingRequiredInputError
from agentflow.history import FileSystemRunStorage, MemoryRunStorage, RunStatus
from agentflow.observers import (
    AgentEvent,
    CompositeObserver,
    ExecutionLogObserver,
    ExecutionObserver,
    HistoryObserver,
    LoggingObserver,
    WorkflowEvent,
)
from agentflow.runtime_data import Context
from agentflow.workflows import WorkflowDefinition, WorkflowExecutor
from utils.logs import JsonlLogWriter


def two_step_workflow(stop_on_error=True):
    return WorkflowDefinition.from_dict(
        {
            "id": "report",
            "type": "sequential",
            "stopOnError": stop_on_error,
            "steps": [
                {"id": "s1", "agent": "a", "outputs": {"produced": ["first"]}},
                {"id": "s2", "agent": "b", "inputs": {"required": ["missing"]}},
            ],
        }
    )


class TestEvents:
    def test_to_dict_uses_iso_timestamp(self):
        event = AgentEvent(agent_id="a", step_id="s", workflow_id="w", execution_id="e")

        data = event.to_dict()

        assert data["agent_id"] == "a"
        assert isinstance(data["timestamp"], str)
        assert data["timestamp"] == event.timestamp.isoformat()


class TestCompositeObserver:
    def test_fans_out_and_isolates_failures(self, caplog):
        calls = []

        class Broken(ExecutionObserver):
            def on_agent_start(self, event):
                raise RuntimeError("broken observer")

        class Recording(ExecutionObserver):
            def on_agent_start(self, event):
                calls.append(event.agent_id)

        composite = CompositeObserver([Broken()]).add(Recording())
        event = AgentEvent(agent_id="a", step_id="s", workflow_id="w", execution_id="e")

        with caplog.at_level(logging.ERROR):
            composite.on_agent_start(event)

        assert calls == ["a"]
        assert "broken observer" in caplog.text


class TestLoggingObserver:
    @pytest.mark.asyncio
    async def test_logs_lifecycle(self, make_agent, caplog):
        workflow = WorkflowDefinition.from_dict(
            {"id": "logged", "type": "sequential", "steps": [{"id": "s1", "agent": "a"}]}
        )

        with caplog.at_level(logging.INFO, logger="agentflow.execution"):
            await WorkflowExecutor(observer=LoggingObserver()).execute(
                workflow, [make_agent("a")], Context()
            )

        assert "Starting workflow 'logged'" in caplog.text
        assert "[s1] Running agent 'a'" in caplog.text
        assert "Workflow 'logged' completed" in caplog.text


class TestExecutionLogObserver:
    @pytest.mark.asyncio
    async def test_writes_one_line_per_event(self, make_agent, tmp_path):
        writer = JsonlLogWriter(tmp_path, prefix="execution")
        workflow = WorkflowDefinition.from_dict(
            {
                "id": "w",
                "type": "sequential",
                "steps": [{"id": "s1", "agent": "a", "outputs": {"produced": ["k"]}}],
            }
        )

        await WorkflowExecutor(observer=ExecutionLogObserver(writer)).execute(
            workflow, [make_agent("a", replies="hello")], Context()
        )

        entries = writer.read_entries()
        assert [e["event"] for e in entries] == [
            "workflow_start",
            "agent_start",
            "agent_end",
            "workflow_end",
        ]
        assert entries[2]["output_length"] == len("hello")
        assert entries[3]["success"] is True
        assert entries[3]["output_keys"] == ["k"]
        assert len({e["execution_id"] for e in entries}) == 1


class TestHistoryObserver:
    @pytest.mark.asyncio
    async def test_records_partial_run(self, make_agent):
        storage = MemoryRunStorage()

        result = await WorkflowExecutor(observer=HistoryObserver(storage)).execute(
            two_step_workflow(stop_on_error=False),
            [make_agent("a", replies="one"), make_agent("b")],
            Context(),
        )

        record = storage.load_run(result.execution_id)
        assert record.workflow_id == "report"
        assert record.workflow_type == "sequential"
        assert record.status == RunStatus.PARTIAL
        assert [m.content for m in record.messages] == ["one"]
        assert record.outputs == {"first": "one"}
        assert [e["agent_id"] for e in record.agent_events] == ["a"]
        assert record.completed_at >= record.started_at

    @pytest.mark.asyncio
    async def test_stores_workflow_definition(self, make_agent, tmp_path):
        storage = FileSystemRunStorage(tmp_path)
        workflow = two_step_workflow(stop_on_error=False)

        result = await WorkflowExecutor(observer=HistoryObserver(storage)).execute(
            workflow, [make_agent("a"), make_agent("b")], Context()
        )

        record = storage.load_run(result.execution_id)
        assert record.workflow == workflow.to_dict()
        assert record.workflow["steps"][1]["inputs"] == {"required": ["missing"]}
        assert WorkflowDefinition.from_dict(record.workflow) == workflow

    @pytest.mark.asyncio
    async def test_records_failed_run(self, make_agent):
        storage = MemoryRunStorage()

        with pytest.raises(MissingRequiredInputError):
            await WorkflowExecutor(observer=HistoryObserver(storage)).execute(
                two_step_workflow(), [make_agent("a"), make_agent("b")], Context()
            )

        (record,) = storage.list_runs()
        assert record.status == RunStatus.FAILED
        assert "missing" in record.error

    def test_end_without_start_is_ignored(self):
        storage = MemoryRunStorage()
        event = WorkflowEvent(workflow_id="w", workflow_type="sequential", execution_id="x")

        HistoryObserver(storage).on_workflow_end(event, None, Context())

        assert storage.list_runs() == []
