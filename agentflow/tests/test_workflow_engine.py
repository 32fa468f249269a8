"""
Tests for WorkflowExecutor
"""

import asyncio

import pytest

from agentflow.errors import (
    AgentNotFoundError,
    MissingRequiredInputError,
    StepExecutionError,
    WorkflowError,
)
from agentflow.observers import ExecutionObserver
from agentflow.runtime_data import Context, StepStatus
from agentflow.workflows import (
    WorkflowDefinition,
    WorkflowExecutor,
    WorkflowStatus,
    WorkflowType,
)


def sequential(steps, stop_on_error=True):
    return WorkflowDefinition.from_dict(
        {"id": "seq", "type": "sequential", "stopOnError": stop_on_error, "steps": steps}
    )


class RecordingObserver(ExecutionObserver):
    def __init__(self):
        self.events = []

    def on_workflow_start(self, event, workflow, context):
        self.events.append(("workflow_start", event.workflow_id))

    def on_workflow_end(self, event, workflow, context):
        self.events.append(("workflow_end", event.success))

    def on_agent_start(self, event):
        self.events.append(("agent_start", event.agent_id))

    def on_agent_end(self, event):
        self.events.append(("agent_end", event.agent_id, event.success))


class TestSequentialExecution:
    @pytest.mark.asyncio
    async def test_steps_run_in_order_and_record_outputs(self, make_agent):
        workflow = sequential(
            [
                {"id": "research", "agent": "researcher", "outputs": {"produced": ["facts"]}},
                {
                    "id": "write",
                    "agent": "writer",
                    "inputs": {"required": ["facts"]},
                    "outputs": {"produced": ["article", "draft"]},
                },
            ]
        )
        researcher = make_agent("researcher", replies="the facts")
        writer = make_agent("writer", replies="the article")
        context = Context()

        result = await WorkflowExecutor().execute(workflow, [researcher, writer], context)

        assert result.status == WorkflowStatus.COMPLETED
        assert [(m.agent_id, m.content) for m in context.get_messages()] == [
            ("researcher", "the facts"),
            ("writer", "the article"),
        ]
        assert context.get_output("facts") == "the facts"
        assert context.get_output("article") == "the article"
        assert context.get_output("draft") == "the article"
        assert result.outputs == context.outputs
        assert result.step_results["write"].status == StepStatus.COMPLETED
        # The second step saw the first step's reply
        assert "Agent researcher: the facts" in writer.generator.prompts[0]

    @pytest.mark.asyncio
    async def test_runs_are_deterministic(self, make_agent):
        workflow = sequential(
            [{"id": "a", "agent": "a"}, {"id": "b", "agent": "b"}, {"id": "c", "agent": "a"}]
        )

        async def run_once():
            agents = {"a": make_agent("a", replies=["a1", "a2"]), "b": make_agent("b", replies="b1")}
            context = Context()
            await WorkflowExecutor().execute(workflow, agents, context)
            return [(m.agent_id, m.content) for m in context.get_messages()]

        assert await run_once() == await run_once() == [("a", "a1"), ("b", "b1"), ("a", "a2")]

    @pytest.mark.asyncio
    async def test_same_agent_in_two_steps_sees_its_own_earlier_reply(self, make_agent):
        workflow = sequential([{"id": "s1", "agent": "a"}, {"id": "s2", "agent": "a"}])
        agent = make_agent("a", replies=["first", "second"])

        await WorkflowExecutor().execute(workflow, [agent], Context())

        assert "Agent a: first" in agent.generator.prompts[1]

    @pytest.mark.asyncio
    async def test_missing_input_aborts_when_stop_on_error(self, make_agent):
        workflow = sequential(
            [
                {"id": "s1", "agent": "a"},
                {"id": "s2", "agent": "b", "inputs": {"required": ["never_made"]}},
                {"id": "s3", "agent": "a"},
            ]
        )
        a, b = make_agent("a"), make_agent("b")
        context = Context()

        with pytest.raises(MissingRequiredInputError) as exc_info:
            await WorkflowExecutor().execute(workflow, [a, b], context)

        assert exc_info.value.missing == ["never_made"]
        assert b.generator.prompts == []
        assert len(a.generator.prompts) == 1
        assert len(context) == 1

    @pytest.mark.asyncio
    async def test_missing_input_skipped_when_continuing(self, make_agent):
        workflow = sequential(
            [
                {"id": "s1", "agent": "a", "outputs": {"produced": ["x"]}},
                {"id": "s2", "agent": "b", "inputs": {"required": ["y"]}},
                {"id": "s3", "agent": "a", "inputs": {"required": ["x"]}},
            ],
            stop_on_error=False,
        )
        a, b = make_agent("a"), make_agent("b")
        context = Context()

        result = await WorkflowExecutor().execute(workflow, [a, b], context)

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["s2"].status == StepStatus.SKIPPED
        assert result.step_results["s3"].status == StepStatus.COMPLETED
        assert b.generator.prompts == []
        assert [m.agent_id for m in context.get_messages()] == ["a", "a"]

    @pytest.mark.asyncio
    async def test_unknown_agent_raises(self, make_agent):
        workflow = sequential([{"id": "s1", "agent": "ghost"}])

        with pytest.raises(AgentNotFoundError, match="ghost"):
            await WorkflowExecutor().execute(workflow, [make_agent("a")], Context())

    @pytest.mark.asyncio
    async def test_generation_failure_wrapped_and_chained(self, make_agent):
        workflow = sequential([{"id": "s1", "agent": "a"}, {"id": "s2", "agent": "b"}])
        boom = RuntimeError("LLM API error: rate limited")
        a = make_agent("a", error=boom)
        b = make_agent("b")

        with pytest.raises(StepExecutionError) as exc_info:
            await WorkflowExecutor().execute(workflow, [a, b], Context())

        assert exc_info.value.__cause__ is boom
        assert exc_info.value.step_id == "s1"
        assert b.generator.prompts == []

    @pytest.mark.asyncio
    async def test_generation_failure_recorded_when_continuing(self, make_agent):
        workflow = sequential(
            [{"id": "s1", "agent": "a"}, {"id": "s2", "agent": "b"}], stop_on_error=False
        )
        a = make_agent("a", error=RuntimeError("down"))
        b = make_agent("b", replies="still ran")
        context = Context()

        result = await WorkflowExecutor().execute(workflow, [a, b], context)

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["s1"].status == StepStatus.FAILED
        assert "down" in result.step_results["s1"].error
        assert [m.content for m in context.get_messages()] == ["still ran"]

    @pytest.mark.asyncio
    async def test_context_is_created_when_omitted(self, make_agent):
        workflow = sequential([{"id": "s1", "agent": "a", "outputs": {"produced": ["k"]}}])

        result = await WorkflowExecutor().execute(workflow, [make_agent("a", replies="v")])

        assert result.outputs == {"k": "v"}

    @pytest.mark.asyncio
    async def test_unknown_agent_skipped_when_continuing(self, make_agent):
        workflow = sequential(
            [{"id": "s1", "agent": "ghost"}, {"id": "s2", "agent": "a"}], stop_on_error=False
        )
        context = Context()

        result = await WorkflowExecutor().execute(workflow, [make_agent("a", replies="r")], context)

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["s1"].status == StepStatus.SKIPPED
        assert "ghost" in result.step_results["s1"].error
        assert result.step_results["s2"].status == StepStatus.COMPLETED
        assert [m.content for m in context.get_messages()] == ["r"]

    @pytest.mark.asyncio
    async def test_unsupported_workflow_type_fails_the_run(self, make_agent):
        executor = WorkflowExecutor()
        del executor._handlers[WorkflowType.SEQUENTIAL]
        workflow = sequential([{"id": "s1", "agent": "a"}])
        a = make_agent("a")

        with pytest.raises(WorkflowError, match="Unsupported workflow type"):
            await executor.execute(workflow, [a], Context())

        assert a.generator.prompts == []


class TestParallelExecution:
    @staticmethod
    def parallel(branches, then=None, stop_on_error=True):
        data = {"id": "par", "type": "parallel", "stopOnError": stop_on_error, "branches": branches}
        if then:
            data["then"] = then
        return WorkflowDefinition.from_dict(data)

    @pytest.mark.asyncio
    async def test_branches_run_concurrently_then_join(self, make_agent):
        workflow = self.parallel(
            [
                {"id": "slow", "agent": "slow", "outputs": {"produced": ["slow_out"]}},
                {"id": "fast", "agent": "fast", "outputs": {"produced": ["fast_out"]}},
            ],
            then={"agent": "joiner", "inputs": {"required": ["slow_out", "fast_out"]}},
        )
        slow = make_agent("slow", replies="slow result", delay=0.05)
        fast = make_agent("fast", replies="fast result", delay=0.01)
        joiner = make_agent("joiner", replies="combined")
        context = Context()

        result = await WorkflowExecutor().execute(workflow, [slow, fast, joiner], context)

        assert result.status == WorkflowStatus.COMPLETED
        # Messages land in completion order, the join step last
        assert [m.agent_id for m in context.get_messages()] == ["fast", "slow", "joiner"]
        join_prompt = joiner.generator.prompts[0]
        assert "slow result" in join_prompt and "fast result" in join_prompt
        assert result.step_results["then"].status == StepStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_branches_overlap_in_time(self, make_agent):
        workflow = self.parallel([{"id": f"b{i}", "agent": f"a{i}"} for i in range(5)])
        agents = [make_agent(f"a{i}", delay=0.1) for i in range(5)]

        loop = asyncio.get_running_loop()
        start = loop.time()
        await WorkflowExecutor().execute(workflow, agents, Context())

        assert loop.time() - start < 0.4

    @pytest.mark.asyncio
    async def test_parallel_without_join(self, make_agent):
        workflow = self.parallel([{"id": "b1", "agent": "a"}, {"id": "b2", "agent": "b"}])
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow, [make_agent("a"), make_agent("b")], context
        )

        assert result.status == WorkflowStatus.COMPLETED
        assert len(context) == 2

    @pytest.mark.asyncio
    async def test_failing_branch_waits_for_siblings_and_skips_join(self, make_agent):
        workflow = self.parallel(
            [
                {"id": "ok", "agent": "ok", "outputs": {"produced": ["ok_out"]}},
                {"id": "bad", "agent": "bad"},
            ],
            then={"agent": "joiner"},
        )
        ok = make_agent("ok", replies="fine", delay=0.05)
        bad = make_agent("bad", error=RuntimeError("branch failed"))
        joiner = make_agent("joiner")
        context = Context()

        with pytest.raises(StepExecutionError, match="branch failed"):
            await WorkflowExecutor().execute(workflow, [ok, bad, joiner], context)

        # The slower sibling still finished before the failure surfaced
        assert context.get_output("ok_out") == "fine"
        assert joiner.generator.prompts == []

    @pytest.mark.asyncio
    async def test_first_failure_in_declared_order_is_raised(self, make_agent):
        workflow = self.parallel(
            [{"id": "first", "agent": "first"}, {"id": "second", "agent": "second"}]
        )
        first = make_agent("first", error=RuntimeError("first failed"), delay=0.05)
        second = make_agent("second", error=RuntimeError("second failed"))

        with pytest.raises(StepExecutionError) as exc_info:
            await WorkflowExecutor().execute(workflow, [first, second], Context())

        assert exc_info.value.step_id == "first"

    @pytest.mark.asyncio
    async def test_failing_branch_skipped_when_continuing(self, make_agent):
        workflow = self.parallel(
            [{"id": "ok", "agent": "ok"}, {"id": "bad", "agent": "bad"}],
            then={"agent": "joiner"},
            stop_on_error=False,
        )
        joiner = make_agent("joiner", replies="joined")
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow,
            [make_agent("ok"), make_agent("bad", error=RuntimeError("x")), joiner],
            context,
        )

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["bad"].status == StepStatus.FAILED
        assert context.get_messages()[-1].content == "joined"

    @pytest.mark.asyncio
    async def test_branch_missing_input_aborts_after_siblings(self, make_agent):
        workflow = self.parallel(
            [
                {"id": "ok", "agent": "ok", "outputs": {"produced": ["ok_out"]}},
                {"id": "needy", "agent": "needy", "inputs": {"required": ["absent"]}},
            ],
            then={"agent": "joiner"},
        )
        needy = make_agent("needy")
        joiner = make_agent("joiner")
        context = Context()

        with pytest.raises(MissingRequiredInputError, match="absent"):
            await WorkflowExecutor().execute(
                workflow, [make_agent("ok", replies="fine", delay=0.02), needy, joiner], context
            )

        assert context.get_output("ok_out") == "fine"
        assert needy.generator.prompts == []
        assert joiner.generator.prompts == []

    @pytest.mark.asyncio
    async def test_branch_missing_input_skipped_when_continuing(self, make_agent):
        workflow = self.parallel(
            [
                {"id": "ok", "agent": "ok"},
                {"id": "needy", "agent": "needy", "inputs": {"required": ["absent"]}},
            ],
            then={"agent": "joiner"},
            stop_on_error=False,
        )
        needy = make_agent("needy")
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow, [make_agent("ok"), needy, make_agent("joiner", replies="joined")], context
        )

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["needy"].status == StepStatus.SKIPPED
        assert needy.generator.prompts == []
        assert result.step_results["then"].status == StepStatus.COMPLETED
        assert context.get_messages()[-1].content == "joined"


class TestConditionalExecution:
    @staticmethod
    def conditional(cases, default=None, stop_on_error=True):
        condition = {"stepId": "classify", "cases": cases}
        if default:
            condition["default"] = default
        return WorkflowDefinition.from_dict(
            {
                "id": "cond",
                "type": "conditional",
                "stopOnError": stop_on_error,
                "steps": [{"id": "classify", "agent": "classifier", "outputs": {"produced": ["label"]}}],
                "condition": condition,
            }
        )

    @pytest.mark.asyncio
    async def test_first_matching_case_runs(self, make_agent):
        workflow = self.conditional(
            [
                {"condition": "urgent", "step": {"id": "escalate", "agent": "escalator"}},
                {"condition": "bug", "step": {"id": "triage", "agent": "triager"}},
            ]
        )
        classifier = make_agent("classifier", replies="This is an URGENT bug report")
        escalator = make_agent("escalator", replies="escalated")
        triager = make_agent("triager")
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow, [classifier, escalator, triager], context
        )

        assert result.status == WorkflowStatus.COMPLETED
        assert [m.agent_id for m in context.get_messages()] == ["classifier", "escalator"]
        assert triager.generator.prompts == []
        assert context.get_output("label") == "This is an URGENT bug report"

    @pytest.mark.asyncio
    async def test_default_runs_when_nothing_matches(self, make_agent):
        workflow = self.conditional(
            [{"condition": "yes", "step": {"agent": "yes_agent"}}],
            default={"agent": "fallback", "outputs": {"produced": ["answer"]}},
        )
        context = Context()

        await WorkflowExecutor().execute(
            workflow,
            [
                make_agent("classifier", replies="nope"),
                make_agent("yes_agent"),
                make_agent("fallback", replies="fell back"),
            ],
            context,
        )

        assert context.get_output("answer") == "fell back"

    @pytest.mark.asyncio
    async def test_no_match_and_no_default_completes(self, make_agent):
        workflow = self.conditional([{"condition": "yes", "step": {"agent": "yes_agent"}}])
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow, [make_agent("classifier", replies="nope"), make_agent("yes_agent")], context
        )

        assert result.status == WorkflowStatus.COMPLETED
        assert [m.agent_id for m in context.get_messages()] == ["classifier"]

    @pytest.mark.asyncio
    async def test_failed_trigger_skips_cases_when_continuing(self, make_agent):
        workflow = self.conditional(
            [{"condition": "", "step": {"agent": "any"}}],
            default={"agent": "any"},
            stop_on_error=False,
        )
        any_agent = make_agent("any")

        result = await WorkflowExecutor().execute(
            workflow,
            [make_agent("classifier", error=RuntimeError("down")), any_agent],
            Context(),
        )

        assert result.status == WorkflowStatus.PARTIAL
        assert any_agent.generator.prompts == []

    @pytest.mark.asyncio
    async def test_missing_trigger_step_raises(self, make_agent):
        workflow = self.conditional([{"condition": "x", "step": {"agent": "a"}}])
        workflow.condition.trigger_step_id = "nowhere"

        with pytest.raises(WorkflowError, match="nowhere"):
            await WorkflowExecutor().execute(workflow, [make_agent("classifier")], Context())

    @pytest.mark.asyncio
    async def test_failing_case_step_aborts(self, make_agent):
        workflow = self.conditional(
            [{"condition": "urgent", "step": {"id": "escalate", "agent": "escalator"}}]
        )
        context = Context()

        with pytest.raises(StepExecutionError) as exc_info:
            await WorkflowExecutor().execute(
                workflow,
                [
                    make_agent("classifier", replies="urgent"),
                    make_agent("escalator", error=RuntimeError("pager down")),
                ],
                context,
            )

        assert exc_info.value.step_id == "escalate"
        assert [m.agent_id for m in context.get_messages()] == ["classifier"]

    @pytest.mark.asyncio
    async def test_failing_case_step_recorded_when_continuing(self, make_agent):
        workflow = self.conditional(
            [{"condition": "urgent", "step": {"id": "escalate", "agent": "escalator"}}],
            stop_on_error=False,
        )
        context = Context()

        result = await WorkflowExecutor().execute(
            workflow,
            [
                make_agent("classifier", replies="urgent"),
                make_agent("escalator", error=RuntimeError("pager down")),
            ],
            context,
        )

        assert result.status == WorkflowStatus.PARTIAL
        assert result.step_results["classify"].status == StepStatus.COMPLETED
        assert result.step_results["escalate"].status == StepStatus.FAILED
        assert "pager down" in result.step_results["escalate"].error
        assert context.get_output("label") == "urgent"


class TestObserverNotifications:
    @pytest.mark.asyncio
    async def test_lifecycle_order(self, make_agent):
        observer = RecordingObserver()
        workflow = sequential([{"id": "s1", "agent": "a"}, {"id": "s2", "agent": "b"}])

        await WorkflowExecutor(observer=observer).execute(
            workflow, [make_agent("a"), make_agent("b")], Context()
        )

        assert observer.events == [
            ("workflow_start", "seq"),
            ("agent_start", "a"),
            ("agent_end", "a", True),
            ("agent_start", "b"),
            ("agent_end", "b", True),
            ("workflow_end", True),
        ]

    @pytest.mark.asyncio
    async def test_failure_reported_before_raising(self, make_agent):
        observer = RecordingObserver()
        workflow = sequential([{"id": "s1", "agent": "a"}])

        with pytest.raises(StepExecutionError):
            await WorkflowExecutor(observer=observer).execute(
                workflow, [make_agent("a", error=RuntimeError("x"))], Context()
            )

        assert observer.events[-2:] == [("agent_end", "a", False), ("workflow_end", False)]

    @pytest.mark.asyncio
    async def test_observer_errors_do_not_affect_execution(self, make_agent):
        class BrokenObserver(ExecutionObserver):
            def on_agent_start(self, event):
                raise ValueError("observer bug")

            def on_workflow_end(self, event, workflow, context):
                raise ValueError("observer bug")

        workflow = sequential([{"id": "s1", "agent": "a", "outputs": {"produced": ["k"]}}])

        result = await WorkflowExecutor(observer=BrokenObserver()).execute(
            workflow, [make_agent("a", replies="v")], Context()
        )

        assert result.status == WorkflowStatus.COMPLETED
        assert result.outputs == {"k": "v"}
