"""
Workflow Engine

Execute a workflow definition against a roster of agents and a shared context.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..agents import Agent
from ..errors import (
    AgentNotFoundError,
    MissingRequiredInputError,
    StepExecutionError,
    WorkflowError,
)
from ..observers.base import AgentEvent, ExecutionObserver, WorkflowEvent
from ..runtime_data import Context, StepResult, StepStatus, validate_inputs
from .definition import StepDefinition, WorkflowDefinition, WorkflowType


class WorkflowStatus(str, Enum):
    """Workflow execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"  # Some units were skipped under stop_on_error=False


@dataclass
class WorkflowExecutionResult:
    """Result of workflow execution."""

    workflow_id: str
    execution_id: str
    status: WorkflowStatus
    outputs: Dict[str, Any] = field(default_factory=dict)
    step_results: Dict[str, StepResult] = field(default_factory=dict)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "status": self.status.value,
            "outputs": self.outputs,
            "step_results": {
                step_id: result.to_dict()
                for step_id, result in self.step_results.items()
            },
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }


@dataclass
class _Run:
    """Everything one execution needs, passed between the per-type handlers."""

    workflow: WorkflowDefinition
    agents: Dict[str, Agent]
    context: Context
    result: WorkflowExecutionResult


AgentRoster = Union[Iterable[Agent], Mapping[str, Agent]]


class WorkflowExecutor:
    """
    Workflow execution engine.

    Walks a workflow according to its type: steps one after another,
    branches concurrently with a join barrier, or a trigger step followed by
    the first matching case. Each unit of work resolves its agent, checks its
    required inputs, runs the agent, appends the reply to the message history
    and stores it under every declared output key.
    """

    def __init__(self, observer: Optional[ExecutionObserver] = None):
        """
        Initialize workflow executor.

        Args:
            observer: Optional lifecycle observer (logging, persistence, ...)
        """
        self.logger = logging.getLogger(__name__)
        self.observer = observer or ExecutionObserver()
        self._handlers: Dict[WorkflowType, Callable[[_Run], Awaitable[None]]] = {
            WorkflowType.SEQUENTIAL: self._execute_sequential,
            WorkflowType.PARALLEL: self._execute_parallel,
            WorkflowType.CONDITIONAL: self._execute_conditional,
        }

    async def execute(
        self,
        workflow: WorkflowDefinition,
        agents: AgentRoster,
        context: Optional[Context] = None,
    ) -> WorkflowExecutionResult:
        """
        Execute a workflow.

        Args:
            workflow: Validated workflow definition
            agents: Agents available to the workflow (list or id -> agent mapping)
            context: Fresh run context; created if omitted

        Returns:
            WorkflowExecutionResult with execution outcome

        Raises:
            WorkflowError: The first failure when workflow.stop_on_error is set
        """
        roster = self._build_roster(agents)
        context = context if context is not None else Context()
        execution_id = str(uuid.uuid4())

        result = WorkflowExecutionResult(
            workflow_id=workflow.id,
            execution_id=execution_id,
            status=WorkflowStatus.RUNNING,
            started_at=datetime.now(),
        )
        run = _Run(workflow=workflow, agents=roster, context=context, result=result)

        self.logger.info(
            f"Starting workflow '{workflow.id}' ({workflow.type.value}, "
            f"execution: {execution_id})"
        )
        self._notify(
            "on_workflow_start", self._workflow_event(run), workflow, context
        )
        start = time.monotonic()

        try:
            handler = self._handlers.get(workflow.type)
            if handler is None:
                raise WorkflowError(f"Unsupported workflow type: {workflow.type}")
            await handler(run)
        except Exception as e:
            result.status = WorkflowStatus.FAILED
            result.error = str(e)
            result.completed_at = datetime.now()
            result.outputs = context.outputs
            self.logger.error(f"Workflow '{workflow.id}' aborted: {e}")
            self._notify(
                "on_workflow_end",
                self._workflow_event(run, start, success=False, error=str(e)),
                workflow,
                context,
            )
            raise

        result.status = self._determine_status(result)
        result.completed_at = datetime.now()
        result.outputs = context.outputs

        self.logger.info(
            f"Workflow '{workflow.id}' finished with status: {result.status.value}"
        )
        self._notify(
            "on_workflow_end",
            self._workflow_event(run, start, success=True),
            workflow,
            context,
        )
        return result

    async def _execute_sequential(self, run: _Run):
        """Run each step in declared order."""
        steps = run.workflow.steps
        for index, step in enumerate(steps):
            self.logger.info(
                f"[{index + 1}/{len(steps)}] {step.id} -> {step.agent} ({step.action})"
            )
            await self._run_step(run, step)

    async def _execute_parallel(self, run: _Run):
        """
        Run every branch concurrently, wait for all of them, then the join step.

        Branches share the run context. A failing branch under stop_on_error
        does not cancel its siblings: all branches reach a terminal state and
        the failure of the first failing branch (declared order) is raised
        afterwards, without running the join step.
        """
        workflow = run.workflow
        self._warn_on_shared_outputs(workflow.branches)

        tasks = [
            asyncio.create_task(self._run_step(run, branch))
            for branch in workflow.branches
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        failures = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if failures:
            raise failures[0]

        self.logger.info(f"All {len(tasks)} branches completed")

        if workflow.then is not None:
            self.logger.info(f"Join step: {workflow.then.id} -> {workflow.then.agent}")
            await self._run_step(run, workflow.then)

    async def _execute_conditional(self, run: _Run):
        """Run the trigger step, then the first case its output matches."""
        workflow = run.workflow
        condition = workflow.condition
        if condition is None:
            raise WorkflowError(
                f"Conditional workflow '{workflow.id}' has no condition block"
            )

        trigger = workflow.get_step(condition.trigger_step_id)
        if trigger is None:
            raise WorkflowError(
                f"Trigger step '{condition.trigger_step_id}' not found in workflow "
                f"'{workflow.id}'"
            )

        output = await self._run_step(run, trigger)
        if output is None:
            self.logger.warning(
                f"Trigger step '{trigger.id}' did not complete; skipping condition cases"
            )
            return

        case = condition.select(output)
        if case is None:
            self.logger.info("No condition matched and no default step defined")
            return

        self.logger.info(
            f"Condition matched: '{case.match}', executing {case.step.id} -> {case.step.agent}"
        )
        await self._run_step(run, case.step)

    async def _run_step(self, run: _Run, step: StepDefinition) -> Optional[str]:
        """
        Resolve, validate, run and record one unit of work.

        Args:
            run: Current execution
            step: Step, branch or join step to run

        Returns:
            The agent's output, or None if the step was skipped

        Raises:
            WorkflowError: If the step fails and stop_on_error is set
        """
        started_at = datetime.now()
        try:
            agent = self._resolve_agent(run, step)

            missing = validate_inputs(step.inputs, run.context)
            if missing:
                raise MissingRequiredInputError(step.id, missing)

            output = await self._invoke_agent(run, step, agent)
        except WorkflowError as e:
            return self._handle_failure(run, step, e, started_at)

        run.context.add_message(agent.id, output)
        for key in step.produced:
            run.context.set_output(key, output)

        run.result.step_results[step.id] = StepResult(
            step_id=step.id,
            status=StepStatus.COMPLETED,
            agent_id=agent.id,
            result=output,
            started_at=started_at,
            completed_at=datetime.now(),
        )
        self.logger.debug(
            f"[{step.id}] Output: {output[:200]}{'...' if len(output) > 200 else ''}"
        )
        return output

    def _resolve_agent(self, run: _Run, step: StepDefinition) -> Agent:
        """Look up the agent bound to a step."""
        agent = run.agents.get(step.agent)
        if agent is None:
            raise AgentNotFoundError(step.agent, step.id)
        return agent

    async def _invoke_agent(self, run: _Run, step: StepDefinition, agent: Agent) -> str:
        """
        Run an agent, reporting start and end to the observer.

        Raises:
            StepExecutionError: If the agent (its generation service) fails
        """
        event = AgentEvent(
            agent_id=agent.id,
            step_id=step.id,
            workflow_id=run.workflow.id,
            execution_id=run.result.execution_id,
            message_count=len(run.context),
        )
        self._notify("on_agent_start", event)
        start = time.monotonic()

        try:
            output = await agent.run(run.context)
        except Exception as e:
            self._notify(
                "on_agent_end",
                AgentEvent(
                    agent_id=agent.id,
                    step_id=step.id,
                    workflow_id=run.workflow.id,
                    execution_id=run.result.execution_id,
                    duration_ms=(time.monotonic() - start) * 1000,
                    success=False,
                    message_count=len(run.context),
                    error=str(e),
                ),
            )
            raise StepExecutionError(step.id, agent.id, e) from e

        self._notify(
            "on_agent_end",
            AgentEvent(
                agent_id=agent.id,
                step_id=step.id,
                workflow_id=run.workflow.id,
                execution_id=run.result.execution_id,
                duration_ms=(time.monotonic() - start) * 1000,
                success=True,
                message_count=len(run.context),
                output_length=len(output),
            ),
        )
        return output

    def _handle_failure(
        self,
        run: _Run,
        step: StepDefinition,
        error: WorkflowError,
        started_at: datetime,
    ) -> None:
        """
        Apply the workflow's stop_on_error policy to a failed step.

        Raises:
            WorkflowError: The original error when stop_on_error is set
        """
        status = (
            StepStatus.FAILED
            if isinstance(error, StepExecutionError)
            else StepStatus.SKIPPED
        )
        run.result.step_results[step.id] = StepResult(
            step_id=step.id,
            status=status,
            agent_id=step.agent,
            error=str(error),
            started_at=started_at,
            completed_at=datetime.now(),
        )
        self.logger.error(f"ERROR: {error}")

        if run.workflow.stop_on_error:
            raise error

        self.logger.warning(
            f"Continuing after step '{step.id}' failed (stop_on_error=False)"
        )
        return None

    def _warn_on_shared_outputs(self, branches: List[StepDefinition]):
        """Log output keys declared by more than one concurrent branch."""
        owners: Dict[str, str] = {}
        for branch in branches:
            for key in branch.produced:
                if key in owners:
                    self.logger.warning(
                        f"Branches '{owners[key]}' and '{branch.id}' both produce "
                        f"'{key}'; the last branch to finish wins"
                    )
                else:
                    owners[key] = branch.id

    def _notify(self, hook: str, *args):
        """Call an observer hook, never letting it interfere with execution."""
        try:
            getattr(self.observer, hook)(*args)
        except Exception as e:
            self.logger.error(f"Execution observer hook '{hook}' failed: {e}", exc_info=True)

    def _workflow_event(
        self,
        run: _Run,
        start: Optional[float] = None,
        success: Optional[bool] = None,
        error: Optional[str] = None,
    ) -> WorkflowEvent:
        workflow = run.workflow
        return WorkflowEvent(
            workflow_id=workflow.id,
            workflow_type=workflow.type.value,
            execution_id=run.result.execution_id,
            duration_ms=(time.monotonic() - start) * 1000 if start is not None else None,
            success=success,
            status=run.result.status.value,
            agent_count=len(run.agents),
            step_count=len(workflow.steps),
            branch_count=len(workflow.branches),
            error=error,
        )

    @staticmethod
    def _build_roster(agents: AgentRoster) -> Dict[str, Agent]:
        if isinstance(agents, Mapping):
            return dict(agents)
        return {agent.id: agent for agent in agents}

    @staticmethod
    def _determine_status(result: WorkflowExecutionResult) -> WorkflowStatus:
        """
        Determine final workflow status based on step results.

        Args:
            result: Execution result collected so far

        Returns:
            Final workflow status
        """
        if any(
            r.status in (StepStatus.FAILED, StepStatus.SKIPPED)
            for r in result.step_results.values()
        ):
            return WorkflowStatus.PARTIAL
        return WorkflowStatus.COMPLETED
