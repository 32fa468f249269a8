"""
Workflow Visualization

Plain-text renderings of a workflow definition, used by dry runs.
"""

from typing import List

from .definition import StepDefinition, WorkflowDefinition, WorkflowType


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 1] + "~"


def _step_details(index: int, step: StepDefinition) -> List[str]:
    lines = [f"  [{index}] {step.id} -> {step.agent} ({step.action})"]
    if step.inputs and step.inputs.required:
        lines.append(f"      Inputs: {', '.join(step.inputs.required)}")
    if step.inputs and step.inputs.optional:
        lines.append(f"      Optional: {', '.join(step.inputs.optional)}")
    if step.produced:
        lines.append(f"      Outputs: {', '.join(step.produced)}")
    return lines


def _render_sequential(workflow: WorkflowDefinition) -> List[str]:
    flow = " --> ".join(_truncate(step.agent, 12) for step in workflow.steps)
    lines = ["SEQUENTIAL EXECUTION FLOW:", f"  {flow}", "", "STEP DETAILS:"]
    for index, step in enumerate(workflow.steps, start=1):
        lines.extend(_step_details(index, step))
    return lines


def _render_parallel(workflow: WorkflowDefinition) -> List[str]:
    width = max(len(_truncate(b.agent, 12)) for b in workflow.branches) if workflow.branches else 0
    lines = ["PARALLEL EXECUTION FLOW:"]
    for branch in workflow.branches:
        lines.append(f"  | {_truncate(branch.agent, 12).ljust(width)} |--+")
    join = workflow.then.agent if workflow.then else "[RESULTS]"
    lines.append(f"  {' ' * (width + 5)}+--> {join}")
    lines.extend(["", "BRANCH DETAILS:"])
    for index, branch in enumerate(workflow.branches, start=1):
        lines.extend(_step_details(index, branch))
    if workflow.then:
        lines.extend(["", "JOIN STEP:"])
        lines.extend(_step_details(1, workflow.then))
    return lines


def _render_conditional(workflow: WorkflowDefinition) -> List[str]:
    lines = ["CONDITIONAL EXECUTION FLOW:"]
    condition = workflow.condition
    if condition is None:
        return lines + ["  (no condition defined)"]

    trigger = workflow.get_step(condition.trigger_step_id)
    trigger_agent = trigger.agent if trigger else "?"
    lines.append(f"  {condition.trigger_step_id} ({trigger_agent})")
    for case in condition.cases:
        lines.append(f"    |-- contains '{case.match}' --> {case.step.agent}")
    if condition.default_step:
        lines.append(f"    `-- otherwise --> {condition.default_step.agent}")
    else:
        lines.append("    `-- otherwise --> (nothing)")

    lines.extend(["", "STEP DETAILS:"])
    index = 1
    for step in workflow.steps:
        lines.extend(_step_details(index, step))
        index += 1
    for case in condition.cases:
        lines.extend(_step_details(index, case.step))
        index += 1
    if condition.default_step:
        lines.extend(_step_details(index, condition.default_step))
    return lines


_RENDERERS = {
    WorkflowType.SEQUENTIAL: _render_sequential,
    WorkflowType.PARALLEL: _render_parallel,
    WorkflowType.CONDITIONAL: _render_conditional,
}


def render_workflow(workflow: WorkflowDefinition) -> str:
    """
    Render a workflow as text.

    Args:
        workflow: Workflow definition

    Returns:
        Multi-line string with a header, the flow and per-step details
    """
    title = f" WORKFLOW: {workflow.id} "
    border = "+" + "-" * len(title) + "+"
    lines = [
        border,
        f"|{title}|",
        border,
        "",
        f"Workflow Type: {workflow.type.value}",
        f"Stop on error: {workflow.stop_on_error}",
        "",
    ]
    lines.extend(_RENDERERS[workflow.type](workflow))
    return "\n".join(lines) + "\n"


def render_plan(workflow: WorkflowDefinition) -> str:
    """One line per unit of work, in the order the executor would start them."""
    lines = []
    if workflow.type == WorkflowType.SEQUENTIAL:
        for index, step in enumerate(workflow.steps, start=1):
            lines.append(f"{index}. {step.id}: run '{step.agent}'")
    elif workflow.type == WorkflowType.PARALLEL:
        names = ", ".join(f"'{b.agent}'" for b in workflow.branches)
        lines.append(f"1. run {len(workflow.branches)} branches concurrently: {names}")
        if workflow.then:
            lines.append(f"2. {workflow.then.id}: run '{workflow.then.agent}' after all branches")
    elif workflow.condition is not None:
        condition = workflow.condition
        lines.append(f"1. {condition.trigger_step_id}: run trigger step")
        lines.append(
            f"2. run the first case whose text appears in the trigger output "
            f"({len(condition.cases)} cases"
            f"{', with default' if condition.default_step else ''})"
        )
    return "\n".join(lines)
