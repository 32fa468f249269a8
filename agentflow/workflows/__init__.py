"""
Workflows Module

Declarative workflow definitions and the engine that executes them:
- definition: workflow, step and condition data shapes
- engine: sequential, parallel and conditional execution
- loader: YAML documents to a validated workflow plus its agents
- visualization: text renderings for dry runs
"""

from .definition import (
    ConditionCase,
    ConditionDefinition,
    StepDefinition,
    StepInputs,
    StepOutputs,
    WorkflowDefinition,
    WorkflowType,
)
from .engine import WorkflowExecutionResult, WorkflowExecutor, WorkflowStatus
from .loader import (
    LoadedWorkflow,
    load_workflow_data,
    load_workflow_file,
    load_workflow_yaml,
)
from .visualization import render_plan, render_workflow

__all__ = [
    "ConditionCase",
    "ConditionDefinition",
    "StepDefinition",
    "StepInputs",
    "StepOutputs",
    "WorkflowDefinition",
    "WorkflowType",
    "WorkflowExecutionResult",
    "WorkflowExecutor",
    "WorkflowStatus",
    "LoadedWorkflow",
    "load_workflow_data",
    "load_workflow_file",
    "load_workflow_yaml",
    "render_plan",
    "render_workflow",
]
