"""
Workflow Definition

Data shape of a declarative workflow: its execution pattern, the steps or
branches it runs, and the input/output key contracts of each step.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class WorkflowType(str, Enum):
    """Execution pattern of a workflow."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    CONDITIONAL = "conditional"

    @classmethod
    def parse(cls, value: Any) -> "WorkflowType":
        """
        Normalize a declared workflow type.

        The legacy ``parallel_then`` type is folded into ``parallel``, whose
        optional join step covers the same behavior.

        Args:
            value: Raw type value from the workflow source

        Returns:
            WorkflowType member

        Raises:
            ValueError: If the type is not recognized
        """
        normalized = str(value).strip().lower()
        if normalized == "parallel_then":
            return cls.PARALLEL
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Invalid workflow type '{value}'. Valid types: {valid}"
            ) from None


@dataclass
class StepInputs:
    """Input keys a step expects to find in the context."""

    required: List[str] = field(default_factory=list)
    optional: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["StepInputs"]:
        """Create from dictionary."""
        if data is None:
            return None
        return cls(
            required=list(data.get("required") or []),
            optional=list(data.get("optional") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {"required": list(self.required)}
        if self.optional:
            result["optional"] = list(self.optional)
        return result


@dataclass
class StepOutputs:
    """Output keys a step writes its result under."""

    produced: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["StepOutputs"]:
        """Create from dictionary."""
        if data is None:
            return None
        return cls(produced=list(data.get("produced") or []))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"produced": list(self.produced)}


@dataclass
class StepDefinition:
    """One unit of work: an agent, an action label and its key contracts."""

    id: str
    agent: str
    action: str = "execute"
    depends_on: List[str] = field(default_factory=list)
    inputs: Optional[StepInputs] = None
    outputs: Optional[StepOutputs] = None

    @property
    def produced(self) -> List[str]:
        """Output keys this step writes (empty when none are declared)."""
        return list(self.outputs.produced) if self.outputs else []

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], default_id: Optional[str] = None
    ) -> "StepDefinition":
        """
        Create from dictionary.

        Args:
            data: Step dictionary (camelCase keys as written in workflow files)
            default_id: ID to use when the step does not declare one

        Returns:
            StepDefinition instance
        """
        return cls(
            id=data.get("id") or default_id or "",
            agent=data.get("agent", ""),
            action=data.get("action") or "execute",
            depends_on=list(data.get("dependsOn") or []),
            inputs=StepInputs.from_dict(data.get("inputs")),
            outputs=StepOutputs.from_dict(data.get("outputs")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "id": self.id,
            "agent": self.agent,
            "action": self.action,
        }
        if self.depends_on:
            result["dependsOn"] = list(self.depends_on)
        if self.inputs is not None:
            result["inputs"] = self.inputs.to_dict()
        if self.outputs is not None:
            result["outputs"] = self.outputs.to_dict()
        return result


@dataclass
class ConditionCase:
    """A branch selected when its match string occurs in the trigger output."""

    match: str
    step: StepDefinition

    def matches(self, output: str) -> bool:
        """Case-insensitive substring test against the trigger output."""
        return self.match.lower() in output.lower()


@dataclass
class ConditionDefinition:
    """Branching configuration of a conditional workflow."""

    trigger_step_id: str
    cases: List[ConditionCase] = field(default_factory=list)
    default_step: Optional[StepDefinition] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConditionDefinition":
        """Create from dictionary."""
        cases = [
            ConditionCase(
                match=str(case.get("condition", "")),
                step=StepDefinition.from_dict(
                    case.get("step") or {}, default_id=f"case-{index + 1}"
                ),
            )
            for index, case in enumerate(data.get("cases") or [])
        ]
        default = data.get("default")
        return cls(
            trigger_step_id=data.get("stepId", ""),
            cases=cases,
            default_step=(
                StepDefinition.from_dict(default, default_id="default")
                if default
                else None
            ),
        )

    def select(self, output: str) -> Optional[ConditionCase]:
        """
        Pick the branch for a trigger output.

        The first declared case whose match string is a case-insensitive
        substring of the output wins. When nothing matches, the default step
        (if any) is returned as a synthetic case.

        Args:
            output: Raw text produced by the trigger step

        Returns:
            Selected case, or None when nothing matches and there is no default
        """
        for case in self.cases:
            if case.matches(output):
                return case
        if self.default_step is not None:
            return ConditionCase(match="default", step=self.default_step)
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "stepId": self.trigger_step_id,
            "cases": [
                {"condition": case.match, "step": case.step.to_dict()}
                for case in self.cases
            ],
        }
        if self.default_step is not None:
            result["default"] = self.default_step.to_dict()
        return result


@dataclass
class WorkflowDefinition:
    """
    Workflow definition.

    Pure data describing one run's shape. Which fields are meaningful depends
    on ``type``: sequential uses ``steps``; parallel uses ``branches`` and an
    optional ``then`` join step; conditional uses ``steps`` to hold the
    trigger step and ``condition`` for the cases.
    """

    id: str
    type: WorkflowType
    stop_on_error: bool = True
    steps: List[StepDefinition] = field(default_factory=list)
    branches: List[StepDefinition] = field(default_factory=list)
    then: Optional[StepDefinition] = None
    condition: Optional[ConditionDefinition] = None

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], workflow_id: Optional[str] = None
    ) -> "WorkflowDefinition":
        """
        Create from dictionary.

        Args:
            data: The ``workflow`` block
            workflow_id: ID to use when the block does not declare one

        Returns:
            WorkflowDefinition instance

        Raises:
            ValueError: If the type is unknown or stopOnError is not a boolean
        """
        workflow_type = WorkflowType.parse(data.get("type", ""))

        steps = [
            StepDefinition.from_dict(step, default_id=f"step-{index + 1}")
            for index, step in enumerate(data.get("steps") or [])
        ]
        branches = [
            StepDefinition.from_dict(branch, default_id=f"branch-{index + 1}")
            for index, branch in enumerate(data.get("branches") or [])
        ]
        then = data.get("then")
        condition = data.get("condition")

        stop_on_error = data.get("stopOnError")
        if stop_on_error is None:
            stop_on_error = True
        elif not isinstance(stop_on_error, bool):
            raise ValueError(
                f"stopOnError must be true or false, got {stop_on_error!r}"
            )

        return cls(
            id=data.get("id") or workflow_id or "workflow",
            type=workflow_type,
            stop_on_error=stop_on_error,
            steps=steps,
            branches=branches,
            then=StepDefinition.from_dict(then, default_id="then") if then else None,
            condition=ConditionDefinition.from_dict(condition) if condition else None,
        )

    def all_steps(self) -> List[StepDefinition]:
        """Every step, branch, join step and conditional case step."""
        result = list(self.steps) + list(self.branches)
        if self.then is not None:
            result.append(self.then)
        if self.condition is not None:
            result.extend(case.step for case in self.condition.cases)
            if self.condition.default_step is not None:
                result.append(self.condition.default_step)
        return result

    def get_step(self, step_id: str) -> Optional[StepDefinition]:
        """
        Get a top-level step by ID.

        Args:
            step_id: Step identifier

        Returns:
            StepDefinition or None if not found
        """
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def validate(self, agent_ids: Optional[Iterable[str]] = None) -> List[str]:
        """
        Validate workflow structure.

        Args:
            agent_ids: Known agent IDs; agent references are only checked when given

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        known_agents = set(agent_ids) if agent_ids is not None else None

        if self.type == WorkflowType.SEQUENTIAL and not self.steps:
            errors.append("Sequential workflow must have at least one step")
        elif self.type == WorkflowType.PARALLEL and not self.branches:
            errors.append("Parallel workflow must have at least one branch")
        elif self.type == WorkflowType.CONDITIONAL:
            if not self.steps:
                errors.append("Conditional workflow must have at least one step")
            if self.condition is None:
                errors.append("Conditional workflow must define a 'condition' block")
            else:
                if self.get_step(self.condition.trigger_step_id) is None:
                    errors.append(
                        f"Condition references unknown step "
                        f"'{self.condition.trigger_step_id}'"
                    )
                for index, case in enumerate(self.condition.cases):
                    if not case.match.strip():
                        errors.append(
                            f"Condition case {index + 1} must have a non-empty condition"
                        )

        # Step results are keyed by ID, so IDs are unique across every group
        seen = set()
        for step in self.all_steps():
            if step.id in seen:
                errors.append(f"Duplicate step ID '{step.id}'")
            seen.add(step.id)

        for step in self.all_steps():
            errors.extend(self._validate_step(step, known_agents))

        # Concurrent branches must not share an output key
        if self.type == WorkflowType.PARALLEL:
            owners: Dict[str, str] = {}
            for branch in self.branches:
                for key in branch.produced:
                    if key in owners and owners[key] != branch.id:
                        errors.append(
                            f"Branches '{owners[key]}' and '{branch.id}' both "
                            f"produce output '{key}'"
                        )
                    owners.setdefault(key, branch.id)

        return errors

    def _validate_step(
        self, step: StepDefinition, known_agents: Optional[set]
    ) -> List[str]:
        """Validate a single step's agent reference and key contracts."""
        errors = []
        if not step.agent or not step.agent.strip():
            errors.append(f"Step '{step.id}' must define an 'agent'")
        elif known_agents is not None and step.agent not in known_agents:
            errors.append(
                f"Step '{step.id}' references unknown agent '{step.agent}'"
            )

        if step.inputs is not None:
            overlap = sorted(set(step.inputs.required) & set(step.inputs.optional))
            if overlap:
                errors.append(
                    f"Step '{step.id}' has overlapping required and optional "
                    f"inputs: [{', '.join(overlap)}]"
                )

        if step.outputs is not None:
            seen = set()
            for key in step.outputs.produced:
                if key in seen:
                    errors.append(
                        f"Step '{step.id}' has duplicate output key '{key}'"
                    )
                seen.add(key)
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Returns:
            Dictionary representation using the workflow file's key names
        """
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "stopOnError": self.stop_on_error,
        }
        if self.steps:
            result["steps"] = [step.to_dict() for step in self.steps]
        if self.branches:
            result["branches"] = [branch.to_dict() for branch in self.branches]
        if self.then is not None:
            result["then"] = self.then.to_dict()
        if self.condition is not None:
            result["condition"] = self.condition.to_dict()
        return result

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"WorkflowDefinition(id='{self.id}', type='{self.type.value}', "
            f"steps={len(self.steps)}, branches={len(self.branches)})"
        )
