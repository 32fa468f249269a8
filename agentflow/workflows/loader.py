"""
Workflow Loader

Turn a YAML workflow document into a validated WorkflowDefinition plus the
roster of agents it references.

Document layout::

    id: research-pipeline          # optional, defaults to the file name
    agents:
      - id: researcher
        role: Research analyst
        goal: Collect facts
        tools: [web_search]
        subAgents:
          - id: fact-checker
            role: Fact checker
            goal: Verify claims
    workflow:
      type: sequential             # sequential | parallel | parallel_then | conditional
      stopOnError: true
      steps: [...]
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..agents import Agent, GeneratorFactory
from ..errors import WorkflowLoadError, WorkflowValidationError
from .definition import WorkflowDefinition

logger = logging.getLogger(__name__)


class AgentSpec(BaseModel):
    """Agent entry of a workflow document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    role: str
    goal: str
    tools: List[str] = Field(default_factory=list)
    sub_agents: List["AgentSpec"] = Field(default_factory=list, alias="subAgents")

    @field_validator("id", "role", "goal")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    def build(self, generator_factory: Optional[GeneratorFactory] = None) -> Agent:
        """Create the Agent (and its sub-agent tree)."""
        return Agent(
            id=self.id,
            role=self.role,
            goal=self.goal,
            tools=self.tools,
            sub_agents=[sub.build(generator_factory) for sub in self.sub_agents],
            generator_factory=generator_factory,
        )


AgentSpec.model_rebuild()


class WorkflowDocument(BaseModel):
    """Top level of a workflow document."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    agents: List[AgentSpec] = Field(min_length=1)
    workflow: Dict[str, Any]


@dataclass
class LoadedWorkflow:
    """A validated workflow and its agents."""

    definition: WorkflowDefinition
    agents: List[Agent] = field(default_factory=list)
    source: Optional[str] = None

    def find_agent(self, agent_id: str) -> Optional[Agent]:
        """Find an agent anywhere in the roster, sub-agents included."""
        for agent in self.agents:
            for candidate in agent.iter_tree():
                if candidate.id == agent_id:
                    return candidate
        return None

    def uses_tool(self, tool_name: str) -> bool:
        """Whether any agent in the roster lists a tool."""
        return any(
            tool_name in candidate.tools
            for agent in self.agents
            for candidate in agent.iter_tree()
        )


def _format_validation_error(error: ValidationError) -> List[str]:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        messages.append(f"{location}: {detail['msg']}")
    return messages


def _duplicate_agent_ids(specs: List[AgentSpec]) -> List[str]:
    seen = set()
    errors = []

    def visit(spec: AgentSpec):
        if spec.id in seen:
            errors.append(f"Duplicate agent ID: {spec.id}")
        seen.add(spec.id)
        for sub in spec.sub_agents:
            visit(sub)

    for spec in specs:
        visit(spec)
    return errors


def load_workflow_data(
    data: Any,
    workflow_id: Optional[str] = None,
    generator_factory: Optional[GeneratorFactory] = None,
    source: Optional[str] = None,
) -> LoadedWorkflow:
    """
    Build a workflow from an already parsed document.

    Args:
        data: Parsed YAML document
        workflow_id: Fallback workflow ID
        generator_factory: Generation service factory handed to every agent
        source: Where the document came from, for error messages

    Returns:
        LoadedWorkflow

    Raises:
        WorkflowValidationError: If the document or workflow is invalid
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError(["Document must be a mapping"], source)

    try:
        document = WorkflowDocument.model_validate(data)
    except ValidationError as e:
        raise WorkflowValidationError(_format_validation_error(e), source) from e

    errors = _duplicate_agent_ids(document.agents)

    try:
        definition = WorkflowDefinition.from_dict(
            document.workflow, workflow_id=document.id or workflow_id
        )
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise WorkflowValidationError(errors + [f"workflow: {e}"], source) from e

    # Steps may only reference top-level agents; sub-agents are reached by delegation
    errors.extend(definition.validate(agent_ids=[spec.id for spec in document.agents]))
    if errors:
        raise WorkflowValidationError(errors, source)

    agents = [spec.build(generator_factory) for spec in document.agents]
    logger.info(
        f"Loaded workflow '{definition.id}' ({definition.type.value}) "
        f"with {len(agents)} agents"
    )
    return LoadedWorkflow(definition=definition, agents=agents, source=source)


def load_workflow_yaml(
    yaml_str: str,
    workflow_id: Optional[str] = None,
    generator_factory: Optional[GeneratorFactory] = None,
    source: Optional[str] = None,
) -> LoadedWorkflow:
    """
    Parse and validate a YAML workflow document.

    Raises:
        WorkflowLoadError: If the text is not valid YAML
        WorkflowValidationError: If the document or workflow is invalid
    """
    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise WorkflowLoadError(f"Invalid YAML: {e}") from e

    return load_workflow_data(
        data,
        workflow_id=workflow_id,
        generator_factory=generator_factory,
        source=source,
    )


def load_workflow_file(
    file_path: Union[str, Path],
    generator_factory: Optional[GeneratorFactory] = None,
) -> LoadedWorkflow:
    """
    Load a workflow file. The file name (without extension) is the fallback ID.

    Raises:
        WorkflowLoadError: If the file cannot be read or parsed
        WorkflowValidationError: If the document or workflow is invalid
    """
    path = Path(file_path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkflowLoadError(f"Cannot read workflow file {path}: {e}") from e

    return load_workflow_yaml(
        text,
        workflow_id=path.stem,
        generator_factory=generator_factory,
        source=str(path),
    )
