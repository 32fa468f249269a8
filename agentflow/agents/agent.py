"""
Agent

An agent turns the shared conversation into one text reply by prompting an
external generation service with its role, goal, tools, sub-agents and the
message history. A reply may ask a sub-agent to handle part of the task, in
which case the sub-agent runs on an isolated context and the agent is
prompted again with the sub-agent's result.
"""

import logging
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from ..runtime_data import Context
from ..errors import DelegationTargetNotFound
from .delegation import Delegation, format_delegation, parse_delegation

logger = logging.getLogger(__name__)

WEB_SEARCH_TOOL = "web_search"


class GenerationService(Protocol):
    """Anything that can turn a prompt into text."""

    async def generate(self, prompt: str) -> str:
        ...


GeneratorFactory = Callable[["Agent"], GenerationService]


class Agent:
    """
    A role/goal/tool bundle backed by a generation service.

    Sub-agents form a tree owned by their parent; an agent is never shared
    between two parents.
    """

    def __init__(
        self,
        id: str,
        role: str,
        goal: str,
        tools: Optional[List[str]] = None,
        sub_agents: Optional[List["Agent"]] = None,
        generator: Optional[GenerationService] = None,
        generator_factory: Optional[GeneratorFactory] = None,
        tool_descriptions: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the agent.

        Args:
            id: Unique agent identifier
            role: What the agent is responsible for
            goal: What the agent is trying to achieve
            tools: Names of tools the agent may use
            sub_agents: Agents this agent may delegate to
            generator: Generation service; created lazily from the factory if omitted
            generator_factory: Builds a generation service for this agent on first run
            tool_descriptions: Optional descriptions shown next to tool names
        """
        self.id = id
        self.role = role
        self.goal = goal
        self.tools = list(tools or [])
        self.sub_agents = list(sub_agents or [])
        self.tool_descriptions = dict(tool_descriptions or {})
        self._generator = generator
        self._generator_factory = generator_factory

    @property
    def generator(self) -> GenerationService:
        """The generation service, created on first access."""
        if self._generator is None:
            if self._generator_factory is None:
                raise RuntimeError(
                    f"Agent '{self.id}' has no generation service configured"
                )
            self._generator = self._generator_factory(self)
        return self._generator

    def set_generator_factory(self, factory: GeneratorFactory, recursive: bool = True):
        """
        Set the factory used to build the generation service.

        Args:
            factory: Generation service factory
            recursive: Also apply to sub-agents that have no factory of their own
        """
        self._generator_factory = factory
        if recursive:
            for sub_agent in self.sub_agents:
                if sub_agent._generator is None and sub_agent._generator_factory is None:
                    sub_agent.set_generator_factory(factory, recursive=True)

    def find_sub_agent(self, sub_agent_id: str) -> Optional["Agent"]:
        """Find a direct sub-agent by ID."""
        for sub_agent in self.sub_agents:
            if sub_agent.id == sub_agent_id:
                return sub_agent
        return None

    def iter_tree(self) -> Iterator["Agent"]:
        """Yield this agent and every descendant, depth first."""
        yield self
        for sub_agent in self.sub_agents:
            yield from sub_agent.iter_tree()

    async def run(self, context: Context) -> str:
        """
        Produce this agent's reply for the current context.

        Args:
            context: Shared run context

        Returns:
            The agent's final text

        Raises:
            Exception: Whatever the generation service raises
        """
        generator = self.generator
        prompt = self.build_prompt(context)
        response = await generator.generate(prompt)

        delegation = parse_delegation(response)
        if delegation is None:
            return response

        try:
            return await self._delegate(delegation, prompt, context)
        except DelegationTargetNotFound as e:
            logger.warning(f"{e}; returning annotated response")
            return (
                f"ERROR: Sub-agent {delegation.sub_agent_id} not found. "
                f"Original response: {response}"
            )

    async def _delegate(
        self, delegation: Delegation, prompt: str, context: Context
    ) -> str:
        """
        Run a sub-agent on an isolated context and re-prompt with its result.

        Args:
            delegation: Decoded delegation request
            prompt: The prompt that produced the delegating reply
            context: The caller's context; receives the sub-agent's result

        Returns:
            The agent's follow-up reply
        """
        sub_agent = self.find_sub_agent(delegation.sub_agent_id)
        if sub_agent is None:
            raise DelegationTargetNotFound(self.id, delegation.sub_agent_id)

        logger.info(
            f"Agent '{self.id}' delegating to '{sub_agent.id}': {delegation.task[:100]}"
        )

        sub_context = Context()
        sub_context.add_message(
            self.id, f"Task delegated from parent agent: {delegation.task}"
        )
        sub_result = await sub_agent.run(sub_context)

        context.add_message(sub_agent.id, sub_result)

        follow_up = (
            f"{prompt}\n\n"
            f"The sub-agent {sub_agent.id} has completed the delegated task "
            f"with the following result:\n{sub_result}\n\n"
            f"Now please continue with your original task using this information."
        )
        return await self.generator.generate(follow_up)

    def build_prompt(self, context: Context) -> str:
        """
        Build the prompt from the agent's identity and the message history.

        Args:
            context: Shared run context

        Returns:
            Complete prompt string
        """
        parts = [
            f"You are an AI agent with the following role: {self.role}",
            f"Your goal is: {self.goal}",
        ]

        if self.sub_agents:
            sub_agent_list = "\n".join(
                f"  - {sa.id}: {sa.role} (Goal: {sa.goal})" for sa in self.sub_agents
            )
            parts.append(
                f"Available sub-agents you can delegate to:\n{sub_agent_list}\n\n"
                f"If you need to delegate part of your task to a sub-agent, respond with: "
                f"{format_delegation('<sub_agent_id>', '<task_description_for_sub_agent>')}"
            )

        if self.tools:
            tool_lines = []
            for tool in self.tools:
                description = self.tool_descriptions.get(tool)
                tool_lines.append(f"  - {tool}: {description}" if description else f"  - {tool}")
            tools_block = "Available tools:\n" + "\n".join(tool_lines)
            if WEB_SEARCH_TOOL in self.tools:
                tools_block = (
                    "[INTERNET ACCESS AVAILABLE]\n"
                    + tools_block
                    + f"\n\nYou can use {WEB_SEARCH_TOOL} to gather current information from the internet."
                )
            parts.append(tools_block)

        history = "\n".join(
            f"[{msg.timestamp.isoformat()}] Agent {msg.agent_id}: {msg.content}"
            for msg in context.get_messages()
        )
        parts.append(f"Current context:\n{history}")
        parts.append(
            "Do not ask questions. Complete the task independently and return a final answer."
        )
        return "\n\n".join(parts)

    def __repr__(self) -> str:
        return (
            f"Agent(id='{self.id}', role='{self.role}', "
            f"tools={self.tools}, sub_agents={[sa.id for sa in self.sub_agents]})"
        )
