"""
Generation service wiring: decide, per agent, which generation service it
gets. Agents with registered tools get the tool-calling loop; the rest talk
to the client directly.
"""

import logging
from typing import Iterable, Optional

from utils.llm_clients import LLMCompletionClient, ToolCallingGenerator

from ..tools import ToolRegistry
from .agent import Agent, GenerationService, GeneratorFactory

logger = logging.getLogger(__name__)


def build_generator_factory(
    client: LLMCompletionClient,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 3,
) -> GeneratorFactory:
    """
    Build the factory agents call on their first run.

    Args:
        client: Completion client shared by every agent
        registry: Tools agents may call; None disables tool calling
        max_tool_rounds: Tool-call rounds allowed per generation

    Returns:
        Factory mapping an agent to its generation service
    """
    announced = False

    def factory(agent: Agent) -> GenerationService:
        nonlocal announced
        if not announced:
            logger.info(f"Generation service ready (model: {client.default_model})")
            announced = True

        tool_names = [
            name for name in agent.tools if registry is not None and registry.has_tool(name)
        ]
        if tool_names:
            logger.debug(f"Agent '{agent.id}' generates with tools: {tool_names}")
            return ToolCallingGenerator(
                client, registry, tool_names, max_tool_rounds=max_tool_rounds
            )
        return client

    return factory


def attach_tool_descriptions(agents: Iterable[Agent], registry: ToolRegistry):
    """Copy registered tool descriptions onto every agent in the trees."""
    for root in agents:
        for agent in root.iter_tree():
            agent.tool_descriptions.update(registry.describe(agent.tools))
