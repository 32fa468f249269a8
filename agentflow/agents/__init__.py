"""
Agents

Agents that turn the shared conversation into text through a generation
service, with optional delegation to sub-agents.
"""

from .agent import Agent, GenerationService, GeneratorFactory
from .delegation import Delegation, format_delegation, parse_delegation
from .generation import attach_tool_descriptions, build_generator_factory

__all__ = [
    "Agent",
    "GenerationService",
    "GeneratorFactory",
    "Delegation",
    "format_delegation",
    "parse_delegation",
    "attach_tool_descriptions",
    "build_generator_factory",
]
