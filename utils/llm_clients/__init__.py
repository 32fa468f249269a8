"""Async LLM client utilities."""

from .openai_client import GROQ_BASE_URL, LLMCompletionClient, OpenAIClient
from .tool_calling import ToolCallingGenerator

__all__ = [
    "GROQ_BASE_URL",
    "LLMCompletionClient",
    "OpenAIClient",
    "ToolCallingGenerator",
]
