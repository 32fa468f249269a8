"""Interface that agent tools implement."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class ToolNotFoundError(KeyError):
    """A tool name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool '{name}' not found")

    def __str__(self) -> str:
        return self.args[0]


class Tool(ABC):
    """Base interface for all tools."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description."""
        pass

    @property
    @abstractmethod
    def input_schema(self) -> Dict[str, Any]:
        """Get the JSON schema for the tool input."""
        pass

    @abstractmethod
    async def execute_tool(self, arguments: Dict[str, Any]) -> str:
        """Execute the tool with the provided arguments.

        Args:
            arguments: Dictionary of arguments for the tool

        Returns:
            Tool result formatted for an agent to read
        """
        pass
