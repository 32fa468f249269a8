"""
Tool Registry

Name -> tool lookup used by the generation loop when an agent asks to call a
tool.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .base import Tool, ToolNotFoundError

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registered tools, keyed by name."""

    def __init__(self, tools: Optional[Iterable[Tool]] = None):
        self._tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    @classmethod
    def with_default_tools(
        cls,
        enable_web_search: bool = True,
        max_results: int = 10,
        region: str = "us-en",
        filesystem_root: str = ".",
    ) -> "ToolRegistry":
        """
        Build a registry with the built-in tools.

        Args:
            enable_web_search: Register ``web_search``
            max_results: Web search result cap
            region: Web search region
            filesystem_root: Directory ``file_system`` is confined to
        """
        from .filesystem import FileSystemTool
        from .web_search import WebSearchTool

        registry = cls()
        if enable_web_search:
            registry.register(WebSearchTool(max_results=max_results, region=region))
        registry.register(FileSystemTool(root=filesystem_root))
        return registry

    def register(self, tool: Tool) -> "ToolRegistry":
        """Register a tool, replacing any tool with the same name."""
        if tool.name in self._tools:
            logger.warning(f"Replacing registered tool '{tool.name}'")
        self._tools[tool.name] = tool
        return self

    def get_tool(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    @property
    def available_tools(self) -> List[str]:
        return list(self._tools)

    def describe(self, names: Iterable[str]) -> Dict[str, str]:
        """Descriptions for the given tool names that are registered."""
        return {
            name: self._tools[name].description for name in names if name in self._tools
        }

    async def execute(self, name: str, params: Dict[str, Any]) -> str:
        """
        Execute a tool by name.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        logger.info(f"Executing tool '{name}'")
        return await tool.execute_tool(params or {})
