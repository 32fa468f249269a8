"""
Tools agents can call while generating: web search and file access.
"""

from .base import Tool, ToolNotFoundError
from .filesystem import FileSystemTool
from .registry import ToolRegistry
from .web_search import SearchResult, WebSearchTool

__all__ = [
    "Tool",
    "ToolNotFoundError",
    "ToolRegistry",
    "FileSystemTool",
    "WebSearchTool",
    "SearchResult",
]
