"""
File System Tool

Basic file operations for agents, confined to one root directory.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Union

from .base import Tool

logger = logging.getLogger(__name__)

OPERATIONS = ("list", "read", "write", "mkdir", "delete", "info")


class FileSystemTool(Tool):
    """
    List, read, write, create and delete files under ``root``.

    Every path is resolved against the root; a path that resolves outside it
    raises PermissionError.
    """

    def __init__(self, root: Union[str, Path] = "."):
        self.root = Path(root).resolve()

    @property
    def name(self) -> str:
        return "file_system"

    @property
    def description(self) -> str:
        return f"Read and write files under {self.root} (operations: {', '.join(OPERATIONS)})"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "operation": {"type": "string", "enum": list(OPERATIONS)},
                "path": {"type": "string", "description": "Path relative to the root"},
                "content": {"type": "string", "description": "Content for 'write'"},
                "recursive": {"type": "boolean", "default": False},
            },
            "required": ["operation"],
        }

    def resolve(self, path: str) -> Path:
        """
        Resolve a path relative to the root.

        Raises:
            PermissionError: If the path escapes the root
        """
        candidate = (self.root / (path or ".")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PermissionError(f"Access denied: {path} is outside {self.root}")
        return candidate

    async def execute_tool(self, arguments: Dict[str, Any]) -> str:
        operation = arguments.get("operation")
        path = arguments.get("path") or "."
        recursive = bool(arguments.get("recursive", False))
        logger.info(f"File system operation: {operation} {path}")

        if operation == "list":
            return self._format_listing(self.list_dir(path, recursive))
        if operation == "read":
            return self.read_file(path)
        if operation == "write":
            self.write_file(path, arguments.get("content", ""))
            return f"Wrote {path}"
        if operation == "mkdir":
            self.make_dir(path)
            return f"Created directory {path}"
        if operation == "delete":
            self.delete(path, recursive)
            return f"Deleted {path}"
        if operation == "info":
            info = self.info(path)
            return "\n".join(f"{key}: {value}" for key, value in info.items())
        raise ValueError(
            f"Unknown file system operation '{operation}', expected one of {', '.join(OPERATIONS)}"
        )

    def list_dir(self, path: str = ".", recursive: bool = False) -> List[Dict[str, Any]]:
        target = self.resolve(path)
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        entries = target.rglob("*") if recursive else target.iterdir()
        return [self._describe(entry) for entry in sorted(entries)]

    def read_file(self, path: str) -> str:
        target = self.resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return target.read_text(encoding="utf-8")

    def write_file(self, path: str, content: str):
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def make_dir(self, path: str):
        self.resolve(path).mkdir(parents=True, exist_ok=True)

    def delete(self, path: str, recursive: bool = False):
        target = self.resolve(path)
        if target == self.root:
            raise PermissionError("Refusing to delete the root directory")
        if target.is_dir():
            if recursive:
                shutil.rmtree(target)
            else:
                target.rmdir()
        elif target.exists():
            target.unlink()
        else:
            raise FileNotFoundError(f"Path not found: {path}")

    def info(self, path: str) -> Dict[str, Any]:
        target = self.resolve(path)
        if not target.exists():
            raise FileNotFoundError(f"Path not found: {path}")
        return self._describe(target)

    def _describe(self, entry: Path) -> Dict[str, Any]:
        stat = entry.stat()
        return {
            "name": entry.name,
            "path": str(entry.relative_to(self.root)),
            "type": "directory" if entry.is_dir() else "file",
            "size": stat.st_size,
            "modified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        }

    @staticmethod
    def _format_listing(entries: List[Dict[str, Any]]) -> str:
        if not entries:
            return "[Empty directory]"
        lines = ["DIRECTORY CONTENTS:"]
        for entry in entries:
            size = f" ({entry['size']} bytes)" if entry["type"] == "file" else "/"
            lines.append(f"  {entry['path']}{size}")
        lines.append(f"Total items: {len(entries)}")
        return "\n".join(lines)
