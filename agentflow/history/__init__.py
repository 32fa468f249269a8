"""
Run history: persistence of past workflow executions.
"""

from .models import RunRecord, RunStatus
from .storage import FileSystemRunStorage, MemoryRunStorage, RunStorage

__all__ = [
    "RunRecord",
    "RunStatus",
    "RunStorage",
    "FileSystemRunStorage",
    "MemoryRunStorage",
]
