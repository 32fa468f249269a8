"""
Configuration Package.

Settings of the workflow engine, read from defaults, a .env file and the
environment.
"""

from config.manager import EnvironmentManager, env_manager
from config.types import (
    GenerationSettings,
    HistorySettings,
    LogSettings,
    ToolSettings,
)

# Re-export the singleton instance for easy access
env = env_manager

__all__ = [
    "EnvironmentManager",
    "env_manager",
    "env",
    "GenerationSettings",
    "HistorySettings",
    "LogSettings",
    "ToolSettings",
]
