"""Append-only JSON-lines log files with size based rotation."""

from .writer import JsonlLogWriter

__all__ = ["JsonlLogWriter"]
