"""Shared utilities: LLM clients and JSON-lines log files."""
