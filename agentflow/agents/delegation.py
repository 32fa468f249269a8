"""
Delegation Protocol

Agents request help from a sub-agent by emitting a line of the form
``DELEGATE_TO:<sub_agent_id>:<task>`` in their reply. This module is the only
place that knows the text format.
"""

import re
from dataclasses import dataclass
from typing import Optional

DELEGATION_PREFIX = "DELEGATE_TO"

# Sub-agent id runs to the first colon; the task is the rest of that line.
_DELEGATION_PATTERN = re.compile(
    rf"^\s*{DELEGATION_PREFIX}:\s*(.+?)\s*:\s*(.+)", re.MULTILINE
)


@dataclass(frozen=True)
class Delegation:
    """A decoded delegation request."""

    sub_agent_id: str
    task: str


def parse_delegation(text: str) -> Optional[Delegation]:
    """
    Find the first delegation request in an agent reply.

    Args:
        text: Raw reply from the generation service

    Returns:
        Delegation, or None if the reply does not delegate
    """
    if not text:
        return None
    match = _DELEGATION_PATTERN.search(text)
    if match is None:
        return None
    return Delegation(
        sub_agent_id=match.group(1).strip(),
        task=match.group(2).strip(),
    )


def format_delegation(sub_agent_id: str, task: str) -> str:
    """Render a delegation request the way agents are told to write it."""
    return f"{DELEGATION_PREFIX}:{sub_agent_id}:{task}"
