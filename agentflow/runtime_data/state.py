"""
Run State

Shared conversation state for a single workflow run: the ordered message log
every agent reads from and the keyed output map steps write into.
"""

import uuid
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class _NotFound:
    """Sentinel returned for output keys that were never produced."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


class StepStatus(str, Enum):
    """Status of a workflow step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    """Result of a step execution."""

    step_id: str
    status: StepStatus
    agent_id: Optional[str] = None
    result: Any = None
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "agent_id": self.agent_id,
            "result": self.result,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }


@dataclass(frozen=True)
class Message:
    """A single entry in the conversation history."""

    id: str
    agent_id: str
    content: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            agent_id=data["agent_id"],
            content=data["content"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class Context:
    """
    Shared context for one workflow run.

    Holds an append-only, ordered list of messages and a mapping of output
    keys to produced values (last writer wins). A single instance is shared by
    reference with every agent invoked during the run. There is no locking:
    concurrent branches are expected to write only to keys they declared.
    """

    def __init__(self):
        """Initialize an empty context."""
        self._messages: List[Message] = []
        self._outputs: Dict[str, Any] = {}

    def add_message(self, agent_id: str, content: str) -> Message:
        """
        Append a message to the history.

        Args:
            agent_id: ID of the agent the message is attributed to
            content: Message text

        Returns:
            The created message
        """
        message = Message(
            id=f"msg_{uuid.uuid4().hex}",
            agent_id=agent_id,
            content=content,
            timestamp=datetime.now(),
        )
        self._messages.append(message)
        return message

    def get_messages(self) -> List[Message]:
        """
        Get all messages in chronological order.

        Returns:
            A copy of the message list; mutating it does not affect the context
        """
        return list(self._messages)

    def set_output(self, key: str, value: Any):
        """
        Store a produced value under an output key.

        Args:
            key: Output key
            value: Produced value
        """
        self._outputs[key] = value

    def get_output(self, key: str) -> Any:
        """
        Get a produced value.

        Args:
            key: Output key

        Returns:
            The stored value, or NOT_FOUND if the key was never produced
        """
        return self._outputs.get(key, NOT_FOUND)

    def has_output(self, key: str) -> bool:
        """Check whether an output key has been produced."""
        return key in self._outputs

    @property
    def outputs(self) -> Dict[str, Any]:
        """Copy of the output map."""
        return dict(self._outputs)

    def __len__(self) -> int:
        return len(self._messages)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert context to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "messages": [message.to_dict() for message in self._messages],
            "outputs": deepcopy(self._outputs),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Context":
        """
        Create context from dictionary.

        Args:
            data: Dictionary representation

        Returns:
            Context instance
        """
        context = cls()
        context._messages = [
            Message.from_dict(item) for item in data.get("messages", [])
        ]
        context._outputs = dict(data.get("outputs", {}))
        return context

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"Context(messages={len(self._messages)}, "
            f"outputs={sorted(self._outputs)})"
        )


def validate_inputs(inputs: Optional[Any], context: Context) -> List[str]:
    """
    Check that every required input key is present in the context.

    Optional keys are informational only and never checked.

    Args:
        inputs: Step input declaration (anything with a ``required`` list) or None
        context: Run context

    Returns:
        List of missing required keys (empty if all are present)
    """
    if inputs is None:
        return []
    return [key for key in inputs.required if not context.has_output(key)]
