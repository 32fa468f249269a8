"""
Run history data models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..runtime_data import Message


class RunStatus(str, Enum):
    """Final status of a recorded run"""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class RunRecord:
    """Everything kept about one workflow execution"""
    run_id: str
    workflow_id: str
    workflow_type: str
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    # Workflow definition as written in the workflow file
    workflow: Dict[str, Any] = field(default_factory=dict)

    # Conversation and results
    messages: List[Message] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)

    # Per-agent timings, as AgentEvent dictionaries
    agent_events: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def duration_ms(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000

    def metadata_dict(self) -> Dict[str, Any]:
        """Everything except messages and outputs"""
        return {
            "run_id": self.run_id,
            "workflow_id": self.workflow_id,
            "workflow_type": self.workflow_type,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "workflow": self.workflow,
            "agent_events": self.agent_events,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary for serialization"""
        data = self.metadata_dict()
        data["messages"] = [msg.to_dict() for msg in self.messages]
        data["outputs"] = self.outputs
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunRecord":
        """Create record from dictionary"""
        completed_at = data.get("completed_at")
        return cls(
            run_id=data["run_id"],
            workflow_id=data["workflow_id"],
            workflow_type=data["workflow_type"],
            status=RunStatus(data["status"]),
            started_at=datetime.fromisoformat(data["started_at"]),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            error=data.get("error"),
            workflow=data.get("workflow", {}),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            outputs=data.get("outputs", {}),
            agent_events=data.get("agent_events", []),
        )
