"""
Storage abstraction for run history.
"""

import copy
import json
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..runtime_data import Message
from .models import RunRecord

logger = logging.getLogger(__name__)


class RunStorage(ABC):
    """Abstract storage interface for recorded runs"""

    @abstractmethod
    def save_run(self, record: RunRecord):
        """Persist a run record"""
        pass

    @abstractmethod
    def load_run(self, run_id: str) -> Optional[RunRecord]:
        """Load a run record"""
        pass

    @abstractmethod
    def list_runs(
        self, workflow_id: Optional[str] = None, limit: int = 100
    ) -> List[RunRecord]:
        """List runs, most recent first"""
        pass

    @abstractmethod
    def run_exists(self, run_id: str) -> bool:
        """Check if a run exists"""
        pass

    @abstractmethod
    def delete_run(self, run_id: str):
        """Delete a run"""
        pass


class FileSystemRunStorage(RunStorage):
    """One directory per run: metadata.json, messages.jsonl, outputs.json"""

    def __init__(self, history_dir: Path):
        self.history_dir = Path(history_dir)
        self.history_dir.mkdir(parents=True, exist_ok=True)

    def save_run(self, record: RunRecord):
        """Save run to filesystem"""
        run_path = self.history_dir / record.run_id
        run_path.mkdir(exist_ok=True)

        with open(run_path / "metadata.json", "w") as f:
            json.dump(record.metadata_dict(), f, indent=2)

        with open(run_path / "messages.jsonl", "w") as f:
            for msg in record.messages:
                f.write(json.dumps(msg.to_dict()) + "\n")

        with open(run_path / "outputs.json", "w") as f:
            json.dump(record.outputs, f, indent=2, default=str)

    def load_run(self, run_id: str) -> Optional[RunRecord]:
        """Load run from filesystem"""
        metadata_path = self.history_dir / run_id / "metadata.json"
        if not metadata_path.exists():
            return None

        with open(metadata_path, "r") as f:
            record = RunRecord.from_dict(json.load(f))

        messages_path = self.history_dir / run_id / "messages.jsonl"
        if messages_path.exists():
            with open(messages_path, "r") as f:
                record.messages = [
                    Message.from_dict(json.loads(line)) for line in f if line.strip()
                ]

        outputs_path = self.history_dir / run_id / "outputs.json"
        if outputs_path.exists():
            with open(outputs_path, "r") as f:
                record.outputs = json.load(f)

        return record

    def list_runs(
        self, workflow_id: Optional[str] = None, limit: int = 100
    ) -> List[RunRecord]:
        """Query runs, optionally for one workflow"""
        if not self.history_dir.exists():
            return []

        records = []
        for run_dir in self.history_dir.iterdir():
            if not run_dir.is_dir():
                continue
            try:
                record = self.load_run(run_dir.name)
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Could not load run {run_dir.name}: {e}")
                continue
            if record is None:
                continue
            if workflow_id and record.workflow_id != workflow_id:
                continue
            records.append(record)

        records.sort(key=lambda r: r.started_at, reverse=True)
        return records[:limit]

    def run_exists(self, run_id: str) -> bool:
        """Check if run exists"""
        return (self.history_dir / run_id / "metadata.json").exists()

    def delete_run(self, run_id: str):
        """Delete a run directory"""
        run_path = self.history_dir / run_id
        if run_path.exists():
            shutil.rmtree(run_path)


class MemoryRunStorage(RunStorage):
    """In-memory run storage for testing"""

    def __init__(self):
        self._runs: Dict[str, RunRecord] = {}

    def save_run(self, record: RunRecord):
        self._runs[record.run_id] = copy.deepcopy(record)

    def load_run(self, run_id: str) -> Optional[RunRecord]:
        record = self._runs.get(run_id)
        return copy.deepcopy(record) if record else None

    def list_runs(
        self, workflow_id: Optional[str] = None, limit: int = 100
    ) -> List[RunRecord]:
        records = [
            copy.deepcopy(record)
            for record in self._runs.values()
            if not workflow_id or record.workflow_id == workflow_id
        ]
        records.sort(key=lambda r: r.started_at, reverse=True)
        return records[:limit]

    def run_exists(self, run_id: str) -> bool:
        return run_id in self._runs

    def delete_run(self, run_id: str):
        self._runs.pop(run_id, None)
