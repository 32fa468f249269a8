"""
JSON-lines log writer.

Each writer owns one active file named ``<prefix>-<timestamp>.log`` inside its
log directory. Once the active file grows past ``max_bytes`` it is archived and
a new file is started; only the newest ``max_files`` files for the prefix are
kept.
"""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES = 5


class JsonlLogWriter:
    """Append dictionaries as JSON lines to a rotating set of files."""

    def __init__(
        self,
        log_dir: Union[str, Path],
        prefix: str,
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_files: int = DEFAULT_MAX_FILES,
        enabled: bool = True,
    ):
        """
        Initialize the writer.

        Args:
            log_dir: Directory that holds the log files (created if missing)
            prefix: File name prefix, e.g. ``execution`` or ``network``
            max_bytes: Size above which the active file is rotated
            max_files: Number of files to keep for this prefix
            enabled: When False, ``write`` is a no-op
        """
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.max_bytes = max_bytes
        self.max_files = max_files
        self.enabled = enabled
        self.logger = logging.getLogger(__name__)
        self._current_file: Optional[Path] = None
        self._lock = threading.Lock()

        if self.enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def current_file(self) -> Path:
        """The file the next entry is appended to."""
        if self._current_file is None:
            stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S_%f")
            self._current_file = self.log_dir / f"{self.prefix}-{stamp}.log"
        return self._current_file

    def write(self, entry: Dict[str, Any]):
        """
        Append one entry.

        Write failures are logged and dropped so that logging never breaks the
        caller.
        """
        if not self.enabled:
            return

        line = json.dumps(entry, default=str)
        with self._lock:
            try:
                self._rotate_if_needed()
                with open(self.current_file, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                self.logger.error(f"Failed to write {self.prefix} log entry: {e}")

    def read_entries(self) -> List[Dict[str, Any]]:
        """Read every entry of every file for this prefix, oldest file first."""
        entries = []
        for path in self.log_files():
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        entries.append(json.loads(line))
        return entries

    def log_files(self) -> List[Path]:
        """Files for this prefix, oldest first."""
        if not self.log_dir.exists():
            return []
        return sorted(self.log_dir.glob(f"{self.prefix}-*.log"))

    def _rotate_if_needed(self):
        if self._current_file is None or not self._current_file.exists():
            return
        if self._current_file.stat().st_size <= self.max_bytes:
            return

        archived = self._current_file.with_name(
            f"{self._current_file.stem}-archive.log"
        )
        self._current_file.rename(archived)
        self._current_file = None
        self._cleanup_old_files()

    def _cleanup_old_files(self):
        files = self.log_files()
        for path in files[: max(len(files) - self.max_files, 0)]:
            try:
                path.unlink()
            except OSError as e:
                self.logger.warning(f"Could not remove old log file {path}: {e}")
