"""
Progress reporting for indexing runs.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass
class ProgressEvent:
    """
    Emitted once per file that finishes (in any state).

    Attributes:
        current: Files finished so far
        total: Files scheduled for this run
        filename: Path of the file that just finished
        status: "indexed", "unchanged", "skipped" or "failed"
        batch: One-based number of the batch the file belonged to
        total_batches: Number of batches in the run
        elapsed_seconds: Time since the run started
        eta_seconds: Estimated time remaining (None until a rate is known)
    """
    current: int
    total: int
    filename: str
    status: str
    batch: int
    total_batches: int
    elapsed_seconds: float
    eta_seconds: Optional[float] = None


class ProgressReporter:
    """Counts finished files and forwards ProgressEvents to a callback."""

    def __init__(
        self,
        total_files: int,
        total_batches: int,
        callback: Optional[Callable[[ProgressEvent], None]] = None,
    ):
        self.total_files = total_files
        self.total_batches = total_batches
        self.current_file = 0
        self.start_time = time.time()
        self.callback = callback
        self._lock = threading.Lock()

    def update(self, filename: str, status: str, batch: int) -> ProgressEvent:
        """Record one finished file and notify the callback."""
        with self._lock:
            self.current_file += 1
            current = self.current_file

        elapsed = time.time() - self.start_time
        rate = current / elapsed if elapsed > 0 else 0
        remaining = self.total_files - current
        eta = remaining / rate if rate > 0 else None

        event = ProgressEvent(
            current=current,
            total=self.total_files,
            filename=filename,
            status=status,
            batch=batch,
            total_batches=self.total_batches,
            elapsed_seconds=elapsed,
            eta_seconds=eta,
        )
        if self.callback:
            self.callback(event)
        return event

    @staticmethod
    def format_eta(seconds: Optional[float]) -> str:
        """
        Format ETA in human-readable form.

        Returns:
            "2m 30s", "1h 15m", "45s" or "unknown"
        """
        if seconds is None:
            return "unknown"

        minutes, secs = divmod(int(seconds), 60)
        hours, minutes = divmod(minutes, 60)

        if hours > 0:
            return f"{hours}h {minutes}m"
        elif minutes > 0:
            return f"{minutes}m {secs}s"
        return f"{secs}s"
