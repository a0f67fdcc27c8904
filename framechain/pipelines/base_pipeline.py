"""
FrameChain Base Pipeline

Shared plumbing for script-level runs: progress reporting, cancellation,
the per-script lock and the summary returned by batch runs.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from framechain.core.constants import ShotStatus
from framechain.core.exceptions import ChainCancelledError
from framechain.core.logging_config import get_logger
from framechain.storage.locks import ScriptLockRegistry

logger = get_logger("pipelines.base")

ProgressCallback = Callable[[int], None]


class PipelineStatus(Enum):
    """Status of a pipeline execution."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ShotOutcome:
    """Result entry for one shot of a batch or analysis run."""
    shot_id: str
    index: int
    status: ShotStatus
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        entry = {"shot_id": self.shot_id, "index": self.index, "status": self.status.value}
        if self.error:
            entry["error"] = self.error
        entry.update(self.data)
        return entry


@dataclass
class BatchSummary:
    """Aggregate outcome of a script-level run."""
    total: int
    results: List[ShotOutcome] = field(default_factory=list)
    stopped_early: bool = False
    cancelled: bool = False

    def _count(self, *statuses: ShotStatus) -> int:
        return sum(1 for outcome in self.results if outcome.status in statuses)

    @property
    def completed(self) -> int:
        return self._count(ShotStatus.COMPLETED, ShotStatus.UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(ShotStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(ShotStatus.FAILED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": self.failed,
            "stopped_early": self.stopped_early,
            "cancelled": self.cancelled,
            "results": [outcome.to_dict() for outcome in self.results],
        }


class ChainPipeline:
    """
    Base class for runs that own a script for their duration.

    Features:
    - Per-script locking
    - Progress tracking (0-100)
    - Cooperative cancellation
    """

    def __init__(self, name: str, lock_registry: Optional[ScriptLockRegistry] = None):
        """
        Initialize the pipeline.

        Args:
            name: Pipeline name, recorded as the lock holder
            lock_registry: Lock registry; defaults to the process-wide one
        """
        self.name = name
        self.locks = lock_registry or ScriptLockRegistry.get_instance()
        self._status = PipelineStatus.PENDING
        self._cancelled = False
        self._progress_callback: Optional[ProgressCallback] = None

    def cancel(self) -> None:
        """Request cancellation; checked between shots."""
        self._cancelled = True
        logger.info(f"Pipeline cancelled: {self.name}")

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def status(self) -> PipelineStatus:
        return self._status

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """Set a callback for progress updates."""
        self._progress_callback = callback

    def _report_progress(self, percent: int) -> None:
        if self._progress_callback:
            self._progress_callback(max(0, min(100, int(percent))))

    def _begin(self) -> None:
        self._cancelled = False
        self._status = PipelineStatus.RUNNING

    def _raise_if_cancelled(self, script_id: str) -> None:
        if self._cancelled:
            self._status = PipelineStatus.CANCELLED
            raise ChainCancelledError(script_id)
