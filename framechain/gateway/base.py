"""
FrameChain Model Gateway Interface

Normalized contract for every AI call. Vendor-specific request and response
shaping happens behind the gateway, outside this package.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class TaskStatus(str, Enum):
    """State of an asynchronous gateway task."""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


@dataclass
class SubmitResult:
    """
    Outcome of a submission.

    A synchronous model answers directly and has no task_id; an asynchronous
    one returns a task_id to poll.
    """
    raw: Dict[str, Any] = field(default_factory=dict)
    task_id: Optional[str] = None

    @property
    def is_direct(self) -> bool:
        return not self.task_id


@dataclass
class PollResult:
    """One status check of an asynchronous task."""
    status: TaskStatus
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class ModelGateway(ABC):
    """Abstract model gateway."""

    @abstractmethod
    async def submit(self, model: str, params: Dict[str, Any]) -> SubmitResult:
        """Submit a generation request."""
        pass

    @abstractmethod
    async def poll_status(self, model: str, task_id: str) -> PollResult:
        """Check the status of a previously submitted task."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None
