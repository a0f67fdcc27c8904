"""
FrameChain Script Locks

One active chain per script. Storyboard generation, scene state analysis
and both batch orchestrators mutate a script's shots; running two of them
at once would corrupt continuity state.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from framechain.core.exceptions import ChainLockedError
from framechain.core.logging_config import get_logger

logger = get_logger("storage.locks")


class ScriptLockRegistry:
    """
    Process-wide advisory locks keyed by script id.

    Acquisition never waits: a held lock raises ChainLockedError so the
    caller can report the conflict instead of queueing a second chain.
    """

    _instance: Optional['ScriptLockRegistry'] = None

    @classmethod
    def get_instance(cls) -> 'ScriptLockRegistry':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton (for testing)."""
        cls._instance = None

    def __init__(self):
        self._holders: Dict[str, str] = {}

    def acquire(self, script_id: str, operation: str) -> None:
        holder = self._holders.get(script_id)
        if holder is not None:
            raise ChainLockedError(script_id, holder)
        self._holders[script_id] = operation
        logger.debug(f"Lock acquired for script {script_id} by {operation}")

    def release(self, script_id: str) -> None:
        if self._holders.pop(script_id, None) is not None:
            logger.debug(f"Lock released for script {script_id}")

    def is_locked(self, script_id: str) -> bool:
        return script_id in self._holders

    def holder(self, script_id: str) -> Optional[str]:
        return self._holders.get(script_id)

    @asynccontextmanager
    async def hold(self, script_id: str, operation: str) -> AsyncIterator[None]:
        """Hold the script lock for the duration of the block."""
        self.acquire(script_id, operation)
        try:
            yield
        finally:
            self.release(script_id)
