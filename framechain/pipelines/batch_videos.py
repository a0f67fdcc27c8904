"""
FrameChain Concurrent Video Batch

Generates videos for every shot of a script. Shots are independent once
their frames exist, so they run concurrently behind a semaphore; one shot
failing never affects the others.
"""

import asyncio
from typing import List, Optional

from framechain.core.config import FrameChainConfig, get_config
from framechain.core.constants import ShotStatus
from framechain.core.exceptions import EmptyScriptError
from framechain.core.logging_config import get_logger
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import Shot

from .base_pipeline import BatchSummary, ChainPipeline, PipelineStatus, ShotOutcome
from .video_generation import VideoGenerator

logger = get_logger("pipelines.batch_videos")


class ConcurrentVideoBatch(ChainPipeline):
    """Episode-wide video generation with bounded concurrency."""

    def __init__(
        self,
        store: StoryboardStore,
        generator: VideoGenerator,
        lock_registry: Optional[ScriptLockRegistry] = None,
        config: Optional[FrameChainConfig] = None
    ):
        super().__init__("video_batch", lock_registry)
        self.store = store
        self.generator = generator
        self.config = config or get_config()

    async def run(
        self,
        script_id: str,
        video_model: Optional[str] = None,
        text_model: Optional[str] = None,
        duration: Optional[int] = None,
        overwrite: bool = False,
        max_concurrency: Optional[int] = None
    ) -> BatchSummary:
        """
        Generate videos for a script.

        Args:
            script_id: Script to process
            video_model: Video model identifier
            text_model: Text model used for video prompts
            duration: Clip length applied to every shot; defaults per shot
            overwrite: Regenerate videos that already exist
            max_concurrency: Parallel shots, clamped to 1..20

        Returns:
            BatchSummary with one entry per shot, in shot order
        """
        self._begin()
        limit = self.config.generation.clamp_concurrency(max_concurrency)

        async with self.locks.hold(script_id, self.name):
            shots = await self.store.list_shots(script_id)
            if not shots:
                self._status = PipelineStatus.FAILED
                raise EmptyScriptError(script_id)

            total = len(shots)
            semaphore = asyncio.Semaphore(limit)
            finished = 0
            logger.info(f"Video batch for script {script_id}: {total} shots, concurrency={limit}")
            self._report_progress(5)

            async def process(shot: Shot) -> ShotOutcome:
                nonlocal finished
                try:
                    if shot.video_url and not overwrite:
                        logger.info(f"Shot {shot.id} already has a video, skipping")
                        return ShotOutcome(shot.id, shot.index, ShotStatus.SKIPPED,
                                           data={"video_url": shot.video_url})
                    async with semaphore:
                        if self.cancelled:
                            return ShotOutcome(shot.id, shot.index, ShotStatus.SKIPPED,
                                               data={"reason": "cancelled"})
                        try:
                            result = await self.generator.generate(shot.id, video_model, text_model, duration)
                        except Exception as e:
                            logger.error(f"Video for shot {shot.id} failed: {e}")
                            return ShotOutcome(shot.id, shot.index, ShotStatus.FAILED, error=str(e),
                                               data={"error_type": type(e).__name__})
                        return ShotOutcome(shot.id, shot.index, ShotStatus.COMPLETED, data=result.to_dict())
                finally:
                    finished += 1
                    self._report_progress(5 + finished * 90 // total)

            gathered = await asyncio.gather(*(process(shot) for shot in shots), return_exceptions=True)

            results: List[ShotOutcome] = []
            for shot, outcome in zip(shots, gathered):
                if isinstance(outcome, BaseException):
                    logger.error(f"Video task for shot {shot.id} raised: {outcome}")
                    outcome = ShotOutcome(shot.id, shot.index, ShotStatus.FAILED, error=str(outcome))
                results.append(outcome)

        summary = BatchSummary(total=total, results=results, cancelled=self.cancelled)
        self._status = PipelineStatus.CANCELLED if summary.cancelled else PipelineStatus.COMPLETED
        self._report_progress(100)
        logger.info(
            f"Video batch done: total={summary.total}, completed={summary.completed}, "
            f"skipped={summary.skipped}, failed={summary.failed}"
        )
        return summary
