"""
FrameChain Sequential Frame Batch

Generates frames for every shot of a script strictly in order, one shot at
a time: each shot's input is the previous shot's resolved final frame.
The first failure stops the run, since later shots have no valid anchor.
"""

import asyncio
from typing import Optional

from framechain.core.constants import ShotStatus
from framechain.core.exceptions import EmptyScriptError
from framechain.core.logging_config import get_logger
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.store import StoryboardStore

from .base_pipeline import BatchSummary, ChainPipeline, PipelineStatus, ShotOutcome
from .frame_generation import FrameGenerationEngine

logger = get_logger("pipelines.batch_frames")


class SequentialFrameBatch(ChainPipeline):
    """Episode-wide frame generation."""

    def __init__(
        self,
        store: StoryboardStore,
        engine: FrameGenerationEngine,
        lock_registry: Optional[ScriptLockRegistry] = None
    ):
        super().__init__("frame_batch", lock_registry)
        self.store = store
        self.engine = engine

    async def run(
        self,
        script_id: str,
        image_model: Optional[str] = None,
        text_model: Optional[str] = None,
        overwrite: bool = False,
        width: Optional[int] = None,
        height: Optional[int] = None,
        deadline_seconds: Optional[float] = None
    ) -> BatchSummary:
        """
        Run the frame chain for a script.

        Args:
            script_id: Script to process
            image_model: Image model identifier
            text_model: Text model identifier
            overwrite: Clear and regenerate frames that already exist
            width: Frame width
            height: Frame height
            deadline_seconds: Stop the run once this much time has passed

        Returns:
            BatchSummary; shots after a failure get no result entry

        Raises:
            EmptyScriptError: The script has no shots
            ChainLockedError: Another chain holds the script
        """
        self._begin()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + deadline_seconds if deadline_seconds else None

        async with self.locks.hold(script_id, self.name):
            shots = await self.store.list_shots(script_id)
            if not shots:
                self._status = PipelineStatus.FAILED
                raise EmptyScriptError(script_id)

            if overwrite:
                cleared = await self.store.clear_generated_media(script_id)
                logger.info(f"Cleared frames and plates of {cleared} shots before regenerating")
                shots = await self.store.list_shots(script_id)

            total = len(shots)
            summary = BatchSummary(total=total)
            logger.info(f"Frame chain for script {script_id}: {total} shots, overwrite={overwrite}")
            self._report_progress(5)

            for position, shot in enumerate(shots):
                if self.cancelled:
                    logger.info(f"Frame chain cancelled before shot {position + 1}/{total}")
                    summary.cancelled = True
                    break

                if shot.first_frame_url and not overwrite:
                    logger.info(f"[{position + 1}/{total}] Shot {shot.id} already has frames, skipping")
                    summary.results.append(ShotOutcome(
                        shot.id, shot.index, ShotStatus.SKIPPED,
                        data={"final_frame_url": shot.resolve_final_frame()},
                    ))
                    self._report_progress(5 + (position + 1) * 90 // total)
                    continue

                remaining = None
                if deadline is not None:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        logger.warning(f"Frame chain deadline reached before shot {position + 1}/{total}")
                        summary.cancelled = True
                        break

                kind = "first/last frames" if shot.has_action else "single frame"
                logger.info(f"[{position + 1}/{total}] Shot {shot.id}: generating {kind}")
                try:
                    result = await asyncio.wait_for(
                        self.engine.generate(shot.id, image_model, text_model, width, height),
                        timeout=remaining,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"Frame chain deadline reached during shot {shot.id}")
                    summary.results.append(ShotOutcome(
                        shot.id, shot.index, ShotStatus.FAILED, error="deadline exceeded"
                    ))
                    summary.cancelled = True
                    summary.stopped_early = True
                    break
                except Exception as e:
                    logger.error(f"Shot {shot.id} failed, stopping the chain: {e}")
                    summary.results.append(ShotOutcome(
                        shot.id, shot.index, ShotStatus.FAILED,
                        error=str(e), data={"error_type": type(e).__name__},
                    ))
                    summary.stopped_early = position < total - 1
                    break

                summary.results.append(ShotOutcome(
                    shot.id, shot.index, ShotStatus.COMPLETED,
                    data={"type": "frame" if shot.has_action else "single_frame", **result.to_dict()},
                ))
                self._report_progress(5 + (position + 1) * 90 // total)

        self._status = PipelineStatus.CANCELLED if summary.cancelled else (
            PipelineStatus.FAILED if summary.failed else PipelineStatus.COMPLETED
        )
        self._report_progress(100)
        logger.info(
            f"Frame chain done: total={summary.total}, completed={summary.completed}, "
            f"skipped={summary.skipped}, failed={summary.failed}"
        )
        return summary
