"""
Tests for Sequential Frame Batch

Tests for framechain/pipelines/batch_frames.py
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from framechain.core.constants import ShotStatus
from framechain.core.exceptions import ChainLockedError, EmptyScriptError, GatewayError
from framechain.pipelines.base_pipeline import PipelineStatus
from framechain.pipelines.batch_frames import SequentialFrameBatch
from framechain.pipelines.frame_generation import FrameGenerationEngine, FrameGenerationResult

SCRIPT_ID = "script-1"


def _result(shot_id: str) -> FrameGenerationResult:
    return FrameGenerationResult(shot_id=shot_id, first_frame_url=f"https://cdn.test/{shot_id}.png")


async def _fill_frames(store):
    for shot in await store.list_shots(SCRIPT_ID):
        await store.update_shot(
            shot.id,
            first_frame_url=f"https://cdn.test/{shot.id}-a.png",
            last_frame_url=f"https://cdn.test/{shot.id}-b.png" if shot.has_action else None,
        )


class TestFrameChain:
    """End-to-end runs with the real engine."""

    @pytest.mark.asyncio
    async def test_kitchen_chain(self, store, text_client, media, object_storage, test_config, lock_registry):
        """Test every shot is generated and each anchors on its predecessor."""
        engine = FrameGenerationEngine(store, text_client, media, object_storage, config=test_config)
        batch = SequentialFrameBatch(store, engine, lock_registry)
        progress = []
        batch.set_progress_callback(progress.append)

        summary = await batch.run(SCRIPT_ID)

        assert (summary.completed, summary.skipped, summary.failed) == (3, 0, 0)
        assert [outcome.data["type"] for outcome in summary.results] == ["single_frame", "frame", "single_frame"]
        shots = await store.list_shots(SCRIPT_ID)
        assert shots[1].last_frame_url
        assert media.images[3]["reference_urls"][0] == shots[1].last_frame_url
        assert progress[-1] == 100
        assert batch.status == PipelineStatus.COMPLETED
        assert lock_registry.holder(SCRIPT_ID) is None


class TestFrameBatchFlow:
    """Tests for skip, failure and cancellation handling."""

    @pytest.mark.asyncio
    async def test_all_shots_skipped(self, store, lock_registry):
        """Test shots with frames are skipped without calling the engine."""
        await _fill_frames(store)
        engine = AsyncMock()

        summary = await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID)

        assert (summary.completed, summary.skipped, summary.failed) == (0, 3, 0)
        assert summary.results[1].data["final_frame_url"] == "https://cdn.test/shot-1-b.png"
        engine.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_stops_the_chain(self, store, lock_registry):
        """Test a failure ends the run and later shots get no entry."""
        engine = AsyncMock()
        engine.generate.side_effect = [_result("shot-0"), GatewayError("task failed")]

        summary = await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID)

        assert len(summary.results) == 2
        assert (summary.completed, summary.failed) == (1, 1)
        assert summary.stopped_early is True
        assert summary.results[1].data["error_type"] == "GatewayError"
        assert engine.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_failure_after_skipped_shot(self, store, lock_registry):
        """Test a failure right after a skipped shot still ends the run."""
        await store.update_shot("shot-0", first_frame_url="https://cdn.test/shot-0-a.png")
        engine = AsyncMock()
        engine.generate.side_effect = GatewayError("task failed")
        batch = SequentialFrameBatch(store, engine, lock_registry)

        summary = await batch.run(SCRIPT_ID)

        assert (summary.completed, summary.skipped, summary.failed) == (0, 1, 1)
        assert [outcome.shot_id for outcome in summary.results] == ["shot-0", "shot-1"]
        assert summary.results[0].data["final_frame_url"] == "https://cdn.test/shot-0-a.png"
        assert summary.stopped_early is True
        assert [call.args[0] for call in engine.generate.await_args_list] == ["shot-1"]
        assert batch.status == PipelineStatus.FAILED

    @pytest.mark.asyncio
    async def test_failure_on_last_shot(self, store, lock_registry):
        """Test a failure on the final shot does not count as stopping early."""
        engine = AsyncMock()
        engine.generate.side_effect = [_result("shot-0"), _result("shot-1"), GatewayError("task failed")]

        summary = await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID)

        assert summary.failed == 1
        assert summary.stopped_early is False

    @pytest.mark.asyncio
    async def test_overwrite_regenerates(self, store, lock_registry):
        """Test overwrite clears stored frames and regenerates every shot."""
        await _fill_frames(store)
        engine = AsyncMock()
        engine.generate.side_effect = lambda shot_id, *args: _result(shot_id)

        summary = await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID, overwrite=True)

        assert summary.completed == 3
        assert [call.args[0] for call in engine.generate.await_args_list] == ["shot-0", "shot-1", "shot-2"]
        assert (await store.get_shot("shot-1")).last_frame_url is None

    @pytest.mark.asyncio
    async def test_cancel_between_shots(self, store, lock_registry):
        """Test cancellation takes effect before the next shot."""
        engine = AsyncMock()
        batch = SequentialFrameBatch(store, engine, lock_registry)

        def generate(shot_id, *args):
            batch.cancel()
            return _result(shot_id)

        engine.generate.side_effect = generate

        summary = await batch.run(SCRIPT_ID)

        assert summary.cancelled is True
        assert len(summary.results) == 1
        assert batch.status == PipelineStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_deadline(self, store, lock_registry):
        """Test a shot running past the deadline ends the run."""
        engine = AsyncMock()

        async def slow(shot_id, *args):
            await asyncio.sleep(1)
            return _result(shot_id)

        engine.generate.side_effect = slow

        summary = await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID, deadline_seconds=0.05)

        assert summary.cancelled is True
        assert summary.results[0].status == ShotStatus.FAILED
        assert summary.results[0].error == "deadline exceeded"
        assert lock_registry.holder(SCRIPT_ID) is None

    @pytest.mark.asyncio
    async def test_locked_script(self, store, lock_registry):
        """Test a second chain on the same script is rejected."""
        engine = AsyncMock()

        async with lock_registry.hold(SCRIPT_ID, "video_batch"):
            with pytest.raises(ChainLockedError):
                await SequentialFrameBatch(store, engine, lock_registry).run(SCRIPT_ID)

        engine.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_script(self, store, lock_registry):
        """Test a script without shots raises and marks the run failed."""
        batch = SequentialFrameBatch(store, AsyncMock(), lock_registry)

        with pytest.raises(EmptyScriptError):
            await batch.run("script-empty")

        assert batch.status == PipelineStatus.FAILED
        assert lock_registry.holder("script-empty") is None
