"""
Tests for Frame Generation Engine

Tests for framechain/pipelines/frame_generation.py
"""

from unittest.mock import AsyncMock

import pytest

from framechain.core.config import FrameChainConfig, GenerationConfig
from framechain.core.exceptions import (
    ContinuityError, MissingModelError, MultiCharacterShotError, ParseError, PlateRegenerationError,
)
from framechain.pipelines.frame_generation import FrameGenerationEngine
from framechain.storyboard.models import Shot

MIA_FRONT = "https://assets.test/mia-front.png"
MIA_SIDE = "https://assets.test/mia-side.png"


@pytest.fixture
def engine(store, text_client, media, object_storage, test_config):
    return FrameGenerationEngine(store, text_client, media, object_storage, config=test_config)


class TestSingleFrame:
    """Tests for non-action shots."""

    @pytest.mark.asyncio
    async def test_first_shot(self, engine, store, text_client, media):
        """Test the first shot needs no predecessor and stores one frame."""
        result = await engine.generate("shot-0")

        assert result.last_frame_url is None
        assert result.references["single"] == [MIA_FRONT, MIA_SIDE]
        assert text_client.kinds() == ["selector", "frame"]
        assert media.images[0]["model"] == "test-image"
        assert (media.images[0]["width"], media.images[0]["height"]) == (1024, 576)
        stored = await store.get_shot("shot-0")
        assert stored.first_frame_url == result.first_frame_url
        assert stored.last_frame_url is None

    @pytest.mark.asyncio
    async def test_previous_frame_is_offered_first(self, engine, store, media):
        """Test the previous final frame leads the candidate list."""
        await store.update_shot("shot-1", first_frame_url="https://cdn.test/s1-a.png",
                                last_frame_url="https://cdn.test/s1-b.png")

        result = await engine.generate("shot-2")

        assert result.references["single"][0] == "https://cdn.test/s1-b.png"

    @pytest.mark.asyncio
    async def test_missing_previous_frame(self, engine, media):
        """Test a non-action shot after the first needs the previous final frame."""
        with pytest.raises(ContinuityError):
            await engine.generate("shot-2")

        assert media.images == []

    @pytest.mark.asyncio
    async def test_action_previous_needs_last_frame(self, engine, store):
        """Test an action predecessor with only its first frame is not an anchor."""
        await store.update_shot("shot-1", first_frame_url="https://cdn.test/s1-a.png")

        with pytest.raises(ContinuityError):
            await engine.generate("shot-2")

    @pytest.mark.asyncio
    async def test_size_override(self, engine, media):
        """Test explicit dimensions reach the image model."""
        await engine.generate("shot-0", width=640, height=360)

        assert (media.images[0]["width"], media.images[0]["height"]) == (640, 360)

    @pytest.mark.asyncio
    async def test_empty_prompt(self, engine, text_client, media):
        """Test an empty prompt is a parse error and nothing is rendered."""
        text_client.frame_prompt = "   "

        with pytest.raises(ParseError):
            await engine.generate("shot-0")

        assert media.images == []

    @pytest.mark.asyncio
    async def test_progress_reaches_100(self, engine):
        """Test progress is reported in increasing order up to 100."""
        seen = []

        await engine.generate("shot-0", on_progress=seen.append)

        assert seen == sorted(seen)
        assert seen[-1] == 100

    @pytest.mark.asyncio
    async def test_multi_character_rejected(self, engine, store, make_shot, media):
        """Test multi-character shots fail before any generation."""
        store.add_shot(make_shot(0, characters=("Mia", "Leo")))

        with pytest.raises(MultiCharacterShotError):
            await engine.generate("shot-0")

        assert media.images == []


class TestActionFrames:
    """Tests for action shots."""

    @pytest.mark.asyncio
    async def test_first_and_last_frames(self, engine, store, text_client, media):
        """Test an action shot stores both frames."""
        await store.update_shot("shot-0", first_frame_url="https://cdn.test/s0.png")

        result = await engine.generate("shot-1")

        stored = await store.get_shot("shot-1")
        assert stored.first_frame_url == result.first_frame_url
        assert stored.last_frame_url == result.last_frame_url
        assert result.final_frame_url == result.last_frame_url
        assert text_client.kinds() == ["selector", "frame", "selector", "frame"]
        assert len(media.images) == 2

    @pytest.mark.asyncio
    async def test_end_frame_references_start_frame(self, engine, store, text_client, media):
        """Test the first frame leads the last frame's references."""
        text_client.selection = ["char_front"]

        result = await engine.generate("shot-1")

        assert result.references["end"] == [result.first_frame_url, MIA_FRONT]
        assert media.images[1]["reference_urls"][0] == result.first_frame_url

    @pytest.mark.asyncio
    async def test_action_shot_needs_no_previous_frame(self, engine):
        """Test an action shot starts the chain afresh when its predecessor has no frame."""
        result = await engine.generate("shot-1")

        assert result.first_frame_url
        assert result.last_frame_url


class TestScenePlates:
    """Tests for scene state handling during frame generation."""

    @pytest.mark.asyncio
    async def test_modified_shot_regenerates_plate(self, engine, store, media):
        """Test a modified shot omits plates and then refreshes the location plate."""
        await store.merge_attributes("shot-1", {
            "scene_state": "modified", "environment_change": "Broken cup on the floor",
        })

        result = await engine.generate("shot-1")

        assert media.images[-1]["label"] == "plate"
        assert media.images[-1]["reference_urls"] == ["https://assets.test/kitchen-a.png"]
        for image in media.images[:2]:
            assert "https://assets.test/kitchen-a.png" not in image["reference_urls"]
        stored = await store.get_shot("shot-1")
        assert stored.updated_scene_plate_url == result.updated_plate_url

    @pytest.mark.asyncio
    async def test_plate_failure_keeps_frames(self, store, text_client, media, object_storage, test_config):
        """Test a plate failure is reported on the result, not raised."""
        await store.merge_attributes("shot-1", {"scene_state": "modified"})
        plate_updater = AsyncMock()
        plate_updater.regenerate.side_effect = PlateRegenerationError("shot-1", "no plate model")
        engine = FrameGenerationEngine(
            store, text_client, media, object_storage, plate_updater=plate_updater, config=test_config
        )

        result = await engine.generate("shot-1")

        assert result.plate_error == "no plate model"
        assert result.updated_plate_url is None
        assert (await store.get_shot("shot-1")).last_frame_url == result.last_frame_url

    @pytest.mark.asyncio
    async def test_inherit_uses_updated_plate(self, engine, store, text_client, media):
        """Test an inherit shot is offered the updated plate of the change."""
        await store.merge_attributes("shot-1", {"scene_state": "modified", "environment_change": "Broken cup"})
        await store.merge_attributes("shot-2", {"scene_state": "inherit", "environment_change": "Broken cup"})
        await store.update_shot(
            "shot-1",
            first_frame_url="https://cdn.test/s1-a.png",
            last_frame_url="https://cdn.test/s1-b.png",
            updated_scene_plate_url="https://cdn.test/kitchen-broken.png",
        )
        text_client.selection = ["scene_updated"]

        await engine.generate("shot-2")

        assert media.images[0]["reference_urls"] == ["https://cdn.test/kitchen-broken.png"]

    @pytest.mark.asyncio
    async def test_no_candidates_skips_selector(self, store, text_client, media, object_storage, test_config):
        """Test a shot with nothing to offer renders without references."""
        store.add_shot(Shot(
            id="solo", script_id="script-2", project_id="proj-1", index=0,
            description="The lamp falls over",
            attributes={"location": "Bedroom", "characters": [], "scene_state": "modified",
                        "environment_change": "Lamp on the floor"},
        ))
        engine = FrameGenerationEngine(store, text_client, media, object_storage, config=test_config)

        result = await engine.generate("solo")

        assert "selector" not in text_client.kinds()
        assert media.images[0]["reference_urls"] == []
        assert result.updated_plate_url is not None


class TestConfiguration:
    """Tests for configuration-driven behavior."""

    @pytest.mark.asyncio
    async def test_selection_disabled(self, store, text_client, media, object_storage, test_config):
        """Test the first candidates are used in order when AI selection is off."""
        test_config.generation = GenerationConfig(use_ai_reference_selection=False, max_references=3)
        engine = FrameGenerationEngine(store, text_client, media, object_storage, config=test_config)

        result = await engine.generate("shot-0")

        assert result.references["single"] == [MIA_FRONT, MIA_SIDE, "https://assets.test/kitchen-a.png"]
        assert text_client.kinds() == ["frame"]

    @pytest.mark.asyncio
    async def test_missing_models(self, store, text_client, media, object_storage):
        """Test a run with no image model configured or requested fails."""
        engine = FrameGenerationEngine(store, text_client, media, object_storage, config=FrameChainConfig())

        with pytest.raises(MissingModelError):
            await engine.generate("shot-0")

    @pytest.mark.asyncio
    async def test_requested_models_override_defaults(self, engine, text_client, media):
        """Test per-call models win over configured ones."""
        await engine.generate("shot-0", image_model="img-x", text_model="txt-x")

        assert media.images[0]["model"] == "img-x"
        assert {call["model"] for call in text_client.calls} == {"txt-x"}
