"""
FrameChain Scene Plate Updater

When a shot irreversibly changes its location, produces an actor-free plate
of the changed location so later shots at that location inherit it.
"""

from typing import List, Optional

from framechain.core.constants import EMPTY_PLATE_PREFIX, SceneState
from framechain.core.exceptions import FrameChainError, PlateRegenerationError
from framechain.core.logging_config import get_logger
from framechain.gateway.media import MediaGenerator
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import clean_text
from framechain.storage.object_storage import ObjectStorage
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import ScenePlate, Shot
from framechain.utils.unicode_utils import safe_key_segment

from .prompts import build_plate_prompt_request

logger = get_logger("pipelines.plates")


def find_active_plate(shots: List[Shot], current: Shot) -> Optional[str]:
    """
    Updated plate in effect for a shot.

    Scans backward from the shot for the nearest earlier shot at the same
    location that is labeled modified and has a persisted plate.
    """
    earlier = sorted(
        (shot for shot in shots if shot.index < current.index),
        key=lambda shot: shot.index,
        reverse=True,
    )
    for shot in earlier:
        if (
            shot.location == current.location
            and shot.scene_state is SceneState.MODIFIED
            and shot.updated_scene_plate_url
        ):
            return shot.updated_scene_plate_url
    return None


async def resolve_active_plate(store: StoryboardStore, shot: Shot) -> Optional[str]:
    """find_active_plate over the shot's script as currently stored."""
    return find_active_plate(await store.list_shots(shot.script_id), shot)


def ensure_plate_prefix(prompt: str) -> str:
    if prompt.lower().startswith(EMPTY_PLATE_PREFIX):
        return prompt
    return f"{EMPTY_PLATE_PREFIX} {prompt}"


class ScenePlateUpdater:
    """Regenerates scene plates for modified shots. Every failure is a PlateRegenerationError."""

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        media: MediaGenerator,
        object_storage: ObjectStorage
    ):
        self.store = store
        self.text_client = text_client
        self.media = media
        self.object_storage = object_storage

    async def regenerate(
        self,
        shot: Shot,
        scene: ScenePlate,
        image_model: str,
        text_model: str,
        width: int = 1024,
        height: int = 576
    ) -> str:
        """
        Generate, persist and record an updated plate for a modified shot.

        Returns:
            The persisted plate URL, also written to shot.updated_scene_plate_url
        """
        if shot.scene_state is not SceneState.MODIFIED:
            raise PlateRegenerationError(shot.id, f"scene state is {shot.scene_state.value}, not modified")
        if not scene.image_url:
            raise PlateRegenerationError(shot.id, f"location '{scene.name}' has no primary plate")

        change = shot.environment_change
        logger.info(f"Regenerating plate for '{scene.name}' after shot {shot.id}: {change}")

        try:
            response = await self.text_client.generate(
                build_plate_prompt_request(scene, change),
                model=text_model,
                temperature=0.5,
                max_tokens=300,
            )
            prompt = clean_text(response.text) or (
                f"{change}, preserve original structure and palette, {scene.environment}"
            )
            prompt = ensure_plate_prefix(prompt)

            generated = await self.media.generate_image(
                image_model, prompt, [scene.image_url], width, height, label="plate"
            )
            persisted = await self.object_storage.persist(
                generated,
                f"images/scenes/updated/{shot.id}/{safe_key_segment(scene.name)}"
            )
            await self.store.update_shot(shot.id, updated_scene_plate_url=persisted)
        except FrameChainError as e:
            raise PlateRegenerationError(shot.id, e.message) from e

        logger.info(f"Updated plate stored for shot {shot.id}: {persisted}")
        return persisted
