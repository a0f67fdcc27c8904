"""
FrameChain Camera Run Generation

Writes the camera movement paragraph of one shot and stores it in the shot's
attributes, where the video prompt picks it up.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from framechain.core.config import FrameChainConfig, get_config
from framechain.core.exceptions import ParseError
from framechain.core.logging_config import get_logger
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import clean_text
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import Shot

from .prompts import build_camera_run_prompt

logger = get_logger("pipelines.camera_run")


@dataclass
class CameraRunResult:
    """Camera run written for one shot."""
    shot_id: str
    camera_run_prompt: str
    shot_type: str
    duration: int

    def to_dict(self) -> Dict:
        return {
            "camera_run_prompt": self.camera_run_prompt,
            "shot_type": self.shot_type,
            "duration": self.duration,
        }


class CameraRunGenerator:
    """Single-shot camera run writer."""

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        config: Optional[FrameChainConfig] = None,
        temperature: float = 0.6,
        max_tokens: int = 600
    ):
        self.store = store
        self.text_client = text_client
        self.config = config or get_config()
        self.temperature = temperature
        self.max_tokens = max_tokens

    def shot_duration(self, shot: Shot) -> int:
        if shot.duration:
            return shot.duration
        generation = self.config.generation
        return generation.action_duration if shot.has_action else generation.static_duration

    async def generate(self, shot_id: str, text_model: str, think: Optional[bool] = None) -> CameraRunResult:
        """
        Write and store the camera run of one shot.

        Args:
            shot_id: Shot to plan
            text_model: Text model identifier
            think: Use extended reasoning

        Raises:
            ShotNotFoundError: Unknown shot
            ParseError: The model returned no text
            GatewayError: Model call failed or timed out
        """
        shot = await self.store.get_shot(shot_id)
        previous = await self.store.get_shot_at(shot.script_id, shot.index - 1)
        following = await self.store.get_shot_at(shot.script_id, shot.index + 1)
        visual_style = await self.store.get_visual_style(shot.project_id)
        appearance = await self._appearance(shot)
        duration = self.shot_duration(shot)

        prompt = build_camera_run_prompt(shot, previous, following, duration, visual_style, appearance)
        response = await self.text_client.generate(
            prompt,
            model=text_model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            think=think,
        )
        camera_run = clean_text(response.text)
        if not camera_run:
            raise ParseError(f"Camera run for shot {shot.id} is empty", raw_text=response.text)

        await self.store.merge_attributes(shot.id, {"camera_run_prompt": camera_run})
        logger.info(f"Shot {shot.id} camera run stored ({len(camera_run)} chars)")

        return CameraRunResult(
            shot_id=shot.id,
            camera_run_prompt=camera_run,
            shot_type=shot.shot_type,
            duration=duration,
        )

    async def _appearance(self, shot: Shot) -> Optional[str]:
        if not shot.characters:
            return None
        character = await self.store.get_character(shot.project_id, shot.characters[0])
        return character.appearance if character else None
