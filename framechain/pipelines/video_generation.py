"""
FrameChain Shot Video Generation

Synthesizes one shot's video from its already generated frames.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from framechain.core.config import FrameChainConfig, get_config
from framechain.core.exceptions import MissingFramesError, MissingModelError
from framechain.core.logging_config import get_logger
from framechain.gateway.media import MediaGenerator
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import clean_text
from framechain.storage.object_storage import ObjectStorage
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import Shot

from .prompts import build_video_prompt_request

logger = get_logger("pipelines.videos")


@dataclass
class VideoGenerationResult:
    """Video produced for one shot."""
    shot_id: str
    video_url: str
    prompt: str
    duration: int
    frame_urls: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "video_url": self.video_url,
            "prompt": self.prompt,
            "duration": self.duration,
            "frame_urls": list(self.frame_urls),
        }


def required_frames(shot: Shot) -> List[str]:
    """Frame URLs a shot's video is generated from; raises when one is missing."""
    missing = []
    if not shot.first_frame_url:
        missing.append("first frame")
    if shot.has_action and not shot.last_frame_url:
        missing.append("last frame")
    if missing:
        raise MissingFramesError(shot.id, missing)
    frames = [shot.first_frame_url]
    if shot.has_action:
        frames.append(shot.last_frame_url)
    return frames


class VideoGenerator:
    """Single-shot video synthesis."""

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        media: MediaGenerator,
        object_storage: ObjectStorage,
        config: Optional[FrameChainConfig] = None
    ):
        self.store = store
        self.text_client = text_client
        self.media = media
        self.object_storage = object_storage
        self.config = config or get_config()

    def default_duration(self, shot: Shot) -> int:
        generation = self.config.generation
        return generation.action_duration if shot.has_action else generation.static_duration

    async def generate(
        self,
        shot_id: str,
        video_model: Optional[str] = None,
        text_model: Optional[str] = None,
        duration: Optional[int] = None
    ) -> VideoGenerationResult:
        """
        Generate, persist and record the video of one shot.

        Args:
            shot_id: Shot to animate
            video_model: Video model identifier
            text_model: Text model used to write the video prompt
            duration: Clip length in seconds; defaults by action type

        Raises:
            MissingFramesError: The shot's required frames do not exist
            GatewayError: Model call failed or timed out
        """
        video_model = video_model or self.config.models.video_model
        text_model = text_model or self.config.models.text_model
        if not video_model:
            raise MissingModelError("video")

        shot = await self.store.get_shot(shot_id)
        frames = required_frames(shot)
        duration = duration or self.default_duration(shot)

        previous, following = await self._neighbours(shot)
        prompt = await self._video_prompt(shot, previous, following, text_model)

        generated = await self.media.generate_video(
            video_model, prompt, frames, duration, label=f"video-{shot.id}"
        )
        persisted = await self.object_storage.persist(generated, f"videos/shots/{shot.id}")
        await self.store.update_shot(shot.id, video_url=persisted)
        logger.info(f"Shot {shot.id} video stored: {persisted}")

        return VideoGenerationResult(
            shot_id=shot.id,
            video_url=persisted,
            prompt=prompt,
            duration=duration,
            frame_urls=frames,
        )

    async def _neighbours(self, shot: Shot):
        """Adjacent shots by index; either may be None."""
        previous = await self.store.get_shot_at(shot.script_id, shot.index - 1)
        following = await self.store.get_shot_at(shot.script_id, shot.index + 1)
        return previous, following

    async def _video_prompt(
        self,
        shot: Shot,
        previous: Optional[Shot],
        following: Optional[Shot],
        text_model: Optional[str]
    ) -> str:
        if not text_model:
            return shot.description
        visual_style = await self.store.get_visual_style(shot.project_id)
        response = await self.text_client.generate(
            build_video_prompt_request(shot, previous, following, visual_style),
            model=text_model,
            temperature=0.7,
            max_tokens=500,
        )
        return clean_text(response.text) or shot.description
