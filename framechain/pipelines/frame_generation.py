"""
FrameChain Frame Generation Engine

Generates the frames of one shot, chained to the shot before it:

- Action shot: first frame, then last frame with the new first frame as a
  mandatory reference.
- Non-action shot: one frame. Any shot after the first needs the previous
  shot's final frame as its continuity anchor.

Modified shots also refresh their location's scene plate before returning.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from framechain.core.config import FrameChainConfig, get_config
from framechain.core.constants import CandidateId, FrameType, SceneState
from framechain.core.exceptions import ContinuityError, MissingModelError, ParseError, PlateRegenerationError
from framechain.core.logging_config import get_logger
from framechain.gateway.media import MediaGenerator
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import clean_text
from framechain.storage.object_storage import ObjectStorage
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import CandidateSet, ReferenceCandidate, Shot

from .base_pipeline import ProgressCallback
from .candidates import CandidateCollector, assemble_references
from .plate_updater import ScenePlateUpdater, resolve_active_plate
from .prompts import build_frame_prompt_request
from .reference_selector import ReferenceSelector

logger = get_logger("pipelines.frames")


@dataclass
class FrameGenerationResult:
    """Frames produced for one shot."""
    shot_id: str
    first_frame_url: str
    last_frame_url: Optional[str] = None
    prompts: Dict[str, str] = field(default_factory=dict)
    references: Dict[str, List[str]] = field(default_factory=dict)
    updated_plate_url: Optional[str] = None
    plate_error: Optional[str] = None

    @property
    def final_frame_url(self) -> str:
        return self.last_frame_url or self.first_frame_url

    def to_dict(self) -> Dict:
        return {
            "first_frame_url": self.first_frame_url,
            "last_frame_url": self.last_frame_url,
            "prompts": dict(self.prompts),
            "references": {name: list(urls) for name, urls in self.references.items()},
            "updated_plate_url": self.updated_plate_url,
            "plate_error": self.plate_error,
        }


@dataclass
class _ShotContext:
    shot: Shot
    previous: Optional[Shot]
    candidate_set: CandidateSet
    candidates: List[ReferenceCandidate]
    visual_style: Optional[str]
    image_model: str
    text_model: str
    width: int
    height: int


class FrameGenerationEngine:
    """Single-shot frame generation."""

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        media: MediaGenerator,
        object_storage: ObjectStorage,
        selector: Optional[ReferenceSelector] = None,
        plate_updater: Optional[ScenePlateUpdater] = None,
        config: Optional[FrameChainConfig] = None
    ):
        self.store = store
        self.text_client = text_client
        self.media = media
        self.object_storage = object_storage
        self.config = config or get_config()
        self.collector = CandidateCollector(store)
        self.selector = selector or ReferenceSelector(text_client)
        self.plate_updater = plate_updater or ScenePlateUpdater(store, text_client, media, object_storage)

    async def generate(
        self,
        shot_id: str,
        image_model: Optional[str] = None,
        text_model: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> FrameGenerationResult:
        """
        Generate and persist the frames of one shot.

        Raises:
            DataIntegrityError: Missing location, multi-character shot or empty required field
            ContinuityError: Non-action shot after the first without a previous final frame
            ParseError: Empty prompt or unusable reference selection
            GatewayError: Model call failed or timed out
        """
        progress = on_progress or (lambda percent: None)
        models = self.config.models
        image_model = image_model or models.image_model
        text_model = text_model or models.text_model
        if not image_model:
            raise MissingModelError("image")
        if not text_model:
            raise MissingModelError("text")

        shot = await self.store.get_shot(shot_id)
        previous = await self._previous_shot(shot)
        progress(5)

        candidate_set = await self.collector.collect(shot)
        previous_final = previous.resolve_final_frame() if previous is not None else None
        if previous is not None and not previous_final and not shot.has_action:
            raise ContinuityError(
                f"Shot {shot.id} follows shot {previous.id}, which has no final frame; "
                "generate the previous shot first",
                {"shot_id": shot.id, "previous_shot_id": previous.id}
            )

        active_plate = None
        if shot.scene_state is SceneState.INHERIT:
            active_plate = await resolve_active_plate(self.store, shot)
            if active_plate is None:
                logger.info(f"Shot {shot.id} inherits a change with no updated plate yet; using original plate")

        generation = self.config.generation
        ctx = _ShotContext(
            shot=shot,
            previous=previous,
            candidate_set=candidate_set,
            candidates=assemble_references(candidate_set, shot, previous, active_plate),
            visual_style=await self.store.get_visual_style(shot.project_id),
            image_model=image_model,
            text_model=text_model,
            width=width or generation.width,
            height=height or generation.height,
        )
        progress(10)

        if shot.has_action:
            result = await self._generate_action(ctx, progress)
        else:
            result = await self._generate_single(ctx, progress)

        if shot.scene_state is SceneState.MODIFIED:
            try:
                result.updated_plate_url = await self.plate_updater.regenerate(
                    shot, candidate_set.scene, image_model, text_model, ctx.width, ctx.height
                )
            except PlateRegenerationError as e:
                logger.warning(f"Continuing without updated plate: {e}")
                result.plate_error = e.reason

        progress(100)
        return result

    async def _previous_shot(self, shot: Shot) -> Optional[Shot]:
        shots = await self.store.list_shots(shot.script_id)
        earlier = [other for other in shots if other.index < shot.index]
        return earlier[-1] if earlier else None

    async def _generate_single(self, ctx: _ShotContext, progress: ProgressCallback) -> FrameGenerationResult:
        references = await self._choose_references(FrameType.SINGLE, ctx, ctx.shot, ctx.candidates)
        progress(25)
        prompt = await self._frame_prompt(FrameType.SINGLE, ctx)
        progress(40)
        url = await self._render(ctx, prompt, references, "single")
        await self.store.update_shot(ctx.shot.id, first_frame_url=url)
        logger.info(f"Shot {ctx.shot.id} frame stored: {url}")
        progress(90)

        return FrameGenerationResult(
            shot_id=ctx.shot.id,
            first_frame_url=url,
            prompts={FrameType.SINGLE.value: prompt},
            references={FrameType.SINGLE.value: references},
        )

    async def _generate_action(self, ctx: _ShotContext, progress: ProgressCallback) -> FrameGenerationResult:
        start_refs = await self._choose_references(FrameType.START, ctx, ctx.shot, ctx.candidates)
        progress(15)
        start_prompt = await self._frame_prompt(FrameType.START, ctx)
        progress(25)
        start_url = await self._render(ctx, start_prompt, start_refs, "start")
        current = await self.store.update_shot(ctx.shot.id, first_frame_url=start_url)
        logger.info(f"Shot {ctx.shot.id} first frame stored: {start_url}")
        progress(50)

        first_frame = ReferenceCandidate(
            id=CandidateId.CURRENT_FIRST_FRAME.value,
            label="Current shot first frame",
            url=start_url,
            description="First frame of this shot; keeps the shot internally continuous",
        )
        end_refs = await self._choose_references(FrameType.END, ctx, current, [first_frame, *ctx.candidates])
        if start_url not in end_refs:
            end_refs.insert(0, start_url)
        progress(60)
        end_prompt = await self._frame_prompt(FrameType.END, ctx)
        progress(70)
        end_url = await self._render(ctx, end_prompt, end_refs, "end")
        await self.store.update_shot(ctx.shot.id, last_frame_url=end_url)
        logger.info(f"Shot {ctx.shot.id} last frame stored: {end_url}")
        progress(90)

        return FrameGenerationResult(
            shot_id=ctx.shot.id,
            first_frame_url=start_url,
            last_frame_url=end_url,
            prompts={FrameType.START.value: start_prompt, FrameType.END.value: end_prompt},
            references={FrameType.START.value: start_refs, FrameType.END.value: end_refs},
        )

    async def _choose_references(
        self,
        frame_type: FrameType,
        ctx: _ShotContext,
        current: Shot,
        candidates: List[ReferenceCandidate]
    ) -> List[str]:
        if not candidates:
            return []
        if not self.config.generation.use_ai_reference_selection:
            return [candidate.url for candidate in candidates[:self.config.generation.max_references]]
        selection = await self.selector.select(frame_type, current, ctx.previous, candidates, ctx.text_model)
        return list(selection.selected_urls)

    async def _frame_prompt(self, frame_type: FrameType, ctx: _ShotContext) -> str:
        character_name = ctx.candidate_set.character.name if ctx.candidate_set.character else None
        previous_description = ctx.previous.description if ctx.previous is not None else None
        response = await self.text_client.generate(
            build_frame_prompt_request(
                ctx.shot, frame_type, character_name, previous_description, ctx.visual_style
            ),
            model=ctx.text_model,
            temperature=0.7,
            max_tokens=500,
        )
        prompt = clean_text(response.text)
        if not prompt:
            raise ParseError(
                f"Prompt generation for shot {ctx.shot.id} ({frame_type.value}) returned nothing",
                raw_text=response.text,
            )
        return prompt

    async def _render(self, ctx: _ShotContext, prompt: str, references: List[str], frame_name: str) -> str:
        generated = await self.media.generate_image(
            ctx.image_model, prompt, references, ctx.width, ctx.height,
            label=f"frame-{frame_name}",
        )
        return await self.object_storage.persist(generated, f"images/frames/{ctx.shot.id}/{frame_name}")
