"""
FrameChain Candidate Reference Collector

Loads the character and scene plate a shot depends on, validates them and
offers their images as tagged reference candidates.
"""

from typing import List, Optional

from framechain.core.constants import FACING_HINT_LENGTH, MAX_CHARACTERS_PER_SHOT, CandidateId, SceneState
from framechain.core.exceptions import DataIntegrityError, MissingFieldError, MultiCharacterShotError
from framechain.core.logging_config import get_logger
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import CandidateSet, Character, ReferenceCandidate, ScenePlate, Shot
from framechain.utils.unicode_utils import truncate_text

logger = get_logger("pipelines.candidates")

CHARACTER_REQUIRED_FIELDS = ("name", "description", "appearance", "personality", "front_view_url")
SCENE_REQUIRED_FIELDS = ("name", "description", "environment", "lighting", "mood", "image_url")


def require_fields(entity: str, row, field_names) -> None:
    """Every listed field must be a non-empty string; no defaults are substituted."""
    for field_name in field_names:
        value = getattr(row, field_name, None)
        if not isinstance(value, str) or not value.strip():
            raise MissingFieldError(entity, getattr(row, "name", "") or "?", field_name)


def _facing_hint(prompt: Optional[str]) -> str:
    if not prompt:
        return ""
    return f" Facing hint: {truncate_text(prompt.strip(), FACING_HINT_LENGTH)}"


class CandidateCollector:
    """Builds the reference candidate set for a shot."""

    def __init__(self, store: StoryboardStore):
        self.store = store

    async def collect(self, shot: Shot) -> CandidateSet:
        """
        Collect candidates for a shot.

        Raises:
            MultiCharacterShotError: More than one character is linked
            DataIntegrityError: No location, or a character/scene row is missing
            MissingFieldError: A required descriptive field is empty
        """
        names = shot.characters
        if len(names) > MAX_CHARACTERS_PER_SHOT:
            raise MultiCharacterShotError(shot.id, names)
        if not shot.location:
            raise DataIntegrityError(
                f"Shot {shot.id} has no location; frame generation requires one",
                {"shot_id": shot.id}
            )

        candidates: List[ReferenceCandidate] = []
        character = None
        if names:
            character = await self._load_character(shot.project_id, names[0])
            candidates.extend(self.character_candidates(character))

        scene = await self._load_scene(shot.project_id, shot.location)
        candidates.extend(self.plate_candidates(scene))

        logger.debug(f"Shot {shot.id} candidates: {[c.id for c in candidates]}")
        return CandidateSet(candidates=candidates, scene=scene, character=character)

    async def _load_character(self, project_id: str, name: str) -> Character:
        character = await self.store.get_character(project_id, name)
        if character is None:
            raise DataIntegrityError(f"Character not found: {name}", {"project_id": project_id})
        require_fields("Character", character, CHARACTER_REQUIRED_FIELDS)
        return character

    async def _load_scene(self, project_id: str, name: str) -> ScenePlate:
        scene = await self.store.get_scene(project_id, name)
        if scene is None:
            raise DataIntegrityError(f"Scene not found: {name}", {"project_id": project_id})
        require_fields("Scene", scene, SCENE_REQUIRED_FIELDS)
        return scene

    @staticmethod
    def character_candidates(character: Character) -> List[ReferenceCandidate]:
        appearance = truncate_text(character.appearance, FACING_HINT_LENGTH)
        candidates = [ReferenceCandidate(
            id=CandidateId.CHAR_FRONT.value,
            label=f"{character.name} front view",
            url=character.front_view_url,
            description=f"Front view of {character.name}: {appearance}",
        )]
        if character.side_view_url:
            candidates.append(ReferenceCandidate(
                id=CandidateId.CHAR_SIDE.value,
                label=f"{character.name} side view",
                url=character.side_view_url,
                description=f"Side profile of {character.name}",
            ))
        if character.back_view_url:
            candidates.append(ReferenceCandidate(
                id=CandidateId.CHAR_BACK.value,
                label=f"{character.name} back view",
                url=character.back_view_url,
                description=f"Back view of {character.name}",
            ))
        return candidates

    @staticmethod
    def plate_candidates(scene: ScenePlate) -> List[ReferenceCandidate]:
        candidates = [ReferenceCandidate(
            id=CandidateId.SCENE_ORIGINAL.value,
            label=f"{scene.name} plate (A face)",
            url=scene.image_url,
            description=f"Original empty plate of {scene.name}.{_facing_hint(scene.generation_prompt)}",
        )]
        if scene.reverse_image_url:
            candidates.append(ReferenceCandidate(
                id=CandidateId.SCENE_REVERSE.value,
                label=f"{scene.name} reverse plate (B face)",
                url=scene.reverse_image_url,
                description=(
                    f"Reverse-angle empty plate of {scene.name}, the opposite direction of the A face."
                    f"{_facing_hint(scene.reverse_generation_prompt)}"
                ),
            ))
        return candidates


def assemble_references(
    candidate_set: CandidateSet,
    shot: Shot,
    previous: Optional[Shot] = None,
    active_plate_url: Optional[str] = None
) -> List[ReferenceCandidate]:
    """
    Order candidates for one generation call.

    [previous final frame] -> [character views] -> [scene plate by state]:
    normal uses the original plate (and its reverse), modified omits the plate,
    inherit replaces it with the updated plate, or the original when none
    has been persisted yet.
    """
    ordered: List[ReferenceCandidate] = []

    previous_final = previous.resolve_final_frame() if previous is not None else None
    if previous_final:
        same_location = previous.location == shot.location
        note = "same location" if same_location else f"different location ({previous.location})"
        ordered.append(ReferenceCandidate(
            id=CandidateId.PREV_END_FRAME.value,
            label="Previous shot final frame",
            url=previous_final,
            description=f"Final frame of the previous shot, {note}. Shot type: {previous.shot_type or 'unspecified'}",
        ))

    plate_ids = {CandidateId.SCENE_ORIGINAL.value, CandidateId.SCENE_REVERSE.value}
    ordered.extend(c for c in candidate_set.candidates if c.id not in plate_ids)

    state = shot.scene_state
    original = candidate_set.get(CandidateId.SCENE_ORIGINAL.value)
    if state is SceneState.NORMAL:
        ordered.extend(c for c in candidate_set.candidates if c.id in plate_ids)
    elif state is SceneState.INHERIT:
        if active_plate_url:
            ordered.append(ReferenceCandidate(
                id=CandidateId.SCENE_UPDATED.value,
                label=f"{candidate_set.scene.name} updated plate",
                url=active_plate_url,
                description=f"Empty plate after the change: {shot.environment_change}",
            ))
        elif original is not None:
            ordered.append(original)

    return ordered
