"""
FrameChain Storyboard Store

Persistent store interface for shots, characters, scene plates and project
visual style, plus an in-memory implementation with JSON snapshots.
"""

import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from framechain.core.exceptions import ShotNotFoundError
from framechain.core.logging_config import get_logger
from framechain.storyboard.models import Character, ScenePlate, Shot

logger = get_logger("storage.store")

# Fields cleared by a frame batch run with overwrite
FRAME_MEDIA_FIELDS = ("first_frame_url", "last_frame_url", "updated_scene_plate_url")
SHOT_UPDATABLE_FIELDS = {"description", "first_frame_url", "last_frame_url", "updated_scene_plate_url", "video_url"}


class StoryboardStore(ABC):
    """Access to storyboard rows. Shots are keyed by id and ordered by (script_id, index)."""

    @abstractmethod
    async def list_shots(self, script_id: str) -> List[Shot]:
        """All shots of a script, ordered by index."""
        pass

    @abstractmethod
    async def get_shot(self, shot_id: str) -> Shot:
        """Raises ShotNotFoundError when the id is unknown."""
        pass

    @abstractmethod
    async def get_shot_at(self, script_id: str, index: int) -> Optional[Shot]:
        pass

    @abstractmethod
    async def update_shot(self, shot_id: str, **fields: Any) -> Shot:
        pass

    @abstractmethod
    async def merge_attributes(self, shot_id: str, values: Dict[str, Any]) -> Shot:
        """Merge keys into the attribute bag, leaving other keys untouched."""
        pass

    @abstractmethod
    async def replace_shots(self, script_id: str, shots: List[Shot]) -> None:
        """Delete a script's shots and insert the given ones."""
        pass

    @abstractmethod
    async def clear_generated_media(self, script_id: str, fields: Tuple[str, ...] = FRAME_MEDIA_FIELDS) -> int:
        """Null the given media fields on every shot of a script. Returns the number of shots touched."""
        pass

    @abstractmethod
    async def get_character(self, project_id: str, name: str) -> Optional[Character]:
        pass

    @abstractmethod
    async def get_scene(self, project_id: str, name: str) -> Optional[ScenePlate]:
        pass

    @abstractmethod
    async def get_visual_style(self, project_id: str) -> Optional[str]:
        pass


class InMemoryStoryboardStore(StoryboardStore):
    """
    Dictionary-backed store.

    Returned objects are copies, so callers never mutate stored rows without
    going through update_shot or merge_attributes.
    """

    def __init__(self):
        self._shots: Dict[str, Shot] = {}
        self._characters: Dict[Tuple[str, str], Character] = {}
        self._scenes: Dict[Tuple[str, str], ScenePlate] = {}
        self._styles: Dict[str, str] = {}

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add_shot(self, shot: Shot) -> None:
        self._shots[shot.id] = copy.deepcopy(shot)

    def add_character(self, character: Character) -> None:
        self._characters[(character.project_id, character.name)] = copy.deepcopy(character)

    def add_scene(self, scene: ScenePlate) -> None:
        self._scenes[(scene.project_id, scene.name)] = copy.deepcopy(scene)

    def set_visual_style(self, project_id: str, style: str) -> None:
        self._styles[project_id] = style

    # -------------------------------------------------------------------------
    # StoryboardStore
    # -------------------------------------------------------------------------

    async def list_shots(self, script_id: str) -> List[Shot]:
        shots = [shot for shot in self._shots.values() if shot.script_id == script_id]
        return [copy.deepcopy(shot) for shot in sorted(shots, key=lambda s: s.index)]

    async def get_shot(self, shot_id: str) -> Shot:
        if shot_id not in self._shots:
            raise ShotNotFoundError(shot_id)
        return copy.deepcopy(self._shots[shot_id])

    async def get_shot_at(self, script_id: str, index: int) -> Optional[Shot]:
        for shot in self._shots.values():
            if shot.script_id == script_id and shot.index == index:
                return copy.deepcopy(shot)
        return None

    async def update_shot(self, shot_id: str, **fields: Any) -> Shot:
        if shot_id not in self._shots:
            raise ShotNotFoundError(shot_id)
        unknown = set(fields) - SHOT_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update shot fields: {sorted(unknown)}")
        shot = self._shots[shot_id]
        for name, value in fields.items():
            setattr(shot, name, value)
        return copy.deepcopy(shot)

    async def merge_attributes(self, shot_id: str, values: Dict[str, Any]) -> Shot:
        if shot_id not in self._shots:
            raise ShotNotFoundError(shot_id)
        shot = self._shots[shot_id]
        shot.attributes.update(copy.deepcopy(values))
        return copy.deepcopy(shot)

    async def replace_shots(self, script_id: str, shots: List[Shot]) -> None:
        self._shots = {
            shot_id: shot for shot_id, shot in self._shots.items()
            if shot.script_id != script_id
        }
        for shot in shots:
            self.add_shot(shot)
        logger.info(f"Replaced shots of script {script_id}: {len(shots)} shots")

    async def clear_generated_media(self, script_id: str, fields: Tuple[str, ...] = FRAME_MEDIA_FIELDS) -> int:
        touched = 0
        for shot in self._shots.values():
            if shot.script_id == script_id:
                for name in fields:
                    setattr(shot, name, None)
                touched += 1
        return touched

    async def get_character(self, project_id: str, name: str) -> Optional[Character]:
        character = self._characters.get((project_id, name))
        return copy.deepcopy(character) if character else None

    async def get_scene(self, project_id: str, name: str) -> Optional[ScenePlate]:
        scene = self._scenes.get((project_id, name))
        return copy.deepcopy(scene) if scene else None

    async def get_visual_style(self, project_id: str) -> Optional[str]:
        return self._styles.get(project_id)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shots": [shot.to_dict() for shot in self._shots.values()],
            "characters": [character.to_dict() for character in self._characters.values()],
            "scenes": [scene.to_dict() for scene in self._scenes.values()],
            "visual_styles": dict(self._styles),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryStoryboardStore":
        store = cls()
        for shot in data.get("shots", []):
            store.add_shot(Shot.from_dict(shot))
        for character in data.get("characters", []):
            store.add_character(Character.from_dict(character))
        for scene in data.get("scenes", []):
            store.add_scene(ScenePlate.from_dict(scene))
        for project_id, style in data.get("visual_styles", {}).items():
            store.set_visual_style(project_id, style)
        return store

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def load(cls, path: Path) -> "InMemoryStoryboardStore":
        """Load a snapshot; a missing file yields an empty store."""
        path = Path(path)
        if not path.exists():
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f))
