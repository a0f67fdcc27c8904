"""
FrameChain Storyboard Models

Shots, characters, scene plates and the reference candidates offered to the
selector.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from framechain.core.constants import NO_CHANGE, SceneState


@dataclass
class Shot:
    """
    One storyboard entry: a single camera setup.

    Descriptive metadata lives in the free-form ``attributes`` bag; generated
    media URLs are first-class fields.
    """
    id: str
    script_id: str
    project_id: str
    index: int
    description: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)
    first_frame_url: Optional[str] = None
    last_frame_url: Optional[str] = None
    updated_scene_plate_url: Optional[str] = None
    video_url: Optional[str] = None

    @property
    def has_action(self) -> bool:
        return bool(self.attributes.get("has_action", False))

    @property
    def location(self) -> str:
        return str(self.attributes.get("location") or "").strip()

    @property
    def characters(self) -> List[str]:
        value = self.attributes.get("characters") or []
        if isinstance(value, str):
            value = [value]
        return [str(name) for name in value if str(name).strip()]

    @property
    def shot_type(self) -> str:
        return self.attributes.get("shot_type") or ""

    @property
    def emotion(self) -> str:
        return self.attributes.get("emotion") or ""

    @property
    def dialogue(self) -> str:
        return self.attributes.get("dialogue") or ""

    @property
    def end_state(self) -> str:
        return self.attributes.get("end_state") or ""

    @property
    def scene_state(self) -> SceneState:
        return SceneState.coerce(self.attributes.get("scene_state"))

    @property
    def environment_change(self) -> str:
        return self.attributes.get("environment_change") or NO_CHANGE

    @property
    def visual_anchor(self) -> str:
        return self.attributes.get("visual_anchor") or ""

    @property
    def camera_run_prompt(self) -> str:
        return self.attributes.get("camera_run_prompt") or ""

    @property
    def duration(self) -> Optional[int]:
        value = self.attributes.get("duration")
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def resolve_final_frame(self) -> Optional[str]:
        """The frame this shot ends on: last frame for action shots, first frame otherwise."""
        if self.has_action:
            return self.last_frame_url
        return self.first_frame_url

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Shot":
        return cls(
            id=str(data["id"]),
            script_id=str(data["script_id"]),
            project_id=str(data["project_id"]),
            index=int(data["index"]),
            description=data.get("description", ""),
            attributes=dict(data.get("attributes") or {}),
            first_frame_url=data.get("first_frame_url"),
            last_frame_url=data.get("last_frame_url"),
            updated_scene_plate_url=data.get("updated_scene_plate_url"),
            video_url=data.get("video_url"),
        )


@dataclass
class Character:
    """A character with its reference views."""
    id: str
    project_id: str
    name: str
    appearance: str = ""
    personality: str = ""
    description: str = ""
    front_view_url: str = ""
    side_view_url: Optional[str] = None
    back_view_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Character":
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__ if key in data})


@dataclass
class ScenePlate:
    """
    An actor-free reference image of a location.

    The primary image is the "A face"; the optional reverse image shows the
    opposite direction ("B face").
    """
    id: str
    project_id: str
    name: str
    description: str = ""
    environment: str = ""
    lighting: str = ""
    mood: str = ""
    image_url: str = ""
    reverse_image_url: Optional[str] = None
    generation_prompt: Optional[str] = None
    reverse_generation_prompt: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenePlate":
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__ if key in data})


@dataclass
class ReferenceCandidate:
    """A tagged image the reference selector may choose."""
    id: str
    label: str
    url: str
    description: str = ""


@dataclass
class CandidateSet:
    """Reference candidates for a shot plus the rows they came from."""
    candidates: List[ReferenceCandidate]
    scene: ScenePlate
    character: Optional[Character] = None

    def get(self, candidate_id: str) -> Optional[ReferenceCandidate]:
        for candidate in self.candidates:
            if candidate.id == candidate_id:
                return candidate
        return None

    @property
    def ids(self) -> List[str]:
        return [candidate.id for candidate in self.candidates]
