"""
API Request and Response Models
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from framechain.pipelines.base_pipeline import BatchSummary
from framechain.storyboard.models import Shot


class ShotResponse(BaseModel):
    """A stored shot."""
    id: str
    script_id: str
    project_id: str
    index: int
    description: str
    attributes: Dict[str, Any] = Field(default_factory=dict)
    first_frame_url: Optional[str] = None
    last_frame_url: Optional[str] = None
    updated_scene_plate_url: Optional[str] = None
    video_url: Optional[str] = None

    @classmethod
    def from_shot(cls, shot: Shot) -> "ShotResponse":
        return cls(**shot.to_dict())


class StoryboardRequest(BaseModel):
    """Break a script into shots."""
    project_id: str
    script_text: str = Field(..., min_length=1)
    text_model: Optional[str] = None


class StoryboardResponse(BaseModel):
    script_id: str
    shots: List[ShotResponse]


class SceneStateRequest(BaseModel):
    """Label every shot of a script with its environment state."""
    text_model: Optional[str] = None
    think: Optional[bool] = None


class FrameBatchRequest(BaseModel):
    """Generate frames for every shot of a script, in order."""
    image_model: Optional[str] = None
    text_model: Optional[str] = None
    overwrite: bool = False
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    deadline_seconds: Optional[float] = Field(default=None, gt=0)


class VideoBatchRequest(BaseModel):
    """Generate videos for every shot of a script."""
    video_model: Optional[str] = None
    text_model: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    overwrite: bool = False
    max_concurrency: Optional[int] = None  # clamped to 1..20


class ShotFramesRequest(BaseModel):
    image_model: Optional[str] = None
    text_model: Optional[str] = None
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)


class ShotVideoRequest(BaseModel):
    video_model: Optional[str] = None
    text_model: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)


class CameraRunRequest(BaseModel):
    text_model: Optional[str] = None
    think: Optional[bool] = None


class ShotFramesResponse(BaseModel):
    shot_id: str
    first_frame_url: str
    last_frame_url: Optional[str] = None
    prompts: Dict[str, str] = Field(default_factory=dict)
    references: Dict[str, List[str]] = Field(default_factory=dict)
    updated_plate_url: Optional[str] = None
    plate_error: Optional[str] = None


class ShotVideoResponse(BaseModel):
    shot_id: str
    video_url: str
    prompt: str
    duration: int
    frame_urls: List[str] = Field(default_factory=list)


class CameraRunResponse(BaseModel):
    shot_id: str
    camera_run_prompt: str
    shot_type: str
    duration: int


class BatchSummaryResponse(BaseModel):
    """Outcome of a script-level run."""
    total: int
    completed: int
    skipped: int
    failed: int
    stopped_early: bool = False
    cancelled: bool = False
    results: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: BatchSummary) -> "BatchSummaryResponse":
        return cls(**summary.to_dict())


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)
