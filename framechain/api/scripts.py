"""
Script-Level API Routes

Storyboard generation, scene state analysis and the frame and video batch
runs. Each run holds the script's chain lock; a second run on the same
script is rejected with 409.
"""

from fastapi import APIRouter, Depends

from framechain.core.logging_config import get_logger

from .deps import FrameChainServices, get_services
from .models import (
    BatchSummaryResponse, FrameBatchRequest, SceneStateRequest,
    ShotResponse, StoryboardRequest, StoryboardResponse, VideoBatchRequest,
)

router = APIRouter()
logger = get_logger("api.scripts")


@router.post("/{script_id}/storyboard", response_model=StoryboardResponse)
async def generate_storyboard(
    script_id: str,
    request: StoryboardRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Break the script text into shots, replacing the script's storyboard."""
    generator = services.storyboard_generator()
    shots = await generator.generate(
        script_id, request.project_id, request.script_text, services.text_model(request.text_model)
    )
    services.save_store()
    return StoryboardResponse(script_id=script_id, shots=[ShotResponse.from_shot(shot) for shot in shots])


@router.post("/{script_id}/scene-state", response_model=BatchSummaryResponse)
async def analyze_scene_state(
    script_id: str,
    request: SceneStateRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Label every shot with scene_state, environment_change and visual_anchor."""
    analyzer = services.scene_state_analyzer()
    summary = await analyzer.analyze(script_id, services.text_model(request.text_model), think=request.think)
    services.save_store()
    return BatchSummaryResponse.from_summary(summary)


@router.post("/{script_id}/frames/batch", response_model=BatchSummaryResponse)
async def generate_frames_batch(
    script_id: str,
    request: FrameBatchRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Generate frames shot by shot; stops at the first failure."""
    batch = services.frame_batch()
    summary = await batch.run(
        script_id,
        image_model=request.image_model,
        text_model=request.text_model,
        overwrite=request.overwrite,
        width=request.width,
        height=request.height,
        deadline_seconds=request.deadline_seconds,
    )
    services.save_store()
    return BatchSummaryResponse.from_summary(summary)


@router.post("/{script_id}/videos/batch", response_model=BatchSummaryResponse)
async def generate_videos_batch(
    script_id: str,
    request: VideoBatchRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Generate videos concurrently; each shot's failure is recorded separately."""
    batch = services.video_batch()
    summary = await batch.run(
        script_id,
        video_model=request.video_model,
        text_model=request.text_model,
        duration=request.duration,
        overwrite=request.overwrite,
        max_concurrency=request.max_concurrency,
    )
    services.save_store()
    return BatchSummaryResponse.from_summary(summary)
