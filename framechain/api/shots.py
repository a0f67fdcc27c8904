"""
Shot-Level API Routes

Each route holds its shot's script for the duration of the call, so a
single shot is never regenerated while a chain owns the script.
"""

from fastapi import APIRouter, Depends

from .deps import FrameChainServices, get_services
from .models import (
    CameraRunRequest, CameraRunResponse, ShotFramesRequest, ShotFramesResponse, ShotVideoRequest, ShotVideoResponse,
)

router = APIRouter()


@router.post("/{shot_id}/frames", response_model=ShotFramesResponse)
async def generate_shot_frames(
    shot_id: str,
    request: ShotFramesRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Generate the frames of one shot, chained to the shot before it."""
    shot = await services.store.get_shot(shot_id)
    async with services.locks.hold(shot.script_id, "shot_frames"):
        engine = services.frame_engine()
        result = await engine.generate(
            shot_id,
            image_model=request.image_model,
            text_model=request.text_model,
            width=request.width,
            height=request.height,
        )
        services.save_store()
    return ShotFramesResponse(shot_id=result.shot_id, **result.to_dict())


@router.post("/{shot_id}/video", response_model=ShotVideoResponse)
async def generate_shot_video(
    shot_id: str,
    request: ShotVideoRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Generate the video of one shot from its frames."""
    shot = await services.store.get_shot(shot_id)
    async with services.locks.hold(shot.script_id, "shot_video"):
        generator = services.video_generator()
        result = await generator.generate(
            shot_id,
            video_model=request.video_model,
            text_model=request.text_model,
            duration=request.duration,
        )
        services.save_store()
    return ShotVideoResponse(shot_id=result.shot_id, **result.to_dict())


@router.post("/{shot_id}/camera-run", response_model=CameraRunResponse)
async def generate_camera_run(
    shot_id: str,
    request: CameraRunRequest,
    services: FrameChainServices = Depends(get_services)
):
    """Write the camera movement of one shot for its video prompt."""
    text_model = services.text_model(request.text_model)
    shot = await services.store.get_shot(shot_id)
    async with services.locks.hold(shot.script_id, "camera_run"):
        result = await services.camera_run_generator().generate(shot_id, text_model, think=request.think)
        services.save_store()
    return CameraRunResponse(shot_id=result.shot_id, **result.to_dict())
