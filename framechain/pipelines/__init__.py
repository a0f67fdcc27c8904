"""
FrameChain Pipelines

Storyboard generation, scene state analysis, camera runs, frame and video
generation and the script-level batch runs built on them.
"""

from .base_pipeline import ChainPipeline, PipelineStatus, BatchSummary, ShotOutcome
from .candidates import CandidateCollector, assemble_references
from .reference_selector import ReferenceSelector, SelectionResult
from .scene_state import SceneStateAnalyzer, StateLabel, enforce_cumulative_states
from .plate_updater import ScenePlateUpdater, find_active_plate, resolve_active_plate
from .frame_generation import FrameGenerationEngine, FrameGenerationResult
from .video_generation import VideoGenerator, VideoGenerationResult
from .camera_run import CameraRunGenerator, CameraRunResult
from .batch_frames import SequentialFrameBatch
from .batch_videos import ConcurrentVideoBatch
from .storyboard_generation import StoryboardGenerator

__all__ = [
    'ChainPipeline',
    'PipelineStatus',
    'BatchSummary',
    'ShotOutcome',
    'CandidateCollector',
    'assemble_references',
    'ReferenceSelector',
    'SelectionResult',
    'SceneStateAnalyzer',
    'StateLabel',
    'enforce_cumulative_states',
    'ScenePlateUpdater',
    'find_active_plate',
    'resolve_active_plate',
    'FrameGenerationEngine',
    'FrameGenerationResult',
    'VideoGenerator',
    'VideoGenerationResult',
    'CameraRunGenerator',
    'CameraRunResult',
    'SequentialFrameBatch',
    'ConcurrentVideoBatch',
    'StoryboardGenerator',
]
