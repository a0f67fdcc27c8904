"""
FrameChain - Continuity-Aware Multi-Shot Generation

Turns a storyboard of shots into chained reference frames and videos.
Each shot's resolved final frame seeds the next shot's generation, scene
plates track irreversible environment changes per location, and whole
episodes run as sequential (frames) or pooled (videos) batch jobs.

Version: 1.0.0
"""

__version__ = "1.0.0"
__project__ = "FrameChain"

from pathlib import Path

from framechain.core.env_loader import ensure_env_loaded
ensure_env_loaded()

PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent

__all__ = [
    "__version__",
    "__project__",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
]
