"""
FrameChain API

FastAPI server exposing the generation pipelines.
"""

from . import health, scripts, shots

__all__ = ["health", "scripts", "shots"]
