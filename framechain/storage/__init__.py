"""
FrameChain Storage

Storyboard store, object storage and per-script chain locks.
"""

from .store import StoryboardStore, InMemoryStoryboardStore, FRAME_MEDIA_FIELDS
from .object_storage import ObjectStorage, LocalObjectStorage, PassthroughObjectStorage
from .locks import ScriptLockRegistry

__all__ = [
    'StoryboardStore',
    'InMemoryStoryboardStore',
    'FRAME_MEDIA_FIELDS',
    'ObjectStorage',
    'LocalObjectStorage',
    'PassthroughObjectStorage',
    'ScriptLockRegistry',
]
