"""
FrameChain Constants

Enumerations and fixed values shared across the pipeline.
"""

from enum import Enum


class SceneState(str, Enum):
    """Environment state of a shot's location relative to its original plate."""
    NORMAL = "normal"       # Location matches its original plate
    MODIFIED = "modified"   # An irreversible change happens in this shot
    INHERIT = "inherit"     # A change from an earlier shot persists

    @classmethod
    def coerce(cls, value) -> "SceneState":
        """Map any stored or model-produced value onto a valid state; unknown means normal."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.NORMAL


class FrameType(str, Enum):
    """Which frame of a shot is being generated."""
    START = "start"
    END = "end"
    SINGLE = "single"


class ShotStatus(str, Enum):
    """Per-shot outcome inside a batch or analysis run."""
    COMPLETED = "completed"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class CandidateId(str, Enum):
    """Stable ids offered to the reference selector."""
    CHAR_FRONT = "char_front"
    CHAR_SIDE = "char_side"
    CHAR_BACK = "char_back"
    SCENE_ORIGINAL = "scene_original"
    SCENE_REVERSE = "scene_reverse"
    SCENE_UPDATED = "scene_updated"
    PREV_END_FRAME = "prev_end_frame"
    CURRENT_FIRST_FRAME = "current_first_frame"


# Attribute bag keys written by the scene state analyzer
SCENE_STATE_KEYS = ("scene_state", "environment_change", "visual_anchor")

# Sentinel for "no environment change"
NO_CHANGE = "none"

# Every updated plate prompt must open with this phrase
EMPTY_PLATE_PREFIX = "empty scene, no people, no characters, no figures,"

MAX_CHARACTERS_PER_SHOT = 1
FACING_HINT_LENGTH = 120
MAX_VIDEO_CONCURRENCY = 20
MIN_VIDEO_CONCURRENCY = 1
