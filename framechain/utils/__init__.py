"""
FrameChain Utilities
"""

from .unicode_utils import strip_invisible, truncate_text, safe_key_segment

__all__ = [
    'strip_invisible',
    'truncate_text',
    'safe_key_segment',
]
