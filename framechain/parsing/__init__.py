"""
FrameChain Parsing

Recovery of structured data from model output.
"""

from .recovery import (
    TextRecoveryCascade,
    RecoveryResult,
    RecoveryStage,
    clean_text,
)

__all__ = [
    'TextRecoveryCascade',
    'RecoveryResult',
    'RecoveryStage',
    'clean_text',
]
