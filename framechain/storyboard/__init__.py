"""
FrameChain Storyboard Models
"""

from .models import Shot, Character, ScenePlate, ReferenceCandidate, CandidateSet

__all__ = [
    'Shot',
    'Character',
    'ScenePlate',
    'ReferenceCandidate',
    'CandidateSet',
]
