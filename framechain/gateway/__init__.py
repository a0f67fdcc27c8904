"""
FrameChain Model Gateway

Normalized access to text, image and video models.
"""

from .base import ModelGateway, SubmitResult, PollResult, TaskStatus
from .http_gateway import HttpModelGateway
from .polling import submit_and_poll
from .text import TextModelClient, TextResponse
from .media import MediaGenerator

__all__ = [
    'ModelGateway',
    'SubmitResult',
    'PollResult',
    'TaskStatus',
    'HttpModelGateway',
    'submit_and_poll',
    'TextModelClient',
    'TextResponse',
    'MediaGenerator',
]
