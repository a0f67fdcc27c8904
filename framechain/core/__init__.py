"""
FrameChain Core Module

Configuration, constants, exceptions, logging and retry helpers.
"""

from .config import FrameChainConfig, load_config, get_config, set_config
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, get_logger

__all__ = [
    'FrameChainConfig',
    'load_config',
    'get_config',
    'set_config',
    'setup_logging',
    'get_logger',
]
