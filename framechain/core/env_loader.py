"""
Centralized environment variable loading for FrameChain.

Loads the project .env once so gateway keys and storage settings are
available to every component.

Usage:
    from framechain.core.env_loader import ensure_env_loaded
    ensure_env_loaded()
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

_env_loaded = False


def get_project_root() -> Path:
    """Get the project root directory (where .env is located)."""
    # framechain/core/env_loader.py -> two levels up
    return Path(__file__).parent.parent.parent


def ensure_env_loaded(override: bool = True) -> bool:
    """
    Load variables from the project .env if it has not been loaded yet.

    Args:
        override: Let .env values replace existing (possibly empty) variables

    Returns:
        True if .env was loaded by this call
    """
    global _env_loaded

    if _env_loaded:
        return False

    env_path = get_project_root() / ".env"
    if not env_path.exists():
        return False

    load_dotenv(env_path, override=override)
    _env_loaded = True
    return True


def get_api_key(key_name: str, fallback_keys: Optional[List[str]] = None) -> Optional[str]:
    """
    Get an API key from the environment, trying fallbacks in order.

    Args:
        key_name: Primary environment variable name
        fallback_keys: Other variable names to try

    Returns:
        Key value or None if none is set
    """
    ensure_env_loaded()

    for name in [key_name, *(fallback_keys or [])]:
        value = os.getenv(name)
        if value:
            return value
    return None
