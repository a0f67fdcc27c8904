"""
FrameChain Storyboard Generation

Breaks a script into shots with one text call and replaces the script's
stored shots with the result.
"""

import re
import uuid
from typing import Any, Dict, List, Optional

from framechain.core.exceptions import DataIntegrityError, ParseError
from framechain.core.logging_config import get_logger
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import TextRecoveryCascade
from framechain.storage.locks import ScriptLockRegistry
from framechain.storage.store import StoryboardStore
from framechain.storyboard.models import Shot

from .base_pipeline import ChainPipeline, PipelineStatus
from .prompts import build_storyboard_prompt

logger = get_logger("pipelines.storyboard")

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def snake_case(key: str) -> str:
    """hasAction -> has_action; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


def normalize_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Attribute bag for one storyboard entry: snake_case keys, typed values."""
    attributes = {snake_case(str(key)): value for key, value in entry.items()}

    has_action = attributes.get("has_action", False)
    if isinstance(has_action, str):
        has_action = has_action.strip().lower() in ("true", "yes", "1")
    attributes["has_action"] = bool(has_action)

    characters = attributes.get("characters") or []
    if isinstance(characters, str):
        characters = [characters]
    attributes["characters"] = [str(name).strip() for name in characters if str(name).strip()]

    if isinstance(attributes.get("location"), str):
        attributes["location"] = attributes["location"].strip()

    try:
        attributes["duration"] = int(attributes["duration"])
    except (KeyError, TypeError, ValueError):
        attributes.pop("duration", None)

    attributes.pop("description", None)
    return attributes


def build_shots(entries: List[Any], script_id: str, project_id: str) -> List[Shot]:
    """Shots in story order; non-object entries are dropped."""
    objects = [entry for entry in entries if isinstance(entry, dict)]

    def order_of(position_entry):
        position, entry = position_entry
        try:
            return int(entry.get("order")), position
        except (TypeError, ValueError):
            return position + 1, position

    shots = []
    for index, (_, entry) in enumerate(sorted(enumerate(objects), key=order_of)):
        shots.append(Shot(
            id=uuid.uuid4().hex,
            script_id=script_id,
            project_id=project_id,
            index=index,
            description=str(entry.get("description") or "").strip(),
            attributes=normalize_entry(entry),
        ))
    return shots


class StoryboardGenerator(ChainPipeline):
    """Script text to stored storyboard."""

    def __init__(
        self,
        store: StoryboardStore,
        text_client: TextModelClient,
        cascade: Optional[TextRecoveryCascade] = None,
        lock_registry: Optional[ScriptLockRegistry] = None
    ):
        super().__init__("storyboard_generation", lock_registry)
        self.store = store
        self.text_client = text_client
        self.cascade = cascade or TextRecoveryCascade()

    async def generate(self, script_id: str, project_id: str, script_text: str, text_model: str) -> List[Shot]:
        """
        Generate and store the storyboard of a script.

        Raises:
            DataIntegrityError: The script text is blank
            ParseError: The model output holds no usable shots
            ChainLockedError: Another chain holds the script
        """
        if not script_text or not script_text.strip():
            raise DataIntegrityError("Script text is empty", {"script_id": script_id})
        self._begin()

        async with self.locks.hold(script_id, self.name):
            self._report_progress(5)
            prompt = build_storyboard_prompt(script_text)
            response = await self.text_client.generate(
                prompt, model=text_model, temperature=0.3, max_tokens=8192
            )
            self._report_progress(60)

            recovered = await self.cascade.recover(response.text, instructions=prompt, expect=list)
            logger.info(f"Storyboard output recovered at stage {recovered.stage.value}")
            shots = build_shots(recovered.value, script_id, project_id)
            if not shots:
                raise ParseError("Storyboard output contains no shots", raw_text=response.text)

            self._raise_if_cancelled(script_id)
            await self.store.replace_shots(script_id, shots)

        self._status = PipelineStatus.COMPLETED
        self._report_progress(100)
        logger.info(f"Storyboard for script {script_id}: {len(shots)} shots")
        return shots
