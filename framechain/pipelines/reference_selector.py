"""
FrameChain AI Reference Selector

Asks a reasoning text model which reference candidates to use for one
generation call, and in which order.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from framechain.core.constants import FrameType
from framechain.core.exceptions import ParseError, ReferenceSelectionError
from framechain.core.logging_config import get_logger
from framechain.gateway.text import TextModelClient
from framechain.parsing.recovery import TextRecoveryCascade
from framechain.storyboard.models import ReferenceCandidate, Shot

from .prompts import build_selector_prompt

logger = get_logger("pipelines.selector")


@dataclass
class SelectionResult:
    """Selected references, strongest first."""
    selected_urls: List[str]
    selected_ids: List[str] = field(default_factory=list)
    reasoning: str = ""


class ReferenceSelector:
    """AI-driven reference image selection."""

    def __init__(
        self,
        text_client: TextModelClient,
        cascade: Optional[TextRecoveryCascade] = None,
        temperature: float = 0.4,
        max_tokens: Optional[int] = None
    ):
        self.text_client = text_client
        self.cascade = cascade or TextRecoveryCascade()
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def select(
        self,
        frame_type: FrameType,
        current: Shot,
        previous: Optional[Shot],
        candidates: List[ReferenceCandidate],
        text_model: str
    ) -> SelectionResult:
        """
        Select references for one frame.

        Raises:
            ReferenceSelectionError: No candidates, or no selected id maps to a candidate
            ParseError: The model output is empty, truncated or lacks a "selected" list
        """
        if not candidates:
            raise ReferenceSelectionError("No reference candidates to select from")

        prompt = build_selector_prompt(frame_type, current, previous, candidates)
        response = await self.text_client.generate(
            prompt,
            model=text_model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            think=True,
        )

        if not response.text.strip() and response.truncated:
            raise ParseError(
                "Reference selector exhausted its token budget while reasoning; content is empty",
                raw_text=response.text,
                details={"finish_reason": response.finish_reason}
            )

        recovered = await self.cascade.recover(response.text, instructions=prompt, expect=dict)
        selected = recovered.value.get("selected")
        if not isinstance(selected, list):
            raise ParseError("Reference selector output has no 'selected' list", raw_text=response.text)

        by_id = {candidate.id: candidate for candidate in candidates}
        chosen_ids: List[str] = []
        for candidate_id in selected:
            key = str(candidate_id)
            if key not in by_id:
                logger.warning(f"Reference selector returned unknown id '{key}', dropping it")
                continue
            if key not in chosen_ids:
                chosen_ids.append(key)

        if not chosen_ids:
            raise ReferenceSelectionError(
                "None of the selected reference ids match a candidate",
                raw_text=response.text,
                details={"selected": selected, "available": list(by_id)}
            )

        reasoning = str(recovered.value.get("reasoning") or "")
        logger.info(
            f"Shot {current.id} {frame_type.value}: selected {chosen_ids}"
            + (f" ({reasoning})" if reasoning else "")
        )
        return SelectionResult(
            selected_urls=[by_id[candidate_id].url for candidate_id in chosen_ids],
            selected_ids=chosen_ids,
            reasoning=reasoning,
        )
