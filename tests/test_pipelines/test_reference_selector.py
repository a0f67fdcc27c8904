"""
Tests for AI Reference Selector

Tests for framechain/pipelines/reference_selector.py
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from framechain.core.constants import FrameType
from framechain.core.exceptions import ParseError, ReferenceSelectionError
from framechain.gateway.text import TextResponse
from framechain.pipelines.reference_selector import ReferenceSelector
from framechain.storyboard.models import ReferenceCandidate, Shot

CANDIDATES = [
    ReferenceCandidate("char_front", "Mia front view", "https://assets.test/mia-front.png", "Front view"),
    ReferenceCandidate("char_side", "Mia side view", "https://assets.test/mia-side.png", "Side profile"),
    ReferenceCandidate("scene_original", "Kitchen plate", "https://assets.test/kitchen-a.png", "Empty plate"),
]


def _shot() -> Shot:
    return Shot(
        id="shot-0", script_id="script-1", project_id="proj-1", index=0,
        description="Mia pours coffee",
        attributes={"location": "Kitchen", "characters": ["Mia"]},
    )


def _client(text: str, finish_reason: str = "stop") -> MagicMock:
    client = MagicMock()
    client.generate = AsyncMock(return_value=TextResponse(text=text, model="m", finish_reason=finish_reason))
    return client


class TestReferenceSelector:
    """Tests for ReferenceSelector.select."""

    @pytest.mark.asyncio
    async def test_selection_order_is_kept(self):
        """Test URLs follow the model's order, with unknown ids and duplicates dropped."""
        reply = json.dumps({
            "selected": ["scene_original", "bogus", "char_front", "scene_original"],
            "reasoning": "plate first",
        })
        client = _client(reply)

        result = await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, CANDIDATES, "m")

        assert result.selected_ids == ["scene_original", "char_front"]
        assert result.selected_urls == [
            "https://assets.test/kitchen-a.png", "https://assets.test/mia-front.png",
        ]
        assert result.reasoning == "plate first"

    @pytest.mark.asyncio
    async def test_uses_reasoning_mode(self):
        """Test the selector asks for extended reasoning at temperature 0.4."""
        client = _client('{"selected": ["char_front"]}')

        await ReferenceSelector(client).select(FrameType.START, _shot(), None, CANDIDATES, "m")

        kwargs = client.generate.call_args.kwargs
        assert kwargs["think"] is True
        assert kwargs["temperature"] == 0.4
        assert 'ID: "char_side"' in client.generate.call_args.args[0]

    @pytest.mark.asyncio
    async def test_fenced_reply(self):
        """Test a fenced reply is recovered."""
        client = _client('```json\n{"selected": ["char_side"]}\n```')

        result = await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, CANDIDATES, "m")

        assert result.selected_ids == ["char_side"]

    @pytest.mark.asyncio
    async def test_empty_truncated_reply(self):
        """Test empty content with a length stop is a parse error."""
        client = _client("", finish_reason="length")

        with pytest.raises(ParseError, match="token budget"):
            await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, CANDIDATES, "m")

    @pytest.mark.asyncio
    async def test_missing_selected_list(self):
        """Test a reply without a selected list is a parse error."""
        client = _client('{"reasoning": "none fit"}')

        with pytest.raises(ParseError, match="selected"):
            await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, CANDIDATES, "m")

    @pytest.mark.asyncio
    async def test_no_valid_ids(self):
        """Test a selection of only unknown ids is rejected."""
        client = _client('{"selected": ["hero_shot", "villain"]}')

        with pytest.raises(ReferenceSelectionError):
            await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, CANDIDATES, "m")

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        """Test an empty candidate list is rejected without a model call."""
        client = _client('{"selected": []}')

        with pytest.raises(ReferenceSelectionError):
            await ReferenceSelector(client).select(FrameType.SINGLE, _shot(), None, [], "m")

        client.generate.assert_not_called()
