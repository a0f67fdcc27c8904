"""
FrameChain Text Model Client

Prompt-in, text-out calls through the model gateway.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from framechain.core.config import PollingPolicy
from framechain.core.logging_config import get_logger

from .base import ModelGateway
from .extractors import extract_content, extract_finish_reason
from .polling import submit_and_poll

logger = get_logger("gateway.text")


@dataclass
class TextResponse:
    """Text model output."""
    text: str
    model: str
    finish_reason: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def truncated(self) -> bool:
        return self.finish_reason == "length"


class TextModelClient:
    """Calls text models through a ModelGateway."""

    def __init__(self, gateway: ModelGateway, policy: PollingPolicy):
        self.gateway = gateway
        self.policy = policy

    async def generate(
        self,
        prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        think: Optional[bool] = None,
        system_prompt: str = ""
    ) -> TextResponse:
        """
        Generate text.

        Args:
            prompt: User prompt
            model: Text model identifier
            temperature: Sampling temperature
            max_tokens: Output token budget
            think: Enable or disable extended reasoning; None leaves the model default
            system_prompt: Optional system prompt

        Returns:
            TextResponse with the generated text and finish reason
        """
        params: Dict[str, Any] = {"prompt": prompt}
        if system_prompt:
            params["system_prompt"] = system_prompt
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if think is not None:
            params["think"] = think

        payload = await submit_and_poll(self.gateway, model, params, self.policy, label="text")
        response = TextResponse(
            text=extract_content(payload),
            model=model,
            finish_reason=extract_finish_reason(payload),
            raw=payload
        )
        if response.truncated:
            logger.warning(f"Text model {model} stopped at its token limit")
        return response
