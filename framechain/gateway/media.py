"""
FrameChain Media Generation

Image and video generation through the model gateway.
"""

from typing import Any, Dict, List, Optional

from framechain.core.config import PollingConfig
from framechain.core.exceptions import GatewayError
from framechain.core.logging_config import get_logger

from .base import ModelGateway
from .extractors import extract_image_url, extract_video_url
from .polling import submit_and_poll

logger = get_logger("gateway.media")


class MediaGenerator:
    """Generates images and videos and returns their (unpersisted) URLs."""

    def __init__(self, gateway: ModelGateway, polling: PollingConfig):
        self.gateway = gateway
        self.polling = polling

    async def generate_image(
        self,
        model: str,
        prompt: str,
        reference_urls: Optional[List[str]] = None,
        width: int = 1024,
        height: int = 576,
        label: str = "image"
    ) -> str:
        """Generate one image; reference order is significance order."""
        params: Dict[str, Any] = {
            "prompt": prompt,
            "width": width,
            "height": height,
            "image_size": f"{width}x{height}",
            "aspect_ratio": _aspect_ratio(width, height),
        }
        if reference_urls:
            params["image_urls"] = list(reference_urls)

        payload = await submit_and_poll(self.gateway, model, params, self.polling.image, label=label)
        url = extract_image_url(payload)
        if not url:
            raise GatewayError(f"[{label}] Task succeeded but returned no image URL", model=model)
        logger.debug(f"[{label}] Generated image with {len(reference_urls or [])} references")
        return url

    async def generate_video(
        self,
        model: str,
        prompt: str,
        frame_urls: List[str],
        duration: int,
        label: str = "video"
    ) -> str:
        """Generate a video from a first frame and an optional last frame."""
        params: Dict[str, Any] = {
            "prompt": prompt,
            "image_urls": list(frame_urls),
            "duration": duration,
        }
        payload = await submit_and_poll(self.gateway, model, params, self.polling.video, label=label)
        url = extract_video_url(payload)
        if not url:
            raise GatewayError(f"[{label}] Task succeeded but returned no video URL", model=model)
        return url


def _aspect_ratio(width: int, height: int) -> str:
    a, b = width, height
    while b:
        a, b = b, a % b
    return f"{width // a}:{height // a}" if a else "16:9"
