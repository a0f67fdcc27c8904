"""
FrameChain Object Storage

Turns a temporary generated-asset URL into a stable, persisted one.
"""

import mimetypes
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from framechain.core.exceptions import StorageError
from framechain.core.logging_config import get_logger
from framechain.core.retry import DOWNLOAD_RETRY_CONFIG, RetryConfig, retry_async_call

logger = get_logger("storage.objects")

_FALLBACK_EXTENSION = ".png"


class ObjectStorage(ABC):
    """Durable storage for generated frames, plates and videos."""

    @abstractmethod
    async def persist(self, remote_url: str, key_prefix: str) -> str:
        """Store the asset at remote_url under key_prefix and return its persisted URL."""
        pass


class PassthroughObjectStorage(ObjectStorage):
    """Keeps gateway URLs as they are, for gateways that already host assets durably."""

    async def persist(self, remote_url: str, key_prefix: str) -> str:
        return remote_url


class LocalObjectStorage(ObjectStorage):
    """Downloads assets with httpx into a directory served at public_base_url."""

    def __init__(
        self,
        root_dir: Path,
        public_base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 120.0
    ):
        self.root_dir = Path(root_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self._client = client
        self.timeout = timeout
        self.retry_config = retry_config or replace(
            DOWNLOAD_RETRY_CONFIG,
            retryable_exceptions=(httpx.TransportError,)
        )

    async def _download(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        response = await client.get(url, timeout=self.timeout, follow_redirects=True)
        response.raise_for_status()
        return response

    async def _fetch(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await retry_async_call(self._download, self._client, url, config=self.retry_config)
        async with httpx.AsyncClient() as client:
            return await retry_async_call(self._download, client, url, config=self.retry_config)

    async def persist(self, remote_url: str, key_prefix: str) -> str:
        try:
            response = await self._fetch(remote_url)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download generated asset: {e}", {"url": remote_url}) from e

        extension = _guess_extension(remote_url, response.headers.get("content-type"))
        key = f"{key_prefix.strip('/')}/{uuid.uuid4().hex}{extension}"
        target = self.root_dir / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
        except OSError as e:
            raise StorageError(f"Failed to write asset: {e}", {"key": key}) from e

        persisted = f"{self.public_base_url}/{key}"
        logger.debug(f"Persisted {remote_url} -> {persisted}")
        return persisted


def _guess_extension(url: str, content_type: Optional[str]) -> str:
    suffix = Path(urlparse(url).path).suffix.lower()
    if suffix and len(suffix) <= 5:
        return suffix
    if content_type:
        guessed = mimetypes.guess_extension(content_type.split(";")[0].strip())
        if guessed:
            return guessed
    return _FALLBACK_EXTENSION
