"""
FrameChain HTTP Model Gateway

Speaks JSON to a gateway service over httpx:

    POST {base_url}/models/{model}/submit          -> submission
    GET  {base_url}/models/{model}/tasks/{task_id} -> task status
"""

from typing import Any, Dict, Optional

import httpx

from framechain.core.config import GatewayConfig
from framechain.core.env_loader import get_api_key
from framechain.core.exceptions import GatewayError, GatewayTimeoutError
from framechain.core.logging_config import get_logger

from .base import ModelGateway, PollResult, SubmitResult
from .extractors import extract_error, extract_status, extract_task_id

logger = get_logger("gateway.http")


class HttpModelGateway(ModelGateway):
    """Model gateway backed by an httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize the gateway.

        Args:
            base_url: Gateway service root, e.g. http://gateway/v1
            api_key: Bearer token, if the service needs one
            timeout: Per-request timeout in seconds
            client: Pre-built client (tests pass one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    @classmethod
    def from_config(cls, config: GatewayConfig) -> "HttpModelGateway":
        api_key = get_api_key(config.api_key_env)
        if not api_key:
            logger.warning(f"Gateway API key not found: {config.api_key_env}")
        return cls(config.base_url, api_key=api_key, timeout=config.timeout)

    async def _request(self, method: str, path: str, model: str, json_body: Dict[str, Any] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(
                method, url, json=json_body, headers=self._headers, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise GatewayTimeoutError(f"Gateway request timed out: {method} {path}", model=model) from e
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            raise GatewayError(
                f"Gateway returned {e.response.status_code}: {body}",
                model=model,
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Gateway request failed: {e}", model=model) from e

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError("Gateway returned a non-JSON body", model=model) from e
        if not isinstance(data, dict):
            raise GatewayError("Gateway returned an unexpected payload", model=model)
        return data

    async def submit(self, model: str, params: Dict[str, Any]) -> SubmitResult:
        data = await self._request("POST", f"/models/{model}/submit", model, params)
        task_id = extract_task_id(data)
        if task_id:
            logger.debug(f"Submitted async task {task_id} to {model}")
        return SubmitResult(raw=data, task_id=task_id)

    async def poll_status(self, model: str, task_id: str) -> PollResult:
        data = await self._request("GET", f"/models/{model}/tasks/{task_id}", model)
        return PollResult(status=extract_status(data), result=data, error=extract_error(data))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpModelGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
