"""HTTP client for the inference proxy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from modules.errors import GenerationError, NetworkError, ServerError
from modules.utils.image_utils import EncodedPayload

logger = logging.getLogger(__name__)

GENERATE_ENDPOINT = "/api/generate"


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Either a prompt or a classified failure, never both."""

    prompt: Optional[str] = None
    error: Optional[GenerationError] = None

    def __post_init__(self) -> None:
        if (self.prompt is None) == (self.error is None):
            raise ValueError("GenerationResult needs exactly one of prompt or error.")
        if self.prompt is not None and not self.prompt:
            raise ValueError("Successful results require a non-empty prompt.")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, prompt: str) -> "GenerationResult":
        return cls(prompt=prompt)

    @classmethod
    def failure(cls, error: GenerationError) -> "GenerationResult":
        return cls(error=error)


def _server_error_message(response: httpx.Response) -> str:
    fallback = f"Server responded with status {response.status_code}"
    try:
        body: Any = response.json()
    except ValueError:
        return fallback
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return fallback


class GenerationClient:
    """Send encoded images to the proxy and classify the outcome."""

    def __init__(
        self,
        base_url: str,
        endpoint: str = GENERATE_ENDPOINT,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def generate(self, payload: EncodedPayload) -> GenerationResult:
        """POST the payload and return the prompt or a classified failure."""
        if not payload.mime_type or not payload.data:
            raise ValueError("EncodedPayload requires non-empty data and mime_type.")

        body = {"image": payload.data, "mimeType": payload.mime_type}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.endpoint, json=body)
        except httpx.HTTPError as exc:
            logger.warning("Error communicating with the backend service: %r", exc)
            return GenerationResult.failure(NetworkError(f"Could not reach the server ({exc})."))

        if not response.is_success:
            message = _server_error_message(response)
            logger.warning("Proxy returned %s: %s", response.status_code, message)
            return GenerationResult.failure(ServerError(message, status_code=response.status_code))

        try:
            data: Any = response.json()
        except ValueError as exc:
            logger.warning("Unparseable proxy response: %s", exc)
            return GenerationResult.failure(NetworkError(f"Could not parse the server response ({exc})."))

        prompt = data.get("prompt") if isinstance(data, dict) else None
        if not isinstance(prompt, str):
            return GenerationResult.failure(NetworkError("Server response did not contain a prompt."))
        if not prompt:
            return GenerationResult.failure(
                ServerError("Server returned an empty prompt.", status_code=response.status_code)
            )
        return GenerationResult.success(prompt)
