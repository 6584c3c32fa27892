"""Remote model backends used by the inference proxy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

from google import genai
from google.genai import types


@dataclass(frozen=True, slots=True)
class InferenceRequest:
    """Everything a backend needs for one remote call."""

    image: bytes
    mime_type: str
    system_instruction: str
    user_instruction: str
    model: str


InferenceBackend = Callable[[InferenceRequest], Awaitable[str]]
BackendFactory = Callable[[str], InferenceBackend]


def gemini_backend(api_key: str) -> InferenceBackend:
    """Return a backend bound to a fresh client for ``api_key``."""
    client = genai.Client(api_key=api_key)

    async def _generate(request: InferenceRequest) -> str:
        response = await client.aio.models.generate_content(
            model=request.model,
            contents=[
                types.Part.from_bytes(data=request.image, mime_type=request.mime_type),
                request.user_instruction,
            ],
            config=types.GenerateContentConfig(
                system_instruction=request.system_instruction,
            ),
        )
        text = response.text
        if not text or not text.strip():
            raise RuntimeError("Gemini returned no text for the image.")
        return text

    return _generate
