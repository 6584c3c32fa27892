"""Generation pipeline state machine: image -> codec -> client -> history."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Tuple

from modules.errors import ReadError, ValidationError
from modules.services.generation_client import GenerationResult
from modules.services.history_service import HistoryEntry, HistoryStore
from modules.utils.image_utils import EncodedPayload, ImageResource, encode, validate_media_type

logger = logging.getLogger(__name__)

MISSING_IMAGE_MESSAGE = "Please upload an image first."
READ_FAILURE_MESSAGE = "Error reading the image file. It might be corrupted."
UNKNOWN_FAILURE_MESSAGE = "An unknown error occurred."
CANCELLED_MESSAGE = "Prompt generation was cancelled."


class GenerationStatus(str, Enum):
    """Current phase of the pipeline."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class GenerationState:
    """Read-only projection handed to the presentation layer."""

    status: GenerationStatus
    prompt: str = ""
    error: Optional[str] = None
    image_name: Optional[str] = None
    history: Tuple[HistoryEntry, ...] = field(default_factory=tuple)

    @property
    def is_loading(self) -> bool:
        return self.status is GenerationStatus.LOADING

    @property
    def can_generate(self) -> bool:
        return self.image_name is not None and not self.is_loading


class PromptClient(Protocol):
    async def generate(self, payload: EncodedPayload) -> GenerationResult: ...


Encoder = Callable[[ImageResource], Awaitable[EncodedPayload]]


def epoch_millis() -> int:
    return int(time.time() * 1000)


class GenerationOrchestrator:
    """Own the single generation status and drive the async pipeline.

    At most one generation runs at a time: a trigger while Loading is a
    no-op, as are image and history selections.
    """

    def __init__(
        self,
        client: PromptClient,
        history: HistoryStore,
        clock: Callable[[], int] = epoch_millis,
        encoder: Encoder = encode,
    ) -> None:
        self.client = client
        self.history = history
        self.clock = clock
        self.encoder = encoder
        self._status = GenerationStatus.IDLE
        self._image: Optional[ImageResource] = None
        self._prompt = ""
        self._error: Optional[str] = None

    @property
    def state(self) -> GenerationState:
        return GenerationState(
            status=self._status,
            prompt=self._prompt,
            error=self._error,
            image_name=self._image.name if self._image is not None else None,
            history=self.history.entries,
        )

    @property
    def image(self) -> Optional[ImageResource]:
        return self._image

    def _fail(self, message: str) -> None:
        self._status = GenerationStatus.ERROR
        self._error = message

    def select_image(self, resource: ImageResource) -> GenerationState:
        """Accept a new image; invalid media types are reported, not stored."""
        if self._status is GenerationStatus.LOADING:
            return self.state
        try:
            validate_media_type(resource.mime_type)
        except ValidationError as exc:
            self._fail(str(exc))
            return self.state

        self._image = resource
        self._prompt = ""
        self._error = None
        self._status = GenerationStatus.IDLE
        return self.state

    def clear_image(self) -> GenerationState:
        if self._status is GenerationStatus.LOADING:
            return self.state
        self._image = None
        self._prompt = ""
        self._error = None
        self._status = GenerationStatus.IDLE
        return self.state

    async def generate(self) -> GenerationState:
        """Run encode -> send -> handle for the selected image."""
        if self._status is GenerationStatus.LOADING:
            logger.debug("Ignoring generate trigger while a request is in flight")
            return self.state
        if self._image is None:
            self._prompt = ""
            self._fail(MISSING_IMAGE_MESSAGE)
            return self.state

        resource = self._image
        self._status = GenerationStatus.LOADING
        self._prompt = ""
        self._error = None
        try:
            try:
                payload = await self.encoder(resource)
            except ReadError as exc:
                logger.warning("Failed to read image %s: %s", resource.name, exc)
                self._image = None
                self._fail(READ_FAILURE_MESSAGE)
                return self.state

            result = await self.client.generate(payload)
        except asyncio.CancelledError:
            logger.warning("Generation for %s was cancelled", resource.name)
            self._fail(CANCELLED_MESSAGE)
            raise
        except BaseException:
            self._fail(UNKNOWN_FAILURE_MESSAGE)
            raise

        if result.error is not None:
            self._fail(f"Failed to generate prompt: {result.error}")
            return self.state

        self._prompt = result.prompt or ""
        self._status = GenerationStatus.SUCCESS
        self.history.append(HistoryEntry(prompt=self._prompt, timestamp=self.clock()))
        return self.state

    def select_history_entry(self, index: int) -> GenerationState:
        """Display a past prompt without re-running the pipeline."""
        if self._status is GenerationStatus.LOADING:
            return self.state
        entry = self.history.entries[index]
        self._prompt = entry.prompt
        self._error = None
        self._status = GenerationStatus.SUCCESS
        return self.state

    def clear_history(self) -> GenerationState:
        self.history.clear()
        return self.state
