"""Error taxonomy for the prompt generation pipeline."""

from __future__ import annotations

from typing import Optional


class PromptCrafterError(Exception):
    """Base class for all classified failures."""


class ValidationError(PromptCrafterError):
    """User input was rejected before reaching the codec."""


class ReadError(PromptCrafterError):
    """Image bytes could not be read to completion."""


class GenerationError(PromptCrafterError):
    """Failure reported by the generation client."""


class NetworkError(GenerationError):
    """The proxy was unreachable or its response could not be parsed."""


class ServerError(GenerationError):
    """The proxy answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(PromptCrafterError):
    """Deployment problem, e.g. the server credential is missing."""


class PersistenceError(PromptCrafterError):
    """History storage could not be read or written."""
