"""Image validation and base64 transport encoding."""

from __future__ import annotations

import asyncio
import base64
import binascii
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from modules.errors import ReadError, ValidationError

ALLOWED_MIME_TYPES = ("image/png", "image/jpeg", "image/webp")
INVALID_TYPE_MESSAGE = "Invalid file type. Please upload a PNG, JPG, or WEBP file."

_SUFFIX_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}


@dataclass(frozen=True, slots=True)
class ImageResource:
    """A user-selected image held in memory for one generation attempt."""

    name: str
    mime_type: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageResource":
        """Build a resource whose declared type follows the file suffix."""
        file_path = Path(path)
        mime_type = _SUFFIX_MIME_TYPES.get(file_path.suffix.lower(), "application/octet-stream")
        return cls(name=file_path.name, mime_type=mime_type, path=file_path)

    def read_bytes(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.path is None:
            raise ReadError(f"Image resource '{self.name}' has no byte source.")
        try:
            return self.path.read_bytes()
        except OSError as exc:
            raise ReadError(f"Could not read '{self.name}': {exc}") from exc


@dataclass(frozen=True, slots=True)
class EncodedPayload:
    """Base64 text of an image plus its media type."""

    data: str
    mime_type: str


def validate_media_type(mime_type: str) -> str:
    """Return the media type when allowed, otherwise raise ValidationError."""
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)
    return mime_type


async def encode(resource: ImageResource) -> EncodedPayload:
    """Read the resource off the event loop and base64-encode its bytes.

    The media type is not re-validated here; callers run
    ``validate_media_type`` when the image is selected.
    """
    raw = await asyncio.to_thread(resource.read_bytes)
    if not raw:
        raise ReadError(f"Image resource '{resource.name}' is empty.")
    return EncodedPayload(
        data=base64.b64encode(raw).decode("ascii"),
        mime_type=resource.mime_type,
    )


def decode(payload: EncodedPayload | str) -> bytes:
    """Return the original bytes; raises ValueError on malformed base64."""
    text = payload.data if isinstance(payload, EncodedPayload) else payload
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 image data: {exc}") from exc
