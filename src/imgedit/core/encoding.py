"""
Image encoding for imgedit.

This module turns a user-selected file into an EncodedImage (base64 payload plus
media type) ready to be sent to the image service, and parses data URLs back into
EncodedImage values.
"""

import asyncio
import base64
import binascii
import io
import mimetypes
import re
import time
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from imgedit.logging_config import get_logger
from imgedit.utils.exceptions import DecodeError, PreconditionError

logger = get_logger(__name__)

# Media types offered by the upload widget
SUPPORTED_MEDIA_TYPES = ("image/png", "image/jpeg", "image/webp")

_MEDIA_TYPE_RE = re.compile(r"^[A-Za-z0-9!#$&^_.+-]+/[A-Za-z0-9!#$&^_.+-]+$")
_MEDIA_TYPE_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


def _normalize_media_type(media_type: str | None) -> str | None:
    """Lowercase, drop parameters (';charset=...') and map aliases. None if not a MIME type."""
    if not media_type:
        return None
    s = media_type.split(";", 1)[0].strip().lower()
    s = _MEDIA_TYPE_ALIASES.get(s, s)
    return s if _MEDIA_TYPE_RE.match(s) else None


@dataclass(frozen=True)
class EncodedImage:
    """Transport-ready image: base64 payload and its media type. Immutable."""

    data: str
    media_type: str

    def __post_init__(self) -> None:
        if not isinstance(self.media_type, str) or not _MEDIA_TYPE_RE.match(self.media_type):
            raise DecodeError(f"Invalid media type: {self.media_type!r}")
        if not self.data:
            raise DecodeError("Image data is empty")
        try:
            base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Image data is not valid base64: {e}") from e

    @classmethod
    def from_bytes(cls, raw: bytes, media_type: str) -> "EncodedImage":
        """Encode raw bytes with the given media type."""
        return cls(data=base64.b64encode(raw).decode("ascii"), media_type=media_type)

    def to_bytes(self) -> bytes:
        """Decoded image bytes."""
        return base64.b64decode(self.data)

    def to_data_url(self) -> str:
        """Return a data URL (data:<type>;base64,<data>) for embedding or display."""
        return f"data:{self.media_type};base64,{self.data}"

    def to_pil(self) -> Image.Image:
        """
        Decode into a PIL Image for display.

        Raises:
            DecodeError: If the bytes are not an image Pillow can open
        """
        try:
            image = Image.open(io.BytesIO(self.to_bytes()))
            image.load()
            return image
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeError(f"Failed to open image: {e}") from e

    def __repr__(self) -> str:
        return f"EncodedImage(media_type={self.media_type!r}, data=<{len(self.data)} chars>)"


@dataclass(frozen=True)
class EditRequest:
    """An encoded image plus a non-empty, trimmed prompt. Never partially built."""

    image: EncodedImage
    prompt: str

    def __post_init__(self) -> None:
        if not isinstance(self.image, EncodedImage):
            raise PreconditionError("An image is required", field="image")
        prompt = (self.prompt or "").strip()
        if not prompt:
            raise PreconditionError("Prompt cannot be empty", field="prompt")
        object.__setattr__(self, "prompt", prompt)


@dataclass(frozen=True)
class SelectedFile:
    """
    Opaque handle for a user-selected file.

    Exactly one of ``path`` or ``content`` is set. ``declared_type`` is the media
    type reported by whatever picked the file (browser, upload widget), if any.
    """

    path: Path | None = None
    content: bytes | None = None
    declared_type: str | None = None
    name: str = ""

    @classmethod
    def from_path(cls, path: str | Path, declared_type: str | None = None) -> "SelectedFile":
        p = Path(path)
        return cls(path=p, declared_type=declared_type, name=p.name)

    @classmethod
    def from_bytes(
        cls, content: bytes, declared_type: str | None = None, name: str = ""
    ) -> "SelectedFile":
        return cls(content=content, declared_type=declared_type, name=name)

    def __repr__(self) -> str:
        size = f"{len(self.content)} bytes" if self.content is not None else str(self.path)
        return f"SelectedFile(name={self.name!r}, declared_type={self.declared_type!r}, {size})"


def _sniff_media_type(data: bytes) -> str | None:
    """Infer media type from magic bytes. Returns e.g. 'image/png' or None."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return None


def _pillow_media_type(data: bytes) -> str | None:
    """Ask Pillow to identify the image; None if it cannot."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError):
        return None
    return Image.MIME.get(fmt) if fmt else None


def _image_media_type(media_type: str | None) -> str | None:
    """Normalized media type if it is image/*, else None (e.g. application/octet-stream)."""
    normalized = _normalize_media_type(media_type)
    return normalized if normalized and normalized.startswith("image/") else None


def resolve_media_type(data: bytes, declared_type: str | None = None, name: str = "") -> str:
    """
    Determine the media type of image bytes.

    Order: declared type, magic bytes, Pillow identification, filename suffix.
    Declared and suffix-derived types count only when they are image/*, so a
    generic upload type such as application/octet-stream falls through to sniffing.

    Raises:
        DecodeError: If no media type can be determined
    """
    media_type = _image_media_type(declared_type)
    if media_type:
        return media_type
    media_type = _sniff_media_type(data) or _pillow_media_type(data)
    if media_type:
        return media_type
    if name:
        guessed, _ = mimetypes.guess_type(name)
        media_type = _image_media_type(guessed)
        if media_type:
            return media_type
    raise DecodeError("Could not determine MIME type", source=name)


def parse_data_url(data_url: str) -> EncodedImage:
    """
    Split a data URL (data:image/png;base64,xxxx) into an EncodedImage.

    Raises:
        DecodeError: If the separator is missing, the header has no media type,
            or the payload is not valid base64
    """
    header, sep, payload = data_url.strip().partition(",")
    if not sep or not header or not payload:
        raise DecodeError("Invalid file format")
    match = re.match(r"^data:(.*?);", header)
    if not match or not match.group(1):
        raise DecodeError("Could not determine MIME type")
    return EncodedImage(data=payload, media_type=match.group(1))


def encode_bytes(data: bytes, declared_type: str | None = None, name: str = "") -> EncodedImage:
    """
    Encode raw image bytes into an EncodedImage.

    Raises:
        DecodeError: If data is empty or no media type can be determined
    """
    if not data:
        raise DecodeError("Image file is empty", source=name)
    media_type = resolve_media_type(data, declared_type, name)
    data_url = f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"
    return parse_data_url(data_url)


def _read_selected(selected: SelectedFile) -> bytes:
    if selected.content is not None:
        return selected.content
    if selected.path is None:
        raise DecodeError("No file was selected")
    try:
        return selected.path.read_bytes()
    except OSError as e:
        raise DecodeError(f"Could not read file: {e}", source=str(selected.path)) from e


async def encode_file(selected: SelectedFile) -> EncodedImage:
    """
    Read a selected file and encode it for transport.

    The read runs in a worker thread so the event loop is not blocked.

    Args:
        selected: The file the user picked

    Returns:
        EncodedImage with base64 data and media type

    Raises:
        DecodeError: If the file cannot be read, its media type cannot be
            determined, or the encoded payload is malformed
    """
    start_time = time.time()
    data = await asyncio.to_thread(_read_selected, selected)
    name = selected.name or (selected.path.name if selected.path else "")
    encoded = encode_bytes(data, selected.declared_type, name)
    logger.info(
        "Encoded image in %.2fs name=%s media_type=%s bytes=%d",
        time.time() - start_time,
        name or "<memory>",
        encoded.media_type,
        len(data),
    )
    return encoded
