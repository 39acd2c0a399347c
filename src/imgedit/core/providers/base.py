"""
Provider protocol for image editing.

Defines the interface the editing session uses to reach an image service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from imgedit.core.encoding import EncodedImage


class ImageEditProvider(Protocol):
    """Protocol for image edit providers.

    Providers issue exactly one request per call, keep no state between calls,
    and return the first image the service produced.
    """

    async def submit_edit(self, image: EncodedImage, prompt: str) -> EncodedImage:
        """Edit ``image`` according to ``prompt``.

        May raise PreconditionError, NoImageInResponse, TransportError
        or RequestTimeoutError.
        """
        ...
