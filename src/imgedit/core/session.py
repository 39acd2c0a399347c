"""
Editing session state machine.

EditSession owns the only mutable state in imgedit: the selected file, its
encoding, the prompt, the last edited image, the current phase, and the error
message shown to the user. The UI calls the on_* methods and renders the
read-only SessionState snapshot.

Each asynchronous operation (file read, edit request) carries a token. A
completion whose token is no longer the latest of its kind is stale and is
dropped without touching the state.
"""

import contextlib
import mimetypes
import os
import tempfile
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from imgedit.core.encoding import EditRequest, EncodedImage, SelectedFile, encode_file
from imgedit.core.providers.base import ImageEditProvider
from imgedit.core.providers.gemini import GeminiEditClient
from imgedit.logging_config import get_logger
from imgedit.utils.exceptions import ImgeditError, PreconditionError

logger = get_logger(__name__)

READ_ERROR_MESSAGE = "Could not read image file."
PRECONDITION_ERROR_MESSAGE = "Please upload an image and enter a prompt."
GENERATE_ERROR_MESSAGE = (
    "Failed to generate image. Please check your API key and network connection."
)

Encoder = Callable[[SelectedFile], Awaitable[EncodedImage]]


class Phase(str, Enum):
    """Lifecycle stage of the session. Errors do not have a phase of their own."""

    IDLE = "idle"
    READING_FILE = "reading_file"
    GENERATING = "generating"


_BUSY_PHASES = (Phase.READING_FILE, Phase.GENERATING)


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of an EditSession."""

    original_file: SelectedFile | None = None
    original_image: EncodedImage | None = None
    # Path the UI can show for the selected file until the encoding is ready
    original_preview: str | None = None
    generated_image: EncodedImage | None = None
    prompt: str = ""
    phase: Phase = Phase.IDLE
    error_message: str | None = None

    @property
    def is_busy(self) -> bool:
        return self.phase in _BUSY_PHASES


def _log_failure(operation: str, exc: BaseException) -> None:
    if isinstance(exc, ImgeditError):
        logger.warning("%s failed (%s): %s", operation, type(exc).__name__, exc)
    else:
        logger.exception("%s failed with an unexpected error", operation)


class EditSession:
    """State machine driving one user's upload → prompt → edit cycle."""

    def __init__(
        self,
        provider: ImageEditProvider | None = None,
        encoder: Encoder | None = None,
    ) -> None:
        """
        Args:
            provider: Edit provider; defaults to GeminiEditClient with the global config
            encoder: Coroutine turning a SelectedFile into an EncodedImage;
                defaults to encode_file
        """
        self._provider = provider or GeminiEditClient()
        self._encoder = encoder or encode_file
        self._state = SessionState()
        self._read_token = 0
        self._generate_token = 0
        # Temp file backing original_preview when the selection came in as bytes
        self._owned_preview: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def snapshot(self) -> SessionState:
        return self._state

    def can_submit(self) -> bool:
        """True when an encoded image and a non-blank prompt exist and nothing is in flight."""
        s = self._state
        return s.original_image is not None and bool(s.prompt.strip()) and not s.is_busy

    def on_prompt_changed(self, text: str) -> None:
        self._state = replace(self._state, prompt=text)

    async def on_file_selected(self, selected: SelectedFile) -> None:
        """
        Record a newly selected file and encode it.

        Clears the previous edit result and error, supersedes any outstanding
        read or edit, and settles back to IDLE. A failed read leaves
        original_image empty and sets error_message.
        """
        self._read_token += 1
        token = self._read_token
        # The edit result is cleared below, so an edit still in flight is stale too
        self._generate_token += 1

        self._release_preview()
        try:
            preview = self._create_preview(selected)
        except OSError as e:
            _log_failure("Creating preview", e)
            self._release_preview()
            self._state = replace(
                self._state,
                original_file=selected,
                original_image=None,
                original_preview=None,
                generated_image=None,
                error_message=READ_ERROR_MESSAGE,
                phase=Phase.IDLE,
            )
            return

        self._state = replace(
            self._state,
            original_file=selected,
            original_preview=preview,
            generated_image=None,
            error_message=None,
            phase=Phase.READING_FILE,
        )
        logger.info("File selected %r", selected)

        try:
            image = await self._encoder(selected)
        except Exception as e:
            if token != self._read_token:
                logger.debug("Dropping stale read failure token=%d", token)
                return
            _log_failure("Reading image", e)
            self._release_preview()
            self._state = replace(
                self._state,
                original_image=None,
                original_preview=None,
                error_message=READ_ERROR_MESSAGE,
                phase=Phase.IDLE,
            )
            return

        if token != self._read_token:
            logger.debug("Dropping stale read result token=%d", token)
            return
        self._state = replace(self._state, original_image=image, phase=Phase.IDLE)

    async def on_submit(self) -> None:
        """
        Send the current image and prompt for editing.

        Ignored while a read or edit is in flight. Without an encoded image or
        with a blank prompt, sets error_message and sends nothing.
        """
        if self._state.is_busy:
            logger.debug("Submit ignored while %s", self._state.phase.value)
            return

        try:
            if self._state.original_image is None:
                raise PreconditionError("No image has been loaded", field="image")
            request = EditRequest(image=self._state.original_image, prompt=self._state.prompt)
        except PreconditionError as e:
            logger.info("Submit rejected: %s (field: %s)", e, e.field)
            self._state = replace(self._state, error_message=PRECONDITION_ERROR_MESSAGE)
            return

        self._generate_token += 1
        token = self._generate_token
        self._state = replace(
            self._state,
            error_message=None,
            generated_image=None,
            phase=Phase.GENERATING,
        )

        try:
            result = await self._provider.submit_edit(request.image, request.prompt)
        except Exception as e:
            if token != self._generate_token:
                logger.debug("Dropping stale edit failure token=%d", token)
                return
            _log_failure("Edit request", e)
            self._state = replace(
                self._state, error_message=GENERATE_ERROR_MESSAGE, phase=Phase.IDLE
            )
            return

        if token != self._generate_token:
            logger.debug("Dropping stale edit result token=%d", token)
            return
        self._state = replace(self._state, generated_image=result, phase=Phase.IDLE)

    def close(self) -> None:
        """Release the preview resource. The session should not be used afterwards."""
        self._release_preview()
        self._state = replace(self._state, original_preview=None)

    def _create_preview(self, selected: SelectedFile) -> str | None:
        if selected.path is not None:
            return str(selected.path)
        if not selected.content:
            return None
        suffix = Path(selected.name).suffix
        if not suffix and selected.declared_type:
            suffix = mimetypes.guess_extension(selected.declared_type) or ""
        fd, path = tempfile.mkstemp(suffix=suffix, prefix="imgedit_preview_")
        self._owned_preview = path
        with os.fdopen(fd, "wb") as f:
            f.write(selected.content)
        return path

    def _release_preview(self) -> None:
        if self._owned_preview is None:
            return
        with contextlib.suppress(OSError):
            Path(self._owned_preview).unlink(missing_ok=True)
        logger.debug("Released preview %s", self._owned_preview)
        self._owned_preview = None
