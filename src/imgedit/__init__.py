"""
imgedit - prompt-driven image editing

A Python package for editing an uploaded image with a natural-language prompt
using a Gemini image model.

Library usage:
- EditSession drives the upload → prompt → edit cycle and exposes a read-only
  SessionState snapshot; GeminiEditClient can also be used on its own.
- Configuration can be passed per client (GeminiEditClient(config=my_config))
  or via the shared config: use get_config() / set_config().
- Logging: control verbosity with set_verbosity(0|1|2) or configure_logging(verbose_level, quiet);
  IMGEDIT_VERBOSITY env (0/1/2) is read when the UI starts.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("imgedit")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source in development)
    __version__ = "0.0.0.dev"

from imgedit.core.config import (
    DEFAULT_EDIT_MODEL,
    DEFAULT_GEMINI_BASE_URL,
    Config,
    get_config,
    set_config,
)
from imgedit.core.encoding import (
    EditRequest,
    EncodedImage,
    SelectedFile,
    encode_bytes,
    encode_file,
    parse_data_url,
)
from imgedit.core.providers import GeminiEditClient, ImageEditProvider
from imgedit.core.session import EditSession, Phase, SessionState
from imgedit.logging_config import configure_logging, set_verbosity
from imgedit.utils.exceptions import (
    ConfigurationError,
    DecodeError,
    ImgeditError,
    NoImageInResponse,
    PreconditionError,
    RequestTimeoutError,
    TransportError,
)

__all__ = [
    "configure_logging",
    "Config",
    "ConfigurationError",
    "DEFAULT_EDIT_MODEL",
    "DEFAULT_GEMINI_BASE_URL",
    "DecodeError",
    "EditRequest",
    "EditSession",
    "EncodedImage",
    "GeminiEditClient",
    "ImageEditProvider",
    "ImgeditError",
    "NoImageInResponse",
    "Phase",
    "PreconditionError",
    "RequestTimeoutError",
    "SelectedFile",
    "SessionState",
    "TransportError",
    "encode_bytes",
    "encode_file",
    "get_config",
    "parse_data_url",
    "set_config",
    "set_verbosity",
]
