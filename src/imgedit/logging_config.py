"""
Logging configuration for imgedit.

Logging is configured lazily so library users who never call set_verbosity or
configure_logging get no output unless they configure logging themselves.

Verbosity levels:
- 0 (default): INFO: file reads, edit requests and their timing
- 1 (info): INFO + prompt text
- 2 (verbose): DEBUG + prompt text: request URLs, ignored text parts, stale completions

IMGEDIT_VERBOSITY env (0/1/2) is read when the UI starts; -v flags override it.
"""

import logging
import os

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "imgedit"

# verbosity -> (root level, log prompt text)
_VERBOSITY_LEVELS: dict[int, tuple[int, bool]] = {
    0: (logging.INFO, False),
    1: (logging.INFO, True),
    2: (logging.DEBUG, True),
}

# Prompts longer than this are cut when logged
PROMPT_LOG_MAX = 50_000

_log_prompts: bool = False
_configured: bool = False


def _ensure_handler() -> logging.Logger:
    """Return the root imgedit logger, adding a stderr handler the first time."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(handler)
        _configured = True
    return root


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    Levels below 0 behave like 0 and above 2 like 2.
    """
    global _log_prompts
    root = _ensure_handler()
    clamped = min(max(level, 0), 2)
    log_level, _log_prompts = _VERBOSITY_LEVELS[clamped]
    root.setLevel(log_level)


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging for the UI or a library caller.

    quiet=True means WARNING and above only, with no prompt text.
    """
    global _log_prompts
    if quiet:
        _ensure_handler().setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def log_prompts() -> bool:
    """Return True if prompt text should be logged at INFO (verbosity 1 or 2)."""
    return _log_prompts


def log_prompt(logger: logging.Logger, label: str, prompt: str) -> None:
    """Log prompt text at INFO when verbosity allows it, truncated to PROMPT_LOG_MAX."""
    if not _log_prompts:
        return
    if len(prompt) > PROMPT_LOG_MAX:
        prompt = prompt[:PROMPT_LOG_MAX] + "..."
    logger.info("%s: %s", label, prompt)


def get_verbosity_from_env() -> int:
    """Read IMGEDIT_VERBOSITY (0, 1 or 2). Invalid or missing values return 0."""
    raw = os.environ.get("IMGEDIT_VERBOSITY", "0").strip()
    return int(raw) if raw in ("1", "2") else 0


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under imgedit (e.g. imgedit.core.session)."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "PROMPT_LOG_MAX",
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompt",
    "log_prompts",
    "set_verbosity",
]
