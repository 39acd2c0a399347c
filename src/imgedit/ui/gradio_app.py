"""
Gradio web UI for imgedit.

Single-page UI: upload an image, describe the edit, generate, view the result.
All state lives in a per-browser EditSession; handlers only forward user
actions to it and render its snapshot.
"""

import argparse
import asyncio
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import gradio as gr
from PIL import Image

from imgedit import (
    DecodeError,
    EditSession,
    Phase,
    SelectedFile,
    SessionState,
    __version__,
)
from imgedit.core.encoding import SUPPORTED_MEDIA_TYPES
from imgedit.logging_config import configure_logging, get_logger, get_verbosity_from_env

logger = get_logger(__name__)

# Default server port; overridable via IMGEDIT_UI_PORT
DEFAULT_UI_PORT = 7860
DEFAULT_UI_HOST = "127.0.0.1"

BASE_PAGE_TITLE = "imgedit – edit images with text prompts"
GENERATE_LABEL = "Generate Image"
GENERATING_LABEL = "Generating..."

UPLOAD_FILE_TYPES = [".png", ".jpg", ".jpeg", ".webp"]


def _format_status(message: str, status_type: str = "info") -> str:
    """
    Format a status message as a colored HTML box.

    Args:
        message: The status message text.
        status_type: One of "info", "success", "error", "idle".

    Returns:
        HTML-formatted status string ("" for idle).
    """
    if status_type == "success":
        icon, color, bg_color = "✅", "#10b981", "#d1fae5"
    elif status_type == "error":
        icon, color, bg_color = "❌", "#ef4444", "#fee2e2"
    elif status_type == "info":
        icon, color, bg_color = "ℹ️", "#3b82f6", "#dbeafe"
    else:
        return ""

    return f"""<div style="padding: 12px 16px; border-radius: 8px; background-color: {bg_color}; border-left: 4px solid {color}; margin: 8px 0;">
    <span style="font-size: 16px; margin-right: 8px;">{icon}</span>
    <span style="color: {color}; font-weight: 500;">{message}</span>
</div>"""


def _status_for(state: SessionState) -> str:
    if state.phase == Phase.READING_FILE:
        return _format_status("Reading image…", "info")
    if state.phase == Phase.GENERATING:
        return _format_status("Generating edited image…", "info")
    if state.error_message:
        return _format_status(state.error_message, "error")
    if state.generated_image is not None:
        return _format_status("Edit complete.", "success")
    return _format_status("", "idle")


def _result_image(state: SessionState) -> Image.Image | None:
    if state.generated_image is None:
        return None
    try:
        return state.generated_image.to_pil()
    except DecodeError as e:
        logger.warning("Edited image could not be displayed: %s", e)
        return None


def _render(session: EditSession) -> tuple[Any, ...]:
    """Outputs: session, status, generate button, prompt box, original preview, result."""
    state = session.state
    label = GENERATING_LABEL if state.phase == Phase.GENERATING else GENERATE_LABEL
    return (
        session,
        _status_for(state),
        gr.update(interactive=session.can_submit(), value=label),
        gr.update(interactive=not state.is_busy),
        state.original_preview,
        _result_image(state),
    )


async def _run_and_render(
    session: EditSession, action: Callable[[], Awaitable[None]]
) -> AsyncGenerator[tuple[Any, ...], None]:
    """Start action, render the in-flight state once, then render the settled state."""
    task = asyncio.create_task(action())
    # Let the action run up to its first suspension point
    await asyncio.sleep(0)
    yield _render(session)
    await task
    yield _render(session)


async def _file_selected_handler(
    path: str | None, session: EditSession | None
) -> AsyncGenerator[tuple[Any, ...], None]:
    session = session or EditSession()
    if not path:
        yield _render(session)
        return
    selected = SelectedFile.from_path(path)
    async for outputs in _run_and_render(session, lambda: session.on_file_selected(selected)):
        yield outputs


def _prompt_change_handler(text: str, session: EditSession | None) -> tuple[EditSession, Any]:
    session = session or EditSession()
    session.on_prompt_changed(text or "")
    return session, gr.update(interactive=session.can_submit())


async def _generate_click_handler(
    session: EditSession | None,
) -> AsyncGenerator[tuple[Any, ...], None]:
    session = session or EditSession()
    if not session.can_submit():
        # No-op while busy; sets the error message when image or prompt is missing
        await session.on_submit()
        yield _render(session)
        return
    async for outputs in _run_and_render(session, session.on_submit):
        yield outputs


def _close_session(session: EditSession | None) -> None:
    if session is not None:
        session.close()


def _build_blocks() -> gr.Blocks:
    """Build the Gradio Blocks UI."""
    with gr.Blocks(title=BASE_PAGE_TITLE) as app:
        gr.Markdown(
            "# imgedit\nEdit images with text prompts. "
            f"Accepted types: {', '.join(SUPPORTED_MEDIA_TYPES)}."
        )
        session_state = gr.State(value=None, delete_callback=_close_session)
        status_html = gr.HTML(value="", visible=True)

        with gr.Row():
            with gr.Column(scale=1):
                upload = gr.File(
                    label="1. Upload Image",
                    file_types=UPLOAD_FILE_TYPES,
                    type="filepath",
                )
                prompt_tb = gr.Textbox(
                    label="2. Describe Your Edit",
                    placeholder="e.g., Add a retro filter, make it black and white...",
                    lines=5,
                )
                generate_btn = gr.Button(GENERATE_LABEL, variant="primary", interactive=False)
            with gr.Column(scale=2):
                with gr.Row():
                    original_img = gr.Image(
                        label="Original", type="filepath", interactive=False
                    )
                    result_img = gr.Image(
                        label="Edited", type="pil", interactive=False, format="png"
                    )

        outputs = [session_state, status_html, generate_btn, prompt_tb, original_img, result_img]

        upload.change(
            fn=_file_selected_handler,
            inputs=[upload, session_state],
            outputs=outputs,
        )
        prompt_tb.change(
            fn=_prompt_change_handler,
            inputs=[prompt_tb, session_state],
            outputs=[session_state, generate_btn],
        )
        generate_btn.click(
            fn=_generate_click_handler,
            inputs=[session_state],
            outputs=outputs,
        )

    return app


def launch(
    server_name: str | None = None,
    server_port: int | None = None,
    share: bool = False,
) -> None:
    """
    Build the Gradio app and launch the server.

    Args:
        server_name: Host to bind (default: IMGEDIT_UI_HOST or 127.0.0.1).
        server_port: Port (default: IMGEDIT_UI_PORT or 7860).
        share: If True, create a public share link (e.g. gradio.live).
    """
    host = server_name or os.getenv("IMGEDIT_UI_HOST", DEFAULT_UI_HOST)
    port = server_port
    if port is None:
        try:
            port = int(os.getenv("IMGEDIT_UI_PORT", str(DEFAULT_UI_PORT)))
        except ValueError:
            port = DEFAULT_UI_PORT
    logger.info("imgedit ui is starting (v%s) on http://%s:%s", __version__, host, port)
    app = _build_blocks()
    app.launch(server_name=host, server_port=port, share=share, inbrowser=True)


def main() -> None:
    """Entry point for the imgedit-ui console script. Parses --port, --host, --share, -v."""
    parser = argparse.ArgumentParser(
        description="Launch the imgedit Gradio web UI.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help=f"Port to bind (default: IMGEDIT_UI_PORT or {DEFAULT_UI_PORT}).",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        metavar="HOST",
        help=f"Host to bind (default: IMGEDIT_UI_HOST or {DEFAULT_UI_HOST}). Use 0.0.0.0 for LAN.",
    )
    parser.add_argument(
        "--share",
        action="store_true",
        default=None,
        help="Create a public share link (e.g. gradio.live). Overrides IMGEDIT_UI_SHARE.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=None,
        help="Increase log verbosity (-v prompts, -vv debug). Overrides IMGEDIT_VERBOSITY.",
    )
    args = parser.parse_args()

    verbosity = args.verbose if args.verbose is not None else get_verbosity_from_env()
    configure_logging(verbose_level=verbosity)

    share_val = args.share
    if share_val is None:
        env_share = os.environ.get("IMGEDIT_UI_SHARE", "").lower()
        share_val = env_share in ("1", "true", "yes")
    launch(
        server_name=args.host,
        server_port=args.port,
        share=share_val,
    )


if __name__ == "__main__":
    main()
