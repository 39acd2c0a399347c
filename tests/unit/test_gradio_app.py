"""Unit tests for the Gradio UI (gradio_app)."""

import asyncio
import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from imgedit.core.encoding import EncodedImage, SelectedFile
from imgedit.core.session import (
    GENERATE_ERROR_MESSAGE,
    PRECONDITION_ERROR_MESSAGE,
    EditSession,
    Phase,
    SessionState,
)
from imgedit.ui import gradio_app
from imgedit.utils.exceptions import TransportError

_PNG_BUF = io.BytesIO()
Image.new("RGB", (6, 4), color=(10, 200, 10)).save(_PNG_BUF, format="PNG")
MINIMAL_PNG = _PNG_BUF.getvalue()
EDITED = EncodedImage.from_bytes(MINIMAL_PNG, "image/png")


class YieldingProvider:
    """Provider that suspends once before answering."""

    def __init__(self, result: EncodedImage | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def submit_edit(self, image: EncodedImage, prompt: str) -> EncodedImage:
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.result


async def _collect(agen) -> list[tuple]:
    return [outputs async for outputs in agen]


def _png_file(tmp_path: Path) -> Path:
    path = tmp_path / "upload.png"
    path.write_bytes(MINIMAL_PNG)
    return path


@pytest.mark.unit
class TestFormatStatus:
    def test_success(self) -> None:
        html = gradio_app._format_status("Done", "success")
        assert "Done" in html
        assert "#10b981" in html

    def test_error(self) -> None:
        html = gradio_app._format_status("Broken", "error")
        assert "Broken" in html
        assert "#ef4444" in html

    def test_info_is_default(self) -> None:
        assert "#3b82f6" in gradio_app._format_status("Working")

    def test_idle_is_empty(self) -> None:
        assert gradio_app._format_status("anything", "idle") == ""


@pytest.mark.unit
class TestStatusFor:
    def test_idle_empty(self) -> None:
        assert gradio_app._status_for(SessionState()) == ""

    def test_reading(self) -> None:
        assert "Reading image" in gradio_app._status_for(SessionState(phase=Phase.READING_FILE))

    def test_generating(self) -> None:
        html = gradio_app._status_for(SessionState(phase=Phase.GENERATING))
        assert "Generating edited image" in html

    def test_error(self) -> None:
        html = gradio_app._status_for(SessionState(error_message=GENERATE_ERROR_MESSAGE))
        assert GENERATE_ERROR_MESSAGE in html
        assert "#ef4444" in html

    def test_complete(self) -> None:
        html = gradio_app._status_for(SessionState(generated_image=EDITED))
        assert "Edit complete" in html


@pytest.mark.unit
class TestResultImage:
    def test_none_without_result(self) -> None:
        assert gradio_app._result_image(SessionState()) is None

    def test_decodes_result(self) -> None:
        img = gradio_app._result_image(SessionState(generated_image=EDITED))
        assert img is not None
        assert img.size == (6, 4)

    def test_undecodable_result_is_hidden(self) -> None:
        broken = EncodedImage.from_bytes(b"definitely not an image", "image/png")
        assert gradio_app._result_image(SessionState(generated_image=broken)) is None


@pytest.mark.unit
class TestFileSelectedHandler:
    @pytest.mark.asyncio
    async def test_reading_then_ready(self, tmp_path: Path) -> None:
        path = _png_file(tmp_path)
        session = EditSession(provider=YieldingProvider(EDITED))
        outputs = await _collect(gradio_app._file_selected_handler(str(path), session))

        assert len(outputs) == 2
        first, last = outputs
        assert first[0] is session
        assert "Reading image" in first[1]
        assert first[2]["interactive"] is False
        assert first[3]["interactive"] is False
        assert first[4] == str(path)

        assert last[1] == ""
        assert last[3]["interactive"] is True
        assert last[4] == str(path)
        assert last[5] is None
        assert session.state.original_image is not None

    @pytest.mark.asyncio
    async def test_unreadable_file_shows_error(self, tmp_path: Path) -> None:
        path = tmp_path / "blob"
        path.write_bytes(b"\x00\x01\x02")
        session = EditSession(provider=YieldingProvider(EDITED))
        outputs = await _collect(gradio_app._file_selected_handler(str(path), session))
        last = outputs[-1]
        assert "Could not read image file." in last[1]
        assert last[2]["interactive"] is False
        assert last[4] is None

    @pytest.mark.asyncio
    async def test_cleared_upload_renders_once(self) -> None:
        session = EditSession(provider=YieldingProvider(EDITED))
        outputs = await _collect(gradio_app._file_selected_handler(None, session))
        assert len(outputs) == 1
        assert outputs[0][0] is session

    @pytest.mark.asyncio
    async def test_creates_session_when_missing(self, tmp_path: Path) -> None:
        path = _png_file(tmp_path)
        outputs = await _collect(gradio_app._file_selected_handler(str(path), None))
        assert isinstance(outputs[-1][0], EditSession)


@pytest.mark.unit
class TestPromptChangeHandler:
    @pytest.mark.asyncio
    async def test_enables_button_when_ready(self, tmp_path: Path) -> None:
        session = EditSession(provider=YieldingProvider(EDITED))
        await session.on_file_selected(SelectedFile.from_path(_png_file(tmp_path)))
        returned, button = gradio_app._prompt_change_handler("add a hat", session)
        assert returned is session
        assert session.state.prompt == "add a hat"
        assert button["interactive"] is True

    @pytest.mark.asyncio
    async def test_blank_prompt_disables_button(self, tmp_path: Path) -> None:
        session = EditSession(provider=YieldingProvider(EDITED))
        await session.on_file_selected(SelectedFile.from_path(_png_file(tmp_path)))
        _, button = gradio_app._prompt_change_handler("   ", session)
        assert button["interactive"] is False

    def test_none_text_and_session(self) -> None:
        session, button = gradio_app._prompt_change_handler(None, None)  # type: ignore[arg-type]
        assert isinstance(session, EditSession)
        assert session.state.prompt == ""
        assert button["interactive"] is False


@pytest.mark.unit
class TestGenerateClickHandler:
    async def _ready(self, tmp_path: Path, provider: YieldingProvider) -> EditSession:
        session = EditSession(provider=provider)
        await session.on_file_selected(SelectedFile.from_path(_png_file(tmp_path)))
        session.on_prompt_changed("make it black and white")
        return session

    @pytest.mark.asyncio
    async def test_generating_then_result(self, tmp_path: Path) -> None:
        provider = YieldingProvider(EDITED)
        session = await self._ready(tmp_path, provider)
        outputs = await _collect(gradio_app._generate_click_handler(session))

        assert len(outputs) == 2
        first, last = outputs
        assert "Generating edited image" in first[1]
        assert first[2]["value"] == gradio_app.GENERATING_LABEL
        assert first[2]["interactive"] is False
        assert first[3]["interactive"] is False
        assert first[5] is None

        assert "Edit complete" in last[1]
        assert last[2]["value"] == gradio_app.GENERATE_LABEL
        assert last[2]["interactive"] is True
        assert isinstance(last[5], Image.Image)
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_failure_shows_error(self, tmp_path: Path) -> None:
        session = await self._ready(tmp_path, YieldingProvider(error=TransportError("boom", 500)))
        outputs = await _collect(gradio_app._generate_click_handler(session))
        last = outputs[-1]
        assert GENERATE_ERROR_MESSAGE in last[1]
        assert last[5] is None
        assert session.state.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_missing_input_renders_precondition_error(self) -> None:
        provider = YieldingProvider(EDITED)
        session = EditSession(provider=provider)
        outputs = await _collect(gradio_app._generate_click_handler(session))
        assert len(outputs) == 1
        assert PRECONDITION_ERROR_MESSAGE in outputs[0][1]
        assert provider.calls == 0


@pytest.mark.unit
class TestCloseSession:
    @pytest.mark.asyncio
    async def test_releases_preview(self) -> None:
        session = EditSession(provider=YieldingProvider(EDITED))
        await session.on_file_selected(SelectedFile.from_bytes(MINIMAL_PNG, "image/png"))
        preview = session.state.original_preview
        assert preview is not None and Path(preview).exists()
        gradio_app._close_session(session)
        assert not Path(preview).exists()

    def test_none_is_ignored(self) -> None:
        gradio_app._close_session(None)


@pytest.mark.unit
class TestBuildBlocks:
    def test_builds(self) -> None:
        import gradio as gr

        app = gradio_app._build_blocks()
        assert isinstance(app, gr.Blocks)


@pytest.mark.unit
class TestMain:
    def test_defaults(self) -> None:
        with patch.object(sys, "argv", ["imgedit-ui"]), patch.dict(
            "os.environ", {"IMGEDIT_UI_SHARE": "", "IMGEDIT_VERBOSITY": "0"}
        ), patch.object(gradio_app, "launch") as m:
            gradio_app.main()
        m.assert_called_once_with(server_name=None, server_port=None, share=False)

    def test_flags(self) -> None:
        argv = ["imgedit-ui", "--port", "9000", "--host", "0.0.0.0", "--share", "-vv"]
        with patch.object(sys, "argv", argv), patch.object(gradio_app, "launch") as m, patch.object(
            gradio_app, "configure_logging"
        ) as log_mock:
            gradio_app.main()
        m.assert_called_once_with(server_name="0.0.0.0", server_port=9000, share=True)
        log_mock.assert_called_once_with(verbose_level=2)

    def test_share_from_env(self) -> None:
        with patch.object(sys, "argv", ["imgedit-ui"]), patch.dict(
            "os.environ", {"IMGEDIT_UI_SHARE": "true"}
        ), patch.object(gradio_app, "launch") as m:
            gradio_app.main()
        assert m.call_args[1]["share"] is True


@pytest.mark.unit
class TestLaunch:
    def test_env_host_and_port(self) -> None:
        with patch.dict(
            "os.environ", {"IMGEDIT_UI_HOST": "0.0.0.0", "IMGEDIT_UI_PORT": "8123"}
        ), patch.object(gradio_app, "_build_blocks") as build:
            gradio_app.launch()
        build.return_value.launch.assert_called_once_with(
            server_name="0.0.0.0", server_port=8123, share=False, inbrowser=True
        )

    def test_invalid_port_env_falls_back(self) -> None:
        with patch.dict("os.environ", {"IMGEDIT_UI_PORT": "abc"}), patch.object(
            gradio_app, "_build_blocks"
        ) as build:
            gradio_app.launch(server_name="localhost")
        assert build.return_value.launch.call_args[1]["server_port"] == gradio_app.DEFAULT_UI_PORT
