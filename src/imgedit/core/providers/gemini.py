"""
Gemini image edit provider.

Handles HTTP communication with the Gemini generateContent API: sends one
image plus an edit prompt and returns the first image in the response.
"""

import asyncio
import json
import time
from typing import Any

import requests

from imgedit.core.config import Config, get_config
from imgedit.core.encoding import EditRequest, EncodedImage
from imgedit.logging_config import get_logger, log_prompt
from imgedit.utils.exceptions import (
    DecodeError,
    NoImageInResponse,
    RequestTimeoutError,
    TransportError,
)

logger = get_logger(__name__)

_DEBUG_TRUNCATE_THRESHOLD = 200
_DEBUG_NEVER_TRUNCATE_KEYS = frozenset({"text", "message"})


def _truncate_image_data_for_log(obj: Any, parent_key: str | None = None) -> Any:
    """Recursively replace long base64 strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: _truncate_image_data_for_log(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_truncate_image_data_for_log(v, None) for v in obj]
    if isinstance(obj, str) and len(obj) >= _DEBUG_TRUNCATE_THRESHOLD:
        if parent_key in _DEBUG_NEVER_TRUNCATE_KEYS:
            return obj
        return f"<string, {len(obj)} chars>"
    return obj


def extract_first_image(result: dict[str, Any]) -> EncodedImage:
    """
    Return the first inline image among the first candidate's parts.

    Text parts before or after the image are ignored, as are parts that are
    not JSON objects.

    Raises:
        NoImageInResponse: If there are no candidates, no inline-data part, or
            the response structure is unusable
    """
    candidates = result.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise NoImageInResponse("No image was generated in the response.", response=str(result))

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise NoImageInResponse(
            "The response candidate is not an object.", response=str(result)
        )

    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        parts = []

    for part in parts:
        if not isinstance(part, dict):
            logger.debug("Ignoring non-object part in response: %r", part)
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if inline:
            if not isinstance(inline, dict):
                raise NoImageInResponse(
                    "The response contained an unusable image part.", response=str(result)
                )
            media_type = inline.get("mimeType") or inline.get("mime_type")
            data = inline.get("data")
            try:
                return EncodedImage(
                    data=data if isinstance(data, str) else "",
                    media_type=media_type if isinstance(media_type, str) else "",
                )
            except DecodeError as e:
                raise NoImageInResponse(
                    f"The response contained an unusable image: {e}", response=str(result)
                ) from e
        text = part.get("text")
        if isinstance(text, str) and text:
            logger.debug("Ignoring text part in response: %s", text[:200])

    finish_reason = candidate.get("finishReason", "")
    raise NoImageInResponse(
        "No image was generated in the response."
        + (f" (finish reason: {finish_reason})" if finish_reason else ""),
        response=str(result),
    )


class GeminiEditClient:
    """Image edit provider for the Gemini generateContent API. Stateless between calls."""

    def __init__(self, config: Config | None = None) -> None:
        # None means the global config, looked up on each call
        self._config = config

    @property
    def config(self) -> Config:
        return self._config or get_config()

    def _validate_config(self, config: Config) -> None:
        """Raise TransportError if the API key is missing."""
        if not config.api_key:
            raise TransportError(
                "Authentication failed: no API key configured. Set GEMINI_API_KEY.",
                status_code=401,
            )

    def _build_payload(self, request: EditRequest) -> dict[str, Any]:
        """Build generateContent payload: image part first, then the prompt."""
        return {
            "contents": [
                {
                    "parts": [
                        {
                            "inlineData": {
                                "mimeType": request.image.media_type,
                                "data": request.image.data,
                            }
                        },
                        {"text": request.prompt},
                    ]
                }
            ]
        }

    def _parse_response(self, response: requests.Response) -> EncodedImage:
        """Parse the JSON body and pull out the first image."""
        try:
            result = response.json()
        except ValueError as e:
            raise TransportError(
                f"Failed to parse API response as JSON: {str(e)}",
                status_code=response.status_code,
                response=response.text,
            ) from e
        if not isinstance(result, dict):
            raise TransportError(
                "Unexpected API response shape.",
                status_code=response.status_code,
                response=response.text,
            )
        return extract_first_image(result)

    def _do_request(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
        timeout: int,
        model: str,
        debug: bool,
    ) -> EncodedImage:
        """Perform HTTP POST and parse response. Maps status codes to exceptions."""
        logger.debug("API request url=%s model=%s timeout=%s", url, model, timeout)
        if debug:
            logger.info(
                "API request payload (image data truncated): %s",
                json.dumps(_truncate_image_data_for_log(payload), indent=2, default=str),
            )
        start_time = time.time()
        response = requests.post(url, headers=headers, json=payload, timeout=timeout)
        elapsed = time.time() - start_time
        logger.debug(
            "API response status=%s content_type=%s time=%.2fs",
            response.status_code,
            response.headers.get("content-type", ""),
            elapsed,
        )
        if debug:
            try:
                logger.info(
                    "API response (image data truncated): %s",
                    json.dumps(_truncate_image_data_for_log(response.json()), indent=2, default=str),
                )
            except ValueError:
                logger.info("API response (raw text): %s", response.text[:2000])

        if response.status_code in (401, 403):
            raise TransportError(
                "Authentication failed. Please check your API key.",
                status_code=response.status_code,
                response=response.text,
            )
        if response.status_code == 400:
            raise TransportError(
                f"The request was rejected by the service: {response.text}",
                status_code=400,
                response=response.text,
            )
        if response.status_code == 404:
            raise TransportError(
                f"Model not found or endpoint unavailable: {model}",
                status_code=404,
                response=response.text,
            )
        if response.status_code == 429:
            raise TransportError(
                "Rate limit exceeded. Please wait before making more requests.",
                status_code=429,
                response=response.text,
            )
        if response.status_code >= 500:
            raise TransportError(
                f"Image service error: {response.status_code}",
                status_code=response.status_code,
                response=response.text,
            )
        if response.status_code != 200:
            raise TransportError(
                f"API request failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
                response=response.text,
            )

        image = self._parse_response(response)
        logger.info(
            "Edited in %.1fs model=%s media_type=%s", elapsed, model, image.media_type
        )
        return image

    def edit(self, image: EncodedImage, prompt: str) -> EncodedImage:
        """
        Edit an image with a text prompt (blocking).

        Args:
            image: The encoded source image
            prompt: Natural-language description of the edit

        Returns:
            EncodedImage of the edited image

        Raises:
            PreconditionError: If prompt is empty or image is not an EncodedImage
            TransportError: If the key is missing or the request fails
            RequestTimeoutError: If the request times out
            NoImageInResponse: If the response carries no image
        """
        request = EditRequest(image=image, prompt=prompt)
        config = self.config
        self._validate_config(config)

        model = config.edit_model
        url = f"{config.base_url.rstrip('/')}/models/{model}:generateContent"
        headers = {
            "x-goog-api-key": config.api_key,
            "Content-Type": "application/json",
        }
        payload = self._build_payload(request)

        logger.info("Requesting edit model=%s media_type=%s", model, image.media_type)
        log_prompt(logger, "Prompt", request.prompt)

        timeout = config.request_timeout
        try:
            return self._do_request(url, headers, payload, timeout, model, config.debug_api)
        except requests.exceptions.Timeout as e:
            raise RequestTimeoutError(
                f"Request timed out after {timeout} seconds.", original_error=e
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(
                "Failed to connect to the image service. Please check your internet connection.",
                original_error=e,
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"Network error during API request: {str(e)}", original_error=e
            ) from e

    async def submit_edit(self, image: EncodedImage, prompt: str) -> EncodedImage:
        """Async form of edit(); the HTTP round-trip runs in a worker thread."""
        return await asyncio.to_thread(self.edit, image, prompt)
