"""
Image edit providers: protocol and the built-in Gemini implementation.
"""

from imgedit.core.providers.base import ImageEditProvider as ImageEditProvider
from imgedit.core.providers.gemini import GeminiEditClient as GeminiEditClient

__all__ = ["GeminiEditClient", "ImageEditProvider"]
