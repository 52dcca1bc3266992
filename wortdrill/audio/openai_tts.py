"""
OpenAI speech client.

Remote synthesizer for the audio fallback chain: posts a word to the
``/audio/speech`` endpoint and returns the MP3 body as base64. Failures
are raised as SynthesisError with a kind the chain reports verbatim.
"""

from __future__ import annotations

import base64

import httpx
from loguru import logger

from wortdrill.errors import SynthesisError, require_word

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAISpeechClient:
    """HTTP client for the OpenAI text-to-speech endpoint."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        model: str = "tts-1",
        voice: str = "alloy",
        timeout_seconds: float = 15.0,
    ):
        """
        Initialize the speech client.

        Args:
            api_key: OpenAI API key (synthesis fails with ``not_configured`` if None)
            base_url: API base URL
            model: TTS model name
            voice: Voice name
            timeout_seconds: Request timeout
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.voice = voice
        self.timeout_seconds = timeout_seconds
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def build_payload(self, word: str) -> dict:
        return {
            "model": self.model,
            "input": word,
            "voice": self.voice,
            "response_format": "mp3",
            "speed": 0.9,
        }

    async def synthesize(self, word: str) -> str:
        """
        Synthesize a pronunciation.

        Args:
            word: Text to speak

        Returns:
            Base64-encoded MP3 audio

        Raises:
            SynthesisError: kind is ``not_configured``, ``timeout``, ``quota`` or ``network``
        """
        word = require_word(word)
        if not self.is_configured:
            raise SynthesisError("OpenAI API key not configured", kind="not_configured")

        try:
            response = await self.client.post(
                f"{self.base_url}/audio/speech",
                json=self.build_payload(word),
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise SynthesisError(f"OpenAI TTS timed out: {e}", kind="timeout") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            kind = "quota" if status == 429 else "network"
            logger.error(f"OpenAI TTS error: {status}")
            raise SynthesisError(f"OpenAI TTS returned {status}", kind=kind) from e
        except httpx.RequestError as e:
            raise SynthesisError(f"OpenAI TTS request failed: {e}", kind="network") from e

        if not response.content:
            raise SynthesisError("OpenAI TTS returned empty audio", kind="network")

        logger.debug(f"Synthesized \"{word}\" ({len(response.content)} bytes)")
        return base64.b64encode(response.content).decode("ascii")
