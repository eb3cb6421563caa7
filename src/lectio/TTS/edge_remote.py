import asyncio
import io

import edge_tts
from loguru import logger

from ..core.audio_data import DecodedAudio, VoicePreference, decode_audio
from ..core.errors import RemoteSynthesisFailure
from .voices import locale_for

EDGE_VOICES: dict[str, dict[VoicePreference, str]] = {
    "pt-BR": {"male": "pt-BR-AntonioNeural", "female": "pt-BR-FranciscaNeural"},
    "en-US": {"male": "en-US-GuyNeural", "female": "en-US-JennyNeural"},
    "es-ES": {"male": "es-ES-AlvaroNeural", "female": "es-ES-ElviraNeural"},
}


class EdgeSynthesizer:
    """Remote synthesizer backed by Microsoft Edge neural voices (edge-tts)."""

    DEFAULT_LOCALE: str = "pt-BR"

    def __init__(self, language: str = "pt", timeout: float = 30.0) -> None:
        locale = locale_for(language)
        if locale not in EDGE_VOICES:
            logger.warning(f"EdgeSynthesizer: No voices configured for '{language}', using {self.DEFAULT_LOCALE}.")
            locale = self.DEFAULT_LOCALE
        self.voices = EDGE_VOICES[locale]
        self.timeout = timeout

    async def synthesize(self, text: str, voice: VoicePreference) -> DecodedAudio:
        """
        Synthesize ``text`` and return the decoded audio.

        Raises:
            RemoteSynthesisFailure: On network errors, timeouts or undecodable audio
        """
        voice_id = self.voices[voice]
        logger.debug(f"EdgeSynthesizer: Requesting '{text[:20]}...' with {voice_id}")
        try:
            payload = await asyncio.wait_for(self._collect(text, voice_id), timeout=self.timeout)
        except TimeoutError as e:
            raise RemoteSynthesisFailure(f"Edge TTS timed out after {self.timeout}s") from e
        except RemoteSynthesisFailure:
            raise
        except Exception as e:
            raise RemoteSynthesisFailure(f"Edge TTS request failed: {e}") from e
        return decode_audio(payload)

    async def _collect(self, text: str, voice_id: str) -> bytes:
        buffer = io.BytesIO()
        communicate = edge_tts.Communicate(text, voice_id)
        async for chunk in communicate.stream():
            if chunk["type"] == "audio":
                buffer.write(chunk["data"])
        return buffer.getvalue()

    async def aclose(self) -> None:
        # Each Communicate opens and closes its own websocket
        pass
