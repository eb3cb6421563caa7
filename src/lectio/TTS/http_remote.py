import httpx
from loguru import logger

from ..core.audio_data import DecodedAudio, VoicePreference, decode_audio
from ..core.errors import RemoteSynthesisFailure

# Voices of OpenAI-style speech endpoints, by preference
DEFAULT_VOICES: dict[VoicePreference, str] = {"male": "onyx", "female": "nova"}


class HTTPSynthesizer:
    """Remote synthesizer that POSTs to an OpenAI-style ``/v1/audio/speech`` endpoint."""

    def __init__(
        self,
        url: str,
        model: str = "tts-1",
        api_key: str | None = None,
        voices: dict[VoicePreference, str] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.model = model
        self.voices = voices or DEFAULT_VOICES
        self.headers = {"Content-Type": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def synthesize(self, text: str, voice: VoicePreference) -> DecodedAudio:
        """
        Request speech for ``text`` as WAV and decode it.

        Raises:
            RemoteSynthesisFailure: On connection errors, timeouts, HTTP errors
                (including 429 quota responses) or undecodable audio
        """
        data = {
            "input": text,
            "model": self.model,
            "voice": self.voices[voice],
            "response_format": "wav",
        }
        try:
            response = await self._client.post(self.url, headers=self.headers, json=data)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise RemoteSynthesisFailure(f"Speech request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise RemoteSynthesisFailure(f"Speech endpoint returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RemoteSynthesisFailure(f"Speech request failed: {e}") from e

        logger.debug(f"HTTPSynthesizer: Received {len(response.content)} bytes for '{text[:20]}...'")
        return decode_audio(response.content)

    async def aclose(self) -> None:
        await self._client.aclose()
