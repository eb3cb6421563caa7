import asyncio
import threading
from typing import Any

from loguru import logger
import pyttsx3

from ..core.audio_data import VoicePreference
from ..core.errors import LocalSynthesisFailure
from .voices import VoiceInfo, select_voice


def _normalize_language(language: Any) -> str:
    # espeak reports languages as bytes with a leading priority byte, e.g. b"\x05en-us"
    if isinstance(language, bytes):
        language = language.decode("utf-8", errors="ignore")
    return "".join(ch for ch in str(language) if ch.isprintable()).replace("_", "-").strip()


def _voice_info(voice: Any) -> VoiceInfo:
    languages = tuple(
        normalized for normalized in (_normalize_language(lang) for lang in getattr(voice, "languages", []) or [])
        if normalized
    )
    return VoiceInfo(
        id=str(voice.id),
        name=str(getattr(voice, "name", "") or voice.id),
        languages=languages,
        gender=getattr(voice, "gender", None) or None,
    )


class Pyttsx3Synthesizer:
    """On-device speech using the platform engine (SAPI5, NSSpeechSynthesizer or espeak) via pyttsx3.

    The engine blocks while speaking, so each utterance runs in a worker thread.
    Utterances are serialized; ``cancel_all`` interrupts the one in progress.
    """

    def __init__(self, rate: int | None = None) -> None:
        self.rate = rate
        self._engine: Any = None
        self._speak_lock = threading.Lock()

    def _get_engine(self) -> Any:
        if self._engine is None:
            try:
                self._engine = pyttsx3.init()
            except Exception as e:
                raise LocalSynthesisFailure(f"Local speech engine is not available: {e}") from e
            if self.rate is not None:
                self._engine.setProperty("rate", self.rate)
            logger.info("Pyttsx3Synthesizer: Local speech engine initialized.")
        return self._engine

    def list_voices(self) -> list[VoiceInfo]:
        """Return the voices installed on this platform."""
        engine = self._get_engine()
        return [_voice_info(voice) for voice in engine.getProperty("voices") or []]

    async def speak(self, text: str, language: str, voice: VoicePreference) -> None:
        """
        Speak ``text`` and return once the engine finishes.

        Raises:
            LocalSynthesisFailure: If the engine cannot be started or errors mid-utterance
        """
        await asyncio.to_thread(self._speak_blocking, text, language, voice)

    def _speak_blocking(self, text: str, language: str, voice: VoicePreference) -> None:
        with self._speak_lock:
            engine = self._get_engine()
            try:
                selected = select_voice(self.list_voices(), language, voice)
                if selected is not None:
                    engine.setProperty("voice", selected.id)
                    logger.debug(f"Pyttsx3Synthesizer: Using voice '{selected.name}' for {language}/{voice}.")
                else:
                    logger.debug(f"Pyttsx3Synthesizer: No voice for {language}, using platform default.")
                engine.say(text)
                engine.runAndWait()
            except Exception as e:
                raise LocalSynthesisFailure(f"Local speech failed: {e}") from e

    def cancel_all(self) -> None:
        """Interrupt any utterance in progress. Never raises."""
        if self._engine is None:
            return
        try:
            self._engine.stop()
        except Exception as e:
            logger.error(f"Pyttsx3Synthesizer: Error cancelling speech: {e}")


class UnsupportedLocalSynthesizer:
    """Stand-in for platforms with no on-device speech; every utterance fails."""

    async def speak(self, text: str, language: str, voice: VoicePreference) -> None:
        raise LocalSynthesisFailure("Local speech is not supported on this platform.")

    def cancel_all(self) -> None:
        pass
