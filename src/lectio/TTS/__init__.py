"""Text-to-Speech (TTS) synthesis components.

This module provides protocol-based interfaces for the two speech sources the
narration pipeline consumes, and factory functions to create them.

Classes:
    RemoteSynthesizerProtocol: Remote generator returning decoded audio
    LocalSynthesizerProtocol: On-device speech used as the fallback path

Functions:
    get_remote_synthesizer: Factory function to create remote synthesizers
    get_local_synthesizer: Factory function to create local synthesizers
"""

from typing import Protocol

from ..core.audio_data import DecodedAudio, VoicePreference
from .voices import VoiceInfo, locale_for, select_voice


class RemoteSynthesizerProtocol(Protocol):
    async def synthesize(self, text: str, voice: VoicePreference) -> DecodedAudio: ...
    async def aclose(self) -> None: ...


class LocalSynthesizerProtocol(Protocol):
    async def speak(self, text: str, language: str, voice: VoicePreference) -> None: ...
    def cancel_all(self) -> None: ...


# Factory function
def get_remote_synthesizer(
    backend: str = "edge",
    *,
    language: str = "pt",
    url: str | None = None,
    model: str = "tts-1",
    api_key: str | None = None,
) -> RemoteSynthesizerProtocol | None:
    """
    Factory function to get a remote synthesizer for the specified backend.

    Parameters:
        backend (str): The remote generator to use:
            - "edge": Microsoft Edge neural voices through edge-tts
            - "http": An OpenAI-style ``/v1/audio/speech`` endpoint at ``url``
            - "none": No remote generator; every session narrates locally
        language (str): Language code used to pick the Edge voice locale
        url (str | None): Endpoint for the "http" backend
        model (str): Model name sent to the "http" backend
        api_key (str | None): Bearer token for the "http" backend

    Returns:
        RemoteSynthesizerProtocol | None: The synthesizer, or None for "none"

    Raises:
        ValueError: If the backend is unknown or "http" is missing its URL
    """
    backend = backend.lower()
    if backend == "edge":
        from .edge_remote import EdgeSynthesizer

        return EdgeSynthesizer(language=language)
    elif backend == "http":
        if not url:
            raise ValueError("The http remote backend requires a URL.")
        from .http_remote import HTTPSynthesizer

        return HTTPSynthesizer(url=url, model=model, api_key=api_key)
    elif backend == "none":
        return None
    else:
        raise ValueError(f"Unsupported remote synthesizer backend: {backend}")


def get_local_synthesizer(backend: str = "pyttsx3") -> LocalSynthesizerProtocol:
    """
    Factory function to get an on-device synthesizer.

    Parameters:
        backend (str): "pyttsx3" for the platform speech engine, or "none" for
            platforms without one (every ``speak`` call fails)

    Raises:
        ValueError: If the specified backend is not supported
    """
    backend = backend.lower()
    if backend == "pyttsx3":
        from .local_speech import Pyttsx3Synthesizer

        return Pyttsx3Synthesizer()
    elif backend == "none":
        from .local_speech import UnsupportedLocalSynthesizer

        return UnsupportedLocalSynthesizer()
    else:
        raise ValueError(f"Unsupported local synthesizer backend: {backend}")


__all__ = [
    "LocalSynthesizerProtocol",
    "RemoteSynthesizerProtocol",
    "VoiceInfo",
    "get_local_synthesizer",
    "get_remote_synthesizer",
    "locale_for",
    "select_voice",
]
