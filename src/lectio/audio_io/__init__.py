"""Audio output components.

This package provides an abstraction layer for the audio output device,
allowing the Narrator to work with different playback backends interchangeably.

Classes:
    PlaybackProtocol: Interface for opening a device and playing one buffer at a time
    PlaybackHandle: A single buffer queued on a device
    SoundDevicePlayback: Implementation using the sounddevice library
    NullPlayback: Headless implementation that only keeps time

Functions:
    get_audio_system: Factory function to create playback instances
"""

from collections.abc import Callable
from typing import Protocol

from ..core.audio_data import DecodedAudio
from .playback_handle import PlaybackHandle


class PlaybackProtocol(Protocol):
    def open(self) -> None: ...
    def play_buffer(self, audio: DecodedAudio, on_ended: Callable[[], None]) -> PlaybackHandle: ...
    def stop(self, handle: PlaybackHandle | None) -> None: ...
    def close(self) -> None: ...


# Factory function
def get_audio_system(backend_type: str = "sounddevice", sample_rate: int = 24000) -> PlaybackProtocol:
    """
    Factory function to get an audio output system based on the specified backend type.

    Parameters:
        backend_type (str): The type of audio backend to use:
            - "sounddevice": Uses the sounddevice library for local playback
            - "null": Headless playback that waits for each buffer's duration
        sample_rate (int): Initial device sample rate in Hz; the stream follows each buffer's rate

    Returns:
        PlaybackProtocol: An instance of the requested audio output system

    Raises:
        ValueError: If the specified backend type is not supported
    """
    if backend_type == "sounddevice":
        from .sounddevice_io import SoundDevicePlayback

        return SoundDevicePlayback(sample_rate=sample_rate)
    elif backend_type == "null":
        from .null_io import NullPlayback

        return NullPlayback()
    else:
        raise ValueError(f"Unsupported audio backend type: {backend_type}")


__all__ = [
    "PlaybackHandle",
    "PlaybackProtocol",
    "get_audio_system",
]
