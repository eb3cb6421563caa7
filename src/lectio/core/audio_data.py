"""Core audio data structures for the narration pipeline.

This module defines the decoded audio container passed between the remote
synthesizer, the chunk cache and the playback engine, plus the helpers that
turn encoded bytes into it.
"""

from dataclasses import dataclass
import io
from typing import Literal

import numpy as np
from numpy.typing import NDArray
import soundfile as sf

from .errors import RemoteSynthesisFailure

VoicePreference = Literal["male", "female"]


@dataclass(frozen=True)
class DecodedAudio:
    """Decoded, mono, float32 audio ready for playback.

    Args:
        samples: Audio samples as a one-dimensional float32 array
        sample_rate: Sample rate of ``samples`` in Hz
    """

    samples: NDArray[np.float32]
    sample_rate: int

    @property
    def duration(self) -> float:
        """Length of the audio in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    def __len__(self) -> int:
        return len(self.samples)


def decode_audio(data: bytes) -> DecodedAudio:
    """
    Decode an encoded audio payload (wav, ogg, flac, mp3) into ``DecodedAudio``.

    Multi-channel audio is mixed down to mono.

    Parameters:
        data: Encoded audio bytes as returned by a remote synthesizer

    Returns:
        DecodedAudio: The decoded samples and their sample rate

    Raises:
        RemoteSynthesisFailure: If the payload is empty or cannot be decoded
    """
    if not data:
        raise RemoteSynthesisFailure("No audio data returned")
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError) as e:
        raise RemoteSynthesisFailure(f"Failed to decode audio payload: {e}") from e

    mono = samples.mean(axis=1).astype(np.float32) if samples.shape[1] > 1 else samples[:, 0]
    if mono.size == 0:
        raise RemoteSynthesisFailure("Decoded audio payload is empty")
    return DecodedAudio(samples=np.ascontiguousarray(mono), sample_rate=int(sample_rate))
