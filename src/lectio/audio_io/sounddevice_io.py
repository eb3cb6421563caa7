import asyncio
from collections.abc import Callable
import threading
from typing import Any

from loguru import logger
import numpy as np
from numpy.typing import NDArray
import sounddevice as sd  # type: ignore

from ..core.audio_data import DecodedAudio
from ..core.errors import PlaybackDeviceFailure
from .playback_handle import PlaybackHandle


class SoundDevicePlayback:
    """Audio output implementation using sounddevice.

    One ``sd.OutputStream`` is kept open for the whole narration session. Its
    callback drains the active ``PlaybackHandle`` and writes silence when no
    buffer is queued, so consecutive chunks play without reopening the device.
    A buffer at a different sample rate reopens the stream at that rate.
    """

    SAMPLE_RATE: int = 24000  # Initial device sample rate; the stream follows each buffer's rate

    def __init__(self, sample_rate: int | None = None, device: int | str | None = None) -> None:
        """Initialize the sounddevice playback engine.

        Args:
            sample_rate: Rate the stream is first opened at in Hz (default: 24000)
            device: sounddevice output device identifier (default: system default)
        """
        self.sample_rate = self.SAMPLE_RATE if sample_rate is None else sample_rate
        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        self.device = device

        self._stream: sd.OutputStream | None = None
        self._active: PlaybackHandle | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Open the output stream, or resume it if it was stopped.

        Raises:
            PlaybackDeviceFailure: If there's an issue with the audio hardware
        """
        try:
            if self._stream is None:
                self._stream = sd.OutputStream(
                    samplerate=self.sample_rate,
                    channels=1,
                    dtype="float32",
                    device=self.device,
                    callback=self._stream_callback,
                )
            if self._stream.stopped:
                logger.debug("SoundDevicePlayback: Resuming suspended output stream.")
                self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise PlaybackDeviceFailure(f"Failed to open audio output stream: {e}") from e

    def play_buffer(self, audio: DecodedAudio, on_ended: Callable[[], None]) -> PlaybackHandle:
        """Queue ``audio`` for playback and return its handle.

        Parameters:
            audio: The decoded buffer to play
            on_ended: Called on the event loop once the buffer has fully played

        Raises:
            PlaybackDeviceFailure: If the stream is not open or the buffer is empty
        """
        if self._stream is None or not self._stream.active:
            raise PlaybackDeviceFailure("Audio output stream is not open")
        if len(audio) == 0:
            raise PlaybackDeviceFailure("Refusing to play an empty buffer")
        if audio.sample_rate != self.sample_rate:
            self._reopen(audio.sample_rate)

        handle = PlaybackHandle(audio.samples, on_ended, asyncio.get_running_loop())
        with self._lock:
            if self._active is not None:
                self._active.cancel()
            self._active = handle
        logger.debug(f"Playing audio with sample rate: {self.sample_rate} Hz, length: {len(audio)} samples")
        return handle

    def _reopen(self, sample_rate: int) -> None:
        """Replace the output stream with one running at ``sample_rate``.

        Raises:
            PlaybackDeviceFailure: If the new stream cannot be opened
        """
        logger.debug(f"SoundDevicePlayback: Reopening output stream at {sample_rate} Hz (was {self.sample_rate} Hz).")
        self.close()
        self.sample_rate = sample_rate
        self.open()

    def _stream_callback(
        self, outdata: NDArray[np.float32], frames: int, time: dict[str, Any], status: sd.CallbackFlags
    ) -> None:
        if status:
            logger.debug(f"Audio callback status: {status}")

        outdata.fill(0)
        with self._lock:
            handle = self._active
            if handle is None:
                return
            chunk = handle.read(frames)
            outdata[: len(chunk), 0] = chunk
            if handle.exhausted:
                self._active = None

        if handle.exhausted:
            handle.finish()

    def stop(self, handle: PlaybackHandle | None) -> None:
        """Immediately silence ``handle``. Safe if it already ended."""
        if handle is None:
            return
        handle.cancel()
        with self._lock:
            if self._active is handle:
                self._active = None

    def close(self) -> None:
        """Stop and release the output stream. Idempotent."""
        with self._lock:
            if self._active is not None:
                self._active.cancel()
                self._active = None
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
            except Exception as e:
                logger.error(f"Error stopping output stream: {e}")
            finally:
                self._stream = None
