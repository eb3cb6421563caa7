"""Headless audio backend for environments without sound hardware."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from ..core.audio_data import DecodedAudio
from ..core.errors import PlaybackDeviceFailure
from .playback_handle import PlaybackHandle


class NullPlayback:
    """Playback backend that produces no sound but keeps each buffer's timing.

    ``time_scale`` multiplies every buffer's duration; 0 completes buffers on
    the next loop iteration.
    """

    def __init__(self, time_scale: float = 1.0) -> None:
        if time_scale < 0:
            raise ValueError("time_scale must be >= 0")
        self.time_scale = time_scale
        self.is_open = False
        self.open_count = 0
        self.played: list[DecodedAudio] = []
        self._timers: dict[PlaybackHandle, asyncio.TimerHandle] = {}

    def open(self) -> None:
        if not self.is_open:
            logger.warning("NullPlayback active: audio output is disabled.")
        self.is_open = True
        self.open_count += 1

    def play_buffer(self, audio: DecodedAudio, on_ended: Callable[[], None]) -> PlaybackHandle:
        if not self.is_open:
            raise PlaybackDeviceFailure("Audio output is not open")
        loop = asyncio.get_running_loop()
        handle = PlaybackHandle(audio.samples, on_ended, loop)
        self.played.append(audio)
        self._timers[handle] = loop.call_later(audio.duration * self.time_scale, self._complete, handle)
        return handle

    def _complete(self, handle: PlaybackHandle) -> None:
        self._timers.pop(handle, None)
        handle.position = len(handle.samples)
        handle.finish()

    def stop(self, handle: PlaybackHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        timer = self._timers.pop(handle, None)
        if timer is not None:
            timer.cancel()

    def close(self) -> None:
        for handle, timer in list(self._timers.items()):
            handle.cancel()
            timer.cancel()
        self._timers.clear()
        self.is_open = False
