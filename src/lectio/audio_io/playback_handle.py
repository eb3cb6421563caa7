import asyncio
from collections.abc import Callable
import threading

from loguru import logger
import numpy as np
from numpy.typing import NDArray


class PlaybackHandle:
    """A single decoded buffer being played on an output device.

    The device reads samples from the handle (possibly from its own audio
    thread) and calls ``finish`` once the buffer runs out. ``on_ended`` is then
    delivered on the event loop, exactly once, unless the handle was stopped
    first.
    """

    def __init__(
        self,
        samples: NDArray[np.float32],
        on_ended: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.samples = samples
        self.position = 0
        self._on_ended = on_ended
        self._loop = loop
        self._lock = threading.Lock()
        self._stopped = False
        self._finished = False

    @property
    def exhausted(self) -> bool:
        return self.position >= len(self.samples)

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def finished(self) -> bool:
        return self._finished

    def read(self, frames: int) -> NDArray[np.float32]:
        """Return up to ``frames`` samples and advance the read position."""
        chunk = self.samples[self.position : self.position + frames]
        self.position += len(chunk)
        return chunk

    def finish(self) -> None:
        """Mark natural completion and schedule ``on_ended`` on the event loop."""
        with self._lock:
            if self._stopped or self._finished:
                return
            self._finished = True
        try:
            self._loop.call_soon_threadsafe(self._deliver)
        except RuntimeError as e:
            logger.debug(f"PlaybackHandle: Event loop closed before completion could be delivered: {e}")

    def cancel(self) -> None:
        """Prevent ``on_ended`` from firing. Safe to call at any time."""
        with self._lock:
            self._stopped = True

    def _deliver(self) -> None:
        if not self._stopped:
            self._on_ended()
