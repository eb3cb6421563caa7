import asyncio
from collections.abc import Callable

from loguru import logger

from ..TTS import RemoteSynthesizerProtocol
from .chunk_cache import ChunkCache
from .session import Session


class ChunkFetcher:
    """
    Issues remote synthesis requests per chunk index and stores the results in the cache.

    Each request runs as its own asyncio task, so fetches may complete out of
    order. Failures are counted per index; reaching ``max_attempts`` flags the
    chunk for local speech, or the whole session when it is chunk 0.
    """

    def __init__(
        self,
        synthesizer: RemoteSynthesizerProtocol,
        cache: ChunkCache,
        is_live: Callable[[int], bool],
        max_attempts: int = 2,
    ) -> None:
        """
        Args:
            synthesizer: Remote generator to request audio from
            cache: Cache that successful results are written to
            is_live: Returns True if the given session generation is still the active one
            max_attempts: Failed attempts per chunk before giving up on the remote path
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.synthesizer = synthesizer
        self.cache = cache
        self.is_live = is_live
        self.max_attempts = max_attempts
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of fetch tasks that have not settled yet."""
        return len(self._tasks)

    def fetch(self, session: Session, index: int) -> None:
        """Request audio for ``index`` unless it is cached, in flight, out of range or escalated."""
        if session.closed or not self.is_live(session.generation):
            return
        if not session.in_range(index):
            return
        if session.uses_fallback(index):
            return
        if index in session.in_flight or self.cache.has(index):
            return

        session.in_flight.add(index)
        logger.debug(f"ChunkFetcher: Fetching chunk {index} (attempt {session.attempts.get(index, 0) + 1}).")
        task = asyncio.create_task(self._fetch(session, index), name=f"fetch-{session.generation}-{index}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self, session: Session, index: int) -> None:
        generation = session.generation
        text = session.chunks[index].text
        try:
            audio = await self.synthesizer.synthesize(text, session.voice)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self.is_live(generation):
                self._record_failure(session, index, e)
        else:
            if self.is_live(generation) and not session.uses_fallback(index):
                self.cache.put(index, audio)
            else:
                logger.debug(f"ChunkFetcher: Discarding chunk {index} for session {generation}.")
        finally:
            session.in_flight.discard(index)

    def _record_failure(self, session: Session, index: int, error: Exception) -> None:
        attempts = session.attempts.get(index, 0) + 1
        session.attempts[index] = attempts
        logger.error(f"ChunkFetcher: Error fetching chunk {index} (attempt {attempts}/{self.max_attempts}): {error}")
        if attempts < self.max_attempts:
            return
        if index == 0:
            session.escalate(f"chunk 0 failed {attempts} times")
        else:
            session.escalate_chunk(index)

    def cancel_all(self) -> None:
        """Cancel every fetch that has not settled. Never raises."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
