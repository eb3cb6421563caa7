"""
Narration orchestrator.

This module provides the Narrator, which turns an ordered list of chunks into
continuous speech: remote audio is fetched a fixed window ahead of the play
pointer while earlier chunks play, and on-device speech takes over when the
remote generator fails or is too slow.
"""

import asyncio
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, HttpUrl
import yaml

from ..audio_io import PlaybackHandle, PlaybackProtocol, get_audio_system
from ..TTS import LocalSynthesizerProtocol, RemoteSynthesizerProtocol, get_local_synthesizer, get_remote_synthesizer
from .audio_data import VoicePreference
from .chunk_cache import ChunkCache
from .chunks import Chunk
from .errors import LocalSynthesisFailure, PlaybackDeviceFailure
from .fetcher import ChunkFetcher
from .session import NarrationMode, Session


class NarratorConfig(BaseModel):
    """
    Configuration model for the Narrator.

    Selects the playback, remote and local backends and holds the timing
    constants of the pipeline. Supports loading from YAML files with nested
    key navigation.
    """

    audio_io: str = "sounddevice"
    sample_rate: int = Field(24000, gt=0)
    remote_backend: str = "edge"
    remote_url: HttpUrl | None = None
    remote_model: str = "tts-1"
    api_key: str | None = None
    local_backend: str = "pyttsx3"
    voice: VoicePreference = "male"
    language: str = "pt"
    max_attempts: int = Field(2, ge=1)
    prefetch_ahead: int = Field(2, ge=1)
    evict_behind: int = Field(2, ge=1)
    poll_interval: float = Field(0.2, gt=0)
    poll_attempts: int = Field(30, ge=1)
    local_seconds_per_char: float = Field(0.1, gt=0)
    local_grace: float = Field(2.0, ge=0)

    @classmethod
    def from_yaml(cls, path: str | Path, key_to_config: tuple[str, ...] = ("Narrator",)) -> "NarratorConfig":
        """
        Load a NarratorConfig instance from a YAML configuration file.

        Parameters:
            path: Path to the YAML configuration file
            key_to_config: Tuple of keys to navigate nested configuration

        Returns:
            NarratorConfig: Configuration object with validated settings

        Raises:
            ValueError: If the YAML content is invalid
            OSError: If the file cannot be read
            pydantic.ValidationError: If the configuration is invalid
        """
        path = Path(path)

        # Try different encodings
        for encoding in ["utf-8", "utf-8-sig"]:
            try:
                data = yaml.safe_load(path.read_text(encoding=encoding))
                break
            except UnicodeDecodeError:
                if encoding == "utf-8-sig":
                    raise ValueError(f"Could not decode YAML file {path} with any supported encoding")

        # Navigate through nested keys
        config = data
        for key in key_to_config:
            config = config[key]

        return cls.model_validate(config)


class Narrator:
    """
    Progressive narration state machine.

    A session goes Idle -> Loading -> Playing -> Idle. Each chunk is played
    from remote audio when it is ready in time, or spoken locally when the
    remote path has been abandoned for that chunk or for the whole session.
    Only one session is active at a time; everything asynchronous checks the
    session generation before acting, so nothing survives ``stop()``.
    """

    PLAYBACK_GRACE: float = 5.0  # Seconds past a buffer's duration before its completion is assumed

    def __init__(
        self,
        playback: PlaybackProtocol,
        local_synthesizer: LocalSynthesizerProtocol,
        remote_synthesizer: RemoteSynthesizerProtocol | None = None,
        *,
        max_attempts: int = 2,
        prefetch_ahead: int = 2,
        evict_behind: int = 2,
        poll_interval: float = 0.2,
        poll_attempts: int = 30,
        local_seconds_per_char: float = 0.1,
        local_grace: float = 2.0,
        on_loading_changed: Callable[[bool], None] | None = None,
        on_playing_changed: Callable[[bool], None] | None = None,
        on_chunk_started: Callable[[int, str | None], None] | None = None,
        on_ended: Callable[[], None] | None = None,
    ) -> None:
        """
        Initialize the Narrator with its collaborators and timing parameters.

        Args:
            playback (PlaybackProtocol): Output device, opened on start and closed on teardown.
            local_synthesizer (LocalSynthesizerProtocol): On-device speech used as fallback.
            remote_synthesizer (RemoteSynthesizerProtocol | None): Remote generator; None narrates locally only.
            max_attempts (int): Failed remote attempts per chunk before escalating.
            prefetch_ahead (int): Chunks requested ahead of the one playing.
            evict_behind (int): Distance behind the play pointer at which cached audio is dropped.
            poll_interval (float): Seconds between readiness checks while waiting for a chunk.
            poll_attempts (int): Readiness checks before giving up on remote audio for the session.
            local_seconds_per_char (float): Local speech budget per character of chunk text.
            local_grace (float): Seconds added to the local speech budget before an utterance is abandoned.
            on_loading_changed: Called with the new loading flag.
            on_playing_changed: Called with the new playing flag.
            on_chunk_started: Called with (index, anchor) when a chunk begins.
            on_ended: Called once when an active session tears down.
        """
        if prefetch_ahead < 1 or evict_behind < 1:
            raise ValueError("prefetch_ahead and evict_behind must be >= 1")
        if poll_interval <= 0 or poll_attempts < 1:
            raise ValueError("poll_interval must be > 0 and poll_attempts >= 1")
        if local_seconds_per_char <= 0 or local_grace < 0:
            raise ValueError("local_seconds_per_char must be > 0 and local_grace >= 0")

        self._playback = playback
        self._local = local_synthesizer
        self.prefetch_ahead = prefetch_ahead
        self.evict_behind = evict_behind
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts
        self.local_seconds_per_char = local_seconds_per_char
        self.local_grace = local_grace

        self.on_loading_changed = on_loading_changed
        self.on_playing_changed = on_playing_changed
        self.on_chunk_started = on_chunk_started
        self.on_ended = on_ended

        self._remote = remote_synthesizer
        self.cache = ChunkCache()
        self._fetcher: ChunkFetcher | None = None
        if remote_synthesizer is not None:
            self._fetcher = ChunkFetcher(remote_synthesizer, self.cache, self._is_live, max_attempts)

        self._generation = 0
        self._session: Session | None = None
        self._task: asyncio.Task[None] | None = None
        self._loading = False
        self._playing = False

    @classmethod
    def from_config(cls, config: NarratorConfig, **callbacks: Callable[..., None] | None) -> "Narrator":
        """
        Create a Narrator from a NarratorConfig, building each backend with its factory.

        Parameters:
            config (NarratorConfig): Configuration object
            **callbacks: Optional ``on_*`` notification callbacks

        Returns:
            Narrator: A new Narrator configured with the provided settings
        """
        playback = get_audio_system(backend_type=config.audio_io, sample_rate=config.sample_rate)
        remote = get_remote_synthesizer(
            config.remote_backend,
            language=config.language,
            url=str(config.remote_url) if config.remote_url else None,
            model=config.remote_model,
            api_key=config.api_key,
        )
        local = get_local_synthesizer(config.local_backend)

        return cls(
            playback=playback,
            local_synthesizer=local,
            remote_synthesizer=remote,
            max_attempts=config.max_attempts,
            prefetch_ahead=config.prefetch_ahead,
            evict_behind=config.evict_behind,
            poll_interval=config.poll_interval,
            poll_attempts=config.poll_attempts,
            local_seconds_per_char=config.local_seconds_per_char,
            local_grace=config.local_grace,
            **callbacks,
        )

    @classmethod
    def from_yaml(cls, path: str | Path, **callbacks: Callable[..., None] | None) -> "Narrator":
        """
        Create a Narrator from a configuration file.

        Example:
            narrator = Narrator.from_yaml("configs/lectio_config.yaml")
        """
        return cls.from_config(NarratorConfig.from_yaml(path), **callbacks)

    # Observable state

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def current_index(self) -> int:
        return self._session.index if self._session is not None else 0

    @property
    def mode(self) -> NarrationMode | None:
        return self._session.mode if self._session is not None else None

    @property
    def session(self) -> Session | None:
        return self._session

    # Public operations

    def start(
        self,
        chunks: Sequence[Chunk | str],
        voice: VoicePreference = "male",
        language: str = "pt",
    ) -> None:
        """
        Start narrating ``chunks``. Must be called from a running event loop.

        Any active session is torn down first. The playback device is opened
        synchronously, before the first await, so platforms that gate audio on
        a user gesture accept it.

        Parameters:
            chunks: Chunks (or plain strings) in narration order
            voice: Voice preference for both synthesizers
            language: Language code for local speech

        Raises:
            PlaybackDeviceFailure: If the device cannot be opened; the Narrator stays idle
            ValueError: If chunk indices do not match their positions
            RuntimeError: If no event loop is running
        """
        asyncio.get_running_loop()
        session_chunks = self._normalize_chunks(chunks)

        if self._session is not None:
            logger.info("Narrator: Replacing the active session.")
            self.stop()

        if not session_chunks:
            logger.warning("Narrator: Nothing to narrate, ignoring start().")
            return

        try:
            self._playback.open()
        except PlaybackDeviceFailure as e:
            logger.error(f"Narrator: Cannot open audio output: {e}")
            self._release(self._playback.close, "closing audio output")
            raise

        self._generation += 1
        session = Session(chunks=session_chunks, voice=voice, language=language, generation=self._generation)
        if self._fetcher is None:
            session.escalate("no remote synthesizer configured")
        self._session = session

        logger.success(f"Narrator: Starting session {session.generation} with {len(session)} chunks.")
        self._set_playing(True)
        self._set_loading(True)

        for index in range(self.prefetch_ahead):
            self._fetch(session, index)

        self._task = asyncio.create_task(self._narrate(session), name=f"narrate-{session.generation}")

    def stop(self) -> None:
        """
        Tear down the active session. Safe to call any number of times, from any state.

        Steps run in order and none of them raises: mark the session closed,
        stop the active buffer, cancel local speech, drop fetches and cached
        audio, close the device, reset the observable state.
        """
        session = self._session
        self._session = None
        if session is not None:
            session.closed = True
            logger.info(f"Narrator: Stopping session {session.generation} at chunk {session.index}.")

        task, self._task = self._task, None
        if task is not None and not task.done() and task is not self._current_task():
            task.cancel()

        if session is not None and session.playback_handle is not None:
            handle, session.playback_handle = session.playback_handle, None
            self._release(lambda: self._playback.stop(handle), "stopping playback")

        self._release(self._local.cancel_all, "cancelling local speech")

        if self._fetcher is not None:
            self._release(self._fetcher.cancel_all, "cancelling fetches")
        self.cache.clear()
        if session is not None:
            session.in_flight.clear()

        self._release(self._playback.close, "closing audio output")

        self._set_loading(False)
        self._set_playing(False)
        if session is not None:
            self._notify(self.on_ended)

    def toggle(
        self,
        chunks: Sequence[Chunk | str],
        voice: VoicePreference = "male",
        language: str = "pt",
    ) -> None:
        """Start narrating if idle, stop if a session is active."""
        if self.is_active:
            self.stop()
        else:
            self.start(chunks, voice, language)

    async def wait(self) -> None:
        """Wait until the current narration task finishes, however it ends."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def aclose(self) -> None:
        """Stop any active session and release the remote synthesizer's connections."""
        self.stop()
        if self._remote is not None:
            await self._remote.aclose()

    # Narration loop

    async def _narrate(self, session: Session) -> None:
        try:
            while self._is_live(session.generation) and session.index < len(session):
                index = session.index
                if session.uses_fallback(index):
                    await self._speak_locally(session, index)
                elif await self._await_ready(session, index):
                    await self._play_remote(session, index)
                else:
                    # Escalated while waiting: take the local branch for the same index
                    continue

                if not self._is_live(session.generation):
                    return
                session.index += 1
        except LocalSynthesisFailure as e:
            logger.error(f"Narrator: Local speech failed, ending session {session.generation}: {e}")
        except Exception as e:
            logger.exception(f"Narrator: Unexpected error in narration loop: {e}")

        if self._is_live(session.generation):
            logger.success(f"Narrator: Session {session.generation} finished.")
            self.stop()

    async def _await_ready(self, session: Session, index: int) -> bool:
        """
        Poll until ``index`` is cached. Returns False if the chunk must be spoken
        locally instead, which includes timing out (the whole session then
        switches to local speech).
        """
        for attempt in range(self.poll_attempts + 1):
            if not self._is_live(session.generation):
                return False
            if self.cache.has(index):
                return True
            if session.uses_fallback(index):
                return False
            if attempt == self.poll_attempts:
                break
            if index not in session.in_flight:
                self._fetch(session, index)
            await asyncio.sleep(self.poll_interval)

        logger.warning(
            f"Narrator: Timed out waiting {self.poll_interval * self.poll_attempts:.1f}s for chunk {index}."
        )
        session.escalate("timed out waiting for remote audio")
        return False

    async def _play_remote(self, session: Session, index: int) -> None:
        audio = self.cache.get(index)
        if audio is None:
            return

        ended: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_ended() -> None:
            if not ended.done():
                ended.set_result(None)

        try:
            handle: PlaybackHandle = self._playback.play_buffer(audio, on_ended)
        except PlaybackDeviceFailure as e:
            logger.warning(f"Narrator: Playback refused chunk {index}, speaking it locally: {e}")
            await self._speak_locally(session, index)
            return

        session.playback_handle = handle
        self._chunk_began(session, index)
        if not self._is_live(session.generation):
            return
        logger.debug(f"Narrator: Playing chunk {index} ({audio.duration:.2f}s).")
        try:
            await asyncio.wait_for(ended, timeout=audio.duration + self.PLAYBACK_GRACE)
        except TimeoutError:
            logger.warning(f"Narrator: Playback of chunk {index} did not report completion, moving on.")
            self._release(lambda: self._playback.stop(handle), "stopping playback")
        finally:
            if session.playback_handle is handle:
                session.playback_handle = None

    async def _speak_locally(self, session: Session, index: int) -> None:
        self._chunk_began(session, index)
        if not self._is_live(session.generation):
            return
        text = session.chunks[index].text
        budget = len(text) * self.local_seconds_per_char + self.local_grace
        logger.debug(f"Narrator: Speaking chunk {index} locally.")
        try:
            await asyncio.wait_for(self._local.speak(text, session.language, session.voice), timeout=budget)
        except TimeoutError:
            logger.warning(f"Narrator: Local speech of chunk {index} did not finish within {budget:.1f}s, moving on.")
            self._release(self._local.cancel_all, "cancelling local speech")

    def _chunk_began(self, session: Session, index: int) -> None:
        self._set_loading(False)
        for stale in self.cache.indices():
            if stale <= index - self.evict_behind:
                self.cache.evict(stale)
        self._fetch(session, index + self.prefetch_ahead)
        self._notify(self.on_chunk_started, index, session.chunks[index].anchor)

    def _fetch(self, session: Session, index: int) -> None:
        if self._fetcher is not None:
            self._fetcher.fetch(session, index)

    # Helpers

    def _is_live(self, generation: int) -> bool:
        session = self._session
        return session is not None and not session.closed and session.generation == generation

    @staticmethod
    def _current_task() -> asyncio.Task | None:
        try:
            return asyncio.current_task()
        except RuntimeError:
            return None

    @staticmethod
    def _normalize_chunks(chunks: Sequence[Chunk | str]) -> tuple[Chunk, ...]:
        normalized: list[Chunk] = []
        for position, chunk in enumerate(chunks):
            if isinstance(chunk, str):
                chunk = Chunk(index=position, text=chunk)
            elif chunk.index != position:
                raise ValueError(f"Chunk at position {position} has index {chunk.index}")
            normalized.append(chunk)
        return tuple(normalized)

    def _set_loading(self, value: bool) -> None:
        if self._loading != value:
            self._loading = value
            self._notify(self.on_loading_changed, value)

    def _set_playing(self, value: bool) -> None:
        if self._playing != value:
            self._playing = value
            self._notify(self.on_playing_changed, value)

    @staticmethod
    def _notify(callback: Callable[..., None] | None, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.exception(f"Narrator: Listener {callback!r} raised: {e}")

    @staticmethod
    def _release(action: Callable[[], None], description: str) -> None:
        try:
            action()
        except Exception as e:
            logger.error(f"Narrator: Error {description}: {e}")
