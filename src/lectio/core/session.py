"""Live state of one narration run."""

from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from ..audio_io.playback_handle import PlaybackHandle
from .audio_data import VoicePreference
from .chunks import Chunk


class NarrationMode(Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"


@dataclass
class Session:
    """
    State owned by the Narrator for a single run over a chunk list.

    ``generation`` identifies the run. Asynchronous callbacks capture it when
    they are issued and compare it with the Narrator's live generation before
    touching anything, so a stopped or replaced session never gets mutated by
    a late fetch or playback callback.
    """

    chunks: tuple[Chunk, ...]
    voice: VoicePreference
    language: str
    generation: int
    index: int = 0
    mode: NarrationMode = NarrationMode.REMOTE
    closed: bool = False
    attempts: dict[int, int] = field(default_factory=dict)
    fallback_chunks: set[int] = field(default_factory=set)
    in_flight: set[int] = field(default_factory=set)
    playback_handle: PlaybackHandle | None = None

    def __len__(self) -> int:
        return len(self.chunks)

    def in_range(self, index: int) -> bool:
        return 0 <= index < len(self.chunks)

    def uses_fallback(self, index: int) -> bool:
        """True if ``index`` must be spoken locally rather than fetched."""
        return self.mode is NarrationMode.FALLBACK or index in self.fallback_chunks

    def escalate(self, reason: str) -> None:
        """Abandon the remote path for the rest of this session. Never reverted."""
        if self.mode is NarrationMode.FALLBACK:
            return
        logger.warning(f"Session {self.generation}: Switching to local speech for the whole session ({reason}).")
        self.mode = NarrationMode.FALLBACK

    def escalate_chunk(self, index: int) -> None:
        """Abandon the remote path for a single chunk."""
        if index not in self.fallback_chunks:
            logger.warning(f"Session {self.generation}: Chunk {index} will be spoken locally.")
            self.fallback_chunks.add(index)
