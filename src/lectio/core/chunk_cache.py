from loguru import logger

from .audio_data import DecodedAudio


class ChunkCache:
    """
    Store of decoded audio keyed by chunk index.

    The cache has no eviction policy of its own. The Narrator bounds it by
    evicting entries a fixed distance behind the play pointer.
    """

    def __init__(self) -> None:
        self._entries: dict[int, DecodedAudio] = {}

    def put(self, index: int, audio: DecodedAudio) -> None:
        self._entries[index] = audio
        logger.debug(f"ChunkCache: Stored chunk {index} ({audio.duration:.2f}s), {len(self._entries)} cached.")

    def get(self, index: int) -> DecodedAudio | None:
        return self._entries.get(index)

    def has(self, index: int) -> bool:
        return index in self._entries

    def evict(self, index: int) -> None:
        if self._entries.pop(index, None) is not None:
            logger.debug(f"ChunkCache: Evicted chunk {index}.")

    def clear(self) -> None:
        self._entries.clear()

    def indices(self) -> list[int]:
        """Return the cached indices in ascending order."""
        return sorted(self._entries)

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)
