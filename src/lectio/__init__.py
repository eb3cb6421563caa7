"""Progressive narration of text passages with remote speech and on-device fallback."""

from .core.chunks import Chunk, chunks_from_paragraphs, chunks_from_verses
from .core.errors import LocalSynthesisFailure, NarrationError, PlaybackDeviceFailure, RemoteSynthesisFailure
from .core.narrator import Narrator, NarratorConfig

__all__ = [
    "Chunk",
    "LocalSynthesisFailure",
    "NarrationError",
    "Narrator",
    "NarratorConfig",
    "PlaybackDeviceFailure",
    "RemoteSynthesisFailure",
    "chunks_from_paragraphs",
    "chunks_from_verses",
]
