"""Chunk sources for a narration session.

Verse mode and paragraph mode differ only in how text is split and which
scroll anchor each chunk carries; both end up as an immutable tuple of
``Chunk`` objects that the Narrator consumes.
"""

from collections.abc import Iterable
from dataclasses import dataclass
import re

MARKDOWN_PATTERN = re.compile(r"[*#_`\[\]]")
WHITESPACE_PATTERN = re.compile(r"\s+")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class Chunk:
    """One unit of narratable text.

    Args:
        index: Position in narration order, starting at 0
        text: Text to speak, already cleaned of markup
        anchor: Identifier of the element to scroll to while this chunk plays
    """

    index: int
    text: str
    anchor: str | None = None

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Chunk index must be >= 0, got {self.index}")


def clean_for_speech(text: str) -> str:
    """Strip markdown markers and collapse whitespace so the synthesizers read plain prose."""
    return WHITESPACE_PATTERN.sub(" ", MARKDOWN_PATTERN.sub("", text)).strip()


def chunks_from_verses(verses: Iterable[tuple[int, str]]) -> tuple[Chunk, ...]:
    """
    Build chunks for verse mode.

    Parameters:
        verses: ``(verse_number, text)`` pairs in reading order

    Returns:
        tuple[Chunk, ...]: One chunk per non-empty verse, anchored at ``v<number>``
    """
    chunks: list[Chunk] = []
    for number, text in verses:
        cleaned = clean_for_speech(text)
        if cleaned:
            chunks.append(Chunk(index=len(chunks), text=cleaned, anchor=f"v{number}"))
    return tuple(chunks)


def chunks_from_paragraphs(paragraphs: Iterable[str]) -> tuple[Chunk, ...]:
    """
    Build chunks for paragraph ("fluid") mode.

    Empty paragraphs are dropped; the anchor keeps the paragraph's original
    position (``p<position>``) so the caller can still find it on the page.
    """
    chunks: list[Chunk] = []
    for position, paragraph in enumerate(paragraphs):
        cleaned = clean_for_speech(paragraph)
        if cleaned:
            chunks.append(Chunk(index=len(chunks), text=cleaned, anchor=f"p{position}"))
    return tuple(chunks)


def split_paragraphs(text: str) -> list[str]:
    """Split a document on blank lines."""
    return [part for part in PARAGRAPH_BREAK.split(text.strip()) if part.strip()]
