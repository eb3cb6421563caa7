import pytest

from lectio.core.chunks import Chunk, chunks_from_paragraphs, chunks_from_verses, clean_for_speech, split_paragraphs


def test_clean_for_speech_strips_markdown() -> None:
    assert clean_for_speech("**No princípio** criou _Deus_ os `céus` e a [terra].") == (
        "No princípio criou Deus os céus e a terra."
    )
    assert clean_for_speech("# Title\n\n  spaced   out ") == "Title spaced out"


def test_verses_are_anchored_by_number() -> None:
    chunks = chunks_from_verses([(1, "In the beginning"), (2, "   "), (3, "And the earth was *without form*")])

    assert chunks == (
        Chunk(index=0, text="In the beginning", anchor="v1"),
        Chunk(index=1, text="And the earth was without form", anchor="v3"),
    )


def test_paragraphs_keep_original_position_in_anchor() -> None:
    chunks = chunks_from_paragraphs(["First paragraph.", "***", "Third paragraph."])

    assert [chunk.index for chunk in chunks] == [0, 1]
    assert [chunk.anchor for chunk in chunks] == ["p0", "p2"]


def test_split_paragraphs_on_blank_lines() -> None:
    text = "One line\nstill one.\n\n\nTwo.\n   \nThree."

    assert split_paragraphs(text) == ["One line\nstill one.", "Two.", "Three."]


def test_negative_index_is_rejected() -> None:
    with pytest.raises(ValueError):
        Chunk(index=-1, text="nope")
