import pytest

from lectio.cli import DEFAULT_CONFIG, load_chunks, main


def test_paragraph_mode(tmp_path) -> None:
    path = tmp_path / "chapter.md"
    path.write_text("# Chapter One\n\nIt was a **dark** night.\nThe end.\n\n\n---\n", encoding="utf-8")

    chunks = load_chunks(path)

    assert [chunk.text for chunk in chunks] == ["Chapter One", "It was a dark night. The end.", "---"]
    assert [chunk.anchor for chunk in chunks] == ["p0", "p1", "p2"]


def test_verse_mode_numbers_non_empty_lines(tmp_path) -> None:
    path = tmp_path / "psalm.txt"
    path.write_text("Bem-aventurado o homem\n\nAntes tem o seu prazer na lei\n", encoding="utf-8")

    chunks = load_chunks(path, verses=True)

    assert [chunk.anchor for chunk in chunks] == ["v1", "v2"]
    assert chunks[1].text == "Antes tem o seu prazer na lei"


def test_default_config_is_packaged() -> None:
    assert DEFAULT_CONFIG.is_file()


def test_main_without_command_prints_help(monkeypatch, capsys) -> None:
    monkeypatch.setattr("sys.argv", ["lectio"])

    assert main() == 1
    assert "read" in capsys.readouterr().out


def test_read_with_empty_file_exits_cleanly(monkeypatch, tmp_path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("\n\n", encoding="utf-8")
    monkeypatch.setattr("sys.argv", ["lectio", "read", str(path)])

    assert main() == 0


def test_invalid_voice_is_rejected(monkeypatch) -> None:
    monkeypatch.setattr("sys.argv", ["lectio", "read", "x.txt", "--voice", "robot"])

    with pytest.raises(SystemExit):
        main()
