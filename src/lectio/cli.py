import argparse
import asyncio
from pathlib import Path
import sys

from loguru import logger
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from .core.audio_data import VoicePreference
from .core.chunks import Chunk, chunks_from_paragraphs, chunks_from_verses, split_paragraphs
from .core.errors import LocalSynthesisFailure, PlaybackDeviceFailure
from .core.narrator import Narrator, NarratorConfig
from .TTS.local_speech import Pyttsx3Synthesizer
from .TTS.voices import locale_for, select_voice
from .utils.resources import resource_path

DEFAULT_CONFIG = resource_path("configs/lectio_config.yaml")


def load_chunks(path: str | Path, verses: bool = False) -> tuple[Chunk, ...]:
    """
    Read a text file and split it into chunks.

    Parameters:
        path: Text file to read
        verses: Treat every non-empty line as a numbered verse instead of
            splitting on blank lines

    Returns:
        tuple[Chunk, ...]: The chunks to narrate, in order
    """
    text = Path(path).read_text(encoding="utf-8")
    if verses:
        lines = [line for line in text.splitlines() if line.strip()]
        return chunks_from_verses(enumerate(lines, start=1))
    return chunks_from_paragraphs(split_paragraphs(text))


async def narrate(
    chunks: tuple[Chunk, ...],
    config: NarratorConfig,
    voice: VoicePreference,
    language: str,
) -> int:
    """
    Narrate ``chunks`` until the session ends.

    Returns:
        int: Exit code (0 for success, 1 if the audio device could not be opened)
    """

    def chunk_started(index: int, anchor: str | None) -> None:
        rprint(f"[grey50]{index + 1}/{len(chunks)} {anchor or ''}[/] {escape(chunks[index].text)}")

    def loading_changed(loading: bool) -> None:
        if loading:
            rprint("[grey50]Preparing audio...")

    narrator = Narrator.from_config(
        config,
        on_chunk_started=chunk_started,
        on_loading_changed=loading_changed,
    )
    try:
        narrator.start(chunks, voice, language)
        await narrator.wait()
    except PlaybackDeviceFailure as e:
        rprint(f"[bold red]Audio output unavailable: {escape(str(e))}")
        return 1
    finally:
        await narrator.aclose()
    return 0


def read(path: str | Path, config_path: str | Path, verses: bool, voice: str | None, language: str | None) -> int:
    """
    Narrate a text file with the configured remote voice, falling back to local speech.

    Parameters:
        path: Text file to narrate
        config_path: Path to the configuration YAML file
        verses: Narrate line by line as verses
        voice: Override the configured voice preference
        language: Override the configured language
    """
    config = NarratorConfig.from_yaml(config_path)
    if voice or language:
        config = config.model_copy(update={k: v for k, v in {"voice": voice, "language": language}.items() if v})

    chunks = load_chunks(path, verses=verses)
    if not chunks:
        rprint(f"[bold yellow]Nothing to read in {path}")
        return 0

    try:
        return asyncio.run(narrate(chunks, config, config.voice, config.language))
    except KeyboardInterrupt:
        rprint("\n[grey50]Stopped.")
        return 0


def voices(language: str, preference: VoicePreference) -> int:
    """
    List the local speech voices and mark the one the fallback path would use.
    """
    try:
        available = Pyttsx3Synthesizer().list_voices()
    except LocalSynthesisFailure as e:
        rprint(f"[bold red]{escape(str(e))}")
        return 1

    chosen = select_voice(available, language, preference)
    table = Table(title=f"Local voices ({locale_for(language)}, {preference})")
    table.add_column("")
    table.add_column("Name")
    table.add_column("Languages")
    table.add_column("Gender")
    for voice in available:
        table.add_row(
            "[bold green]*" if voice == chosen else "",
            escape(voice.name),
            ", ".join(voice.languages),
            voice.gender or "",
        )
    rprint(table)
    if chosen is None:
        rprint("[yellow]No voice matches this language; the platform default voice will be used.")
    return 0


def main() -> int:
    """
    Command-line interface (CLI) entry point for lectio.

    Provides two commands:
    - 'read': Narrate a text file
    - 'voices': List local voices available for the fallback path

    Optional Arguments:
        --log-level (str): loguru level for messages on stderr, defaults to 'WARNING'

    Raises:
        SystemExit: If invalid arguments are provided
    """
    parser = argparse.ArgumentParser(description="Lectio progressive narrator")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Log level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Read command
    read_parser = subparsers.add_parser("read", help="Narrate a text file")
    read_parser.add_argument("path", type=str, help="Text file to narrate")
    read_parser.add_argument("--verses", action="store_true", help="One verse per line instead of paragraphs")
    read_parser.add_argument("--voice", choices=["male", "female"], help="Voice preference")
    read_parser.add_argument("--lang", type=str, help="Language code, e.g. pt, en, es")
    read_parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG})",
    )

    # Voices command
    voices_parser = subparsers.add_parser("voices", help="List local speech voices")
    voices_parser.add_argument("--lang", type=str, default="pt", help="Language code (default: pt)")
    voices_parser.add_argument("--voice", choices=["male", "female"], default="male", help="Voice preference")

    args = parser.parse_args()

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    if args.command == "read":
        return read(args.path, args.config, args.verses, args.voice, args.lang)
    elif args.command == "voices":
        return voices(args.lang, args.voice)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
