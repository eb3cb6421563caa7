from __future__ import annotations

from collections.abc import Callable

from fakes import EventLog, RecordingLocal
import pytest

from lectio.audio_io.null_io import NullPlayback
from lectio.core.narrator import Narrator


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def events() -> EventLog:
    return EventLog()


@pytest.fixture
def playback() -> NullPlayback:
    return NullPlayback(time_scale=0.0)


@pytest.fixture
def local() -> RecordingLocal:
    return RecordingLocal()


@pytest.fixture
def make_narrator(playback: NullPlayback, local: RecordingLocal, events: EventLog) -> Callable[..., Narrator]:
    """Build a Narrator with fast polling wired to the shared fakes and event log."""

    def factory(remote=None, **overrides) -> Narrator:  # type: ignore[no-untyped-def]
        kwargs = {
            "playback": playback,
            "local_synthesizer": local,
            "remote_synthesizer": remote,
            "poll_interval": 0.005,
            "poll_attempts": 20,
            **events.callbacks(),
        }
        kwargs.update(overrides)
        return Narrator(**kwargs)

    return factory
