import asyncio

from fakes import make_audio
import numpy as np
import pytest

from lectio.core.audio_data import DecodedAudio
from lectio.core.errors import PlaybackDeviceFailure

try:
    import sounddevice as sd  # type: ignore

    from lectio.audio_io.sounddevice_io import SoundDevicePlayback
except OSError as e:  # PortAudio shared library missing on this machine
    pytest.skip(f"sounddevice unavailable: {e}", allow_module_level=True)

pytestmark = pytest.mark.anyio


class FakeStream:
    def __init__(self, callback, **kwargs) -> None:  # type: ignore[no-untyped-def]
        self.callback = callback
        self.kwargs = kwargs
        self.stopped = True
        self.closed = False

    @property
    def active(self) -> bool:
        return not self.stopped and not self.closed

    def start(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True

    def close(self) -> None:
        self.closed = True

    def pull(self, frames: int) -> np.ndarray:
        outdata = np.full((frames, 1), 9.0, dtype=np.float32)
        self.callback(outdata, frames, {}, sd.CallbackFlags())
        return outdata[:, 0]


@pytest.fixture
def streams(monkeypatch) -> list[FakeStream]:  # type: ignore[no-untyped-def]
    created: list[FakeStream] = []

    def factory(**kwargs) -> FakeStream:  # type: ignore[no-untyped-def]
        stream = FakeStream(**kwargs)
        created.append(stream)
        return stream

    monkeypatch.setattr(sd, "OutputStream", factory)
    return created


async def test_open_starts_single_mono_stream(streams) -> None:
    playback = SoundDevicePlayback(sample_rate=16000)
    playback.open()
    playback.open()

    assert len(streams) == 1
    assert streams[0].active
    assert streams[0].kwargs["samplerate"] == 16000
    assert streams[0].kwargs["channels"] == 1


async def test_callback_drains_buffer_then_reports_completion(streams) -> None:
    playback = SoundDevicePlayback(sample_rate=24000)
    playback.open()
    done = asyncio.Event()
    samples = np.linspace(0.1, 0.5, 5, dtype=np.float32)

    playback.play_buffer(DecodedAudio(samples=samples, sample_rate=24000), done.set)
    first = streams[0].pull(3)
    second = streams[0].pull(3)
    await asyncio.wait_for(done.wait(), timeout=1)

    assert np.allclose(first, samples[:3])
    assert np.allclose(second, [samples[3], samples[4], 0.0])
    assert np.allclose(streams[0].pull(2), 0.0)


async def test_stopped_buffer_goes_silent(streams) -> None:
    playback = SoundDevicePlayback()
    playback.open()
    ended: list[int] = []

    handle = playback.play_buffer(make_audio(duration=0.01), lambda: ended.append(1))
    playback.stop(handle)
    streams[0].pull(1024)
    await asyncio.sleep(0)

    assert ended == []


async def test_stream_follows_buffer_sample_rate(streams) -> None:
    playback = SoundDevicePlayback(sample_rate=24000)
    playback.open()

    first = playback.play_buffer(make_audio(duration=0.01, sample_rate=48000), lambda: None)
    second = playback.play_buffer(make_audio(duration=0.01, sample_rate=48000), lambda: None)

    assert len(first.samples) == 480
    assert first.stopped
    assert not second.stopped
    assert len(streams) == 2
    assert streams[0].closed
    assert streams[1].kwargs["samplerate"] == 48000
    assert streams[1].active
    assert playback.sample_rate == 48000


async def test_play_requires_open_stream_and_samples(streams) -> None:
    playback = SoundDevicePlayback()
    with pytest.raises(PlaybackDeviceFailure):
        playback.play_buffer(make_audio(), lambda: None)

    playback.open()
    with pytest.raises(PlaybackDeviceFailure):
        playback.play_buffer(make_audio(duration=0.0), lambda: None)


async def test_close_is_idempotent_and_allows_reopen(streams) -> None:
    playback = SoundDevicePlayback()
    playback.open()
    playback.close()
    playback.close()

    assert streams[0].closed
    playback.open()
    assert len(streams) == 2


async def test_portaudio_errors_become_device_failures(monkeypatch) -> None:
    def refuse(**kwargs):  # type: ignore[no-untyped-def]
        raise sd.PortAudioError("Error querying device -1")

    monkeypatch.setattr(sd, "OutputStream", refuse)

    with pytest.raises(PlaybackDeviceFailure):
        SoundDevicePlayback().open()
