import asyncio

from fakes import make_audio
import numpy as np
import pytest

from lectio.audio_io import get_audio_system
from lectio.audio_io.null_io import NullPlayback
from lectio.audio_io.playback_handle import PlaybackHandle
from lectio.core.errors import PlaybackDeviceFailure

pytestmark = pytest.mark.anyio


async def test_buffer_completion_is_reported_once() -> None:
    playback = NullPlayback(time_scale=0.0)
    playback.open()
    ended: list[int] = []

    handle = playback.play_buffer(make_audio(), lambda: ended.append(1))
    await asyncio.sleep(0.01)
    handle.finish()
    await asyncio.sleep(0)

    assert ended == [1]
    assert handle.finished
    assert handle.exhausted


async def test_stop_suppresses_completion() -> None:
    playback = NullPlayback(time_scale=0.0)
    playback.open()
    ended: list[int] = []

    handle = playback.play_buffer(make_audio(), lambda: ended.append(1))
    playback.stop(handle)
    playback.stop(handle)
    playback.stop(None)
    await asyncio.sleep(0.01)

    assert ended == []
    assert handle.stopped


async def test_close_cancels_pending_buffers() -> None:
    playback = NullPlayback(time_scale=1.0)
    playback.open()
    ended: list[int] = []

    playback.play_buffer(make_audio(duration=0.05), lambda: ended.append(1))
    playback.close()
    await asyncio.sleep(0.1)

    assert ended == []
    assert not playback.is_open
    with pytest.raises(PlaybackDeviceFailure):
        playback.play_buffer(make_audio(), lambda: None)


async def test_buffer_keeps_its_duration() -> None:
    playback = NullPlayback(time_scale=1.0)
    playback.open()
    done = asyncio.Event()
    loop = asyncio.get_running_loop()

    started = loop.time()
    playback.play_buffer(make_audio(duration=0.05), done.set)
    await asyncio.wait_for(done.wait(), timeout=1)

    assert loop.time() - started >= 0.04


async def test_completion_from_another_thread_lands_on_loop() -> None:
    loop = asyncio.get_running_loop()
    delivered = asyncio.Event()
    handle = PlaybackHandle(np.zeros(4, dtype=np.float32), delivered.set, loop)

    assert len(handle.read(3)) == 3
    assert not handle.exhausted
    assert len(handle.read(3)) == 1
    await asyncio.to_thread(handle.finish)
    await asyncio.wait_for(delivered.wait(), timeout=1)


async def test_negative_time_scale_is_rejected() -> None:
    with pytest.raises(ValueError):
        NullPlayback(time_scale=-1)


async def test_audio_system_factory() -> None:
    assert isinstance(get_audio_system("null"), NullPlayback)
    with pytest.raises(ValueError):
        get_audio_system("alsa-direct")
