"""Exception taxonomy for the narration pipeline.

Remote failures are recovered inside the pipeline, local failures end the
session, and playback device failures abort ``Narrator.start``.
"""


class NarrationError(Exception):
    """Base class for all narration pipeline errors."""


class RemoteSynthesisFailure(NarrationError):
    """The remote generator failed to return usable audio (network, timeout, quota or decode)."""


class LocalSynthesisFailure(NarrationError):
    """On-device speech failed or is not supported on this platform."""


class PlaybackDeviceFailure(NarrationError):
    """The audio output device could not be opened, resumed or fed."""


__all__ = [
    "LocalSynthesisFailure",
    "NarrationError",
    "PlaybackDeviceFailure",
    "RemoteSynthesisFailure",
]
