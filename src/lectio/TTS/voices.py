"""Voice selection for on-device speech."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from ..core.audio_data import VoicePreference

LOCALES: dict[str, str] = {"en": "en-US", "es": "es-ES", "pt": "pt-BR"}

# Name fragments that identify a voice's gender when the platform does not report it
GENDER_HINTS: dict[VoicePreference, tuple[str, ...]] = {
    "female": ("Female", "Maria", "Francisca", "Zira", "Luciana"),
    "male": ("Male", "David", "Antonio", "Daniel", "Jorge"),
}


@dataclass(frozen=True)
class VoiceInfo:
    """A voice offered by the local speech platform."""

    id: str
    name: str
    languages: tuple[str, ...] = field(default_factory=tuple)
    gender: str | None = None

    def matches_language(self, prefix: str) -> bool:
        return any(lang.lower().startswith(prefix.lower()) for lang in self.languages)

    def matches_gender(self, preference: VoicePreference) -> bool:
        if self.gender:
            return self.gender.lower() == preference
        return any(hint in self.name for hint in GENDER_HINTS[preference])


def locale_for(language: str) -> str:
    """Map a short language code to the locale used for speech (``pt`` -> ``pt-BR``)."""
    return LOCALES.get(language.lower(), language)


def select_voice(voices: Sequence[VoiceInfo], language: str, preference: VoicePreference) -> VoiceInfo | None:
    """
    Pick the best local voice for ``language`` and ``preference``.

    Parameters:
        voices: Voices available on this platform
        language: Short language code or full locale
        preference: Requested voice gender

    Returns:
        VoiceInfo | None: A voice matching both the language prefix and the gender
        heuristic, else any voice matching the language prefix, else None
        (meaning: keep the platform default voice)
    """
    prefix = locale_for(language).split("-")[0]
    same_language = [voice for voice in voices if voice.matches_language(prefix)]
    for voice in same_language:
        if voice.matches_gender(preference):
            return voice
    return same_language[0] if same_language else None
