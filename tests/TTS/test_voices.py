from lectio.TTS.voices import VoiceInfo, locale_for, select_voice

MARIA = VoiceInfo(id="maria", name="Microsoft Maria Desktop", languages=("pt-BR",))
DANIEL = VoiceInfo(id="daniel", name="Microsoft Daniel", languages=("pt-BR",))
ZIRA = VoiceInfo(id="zira", name="Microsoft Zira Desktop", languages=("en-US",))
ESPEAK_PT = VoiceInfo(id="roa/pt-BR", name="Portuguese (Brazil)", languages=("pt-br",), gender="Female")


def test_locale_for_short_codes() -> None:
    assert locale_for("pt") == "pt-BR"
    assert locale_for("EN") == "en-US"
    assert locale_for("fr-FR") == "fr-FR"


def test_language_and_gender_match_wins() -> None:
    assert select_voice([MARIA, DANIEL, ZIRA], "pt", "male") is DANIEL
    assert select_voice([MARIA, DANIEL, ZIRA], "pt", "female") is MARIA


def test_reported_gender_takes_priority_over_name() -> None:
    assert select_voice([ESPEAK_PT], "pt", "female") is ESPEAK_PT
    assert not ESPEAK_PT.matches_gender("male")


def test_falls_back_to_first_voice_in_language() -> None:
    assert select_voice([ZIRA, MARIA], "pt", "male") is MARIA


def test_no_voice_in_language_keeps_platform_default() -> None:
    assert select_voice([ZIRA], "es", "female") is None
    assert select_voice([], "pt", "male") is None


def test_female_name_is_not_mistaken_for_male() -> None:
    female = VoiceInfo(id="f", name="Portuguese Female", languages=("pt-PT",))

    assert female.matches_gender("female")
    assert not female.matches_gender("male")
