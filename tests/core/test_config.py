from pydantic import ValidationError
import pytest

from lectio.core.narrator import Narrator, NarratorConfig
from lectio.utils.resources import resource_path


def test_packaged_config_loads() -> None:
    config = NarratorConfig.from_yaml(resource_path("configs/lectio_config.yaml"))

    assert config.max_attempts == 2
    assert config.prefetch_ahead == 2
    assert config.poll_interval * config.poll_attempts == pytest.approx(6.0)
    assert config.voice == "male"
    assert config.local_seconds_per_char == pytest.approx(0.1)
    assert config.local_grace == pytest.approx(2.0)


def test_nested_key_and_overrides(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "Reader:\n  Narrator:\n    audio_io: \"null\"\n    remote_backend: none\n    voice: female\n    poll_attempts: 5\n",
        encoding="utf-8",
    )

    config = NarratorConfig.from_yaml(path, key_to_config=("Reader", "Narrator"))

    assert config.voice == "female"
    assert config.poll_attempts == 5
    assert config.language == "pt"


def test_utf8_bom_is_accepted(tmp_path) -> None:
    path = tmp_path / "bom.yaml"
    path.write_bytes("\ufeffNarrator:\n  language: es\n".encode())

    assert NarratorConfig.from_yaml(path).language == "es"


@pytest.mark.parametrize(
    "field", ["max_attempts", "prefetch_ahead", "evict_behind", "poll_attempts", "local_seconds_per_char"]
)
def test_limits_must_be_positive(field: str) -> None:
    with pytest.raises(ValidationError):
        NarratorConfig.model_validate({field: 0})


def test_unknown_voice_is_rejected() -> None:
    with pytest.raises(ValidationError):
        NarratorConfig.model_validate({"voice": "robot"})


def test_from_config_builds_local_only_narrator() -> None:
    config = NarratorConfig.model_validate({"audio_io": "null", "remote_backend": "none", "local_backend": "none"})

    narrator = Narrator.from_config(config)

    assert not narrator.is_active
    assert narrator.poll_attempts == 30
