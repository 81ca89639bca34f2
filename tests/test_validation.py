from __future__ import annotations

import pytest

from sdv_audio_mod.catalog import DEFAULT_CATALOG
from sdv_audio_mod.errors import ValidationError
from sdv_audio_mod.models import AudioCategory, AudioEntry, ModConfig
from sdv_audio_mod.validation import (
    is_safe_asset_name,
    normalize_entry,
    validate_config,
    validate_new_entry,
    validate_replacement,
)


@pytest.mark.parametrize(
    "name,ok",
    [
        ("spring.ogg", True),
        ("music/spring.ogg", True),
        ("music\\spring.ogg", True),
        ("../x.ogg", False),
        ("../../../x.ogg", False),
        ("music/../../x.ogg", False),
        ("..\\x.ogg", False),
        ("/etc/x.ogg", False),
        ("\\\\server\\x.ogg", False),
        ("C:/x.ogg", False),
        ("music//x.ogg", False),
        ("", False),
    ],
)
def test_asset_names_must_stay_relative(name: str, ok: bool) -> None:
    assert is_safe_asset_name(name) is ok


def test_escaping_file_name_is_rejected() -> None:
    entry = normalize_entry(AudioEntry("evil", AudioCategory.SOUND, ("../../../x.ogg",)), DEFAULT_CATALOG)
    with pytest.raises(ValidationError):
        validate_new_entry([], entry)
    good = AudioEntry("spring1", AudioCategory.MUSIC, ("spring1.ogg",))
    with pytest.raises(ValidationError):
        validate_replacement([good], 0, entry)


def test_duplicate_ids_and_files() -> None:
    existing = [AudioEntry("Spring1", AudioCategory.MUSIC, ("a.ogg",))]
    with pytest.raises(ValidationError):
        validate_new_entry(existing, AudioEntry("spring1", AudioCategory.MUSIC, ("b.ogg",)))
    with pytest.raises(ValidationError):
        validate_new_entry([], AudioEntry("x", AudioCategory.SOUND, ("a.ogg", "a.ogg")))
    validate_replacement(existing, 0, AudioEntry("spring1", AudioCategory.MUSIC, ("music/b.ogg",)))


def test_config_unique_id_shape() -> None:
    validate_config(ModConfig("Jane.NightTunes", "Night", "Jane", "1.0.0"))
    with pytest.raises(ValidationError):
        validate_config(ModConfig("NightTunes", "Night", "Jane", "1.0.0"))
    with pytest.raises(ValidationError):
        validate_config(ModConfig("Jane.NightTunes", " ", "Jane", "1.0.0"))
