from __future__ import annotations

import json

import pytest

from sdv_audio_mod.codec import (
    SAVE_FORMAT_VERSION,
    decode_project,
    dumps_project,
    encode_project,
    is_supported_version,
    loads_project,
)
from sdv_audio_mod.errors import ProjectDecodeError
from sdv_audio_mod.models import (
    AudioCategory,
    AudioEntry,
    EntryKind,
    Environment,
    JukeboxConfig,
    ModConfig,
)

CONFIG = ModConfig("Jane.NightTunes", "Night Tunes", "Jane", "1.2.0", "Calm nights")
ENTRIES = (
    AudioEntry("spring1", AudioCategory.MUSIC, ("s1.ogg",), EntryKind.REPLACE,
               "It's A Big World Outside", looped=True, jukebox=JukeboxConfig("Spring Remix")),
    AudioEntry("door_creak", AudioCategory.SOUND, ("creak_a.ogg", "creak_b.ogg")),
)


def test_round_trip_preserves_project() -> None:
    document = encode_project(CONFIG, ENTRIES, Environment.DESKTOP, saved_at="2024-01-01T00:00:00.000Z")
    decoded = decode_project(json.loads(json.dumps(document)))
    assert decoded is not None
    assert decoded.config == CONFIG
    assert decoded.audios == ENTRIES
    assert decoded.format_version == SAVE_FORMAT_VERSION
    assert decoded.origin is Environment.DESKTOP
    assert decoded.provenance == "from Desktop"


def test_encoded_document_carries_aliases() -> None:
    document = encode_project(CONFIG, ENTRIES, Environment.WEB, saved_at="t")
    assert document["formatVersion"] == document["version"] == SAVE_FORMAT_VERSION
    assert document["savedAtUtc"] == document["saved_at"] == "t"
    assert document["originEnvironment"] == document["platform"] == "web"
    assert document["config"]["id"] == document["config"]["modId"] == "Jane.NightTunes"
    entry = document["entries"][0]
    assert entry["kind"] == entry["type"] == "replace"
    assert entry["originalDisplayName"] == entry["originalName"] == "It's A Big World Outside"


def test_legacy_document_backfills_from_catalog() -> None:
    legacy = {
        "version": "2.0.0",
        "config": {"modId": "Old.Mod", "modName": "Old", "modAuthor": "Someone", "modVersion": "0.9.0"},
        "audios": [
            {"id": "spring1", "category": "Music", "files": ["spring.ogg"]},
            {"id": "my_custom", "category": "Sound", "files": ["custom.ogg"]},
        ],
    }
    decoded = decode_project(legacy)
    assert decoded is not None
    assert decoded.config == ModConfig("Old.Mod", "Old", "Someone", "0.9.0", "")
    first, second = decoded.audios
    assert first.kind is EntryKind.REPLACE
    assert first.original_name == "It's A Big World Outside"
    assert first.looped is False and first.jukebox is None
    assert second.kind is EntryKind.CUSTOM
    assert second.original_name is None
    assert decoded.provenance == ""


def test_canonical_field_wins_over_alias() -> None:
    document = {
        "formatVersion": "3.0.0",
        "version": "1.0.0",
        "config": {"id": "New.Id", "modId": "Old.Id", "name": "N", "author": "A", "version": "1.0.0"},
        "entries": [],
    }
    decoded = decode_project(document)
    assert decoded is not None
    assert decoded.config.mod_id == "New.Id"
    assert decoded.format_version == "3.0.0"


def test_flattened_config_layout() -> None:
    document = {
        "version": "2.0.0",
        "modId": "Flat.Mod",
        "modName": "Flat",
        "modAuthor": "F",
        "audios": [{"id": "x", "category": "Sound", "files": ["x.ogg"]}],
    }
    decoded = decode_project(document)
    assert decoded is not None
    assert decoded.config.mod_id == "Flat.Mod"
    # Top-level "version" is the format version, not the pack version
    assert decoded.format_version == "2.0.0"
    assert decoded.config.version == "1.0.0"
    assert [a.id for a in decoded.audios] == ["x"]


def test_unrecognised_version_restores_nothing() -> None:
    document = encode_project(CONFIG, ENTRIES, Environment.DESKTOP)
    document["formatVersion"] = document["version"] = "9.0.0"
    assert decode_project(document) is None


@pytest.mark.parametrize("document", [None, [], "text", {"formatVersion": "3.0.0"}])
def test_unusable_documents_return_none(document) -> None:
    assert decode_project(document) is None


def test_malformed_entries_are_skipped() -> None:
    document = {
        "formatVersion": "3.0.0",
        "entries": [
            {"files": ["no_id.ogg"]},
            {"id": "", "files": []},
            {"id": "ok", "category": "Weird", "files": ["ok.ogg"]},
        ],
    }
    decoded = decode_project(document)
    assert decoded is not None
    assert len(decoded.audios) == 1
    assert decoded.audios[0].category is AudioCategory.SOUND


def test_entries_with_escaping_file_names_are_skipped() -> None:
    document = {
        "formatVersion": "3.0.0",
        "entries": [
            {"id": "evil", "files": ["../../../x.ogg"]},
            {"id": "abs", "files": ["/etc/x.ogg"]},
            {"id": "nested", "category": "Music", "files": ["music/spring.ogg"]},
        ],
    }
    decoded = decode_project(document)
    assert [a.id for a in decoded.audios] == ["nested"]


def test_loads_project_raises_with_reason() -> None:
    with pytest.raises(ProjectDecodeError, match="not valid JSON"):
        loads_project("{nope")
    with pytest.raises(ProjectDecodeError, match="version"):
        loads_project(json.dumps({"formatVersion": "0.1", "entries": []}))
    decoded = loads_project(dumps_project(CONFIG, ENTRIES, Environment.WEB))
    assert decoded.provenance == "from Web"


def test_supported_versions() -> None:
    assert is_supported_version("1.0.0")
    assert is_supported_version("3.0.0")
    assert not is_supported_version("4.0.0")
    assert not is_supported_version("")
    assert not is_supported_version(3)
