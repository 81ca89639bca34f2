from __future__ import annotations

import json

from sdv_audio_mod.builder import (
    CONTENT_FILENAME,
    I18N_FILENAME,
    MANIFEST_FILENAME,
    build_content_changes,
    build_documents,
    build_localization,
    build_manifest,
    required_files,
)
from sdv_audio_mod.models import AudioCategory, AudioEntry, JukeboxConfig, ModConfig

CONFIG = ModConfig("Jane.NightTunes", "Night Tunes", "Jane", "1.0.0", "Calm nights")


def _music(entry_id: str, *files: str, looped: bool = False, jukebox: JukeboxConfig = None) -> AudioEntry:
    return AudioEntry(entry_id, AudioCategory.MUSIC, files, looped=looped, jukebox=jukebox)


def test_manifest_declares_content_pack() -> None:
    manifest = build_manifest(CONFIG)
    assert manifest["UniqueID"] == "Jane.NightTunes"
    assert manifest["Name"] == "Night Tunes"
    assert manifest["ContentPackFor"] == {"UniqueID": "Pathoschild.ContentPatcher"}
    assert manifest["UpdateKeys"] == []


def test_looped_music_record() -> None:
    content = build_content_changes([_music("spring1", "spring1.ogg", looped=True)])
    assert content["Format"] == "2.0.0"
    change = content["Changes"][0]
    assert change["Action"] == "EditData"
    assert change["Target"] == "Data/AudioChanges"
    record = change["Entries"]["spring1"]
    assert record["Looped"] is True
    assert record["FilePaths"] == ["{{AbsoluteFilePath: assets/spring1.ogg}}"]
    assert record["Category"] == "Music"
    assert record["StreamedVorbis"] is True
    # Only one change block when nothing is in the jukebox
    assert len(content["Changes"]) == 1


def test_sound_entries_are_never_looped() -> None:
    content = build_content_changes([AudioEntry("croak", AudioCategory.SOUND, ("croak.ogg",), looped=True)])
    assert "Looped" not in content["Changes"][0]["Entries"]["croak"]


def test_entries_without_files_are_skipped_everywhere() -> None:
    empty = _music("silent", jukebox=JukeboxConfig("Silence"))
    full = _music("night", "night.ogg", jukebox=JukeboxConfig("Night"))
    content = build_content_changes([empty, full])
    audio_entries = content["Changes"][0]["Entries"]
    jukebox_entries = content["Changes"][1]["Entries"]
    assert list(audio_entries) == ["night"]
    assert list(jukebox_entries) == ["night"]
    assert build_localization([empty, full]) == {"Music.night": "Night"}
    assert build_content_changes([empty]) == {"Format": "2.0.0", "Changes": []}


def test_jukebox_tokens_match_localization() -> None:
    entries = [
        _music("a", "a.ogg", jukebox=JukeboxConfig("Track A")),
        _music("b", "b.ogg", jukebox=JukeboxConfig("Track B", available=False)),
    ]
    jukebox = build_content_changes(entries)["Changes"][1]
    assert jukebox["Target"] == "Data/JukeboxTracks"
    assert jukebox["Entries"]["b"] == {"Id": "b", "Name": "{{i18n:Music.b}}", "Available": False}
    localization = build_localization(entries)
    for track in jukebox["Entries"].values():
        key = track["Name"][len("{{i18n:"):-2]
        assert key in localization


def test_documents_are_deterministic_and_ordered() -> None:
    entries = [_music("z", "z.ogg"), _music("a", "a.ogg", "z.ogg", jukebox=JukeboxConfig("Ä"))]
    first = build_documents(CONFIG, entries)
    second = build_documents(CONFIG, entries)
    assert first == second
    assert list(first) == [MANIFEST_FILENAME, CONTENT_FILENAME, I18N_FILENAME]
    content = json.loads(first[CONTENT_FILENAME])
    assert list(content["Changes"][0]["Entries"]) == ["z", "a"]
    # Non-ASCII text is written as-is with 4-space indentation
    assert '    "Music.a": "Ä"' in first[I18N_FILENAME]
    assert required_files(entries) == ["z.ogg", "a.ogg"]
