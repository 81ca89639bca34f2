"""Generate the Content Patcher documents for a project.

Three documents make up a pack:

* ``manifest.json`` – SMAPI manifest declaring the pack as a Content
  Patcher content pack.
* ``content.json`` – ``EditData`` changes for ``Data/AudioChanges``
  and, if any entry is listed in the jukebox, ``Data/JukeboxTracks``.
* ``i18n/default.json`` – display names of jukebox tracks, referenced
  from ``content.json`` through ``{{i18n:Music.<id>}}`` tokens.

All builders are pure and keep the authored entry order.  Entries
without files are skipped everywhere, so every i18n key has a
matching jukebox record.  :func:`render_document` is the only JSON
renderer used for exported documents.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Sequence

from .models import AudioCategory, AudioEntry, ModConfig

CONTENT_FORMAT = "2.0.0"
CONTENT_PATCHER_ID = "Pathoschild.ContentPatcher"
AUDIO_CHANGES_TARGET = "Data/AudioChanges"
JUKEBOX_TARGET = "Data/JukeboxTracks"
I18N_NAMESPACE = "Music"

MANIFEST_FILENAME = "manifest.json"
CONTENT_FILENAME = "content.json"
I18N_FILENAME = "i18n/default.json"


def _buildable(audios: Iterable[AudioEntry]) -> List[AudioEntry]:
    return [a for a in audios if a.files]


def asset_reference(filename: str) -> str:
    return f"{{{{AbsoluteFilePath: assets/{filename}}}}}"


def i18n_key(entry_id: str) -> str:
    return f"{I18N_NAMESPACE}.{entry_id}"


def i18n_token(entry_id: str) -> str:
    return f"{{{{i18n:{i18n_key(entry_id)}}}}}"


def build_manifest(config: ModConfig) -> Dict[str, Any]:
    return {
        "Name": config.name,
        "Author": config.author,
        "Version": config.version,
        "Description": config.description,
        "UniqueID": config.mod_id,
        "UpdateKeys": [],
        "ContentPackFor": {"UniqueID": CONTENT_PATCHER_ID},
    }


def build_content_changes(audios: Sequence[AudioEntry]) -> Dict[str, Any]:
    entries = _buildable(audios)
    changes: List[Dict[str, Any]] = []

    if entries:
        audio_changes: Dict[str, Any] = {}
        for audio in entries:
            record: Dict[str, Any] = {
                "Id": audio.id,
                "Category": audio.category.value,
                "FilePaths": [asset_reference(f) for f in audio.files],
                "StreamedVorbis": True,
            }
            if audio.category is AudioCategory.MUSIC and audio.looped:
                record["Looped"] = True
            audio_changes[audio.id] = record
        changes.append({"Action": "EditData", "Target": AUDIO_CHANGES_TARGET, "Entries": audio_changes})

    jukebox = [a for a in entries if a.jukebox is not None]
    if jukebox:
        tracks: Dict[str, Any] = {}
        for audio in jukebox:
            tracks[audio.id] = {
                "Id": audio.id,
                "Name": i18n_token(audio.id),
                "Available": audio.jukebox.available,
            }
        changes.append({"Action": "EditData", "Target": JUKEBOX_TARGET, "Entries": tracks})

    return {"Format": CONTENT_FORMAT, "Changes": changes}


def build_localization(audios: Sequence[AudioEntry]) -> Dict[str, str]:
    return {
        i18n_key(a.id): a.jukebox.name
        for a in _buildable(audios)
        if a.jukebox is not None
    }


def render_document(document: Any) -> str:
    """Serialise a document exactly as it is written to every export target."""
    return json.dumps(document, indent=4, ensure_ascii=False)


def required_files(audios: Iterable[AudioEntry]) -> List[str]:
    """Return every referenced file once, in authored order."""
    files: List[str] = []
    for audio in audios:
        for name in audio.files:
            if name not in files:
                files.append(name)
    return files


def build_documents(config: ModConfig, audios: Sequence[AudioEntry]) -> Dict[str, str]:
    """Return rendered documents keyed by their path inside the pack."""
    return {
        MANIFEST_FILENAME: render_document(build_manifest(config)),
        CONTENT_FILENAME: render_document(build_content_changes(audios)),
        I18N_FILENAME: render_document(build_localization(audios)),
    }
