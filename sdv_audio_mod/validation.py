"""Checks applied to user edits before they reach the reducer."""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, Optional

from .catalog import AudioCatalog
from .errors import ValidationError
from .models import AudioCategory, AudioEntry, EntryKind, ModConfig

_UNIQUE_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)+$")
_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def is_safe_asset_name(name: str) -> bool:
    """True if ``name`` is a relative path that stays inside the assets folder.

    Both separators count, so a name saved on Windows is judged the same
    way everywhere.
    """
    if not name or name.startswith(("/", "\\")) or _DRIVE_RE.match(name):
        return False
    parts = re.split(r"[\\/]", name)
    return all(part not in ("", ".", "..") for part in parts)


def normalize_entry(entry: AudioEntry, catalog: AudioCatalog) -> AudioEntry:
    """Return ``entry`` with derived fields filled in.

    Looping and jukebox listings only make sense for music, so they are
    cleared for every other category.  ``kind`` and ``original_name``
    are derived from the catalog.
    """
    entry = replace(entry, id=entry.id.strip(), files=tuple(f.strip() for f in entry.files))
    original = catalog.lookup(entry.id)
    kind = EntryKind.REPLACE if original else EntryKind.CUSTOM
    if entry.category is not AudioCategory.MUSIC:
        entry = replace(entry, looped=False, jukebox=None)
    elif entry.jukebox is not None:
        entry = replace(entry, jukebox=replace(entry.jukebox, name=entry.jukebox.name.strip()))
    return replace(entry, kind=kind, original_name=original.name if original else None)


def _check_entry(entry: AudioEntry) -> None:
    if not entry.id:
        raise ValidationError("Audio id is required")
    if not entry.files:
        raise ValidationError("Add at least one file")
    if any(not f for f in entry.files):
        raise ValidationError("File names cannot be blank")
    for name in entry.files:
        if not is_safe_asset_name(name):
            raise ValidationError(f"File name must be relative to the assets folder: {name}")
    if len(set(entry.files)) != len(entry.files):
        raise ValidationError("The same file was added twice")
    if entry.jukebox is not None:
        if entry.category is not AudioCategory.MUSIC:
            raise ValidationError("Only music can be listed in the jukebox")
        if not entry.jukebox.name:
            raise ValidationError("Jukebox name is required")


def _check_unique(entry_id: str, existing: Iterable[AudioEntry], skip_index: Optional[int] = None) -> None:
    lower = entry_id.lower()
    for i, other in enumerate(existing):
        if i == skip_index:
            continue
        if other.id.lower() == lower:
            raise ValidationError(f"An audio with id '{entry_id}' already exists")


def validate_new_entry(existing: Iterable[AudioEntry], entry: AudioEntry) -> None:
    """Raise :class:`ValidationError` if ``entry`` cannot be added."""
    _check_entry(entry)
    _check_unique(entry.id, existing)


def validate_replacement(existing: Iterable[AudioEntry], index: int, entry: AudioEntry) -> None:
    """Raise :class:`ValidationError` if ``entry`` cannot replace the one at ``index``."""
    existing = list(existing)
    if not 0 <= index < len(existing):
        raise ValidationError(f"No audio at position {index + 1}")
    _check_entry(entry)
    _check_unique(entry.id, existing, skip_index=index)


def validate_config(config: ModConfig) -> None:
    """Raise :class:`ValidationError` for an unusable pack configuration."""
    for label, value in (("Unique id", config.mod_id), ("Name", config.name),
                         ("Author", config.author), ("Version", config.version)):
        if not (value or "").strip():
            raise ValidationError(f"{label} is required")
    if not _UNIQUE_ID_RE.match(config.mod_id.strip()):
        raise ValidationError("Unique id should look like 'Author.ModName'")
