"""Versioned save format for projects.

A save document looks like::

    {
      "config": {"id": ..., "modId": ..., "name": ..., "modName": ..., ...},
      "entries": [{"id": ..., "kind": ..., "type": ..., "category": ...,
                   "files": [...], "looped": ..., "jukebox": ...}],
      "formatVersion": "3.0.0", "version": "3.0.0",
      "savedAtUtc": "...", "saved_at": "...",
      "originEnvironment": "desktop", "platform": "desktop"
    }

Every field that changed name between releases is written under both
names so that older builds and the web build can read documents
produced here.  When decoding, the canonical name wins over its alias.
Older documents that did not store ``kind``/``originalDisplayName``
get them back from the :class:`~sdv_audio_mod.catalog.AudioCatalog`.

:func:`decode_project` never raises; it returns ``None`` for anything
it cannot turn into a project.  :func:`loads_project` is the strict
variant used for explicit loads and raises
:class:`~sdv_audio_mod.errors.ProjectDecodeError` with a reason.
"""

from __future__ import annotations

import datetime
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import jsonschema

from .catalog import DEFAULT_CATALOG, AudioCatalog
from .errors import ProjectDecodeError
from .models import (
    DEFAULT_CONFIG,
    AudioCategory,
    AudioEntry,
    EntryKind,
    Environment,
    JukeboxConfig,
    ModConfig,
)
from .validation import is_safe_asset_name

logger = logging.getLogger(__name__)

SAVE_FORMAT_VERSION = "3.0.0"
SUPPORTED_MAJOR_VERSIONS = (1, 2, 3)

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "project.schema.json"

# canonical name -> (aliases, ModConfig attribute)
_CONFIG_FIELDS: Tuple[Tuple[str, Tuple[str, ...], str], ...] = (
    ("id", ("modId",), "mod_id"),
    ("name", ("modName",), "name"),
    ("author", ("modAuthor",), "author"),
    ("version", ("modVersion",), "version"),
    ("description", ("modDescription",), "description"),
)

_MISSING = object()
_schema_cache: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class DecodedProject:
    config: ModConfig
    audios: Tuple[AudioEntry, ...]
    format_version: str
    saved_at: Optional[str] = None
    origin: Optional[Environment] = None

    @property
    def provenance(self) -> str:
        """Short label describing which build produced the document."""
        if self.origin is Environment.DESKTOP:
            return "from Desktop"
        if self.origin is Environment.WEB:
            return "from Web"
        return ""


def _utc_now() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _pick(mapping: Mapping[str, Any], canonical: str, *aliases: str, default: Any = _MISSING) -> Any:
    """Return the first non-null value among ``canonical`` and its aliases."""
    for key in (canonical,) + aliases:
        value = mapping.get(key)
        if value is not None:
            return value
    return default


def _has_any(mapping: Mapping[str, Any], *keys: str) -> bool:
    return any(key in mapping for key in keys)


def _load_schema() -> Dict[str, Any]:
    global _schema_cache
    if _schema_cache is None:
        with SCHEMA_PATH.open("r", encoding="utf-8") as f:
            _schema_cache = json.load(f)
    return _schema_cache


def is_supported_version(version: Any) -> bool:
    if not isinstance(version, str) or not version.strip():
        return False
    head = version.strip().split(".", 1)[0]
    try:
        return int(head) in SUPPORTED_MAJOR_VERSIONS
    except ValueError:
        return False


# ---------------------------------------------------------------- encoding


def config_to_save(config: ModConfig) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for canonical, aliases, attr in _CONFIG_FIELDS:
        value = getattr(config, attr)
        data[canonical] = value
        for alias in aliases:
            data[alias] = value
    return data


def entry_to_save(entry: AudioEntry) -> Dict[str, Any]:
    jukebox = None
    if entry.jukebox is not None:
        jukebox = {"name": entry.jukebox.name, "available": entry.jukebox.available}
    return {
        "id": entry.id,
        "kind": entry.kind.value,
        "type": entry.kind.value,
        "originalDisplayName": entry.original_name,
        "originalName": entry.original_name,
        "category": entry.category.value,
        "files": list(entry.files),
        "looped": entry.looped,
        "jukebox": jukebox,
    }


def encode_project(
    config: ModConfig,
    audios: Sequence[AudioEntry],
    environment: Environment,
    saved_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the save document for a project."""
    saved_at = saved_at or _utc_now()
    origin = Environment(environment).value
    return {
        "config": config_to_save(config),
        "entries": [entry_to_save(a) for a in audios],
        "formatVersion": SAVE_FORMAT_VERSION,
        "version": SAVE_FORMAT_VERSION,
        "savedAtUtc": saved_at,
        "saved_at": saved_at,
        "originEnvironment": origin,
        "platform": origin,
    }


def dumps_project(
    config: ModConfig,
    audios: Sequence[AudioEntry],
    environment: Environment,
    saved_at: Optional[str] = None,
) -> str:
    return json.dumps(encode_project(config, audios, environment, saved_at), indent=2, ensure_ascii=False)


# ---------------------------------------------------------------- decoding


def config_from_save(raw: Mapping[str, Any]) -> ModConfig:
    values: Dict[str, str] = {}
    for canonical, aliases, attr in _CONFIG_FIELDS:
        if attr == "description":
            fallback = ""
        else:
            fallback = getattr(DEFAULT_CONFIG, attr)
        value = _pick(raw, canonical, *aliases, default=fallback)
        values[attr] = str(value)
    return ModConfig(**values)


def _jukebox_from_save(raw: Any) -> Optional[JukeboxConfig]:
    if not isinstance(raw, Mapping):
        return None
    name = _pick(raw, "name", default=None)
    if not isinstance(name, str):
        return None
    return JukeboxConfig(name=name, available=bool(_pick(raw, "available", default=True)))


def entry_from_save(raw: Any, catalog: AudioCatalog) -> Optional[AudioEntry]:
    """Decode one entry, or return ``None`` if it has no usable id or
    names a file outside the assets folder."""
    if not isinstance(raw, Mapping):
        return None
    entry_id = raw.get("id")
    if not isinstance(entry_id, str) or not entry_id:
        return None
    original = catalog.lookup(entry_id)

    try:
        category = AudioCategory(_pick(raw, "category", default=AudioCategory.SOUND.value))
    except ValueError:
        logger.warning("Unknown category %r for %s, using Sound", raw.get("category"), entry_id)
        category = AudioCategory.SOUND

    kind_value = _pick(raw, "kind", "type", default=None)
    try:
        kind = EntryKind(kind_value)
    except ValueError:
        kind = EntryKind.REPLACE if original else EntryKind.CUSTOM

    if _has_any(raw, "originalDisplayName", "originalName"):
        original_name = _pick(raw, "originalDisplayName", "originalName", default=None)
    else:
        original_name = original.name if original else None

    files = tuple(str(f) for f in raw.get("files") or [])
    unsafe = [f for f in files if not is_safe_asset_name(f)]
    if unsafe:
        logger.warning("Skipping %s: file names outside the assets folder: %s", entry_id, unsafe)
        return None
    return AudioEntry(
        id=entry_id,
        category=category,
        files=files,
        kind=kind,
        original_name=original_name,
        looped=bool(_pick(raw, "looped", default=False)),
        jukebox=_jukebox_from_save(raw.get("jukebox")),
    )


def _decode(document: Any, catalog: AudioCatalog) -> DecodedProject:
    if not isinstance(document, Mapping):
        raise ProjectDecodeError("Invalid project format")
    version = _pick(document, "formatVersion", "version", default=None)
    if not is_supported_version(version):
        raise ProjectDecodeError(f"Unsupported project format version: {version!r}")
    try:
        jsonschema.validate(instance=dict(document), schema=_load_schema())
    except jsonschema.ValidationError as exc:
        raise ProjectDecodeError(f"Invalid project format: {exc.message}") from exc

    raw_config = document.get("config")
    if not isinstance(raw_config, Mapping):
        # Flattened legacy layout keeps config fields at the top level, where
        # "version" is the format version rather than the pack version
        raw_config = {k: v for k, v in document.items() if k != "version"}
    config = config_from_save(raw_config)

    audios: List[AudioEntry] = []
    for raw in _pick(document, "entries", "audios", default=[]):
        entry = entry_from_save(raw, catalog)
        if entry is None:
            logger.warning("Skipping malformed entry in project: %r", raw)
            continue
        audios.append(entry)

    origin_value = _pick(document, "originEnvironment", "platform", default=None)
    try:
        origin: Optional[Environment] = Environment(origin_value)
    except ValueError:
        origin = None

    return DecodedProject(
        config=config,
        audios=tuple(audios),
        format_version=version,
        saved_at=_pick(document, "savedAtUtc", "saved_at", default=None),
        origin=origin,
    )


def decode_project(document: Any, catalog: AudioCatalog = DEFAULT_CATALOG) -> Optional[DecodedProject]:
    """Decode a save document, returning ``None`` if it is not usable."""
    try:
        return _decode(document, catalog)
    except ProjectDecodeError as exc:
        logger.info("Ignoring saved project: %s", exc)
        return None


def loads_project(text: str, catalog: AudioCatalog = DEFAULT_CATALOG) -> DecodedProject:
    """Decode a save document from JSON text for an explicit load."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProjectDecodeError(f"Project file is not valid JSON: {exc.msg}") from exc
    return _decode(document, catalog)
