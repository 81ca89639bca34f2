"""Settings and data-directory management for SDV Audio Mod Maker.

This module decides where the application keeps its files.  It
supports both AppData and portable installation modes, resolves the
appropriate directory, and reads/writes ``settings.json`` with JSON
schema validation.

Portable mode is selected by passing ``--portable`` to the CLI or by
placing a ``portable.flag`` file in the application directory.  In
portable mode every file lives next to the application.

In AppData mode on Windows the directory is ``%APPDATA%\\SDVAudioMod``;
on other systems it defaults to ``$XDG_CONFIG_HOME/SDVAudioMod`` or
``~/.config/SDVAudioMod``.

Layout of the resolved directory::

    settings.json          user settings (see schemas/settings.schema.json)
    autosave/autosave.json desktop auto-save slot
    local_storage.json     key/value file used by the web environment
    projects/              explicitly saved projects

Example usage::

    from sdv_audio_mod.config_service import ConfigService

    config_service = ConfigService(app_dir=Path.cwd())
    settings = config_service.load_settings()
    settings["assets_folder"] = "C:/Mods/MyMusic"
    config_service.save_settings(settings)
"""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema

logger = logging.getLogger(__name__)

APP_NAME = "SDVAudioMod"
PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_SETTINGS: Dict[str, Any] = {
    "environment": "desktop",
    "assets_folder": None,
    "ffmpeg_path": "ffmpeg",
    "ffprobe_path": "ffprobe",
    "convert_timeout": 300,
}


def _get_appdata_root(app_name: str = APP_NAME) -> Path:
    """Return the platform-specific base directory for application files."""
    system = platform.system().lower()
    if system == "windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / app_name
        return Path.home() / f"AppData/Roaming/{app_name}"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / app_name
    return Path.home() / ".config" / app_name


def _load_json(file_path: Path) -> Any:
    if not file_path.exists():
        return None
    with file_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _save_json(data: Any, file_path: Path) -> None:
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def _validate_json(data: Any, schema_path: Path) -> None:
    """Validate ``data`` against the schema at ``schema_path``."""
    schema = _load_json(schema_path)
    if not schema:
        return
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ValueError(f"Invalid settings: {exc.message}") from exc


@dataclass
class ConfigService:
    """Resolve and manage SDV Audio Mod Maker settings."""

    app_dir: Path
    portable_flag_filename: str = "portable.flag"
    settings_filename: str = "settings.json"
    autosave_dirname: str = "autosave"
    autosave_filename: str = "autosave.json"
    local_storage_filename: str = "local_storage.json"
    projects_dirname: str = "projects"
    schema_dir: Path = PACKAGE_DIR / "schemas"
    settings_schema: str = "settings.schema.json"
    _cached_mode: Optional[bool] = field(default=None, init=False, repr=False)

    def _portable_flag_exists(self) -> bool:
        return (Path(self.app_dir) / self.portable_flag_filename).exists()

    def detect_mode(self, cli_portable: bool = False) -> bool:
        """Return ``True`` if portable mode should be used.

        The result is cached on first call so that every path this
        instance hands out comes from the same directory.
        """
        if self._cached_mode is None:
            self._cached_mode = cli_portable or self._portable_flag_exists()
        return self._cached_mode

    def get_config_dir(self, cli_portable: bool = False) -> Path:
        if self.detect_mode(cli_portable=cli_portable):
            return Path(self.app_dir)
        return _get_appdata_root()

    def get_settings_path(self, cli_portable: bool = False) -> Path:
        return self.get_config_dir(cli_portable) / self.settings_filename

    def get_autosave_path(self, cli_portable: bool = False) -> Path:
        return self.get_config_dir(cli_portable) / self.autosave_dirname / self.autosave_filename

    def get_local_storage_path(self, cli_portable: bool = False) -> Path:
        return self.get_config_dir(cli_portable) / self.local_storage_filename

    def get_projects_dir(self, cli_portable: bool = False) -> Path:
        return self.get_config_dir(cli_portable) / self.projects_dirname

    def get_schema_path(self, schema_name: str) -> Path:
        return Path(self.schema_dir) / schema_name

    def load_settings(self, cli_portable: bool = False) -> Dict[str, Any]:
        """Return defaults overlaid with the stored settings.

        A settings file that is unreadable or fails validation is
        ignored with a warning; defaults are returned instead.
        """
        settings = dict(DEFAULT_SETTINGS)
        path = self.get_settings_path(cli_portable)
        try:
            data = _load_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Could not read %s: %s. Falling back to defaults.", path, exc)
            return settings
        if data is None:
            return settings
        try:
            _validate_json(data, self.get_schema_path(self.settings_schema))
        except ValueError as exc:
            logger.warning("%s. Falling back to defaults.", exc)
            return settings
        settings.update(data)
        return settings

    def save_settings(self, settings: Dict[str, Any], cli_portable: bool = False) -> None:
        """Validate and write ``settings``; raises ``ValueError`` if invalid."""
        _validate_json(settings, self.get_schema_path(self.settings_schema))
        _save_json(settings, self.get_settings_path(cli_portable))
