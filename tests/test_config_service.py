from __future__ import annotations

import json
from pathlib import Path

import pytest

from sdv_audio_mod.config_service import DEFAULT_SETTINGS, ConfigService


def test_settings_round_trip_and_defaults(tmp_path: Path) -> None:
    cfg = ConfigService(app_dir=tmp_path)

    # Missing file returns the defaults.
    assert cfg.load_settings(cli_portable=True) == DEFAULT_SETTINGS

    payload = {"environment": "web", "autosave_interval": 5, "assets_folder": "C:/Music"}
    cfg.save_settings(payload, cli_portable=True)
    path = cfg.get_settings_path(cli_portable=True)
    assert path == tmp_path / "settings.json"
    assert json.loads(path.read_text(encoding="utf-8")) == payload

    loaded = cfg.load_settings(cli_portable=True)
    assert loaded["environment"] == "web"
    assert loaded["autosave_interval"] == 5
    assert loaded["ffmpeg_path"] == "ffmpeg"


def test_invalid_settings_fall_back_to_defaults(tmp_path: Path) -> None:
    cfg = ConfigService(app_dir=tmp_path)
    path = cfg.get_settings_path(cli_portable=True)
    path.write_text(json.dumps({"environment": "mainframe"}), encoding="utf-8")
    assert cfg.load_settings(cli_portable=True) == DEFAULT_SETTINGS

    path.write_text("{not json", encoding="utf-8")
    assert cfg.load_settings(cli_portable=True) == DEFAULT_SETTINGS


def test_save_rejects_invalid_settings(tmp_path: Path) -> None:
    cfg = ConfigService(app_dir=tmp_path)
    with pytest.raises(ValueError):
        cfg.save_settings({"autosave_interval": -1}, cli_portable=True)
    assert not cfg.get_settings_path(cli_portable=True).exists()


def test_portable_flag_selects_app_dir(tmp_path: Path) -> None:
    (tmp_path / "portable.flag").write_text("", encoding="utf-8")
    cfg = ConfigService(app_dir=tmp_path)
    assert cfg.detect_mode()
    assert cfg.get_autosave_path() == tmp_path / "autosave" / "autosave.json"
    assert cfg.get_local_storage_path() == tmp_path / "local_storage.json"
    assert cfg.get_projects_dir() == tmp_path / "projects"


def test_appdata_mode_uses_xdg(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr("sdv_audio_mod.config_service.platform.system", lambda: "Linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    cfg = ConfigService(app_dir=tmp_path / "app")
    assert not cfg.detect_mode()
    assert cfg.get_settings_path() == tmp_path / "xdg" / "SDVAudioMod" / "settings.json"
