from __future__ import annotations

import json
import threading
import time
import zipfile
from pathlib import Path
from typing import List

import pytest

from generate_test_data import create_file, generate, vorbis_ogg_bytes
from sdv_audio_mod.codec import dumps_project
from sdv_audio_mod.host import DesktopHost, WebHost
from sdv_audio_mod.models import (
    AudioCategory,
    AudioEntry,
    ConvertResult,
    EntryKind,
    Environment,
    JobStatus,
    JukeboxConfig,
    ModConfig,
)
from sdv_audio_mod.persistence import AutosaveFileStore
from sdv_audio_mod.reducer import SelectAllValid, SetAssetsFolder
from sdv_audio_mod.scanner import AudioScanner
from sdv_audio_mod.session import EMPTY_PROJECT, Notice, ProjectSession


class FakeDialogs:
    def __init__(self, folder: str = "", save_path: str = "") -> None:
        self.folder = folder
        self.save_path = save_path
        self.clipboard: List[str] = []

    def pick_folder(self, title):
        return self.folder or None

    def pick_save_location(self, default_name, filters):
        return self.save_path or None

    def pick_open_location(self, filters):
        return self.save_path or None

    def confirm(self, message):
        return True

    def write_clipboard(self, text):
        self.clipboard.append(text)

    def notify(self, title, body):
        pass


def fake_converter(path, target_format, output_dir=None, **kwargs):
    source = Path(path)
    if source.suffix == ".bad":
        return ConvertResult(False, error="FFmpeg error: broken input")
    output = source.with_suffix(".ogg")
    output.write_bytes(vorbis_ogg_bytes())
    return ConvertResult(True, output_path=str(output))


@pytest.fixture
def notices() -> List[Notice]:
    return []


@pytest.fixture
def dialogs() -> FakeDialogs:
    return FakeDialogs()


@pytest.fixture
def session(notices, dialogs):
    host = DesktopHost(dialogs=dialogs, converter=fake_converter)
    s = ProjectSession(host, notifier=notices.append, max_workers=2)
    yield s
    s.shutdown()


def _music(entry_id: str, *files: str) -> AudioEntry:
    return AudioEntry(entry_id, AudioCategory.MUSIC, files or (f"{entry_id}.ogg",))


def test_add_entry_normalises_and_validates(session, notices) -> None:
    sound = AudioEntry(" spring1 ", AudioCategory.SOUND, ("s.ogg",), looped=True, jukebox=JukeboxConfig("x"))
    assert session.add_entry(sound)
    stored = session.state.audios[0]
    assert stored.id == "spring1"
    assert stored.kind is EntryKind.REPLACE
    assert stored.looped is False and stored.jukebox is None

    assert not session.add_entry(_music("SPRING1"))
    assert notices[-1].level == "error"
    assert len(session.state.audios) == 1
    assert session.state.dirty


def test_update_remove_and_reorder(session) -> None:
    session.add_entry(_music("a"))
    session.add_entry(_music("b"))
    assert not session.update_entry(0, _music("b"))
    assert session.update_entry(0, _music("a", "a2.ogg"))
    assert session.state.audios[0].files == ("a2.ogg",)
    assert session.reorder(0, 1)
    assert [a.id for a in session.state.audios] == ["b", "a"]
    assert not session.remove_entry(7)
    assert session.remove_entry(0)
    assert [a.id for a in session.state.audios] == ["a"]


def test_update_config_rejects_bad_unique_id(session, notices) -> None:
    assert session.update_config(name="Night Tunes", mod_id="Jane.NightTunes")
    assert session.state.config.name == "Night Tunes"
    assert not session.update_config(mod_id="no dots here")
    assert session.state.config.mod_id == "Jane.NightTunes"
    assert notices[-1].level == "error"


def test_scan_and_add_selected(session, tmp_path: Path) -> None:
    assets = generate(tmp_path)
    session.scan_folder(str(assets)).result(timeout=10)
    state = session.state
    assert not state.loading
    assert state.assets_folder == str(assets)
    assert state.scan_result.total_valid == 2

    session.store.dispatch(SelectAllValid())
    added = session.add_selected_scan_files(AudioCategory.MUSIC)
    assert [a.id for a in added] == ["a", "c"]
    assert session.add_selected_scan_files(AudioCategory.MUSIC) == []


def test_scan_uses_host_picker(session, dialogs, tmp_path: Path) -> None:
    assert session.scan_folder() is None
    dialogs.folder = str(generate(tmp_path))
    session.scan_folder().result(timeout=10)
    assert session.state.scan_result is not None


def test_scan_missing_folder_becomes_notice(session, notices, tmp_path: Path) -> None:
    session.scan_folder(str(tmp_path / "missing")).result(timeout=10)
    assert session.state.scan_result is None
    assert not session.state.loading
    assert notices[-1].level == "error"


def test_convert_jobs_reach_terminal_status(session, tmp_path: Path) -> None:
    good = create_file(tmp_path / "song.mp3", b"x")
    bad = create_file(tmp_path / "broken.bad", b"x")
    statuses = [session.convert_file(str(p)).result(timeout=10) for p in (good, bad)]
    assert statuses == [JobStatus.DONE, JobStatus.ERROR]
    jobs = {j.source_file: j for j in session.state.convert_jobs}
    assert jobs["song.mp3"].progress == 100
    assert jobs["song.mp3"].output_path == str(tmp_path / "song.ogg")
    assert "broken input" in jobs["broken.bad"].error


def test_convert_unsupported_rescans(session, tmp_path: Path) -> None:
    assets = tmp_path / "assets"
    create_file(assets / "track.mp3", b"ID3")
    session.scan_folder(str(assets)).result(timeout=10)
    futures = session.convert_unsupported()
    assert len(futures) == 1
    futures[0].result(timeout=10)
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline:
        scan = session.state.scan_result
        if scan is not None and scan.find("track.ogg") is not None:
            break
        time.sleep(0.02)
    assert session.state.scan_result.find("track.ogg").accepted


def test_exports_reject_empty_project(session, notices) -> None:
    assert session.export_zip("/tmp/never.zip") is None
    assert session.download_archive() is None
    assert notices[-1] == Notice(EMPTY_PROJECT, "error")


def test_export_zip_and_downloads(session, tmp_path: Path) -> None:
    session.add_entry(_music("spring1"))
    target = tmp_path / "pack.zip"
    future = session.export_zip(str(target))
    assert future is not None
    result = future.result(timeout=10)
    assert result is not None and result.success
    with zipfile.ZipFile(target) as zf:
        assert "[CP] My Audio Mod/manifest.json" in zf.namelist()
    downloads = session.download_documents()
    assert [d.filename for d in downloads] == ["manifest.json", "content.json", "default.json"]
    name, data = session.download_archive()
    assert name == "[CP] My Audio Mod.zip" and data[:2] == b"PK"


def test_web_session_cannot_export_folder(notices, tmp_path: Path) -> None:
    session = ProjectSession(WebHost(), notifier=notices.append)
    try:
        session.add_entry(_music("spring1"))
        assert session.export_folder(str(tmp_path)) is None
        assert session.download_archive() is not None
        session.store.dispatch(SetAssetsFolder(str(tmp_path)))
        assert not session.watch_assets()
        assert notices[-1].level == "warning"
        assert not session.state.watching
    finally:
        session.shutdown()


def test_save_and_load_project(session, dialogs, notices, tmp_path: Path) -> None:
    session.add_entry(_music("spring1"))
    path = session.save_project(str(tmp_path / "night.json"))
    assert path is not None and not session.state.dirty

    dialogs.save_path = str(path)
    other = ProjectSession(DesktopHost(dialogs=dialogs), notifier=notices.append)
    try:
        decoded = other.load_project()
        assert decoded is not None
        assert [a.id for a in other.state.audios] == ["spring1"]
        assert "from Desktop" in notices[-1].message
    finally:
        other.shutdown()

    (tmp_path / "bad.json").write_text("{}", encoding="utf-8")
    assert session.load_project(str(tmp_path / "bad.json")) is None
    assert notices[-1].level == "error"


def test_copy_document_to_clipboard(session, dialogs) -> None:
    session.add_entry(_music("spring1"))
    assert session.copy_document("manifest")
    assert json.loads(dialogs.clipboard[0])["UniqueID"] == "YourName.AudioMod"
    assert not session.copy_document("readme")


def test_start_restores_and_shutdown_flushes(notices, tmp_path: Path) -> None:
    slot = AutosaveFileStore(tmp_path / "autosave.json")
    slot.write(dumps_project(ModConfig("Jane.Mod", "Mod", "Jane", "1.0.0"), [_music("spring1")], Environment.DESKTOP))

    session = ProjectSession(DesktopHost(), autosave_store=slot, autosave_interval=60, notifier=notices.append)
    restored = session.start()
    assert restored is not None
    assert session.state.config.mod_id == "Jane.Mod"
    assert notices[0].message == "Previous project restored"

    session.add_entry(_music("summer1"))
    session.shutdown()
    saved = json.loads(slot.read())
    assert [e["id"] for e in saved["entries"]] == ["spring1", "summer1"]


def test_export_runs_in_background_with_loading_flag(session, tmp_path: Path) -> None:
    seen = []
    session.store.subscribe(lambda state, command: seen.append((state.loading, state.loading_message)))
    session.add_entry(_music("spring1"))
    assets = tmp_path / "assets"
    create_file(assets / "spring1.ogg", vorbis_ogg_bytes())
    session.store.dispatch(SetAssetsFolder(str(assets)))

    future = session.export_folder(str(tmp_path / "out"), copy_audio=True)
    assert future is not None
    result = future.result(timeout=10)
    assert result.success
    assert (True, "Exporting...") in seen
    assert not session.state.loading
    assert (tmp_path / "out" / "[CP] My Audio Mod" / "assets" / "spring1.ogg").exists()


class GatedScanner(AudioScanner):
    """Scanner whose calls finish only when their gate is opened."""

    def __init__(self) -> None:
        super().__init__()
        self.gates = [threading.Event(), threading.Event()]
        self.calls = 0
        self._lock = threading.Lock()

    def scan(self, folder):
        with self._lock:
            gate = self.gates[self.calls]
            self.calls += 1
        assert gate.wait(timeout=10)
        return super().scan(folder)


def test_older_scan_does_not_clear_loading(notices, tmp_path: Path) -> None:
    scanner = GatedScanner()
    session = ProjectSession(DesktopHost(), scanner=scanner, notifier=notices.append, max_workers=2)
    try:
        assets = generate(tmp_path)
        first = session.scan_folder(str(assets))
        deadline = time.monotonic() + 5
        while scanner.calls < 1 and time.monotonic() < deadline:
            time.sleep(0.01)
        second = session.rescan()
        scanner.gates[0].set()
        first.result(timeout=10)
        assert session.state.loading
        scanner.gates[1].set()
        second.result(timeout=10)
        assert not session.state.loading
        assert session.state.scan_result.total_valid == 2
    finally:
        for gate in scanner.gates:
            gate.set()
        session.shutdown()
