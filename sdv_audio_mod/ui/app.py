from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from PySide6.QtCore import QObject, QTimer, Signal
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QSystemTrayIcon,
    QVBoxLayout,
    QWidget,
)

from sdv_audio_mod.config_service import ConfigService
from sdv_audio_mod.converter import DEFAULT_TIMEOUT
from sdv_audio_mod.host import DesktopHost
from sdv_audio_mod.models import ProjectState
from sdv_audio_mod.persistence import AutosaveFileStore
from sdv_audio_mod.session import Notice, ProjectSession
from sdv_audio_mod.ui.dialogs import QtDialogs

logger = logging.getLogger(__name__)


class _Bridge(QObject):
    """Carries store and notice events from worker threads to the GUI thread."""

    stateChanged = Signal(object)
    noticeReceived = Signal(str, str)


def describe_state(state: ProjectState) -> str:
    config = state.config
    lines = [
        f"{config.name} {config.version} by {config.author}",
        f"Unique ID: {config.mod_id}",
        f"Audios: {len(state.audios)}" + (" (unsaved changes)" if state.dirty else ""),
    ]
    if state.assets_folder:
        lines.append(f"Assets: {state.assets_folder}" + (" (watching)" if state.watching else ""))
    if state.loading:
        lines.append(state.loading_message or "Working...")
    elif state.scan_result is not None:
        scan = state.scan_result
        lines.append(f"Scan: {scan.total_valid} valid, {scan.total_invalid} invalid, {scan.total_size}")
    active = [j for j in state.convert_jobs if not j.status.terminal]
    if active:
        lines.append(f"Converting {len(active)} file(s)")
    return "\n".join(lines)


class AudioModWindow(QMainWindow):
    def __init__(self, session: ProjectSession, bridge: _Bridge, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self.setWindowTitle("SDV Audio Mod Maker")

        self.summary = QLabel()
        self.summary.setWordWrap(True)

        buttons = QHBoxLayout()
        for label, handler in [
            ("Assets folder...", lambda: self.session.scan_folder()),
            ("Rescan", lambda: self.session.rescan()),
            ("Watch", lambda: self.session.watch_assets()),
            ("Open...", lambda: self.session.load_project()),
            ("Save...", lambda: self.session.save_project()),
            ("Export folder...", lambda: self.session.export_folder(copy_audio=True)),
            ("Export ZIP...", lambda: self.session.export_zip(include_audio=True)),
        ]:
            button = QPushButton(label)
            button.clicked.connect(handler)
            buttons.addWidget(button)

        body = QWidget()
        layout = QVBoxLayout(body)
        layout.addWidget(self.summary)
        layout.addLayout(buttons)
        layout.addStretch(1)
        self.setCentralWidget(body)

        bridge.stateChanged.connect(self._render)
        bridge.noticeReceived.connect(self._show_notice)
        self._render(session.state)

    def _render(self, state: ProjectState) -> None:
        self.summary.setText(describe_state(state))

    def _show_notice(self, message: str, level: str) -> None:
        self.statusBar().showMessage(message, 6000 if level == "error" else 3000)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = QApplication(sys.argv)
    app.setApplicationName("SDV Audio Mod Maker")

    config_service = ConfigService(app_dir=Path(sys.argv[0]).resolve().parent)
    settings = config_service.load_settings()

    tray: Optional[QSystemTrayIcon] = None
    if QSystemTrayIcon.isSystemTrayAvailable():
        tray = QSystemTrayIcon(app.windowIcon(), app)
        tray.show()
    dialogs = QtDialogs(tray=tray)
    host = DesktopHost(
        dialogs=dialogs,
        ffmpeg=settings.get("ffmpeg_path", "ffmpeg"),
        ffprobe=settings.get("ffprobe_path", "ffprobe"),
        convert_timeout=float(settings.get("convert_timeout", DEFAULT_TIMEOUT)),
    )

    bridge = _Bridge()

    def _notify(notice: Notice) -> None:
        bridge.noticeReceived.emit(notice.message, notice.level)

    session = ProjectSession(
        host,
        autosave_store=AutosaveFileStore(config_service.get_autosave_path()),
        autosave_interval=settings.get("autosave_interval"),
        notifier=_notify,
    )

    def _on_state(state: ProjectState, _command: Any) -> None:
        bridge.stateChanged.emit(state)

    session.store.subscribe(_on_state)

    win = AudioModWindow(session, bridge)
    dialogs.parent = win
    win.resize(720, 240)
    win.show()

    session.start()
    if settings.get("assets_folder"):
        session.scan_folder(settings["assets_folder"])
    app.aboutToQuit.connect(session.shutdown)

    if str(os.environ.get("SDV_AUDIO_MOD_SMOKE_TEST", "")).strip() == "1":
        QTimer.singleShot(250, app.quit)

    try:
        return app.exec()
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
