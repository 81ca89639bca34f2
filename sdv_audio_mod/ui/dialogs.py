from __future__ import annotations

import logging
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal, Slot
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import QFileDialog, QMessageBox, QSystemTrayIcon, QWidget

from sdv_audio_mod.host import FileFilter

logger = logging.getLogger(__name__)


def _filter_string(filters: Sequence[FileFilter]) -> str:
    parts = []
    for label, extensions in filters:
        patterns = " ".join(f"*.{ext}" for ext in extensions)
        parts.append(f"{label} ({patterns})")
    parts.append("All files (*)")
    return ";;".join(parts)


class _TrayMessages(QObject):
    """Shows tray messages on the thread that owns this object (the GUI thread)."""

    message = Signal(str, str)

    def __init__(self, tray: Optional[QSystemTrayIcon]) -> None:
        super().__init__()
        self.tray = tray
        self.message.connect(self.show_message)

    @Slot(str, str)
    def show_message(self, title: str, body: str) -> None:
        if self.tray is not None and QSystemTrayIcon.supportsMessages():
            self.tray.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, 4000)
            return
        logger.debug("No tray notifications available: %s", title)


class QtDialogs:
    """Native dialogs, clipboard and tray notifications for the desktop host.

    Dialogs and the clipboard must be used from the GUI thread;
    :meth:`notify` may be called from worker threads.
    """

    def __init__(self, parent: Optional[QWidget] = None, tray: Optional[QSystemTrayIcon] = None) -> None:
        self.parent = parent
        self._messages = _TrayMessages(tray)

    def pick_folder(self, title: str) -> Optional[str]:
        path = QFileDialog.getExistingDirectory(self.parent, title)
        return path or None

    def pick_save_location(self, default_name: str, filters: Sequence[FileFilter]) -> Optional[str]:
        path, _selected = QFileDialog.getSaveFileName(self.parent, "Save as", default_name, _filter_string(filters))
        return path or None

    def pick_open_location(self, filters: Sequence[FileFilter]) -> Optional[str]:
        path, _selected = QFileDialog.getOpenFileName(self.parent, "Open", "", _filter_string(filters))
        return path or None

    def confirm(self, message: str) -> bool:
        answer = QMessageBox.question(
            self.parent,
            "Confirm",
            message,
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        return answer == QMessageBox.StandardButton.Yes

    def write_clipboard(self, text: str) -> None:
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            raise RuntimeError("No clipboard available")
        clipboard.setText(text)

    def notify(self, title: str, body: str) -> None:
        self._messages.message.emit(title, body)
