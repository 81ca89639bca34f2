"""Host capability facade.

The core never asks which environment it runs in; it talks to a
:class:`HostCapabilities` object chosen once by :func:`create_host`.

* :class:`DesktopHost` can read and write the local filesystem, probe
  audio files, run ffmpeg and watch folders.  Dialogs, the clipboard
  and notifications are delegated to a :class:`DialogProvider`
  (the PySide6 one in :mod:`sdv_audio_mod.ui.dialogs` when the GUI is
  running); without a provider they fall back to harmless defaults.
* :class:`WebHost` mirrors the restricted browser build: no folder
  picker, no probing, no conversion and no watching.  Every such call
  returns a failure result describing the fallback.

No method here raises for an I/O problem; failures are returned as
:class:`~sdv_audio_mod.models.HostResult` or
:class:`~sdv_audio_mod.models.ConvertResult`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple, Union

from .converter import DEFAULT_TIMEOUT, convert_audio
from .models import AudioFileInfo, ConvertResult, Environment, HostResult
from .scanner import AudioScanner
from .watcher import DEFAULT_POLL_INTERVAL, ChangeCallback, FolderWatcher

logger = logging.getLogger(__name__)

# (label, extensions) pairs, e.g. ("ZIP", ("zip",))
FileFilter = Tuple[str, Sequence[str]]

UNSUPPORTED_WATCH = "Watching is not supported here; use rescan to refresh the folder"
DESKTOP_ONLY = "Only available in the Desktop version"


class DialogProvider(Protocol):
    def pick_folder(self, title: str) -> Optional[str]: ...

    def pick_save_location(self, default_name: str, filters: Sequence[FileFilter]) -> Optional[str]: ...

    def pick_open_location(self, filters: Sequence[FileFilter]) -> Optional[str]: ...

    def confirm(self, message: str) -> bool: ...

    def write_clipboard(self, text: str) -> None: ...

    def notify(self, title: str, body: str) -> None: ...


class HostCapabilities(ABC):
    """Operations the core may ask of its host."""

    environment: Environment

    @property
    def is_desktop(self) -> bool:
        return self.environment is Environment.DESKTOP

    @abstractmethod
    def pick_folder(self, title: str = "Select folder") -> Optional[str]:
        """Return a chosen directory, or ``None`` if cancelled/unsupported."""

    @abstractmethod
    def pick_save_location(self, default_name: str, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        """Return where to save a file, or ``None`` if cancelled."""

    @abstractmethod
    def pick_open_location(self, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        """Return a file to open, or ``None`` if cancelled/unsupported."""

    @abstractmethod
    def confirm(self, message: str) -> bool:
        ...

    @abstractmethod
    def write_clipboard(self, text: str) -> HostResult:
        ...

    @abstractmethod
    def notify(self, title: str, body: str) -> None:
        ...

    @abstractmethod
    def probe_audio_file(self, path: Union[str, Path]) -> HostResult:
        ...

    @abstractmethod
    def convert(self, path: Union[str, Path], target_format: str,
                output_dir: Optional[Union[str, Path]] = None) -> ConvertResult:
        ...

    @abstractmethod
    def watch_folder(self, path: Union[str, Path], on_change: ChangeCallback) -> HostResult:
        ...

    def stop_watching(self) -> None:
        """Stop any active folder watch.  No-op by default."""


class DesktopHost(HostCapabilities):
    environment = Environment.DESKTOP

    def __init__(
        self,
        dialogs: Optional[DialogProvider] = None,
        scanner: Optional[AudioScanner] = None,
        converter: Callable[..., ConvertResult] = convert_audio,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        convert_timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.dialogs = dialogs
        self.scanner = scanner or AudioScanner()
        self.converter = converter
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.convert_timeout = convert_timeout
        self.poll_interval = poll_interval
        self._watcher: Optional[FolderWatcher] = None

    def pick_folder(self, title: str = "Select folder") -> Optional[str]:
        if self.dialogs is None:
            return None
        return self.dialogs.pick_folder(title)

    def pick_save_location(self, default_name: str, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        if self.dialogs is None:
            return None
        return self.dialogs.pick_save_location(default_name, filters)

    def pick_open_location(self, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        if self.dialogs is None:
            return None
        return self.dialogs.pick_open_location(filters)

    def confirm(self, message: str) -> bool:
        if self.dialogs is None:
            return False
        return bool(self.dialogs.confirm(message))

    def write_clipboard(self, text: str) -> HostResult:
        if self.dialogs is None:
            return HostResult.failure("Clipboard is not available")
        try:
            self.dialogs.write_clipboard(text)
        except (RuntimeError, OSError) as exc:
            return HostResult.failure(f"Clipboard write failed: {exc}")
        return HostResult.success()

    def notify(self, title: str, body: str) -> None:
        logger.info("%s: %s", title, body)
        if self.dialogs is None:
            return
        try:
            self.dialogs.notify(title, body)
        except (RuntimeError, OSError) as exc:
            logger.warning("Notification failed: %s", exc)

    def probe_audio_file(self, path: Union[str, Path]) -> HostResult:
        target = Path(path)
        if not target.exists():
            return HostResult.failure(f"File does not exist: {target}")
        info: AudioFileInfo = self.scanner.probe_file(target)
        return HostResult.success(info)

    def convert(self, path: Union[str, Path], target_format: str,
                output_dir: Optional[Union[str, Path]] = None) -> ConvertResult:
        return self.converter(
            path,
            target_format,
            output_dir=output_dir,
            ffmpeg=self.ffmpeg,
            ffprobe=self.ffprobe,
            timeout=self.convert_timeout,
        )

    def watch_folder(self, path: Union[str, Path], on_change: ChangeCallback) -> HostResult:
        folder = Path(path)
        if not folder.is_dir():
            return HostResult.failure("Invalid folder path")
        self.stop_watching()
        self._watcher = FolderWatcher(folder, on_change, interval=self.poll_interval)
        self._watcher.start()
        return HostResult.success(f"Watching: {folder}")

    def stop_watching(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None


class WebHost(HostCapabilities):
    environment = Environment.WEB

    def __init__(
        self,
        clipboard: Optional[Callable[[str], Any]] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self._clipboard = clipboard
        self._confirm = confirm

    def pick_folder(self, title: str = "Select folder") -> Optional[str]:
        return None

    def pick_save_location(self, default_name: str, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        # Browsers save downloads under the suggested name
        return default_name

    def pick_open_location(self, filters: Sequence[FileFilter] = ()) -> Optional[str]:
        return None

    def confirm(self, message: str) -> bool:
        if self._confirm is None:
            return False
        return bool(self._confirm(message))

    def write_clipboard(self, text: str) -> HostResult:
        if self._clipboard is None:
            return HostResult.failure("Clipboard access was denied")
        try:
            self._clipboard(text)
        except (RuntimeError, OSError) as exc:
            return HostResult.failure(f"Clipboard write failed: {exc}")
        return HostResult.success()

    def notify(self, title: str, body: str) -> None:
        logger.info("%s: %s", title, body)

    def probe_audio_file(self, path: Union[str, Path]) -> HostResult:
        return HostResult.failure(DESKTOP_ONLY)

    def convert(self, path: Union[str, Path], target_format: str,
                output_dir: Optional[Union[str, Path]] = None) -> ConvertResult:
        return ConvertResult(False, error=f"Conversion: {DESKTOP_ONLY.lower()}")

    def watch_folder(self, path: Union[str, Path], on_change: ChangeCallback) -> HostResult:
        return HostResult.failure(UNSUPPORTED_WATCH)


def create_host(environment: Union[str, Environment], **kwargs: Any) -> HostCapabilities:
    """Build the host for ``environment``; the only environment switch."""
    if Environment(environment) is Environment.DESKTOP:
        return DesktopHost(**kwargs)
    return WebHost(**kwargs)
