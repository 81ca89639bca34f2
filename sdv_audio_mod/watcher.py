"""Poll an assets folder and report changed audio files."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .scanner import is_audio_file

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

ChangeCallback = Callable[[str, List[str]], None]
Snapshot = Dict[str, Tuple[int, int]]


def snapshot_folder(folder: Path) -> Snapshot:
    """Return ``{name: (size, mtime_ns)}`` for the audio files in ``folder``."""
    result: Snapshot = {}
    try:
        with os.scandir(folder) as it:
            for entry in it:
                try:
                    if not entry.is_file() or not is_audio_file(Path(entry.name)):
                        continue
                    stat = entry.stat()
                except OSError:
                    continue
                result[entry.name] = (stat.st_size, stat.st_mtime_ns)
    except OSError as exc:
        logger.warning("Cannot read %s: %s", folder, exc)
    return result


def diff_snapshots(before: Snapshot, after: Snapshot) -> List[str]:
    changed = {name for name in before.keys() | after.keys() if before.get(name) != after.get(name)}
    return sorted(changed)


class FolderWatcher:
    """Background thread calling ``on_change(folder, names)`` when files change."""

    def __init__(self, folder: Path, on_change: ChangeCallback, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self.folder = Path(folder)
        self.on_change = on_change
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._snapshot: Snapshot = {}

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self) -> List[str]:
        """Compare the folder with the last snapshot and report changes."""
        current = snapshot_folder(self.folder)
        changed = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        if changed:
            try:
                self.on_change(str(self.folder), changed)
            except Exception:
                logger.exception("Folder change handler failed")
        return changed

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll()

    def start(self) -> None:
        if self.running:
            return
        self._snapshot = snapshot_folder(self.folder)
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"watch:{self.folder.name}", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
