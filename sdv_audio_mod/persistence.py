"""Auto-save, restore-on-start and explicit project files.

Two auto-save stores exist, one per environment:

* :class:`AutosaveFileStore` – the desktop slot, a single JSON file
  (``<config dir>/autosave/autosave.json``).
* :class:`LocalStorageStore` – the web slot.  Browsers keep it under
  the ``sdv-audio-mod-autosave`` key of their local storage; here the
  key/value store is a JSON file.

:class:`PersistenceScheduler` is the only component that touches the
auto-save store.  It ticks on a daemon thread, saves only when the
project is dirty, or when its revision moved past the one last written
(a project load or reset landed after that write).  It clears the flag
with ``MarkSaved(revision)`` so an edit made while the write was in
flight keeps the project dirty.
A failed write is logged and retried on the next tick.
"""

from __future__ import annotations

import datetime
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from .catalog import DEFAULT_CATALOG, AudioCatalog
from .codec import DecodedProject, decode_project, dumps_project, loads_project
from .errors import ProjectDecodeError
from .models import AudioEntry, Environment, ModConfig
from .reducer import LoadProject, MarkSaved
from .store import ProjectStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "sdv-audio-mod-autosave"

AUTOSAVE_INTERVALS: Dict[Environment, float] = {
    Environment.WEB: 15.0,
    Environment.DESKTOP: 30.0,
}

RESTORED_MESSAGES: Dict[Environment, str] = {
    Environment.WEB: "Previous project restored from browser",
    Environment.DESKTOP: "Previous project restored",
}

PathLike = Union[str, "os.PathLike[str]"]


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}-", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class AutosaveFileStore:
    """Single-file auto-save slot used by the desktop environment."""

    def __init__(self, path: PathLike) -> None:
        self.path = Path(path)

    def read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, text: str) -> None:
        _atomic_write_text(self.path, text)


class LocalStorageStore:
    """Key/value JSON file mirroring browser local storage."""

    def __init__(self, path: PathLike, key: str = STORAGE_KEY) -> None:
        self.path = Path(path)
        self.key = key

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Local storage file %s is corrupt; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def read(self) -> Optional[str]:
        value = self._load().get(self.key)
        return value if isinstance(value, str) else None

    def write(self, text: str) -> None:
        data = self._load()
        data[self.key] = text
        _atomic_write_text(self.path, json.dumps(data, indent=2, ensure_ascii=False))


class PersistenceScheduler:
    """Periodic auto-save and one-shot restore for a :class:`ProjectStore`."""

    def __init__(
        self,
        store,
        project_store: ProjectStore,
        environment: Environment,
        interval: Optional[float] = None,
        catalog: AudioCatalog = DEFAULT_CATALOG,
        notify: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.store = store
        self.project_store = project_store
        self.environment = Environment(environment)
        self.interval = interval if interval is not None else AUTOSAVE_INTERVALS[self.environment]
        self.catalog = catalog
        self.notify = notify
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._restored = False
        self._saved_revision = project_store.snapshot().revision

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def save_now(self) -> bool:
        """Run one auto-save tick.  Returns True if a snapshot was written."""
        state = self.project_store.snapshot()
        if not state.dirty and state.revision == self._saved_revision:
            return False
        try:
            text = dumps_project(state.config, state.audios, self.environment)
            self.store.write(text)
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Auto-save failed, will retry: %s", exc)
            return False
        self._saved_revision = state.revision
        self.project_store.dispatch(MarkSaved(state.revision))
        logger.debug("Auto-saved revision %d", state.revision)
        return True

    def restore(self) -> Optional[DecodedProject]:
        """Load the auto-saved project once, if it holds any entries."""
        if self._restored:
            return None
        self._restored = True
        try:
            text = self.store.read()
        except OSError as exc:
            logger.warning("Could not read auto-save: %s", exc)
            return None
        if not text:
            return None
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.info("Ignoring unreadable auto-save: %s", exc)
            return None
        decoded = decode_project(document, self.catalog)
        if decoded is None or not decoded.audios:
            return None
        self.project_store.dispatch(LoadProject(decoded.config, decoded.audios))
        # The slot already holds this project
        self._saved_revision = self.project_store.snapshot().revision
        if self.notify is not None:
            self.notify(RESTORED_MESSAGES[self.environment])
        return decoded

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.save_now()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="autosave", daemon=True)
        self._thread.start()

    def stop(self, flush: bool = True) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None
        if flush:
            self.save_now()


# ---------------------------------------------------------------- explicit files


def save_project_file(
    path: PathLike,
    config: ModConfig,
    audios: Sequence[AudioEntry],
    environment: Environment = Environment.DESKTOP,
) -> Path:
    """Write a save document to ``path`` and return the path written."""
    target = Path(path)
    if target.suffix.lower() != ".json":
        target = target.with_name(target.name + ".json")
    _atomic_write_text(target, dumps_project(config, audios, environment))
    logger.info("Project saved to %s", target)
    return target


def load_project_file(path: PathLike, catalog: AudioCatalog = DEFAULT_CATALOG) -> DecodedProject:
    """Read a save document; raises :class:`ProjectDecodeError` when unusable."""
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProjectDecodeError(f"Could not read {source}: {exc}") from exc
    return loads_project(text, catalog)


@dataclass(frozen=True)
class RecentProject:
    name: str
    path: str
    modified: str
    size: int


def list_recent_projects(projects_dir: PathLike) -> List[RecentProject]:
    """Return saved projects in ``projects_dir``, newest first."""
    root = Path(projects_dir)
    if not root.is_dir():
        return []
    found = []
    for path in root.glob("*.json"):
        try:
            stat = path.stat()
        except OSError:
            continue
        found.append((stat.st_mtime, path, stat.st_size))
    found.sort(key=lambda item: item[0], reverse=True)
    return [
        RecentProject(
            name=path.stem,
            path=str(path),
            modified=datetime.datetime.fromtimestamp(mtime).strftime("%Y-%m-%d %H:%M"),
            size=size,
        )
        for mtime, path, size in found
    ]
