"""Explicit application context for one open project.

A :class:`ProjectSession` owns everything with a lifetime: the
:class:`~sdv_audio_mod.store.ProjectStore`, the host, the auto-save
scheduler, a worker pool for scans and conversions, and the folder
watch.  Nothing here is global; create one session per window (or per
CLI invocation) and call :meth:`ProjectSession.shutdown` when done.

Session operations never raise to their caller.  Validation problems,
I/O failures and unsupported host features are reported as
:class:`Notice` objects through the ``notifier`` callback, and the
operation returns ``None``/``False`` or a failed result.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .builder import CONTENT_FILENAME, I18N_FILENAME, MANIFEST_FILENAME, build_documents
from .catalog import DEFAULT_CATALOG, AudioCatalog
from .codec import DecodedProject
from .errors import AudioModError, ProjectDecodeError, ScanError, ValidationError
from .host import HostCapabilities
from .models import (
    AudioCategory,
    AudioEntry,
    ConvertJob,
    ConvertResult,
    ExportResult,
    JobStatus,
    ProjectState,
)
from .packaging import (
    Download,
    archive_filename,
    build_web_archive,
    export_to_folder,
    export_to_zip,
    web_downloads,
)
from .persistence import PersistenceScheduler, load_project_file, save_project_file
from .reducer import (
    AddAudio,
    AddConvertJob,
    LoadProject,
    MarkSaved,
    RemoveAudio,
    ReorderAudio,
    SetAssetsFolder,
    SetConfigFull,
    SetLoading,
    SetScanResult,
    SetWatching,
    UpdateAudio,
    UpdateConvertJob,
)
from .scanner import CONVERTIBLE_FORMATS, AudioScanner
from .store import ProjectStore
from .validation import normalize_entry, validate_config, validate_new_entry, validate_replacement

logger = logging.getLogger(__name__)

DOCUMENT_NAMES = {
    "manifest": MANIFEST_FILENAME,
    "content": CONTENT_FILENAME,
    "i18n": I18N_FILENAME,
}

EMPTY_PROJECT = "Add at least one audio before exporting"


@dataclass(frozen=True)
class Notice:
    message: str
    level: str = "info"


Notifier = Callable[[Notice], None]


def _log_notice(notice: Notice) -> None:
    level = logging.ERROR if notice.level == "error" else logging.INFO
    logger.log(level, notice.message)


class ProjectSession:
    """Operations on one project, bound to a host and a store."""

    def __init__(
        self,
        host: HostCapabilities,
        project_store: Optional[ProjectStore] = None,
        autosave_store=None,
        autosave_interval: Optional[float] = None,
        catalog: AudioCatalog = DEFAULT_CATALOG,
        scanner: Optional[AudioScanner] = None,
        notifier: Optional[Notifier] = None,
        max_workers: int = 4,
    ) -> None:
        self.host = host
        self.store = project_store or ProjectStore()
        self.catalog = catalog
        self.scanner = scanner or AudioScanner()
        self.notifier = notifier or _log_notice
        self.scheduler: Optional[PersistenceScheduler] = None
        if autosave_store is not None:
            self.scheduler = PersistenceScheduler(
                autosave_store,
                self.store,
                host.environment,
                interval=autosave_interval,
                catalog=catalog,
                notify=lambda message: self._notice(message, "info"),
            )
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="session")
        self._closed = False
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle

    @property
    def state(self) -> ProjectState:
        return self.store.snapshot()

    def start(self) -> Optional[DecodedProject]:
        """Restore the auto-saved project and start the auto-save timer."""
        if self.scheduler is None:
            return None
        restored = self.scheduler.restore()
        self.scheduler.start()
        return restored

    def shutdown(self) -> None:
        """Stop timers, the folder watch and the worker pool, in that order."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        if self.scheduler is not None:
            self.scheduler.stop()
        self.host.stop_watching()
        self.store.dispatch(SetWatching(False))
        self._executor.shutdown(wait=True)

    def _notice(self, message: str, level: str = "info") -> None:
        try:
            self.notifier(Notice(message, level))
        except Exception:
            logger.exception("Notifier failed")

    def _submit(self, fn, *args) -> Optional[Future]:
        with self._lock:
            if self._closed:
                return None
            return self._executor.submit(fn, *args)

    # ------------------------------------------------------------------
    # Editing

    def add_entry(self, entry: AudioEntry) -> bool:
        entry = normalize_entry(entry, self.catalog)
        try:
            validate_new_entry(self.state.audios, entry)
        except ValidationError as exc:
            self._notice(str(exc), "error")
            return False
        self.store.dispatch(AddAudio(entry))
        return True

    def update_entry(self, index: int, entry: AudioEntry) -> bool:
        entry = normalize_entry(entry, self.catalog)
        try:
            validate_replacement(self.state.audios, index, entry)
        except ValidationError as exc:
            self._notice(str(exc), "error")
            return False
        self.store.dispatch(UpdateAudio(index, entry))
        return True

    def remove_entry(self, index: int) -> bool:
        before = self.state
        return self.store.dispatch(RemoveAudio(index)) is not before

    def reorder(self, from_index: int, to_index: int) -> bool:
        before = self.state
        return self.store.dispatch(ReorderAudio(from_index, to_index)) is not before

    def update_config(self, **changes: str) -> bool:
        try:
            config = replace(self.state.config, **changes)
            validate_config(config)
        except (TypeError, ValidationError) as exc:
            self._notice(str(exc), "error")
            return False
        self.store.dispatch(SetConfigFull(config))
        return True

    def add_selected_scan_files(self, category: AudioCategory = AudioCategory.SOUND) -> List[AudioEntry]:
        """Create one entry per selected scan file; ids come from file stems."""
        state = self.state
        if state.scan_result is None:
            return []
        added: List[AudioEntry] = []
        for name in sorted(state.selected_scan_files, key=str.lower):
            entry = normalize_entry(AudioEntry(id=Path(name).stem, category=category, files=(name,)), self.catalog)
            try:
                validate_new_entry(self.state.audios, entry)
            except ValidationError:
                logger.debug("Skipping %s: already in project", name)
                continue
            self.store.dispatch(AddAudio(entry))
            added.append(entry)
        if added:
            self._notice(f"Added {len(added)} audio(s) from scan", "success")
        return added

    # ------------------------------------------------------------------
    # Scanning and watching

    def _scan_job(self, folder: str, generation: int) -> None:
        try:
            try:
                result = self.scanner.scan(folder)
            except ScanError as exc:
                self._notice(str(exc), "error")
                result = None
            self.store.dispatch(SetScanResult(result, generation))
        finally:
            # A newer scan still owns the loading flag
            if self.store.is_latest_scan(generation):
                self.store.dispatch(SetLoading(False))

    def scan_folder(self, path: Optional[str] = None) -> Optional[Future]:
        """Scan ``path`` (or a folder picked through the host) in the background."""
        folder = path or self.host.pick_folder("Select assets folder")
        if not folder:
            return None
        self.store.dispatch(SetAssetsFolder(str(folder)))
        return self.rescan()

    def rescan(self) -> Optional[Future]:
        folder = self.state.assets_folder
        if not folder:
            self._notice("Select an assets folder first", "error")
            return None
        generation = self.store.next_scan_generation()
        self.store.dispatch(SetLoading(True, "Scanning audio files..."))
        future = self._submit(self._scan_job, folder, generation)
        if future is None:
            self.store.dispatch(SetLoading(False))
        return future

    def _on_folder_change(self, folder: str, names: List[str]) -> None:
        logger.debug("Change in %s: %s", folder, names)
        if folder == self.state.assets_folder:
            self.rescan()

    def watch_assets(self) -> bool:
        folder = self.state.assets_folder
        if not folder:
            self._notice("Select an assets folder first", "error")
            return False
        result = self.host.watch_folder(folder, self._on_folder_change)
        if not result.ok:
            self._notice(result.error or "Folder watching failed", "warning")
            return False
        self.store.dispatch(SetWatching(True))
        return True

    def stop_watching(self) -> None:
        self.host.stop_watching()
        self.store.dispatch(SetWatching(False))

    # ------------------------------------------------------------------
    # Conversion

    def _convert_job(self, job: ConvertJob, output_dir: Optional[str]) -> JobStatus:
        self.store.dispatch(UpdateConvertJob(job.id, progress=10))
        try:
            result = self.host.convert(job.source_path, job.target_format, output_dir)
        except OSError as exc:
            result = ConvertResult(False, error=str(exc))
        if result.success:
            self.store.dispatch(UpdateConvertJob(job.id, status=JobStatus.DONE, output_path=result.output_path))
            self._notice(f"Converted {job.source_file}", "success")
            return JobStatus.DONE
        error = result.error or "Conversion failed"
        self.store.dispatch(UpdateConvertJob(job.id, status=JobStatus.ERROR, error=error))
        self._notice(f"{job.source_file}: {error}", "error")
        return JobStatus.ERROR

    def convert_file(self, source_path: str, target_format: str = "ogg",
                     output_dir: Optional[str] = None) -> Optional[Future]:
        source = Path(source_path)
        job = ConvertJob(
            id=uuid.uuid4().hex,
            source_file=source.name,
            source_path=str(source),
            target_format=target_format,
        )
        self.store.dispatch(AddConvertJob(job))
        future = self._submit(self._convert_job, job, output_dir)
        if future is None:
            self.store.dispatch(UpdateConvertJob(job.id, status=JobStatus.ERROR, error="Session closed"))
        return future

    def _convert_many(self, paths: List[str], target_format: str) -> List[Future]:
        if not paths:
            return []
        futures = [f for f in (self.convert_file(p, target_format) for p in paths) if f is not None]
        if futures and self.state.assets_folder:
            # Refresh the scan once every job has finished
            remaining = [len(futures)]
            counter_lock = threading.Lock()

            def _done(_future: Future) -> None:
                with counter_lock:
                    remaining[0] -= 1
                    finished = remaining[0] == 0
                if finished:
                    self.rescan()

            for future in futures:
                future.add_done_callback(_done)
        return futures

    def convert_selected(self, target_format: str = "ogg") -> List[Future]:
        """Convert every selected scan file; jobs run concurrently."""
        state = self.state
        if state.scan_result is None:
            return []
        paths = []
        for name in sorted(state.selected_scan_files, key=str.lower):
            info = state.scan_result.find(name)
            if info is not None:
                paths.append(info.path)
        return self._convert_many(paths, target_format)

    def convert_unsupported(self, target_format: str = "ogg") -> List[Future]:
        """Convert every scanned file the game cannot load as-is."""
        state = self.state
        if state.scan_result is None:
            return []
        paths = [
            f.path for f in state.scan_result.files
            if not f.accepted and (f.format in CONVERTIBLE_FORMATS or f.format == "OGG")
        ]
        return self._convert_many(paths, target_format)

    # ------------------------------------------------------------------
    # Project files

    def save_project(self, path: Optional[str] = None) -> Optional[Path]:
        state = self.state
        target = path or self.host.pick_save_location(f"{state.config.name or 'project'}.json",
                                                      [("Project", ("json",))])
        if not target:
            return None
        try:
            written = save_project_file(target, state.config, state.audios, self.host.environment)
        except OSError as exc:
            self._notice(f"Save failed: {exc}", "error")
            return None
        self.store.dispatch(MarkSaved(state.revision))
        self._notice(f"Project saved to: {written}", "success")
        return written

    def load_project(self, path: Optional[str] = None) -> Optional[DecodedProject]:
        source = path or self.host.pick_open_location([("Project", ("json",))])
        if not source:
            return None
        try:
            decoded = load_project_file(source, self.catalog)
        except ProjectDecodeError as exc:
            self._notice(f"Load failed: {exc}", "error")
            return None
        self.store.dispatch(LoadProject(decoded.config, decoded.audios))
        label = f"Project loaded {decoded.provenance}".strip()
        self._notice(f"{label} ({len(decoded.audios)} audios)", "success")
        return decoded

    # ------------------------------------------------------------------
    # Export

    def _exportable(self) -> Optional[ProjectState]:
        state = self.state
        if not state.audios:
            self._notice(EMPTY_PROJECT, "error")
            return None
        try:
            validate_config(state.config)
        except ValidationError as exc:
            self._notice(str(exc), "error")
            return None
        return state

    def _report(self, result: ExportResult) -> ExportResult:
        self._notice(result.message, "success" if result.success else "error")
        if result.success and self.host.is_desktop:
            self.host.notify("Export complete", result.message)
        return result

    def _export_job(self, export, *args) -> Optional[ExportResult]:
        try:
            try:
                result = export(*args)
            except (AudioModError, OSError) as exc:
                self._notice(f"Export failed: {exc}", "error")
                return None
            return self._report(result)
        finally:
            self.store.dispatch(SetLoading(False))

    def _start_export(self, export, *args) -> Optional[Future]:
        self.store.dispatch(SetLoading(True, "Exporting..."))
        future = self._submit(self._export_job, export, *args)
        if future is None:
            self.store.dispatch(SetLoading(False))
        return future

    def export_folder(self, dest_dir: Optional[str] = None, copy_audio: bool = False) -> Optional[Future]:
        """Write the pack folder in the background.

        Returns a ``Future`` resolving to the :class:`ExportResult` (or
        ``None`` if the export raised), or ``None`` when nothing was started.
        """
        state = self._exportable()
        if state is None:
            return None
        if not self.host.is_desktop:
            self._notice("Folder export is only available in the Desktop version", "error")
            return None
        dest = dest_dir or self.host.pick_folder("Select export folder")
        if not dest:
            return None
        return self._start_export(export_to_folder, dest, state.config, state.audios, copy_audio,
                                  state.assets_folder)

    def export_zip(self, file_path: Optional[str] = None, include_audio: bool = False) -> Optional[Future]:
        """Write the pack archive in the background; see :meth:`export_folder`."""
        state = self._exportable()
        if state is None:
            return None
        if not self.host.is_desktop:
            self._notice("Use download_archive in the Web version", "error")
            return None
        target = file_path or self.host.pick_save_location(archive_filename(state.config), [("ZIP", ("zip",))])
        if not target:
            return None
        return self._start_export(export_to_zip, target, state.config, state.audios, include_audio,
                                  state.assets_folder)

    def download_documents(self) -> Optional[List[Download]]:
        state = self._exportable()
        if state is None:
            return None
        downloads = web_downloads(state.config, state.audios)
        self._notice(f"{len(downloads)} files ready to download", "success")
        return downloads

    def download_archive(self) -> Optional[Tuple[str, bytes]]:
        state = self._exportable()
        if state is None:
            return None
        name = archive_filename(state.config)
        data = build_web_archive(state.config, state.audios)
        self._notice(f"{name} ready to download", "success")
        return name, data

    def copy_document(self, name: str) -> bool:
        """Copy one rendered document (manifest, content or i18n) to the clipboard."""
        rel_path = DOCUMENT_NAMES.get(name)
        if rel_path is None:
            self._notice(f"Unknown document: {name}", "error")
            return False
        state = self.state
        text = build_documents(state.config, state.audios)[rel_path]
        result = self.host.write_clipboard(text)
        if not result.ok:
            self._notice(result.error or "Could not copy to clipboard", "error")
            return False
        self._notice(f"{rel_path} copied to clipboard", "success")
        return True
