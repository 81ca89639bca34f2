"""Pure state transitions for the project model.

:func:`apply` maps ``(state, command)`` to a new :class:`ProjectState`.
It never mutates its input and never raises: commands it does not
recognise, and list commands with out-of-range indexes, return the
state unchanged.  Validation of user input happens earlier, in
:mod:`sdv_audio_mod.validation`.

Only commands that change the project content (configuration and
audio entries) mark the state dirty.  Those commands, plus
:class:`LoadProject` and :class:`Reset`, bump ``revision`` so that a
save taken before a project swap can be told apart from the new one.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

from .models import (
    INITIAL_STATE,
    AudioEntry,
    ConvertJob,
    JobStatus,
    ModConfig,
    ProjectState,
    ScanResult,
    TabType,
)


# ---------------------------------------------------------------- commands


@dataclass(frozen=True)
class SetConfig:
    changes: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SetConfigFull:
    config: ModConfig


@dataclass(frozen=True)
class AddAudio:
    entry: AudioEntry


@dataclass(frozen=True)
class RemoveAudio:
    index: int


@dataclass(frozen=True)
class UpdateAudio:
    index: int
    entry: AudioEntry


@dataclass(frozen=True)
class ReorderAudio:
    from_index: int
    to_index: int


@dataclass(frozen=True)
class ClearAudios:
    pass


@dataclass(frozen=True)
class SetTab:
    tab: TabType


@dataclass(frozen=True)
class SetAssetsFolder:
    path: Optional[str]


@dataclass(frozen=True)
class SetLoading:
    loading: bool
    message: str = ""


@dataclass(frozen=True)
class SetScanResult:
    """Show a scan result.

    ``generation`` is required and should come from
    :meth:`ProjectStore.next_scan_generation`; a result older than the
    one already shown is dropped.
    """

    result: Optional[ScanResult]
    generation: int


@dataclass(frozen=True)
class SetWatching:
    watching: bool


@dataclass(frozen=True)
class ToggleScanFile:
    name: str


@dataclass(frozen=True)
class SelectAllValid:
    pass


@dataclass(frozen=True)
class ClearScanSelection:
    pass


@dataclass(frozen=True)
class AddConvertJob:
    job: ConvertJob


@dataclass(frozen=True)
class UpdateConvertJob:
    job_id: str
    status: Optional[JobStatus] = None
    progress: Optional[int] = None
    output_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RemoveConvertJob:
    job_id: str


@dataclass(frozen=True)
class ClearConvertJobs:
    pass


@dataclass(frozen=True)
class LoadProject:
    config: ModConfig
    audios: Tuple[AudioEntry, ...]


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class MarkSaved:
    # When given, dirty is only cleared if no edit happened since the snapshot
    revision: Optional[int] = None


# ---------------------------------------------------------------- helpers


_CONFIG_FIELDS = ("mod_id", "name", "author", "version", "description")


def _touch(state: ProjectState, **changes: Any) -> ProjectState:
    """Apply a project-content change and mark the state dirty."""
    return replace(state, dirty=True, revision=state.revision + 1, **changes)


def _in_range(index: int, length: int) -> bool:
    return isinstance(index, int) and 0 <= index < length


def _find_job(jobs: Tuple[ConvertJob, ...], job_id: str) -> int:
    for i, job in enumerate(jobs):
        if job.id == job_id:
            return i
    return -1


# ---------------------------------------------------------------- handlers


def _set_config(state: ProjectState, cmd: SetConfig) -> ProjectState:
    changes = {k: v for k, v in dict(cmd.changes).items() if k in _CONFIG_FIELDS}
    if not changes:
        return state
    return _touch(state, config=replace(state.config, **changes))


def _set_config_full(state: ProjectState, cmd: SetConfigFull) -> ProjectState:
    return _touch(state, config=cmd.config)


def _add_audio(state: ProjectState, cmd: AddAudio) -> ProjectState:
    return _touch(state, audios=state.audios + (cmd.entry,))


def _remove_audio(state: ProjectState, cmd: RemoveAudio) -> ProjectState:
    if not _in_range(cmd.index, len(state.audios)):
        return state
    audios = state.audios[:cmd.index] + state.audios[cmd.index + 1:]
    return _touch(state, audios=audios)


def _update_audio(state: ProjectState, cmd: UpdateAudio) -> ProjectState:
    if not _in_range(cmd.index, len(state.audios)):
        return state
    audios = list(state.audios)
    audios[cmd.index] = cmd.entry
    return _touch(state, audios=tuple(audios))


def _reorder_audio(state: ProjectState, cmd: ReorderAudio) -> ProjectState:
    length = len(state.audios)
    if not (_in_range(cmd.from_index, length) and _in_range(cmd.to_index, length)):
        return state
    if cmd.from_index == cmd.to_index:
        return state
    audios = list(state.audios)
    item = audios.pop(cmd.from_index)
    audios.insert(cmd.to_index, item)
    return _touch(state, audios=tuple(audios))


def _clear_audios(state: ProjectState, cmd: ClearAudios) -> ProjectState:
    return _touch(state, audios=())


def _set_tab(state: ProjectState, cmd: SetTab) -> ProjectState:
    try:
        tab = TabType(cmd.tab)
    except ValueError:
        return state
    return replace(state, active_tab=tab)


def _set_assets_folder(state: ProjectState, cmd: SetAssetsFolder) -> ProjectState:
    return replace(state, assets_folder=cmd.path)


def _set_loading(state: ProjectState, cmd: SetLoading) -> ProjectState:
    return replace(state, loading=cmd.loading, loading_message=cmd.message or "")


def _set_scan_result(state: ProjectState, cmd: SetScanResult) -> ProjectState:
    # A result from an older scan than the one already shown is stale
    if cmd.generation < state.scan_generation:
        return state
    if cmd.result is None:
        selected: frozenset = frozenset()
    else:
        selected = state.selected_scan_files & cmd.result.valid_names()
    return replace(
        state,
        scan_result=cmd.result,
        scan_generation=cmd.generation,
        selected_scan_files=selected,
    )


def _set_watching(state: ProjectState, cmd: SetWatching) -> ProjectState:
    return replace(state, watching=cmd.watching)


def _toggle_scan_file(state: ProjectState, cmd: ToggleScanFile) -> ProjectState:
    if cmd.name in state.selected_scan_files:
        return replace(state, selected_scan_files=state.selected_scan_files - {cmd.name})
    if state.scan_result is None or state.scan_result.find(cmd.name) is None:
        return state
    return replace(state, selected_scan_files=state.selected_scan_files | {cmd.name})


def _select_all_valid(state: ProjectState, cmd: SelectAllValid) -> ProjectState:
    if state.scan_result is None:
        return state
    return replace(state, selected_scan_files=state.scan_result.valid_names())


def _clear_scan_selection(state: ProjectState, cmd: ClearScanSelection) -> ProjectState:
    return replace(state, selected_scan_files=frozenset())


def _add_convert_job(state: ProjectState, cmd: AddConvertJob) -> ProjectState:
    if _find_job(state.convert_jobs, cmd.job.id) >= 0:
        return state
    return replace(state, convert_jobs=state.convert_jobs + (cmd.job,))


def _update_convert_job(state: ProjectState, cmd: UpdateConvertJob) -> ProjectState:
    index = _find_job(state.convert_jobs, cmd.job_id)
    if index < 0:
        return state
    job = state.convert_jobs[index]
    if job.status.terminal:
        return state
    changes: Dict[str, Any] = {}
    if cmd.status is not None:
        try:
            changes["status"] = JobStatus(cmd.status)
        except ValueError:
            return state
    if cmd.progress is not None:
        changes["progress"] = max(job.progress, min(100, int(cmd.progress)))
    if cmd.output_path is not None:
        changes["output_path"] = cmd.output_path
    if cmd.error is not None:
        changes["error"] = cmd.error
    if changes.get("status") is JobStatus.DONE:
        changes["progress"] = 100
    if not changes:
        return state
    jobs = list(state.convert_jobs)
    jobs[index] = replace(job, **changes)
    return replace(state, convert_jobs=tuple(jobs))


def _remove_convert_job(state: ProjectState, cmd: RemoveConvertJob) -> ProjectState:
    index = _find_job(state.convert_jobs, cmd.job_id)
    if index < 0 or not state.convert_jobs[index].status.terminal:
        return state
    jobs = state.convert_jobs[:index] + state.convert_jobs[index + 1:]
    return replace(state, convert_jobs=jobs)


def _clear_convert_jobs(state: ProjectState, cmd: ClearConvertJobs) -> ProjectState:
    remaining = tuple(j for j in state.convert_jobs if not j.status.terminal)
    if len(remaining) == len(state.convert_jobs):
        return state
    return replace(state, convert_jobs=remaining)


def _load_project(state: ProjectState, cmd: LoadProject) -> ProjectState:
    return replace(state, config=cmd.config, audios=tuple(cmd.audios), dirty=False, revision=state.revision + 1)


def _reset(state: ProjectState, cmd: Reset) -> ProjectState:
    # Keep counters monotonic so late scan results and saves stay detectable
    return replace(INITIAL_STATE, revision=state.revision + 1, scan_generation=state.scan_generation)


def _mark_saved(state: ProjectState, cmd: MarkSaved) -> ProjectState:
    if not state.dirty:
        return state
    if cmd.revision is not None and cmd.revision != state.revision:
        return state
    return replace(state, dirty=False)


_HANDLERS: Dict[Type[Any], Callable[[ProjectState, Any], ProjectState]] = {
    SetConfig: _set_config,
    SetConfigFull: _set_config_full,
    AddAudio: _add_audio,
    RemoveAudio: _remove_audio,
    UpdateAudio: _update_audio,
    ReorderAudio: _reorder_audio,
    ClearAudios: _clear_audios,
    SetTab: _set_tab,
    SetAssetsFolder: _set_assets_folder,
    SetLoading: _set_loading,
    SetScanResult: _set_scan_result,
    SetWatching: _set_watching,
    ToggleScanFile: _toggle_scan_file,
    SelectAllValid: _select_all_valid,
    ClearScanSelection: _clear_scan_selection,
    AddConvertJob: _add_convert_job,
    UpdateConvertJob: _update_convert_job,
    RemoveConvertJob: _remove_convert_job,
    ClearConvertJobs: _clear_convert_jobs,
    LoadProject: _load_project,
    Reset: _reset,
    MarkSaved: _mark_saved,
}


def apply(state: ProjectState, command: Any) -> ProjectState:
    """Return the state that results from applying ``command`` to ``state``."""
    handler = _HANDLERS.get(type(command))
    if handler is None:
        return state
    return handler(state, command)
