"""Data model for SDV Audio Mod Maker.

Everything in this module is shape only: the project configuration,
audio entries, scan results, conversion jobs and the aggregate
:class:`ProjectState` owned by :class:`sdv_audio_mod.store.ProjectStore`.
State-related dataclasses are frozen; new states are produced with
:func:`dataclasses.replace` by :func:`sdv_audio_mod.reducer.apply`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Generic, List, Optional, Tuple, TypeVar


class AudioCategory(str, Enum):
    MUSIC = "Music"
    AMBIENT = "Ambient"
    SOUND = "Sound"
    FOOTSTEP = "Footstep"


class EntryKind(str, Enum):
    REPLACE = "replace"
    CUSTOM = "custom"


class TabType(str, Enum):
    SETUP = "setup"
    AUDIO = "audio"
    SCAN = "scan"
    EXPORT = "export"
    HELP = "help"


class JobStatus(str, Enum):
    CONVERTING = "converting"
    DONE = "done"
    ERROR = "error"

    @property
    def terminal(self) -> bool:
        return self is not JobStatus.CONVERTING


class Environment(str, Enum):
    DESKTOP = "desktop"
    WEB = "web"


@dataclass(frozen=True)
class ModConfig:
    """Identity of the generated content pack."""

    mod_id: str
    name: str
    author: str
    version: str
    description: str = ""


DEFAULT_CONFIG = ModConfig(
    mod_id="YourName.AudioMod",
    name="My Audio Mod",
    author="Your Name",
    version="1.0.0",
    description="Adds and replaces game audio",
)


@dataclass(frozen=True)
class JukeboxConfig:
    name: str
    available: bool = True


@dataclass(frozen=True)
class AudioEntry:
    """One sound unit backed by one or more files in the assets folder."""

    id: str
    category: AudioCategory
    files: Tuple[str, ...]
    kind: EntryKind = EntryKind.CUSTOM
    original_name: Optional[str] = None
    looped: bool = False
    jukebox: Optional[JukeboxConfig] = None

    def __post_init__(self) -> None:
        # Accept any iterable of filenames but always store a tuple
        if not isinstance(self.files, tuple):
            object.__setattr__(self, "files", tuple(self.files))
        if not isinstance(self.category, AudioCategory):
            object.__setattr__(self, "category", AudioCategory(self.category))
        if not isinstance(self.kind, EntryKind):
            object.__setattr__(self, "kind", EntryKind(self.kind))


@dataclass(frozen=True)
class AudioFileInfo:
    """Classification of one file found in an assets folder."""

    name: str
    path: str
    size_bytes: int
    size_display: str
    format: str
    is_valid: bool
    accepted_codec: bool
    error: Optional[str] = None
    duration_secs: Optional[float] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None

    @property
    def accepted(self) -> bool:
        """Return True if the game can load this file as-is."""
        if self.format == "OGG":
            return self.is_valid and self.accepted_codec
        return self.is_valid


@dataclass(frozen=True)
class ScanResult:
    folder: str
    files: Tuple[AudioFileInfo, ...]
    total_valid: int
    total_invalid: int
    total_size_bytes: int
    total_size: str

    def valid_names(self) -> FrozenSet[str]:
        return frozenset(f.name for f in self.files if f.accepted)

    def find(self, name: str) -> Optional[AudioFileInfo]:
        for info in self.files:
            if info.name == name:
                return info
        return None


@dataclass(frozen=True)
class ConvertJob:
    id: str
    source_file: str
    source_path: str
    target_format: str
    status: JobStatus = JobStatus.CONVERTING
    progress: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ProjectState:
    """Aggregate root.  Only the reducer produces new instances."""

    config: ModConfig = DEFAULT_CONFIG
    audios: Tuple[AudioEntry, ...] = ()
    active_tab: TabType = TabType.SETUP
    assets_folder: Optional[str] = None
    loading: bool = False
    loading_message: str = ""
    scan_result: Optional[ScanResult] = None
    watching: bool = False
    dirty: bool = False
    convert_jobs: Tuple[ConvertJob, ...] = ()
    selected_scan_files: FrozenSet[str] = frozenset()
    revision: int = 0
    scan_generation: int = 0


INITIAL_STATE = ProjectState()


T = TypeVar("T")


@dataclass(frozen=True)
class HostResult(Generic[T]):
    """Tagged success/failure returned by host capabilities."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "HostResult":
        return cls(True, value, None)

    @classmethod
    def failure(cls, error: str) -> "HostResult":
        return cls(False, None, error)


@dataclass(frozen=True)
class ConvertResult:
    success: bool
    output_path: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FileCopyOutcome:
    file: str
    success: bool
    error: Optional[str] = None


@dataclass
class ExportResult:
    success: bool
    path: str
    message: str
    files_created: List[str] = field(default_factory=list)
    copies: List[FileCopyOutcome] = field(default_factory=list)

    @property
    def failed_files(self) -> List[FileCopyOutcome]:
        return [c for c in self.copies if not c.success]
