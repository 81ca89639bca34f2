"""Scan an assets folder and classify the audio files it contains.

The game loads OGG Vorbis and WAV.  OGG is a container, so for
``.ogg`` files the first page is read and the identification packet
inspected: Vorbis is accepted, Opus (a common export default) is not.
WAV files are accepted without a deep probe; ``soundfile`` is only
used to read their sample rate, channel count and duration.  Other
audio formats are listed so the user can convert them, but they are
never valid.

A file that cannot be read is reported with an ``error`` and the scan
carries on with the next one.  Only the top level of the folder is
scanned, because exported packs reference files by bare name.
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

import soundfile as sf

from .errors import ScanError
from .models import AudioFileInfo, ScanResult

logger = logging.getLogger(__name__)

ACCEPTED_FORMATS = ("OGG", "WAV")
CONVERTIBLE_FORMATS = ("MP3", "FLAC", "M4A", "AAC", "WMA", "OPUS", "AIFF", "APE", "WV")
AUDIO_EXTENSIONS = tuple(f".{fmt.lower()}" for fmt in ACCEPTED_FORMATS + CONVERTIBLE_FORMATS)

OGG_MAGIC = b"OggS"
VORBIS_MAGIC = b"\x01vorbis"
OPUS_MAGIC = b"OpusHead"
OGG_PAGE_HEADER_LEN = 27
OGG_PROBE_BYTES = 4096
OPUS_SAMPLE_RATE = 48000

OPUS_ERROR = "OGG Opus - Stardew Valley requires OGG Vorbis! Convert it first."
UNKNOWN_OGG_ERROR = "Unknown OGG codec. Expected Vorbis."

PathLike = Union[str, "os.PathLike[str]"]


def format_size(size_bytes: int) -> str:
    """Return a human readable size using binary (1024-based) units."""
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    if size_bytes < kb:
        return f"{size_bytes} B"
    if size_bytes < mb:
        return f"{size_bytes / kb:.1f} KB"
    if size_bytes < gb:
        return f"{size_bytes / mb:.1f} MB"
    return f"{size_bytes / gb:.2f} GB"


def audio_format(path: Path) -> str:
    return path.suffix.lstrip(".").upper() or "UNKNOWN"


def is_audio_file(path: Path) -> bool:
    return path.suffix.lower() in AUDIO_EXTENSIONS


@dataclass
class _OggProbe:
    is_valid: bool
    is_vorbis: bool = False
    error: Optional[str] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None
    nominal_bitrate: Optional[int] = None


def probe_ogg_header(data: bytes) -> _OggProbe:
    """Identify the codec carried by the first page of an OGG stream."""
    if len(data) < 4 or data[:4] != OGG_MAGIC:
        return _OggProbe(False, error="Not a valid OGG file (missing OggS header)")
    if len(data) <= OGG_PAGE_HEADER_LEN:
        return _OggProbe(True, error="OGG file too small to analyze")
    segments = data[OGG_PAGE_HEADER_LEN - 1]
    packet_start = OGG_PAGE_HEADER_LEN + segments
    if len(data) <= packet_start:
        return _OggProbe(True, error="OGG file too small to identify codec")
    packet = data[packet_start:]

    if packet[:7] == VORBIS_MAGIC:
        if len(packet) < 30:
            return _OggProbe(True, error="Truncated Vorbis identification header")
        channels = packet[11]
        sample_rate, _maximum, nominal = struct.unpack_from("<Iii", packet, 12)
        return _OggProbe(
            True,
            is_vorbis=True,
            sample_rate=sample_rate,
            channels=channels,
            nominal_bitrate=nominal if nominal > 0 else None,
        )
    if packet[:8] == OPUS_MAGIC:
        channels = packet[9] if len(packet) > 9 else None
        return _OggProbe(True, error=OPUS_ERROR, sample_rate=OPUS_SAMPLE_RATE, channels=channels)
    return _OggProbe(True, error=UNKNOWN_OGG_ERROR)


@dataclass
class AudioScanner:
    """Classify audio files found directly inside a folder."""

    ignore_rules: Iterable[str] = field(default_factory=lambda: ["__MACOSX", ".DS_Store", "._"])

    def _should_ignore(self, name: str) -> bool:
        for rule in self.ignore_rules:
            if name == rule or name.startswith(rule):
                return True
        return False

    def _probe_ogg(self, path: Path, name: str, size_bytes: int, size_display: str) -> AudioFileInfo:
        try:
            with path.open("rb") as f:
                header = f.read(OGG_PROBE_BYTES)
        except OSError as exc:
            return AudioFileInfo(name, str(path), size_bytes, size_display, "OGG", False, False,
                                 error=f"Cannot open file: {exc}")
        probe = probe_ogg_header(header)
        duration = None
        if probe.is_vorbis and probe.nominal_bitrate:
            duration = (size_bytes * 8.0) / probe.nominal_bitrate
        return AudioFileInfo(
            name=name,
            path=str(path),
            size_bytes=size_bytes,
            size_display=size_display,
            format="OGG",
            is_valid=probe.is_valid,
            accepted_codec=probe.is_vorbis,
            error=probe.error,
            duration_secs=duration,
            sample_rate=probe.sample_rate,
            channels=probe.channels,
        )

    def _probe_wav(self, path: Path, name: str, size_bytes: int, size_display: str) -> AudioFileInfo:
        try:
            info = sf.info(str(path))
        except (RuntimeError, OSError) as exc:
            return AudioFileInfo(name, str(path), size_bytes, size_display, "WAV", False, False,
                                 error=f"Cannot read WAV file: {exc}")
        return AudioFileInfo(
            name=name,
            path=str(path),
            size_bytes=size_bytes,
            size_display=size_display,
            format="WAV",
            is_valid=True,
            accepted_codec=False,
            duration_secs=float(info.duration),
            sample_rate=int(info.samplerate),
            channels=int(info.channels),
        )

    def probe_file(self, file_path: PathLike) -> AudioFileInfo:
        """Classify a single file.  Never raises for unreadable files."""
        path = Path(file_path)
        name = path.name
        fmt = audio_format(path)
        try:
            size_bytes = path.stat().st_size
        except OSError as exc:
            return AudioFileInfo(name, str(path), 0, format_size(0), fmt, False, False,
                                 error=f"Cannot read file: {exc}")
        size_display = format_size(size_bytes)
        if fmt == "OGG":
            return self._probe_ogg(path, name, size_bytes, size_display)
        if fmt == "WAV":
            return self._probe_wav(path, name, size_bytes, size_display)
        return AudioFileInfo(name, str(path), size_bytes, size_display, fmt, False, False,
                             error=f"{fmt} format - convert to OGG Vorbis")

    def scan(self, folder: PathLike) -> ScanResult:
        """Return the classification of every audio file in ``folder``."""
        root = Path(folder)
        if not root.exists():
            raise ScanError(f"Folder does not exist: {root}")
        if not root.is_dir():
            raise ScanError(f"Path is not a directory: {root}")
        try:
            children = list(root.iterdir())
        except OSError as exc:
            raise ScanError(f"Cannot read folder {root}: {exc}") from exc

        files: List[AudioFileInfo] = []
        for child in children:
            if self._should_ignore(child.name) or not is_audio_file(child):
                continue
            try:
                if not child.is_file():
                    continue
            except OSError:
                continue
            info = self.probe_file(child)
            if info.error:
                logger.debug("%s: %s", info.name, info.error)
            files.append(info)

        files.sort(key=lambda f: (f.name.lower(), f.name))
        total_valid = sum(1 for f in files if f.accepted)
        total_bytes = sum(f.size_bytes for f in files)
        logger.info("Scanned %s: %d files, %d valid", root, len(files), total_valid)
        return ScanResult(
            folder=str(root),
            files=tuple(files),
            total_valid=total_valid,
            total_invalid=len(files) - total_valid,
            total_size_bytes=total_bytes,
            total_size=format_size(total_bytes),
        )

    def rescan(self, folder: PathLike) -> ScanResult:
        """Scan ``folder`` again with exactly the same rules."""
        return self.scan(folder)
