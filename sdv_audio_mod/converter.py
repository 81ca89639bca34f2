"""Audio conversion through the ``ffmpeg`` command line tool.

OGG output is encoded with libvorbis (quality 6, 44.1 kHz, stereo) and
then checked with ``ffprobe``: some ffmpeg builds silently fall back
to Opus, which the game cannot play.  All failures, including a
missing ffmpeg binary and timeouts, come back as a
:class:`~sdv_audio_mod.models.ConvertResult` with ``success=False``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from .models import ConvertResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0

_TARGET_EXTENSIONS = {"ogg": "ogg", "vorbis": "ogg", "wav": "wav"}

FFMPEG_MISSING = (
    "FFmpeg not found! Install it with:\n\n"
    "  - Arch: sudo pacman -S ffmpeg\n"
    "  - Ubuntu/Debian: sudo apt install ffmpeg\n"
    "  - Fedora: sudo dnf install ffmpeg\n"
    "  - macOS: brew install ffmpeg\n"
    "  - Windows: winget install ffmpeg"
)


def target_extension(target_format: str) -> Optional[str]:
    return _TARGET_EXTENSIONS.get((target_format or "").lower())


def output_path_for(source: Path, extension: str, output_dir: Optional[Path] = None) -> Path:
    if output_dir is not None:
        return Path(output_dir) / f"{source.stem}.{extension}"
    return source.with_suffix(f".{extension}")


def ffmpeg_command(source: Path, output: Path, extension: str, ffmpeg: str = "ffmpeg") -> List[str]:
    cmd = [ffmpeg, "-y", "-i", str(source)]
    if extension == "ogg":
        cmd += ["-c:a", "libvorbis", "-q:a", "6", "-ar", "44100", "-ac", "2"]
    elif extension == "wav":
        cmd += ["-c:a", "pcm_s16le", "-ar", "44100", "-ac", "2"]
    cmd.append(str(output))
    return cmd


def probe_codec(path: Path, ffprobe: str = "ffprobe", timeout: float = 30.0) -> Optional[str]:
    """Return the codec name of the first audio stream, or None if unknown."""
    try:
        proc = subprocess.run(
            [ffprobe, "-v", "error", "-select_streams", "a:0",
             "-show_entries", "stream=codec_name",
             "-of", "default=noprint_wrappers=1:nokey=1", str(path)],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("ffprobe could not verify %s: %s", path, exc)
        return None
    codec = proc.stdout.strip()
    return codec or None


def convert_audio(
    source_path: Union[str, Path],
    target_format: str,
    output_dir: Optional[Union[str, Path]] = None,
    ffmpeg: str = "ffmpeg",
    ffprobe: str = "ffprobe",
    timeout: float = DEFAULT_TIMEOUT,
) -> ConvertResult:
    source = Path(source_path)
    if not source.exists():
        return ConvertResult(False, error=f"Source file not found: {source}")
    extension = target_extension(target_format)
    if extension is None:
        return ConvertResult(False, error=f"Unsupported target format: {target_format}")

    output = output_path_for(source, extension, Path(output_dir) if output_dir else None)
    if output.resolve() == source.resolve():
        output = output.with_name(f"{source.stem}_converted.{extension}")
    cmd = ffmpeg_command(source, output, extension, ffmpeg)
    logger.info("Converting %s to %s", source, extension.upper())
    logger.debug("Running: %s", cmd)

    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        return ConvertResult(False, error=FFMPEG_MISSING)
    except subprocess.TimeoutExpired:
        return ConvertResult(False, error=f"FFmpeg timed out after {timeout:g} seconds")
    except OSError as exc:
        return ConvertResult(False, error=f"Error running FFmpeg: {exc}")

    if proc.returncode != 0:
        logger.error("FFmpeg error: %s", proc.stderr)
        return ConvertResult(False, error=f"FFmpeg error: {proc.stderr.strip()}")

    if extension == "ogg":
        codec = probe_codec(output, ffprobe)
        if codec is not None and codec != "vorbis":
            return ConvertResult(
                False,
                error=(f"Conversion produced codec '{codec}' instead of 'vorbis'. "
                       "Check that FFmpeg was built with libvorbis."),
            )
    logger.info("Conversion complete: %s", output)
    return ConvertResult(True, output_path=str(output))
