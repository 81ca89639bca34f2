"""Write built documents and audio payloads to their export targets.

Desktop exports go either to a ``[CP] <Name>`` folder inside a chosen
directory or to a ZIP archive with the same layout.  Web exports
cannot touch the filesystem: they produce the three documents as
individual downloads or as one archive whose ``assets/`` folder only
contains a README listing the files the user has to add.

Every target writes the text returned by
:func:`sdv_audio_mod.builder.build_documents`, so the JSON bytes are
identical whichever target is used.
"""

from __future__ import annotations

import io
import logging
import os
import re
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .builder import build_documents, required_files
from .models import AudioEntry, ExportResult, FileCopyOutcome, ModConfig
from .validation import is_safe_asset_name

logger = logging.getLogger(__name__)

ASSETS_DIRNAME = "assets"
README_NAME = "README.txt"
FALLBACK_FOLDER_NAME = "AudioMod"
# Fixed timestamp so archives of the same project are byte-identical
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class Download:
    filename: str
    content: str
    media_type: str = "application/json"


def mod_folder_name(config: ModConfig) -> str:
    clean = re.sub(r"[^A-Za-z0-9 ]", "", config.name).strip()
    return f"[CP] {clean or FALLBACK_FOLDER_NAME}"


def archive_filename(config: ModConfig) -> str:
    return f"{mod_folder_name(config)}.zip"


def readme_text(files: Sequence[str]) -> str:
    listing = "\n".join(f"  - {name}" for name in files)
    return (
        "ASSETS FOLDER\n"
        "==================\n\n"
        "Place your .ogg audio files here.\n\n"
        f"Required files:\n{listing}\n\n"
        "IMPORTANT:\n"
        "- Use OGG Vorbis format (NOT Opus!)\n"
        "- Sample rate: 44100Hz or 48000Hz\n"
        "- Use Audacity to convert if needed\n\n"
        f"Total files needed: {len(files)}\n"
    )


def _posix(name: str) -> str:
    return name.replace("\\", "/")


def _inside(root: Path, name: str) -> Optional[Path]:
    """Return ``root/name`` if it stays under ``root``, else ``None``."""
    if not is_safe_asset_name(name):
        return None
    base = Path(os.path.abspath(root))
    candidate = Path(os.path.abspath(base / _posix(name)))
    try:
        candidate.relative_to(base)
    except ValueError:
        return None
    return candidate


def _copy_failures(files: Sequence[str], reason: str) -> List[FileCopyOutcome]:
    return [FileCopyOutcome(name, False, reason) for name in files]


def _summary(prefix: str, target: str, copies: Sequence[FileCopyOutcome]) -> Tuple[bool, str]:
    failed = [c.file for c in copies if not c.success]
    if failed:
        return False, f"{prefix} {target}, but {len(failed)} audio file(s) could not be copied: {', '.join(failed)}"
    return True, f"{prefix} {target}"


def export_to_folder(
    dest_dir: PathLike,
    config: ModConfig,
    audios: Sequence[AudioEntry],
    copy_audio_files: bool = False,
    assets_folder: Optional[PathLike] = None,
) -> ExportResult:
    """Write the pack into ``dest_dir/[CP] <Name>``.

    Documents are always written.  When ``copy_audio_files`` is set,
    every referenced file is copied from ``assets_folder`` on its own;
    a file that cannot be copied is reported in ``copies`` and the
    remaining files are still copied.
    """
    mod_path = Path(dest_dir) / mod_folder_name(config)
    created: List[str] = []
    try:
        (mod_path / ASSETS_DIRNAME).mkdir(parents=True, exist_ok=True)
        (mod_path / "i18n").mkdir(parents=True, exist_ok=True)
        for rel_path, text in build_documents(config, audios).items():
            (mod_path / rel_path).write_text(text, encoding="utf-8")
            created.append(rel_path)
    except OSError as exc:
        logger.error("Export to %s failed: %s", mod_path, exc)
        return ExportResult(False, str(mod_path), f"Export failed: {exc}", created)

    files = required_files(audios)
    copies: List[FileCopyOutcome] = []
    if copy_audio_files:
        if assets_folder is None:
            copies = _copy_failures(files, "No assets folder selected")
        else:
            source_root = Path(assets_folder)
            for name in files:
                src = _inside(source_root, name)
                dst = _inside(mod_path / ASSETS_DIRNAME, name)
                if src is None or dst is None:
                    copies.append(FileCopyOutcome(name, False, f"File name leaves the assets folder: {name}"))
                    continue
                if not src.is_file():
                    copies.append(FileCopyOutcome(name, False, f"Source file not found: {src}"))
                    continue
                try:
                    dst.parent.mkdir(parents=True, exist_ok=True)
                    shutil.copy2(str(src), str(dst))
                except OSError as exc:
                    copies.append(FileCopyOutcome(name, False, f"Failed to copy {name}: {exc}"))
                    continue
                copies.append(FileCopyOutcome(name, True))
                created.append(f"{ASSETS_DIRNAME}/{name}")

    readme_rel = f"{ASSETS_DIRNAME}/{README_NAME}"
    try:
        (mod_path / readme_rel).write_text(readme_text(files), encoding="utf-8")
        created.append(readme_rel)
    except OSError as exc:
        logger.warning("Could not write %s: %s", readme_rel, exc)

    for failure in (c for c in copies if not c.success):
        logger.warning("Audio not exported: %s", failure.error)
    success, message = _summary("Mod exported to:", str(mod_path), copies)
    return ExportResult(success, str(mod_path), message, created, copies)


def _write_entry(zf: zipfile.ZipFile, arcname: str, data: Union[str, bytes]) -> None:
    info = zipfile.ZipInfo(arcname, date_time=_ZIP_DATE_TIME)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, data)


def _write_dir(zf: zipfile.ZipFile, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname.rstrip("/") + "/", date_time=_ZIP_DATE_TIME)
    info.external_attr = (0o40755 << 16) | 0x10
    zf.writestr(info, b"")


def _build_archive(
    config: ModConfig,
    audios: Sequence[AudioEntry],
    include_audio_files: bool,
    assets_folder: Optional[PathLike],
) -> Tuple[bytes, List[str], List[FileCopyOutcome]]:
    root = mod_folder_name(config)
    files = required_files(audios)
    created: List[str] = []
    copies: List[FileCopyOutcome] = []
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for rel_path, text in build_documents(config, audios).items():
            _write_entry(zf, f"{root}/{rel_path}", text)
            created.append(rel_path)
        _write_dir(zf, f"{root}/{ASSETS_DIRNAME}")
        if include_audio_files:
            if assets_folder is None:
                copies = _copy_failures(files, "No assets folder selected")
            else:
                for name in files:
                    src = _inside(Path(assets_folder), name)
                    if src is None:
                        copies.append(FileCopyOutcome(name, False, f"File name leaves the assets folder: {name}"))
                        continue
                    try:
                        data = src.read_bytes()
                    except OSError as exc:
                        copies.append(FileCopyOutcome(name, False, f"Failed to read {name}: {exc}"))
                        continue
                    _write_entry(zf, f"{root}/{ASSETS_DIRNAME}/{_posix(name)}", data)
                    copies.append(FileCopyOutcome(name, True))
                    created.append(f"{ASSETS_DIRNAME}/{name}")
        _write_entry(zf, f"{root}/{ASSETS_DIRNAME}/{README_NAME}", readme_text(files))
        created.append(f"{ASSETS_DIRNAME}/{README_NAME}")
    return buffer.getvalue(), created, copies


def export_to_zip(
    file_path: PathLike,
    config: ModConfig,
    audios: Sequence[AudioEntry],
    include_audio_files: bool = False,
    assets_folder: Optional[PathLike] = None,
) -> ExportResult:
    """Write the pack as a ZIP archive at ``file_path``.

    The archive is assembled in memory and moved into place in one
    step, so a failed export never leaves a truncated archive behind.
    """
    target = Path(file_path)
    data, created, copies = _build_archive(config, audios, include_audio_files, assets_folder)
    tmp_name = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".export-", suffix=".zip", dir=str(target.parent))
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
        tmp_name = None
    except OSError as exc:
        logger.error("Writing %s failed: %s", target, exc)
        return ExportResult(False, str(target), f"Export failed: {exc}", [], copies)
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)

    for failure in (c for c in copies if not c.success):
        logger.warning("Audio not archived: %s", failure.error)
    success, message = _summary("ZIP created:", str(target), copies)
    return ExportResult(success, str(target), message, created, copies)


def web_downloads(config: ModConfig, audios: Sequence[AudioEntry]) -> List[Download]:
    """Return the three documents as separate browser downloads."""
    documents = build_documents(config, audios)
    return [Download(Path(rel_path).name, text) for rel_path, text in documents.items()]


def build_web_archive(config: ModConfig, audios: Sequence[AudioEntry]) -> bytes:
    """Return a ZIP with the documents and an ``assets/`` placeholder."""
    data, _created, _copies = _build_archive(config, audios, False, None)
    return data
