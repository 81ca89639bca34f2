"""Command-line interface for SDV Audio Mod Maker.

Every subcommand runs the same core as the GUI without a window:
scanning an assets folder, validating and building a saved project,
exporting it as a folder or ZIP, converting audio with ffmpeg, and
inspecting the auto-save slot.  Run ``python -m sdv_audio_mod.cli
--help`` for usage.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from .builder import CONTENT_FILENAME, I18N_FILENAME, MANIFEST_FILENAME, build_documents
from .codec import DecodedProject, decode_project
from .config_service import ConfigService
from .converter import DEFAULT_TIMEOUT, convert_audio
from .errors import AudioModError
from .models import Environment
from .packaging import archive_filename, build_web_archive, export_to_folder, export_to_zip
from .persistence import (
    AutosaveFileStore,
    LocalStorageStore,
    list_recent_projects,
    load_project_file,
)
from .scanner import AudioScanner
from .validation import validate_config, validate_new_entry

logger = logging.getLogger(__name__)

_DOCUMENTS = {
    "manifest": MANIFEST_FILENAME,
    "content": CONTENT_FILENAME,
    "i18n": I18N_FILENAME,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sdv-audio-mod",
        description="SDV Audio Mod Maker - build Content Patcher audio packs",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--portable", "-p", action="store_true", help="Force portable mode")
    parser.add_argument("--app-dir", default=".", help="Application directory used in portable mode")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("scan", help="Classify the audio files in a folder")
    p.add_argument("folder")
    p.add_argument("--json", action="store_true", help="Print the scan result as JSON")

    p = sub.add_parser("validate", help="Check a saved project")
    p.add_argument("project")

    p = sub.add_parser("build", help="Print the generated documents of a project")
    p.add_argument("project")
    p.add_argument("--document", choices=sorted(_DOCUMENTS), help="Print only one document")

    p = sub.add_parser("export", help="Export a project as a mod folder or ZIP")
    p.add_argument("project")
    p.add_argument("dest", help="Destination directory (or ZIP path with --zip)")
    p.add_argument("--zip", action="store_true", help="Write a ZIP archive instead of a folder")
    p.add_argument("--copy-audio", action="store_true", help="Copy the referenced audio files")
    p.add_argument("--assets", help="Folder holding the audio files")

    p = sub.add_parser("web-archive", help="Write the archive the web version would download")
    p.add_argument("project")
    p.add_argument("dest", help="Destination directory")

    p = sub.add_parser("convert", help="Convert an audio file with ffmpeg")
    p.add_argument("file")
    p.add_argument("--to", choices=["ogg", "wav"], default="ogg")
    p.add_argument("--output-dir")

    p = sub.add_parser("restore", help="Show the auto-saved project")
    p.add_argument("--environment", choices=[e.value for e in Environment], help="Auto-save slot to read")

    sub.add_parser("recent", help="List saved projects")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load(path: str) -> DecodedProject:
    return load_project_file(Path(path).expanduser())


def _summary(project: DecodedProject) -> str:
    config = project.config
    lines = [f"{config.name} {config.version} by {config.author} ({config.mod_id})"]
    if project.provenance:
        lines.append(f"Saved {project.provenance} at {project.saved_at or 'unknown time'}")
    for entry in project.audios:
        flags = []
        if entry.looped:
            flags.append("looped")
        if entry.jukebox is not None:
            flags.append(f"jukebox: {entry.jukebox.name}")
        extra = f" [{', '.join(flags)}]" if flags else ""
        lines.append(f"  {entry.id} ({entry.category.value}, {entry.kind.value}): {', '.join(entry.files)}{extra}")
    return "\n".join(lines)


def _cmd_scan(args: argparse.Namespace, config_service: ConfigService) -> int:
    result = AudioScanner().scan(Path(args.folder).expanduser())
    if args.json:
        print(json.dumps(asdict(result), indent=2))
        return 0
    for info in result.files:
        status = "ok" if info.accepted else (info.error or "not accepted")
        print(f"{info.name:40} {info.format:5} {info.size_display:>10}  {status}")
    print(f"{result.total_valid} valid, {result.total_invalid} invalid, {result.total_size}")
    return 0


def _cmd_validate(args: argparse.Namespace, config_service: ConfigService) -> int:
    project = _load(args.project)
    validate_config(project.config)
    seen = []
    for entry in project.audios:
        validate_new_entry(seen, entry)
        seen.append(entry)
    print(f"{args.project}: {len(project.audios)} audios, OK")
    return 0


def _cmd_build(args: argparse.Namespace, config_service: ConfigService) -> int:
    project = _load(args.project)
    documents = build_documents(project.config, project.audios)
    if args.document:
        print(documents[_DOCUMENTS[args.document]])
        return 0
    for rel_path, text in documents.items():
        print(f"--- {rel_path}")
        print(text)
    return 0


def _cmd_export(args: argparse.Namespace, config_service: ConfigService) -> int:
    project = _load(args.project)
    validate_config(project.config)
    if args.zip:
        result = export_to_zip(args.dest, project.config, project.audios, args.copy_audio, args.assets)
    else:
        result = export_to_folder(args.dest, project.config, project.audios, args.copy_audio, args.assets)
    print(result.message)
    for failure in result.failed_files:
        print(f"  {failure.file}: {failure.error}", file=sys.stderr)
    return 0 if result.success else 1


def _cmd_web_archive(args: argparse.Namespace, config_service: ConfigService) -> int:
    project = _load(args.project)
    dest = Path(args.dest).expanduser()
    dest.mkdir(parents=True, exist_ok=True)
    target = dest / archive_filename(project.config)
    target.write_bytes(build_web_archive(project.config, project.audios))
    print(f"ZIP created: {target}")
    return 0


def _cmd_convert(args: argparse.Namespace, config_service: ConfigService) -> int:
    settings = config_service.load_settings(cli_portable=args.portable)
    result = convert_audio(
        Path(args.file).expanduser(),
        args.to,
        output_dir=args.output_dir,
        ffmpeg=settings.get("ffmpeg_path", "ffmpeg"),
        ffprobe=settings.get("ffprobe_path", "ffprobe"),
        timeout=float(settings.get("convert_timeout", DEFAULT_TIMEOUT)),
    )
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    print(result.output_path)
    return 0


def _cmd_restore(args: argparse.Namespace, config_service: ConfigService) -> int:
    settings = config_service.load_settings(cli_portable=args.portable)
    environment = Environment(args.environment or settings.get("environment", Environment.DESKTOP.value))
    if environment is Environment.WEB:
        store = LocalStorageStore(config_service.get_local_storage_path(args.portable))
    else:
        store = AutosaveFileStore(config_service.get_autosave_path(args.portable))
    text = store.read()
    if not text:
        print("No auto-saved project")
        return 0
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        document = None
    project = decode_project(document) if document is not None else None
    if project is None or not project.audios:
        print("No auto-saved project")
        return 0
    print(_summary(project))
    return 0


def _cmd_recent(args: argparse.Namespace, config_service: ConfigService) -> int:
    projects = list_recent_projects(config_service.get_projects_dir(args.portable))
    if not projects:
        print("No saved projects")
        return 0
    for project in projects:
        print(f"{project.modified}  {project.name}  ({project.size} bytes)  {project.path}")
    return 0


_COMMANDS = {
    "scan": _cmd_scan,
    "validate": _cmd_validate,
    "build": _cmd_build,
    "export": _cmd_export,
    "web-archive": _cmd_web_archive,
    "convert": _cmd_convert,
    "restore": _cmd_restore,
    "recent": _cmd_recent,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    config_service = ConfigService(app_dir=Path(args.app_dir).expanduser().resolve())
    config_service.detect_mode(cli_portable=args.portable)
    try:
        return _COMMANDS[args.command](args, config_service)
    except (AudioModError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
