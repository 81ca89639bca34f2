from __future__ import annotations

import argparse
import cProfile
import json
import pstats
import sys
import time
from pathlib import Path

from sdv_audio_mod.scanner import AudioScanner, is_audio_file


def main() -> int:
    parser = argparse.ArgumentParser(description="Profile AudioScanner.probe_file on a folder of audio files.")
    parser.add_argument("--root", type=Path, required=True, help="Root folder to search recursively for audio files")
    parser.add_argument("--limit", type=int, default=500, help="Max files to profile (0 = all)")
    parser.add_argument("--profile", action="store_true", help="Enable cProfile and print top cumulative functions")
    parser.add_argument("--stats", type=int, default=30, help="Number of cProfile rows to print")
    parser.add_argument("--sort", default="cumulative", help="cProfile sort key (default: cumulative)")
    parser.add_argument("--json-out", type=Path, default=None, help="Optional JSON output path for metrics")
    parser.add_argument("--compare", type=Path, default=None, help="Optional prior metrics JSON to compare against")
    parser.add_argument(
        "--warn-threshold-pct",
        type=float,
        default=10.0,
        help="Warn when ms/file regresses by more than this percent (used with --compare)",
    )
    args = parser.parse_args()

    root = args.root.resolve()
    if not root.exists():
        print(f"error: root not found: {root}", file=sys.stderr)
        return 2

    files = sorted(p for p in root.rglob("*") if p.is_file() and is_audio_file(p))
    if args.limit and args.limit > 0:
        files = files[: args.limit]
    if not files:
        print("error: no audio files found", file=sys.stderr)
        return 3

    print(f"root={root}")
    print(f"audio_files={len(files)}")

    scanner = AudioScanner()
    prof = cProfile.Profile() if args.profile else None
    start = time.perf_counter()
    if prof is not None:
        prof.enable()
    accepted = sum(1 for path in files if scanner.probe_file(path).accepted)
    if prof is not None:
        prof.disable()

    elapsed = time.perf_counter() - start
    ms_per_file = (elapsed * 1000.0) / len(files)
    print(f"elapsed_seconds={elapsed:.3f}")
    print(f"accepted={accepted}")
    print(f"ms_per_file={ms_per_file:.3f}")

    metrics = {
        "version": 1,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "root": str(root),
        "files_profiled": len(files),
        "accepted": accepted,
        "elapsed_seconds": round(elapsed, 6),
        "ms_per_file": round(ms_per_file, 6),
    }
    if args.json_out is not None:
        out_path = args.json_out.resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
        print(f"json_out={out_path}")

    if args.compare is not None:
        try:
            prev = json.loads(args.compare.resolve().read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            print(f"warning: failed to read benchmark JSON: {exc}", file=sys.stderr)
        else:
            prev_ms = float(prev.get("ms_per_file", 0.0) or 0.0)
            delta_pct = ((ms_per_file - prev_ms) / prev_ms * 100.0) if prev_ms > 0 else 0.0
            print(f"compare_prev_ms_per_file={prev_ms:.6f}")
            print(f"compare_delta_pct={delta_pct:+.2f}")
            if delta_pct > args.warn_threshold_pct:
                print(f"warning: probe time regressed by {delta_pct:+.2f}%", file=sys.stderr)

    if prof is not None:
        pstats.Stats(prof).sort_stats(args.sort).print_stats(args.stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
