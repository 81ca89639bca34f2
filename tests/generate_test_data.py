"""Generate audio fixtures for SDV Audio Mod Maker.

The OGG helpers only build the first page of a stream (capture
pattern, page header, segment table and identification packet),
which is all the scanner reads.  WAV files are real PCM files written
through ``soundfile``.

Usage::

    python generate_test_data.py --output /path/to/test_root

This will produce the following structure::

    test_root/
      assets/
        a.ogg          Vorbis, 44.1 kHz stereo
        b.ogg          Opus (rejected by the game)
        c.wav          0.25 s of 440 Hz sine
        d.mp3          placeholder, listed as convertible
"""

import argparse
import shutil
import struct
from pathlib import Path

import numpy as np
import soundfile as sf


def ogg_page(packet: bytes) -> bytes:
    """Wrap ``packet`` in a single OGG page."""
    header = b"OggS" + bytes([0, 0x02]) + bytes(8) + bytes(4) + bytes(4) + bytes(4)
    assert len(packet) < 255
    return header + bytes([1, len(packet)]) + packet


def vorbis_packet(sample_rate: int = 44100, channels: int = 2, nominal_bitrate: int = 128000) -> bytes:
    return (
        b"\x01vorbis"
        + struct.pack("<I", 0)
        + bytes([channels])
        + struct.pack("<Iiii", sample_rate, 0, nominal_bitrate, 0)
        + bytes([0xB8, 0x01])
    )


def opus_packet(channels: int = 2) -> bytes:
    return b"OpusHead" + bytes([1, channels]) + struct.pack("<HIh", 312, 48000, 0) + bytes([0])


def vorbis_ogg_bytes(sample_rate: int = 44100, channels: int = 2, nominal_bitrate: int = 128000,
                     padding: int = 0) -> bytes:
    return ogg_page(vorbis_packet(sample_rate, channels, nominal_bitrate)) + b"\0" * padding


def opus_ogg_bytes(channels: int = 2, padding: int = 0) -> bytes:
    return ogg_page(opus_packet(channels)) + b"\0" * padding


def sine(duration: float = 0.25, sr: int = 22050, freq: float = 440.0) -> np.ndarray:
    t = np.linspace(0.0, duration, int(sr * duration), False)
    return (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def write_wav(path: Path, duration: float = 0.25, sr: int = 22050, channels: int = 1) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = sine(duration, sr)
    if channels > 1:
        data = np.column_stack([data] * channels)
    sf.write(str(path), data, sr, subtype="PCM_16")
    return path


def create_file(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def generate(output: Path) -> Path:
    assets = output / "assets"
    if assets.exists():
        shutil.rmtree(assets)
    assets.mkdir(parents=True)
    create_file(assets / "a.ogg", vorbis_ogg_bytes(padding=2048))
    create_file(assets / "b.ogg", opus_ogg_bytes(padding=2048))
    write_wav(assets / "c.wav")
    create_file(assets / "d.mp3", b"ID3" + b"\0" * 125)
    return assets


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate test data for SDV Audio Mod Maker")
    parser.add_argument("--output", type=Path, default=Path("."), help="Directory to place test data")
    args = parser.parse_args()
    generate(args.output.resolve())
    print(f"Test data generated under {args.output.resolve()}")


if __name__ == "__main__":
    main()
