#!/usr/bin/env python3
"""Generate deterministic synthetic audio fixtures.

Creates WAV files with known band content, used to check band
classification, K-weighting and dynamics on real decoded files.

Format: WAV IEEE float32, 48000 Hz, 5.0s exactly (mono unless noted)
"""

import argparse
import hashlib
import json
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from scipy.io import wavfile

SAMPLE_RATE = 48000
DURATION_SEC = 5.0
OUTPUT_DIR = Path(__file__).parent / "synthetic_audio"

# One frequency inside each band except DC
ALLBAND_FREQS = [
    30.0, 50.0, 90.0, 180.0, 375.0, 750.0, 1500.0,
    3000.0, 5000.0, 8000.0, 12000.0, 16000.0, 19000.0,
]


def _time_axis() -> np.ndarray:
    return np.arange(int(DURATION_SEC * SAMPLE_RATE)) / SAMPLE_RATE


def generate_sine(freq: float, amplitude: float = 0.1) -> np.ndarray:
    """Constant-amplitude sine."""
    t = _time_axis()
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def generate_mix(freqs: List[float], amplitude: float = 0.1) -> np.ndarray:
    """Equal-amplitude sum of sines."""
    t = _time_axis()
    audio = sum(amplitude * np.sin(2 * np.pi * f * t) for f in freqs)
    return np.asarray(audio, dtype=np.float32)


def generate_allband() -> np.ndarray:
    """13 sines, one per band (DC excluded). Raw share ~7.7% per band."""
    return generate_mix(ALLBAND_FREQS, amplitude=0.05)


def generate_modulated(freq: float = 750.0, cycles: float = 4.0) -> np.ndarray:
    """Sine with slow amplitude modulation (0.2 -> 1.0), for dynamics > 1 dB.

    Envelope: 0.2 + 0.8 * (0.5 + 0.5 * sin(2*pi*cycles*t/duration))
    """
    t = _time_axis()
    envelope = 0.2 + 0.8 * (0.5 + 0.5 * np.sin(2 * np.pi * cycles * t / DURATION_SEC))
    return (0.5 * envelope * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def generate_stereo_bass_treble() -> np.ndarray:
    """Left: 100 Hz, right: 5 kHz. Shape (samples, 2) as wavfile expects."""
    left = generate_sine(100.0)
    right = generate_sine(5000.0)
    return np.column_stack([left, right])


FIXTURES: List[Tuple[str, Callable[[], np.ndarray]]] = [
    ("100hz", lambda: generate_sine(100.0)),
    ("750hz", lambda: generate_sine(750.0)),
    ("5khz", lambda: generate_sine(5000.0)),
    ("mix_100_2000hz", lambda: generate_mix([100.0, 2000.0])),
    ("allband", generate_allband),
    ("modulated_750hz", generate_modulated),
    ("stereo_100hz_5khz", generate_stereo_bass_treble),
]


def write_wav(filepath: Path, audio: np.ndarray) -> str:
    """Write WAV (IEEE float32) and return SHA256 of file bytes."""
    wavfile.write(filepath, SAMPLE_RATE, audio)
    with open(filepath, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()


def main(output_dir: Optional[Path] = None, quiet: bool = False) -> Path:
    """
    Write all fixtures plus fixtures_manifest.json.

    Returns:
        Path of the manifest
    """
    output_dir = Path(output_dir) if output_dir is not None else OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)

    manifest_entries = []

    for name, generator in FIXTURES:
        audio = generator()
        filepath = output_dir / f"{name}.wav"
        sha256 = write_wav(filepath, audio)

        if not quiet:
            print(f"{name}.wav: {sha256}")

        manifest_entries.append({
            "name": name,
            "filename": f"{name}.wav",
            "duration_sec": DURATION_SEC,
            "sample_rate_hz": SAMPLE_RATE,
            "channels": 1 if audio.ndim == 1 else audio.shape[1],
            "sha256_bytes": sha256,
        })

    manifest = {
        "version": "1.0",
        "fixtures": manifest_entries,
    }

    manifest_path = output_dir / "fixtures_manifest.json"
    with open(manifest_path, 'w') as f:
        json.dump(manifest, f, indent=2)

    if not quiet:
        print(f"\nManifest written to: {manifest_path}")

    return manifest_path


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate bandstat WAV fixtures")
    parser.add_argument('--output', '-o', type=str, default=None,
                        help=f'Output directory (default: {OUTPUT_DIR})')
    args = parser.parse_args()
    main(Path(args.output) if args.output else None)
