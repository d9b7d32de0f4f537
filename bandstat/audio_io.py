"""
Audio I/O Module

Handles audio loading, mono conversion and resampling to the analysis rate.
All operations are deterministic and reproducible.
"""

import numpy as np
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import librosa

import config


class AudioLoadError(ValueError):
    """Audio could not be opened, decoded or used for analysis."""


@dataclass
class AudioData:
    """
    Decoded mono audio ready for analysis.

    Attributes:
        samples: mono float32 array
        sample_rate: sample rate of samples (Hz), after resampling
        channels: channel count of the source file
        original_sample_rate: sample rate of the source file (Hz)
    """
    samples: np.ndarray
    sample_rate: int
    channels: int
    original_sample_rate: int

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    @property
    def resampled(self) -> bool:
        return self.sample_rate != self.original_sample_rate


def get_display_name(file_path: Union[str, Path]) -> str:
    """File name without directories, for headers and progress lines."""
    return Path(file_path).name or str(file_path)


def convert_to_mono(audio: np.ndarray) -> np.ndarray:
    """
    Convert multi-channel audio to mono by averaging channels.

    Parameters:
        audio: 1D mono array or 2D (channels, samples) array as returned
            by librosa.load(mono=False)

    Returns:
        Mono audio array (1D)

    Raises:
        ValueError: If audio shape is unexpected
    """
    # Guard: already mono
    if audio.ndim == 1:
        return audio

    # Guard: unexpected shape
    if audio.ndim != 2:
        raise ValueError(f"Unexpected audio shape: {audio.shape}")

    return np.mean(audio, axis=0)


def resample_audio(audio: np.ndarray, orig_sr: int, target_sr: int) -> np.ndarray:
    """
    Resample audio to target sample rate.

    Parameters:
        audio: Mono audio array
        orig_sr: Original sample rate (Hz)
        target_sr: Target sample rate (Hz)

    Returns:
        Resampled float32 audio array
    """
    if orig_sr == target_sr or len(audio) == 0:
        return audio

    resampled = librosa.resample(audio, orig_sr=orig_sr, target_sr=target_sr)
    return resampled.astype(np.float32)


def load_audio(
    file_path: Union[str, Path],
    target_sr: Optional[int] = None
) -> AudioData:
    """
    Load an audio file as mono float32 at the analysis sample rate.

    Pipeline: decode -> mono (channel average) -> resample

    Parameters:
        file_path: Path to audio file (WAV, AIFF, FLAC, OGG, MP3)
        target_sr: Target sample rate (None = use config default)

    Returns:
        AudioData

    Raises:
        AudioLoadError: If the file is missing or cannot be decoded
    """
    if target_sr is None:
        target_sr = config.TARGET_SAMPLE_RATE

    path = Path(file_path)
    name = str(file_path)

    if not path.exists():
        raise AudioLoadError(f"{name}: No such file or directory")
    if not path.is_file():
        raise AudioLoadError(f"{name}: not a regular file")

    try:
        audio, orig_sr = librosa.load(str(path), sr=None, mono=False)
    except Exception as e:
        raise AudioLoadError(f"{name}: unsupported format ({e})") from e

    channels = 1 if audio.ndim == 1 else int(audio.shape[0])
    audio = convert_to_mono(audio).astype(np.float32)
    orig_sr = int(orig_sr)

    if orig_sr <= 0:
        raise AudioLoadError(f"{name}: unknown sample rate")

    audio = resample_audio(audio, orig_sr, target_sr)

    return AudioData(
        samples=audio,
        sample_rate=target_sr,
        channels=channels,
        original_sample_rate=orig_sr
    )


def validate_audio(audio: AudioData, name: str = "audio") -> None:
    """
    Validate decoded audio for analysis.

    Parameters:
        audio: AudioData to validate
        name: Display name used in error messages

    Raises:
        AudioLoadError: If audio is empty or contains NaN/inf
    """
    if len(audio.samples) == 0:
        raise AudioLoadError(f"{name}: No samples found in file")

    if not np.isfinite(audio.samples).all():
        raise AudioLoadError(f"{name}: Audio contains NaN or infinite values")

    peak = float(np.max(np.abs(audio.samples)))
    if peak > 1.0:
        warnings.warn(f"{name}: peak level {peak:.2f} exceeds full scale")
