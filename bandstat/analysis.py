"""
Analysis Session Module

Runs the kernel over decoded audio for the three CLI modes:
- single-file / comparison stats (one unified FFT pass per file)
- timeline (one power vector per fixed-length time slice)

Each call owns its window, K-weight table and accumulators; nothing is
shared between sessions.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from bandstat import kernel
from bandstat.audio_io import AudioData
from bandstat.bands import Band
from bandstat.kernel_params import KernelConfig, DEFAULT_CONFIG


@dataclass
class FileStats:
    """
    Stats analysis result for a single file.

    Attributes:
        name: Display name
        original_sample_rate: Source file sample rate (Hz)
        channels: Source file channel count
        duration: Analyzed duration (seconds)
        raw_pct: Raw power share per band (%)
        k_pct: K-weighted power share per band (%)
        dynamics: Dynamics per band (dB std, or kernel.DYNAMICS_SENTINEL)
        result: Underlying kernel output
    """
    name: str
    original_sample_rate: int
    channels: int
    duration: float
    raw_pct: np.ndarray
    k_pct: np.ndarray
    dynamics: np.ndarray
    result: kernel.StatsResult

    @property
    def has_data(self) -> bool:
        return self.result.n_frames > 0


@dataclass
class TimelineSlice:
    """One retained timeline interval."""
    start_sec: float
    powers: np.ndarray
    percentages: np.ndarray


@dataclass
class TimelineResult:
    """
    Timeline analysis result for a single file.

    Intervals whose band powers are all zero (silence, or a trailing slice
    shorter than one frame) are not included in slices or totals.
    """
    name: str
    original_sample_rate: int
    channels: int
    duration: float
    interval_sec: int
    k_weighted: bool
    slices: List[TimelineSlice] = field(default_factory=list)
    total_powers: Optional[np.ndarray] = None

    @property
    def average_pct(self) -> np.ndarray:
        """Band share over all retained slices (%)."""
        return kernel.to_percentages(self.total_powers)


def analyze_audio(
    audio: AudioData,
    name: str,
    bands: Sequence[Band],
    on_progress: Optional[Callable[[int], None]] = None,
    params: KernelConfig = DEFAULT_CONFIG
) -> FileStats:
    """
    Compute raw %, K-weighted % and dynamics for decoded audio.

    Parameters:
        audio: Decoded mono audio
        name: Display name
        bands: Band table
        on_progress: Optional progress callback (int percent)
        params: Kernel parameters

    Returns:
        FileStats
    """
    fft_size = params.frame.fft_size
    k_weights = kernel.create_k_weight_table(fft_size, audio.sample_rate)

    result = kernel.analyze_stats(
        audio.samples,
        audio.sample_rate,
        bands,
        k_weights,
        on_progress=on_progress,
        fft_size=fft_size,
        hop_size=params.frame.hop_size,
        min_power=params.dynamics.min_power,
        threshold_db=params.dynamics.threshold_db
    )

    return FileStats(
        name=name,
        original_sample_rate=audio.original_sample_rate,
        channels=audio.channels,
        duration=audio.duration,
        raw_pct=kernel.to_percentages(result.raw_powers),
        k_pct=kernel.to_percentages(result.k_powers),
        dynamics=result.dynamics,
        result=result
    )


def analyze_timeline(
    audio: AudioData,
    name: str,
    bands: Sequence[Band],
    interval_sec: int,
    k_weighted: bool = False,
    params: KernelConfig = DEFAULT_CONFIG
) -> TimelineResult:
    """
    Band power distribution per fixed-length time interval.

    Parameters:
        audio: Decoded mono audio
        name: Display name
        bands: Band table
        interval_sec: Interval length in seconds (>= 1)
        k_weighted: Apply K-weighting to slice powers
        params: Kernel parameters

    Returns:
        TimelineResult

    Raises:
        ValueError: If interval_sec < 1
    """
    if interval_sec < 1:
        raise ValueError(f"Interval must be at least 1 second, got {interval_sec}")

    fft_size = params.frame.fft_size
    sr = audio.sample_rate
    freq_per_bin = params.frame.freq_per_bin(sr)
    window = kernel.create_window(fft_size)
    k_weights = kernel.create_k_weight_table(fft_size, sr) if k_weighted else None

    samples = audio.samples
    samples_per_interval = interval_sec * sr
    num_intervals = -(-len(samples) // samples_per_interval)

    timeline = TimelineResult(
        name=name,
        original_sample_rate=audio.original_sample_rate,
        channels=audio.channels,
        duration=audio.duration,
        interval_sec=interval_sec,
        k_weighted=k_weighted,
        total_powers=np.zeros(len(bands), dtype=np.float64)
    )

    for interval_idx in range(num_intervals):
        start = interval_idx * samples_per_interval
        end = min(start + samples_per_interval, len(samples))

        band_powers = kernel.analyze_interval(
            samples[start:end],
            window,
            bands,
            freq_per_bin,
            k_weights=k_weights,
            hop_size=params.frame.hop_size
        )

        # Silent or shorter than one frame
        if not np.any(band_powers):
            continue

        timeline.total_powers += band_powers
        timeline.slices.append(TimelineSlice(
            start_sec=start / sr,
            powers=band_powers,
            percentages=kernel.to_percentages(band_powers)
        ))

    return timeline


def mask_dynamics(
    dynamics: Sequence[float],
    raw_pct: Sequence[float],
    threshold_pct: float
) -> np.ndarray:
    """
    Hide dynamics of bands too small to matter.

    Bands whose raw share is below threshold_pct get the sentinel, so
    reports print them the same way as bands without a dynamics value.
    """
    dynamics = np.asarray(dynamics, dtype=np.float64)
    raw_pct = np.asarray(raw_pct, dtype=np.float64)
    return np.where(raw_pct >= threshold_pct, dynamics, kernel.DYNAMICS_SENTINEL)
