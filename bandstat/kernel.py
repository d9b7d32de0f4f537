"""
DSP Kernel Module - Band Energy & Loudness-Weighted Dynamics

This module contains the deterministic analysis kernel: it turns a mono
sample buffer into per-band raw power, K-weighted power and dynamics.

DESIGN CONSTRAINTS:
- No I/O operations (no file reading/writing)
- No plotting or printing
- No config module imports - all parameters are explicit
- Only numpy and scipy dependencies
- Never raises on well-formed input; degrades to zeros / sentinel values

PROCESSING PIPELINE:
1. Window + K-weight table (once per session)
2. Frame loop: window -> FFT -> per-band power accumulation
3. Per-band dB series -> dynamics (thresholded standard deviation)
4. Power vectors -> percentages (done by the caller)

BIN MAPPING:
- freq_per_bin = sample_rate / fft_size, nyquist_bin = fft_size // 2
- low_bin  = min(nyquist_bin, floor(low_hz / freq_per_bin))
- high_bin = min(nyquist_bin, floor(high_hz / freq_per_bin)), open band -> nyquist_bin
- band power = sum(|X[bin]|^2 for bin in [low_bin, high_bin))
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple
from scipy import fft as scipy_fft

from bandstat.bands import Band
from bandstat.kernel_params import (
    BiquadCoefficients,
    EXACT_K_WEIGHTING_RATES,
    select_k_weighting,
)


# =============================================================================
# DEFAULT PARAMETERS (Explicit - No Config Imports)
# =============================================================================

DEFAULT_FFT_SIZE: int = 16384
DEFAULT_HOP_SIZE: int = 2048

# Band power floor for dB conversion
MIN_POWER: float = 1e-20

# Frames more than this far below a band's peak are ignored for dynamics
DYNAMICS_THRESHOLD_DB: float = 60.0

# "Not significant" marker for dynamics
DYNAMICS_SENTINEL: float = float('-inf')


# =============================================================================
# RESULT CONTAINER
# =============================================================================

@dataclass(frozen=True)
class StatsResult:
    """
    Output of analyze_stats.

    CONTRACT:
    - All three arrays have length len(bands), in band order
    - raw_powers / k_powers are unnormalized sums over all frames
    - dynamics holds a dB standard deviation or DYNAMICS_SENTINEL
    """
    raw_powers: np.ndarray
    k_powers: np.ndarray
    dynamics: np.ndarray
    n_frames: int = 0


# =============================================================================
# WINDOW FUNCTION
# =============================================================================

def create_window(size: int) -> np.ndarray:
    """
    Create a symmetric Hann window.

    w[i] = 0.5 * (1 - cos(2*pi*i / (size - 1)))

    CONTRACT:
    - w[0] == w[size-1] == 0
    - w[i] == w[size-1-i]
    - Deterministic: same input -> same output

    Parameters:
        size: Window length in samples (>= 2)

    Returns:
        float64 array of length size

    Raises:
        ValueError: If size < 2
    """
    if size < 2:
        raise ValueError(f"Window size must be at least 2, got {size}")

    n = np.arange(size, dtype=np.float64)
    return 0.5 * (1.0 - np.cos(2.0 * np.pi * n / (size - 1)))


# =============================================================================
# K-WEIGHTING (ITU-R BS.1770-4)
# =============================================================================

def _biquad_power_gain(coeffs: BiquadCoefficients, omega: np.ndarray) -> np.ndarray:
    """
    Squared magnitude of a biquad evaluated on the unit circle at z = e^(j*omega).

    num = b0 + b1 e^-jw + b2 e^-2jw, den = 1 + a1 e^-jw + a2 e^-2jw
    |H|^2 = (num_re^2 + num_im^2) / (den_re^2 + den_im^2)
    """
    cos_w = np.cos(omega)
    sin_w = np.sin(omega)
    cos_2w = np.cos(2.0 * omega)
    sin_2w = np.sin(2.0 * omega)

    num_re = coeffs.b0 + coeffs.b1 * cos_w + coeffs.b2 * cos_2w
    num_im = -coeffs.b1 * sin_w - coeffs.b2 * sin_2w
    den_re = 1.0 + coeffs.a1 * cos_w + coeffs.a2 * cos_2w
    den_im = -coeffs.a1 * sin_w - coeffs.a2 * sin_2w

    return (num_re * num_re + num_im * num_im) / (den_re * den_re + den_im * den_im)


def k_weight_response(freqs_hz: np.ndarray, sample_rate: float) -> np.ndarray:
    """
    K-weighting amplitude gain at each frequency.

    Cascade of the shelving pre-filter and the RLB high-pass, evaluated
    analytically. Frequencies <= 0 get exactly 0.

    Parameters:
        freqs_hz: Frequencies in Hz
        sample_rate: Sample rate in Hz (selects the coefficient set)

    Returns:
        Amplitude gain array (1.0 == 0 dB)
    """
    freqs_hz = np.asarray(freqs_hz, dtype=np.float64)
    params = select_k_weighting(sample_rate)

    omega = 2.0 * np.pi * freqs_hz / sample_rate
    pre_gain_sq = _biquad_power_gain(params.pre_filter, omega)
    rlb_gain_sq = _biquad_power_gain(params.rlb_filter, omega)
    gain = np.sqrt(pre_gain_sq * rlb_gain_sq)

    return np.where(freqs_hz > 0.0, gain, 0.0)


def k_weight(freq_hz: float, sample_rate: float) -> float:
    """
    K-weighting amplitude gain at a single frequency.

    Parameters:
        freq_hz: Frequency in Hz (<= 0 returns 0.0)
        sample_rate: Sample rate in Hz

    Returns:
        Amplitude gain (1.0 == 0 dB)
    """
    if freq_hz <= 0.0:
        return 0.0
    return float(k_weight_response(np.array([freq_hz]), sample_rate)[0])


def check_sample_rate(sample_rate: int) -> Optional[str]:
    """
    Advisory check for K-weighting accuracy.

    Returns:
        Warning message if the rate has no exact coefficient set, else None
    """
    if sample_rate in EXACT_K_WEIGHTING_RATES:
        return None
    return (
        f"Sample rate {sample_rate} Hz has no exact K-weighting coefficients; "
        f"using the 44100 Hz set (approximate)"
    )


def create_k_weight_table(fft_size: int, sample_rate: int) -> np.ndarray:
    """
    Power-domain K-weighting factor for each FFT bin.

    CONTRACT:
    - Length fft_size // 2, index i <-> frequency i * sample_rate / fft_size
    - table[i] == k_weight(freq_i, sample_rate) ** 2
    - table[0] == 0.0 (high-pass at DC)

    Parameters:
        fft_size: FFT length in samples
        sample_rate: Sample rate in Hz

    Returns:
        float64 array of squared gains
    """
    freq_per_bin = sample_rate / fft_size
    freqs = np.arange(fft_size // 2, dtype=np.float64) * freq_per_bin
    weights = k_weight_response(freqs, float(sample_rate))
    return weights * weights


# =============================================================================
# FRAME / BAND POWER ACCUMULATION
# =============================================================================

def count_frames(n_samples: int, fft_size: int, hop_size: int) -> int:
    """Number of full frames at positions 0, hop, 2*hop, ... that fit the buffer."""
    if n_samples < fft_size:
        return 0
    return (n_samples - fft_size) // hop_size + 1


def band_bin_ranges(
    bands: Sequence[Band],
    freq_per_bin: float,
    nyquist_bin: int
) -> List[Tuple[int, int]]:
    """Half-open bin range per band (see module docstring for the mapping)."""
    return [band.bin_range(freq_per_bin, nyquist_bin) for band in bands]


def _frame_power_spectrum(
    samples: np.ndarray,
    pos: int,
    window: np.ndarray,
    frame_buffer: np.ndarray,
    nyquist_bin: int
) -> np.ndarray:
    """
    Windowed power spectrum |X[k]|^2 of one frame, bins [0, nyquist_bin).

    frame_buffer is reused across frames; it is overwritten.
    """
    fft_size = len(window)
    np.multiply(samples[pos:pos + fft_size], window, out=frame_buffer)
    spectrum = scipy_fft.rfft(frame_buffer)[:nyquist_bin]
    return spectrum.real * spectrum.real + spectrum.imag * spectrum.imag


def analyze_interval(
    samples: np.ndarray,
    window: np.ndarray,
    bands: Sequence[Band],
    freq_per_bin: float,
    k_weights: Optional[np.ndarray] = None,
    hop_size: int = DEFAULT_HOP_SIZE
) -> np.ndarray:
    """
    Sum per-band power over all frames of one time slice.

    Single-metric variant used by timeline analysis: returns raw power, or
    K-weighted power when k_weights is given. The FFT size is len(window).

    CONTRACT:
    - Output length == len(bands), all values >= 0
    - Slice shorter than one frame -> all zeros

    Parameters:
        samples: Mono samples of the slice
        window: Analysis window (length == fft_size)
        bands: Band table
        freq_per_bin: sample_rate / fft_size
        k_weights: Optional squared-gain table of length fft_size // 2
        hop_size: Hop between frames in samples

    Returns:
        float64 array of per-band power
    """
    samples = np.asarray(samples)
    fft_size = len(window)
    nyquist_bin = fft_size // 2
    bin_ranges = band_bin_ranges(bands, freq_per_bin, nyquist_bin)

    band_powers = np.zeros(len(bands), dtype=np.float64)
    frame_buffer = np.empty(fft_size, dtype=np.float64)

    pos = 0
    while pos + fft_size <= len(samples):
        power = _frame_power_spectrum(samples, pos, window, frame_buffer, nyquist_bin)
        if k_weights is not None:
            power = power * k_weights[:nyquist_bin]

        for band_idx, (low_bin, high_bin) in enumerate(bin_ranges):
            band_powers[band_idx] += power[low_bin:high_bin].sum()

        pos += hop_size

    return band_powers


def analyze_stats(
    samples: np.ndarray,
    sample_rate: int,
    bands: Sequence[Band],
    k_weights: np.ndarray,
    on_progress: Optional[Callable[[int], None]] = None,
    fft_size: int = DEFAULT_FFT_SIZE,
    hop_size: int = DEFAULT_HOP_SIZE,
    min_power: float = MIN_POWER,
    threshold_db: float = DYNAMICS_THRESHOLD_DB
) -> StatsResult:
    """
    Raw power, K-weighted power and dynamics in a single FFT pass.

    CONTRACT:
    - Each frame is transformed exactly once
    - Per-frame raw band power > min_power is logged as 10*log10(power)
      into that band's dB series, which feeds compute_dynamics
    - on_progress(percent) is called synchronously with
      floor(frame_index * 100 / total_frames), only when the value changes,
      and reaches 100 on the final frame
    - Buffer shorter than one frame -> zero powers, sentinel dynamics

    Parameters:
        samples: Mono samples
        sample_rate: Sample rate in Hz
        bands: Band table
        k_weights: Squared-gain table from create_k_weight_table
        on_progress: Optional progress callback taking an int in [0, 100]
        fft_size: FFT frame length in samples
        hop_size: Hop between frames in samples
        min_power: Floor for dB conversion
        threshold_db: Dynamics threshold below each band's peak

    Returns:
        StatsResult
    """
    samples = np.asarray(samples)
    freq_per_bin = sample_rate / fft_size
    nyquist_bin = fft_size // 2
    window = create_window(fft_size)
    bin_ranges = band_bin_ranges(bands, freq_per_bin, nyquist_bin)
    k_table = np.asarray(k_weights, dtype=np.float64)[:nyquist_bin]

    n_bands = len(bands)
    raw_powers = np.zeros(n_bands, dtype=np.float64)
    k_powers = np.zeros(n_bands, dtype=np.float64)
    band_db_per_frame: List[List[float]] = [[] for _ in range(n_bands)]

    total_frames = count_frames(len(samples), fft_size, hop_size)
    frame_buffer = np.empty(fft_size, dtype=np.float64)

    last_progress = -1
    for frame_idx in range(total_frames):
        pos = frame_idx * hop_size
        power = _frame_power_spectrum(samples, pos, window, frame_buffer, nyquist_bin)
        weighted = power * k_table

        for band_idx, (low_bin, high_bin) in enumerate(bin_ranges):
            raw_power = float(power[low_bin:high_bin].sum())
            raw_powers[band_idx] += raw_power
            k_powers[band_idx] += weighted[low_bin:high_bin].sum()

            if raw_power > min_power:
                band_db_per_frame[band_idx].append(10.0 * np.log10(raw_power))

        if on_progress is not None:
            progress = (frame_idx + 1) * 100 // total_frames
            if progress != last_progress:
                on_progress(progress)
                last_progress = progress

    dynamics = compute_dynamics(band_db_per_frame, threshold_db)

    return StatsResult(
        raw_powers=raw_powers,
        k_powers=k_powers,
        dynamics=dynamics,
        n_frames=total_frames
    )


# =============================================================================
# DYNAMICS
# =============================================================================

def compute_dynamics(
    band_db_series: Sequence[Sequence[float]],
    threshold_db: float = DYNAMICS_THRESHOLD_DB
) -> np.ndarray:
    """
    Thresholded population standard deviation of each band's dB series.

    Per band:
    1. Empty series -> DYNAMICS_SENTINEL
    2. threshold = max(series) - threshold_db
    3. Keep values >= threshold; none left -> DYNAMICS_SENTINEL
    4. Population std (ddof=0) of the kept values

    Parameters:
        band_db_series: One sequence of per-frame dB values per band
        threshold_db: Audibility window below each band's peak

    Returns:
        float64 array, one value per band
    """
    dynamics = np.full(len(band_db_series), DYNAMICS_SENTINEL, dtype=np.float64)

    for band_idx, series in enumerate(band_db_series):
        if len(series) == 0:
            continue

        values = np.asarray(series, dtype=np.float64)
        threshold = values.max() - threshold_db
        audible = values[values >= threshold]

        if len(audible) == 0:
            continue

        dynamics[band_idx] = float(np.std(audible))

    return dynamics


# =============================================================================
# PERCENTAGES
# =============================================================================

def to_percentages(powers: Sequence[float]) -> np.ndarray:
    """
    Convert a power vector to percent-of-total.

    Returns all zeros when the total is not positive.
    """
    powers = np.asarray(powers, dtype=np.float64)
    total = powers.sum()
    if total > 0.0:
        return powers / total * 100.0
    return np.zeros_like(powers)
