"""
Kernel Parameters Module - Observable Kernel Constants

These parameters are part of the analysis contract: changing any of them
changes the numbers bandstat reports, so they are versioned with the kernel
and exported alongside results.

USAGE:
    from bandstat.kernel_params import KernelConfig, DEFAULT_CONFIG

    # Use default config
    params = DEFAULT_CONFIG

    # Create custom config
    custom = KernelConfig(frame=FrameParams(fft_size=4096, hop_size=2048))
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class FrameParams:
    """
    Frame-level analysis parameters.

    Attributes:
        fft_size: Samples per FFT frame (default 16384 = 2.93 Hz bins at 48 kHz)
        hop_size: Hop between frames (default 2048 = 42.7 ms at 48 kHz, 8x overlap)
    """
    fft_size: int = 16384
    hop_size: int = 2048

    @property
    def nyquist_bin(self) -> int:
        return self.fft_size // 2

    def freq_per_bin(self, sample_rate: int) -> float:
        """Bin spacing in Hz for the given sample rate."""
        return sample_rate / self.fft_size


@dataclass(frozen=True)
class BiquadCoefficients:
    """
    Normalized biquad coefficients (a0 == 1).

    H(z) = (b0 + b1 z^-1 + b2 z^-2) / (1 + a1 z^-1 + a2 z^-2)
    """
    b0: float
    b1: float
    b2: float
    a1: float
    a2: float

    def as_tuple(self) -> Tuple[float, float, float, float, float]:
        return (self.b0, self.b1, self.b2, self.a1, self.a2)


@dataclass(frozen=True)
class KWeightingParams:
    """
    K-weighting filter definition for one sample-rate bucket.

    Attributes:
        pre_filter: High-frequency shelving stage
        rlb_filter: Revised low-frequency B-curve high-pass stage
    """
    pre_filter: BiquadCoefficients
    rlb_filter: BiquadCoefficients


# ITU-R BS.1770-4 Table 1 (48 kHz)
K_WEIGHTING_48000 = KWeightingParams(
    pre_filter=BiquadCoefficients(
        b0=1.53512485958697,
        b1=-2.69169618940638,
        b2=1.19839281085285,
        a1=-1.69065929318241,
        a2=0.73248077421585,
    ),
    rlb_filter=BiquadCoefficients(
        b0=1.0,
        b1=-2.0,
        b2=1.0,
        a1=-1.99004745483398,
        a2=0.99007225036621,
    ),
)

# 44.1 kHz, bilinear transform of the same analog prototype
K_WEIGHTING_44100 = KWeightingParams(
    pre_filter=BiquadCoefficients(
        b0=1.5308412300503478,
        b1=-2.6509799951547297,
        b2=1.1690790799215869,
        a1=-1.6636551132560204,
        a2=0.7125954280732254,
    ),
    rlb_filter=BiquadCoefficients(
        b0=0.9994908682456236,
        b1=-1.9989817364912472,
        b2=0.9994908682456236,
        a1=-1.9989817364912472,
        a2=0.9989826099040272,
    ),
)

# Rates with exact coefficient sets; anything else is approximated
EXACT_K_WEIGHTING_RATES: Tuple[int, ...] = (44100, 48000)

# Tolerance for selecting the 48 kHz set (Hz)
K_WEIGHTING_RATE_TOLERANCE_HZ: float = 1.0


def select_k_weighting(sample_rate: float) -> KWeightingParams:
    """
    Pick the coefficient set for a sample rate.

    Within K_WEIGHTING_RATE_TOLERANCE_HZ of 48000 the BS.1770-4 table is used;
    every other rate falls back to the 44.1 kHz set.
    """
    if abs(sample_rate - 48000.0) < K_WEIGHTING_RATE_TOLERANCE_HZ:
        return K_WEIGHTING_48000
    return K_WEIGHTING_44100


@dataclass(frozen=True)
class DynamicsParams:
    """
    Dynamics (per-band level variability) parameters.

    Attributes:
        min_power: Per-frame band power floor for dB conversion (guards log(0))
        threshold_db: Frames further than this below the band's peak are
            treated as inaudible and excluded from the standard deviation
    """
    min_power: float = 1e-20
    threshold_db: float = 60.0


@dataclass
class KernelConfig:
    """
    Complete kernel configuration aggregating all parameter groups.

    Example usage:
        params = KernelConfig()  # All defaults
        params = KernelConfig(dynamics=DynamicsParams(threshold_db=40.0))
    """
    frame: FrameParams = field(default_factory=FrameParams)
    dynamics: DynamicsParams = field(default_factory=DynamicsParams)

    def to_dict(self) -> Dict:
        """
        Export all parameters as a flat dictionary for JSON serialization.

        Returns:
            Dictionary with all parameter values
        """
        return {
            # Frame params
            'fft_size': self.frame.fft_size,
            'hop_size': self.frame.hop_size,

            # Dynamics params
            'min_power': self.dynamics.min_power,
            'dynamics_threshold_db': self.dynamics.threshold_db,

            # K-weighting
            'k_weighting_rate_tolerance_hz': K_WEIGHTING_RATE_TOLERANCE_HZ,
            'k_weighting_48000': {
                'pre_filter': list(K_WEIGHTING_48000.pre_filter.as_tuple()),
                'rlb_filter': list(K_WEIGHTING_48000.rlb_filter.as_tuple()),
            },
            'k_weighting_44100': {
                'pre_filter': list(K_WEIGHTING_44100.pre_filter.as_tuple()),
                'rlb_filter': list(K_WEIGHTING_44100.rlb_filter.as_tuple()),
            },
        }


# Default configuration instance
DEFAULT_CONFIG = KernelConfig()


def validate_params(params: KernelConfig) -> bool:
    """
    Validate configuration parameters for consistency.

    Parameters:
        params: KernelConfig instance to validate

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    if params.frame.fft_size < 2:
        raise ValueError("fft_size must be at least 2")
    if params.frame.fft_size % 2 != 0:
        raise ValueError("fft_size must be even")
    if not (0 < params.frame.hop_size < params.frame.fft_size):
        raise ValueError("hop_size must be in (0, fft_size)")

    if params.dynamics.min_power <= 0.0:
        raise ValueError("min_power must be positive")
    if params.dynamics.threshold_db <= 0.0:
        raise ValueError("dynamics threshold_db must be positive")

    return True


# Validate default config on import
validate_params(DEFAULT_CONFIG)
