"""
Band Table Module

Fixed frequency band definitions shared by the kernel, reports and charts.
Bands are half-open [low_hz, high_hz) ranges; the top band is open-ended.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Band:
    """
    Frequency band with display label and range.

    Attributes:
        label: Short display tag (at most 4 characters)
        low_hz: Inclusive lower edge in Hz
        high_hz: Exclusive upper edge in Hz, None for the open-ended top band
    """
    label: str
    low_hz: float
    high_hz: Optional[float] = None

    @property
    def is_open_ended(self) -> bool:
        return self.high_hz is None

    def bin_range(self, freq_per_bin: float, nyquist_bin: int) -> Tuple[int, int]:
        """
        Map the band to a half-open FFT bin range [low_bin, high_bin).

        Both edges are floored and clamped to the Nyquist bin, so an
        open-ended band always ends at nyquist_bin and bands lying entirely
        above Nyquist collapse to an empty range.

        Parameters:
            freq_per_bin: Bin spacing in Hz (sample_rate / fft_size)
            nyquist_bin: fft_size // 2

        Returns:
            Tuple of (low_bin, high_bin)
        """
        low_bin = min(nyquist_bin, int(self.low_hz / freq_per_bin))
        if self.high_hz is None:
            return low_bin, nyquist_bin
        high_bin = min(nyquist_bin, int(self.high_hz / freq_per_bin))
        return low_bin, high_bin


# (label, low_hz, high_hz)
_BAND_TABLE = (
    ("DC", 0.0, 20.0),
    ("SUB1", 20.0, 40.0),
    ("SUB2", 40.0, 60.0),
    ("BASS", 60.0, 120.0),
    ("UBAS", 120.0, 250.0),
    ("LMID", 250.0, 500.0),
    ("MID", 500.0, 1000.0),
    ("UMID", 1000.0, 2000.0),
    ("HMID", 2000.0, 4000.0),
    ("PRES", 4000.0, 6000.0),
    ("BRIL", 6000.0, 10000.0),
    ("HIGH", 10000.0, 14000.0),
    ("UHIG", 14000.0, 18000.0),
    ("AIR", 18000.0, None),
)


def get_bands() -> List[Band]:
    """Return the 14 standard bands from DC to AIR, ascending."""
    return [Band(label, low, high) for label, low, high in _BAND_TABLE]


def validate_bands(bands: List[Band]) -> bool:
    """
    Validate a band table.

    CONTRACT:
    - Non-empty, first band starts at 0 Hz
    - Ascending and contiguous (high_hz[i] == low_hz[i+1])
    - Only the last band is open-ended, and it must be

    Parameters:
        bands: Band table to check

    Returns:
        True if the table is valid

    Raises:
        ValueError: If the table violates any invariant
    """
    if not bands:
        raise ValueError("Band table is empty")

    if bands[0].low_hz != 0.0:
        raise ValueError(f"First band must start at 0 Hz, got {bands[0].low_hz}")

    for current, following in zip(bands, bands[1:]):
        if current.high_hz is None:
            raise ValueError(f"Only the last band may be open-ended, got {current.label}")
        if current.high_hz <= current.low_hz:
            raise ValueError(f"Band {current.label} has empty range")
        if current.high_hz != following.low_hz:
            raise ValueError(
                f"Bands {current.label} and {following.label} are not contiguous"
            )

    if not bands[-1].is_open_ended:
        raise ValueError(f"Last band {bands[-1].label} must be open-ended")

    return True


def format_freq(hz: float) -> str:
    """Format a frequency for display (1000 -> '1k', 1500 -> '1.5k', 500 -> '500')."""
    if hz >= 1000.0:
        k = hz / 1000.0
        if k == int(k):
            return f"{int(k)}k"
        return f"{k:.1f}k"
    return f"{int(hz)}"


def band_range_label(band: Band) -> str:
    """Compact range label, e.g. '1k-2k' or '18k+'."""
    if band.is_open_ended:
        return f"{format_freq(band.low_hz)}+"
    return f"{format_freq(band.low_hz)}-{format_freq(band.high_hz)}"
