"""
bandstat - Configuration

Pipeline, CLI and presentation parameters with documentation.
Every default value includes rationale.

Kernel-contract constants (FFT size, hop, K-weighting coefficients, dynamics
threshold) live in bandstat/kernel_params.py; this module only decides how
audio reaches the kernel and how results are shown.
"""

from typing import Dict, List, Tuple

# =============================================================================
# AUDIO PREPROCESSING PARAMETERS
# =============================================================================

# Target sample rate for analysis (Hz)
# Why: 48 kHz has an exact ITU-R BS.1770-4 K-weighting coefficient set and
#      gives every file the same FFT bin spacing, so comparisons line up
TARGET_SAMPLE_RATE: int = 48000

# =============================================================================
# FRAME-LEVEL PARAMETERS
# =============================================================================

# FFT frame size (samples)
# Why: 16384 samples at 48 kHz = 2.93 Hz bins, fine enough to split
#      DC/SUB1/SUB2 (20 Hz wide) into several bins each
FFT_SIZE: int = 16384

# Hop between frames (samples)
# Why: 2048 samples = 42.7 ms at 48 kHz (8x overlap), enough time resolution
#      for the dynamics statistic to see level changes within a bar
HOP_SIZE: int = 2048

# =============================================================================
# CLI PARAMETERS
# =============================================================================

# Maximum number of files accepted on the command line
# Why: 10 keeps comparison tables readable in an 80-120 column terminal
#      (each extra file adds five rows) and fits the A-J file labels
MAX_FILES: int = 10

# Default timeline interval (seconds)
# Why: 20 seconds ~ 8-10 bars at typical tempos, one row per section
#      for a 3-5 minute track
DEFAULT_INTERVAL_SEC: int = 20

# Minimum timeline interval (seconds)
# Why: Below 1 second an interval holds fewer than ~20 frames,
#      percentages get noisy and the table gets very long
MIN_INTERVAL_SEC: int = 1

# =============================================================================
# DISPLAY PARAMETERS
# =============================================================================

# Minimum raw band share (%) for showing dynamics
# Why: 0.5% is roughly 23 dB below an even share; the level swings of such
#      bands are leakage and noise floor, not musical dynamics
DYNAMICS_DISPLAY_THRESHOLD_PCT: float = 0.5

# Timeline values below this (%) are printed as 0.0
# Why: 0.05 rounds to 0.0 at one decimal anyway; printing it explicitly
#      avoids "-0.0" style artifacts from tiny leakage values
TIMELINE_ZERO_DISPLAY_PCT: float = 0.05

# Text shown for masked / non-finite values
# Why: A dash is visually distinct from a computed 0.0
NOT_APPLICABLE_TEXT: str = "-"

# =============================================================================
# OUTPUT PARAMETERS
# =============================================================================

# JSON schema version
# Why: Versioning allows future format changes while maintaining compatibility
SCHEMA_VERSION: str = "1.0.0"

# Kernel version (algorithm version, bump when DSP logic changes)
# Why: Allows tracking which algorithm version produced specific outputs
KERNEL_VERSION: str = "1.0.0"

# Plot resolution (dots per inch)
# Why: 200 DPI at 14 inches wide = 2800 px, sharp on high-density screens
PLOT_DPI: int = 200

# Comparison / stats chart size (width, height in inches)
# Why: 14x6 inches fits 14 two-line band labels without overlap
PLOT_FIGSIZE: Tuple[float, float] = (14, 6)

# Minimum segment share (%) for drawing a value label inside stacked bars
# Why: Below 5% the segment is too thin for a readable label
CHART_LABEL_THRESHOLD_PCT: float = 5.0

# Chart background, text and grid colors
# Why: Dark background matches terminal use and keeps the band colors vivid
CHART_BACKGROUND_COLOR: str = "#0A0A0C"
CHART_TEXT_COLOR: str = "#FFFFFF"
CHART_GRID_COLOR: str = "#505050"

# Color set per file in comparison charts: (bar top, bar bottom, K-wt line)
# Why: One hue family per file; the lighter line tone keeps the K-weighted
#      overlay readable on top of the raw bars
COMPARISON_COLOR_SETS: List[Dict[str, str]] = [
    {'top': '#68B4FF', 'bottom': '#1888F8', 'line': '#88D4FF'},  # [A] blue
    {'top': '#FF68A8', 'bottom': '#F03888', 'line': '#FF94C0'},  # [B] pink
    {'top': '#48F89C', 'bottom': '#10D878', 'line': '#78FFB4'},  # [C] green
    {'top': '#A478FF', 'bottom': '#7840F8', 'line': '#C4A4FF'},  # [D] purple
]

# Maximum number of files a chart can show
# Why: One color set per file
MAX_CHART_FILES: int = len(COMPARISON_COLOR_SETS)

# Stacked chart band colors, low to high
# Why: Blue for lows (DC-UBAS), green-yellow for mids (LMID-HMID),
#      orange-red for highs (PRES-AIR) so regions read at a glance
TIMELINE_BAND_COLORS: List[str] = [
    "#1E3A5F",  # DC
    "#2858A0",  # SUB1
    "#3878C0",  # SUB2
    "#4898E0",  # BASS
    "#58B8F0",  # UBAS
    "#48C878",  # LMID
    "#78D848",  # MID
    "#B8E818",  # UMID
    "#E8D800",  # HMID
    "#F8A800",  # PRES
    "#F87800",  # BRIL
    "#E84800",  # HIGH
    "#C82828",  # UHIG
    "#982060",  # AIR
]

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def file_label(index: int) -> str:
    """
    Letter label for the file at a given position.

    Parameters:
        index: Zero-based file index

    Returns:
        'A', 'B', ... 'Z'
    """
    return chr(ord('A') + index)


def validate_config() -> bool:
    """
    Validate configuration parameters for consistency.

    Returns:
        True if config is valid

    Raises:
        ValueError: If configuration is invalid
    """
    if TARGET_SAMPLE_RATE <= 0:
        raise ValueError("TARGET_SAMPLE_RATE must be positive")

    if FFT_SIZE < 2 or FFT_SIZE % 2 != 0:
        raise ValueError("FFT_SIZE must be an even number >= 2")

    if not (0 < HOP_SIZE < FFT_SIZE):
        raise ValueError("HOP_SIZE must be in (0, FFT_SIZE)")

    if not (1 <= MAX_FILES <= 26):
        raise ValueError("MAX_FILES must be in [1, 26]")

    if MIN_INTERVAL_SEC < 1 or DEFAULT_INTERVAL_SEC < MIN_INTERVAL_SEC:
        raise ValueError("DEFAULT_INTERVAL_SEC must be >= MIN_INTERVAL_SEC >= 1")

    if not (0.0 <= DYNAMICS_DISPLAY_THRESHOLD_PCT <= 100.0):
        raise ValueError("DYNAMICS_DISPLAY_THRESHOLD_PCT must be in [0, 100]")

    if len(TIMELINE_BAND_COLORS) < 14:
        raise ValueError("TIMELINE_BAND_COLORS needs one color per band")

    return True


# Validate on import
validate_config()
