"""
Report Module

Fixed-width text tables for stdout. Every band column is 6 characters
wide (" {:>5}"), so headers, value rows and separators line up.
"""

import sys
from typing import List, Optional, Sequence

import numpy as np

import config
from bandstat.analysis import FileStats, TimelineResult, mask_dynamics
from bandstat.bands import Band

COLUMN_WIDTH = 6


def format_value(value: float) -> str:
    """One band cell: value with one decimal, '-' when not finite."""
    if np.isfinite(value):
        return f" {value:>5.1f}"
    return f" {config.NOT_APPLICABLE_TEXT:>5}"


def format_diff(value: float) -> str:
    """One band cell with explicit sign."""
    if np.isfinite(value):
        return f" {value:>+5.1f}"
    return f" {config.NOT_APPLICABLE_TEXT:>5}"


def format_time(seconds: float) -> str:
    """MM:SS with a trailing space, e.g. '01:20 '."""
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins:02d}:{secs:02d} "


def print_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def print_warning(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def print_bands(bands: Sequence[Band]) -> None:
    print("Bands:")
    for band in bands:
        if band.is_open_ended:
            print(f"  {band.label:>4}: {band.low_hz:5.0f}+      Hz")
        else:
            print(f"  {band.label:>4}: {band.low_hz:5.0f}-{band.high_hz:5.0f} Hz")
    print()


def print_header(bands: Sequence[Band], prefix: str) -> None:
    print(prefix + "".join(f" {band.label:>5}" for band in bands))


def print_separator(bands: Sequence[Band], prefix_width: int) -> None:
    print("-" * (prefix_width + COLUMN_WIDTH * len(bands)))


def print_row(label: str, values: Sequence[float]) -> None:
    print(label + "".join(format_value(v) for v in values))


def print_diff_row(label: str, base: Sequence[float], other: Sequence[float]) -> None:
    """Row of other - base per band."""
    diff = np.asarray(other, dtype=np.float64) - np.asarray(base, dtype=np.float64)
    print(label + "".join(format_diff(v) for v in diff))


def print_masked_row(
    label: str,
    dynamics: Sequence[float],
    raw_pct: Sequence[float],
    threshold_pct: float = config.DYNAMICS_DISPLAY_THRESHOLD_PCT
) -> None:
    """Dynamics row; bands below threshold_pct raw share print as '-'."""
    print_row(label, mask_dynamics(dynamics, raw_pct, threshold_pct))


def print_masked_diff_row(
    label: str,
    base_dynamics: Sequence[float],
    other_dynamics: Sequence[float],
    base_pct: Sequence[float],
    other_pct: Sequence[float],
    threshold_pct: float = config.DYNAMICS_DISPLAY_THRESHOLD_PCT
) -> None:
    """Dynamics difference; '-' unless the band is shown in both files."""
    base = mask_dynamics(base_dynamics, base_pct, threshold_pct)
    other = mask_dynamics(other_dynamics, other_pct, threshold_pct)
    with np.errstate(invalid='ignore'):
        diff = other - base
    print(label + "".join(format_diff(v) for v in diff))


def print_file_info(
    name: str,
    sample_rate: int,
    channels: int,
    k_weighted: bool
) -> None:
    print(f"File: {name}")
    print(f"Sample rate: {sample_rate} Hz, Channels: {channels}")
    if k_weighted:
        print("Weighting: K-weighted (ITU-R BS.1770)")
    print()


def print_legend() -> None:
    print("Raw: Percentage of total power in each band")
    print("K-wt: Same as Raw, but with K-weighting applied")
    print("Diff: Difference between K-wt and Raw")
    print("Dyn: Standard deviation of band power over time (dB), "
          f"shown for bands with at least {config.DYNAMICS_DISPLAY_THRESHOLD_PCT}% raw share")


# =============================================================================
# MODE REPORTS
# =============================================================================

def print_stats_report(
    stats: FileStats,
    bands: Sequence[Band],
    k_weighted: bool = False,
    quiet: bool = False
) -> None:
    """
    Single-file report: band power distribution and dynamics.

    Parameters:
        stats: Analysis result
        bands: Band table
        k_weighted: Mention K-weighting in the file info header
        quiet: Omit file info, band list and legend
    """
    prefix = " " * 8

    if not quiet:
        print()
        print("Stats Analysis")
        print_file_info(stats.name, stats.original_sample_rate, stats.channels, k_weighted)
        print_bands(bands)

    print("[Band Power Distribution]")
    print_header(bands, prefix)
    print_separator(bands, 8)
    print_row("Raw(%)  ", stats.raw_pct)
    print_row("K-wt(%) ", stats.k_pct)
    print_separator(bands, 8)
    print_diff_row("Diff    ", stats.raw_pct, stats.k_pct)

    print()
    print("[Dynamics]")
    print_header(bands, prefix)
    print_separator(bands, 8)
    print_masked_row("Dyn(dB) ", stats.dynamics, stats.raw_pct)

    if not quiet:
        print()
        print_legend()


def print_comparison_report(
    stats_list: List[FileStats],
    bands: Sequence[Band],
    quiet: bool = False
) -> None:
    """
    Multi-file report. The first file is the base; every other file gets
    its own rows plus difference rows against the base.
    """
    prefix_width = 9
    prefix = " " * prefix_width
    base = stats_list[0]
    base_tag = f"[{config.file_label(0)}]"

    print("Comparison (base: [A]):")
    for i, stats in enumerate(stats_list):
        print(f"  [{config.file_label(i)}] {stats.name}")
    print()

    if not quiet:
        print_bands(bands)

    print("[Band Power Distribution]")
    print_header(bands, prefix)
    print_separator(bands, prefix_width)
    print_row(f"{base_tag} Raw  ", base.raw_pct)
    print_row(f"{base_tag} K-wt ", base.k_pct)
    print_diff_row(f"{base_tag} Diff ", base.raw_pct, base.k_pct)

    for i, stats in enumerate(stats_list[1:], start=1):
        tag = f"[{config.file_label(i)}]"
        diff_tag = f"{config.file_label(i)}-A"
        print_separator(bands, prefix_width)
        print_row(f"{tag} Raw  ", stats.raw_pct)
        print_row(f"{tag} K-wt ", stats.k_pct)
        print_diff_row(f"{tag} Diff ", stats.raw_pct, stats.k_pct)
        print_separator(bands, prefix_width)
        print_diff_row(f"{diff_tag} Raw  ", base.raw_pct, stats.raw_pct)
        print_diff_row(f"{diff_tag} K-wt ", base.k_pct, stats.k_pct)

    print()
    print("[Dynamics]")
    print_header(bands, prefix)
    print_separator(bands, prefix_width)
    print_masked_row(f"{base_tag} dB   ", base.dynamics, base.raw_pct)

    for i, stats in enumerate(stats_list[1:], start=1):
        print_separator(bands, prefix_width)
        print_masked_row(f"[{config.file_label(i)}] dB   ", stats.dynamics, stats.raw_pct)
        print_separator(bands, prefix_width)
        print_masked_diff_row(
            f"{config.file_label(i)}-A      ",
            base.dynamics, stats.dynamics,
            base.raw_pct, stats.raw_pct
        )

    if not quiet:
        print()
        print_legend()


def format_timeline_cell(pct: float) -> str:
    if pct < config.TIMELINE_ZERO_DISPLAY_PCT:
        return f"{0.0:>{COLUMN_WIDTH}.1f}"
    return f"{pct:>{COLUMN_WIDTH}.1f}"


def print_timeline_report(
    timeline: TimelineResult,
    bands: Sequence[Band],
    quiet: bool = False
) -> None:
    """
    One row per retained interval, then the AVG row and total duration.

    AVG is computed from the summed interval powers, not by averaging the
    per-interval percentages.
    """
    if not quiet:
        print_file_info(
            timeline.name,
            timeline.original_sample_rate,
            timeline.channels,
            timeline.k_weighted
        )
        print_bands(bands)

    print_header(bands, "TIME  ")
    print_separator(bands, 6)

    for timeline_slice in timeline.slices:
        cells = "".join(format_timeline_cell(p) for p in timeline_slice.percentages)
        print(format_time(timeline_slice.start_sec) + cells)

    print_separator(bands, 6)

    total: Optional[np.ndarray] = timeline.total_powers
    if total is not None and total.sum() > 0.0:
        print_row("AVG   ", timeline.average_pct)
    else:
        print_row("AVG   ", np.full(len(bands), np.nan))

    print()
    print(f"Duration: {format_time(timeline.duration).strip()}")
