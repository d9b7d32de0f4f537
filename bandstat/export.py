"""
Export Module

Generate JSON outputs and charts for analysis results.
All JSON outputs follow a versioned schema for consistency.
"""

import numpy as np
import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

import config
from bandstat.analysis import FileStats, TimelineResult, mask_dynamics
from bandstat.bands import Band, band_range_label
from bandstat.kernel_params import KernelConfig, DEFAULT_CONFIG
from bandstat.report import format_time


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.bool_):
            return bool(obj)
        return super().default(obj)


def finite_or_none(values: Sequence[float]) -> List[Optional[float]]:
    """Replace non-finite values (dynamics sentinel) with None -> JSON null."""
    return [float(v) if np.isfinite(v) else None for v in values]


def bands_to_json(bands: Sequence[Band]) -> List[Dict]:
    return [
        {'label': band.label, 'low_hz': band.low_hz, 'high_hz': band.high_hz}
        for band in bands
    ]


def _file_entry(stats: FileStats, label: str) -> Dict:
    return {
        'label': label,
        'name': stats.name,
        'original_sample_rate': stats.original_sample_rate,
        'channels': stats.channels,
        'duration_sec': stats.duration,
        'n_frames': stats.result.n_frames,
        'raw_pct': stats.raw_pct,
        'k_pct': stats.k_pct,
        'dynamics': finite_or_none(stats.dynamics),
        'dynamics_display': finite_or_none(mask_dynamics(
            stats.dynamics, stats.raw_pct, config.DYNAMICS_DISPLAY_THRESHOLD_PCT
        )),
    }


def create_stats_json(
    stats_list: List[FileStats],
    bands: Sequence[Band],
    sample_rate: int,
    params: KernelConfig = DEFAULT_CONFIG
) -> Dict:
    """
    Create stats / comparison JSON following schema.

    Parameters:
        stats_list: One FileStats per analysed file (first is the base)
        bands: Band table
        sample_rate: Analysis sample rate (Hz)
        params: Kernel parameters used

    Returns:
        Dict ready for JSON serialization
    """
    mode = 'stats' if len(stats_list) == 1 else 'compare'

    return {
        'schema_version': config.SCHEMA_VERSION,
        'kernel_version': config.KERNEL_VERSION,
        'mode': mode,
        'sample_rate': sample_rate,
        'kernel': params.to_dict(),
        'dynamics_display_threshold_pct': config.DYNAMICS_DISPLAY_THRESHOLD_PCT,
        'bands': bands_to_json(bands),
        'files': [
            _file_entry(stats, config.file_label(i))
            for i, stats in enumerate(stats_list)
        ],
    }


def create_timeline_json(
    timeline: TimelineResult,
    bands: Sequence[Band],
    sample_rate: int,
    params: KernelConfig = DEFAULT_CONFIG
) -> Dict:
    """
    Create timeline JSON following schema.

    Only retained (non-silent) intervals are listed.
    """
    return {
        'schema_version': config.SCHEMA_VERSION,
        'kernel_version': config.KERNEL_VERSION,
        'mode': 'timeline',
        'sample_rate': sample_rate,
        'kernel': params.to_dict(),
        'bands': bands_to_json(bands),
        'file': {
            'name': timeline.name,
            'original_sample_rate': timeline.original_sample_rate,
            'channels': timeline.channels,
            'duration_sec': timeline.duration,
        },
        'interval_sec': timeline.interval_sec,
        'k_weighted': timeline.k_weighted,
        'slices': [
            {
                'start_sec': s.start_sec,
                'powers': s.powers,
                'percentages': s.percentages,
            }
            for s in timeline.slices
        ],
        'average_pct': timeline.average_pct,
    }


def save_json(data: Dict, output_path: Union[str, Path]) -> None:
    """
    Save data as JSON with pretty printing.

    Parameters:
        data: Dictionary to save
        output_path: Path to output file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder, allow_nan=False)


# =============================================================================
# CHARTS
# =============================================================================

def _style_axes(ax) -> None:
    ax.set_facecolor(config.CHART_BACKGROUND_COLOR)
    ax.tick_params(colors=config.CHART_TEXT_COLOR)
    for spine in ax.spines.values():
        spine.set_color(config.CHART_GRID_COLOR)
    ax.yaxis.grid(True, color=config.CHART_GRID_COLOR, linewidth=0.5)
    ax.set_axisbelow(True)


def _save_figure(fig, output_path: Union[str, Path]) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(
        output_path,
        dpi=config.PLOT_DPI,
        bbox_inches='tight',
        facecolor=config.CHART_BACKGROUND_COLOR
    )
    plt.close(fig)


def plot_stacked_chart(
    time_labels: List[str],
    band_percentages: np.ndarray,
    bands: Sequence[Band],
    output_path: Union[str, Path],
    title: str = "Band Distribution",
    subtitle: str = ""
) -> None:
    """
    Stacked bar chart of band shares, lowest band at the bottom.

    Used by timeline mode (one bar per interval) and single-file stats
    mode (one bar, no x labels).

    Parameters:
        time_labels: One label per bar
        band_percentages: Array of shape (n_bands, n_bars)
        bands: Band table
        output_path: PNG path
        title: Chart title
        subtitle: Shown under the title (usually the file name)

    Raises:
        ValueError: If there is nothing to draw
    """
    band_percentages = np.asarray(band_percentages, dtype=np.float64)
    if len(time_labels) == 0:
        raise ValueError("No data to render")
    if band_percentages.shape != (len(bands), len(time_labels)):
        raise ValueError(
            f"band_percentages shape {band_percentages.shape} does not match "
            f"({len(bands)}, {len(time_labels)})"
        )

    single_bar = len(time_labels) == 1
    x = np.arange(len(time_labels))
    bar_width = 0.33 if single_bar else 0.9
    label_size = 11 if single_bar else 8

    fig, ax = plt.subplots(figsize=config.PLOT_FIGSIZE)
    fig.patch.set_facecolor(config.CHART_BACKGROUND_COLOR)
    _style_axes(ax)

    bottom = np.zeros(len(time_labels))
    for band_idx, band in enumerate(bands):
        values = np.round(band_percentages[band_idx], 1)
        color = config.TIMELINE_BAND_COLORS[band_idx % len(config.TIMELINE_BAND_COLORS)]
        ax.bar(
            x, values, bar_width, bottom=bottom, color=color,
            label=f"{band.label} ({band_range_label(band)})"
        )

        for xi, value, base in zip(x, values, bottom):
            if value >= config.CHART_LABEL_THRESHOLD_PCT:
                ax.text(
                    xi, base + value / 2, f"{value:.1f}",
                    ha='center', va='center', fontsize=label_size,
                    fontweight='bold', color=config.CHART_TEXT_COLOR
                )
        bottom = bottom + values

    ax.set_ylim(0, 100)
    ax.set_ylabel('%', color=config.CHART_TEXT_COLOR, fontsize=12)
    ax.set_xticks(x)
    if single_bar:
        ax.set_xticklabels([''])
        ax.set_xlim(-1, 1)
    else:
        ax.set_xticklabels(time_labels, fontsize=9)

    full_title = f"{title}\n{subtitle}" if subtitle else title
    ax.set_title(full_title, color=config.CHART_TEXT_COLOR, fontsize=14, fontweight='bold')

    legend = ax.legend(
        loc='upper center', bbox_to_anchor=(0.5, -0.08), ncol=7,
        fontsize=8, frameon=False
    )
    for text in legend.get_texts():
        text.set_color(config.CHART_TEXT_COLOR)

    plt.tight_layout()
    _save_figure(fig, output_path)


def plot_stats_chart(
    stats: FileStats,
    bands: Sequence[Band],
    output_path: Union[str, Path],
    k_weighted: bool = False
) -> None:
    """Single stacked bar of one file's raw (or K-weighted) band shares."""
    pct = stats.k_pct if k_weighted else stats.raw_pct
    title = "Band Distribution (K-weighted)" if k_weighted else "Band Distribution"
    plot_stacked_chart(
        [''],
        np.asarray(pct).reshape(len(bands), 1),
        bands,
        output_path,
        title=title,
        subtitle=stats.name
    )


def plot_timeline_chart(
    timeline: TimelineResult,
    bands: Sequence[Band],
    output_path: Union[str, Path]
) -> None:
    """One stacked bar per retained timeline interval."""
    labels = [format_time(s.start_sec).strip() for s in timeline.slices]
    if labels:
        pct = np.column_stack([s.percentages for s in timeline.slices])
    else:
        pct = np.zeros((len(bands), 0))

    title = "Band Distribution Over Time"
    if timeline.k_weighted:
        title += " (K-weighted)"

    plot_stacked_chart(labels, pct, bands, output_path, title=title, subtitle=timeline.name)


def plot_comparison_chart(
    stats_list: List[FileStats],
    bands: Sequence[Band],
    output_path: Union[str, Path]
) -> None:
    """
    Grouped raw bars per band with K-weighted overlay lines, one color
    set per file.

    Raises:
        ValueError: If there are more files than color sets
    """
    n_files = len(stats_list)
    if n_files == 0:
        raise ValueError("No data to render")
    if n_files > config.MAX_CHART_FILES:
        raise ValueError(f"Chart supports up to {config.MAX_CHART_FILES} files")

    x = np.arange(len(bands))
    group_width = 0.8
    bar_width = group_width / n_files

    fig, ax = plt.subplots(figsize=config.PLOT_FIGSIZE)
    fig.patch.set_facecolor(config.CHART_BACKGROUND_COLOR)
    _style_axes(ax)

    for i, stats in enumerate(stats_list):
        colors = config.COMPARISON_COLOR_SETS[i]
        tag = config.file_label(i)
        offset = (i - (n_files - 1) / 2) * bar_width
        raw = np.round(stats.raw_pct, 1)
        k_wt = np.round(stats.k_pct, 1)

        bars = ax.bar(
            x + offset, raw, bar_width * 0.95,
            color=colors['top'], edgecolor=colors['bottom'],
            label=f"[{tag}] Raw"
        )
        ax.bar_label(
            bars, labels=[f"{v:.1f}" for v in raw],
            fontsize=6, color=config.CHART_TEXT_COLOR, padding=2
        )
        ax.plot(
            x + offset, k_wt, color=colors['line'], linewidth=1.5,
            marker='o', markersize=3, label=f"[{tag}] K-wt"
        )

    ax.set_xticks(x)
    ax.set_xticklabels(
        [f"{band.label}\n{band_range_label(band)}" for band in bands],
        fontsize=9
    )
    ax.set_ylabel('%', color=config.CHART_TEXT_COLOR, fontsize=12)
    ax.set_ylim(bottom=0)

    subtitle = "  ".join(
        f"[{config.file_label(i)}] {s.name}" for i, s in enumerate(stats_list)
    )
    ax.set_title(
        f"Band Comparison\n{subtitle}",
        color=config.CHART_TEXT_COLOR, fontsize=14, fontweight='bold'
    )

    legend = ax.legend(loc='upper right', fontsize=8, frameon=False)
    for text in legend.get_texts():
        text.set_color(config.CHART_TEXT_COLOR)

    plt.tight_layout()
    _save_figure(fig, output_path)
