#!/usr/bin/env python3
"""
bandstat - Command Line Interface

Main entry point for band analysis of audio files.
Uses bandstat/kernel.py for all DSP operations.

Modes:
- stats: one file, band power distribution and dynamics
- compare: 2-10 files, first file is the base
- timeline: one file, band distribution per time interval (--time)
"""

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import config
from bandstat import __version__, analysis, audio_io, export, report
from bandstat.bands import Band, get_bands, validate_bands
from bandstat.kernel import check_sample_rate
from bandstat.kernel_params import FrameParams, KernelConfig, validate_params


def build_kernel_config() -> KernelConfig:
    """Kernel parameters from config.py, validated."""
    params = KernelConfig(
        frame=FrameParams(fft_size=config.FFT_SIZE, hop_size=config.HOP_SIZE)
    )
    validate_params(params)
    return params


def make_progress_callback(name: str, enabled: bool) -> Optional[Callable[[int], None]]:
    """Progress printer writing 'Analyzing <name>... N%' to stderr."""
    if not enabled:
        return None

    def on_progress(percent: int) -> None:
        print(f"\rAnalyzing {name}... {percent}%", end='', file=sys.stderr, flush=True)

    return on_progress


def load_for_analysis(
    file_path: str,
    target_sr: int,
    params: KernelConfig
) -> audio_io.AudioData:
    """
    Load, validate and length-check one file.

    Raises:
        AudioLoadError: If the file cannot be used
    """
    name = audio_io.get_display_name(file_path)
    audio = audio_io.load_audio(file_path, target_sr=target_sr)
    audio_io.validate_audio(audio, name)

    fft_size = params.frame.fft_size
    if len(audio.samples) < fft_size:
        raise audio_io.AudioLoadError(
            f"{name}: too short for analysis "
            f"(minimum {fft_size / audio.sample_rate:.2f} seconds)"
        )

    return audio


def analyze_file(
    file_path: str,
    bands: Sequence[Band],
    target_sr: int,
    params: KernelConfig,
    show_progress: bool = True
) -> analysis.FileStats:
    """Load one file and run the stats session, with optional progress."""
    name = audio_io.get_display_name(file_path)
    audio = load_for_analysis(file_path, target_sr, params)

    if show_progress:
        print(f"Analyzing {name}... 0%", end='', file=sys.stderr, flush=True)

    stats = analysis.analyze_audio(
        audio, name, bands,
        on_progress=make_progress_callback(name, show_progress),
        params=params
    )

    if show_progress:
        print(f"\rAnalyzing {name}... done", file=sys.stderr)

    return stats


def _write_chart(render: Callable[[], None], image_path: str) -> bool:
    try:
        render()
    except (ValueError, OSError) as e:
        report.print_error(f"Failed to save chart: {e}")
        return False
    print(f"Chart saved to: {image_path}", file=sys.stderr)
    return True


def _write_json(data: dict, json_path: str) -> bool:
    try:
        export.save_json(data, json_path)
    except (ValueError, OSError) as e:
        report.print_error(f"Failed to save JSON: {e}")
        return False
    print(f"JSON saved to: {json_path}", file=sys.stderr)
    return True


def run_stats(
    file_path: str,
    k_weighted: bool,
    quiet: bool,
    image_path: Optional[str],
    json_path: Optional[str],
    target_sr: int,
    params: KernelConfig
) -> bool:
    """
    Single-file stats mode.

    Returns:
        True if successful, False otherwise
    """
    bands = get_bands()

    try:
        stats = analyze_file(file_path, bands, target_sr, params, show_progress=not quiet)
    except (audio_io.AudioLoadError, ValueError, OSError) as e:
        report.print_error(str(e))
        return False

    report.print_stats_report(stats, bands, k_weighted=k_weighted, quiet=quiet)

    success = True
    if image_path:
        success &= _write_chart(
            lambda: export.plot_stats_chart(stats, bands, image_path, k_weighted=k_weighted),
            image_path
        )
    if json_path:
        success &= _write_json(
            export.create_stats_json([stats], bands, target_sr, params),
            json_path
        )

    return success


def run_compare(
    file_paths: List[str],
    quiet: bool,
    image_path: Optional[str],
    json_path: Optional[str],
    target_sr: int,
    params: KernelConfig
) -> bool:
    """
    Comparison mode. Files are analysed one after another; the first
    failure aborts before any table is printed.

    Returns:
        True if successful, False otherwise
    """
    bands = get_bands()
    stats_list = []

    for file_path in file_paths:
        try:
            stats_list.append(
                analyze_file(file_path, bands, target_sr, params, show_progress=not quiet)
            )
        except (audio_io.AudioLoadError, ValueError, OSError) as e:
            report.print_error(str(e))
            return False

    report.print_comparison_report(stats_list, bands, quiet=quiet)

    success = True
    if image_path:
        success &= _write_chart(
            lambda: export.plot_comparison_chart(stats_list, bands, image_path),
            image_path
        )
    if json_path:
        success &= _write_json(
            export.create_stats_json(stats_list, bands, target_sr, params),
            json_path
        )

    return success


def run_timeline(
    file_path: str,
    k_weighted: bool,
    interval_sec: int,
    quiet: bool,
    image_path: Optional[str],
    json_path: Optional[str],
    target_sr: int,
    params: KernelConfig
) -> bool:
    """
    Timeline mode.

    Returns:
        True if successful, False otherwise
    """
    bands = get_bands()
    name = audio_io.get_display_name(file_path)

    try:
        audio = load_for_analysis(file_path, target_sr, params)
        timeline = analysis.analyze_timeline(
            audio, name, bands, interval_sec,
            k_weighted=k_weighted,
            params=params
        )
    except (audio_io.AudioLoadError, ValueError, OSError) as e:
        report.print_error(str(e))
        return False

    report.print_timeline_report(timeline, bands, quiet=quiet)

    success = True
    if image_path:
        success &= _write_chart(
            lambda: export.plot_timeline_chart(timeline, bands, image_path),
            image_path
        )
    if json_path:
        success &= _write_json(
            export.create_timeline_json(timeline, bands, target_sr, params),
            json_path
        )

    return success


def check_output_dir(path: Optional[str]) -> Optional[str]:
    """Error message if the parent directory of an output path is missing."""
    if not path:
        return None
    parent = Path(path).parent
    if str(parent) not in ('', '.') and not parent.exists():
        return f"Directory does not exist: {parent}"
    return None


def validate_args(args: argparse.Namespace) -> Optional[str]:
    """
    Check option combinations.

    Returns:
        Error message, or None if the arguments are usable
    """
    n_files = len(args.files)

    if n_files > config.MAX_FILES:
        return f"Too many files specified (max {config.MAX_FILES})"

    if args.interval is not None and args.interval < config.MIN_INTERVAL_SEC:
        return "Interval must be at least 1 second"

    if n_files >= 2 and args.time:
        return "--time cannot be used with multiple files"

    if n_files >= 2 and args.weighted:
        return "--weighted cannot be used with comparison mode"

    if args.interval is not None and not args.time:
        return "--interval can only be used with --time"

    if args.image and n_files >= 2 and n_files > config.MAX_CHART_FILES:
        return f"--image supports up to {config.MAX_CHART_FILES} files"

    if args.target_sr is not None and args.target_sr <= 0:
        return "--target-sr must be a positive sample rate"

    for path in (args.image, args.json):
        error = check_output_dir(path)
        if error:
            return error

    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='bandstat',
        description='Audio frequency band analyzer with K-weighting and dynamics analysis',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s audio.wav                          Single file analysis
  %(prog)s audio.wav --image chart.png        Single file with chart output
  %(prog)s audio.wav --image chart.png -w     Chart with K-weighting
  %(prog)s my_mix.wav ref.wav                 Compare files (first is base)
  %(prog)s a.wav b.wav --image chart.png      Comparison chart output
  %(prog)s audio.wav -t                       Timeline (20 second intervals)
  %(prog)s audio.wav -t -i 10 -w              Timeline, 10 s, K-weighted
  %(prog)s audio.wav --json result.json       Also write results as JSON
        """
    )

    parser.add_argument(
        'files',
        nargs='+',
        help=f'Audio file(s) to analyze (max {config.MAX_FILES})'
    )

    parser.add_argument(
        '--time', '-t',
        action='store_true',
        help='Timeline mode: band distribution per time interval'
    )

    parser.add_argument(
        '--interval', '-i',
        type=int,
        default=None,
        help=f'Timeline interval in seconds (default: {config.DEFAULT_INTERVAL_SEC})'
    )

    parser.add_argument(
        '--weighted', '-w',
        action='store_true',
        help='Use K-weighting (timeline values and single-file chart)'
    )

    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only print result tables (no file info, band list, legend or progress)'
    )

    parser.add_argument(
        '--image',
        type=str,
        default=None,
        help=f'Write a PNG chart (up to {config.MAX_CHART_FILES} files)'
    )

    parser.add_argument(
        '--json',
        type=str,
        default=None,
        help='Write results as JSON'
    )

    parser.add_argument(
        '--target-sr',
        type=int,
        default=None,
        help=f'Analysis sample rate (default: {config.TARGET_SAMPLE_RATE})'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    error = validate_args(args)
    if error:
        report.print_error(error)
        sys.exit(1)

    if args.weighted and not args.image and not args.time:
        report.print_warning("--weighted has no effect without --image in single-file mode")

    target_sr = args.target_sr if args.target_sr is not None else config.TARGET_SAMPLE_RATE
    advisory = check_sample_rate(target_sr)
    if advisory:
        report.print_warning(advisory)

    try:
        validate_bands(get_bands())
        params = build_kernel_config()
    except ValueError as e:
        report.print_error(f"Invalid configuration: {e}")
        sys.exit(1)

    # Run appropriate mode
    if len(args.files) >= 2:
        success = run_compare(
            args.files, args.quiet, args.image, args.json, target_sr, params
        )
    elif args.time:
        interval = args.interval if args.interval is not None else config.DEFAULT_INTERVAL_SEC
        success = run_timeline(
            args.files[0], args.weighted, interval, args.quiet,
            args.image, args.json, target_sr, params
        )
    else:
        success = run_stats(
            args.files[0], args.weighted, args.quiet,
            args.image, args.json, target_sr, params
        )

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
