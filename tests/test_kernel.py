"""
Kernel Module Test Suite

Tests for the band energy / K-weighting / dynamics kernel.
Verifies:
- Kernel isolation (no I/O dependencies)
- Window and K-weighting response properties
- Band classification of pure tones
- Dynamics statistic and sentinel handling
- Progress reporting contract
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bandstat import kernel
from bandstat.bands import get_bands
from bandstat.kernel_params import (
    DEFAULT_CONFIG,
    DynamicsParams,
    FrameParams,
    K_WEIGHTING_44100,
    K_WEIGHTING_48000,
    KernelConfig,
    select_k_weighting,
    validate_params,
)

SR = 48000


# =============================================================================
# SYNTHETIC AUDIO GENERATORS (for testing)
# =============================================================================

def generate_sine(freq: float, duration: float = 2.0, sr: int = SR,
                  amplitude: float = 0.5) -> np.ndarray:
    """Constant-amplitude sine."""
    t = np.arange(int(duration * sr)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def generate_two_tone(f1: float, f2: float, duration: float = 2.0,
                      sr: int = SR) -> np.ndarray:
    """Equal-amplitude two-tone signal."""
    return generate_sine(f1, duration, sr, 0.25) + generate_sine(f2, duration, sr, 0.25)


def generate_modulated(freq: float = 750.0, duration: float = 4.0, sr: int = SR,
                       cycles: float = 4.0) -> np.ndarray:
    """Sine with a slow multi-cycle amplitude envelope between 0.2 and 1.0."""
    t = np.arange(int(duration * sr)) / sr
    envelope = 0.2 + 0.8 * (0.5 + 0.5 * np.sin(2 * np.pi * cycles * t / duration))
    return (0.5 * envelope * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def run_stats(samples: np.ndarray, sr: int = SR, on_progress=None) -> kernel.StatsResult:
    bands = get_bands()
    k_weights = kernel.create_k_weight_table(kernel.DEFAULT_FFT_SIZE, sr)
    return kernel.analyze_stats(samples, sr, bands, k_weights, on_progress=on_progress)


def band_index(label: str) -> int:
    return [band.label for band in get_bands()].index(label)


# =============================================================================
# TESTS
# =============================================================================

class TestKernelIsolation:
    """Verify kernel has no I/O dependencies."""

    def test_no_io_imports(self):
        """Verify kernel doesn't import I/O modules."""
        kernel_path = Path(__file__).parent.parent / 'bandstat' / 'kernel.py'
        source = kernel_path.read_text()

        forbidden_imports = [
            'import json',
            'from json import',
            'import os',
            'from os import',
            'import pathlib',
            'from pathlib import',
        ]

        for forbidden in forbidden_imports:
            assert forbidden not in source, f"Kernel should not import: {forbidden}"

    def test_no_config_imports(self):
        """Verify kernel doesn't import main config module."""
        kernel_path = Path(__file__).parent.parent / 'bandstat' / 'kernel.py'
        source = kernel_path.read_text()

        assert 'import config' not in source, "Kernel should not import config module"
        assert 'from config import' not in source, "Kernel should not import from config"

    def test_no_matplotlib_or_librosa(self):
        kernel_path = Path(__file__).parent.parent / 'bandstat' / 'kernel.py'
        source = kernel_path.read_text()

        assert 'matplotlib' not in source
        assert 'librosa' not in source


class TestWindow:
    """Hann window properties."""

    @pytest.mark.parametrize("size", [2, 3, 16, 1024, 16384])
    def test_symmetric_with_zero_endpoints(self, size):
        w = kernel.create_window(size)
        assert len(w) == size
        assert abs(w[0]) < 1e-12
        assert abs(w[-1]) < 1e-12
        np.testing.assert_allclose(w, w[::-1], atol=1e-12)

    def test_center_near_one(self):
        w = kernel.create_window(1025)
        assert abs(w[512] - 1.0) < 1e-12

    def test_too_small_raises(self):
        with pytest.raises(ValueError):
            kernel.create_window(1)
        with pytest.raises(ValueError):
            kernel.create_window(0)


class TestKWeighting:
    """K-weighting gain and table."""

    def test_dc_is_exactly_zero(self):
        assert kernel.k_weight(0.0, 48000) == 0.0
        assert kernel.k_weight(0.0, 44100) == 0.0
        assert kernel.k_weight(-10.0, 48000) == 0.0

    def test_1khz_near_unity(self):
        w = kernel.k_weight(1000.0, 48000)
        assert 0.9 < w < 1.1
        assert abs(20.0 * np.log10(w)) < 1.0

    def test_high_shelf_boost(self):
        assert kernel.k_weight(4000.0, 48000) > 1.0

    def test_low_frequency_attenuation(self):
        assert kernel.k_weight(100.0, 48000) < kernel.k_weight(1000.0, 48000)
        assert kernel.k_weight(20.0, 48000) < kernel.k_weight(100.0, 48000)

    def test_coefficient_selection_tolerance(self):
        assert select_k_weighting(48000) is K_WEIGHTING_48000
        assert select_k_weighting(48000.5) is K_WEIGHTING_48000
        assert select_k_weighting(47999.5) is K_WEIGHTING_48000
        assert select_k_weighting(47999.0) is K_WEIGHTING_44100
        assert select_k_weighting(44100) is K_WEIGHTING_44100
        assert select_k_weighting(96000) is K_WEIGHTING_44100

    def test_coefficient_literals(self):
        assert K_WEIGHTING_48000.pre_filter.b0 == 1.53512485958697
        assert K_WEIGHTING_48000.rlb_filter.a2 == 0.99007225036621
        assert K_WEIGHTING_44100.pre_filter.a1 == -1.6636551132560204
        assert K_WEIGHTING_44100.rlb_filter.b1 == -1.9989817364912472

    def test_table_length_and_dc(self):
        table = kernel.create_k_weight_table(16384, 48000)
        assert len(table) == 8192
        assert table[0] == 0.0
        assert np.all(table >= 0.0)

    def test_table_is_squared_gain(self):
        fft_size = 1024
        table = kernel.create_k_weight_table(fft_size, 48000)
        for i in (1, 10, 100, 511):
            freq = i * 48000 / fft_size
            assert table[i] == pytest.approx(kernel.k_weight(freq, 48000) ** 2, rel=1e-12)

    def test_check_sample_rate(self):
        assert kernel.check_sample_rate(48000) is None
        assert kernel.check_sample_rate(44100) is None
        message = kernel.check_sample_rate(96000)
        assert message is not None
        assert "96000" in message


class TestPercentages:

    def test_sum_to_100(self):
        rng = np.random.default_rng(0)
        powers = rng.uniform(0.0, 10.0, size=14)
        pct = kernel.to_percentages(powers)
        assert abs(pct.sum() - 100.0) < 1e-9

    def test_proportions(self):
        pct = kernel.to_percentages([1.0, 1.0, 2.0])
        np.testing.assert_allclose(pct, [25.0, 25.0, 50.0], atol=1e-10)

    def test_zero_total(self):
        pct = kernel.to_percentages(np.zeros(14))
        assert np.all(pct == 0.0)

    def test_rounded_sum_within_tolerance(self):
        pct = kernel.to_percentages([1.0, 2.0, 3.0, 7.0, 11.0, 13.0])
        assert abs(np.round(pct, 1).sum() - 100.0) <= 0.2


class TestDynamics:
    """Thresholded population standard deviation."""

    def test_known_values(self):
        # Population std of [2, 4, 4, 4, 5, 5, 7, 9] is exactly 2
        dyn = kernel.compute_dynamics([[2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]])
        assert dyn[0] == pytest.approx(2.0, abs=1e-10)

    def test_constant_series_is_zero(self):
        dyn = kernel.compute_dynamics([[-12.0] * 50])
        assert dyn[0] == pytest.approx(0.0, abs=1e-10)

    def test_empty_series_is_sentinel(self):
        dyn = kernel.compute_dynamics([[], [1.0, 2.0]])
        assert dyn[0] == kernel.DYNAMICS_SENTINEL
        assert np.isneginf(dyn[0])
        assert np.isfinite(dyn[1])

    def test_values_below_threshold_excluded(self):
        # -100 dB is more than 60 dB below the 0 dB peak
        dyn = kernel.compute_dynamics([[0.0, 0.0, -100.0]])
        assert dyn[0] == pytest.approx(0.0, abs=1e-10)

    def test_threshold_boundary_is_inclusive(self):
        dyn = kernel.compute_dynamics([[0.0, -60.0]], threshold_db=60.0)
        assert dyn[0] == pytest.approx(30.0)


class TestBandClassification:
    """Pure tones land in the expected band."""

    @pytest.mark.parametrize("freq,label", [
        (750.0, "MID"),
        (100.0, "BASS"),
        (5000.0, "PRES"),
    ])
    def test_sine_dominant_band(self, freq, label):
        result = run_stats(generate_sine(freq))
        raw_pct = kernel.to_percentages(result.raw_powers)
        assert raw_pct[band_index(label)] > 90.0

    def test_two_tone_k_weighting(self):
        result = run_stats(generate_two_tone(100.0, 2000.0))
        raw_pct = kernel.to_percentages(result.raw_powers)
        k_pct = kernel.to_percentages(result.k_powers)

        bass = band_index("BASS")
        umid = band_index("UMID")
        assert k_pct[bass] < raw_pct[bass]
        assert k_pct[umid] > raw_pct[umid]

    def test_k_weighted_share_at_1khz_region(self):
        # K-weighting scales every bin, so a single tone keeps its band
        result = run_stats(generate_sine(750.0))
        k_pct = kernel.to_percentages(result.k_powers)
        assert k_pct[band_index("MID")] > 90.0


class TestStatsSession:

    def test_constant_sine_low_dynamics(self):
        result = run_stats(generate_sine(750.0, duration=4.0))
        assert result.dynamics[band_index("MID")] < 1.0

    def test_modulated_sine_high_dynamics(self):
        result = run_stats(generate_modulated(750.0, duration=4.0))
        assert result.dynamics[band_index("MID")] > 1.0

    def test_output_lengths(self):
        result = run_stats(generate_sine(440.0, duration=1.0))
        n_bands = len(get_bands())
        assert len(result.raw_powers) == n_bands
        assert len(result.k_powers) == n_bands
        assert len(result.dynamics) == n_bands

    def test_frame_count(self):
        samples = generate_sine(440.0, duration=1.0)
        result = run_stats(samples)
        expected = (len(samples) - kernel.DEFAULT_FFT_SIZE) // kernel.DEFAULT_HOP_SIZE + 1
        assert result.n_frames == expected
        assert kernel.count_frames(len(samples), 16384, 2048) == expected

    def test_short_buffer_yields_zeros_and_sentinels(self):
        result = run_stats(np.zeros(1000, dtype=np.float32))
        assert result.n_frames == 0
        assert np.all(result.raw_powers == 0.0)
        assert np.all(result.k_powers == 0.0)
        assert np.all(np.isneginf(result.dynamics))

    def test_silence_yields_sentinels(self):
        result = run_stats(np.zeros(SR, dtype=np.float32))
        assert result.n_frames > 0
        assert np.all(result.raw_powers == 0.0)
        assert np.all(np.isneginf(result.dynamics))
        assert np.all(kernel.to_percentages(result.raw_powers) == 0.0)

    def test_determinism(self):
        samples = generate_modulated(duration=2.0)
        a = run_stats(samples)
        b = run_stats(samples)
        np.testing.assert_array_equal(a.raw_powers, b.raw_powers)
        np.testing.assert_array_equal(a.k_powers, b.k_powers)
        np.testing.assert_array_equal(a.dynamics, b.dynamics)

    def test_above_nyquist_bands_empty_at_low_rate(self):
        # At 22050 Hz the Nyquist is 11025 Hz; UHIG and AIR collapse
        sr = 22050
        result = run_stats(generate_sine(1000.0, duration=2.0, sr=sr), sr=sr)
        assert result.raw_powers[band_index("UHIG")] == 0.0
        assert result.raw_powers[band_index("AIR")] == 0.0


class TestProgress:

    def test_sequence_increasing_and_ends_at_100(self):
        calls = []
        run_stats(generate_sine(440.0, duration=2.0), on_progress=calls.append)

        assert len(calls) > 0
        assert calls[-1] == 100
        assert all(b > a for a, b in zip(calls, calls[1:]))
        assert len(set(calls)) == len(calls)

    def test_no_duplicates_with_many_frames(self):
        # 300 frames: several frames map to the same percent
        n_samples = kernel.DEFAULT_FFT_SIZE + 299 * kernel.DEFAULT_HOP_SIZE
        calls = []
        run_stats(np.zeros(n_samples, dtype=np.float32), on_progress=calls.append)

        assert calls == sorted(set(calls))
        assert calls[-1] == 100
        assert calls[0] == 0
        assert len(calls) == 101

    def test_not_called_without_frames(self):
        calls = []
        run_stats(np.zeros(100, dtype=np.float32), on_progress=calls.append)
        assert calls == []


class TestAnalyzeInterval:

    def test_matches_stats_powers(self):
        samples = generate_two_tone(100.0, 2000.0, duration=2.0)
        bands = get_bands()
        fft_size = kernel.DEFAULT_FFT_SIZE
        window = kernel.create_window(fft_size)
        k_weights = kernel.create_k_weight_table(fft_size, SR)

        stats = kernel.analyze_stats(samples, SR, bands, k_weights)
        raw = kernel.analyze_interval(samples, window, bands, SR / fft_size)
        weighted = kernel.analyze_interval(
            samples, window, bands, SR / fft_size, k_weights=k_weights
        )

        np.testing.assert_allclose(raw, stats.raw_powers, rtol=1e-12)
        np.testing.assert_allclose(weighted, stats.k_powers, rtol=1e-12)

    def test_short_slice_is_zero(self):
        bands = get_bands()
        window = kernel.create_window(kernel.DEFAULT_FFT_SIZE)
        powers = kernel.analyze_interval(
            generate_sine(440.0, duration=0.1), window, bands,
            SR / kernel.DEFAULT_FFT_SIZE
        )
        assert powers.shape == (len(bands),)
        assert np.all(powers == 0.0)


class TestKernelParams:
    """Test kernel parameter configuration."""

    def test_default_config_valid(self):
        assert validate_params(DEFAULT_CONFIG)

    def test_frame_helpers(self):
        frame = FrameParams()
        assert frame.nyquist_bin == 8192
        assert frame.freq_per_bin(48000) == pytest.approx(2.9296875)

    @pytest.mark.parametrize("frame", [
        FrameParams(fft_size=1, hop_size=1),
        FrameParams(fft_size=1023, hop_size=256),
        FrameParams(fft_size=1024, hop_size=0),
        FrameParams(fft_size=1024, hop_size=1024),
    ])
    def test_invalid_frame_params(self, frame):
        with pytest.raises(ValueError):
            validate_params(KernelConfig(frame=frame))

    def test_invalid_dynamics_params(self):
        with pytest.raises(ValueError):
            validate_params(KernelConfig(dynamics=DynamicsParams(min_power=0.0)))

    def test_config_to_dict(self):
        d = DEFAULT_CONFIG.to_dict()
        assert d['fft_size'] == 16384
        assert d['hop_size'] == 2048
        assert d['min_power'] == 1e-20
        assert d['dynamics_threshold_db'] == 60.0
        assert len(d['k_weighting_48000']['pre_filter']) == 5


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
