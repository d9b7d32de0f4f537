"""
Band Table Test Suite

Verifies the fixed band table, its bin mapping and display helpers.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from bandstat.bands import Band, band_range_label, format_freq, get_bands, validate_bands


class TestBandTable:

    def test_fourteen_bands_in_order(self):
        labels = [band.label for band in get_bands()]
        assert labels == [
            "DC", "SUB1", "SUB2", "BASS", "UBAS", "LMID", "MID",
            "UMID", "HMID", "PRES", "BRIL", "HIGH", "UHIG", "AIR",
        ]

    def test_contiguous_from_zero(self):
        bands = get_bands()
        assert bands[0].low_hz == 0.0
        for current, following in zip(bands, bands[1:]):
            assert current.high_hz == following.low_hz

    def test_only_top_band_open_ended(self):
        bands = get_bands()
        assert bands[-1].is_open_ended
        assert bands[-1].low_hz == 18000.0
        assert not any(band.is_open_ended for band in bands[:-1])

    def test_labels_fit_column(self):
        assert all(len(band.label) <= 4 for band in get_bands())

    def test_default_table_valid(self):
        assert validate_bands(get_bands())

    def test_bands_are_immutable(self):
        band = get_bands()[0]
        with pytest.raises(Exception):
            band.low_hz = 5.0


class TestValidateBands:

    def test_empty(self):
        with pytest.raises(ValueError):
            validate_bands([])

    def test_not_starting_at_zero(self):
        with pytest.raises(ValueError):
            validate_bands([Band("A", 10.0, 20.0), Band("B", 20.0)])

    def test_gap(self):
        with pytest.raises(ValueError):
            validate_bands([Band("A", 0.0, 20.0), Band("B", 30.0)])

    def test_open_ended_in_middle(self):
        with pytest.raises(ValueError):
            validate_bands([Band("A", 0.0), Band("B", 20.0)])

    def test_last_band_bounded(self):
        with pytest.raises(ValueError):
            validate_bands([Band("A", 0.0, 20.0), Band("B", 20.0, 40.0)])


class TestBinRange:
    """Clamped floor mapping from Hz to FFT bins."""

    FREQ_PER_BIN = 48000 / 16384
    NYQUIST_BIN = 8192

    def test_bass_bins(self):
        bass = get_bands()[3]
        # 60 / 2.93 = 20.48, 120 / 2.93 = 40.96
        assert bass.bin_range(self.FREQ_PER_BIN, self.NYQUIST_BIN) == (20, 40)

    def test_dc_starts_at_zero(self):
        dc = get_bands()[0]
        assert dc.bin_range(self.FREQ_PER_BIN, self.NYQUIST_BIN) == (0, 6)

    def test_open_band_ends_at_nyquist(self):
        air = get_bands()[-1]
        low, high = air.bin_range(self.FREQ_PER_BIN, self.NYQUIST_BIN)
        assert low == 6144
        assert high == self.NYQUIST_BIN

    def test_band_above_nyquist_collapses(self):
        # 22050 Hz: Nyquist 11025 Hz, UHIG (14-18 kHz) is above it
        freq_per_bin = 22050 / 16384
        uhig = get_bands()[12]
        low, high = uhig.bin_range(freq_per_bin, self.NYQUIST_BIN)
        assert low == high == self.NYQUIST_BIN

    def test_ranges_tile_spectrum(self):
        ranges = [b.bin_range(self.FREQ_PER_BIN, self.NYQUIST_BIN) for b in get_bands()]
        assert ranges[0][0] == 0
        assert ranges[-1][1] == self.NYQUIST_BIN
        for (_, high), (low, _) in zip(ranges, ranges[1:]):
            assert high == low


class TestDisplayHelpers:

    @pytest.mark.parametrize("hz,expected", [
        (20.0, "20"),
        (500.0, "500"),
        (1000.0, "1k"),
        (1500.0, "1.5k"),
        (18000.0, "18k"),
    ])
    def test_format_freq(self, hz, expected):
        assert format_freq(hz) == expected

    def test_range_labels(self):
        bands = get_bands()
        assert band_range_label(bands[7]) == "1k-2k"
        assert band_range_label(bands[4]) == "120-250"
        assert band_range_label(bands[-1]) == "18k+"
