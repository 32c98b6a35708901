"""Tests for technical indicators."""

import math

import numpy as np
import pytest

from core.errors import MalformedInputError
from core.indicators import (
    IndicatorSeries,
    RSI_NEUTRAL_VALUE,
    STOCHASTIC_DEGENERATE_VALUE,
    bollinger_bands,
    ema,
    highest,
    lowest,
    rsi,
    sma,
    stdev,
    stochastic,
)


class TestIndicatorSeries:
    """Tests for source-index alignment."""

    def test_at_maps_source_index(self):
        series = IndicatorSeries(values=(1.0, 2.0, 3.0), offset=2, source_length=5)

        assert series.at(0) is None
        assert series.at(1) is None
        assert series.at(2) == 1.0
        assert series.at(4) == 3.0
        assert series.at(5) is None
        assert series.latest() == 3.0
        assert series.previous() == 2.0

    def test_at_treats_nan_as_undefined(self):
        series = IndicatorSeries(values=(float("nan"), 2.0), offset=0, source_length=2)

        assert series.at(0) is None
        assert series.at(-1) == 2.0

    def test_padded(self):
        series = IndicatorSeries(values=(1.0, 2.0), offset=3, source_length=5)
        padded = series.padded()

        assert len(padded) == 5
        assert all(math.isnan(v) for v in padded[:3])
        assert padded[3:] == [1.0, 2.0]


class TestSMA:
    """Tests for SMA calculation."""

    def test_sma_basic(self):
        closes = [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
        result = sma(closes, 3)

        assert len(result) == 8
        assert result.offset == 2
        assert result[0] == 2.0  # mean of 1, 2, 3
        assert result[-1] == 9.0  # mean of 8, 9, 10

    def test_sma_aligned_to_source(self):
        result = sma([1, 2, 3, 4, 5, 6, 7, 8, 9, 10], 3)

        # Source index 2 is the first bar with a full window
        assert result.at(1) is None
        assert result.at(2) == 2.0
        assert result.at(9) == 9.0

    @pytest.mark.parametrize("period", [4, 5, 10])
    def test_sma_insufficient_data(self, period):
        result = sma([1.0, 2.0, 3.0], period)

        assert result.is_empty
        assert result.latest() is None

    def test_sma_of_indicator_keeps_alignment(self):
        base = sma([1, 2, 3, 4, 5, 6], 2)  # offset 1
        smoothed = sma(base, 3)

        assert smoothed.offset == 3
        assert smoothed.source_length == 6
        # base values: 1.5, 2.5, 3.5, 4.5, 5.5
        assert smoothed.at(3) == pytest.approx(2.5)
        assert smoothed.at(5) == pytest.approx(4.5)

    def test_invalid_period_raises(self):
        with pytest.raises(ValueError):
            sma([1.0, 2.0], 0)


class TestStdev:
    """Tests for population standard deviation."""

    def test_stdev_basic(self):
        result = stdev([2, 4, 4, 4, 5, 5, 7, 9], 8)

        assert len(result) == 1
        assert result[0] == pytest.approx(2.0)

    def test_stdev_matches_sma_alignment(self):
        values = [float(v) for v in range(20)]
        dev = stdev(values, 5)
        avg = sma(values, 5)

        assert dev.offset == avg.offset
        assert len(dev) == len(avg)
        # Each window of 5 consecutive integers has population stdev sqrt(2)
        assert all(v == pytest.approx(math.sqrt(2)) for v in dev)

    def test_stdev_insufficient_data(self):
        assert stdev([1.0, 2.0], 3).is_empty


class TestEMA:
    """Tests for EMA calculation."""

    def test_ema_seeded_with_first_value(self):
        result = ema([10, 20, 30], 2)

        # k = 2/3
        assert result[0] == 10.0
        assert result[1] == pytest.approx(16.6667, abs=1e-4)
        assert result[2] == pytest.approx(25.5556, abs=1e-4)

    @pytest.mark.parametrize("n", [1, 2, 5, 30])
    def test_ema_output_length_equals_input(self, n):
        result = ema([float(i) for i in range(n)], 10)

        assert len(result) == n
        assert result.offset == 0

    def test_ema_constant_series(self):
        result = ema([5.0] * 10, 4)

        assert all(v == pytest.approx(5.0) for v in result)

    def test_ema_empty(self):
        assert ema([], 3).is_empty


class TestHighestLowest:
    """Tests for highest/lowest calculations."""

    def test_highest_basic(self):
        result = highest([1, 3, 2, 5, 4, 6, 3, 8, 7], 3)

        assert result.at(1) is None
        assert result.at(2) == 3.0  # highest([1,3,2])
        assert result.at(3) == 5.0  # highest([3,2,5])
        assert result.at(4) == 5.0  # highest([2,5,4])

    def test_lowest_basic(self):
        result = lowest([5, 3, 4, 1, 6, 2, 7, 3, 8], 3)

        assert result.at(2) == 3.0  # lowest([5,3,4])
        assert result.at(3) == 1.0  # lowest([3,4,1])


class TestBollingerBands:
    """Tests for Bollinger Bands."""

    def test_basis_is_left_padded_sma(self):
        values = [float(v) for v in [10, 11, 12, 11, 10, 9, 10, 12, 13, 12]]
        bands = bollinger_bands(values, 4, 2.0)

        assert len(bands.basis) == len(values)
        np.testing.assert_array_equal(
            np.array(bands.basis.values), np.array(sma(values, 4).padded())
        )

    def test_bands_width(self):
        values = [float(v) for v in range(10)]
        bands = bollinger_bands(values, 5, 2.0)

        i = 9
        basis = bands.basis.at(i)
        assert basis == pytest.approx(7.0)
        assert bands.upper.at(i) == pytest.approx(7.0 + 2 * math.sqrt(2))
        assert bands.lower.at(i) == pytest.approx(7.0 - 2 * math.sqrt(2))
        assert bands.upper.at(3) is None

    def test_insufficient_data_is_empty(self):
        bands = bollinger_bands([1.0, 2.0, 3.0], 20, 2.0)

        assert bands.basis.is_empty
        assert bands.upper.is_empty
        assert bands.lower.is_empty


class TestStochastic:
    """Tests for the Stochastic Oscillator."""

    def test_raw_k(self):
        highs = [10, 12, 14]
        lows = [8, 9, 10]
        closes = [9, 11, 13]
        result = stochastic(closes, highs, lows, period=3, smooth_k=1, smooth_d=1)

        # (13 - 8) / (14 - 8) * 100
        assert result.k.latest() == pytest.approx(83.3333, abs=1e-4)
        assert result.k.offset == 2

    def test_flat_window_uses_degenerate_value(self):
        flat = [100.0] * 10
        result = stochastic(flat, flat, flat, period=5, smooth_k=1, smooth_d=3)

        assert all(v == STOCHASTIC_DEGENERATE_VALUE for v in result.k)
        assert all(v == STOCHASTIC_DEGENERATE_VALUE for v in result.d)

    def test_d_alignment(self):
        n = 30
        closes = [100 + math.sin(i / 3) * 5 for i in range(n)]
        highs = [c + 1 for c in closes]
        lows = [c - 1 for c in closes]
        result = stochastic(closes, highs, lows, period=14, smooth_k=3, smooth_d=3)

        assert result.k.offset == 13 + 2
        assert result.d.offset == 13 + 2 + 2
        assert result.d.source_length == n

    def test_values_stay_in_range(self):
        rng = np.random.default_rng(7)
        closes = list(100 + np.cumsum(rng.normal(0, 1, 200)))
        highs = [c + abs(x) for c, x in zip(closes, rng.normal(0, 1, 200))]
        lows = [c - abs(x) for c, x in zip(closes, rng.normal(0, 1, 200))]
        result = stochastic(closes, highs, lows, period=14)

        assert all(0.0 <= v <= 100.0 for v in result.k)
        assert all(0.0 <= v <= 100.0 for v in result.d)

    def test_insufficient_data(self):
        result = stochastic([1.0, 2.0], [1.0, 2.0], [1.0, 2.0], period=5)

        assert result.k.is_empty
        assert result.d.is_empty

    def test_length_mismatch_raises(self):
        with pytest.raises(MalformedInputError):
            stochastic([1.0, 2.0], [1.0], [1.0, 2.0], period=1)


class TestRSI:
    """Tests for RSI with Wilder smoothing."""

    def test_placeholders_and_length(self):
        closes = [float(v) for v in range(1, 21)]
        result = rsi(closes, 14)

        assert len(result) == 20
        assert all(v == RSI_NEUTRAL_VALUE for v in result.values[:15])

    def test_only_gains_is_100(self):
        closes = [float(v) for v in range(1, 21)]
        result = rsi(closes, 5)

        assert result.latest() == 100.0

    def test_only_losses_is_0(self):
        closes = [float(v) for v in range(20, 0, -1)]
        result = rsi(closes, 5)

        assert result.latest() == pytest.approx(0.0)

    def test_wilder_smoothing(self):
        closes = [10, 11, 10, 11, 12]
        result = rsi(closes, 2)

        # seed: gains [1, 0] -> 0.5, losses [0, 1] -> 0.5
        # i=3: gain=(0.5*1+1)/2=0.75, loss=(0.5*1+0)/2=0.25 -> RS=3 -> 75
        # i=4: gain=(0.75+1)/2=0.875, loss=0.125 -> RS=7 -> 87.5
        assert result[:3] == (50.0, 50.0, 50.0)
        assert result[3] == pytest.approx(75.0)
        assert result[4] == pytest.approx(87.5)

    def test_insufficient_data(self):
        assert rsi([1.0, 2.0, 3.0], 14).is_empty
