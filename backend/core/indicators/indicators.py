"""Technical indicators for signal generation.

Every function accepts either a plain sequence of floats or an
``IndicatorSeries``; the result is an ``IndicatorSeries`` whose offset
points back into the original price series, so chained indicators
(e.g. an SMA of raw %K) stay aligned without manual padding.

Short input never raises: it yields an empty series.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from core.errors import MalformedInputError
from core.indicators.series import IndicatorSeries

logger = logging.getLogger(__name__)

Values = Union[Sequence[float], IndicatorSeries]

# Stochastic value used when the window's highest high equals its lowest low
STOCHASTIC_DEGENERATE_VALUE = 50.0

# RSI value for entries before the first smoothed value
RSI_NEUTRAL_VALUE = 50.0


def _prepare(values: Values) -> tuple[np.ndarray, int, int]:
    """Return (array, base offset, source length) for any accepted input."""
    if isinstance(values, IndicatorSeries):
        arr = np.array(values.values, dtype=np.float64)
        return arr, values.offset, values.source_length
    arr = np.array([float(v) for v in values], dtype=np.float64)
    return arr, 0, len(arr)


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


def _series(arr: np.ndarray, offset: int, source_length: int) -> IndicatorSeries:
    return IndicatorSeries(
        values=tuple(float(v) for v in arr),
        offset=offset,
        source_length=source_length,
    )


def _windows(values: Values, period: int) -> tuple[np.ndarray, int, int] | None:
    _check_period(period)
    arr, base, source_length = _prepare(values)
    if len(arr) < period:
        return None
    return sliding_window_view(arr, period), base + period - 1, source_length


def sma(values: Values, period: int) -> IndicatorSeries:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of price values or an indicator series
        period: SMA period

    Returns:
        Series of len(values) - period + 1 trailing means
    """
    prepared = _windows(values, period)
    if prepared is None:
        return IndicatorSeries.empty(_prepare(values)[2])
    windows, offset, source_length = prepared
    return _series(windows.mean(axis=1), offset, source_length)


def stdev(values: Values, period: int) -> IndicatorSeries:
    """
    Calculate population standard deviation over trailing windows.

    Each window is centered on its own SMA value.

    Args:
        values: Sequence of price values or an indicator series
        period: Window length

    Returns:
        Series aligned exactly like ``sma(values, period)``
    """
    prepared = _windows(values, period)
    if prepared is None:
        return IndicatorSeries.empty(_prepare(values)[2])
    windows, offset, source_length = prepared
    means = np.array(sma(values, period).values, dtype=np.float64)
    result = np.sqrt(((windows - means[:, None]) ** 2).mean(axis=1))
    return _series(result, offset, source_length)


def ema(values: Values, period: int) -> IndicatorSeries:
    """
    Calculate Exponential Moving Average.

    Seeded with the first raw value, so the output has the same length as
    the input and no warm-up gap.

    Args:
        values: Sequence of price values or an indicator series
        period: EMA period

    Returns:
        Series of EMA values, one per input value
    """
    _check_period(period)
    arr, base, source_length = _prepare(values)
    if len(arr) == 0:
        return IndicatorSeries.empty(source_length)

    k = 2.0 / (period + 1)
    result = np.empty_like(arr)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = arr[i] * k + result[i - 1] * (1 - k)

    return _series(result, base, source_length)


def highest(values: Values, period: int) -> IndicatorSeries:
    """Calculate highest value over lookback period."""
    prepared = _windows(values, period)
    if prepared is None:
        return IndicatorSeries.empty(_prepare(values)[2])
    windows, offset, source_length = prepared
    return _series(windows.max(axis=1), offset, source_length)


def lowest(values: Values, period: int) -> IndicatorSeries:
    """Calculate lowest value over lookback period."""
    prepared = _windows(values, period)
    if prepared is None:
        return IndicatorSeries.empty(_prepare(values)[2])
    windows, offset, source_length = prepared
    return _series(windows.min(axis=1), offset, source_length)


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger band lines, each aligned 1:1 with the input values."""

    basis: IndicatorSeries
    upper: IndicatorSeries
    lower: IndicatorSeries


def bollinger_bands(values: Values, period: int, multiplier: float = 2.0) -> BollingerBands:
    """
    Calculate Bollinger Bands.

    basis = SMA(period), upper/lower = basis +/- multiplier * stdev(period).
    The first period - 1 entries of each line are undefined.

    Args:
        values: Sequence of price values
        period: Lookback period
        multiplier: Standard deviation multiplier

    Returns:
        BollingerBands; all three lines are empty when there is not
        enough data for one window
    """
    basis = sma(values, period)
    if basis.is_empty:
        empty = IndicatorSeries.empty(basis.source_length)
        return BollingerBands(basis=empty, upper=empty, lower=empty)

    dev = np.array(stdev(values, period).values, dtype=np.float64)
    mid = np.array(basis.values, dtype=np.float64)
    pad = np.full(period - 1, np.nan)
    _, base, source_length = _prepare(values)

    def _line(arr: np.ndarray) -> IndicatorSeries:
        return _series(np.concatenate([pad, arr]), base, source_length)

    return BollingerBands(
        basis=_line(mid),
        upper=_line(mid + multiplier * dev),
        lower=_line(mid - multiplier * dev),
    )


@dataclass(frozen=True)
class StochasticResult:
    """Stochastic oscillator lines."""

    k: IndicatorSeries
    d: IndicatorSeries


def stochastic(
    closes: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
    period: int = 14,
    smooth_k: int = 1,
    smooth_d: int = 3,
) -> StochasticResult:
    """
    Calculate the Stochastic Oscillator.

    raw %K = 100 * (close - lowest low) / (highest high - lowest low)
    %K = SMA(raw %K, smooth_k), %D = SMA(%K, smooth_d)

    A window whose highest high equals its lowest low has no range; its raw
    %K is STOCHASTIC_DEGENERATE_VALUE (50). Values are clipped to [0, 100].

    Args:
        closes: Close prices
        highs: High prices
        lows: Low prices
        period: Lookback period for the high/low range
        smooth_k: SMA period applied to raw %K
        smooth_d: SMA period applied to %K

    Returns:
        StochasticResult with %K and %D aligned to the source series
    """
    if not (len(closes) == len(highs) == len(lows)):
        raise MalformedInputError(
            f"closes/highs/lows length mismatch: {len(closes)}/{len(highs)}/{len(lows)}"
        )
    _check_period(period)
    source_length = len(closes)
    if source_length < period:
        empty = IndicatorSeries.empty(source_length)
        return StochasticResult(k=empty, d=empty)

    hh = np.array(highest(highs, period).values, dtype=np.float64)
    ll = np.array(lowest(lows, period).values, dtype=np.float64)
    c = np.array([float(v) for v in closes[period - 1:]], dtype=np.float64)

    span = hh - ll
    degenerate = span == 0
    if degenerate.any():
        logger.debug("Stochastic: %d flat windows -> %s", int(degenerate.sum()), STOCHASTIC_DEGENERATE_VALUE)
    raw = np.full_like(c, STOCHASTIC_DEGENERATE_VALUE)
    np.divide(100.0 * (c - ll), span, out=raw, where=~degenerate)
    raw = np.clip(raw, 0.0, 100.0)

    raw_k = _series(raw, period - 1, source_length)
    k = sma(raw_k, smooth_k)
    d = sma(k, smooth_d)
    return StochasticResult(k=k, d=d)


def rsi(closes: Sequence[float], period: int = 14) -> IndicatorSeries:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    Average gain/loss are seeded with the simple mean of the first
    ``period`` deltas. The first period + 1 entries hold RSI_NEUTRAL_VALUE
    so the output has the same length as the input.

    Args:
        closes: Close prices
        period: RSI period

    Returns:
        Series of RSI values, empty when len(closes) < period + 1
    """
    _check_period(period)
    arr, base, source_length = _prepare(closes)
    if len(arr) < period + 1:
        return IndicatorSeries.empty(source_length)

    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())

    result = np.full(len(arr), RSI_NEUTRAL_VALUE)
    for i in range(period + 1, len(arr)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        if avg_loss == 0:
            result[i] = 100.0
        else:
            result[i] = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)

    return _series(result, base, source_length)
