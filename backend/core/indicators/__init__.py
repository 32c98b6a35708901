"""Technical indicators (pure math, no I/O)."""

from core.indicators.series import IndicatorSeries, UNDEFINED
from core.indicators.indicators import (
    sma,
    stdev,
    ema,
    highest,
    lowest,
    bollinger_bands,
    stochastic,
    rsi,
    BollingerBands,
    StochasticResult,
    STOCHASTIC_DEGENERATE_VALUE,
    RSI_NEUTRAL_VALUE,
)

__all__ = [
    "IndicatorSeries",
    "UNDEFINED",
    "sma",
    "stdev",
    "ema",
    "highest",
    "lowest",
    "bollinger_bands",
    "stochastic",
    "rsi",
    "BollingerBands",
    "StochasticResult",
    "STOCHASTIC_DEGENERATE_VALUE",
    "RSI_NEUTRAL_VALUE",
]
