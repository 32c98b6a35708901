"""Data models."""

from core.models.bar import Bar, PriceSeries, parse_bar
from core.models.signal import (
    Signal,
    SignalKind,
    SignalRecord,
    SignalResult,
    create_signal_record,
)
from core.models.config import (
    EmaStochasticConfig,
    MaCrossoverConfig,
    MomentumConfig,
    RsiBollingerConfig,
    StrategyConfig,
    parse_strategy_config,
)

__all__ = [
    "Bar",
    "PriceSeries",
    "parse_bar",
    "Signal",
    "SignalKind",
    "SignalRecord",
    "SignalResult",
    "create_signal_record",
    "EmaStochasticConfig",
    "MaCrossoverConfig",
    "MomentumConfig",
    "RsiBollingerConfig",
    "StrategyConfig",
    "parse_strategy_config",
]
