"""Strategy evaluation entry points.

This module is pure business logic with no I/O dependencies.
"""

from __future__ import annotations

import logging

from core.models.bar import PriceSeries
from core.models.config import MomentumConfig, StrategyConfig
from core.models.signal import Signal
from core.strategy.base_rule import resolve_outcome
from core.strategy.momentum import momentum_outcome
from core.strategy.registry import create_rule

logger = logging.getLogger(__name__)


def evaluate(series: PriceSeries, config: StrategyConfig) -> Signal:
    """Evaluate one strategy configuration against a price series.

    Args:
        series: Oldest-first price snapshot.
        config: Strategy parameters; ``config.family`` selects the rule.

    Returns:
        BUY, SELL or HOLD with a reason. Insufficient data and undefined
        indicators produce HOLD rather than an exception.
    """
    rule = create_rule(config)
    signal = rule.evaluate(series)
    logger.debug(
        "Evaluated %s on %s (%d bars, %dmin): %s",
        config.family,
        series.symbol,
        len(series),
        series.interval_minutes,
        signal.kind.value,
    )
    return signal


def evaluate_quote(current: float, reference: float, config: MomentumConfig | None = None) -> Signal:
    """Momentum evaluation for quote-only callers (current vs reference close)."""
    return resolve_outcome(momentum_outcome(current, reference, config or MomentumConfig()))
