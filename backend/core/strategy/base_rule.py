"""Base class shared by all rule families.

Handles the parts every family does the same way: the lookback check,
reading indicator values at the decision bars, and turning a RuleOutcome
into a Signal with a fixed precedence.
"""

from __future__ import annotations

import logging

from core.errors import DegenerateIndicatorError, InsufficientDataError
from core.indicators import IndicatorSeries
from core.models.bar import PriceSeries
from core.models.signal import Signal, SignalKind
from core.strategy.protocol import RuleOutcome

logger = logging.getLogger(__name__)


def resolve_outcome(outcome: RuleOutcome) -> Signal:
    """Pick one signal from a rule outcome.

    SELL is applied first and BUY overrides it. Families are built so the
    two conditions cannot hold together; a conflict is logged.
    """
    signal = Signal.hold(outcome.hold_reason)
    if outcome.sell_reason is not None:
        signal = Signal(kind=SignalKind.SELL, reason=outcome.sell_reason)
    if outcome.buy_reason is not None:
        if outcome.sell_reason is not None:
            logger.warning(
                "BUY and SELL both true, BUY wins: buy=%r sell=%r",
                outcome.buy_reason,
                outcome.sell_reason,
            )
        signal = Signal(kind=SignalKind.BUY, reason=outcome.buy_reason)
    return signal


def crossed_above(prev: float, cur: float, prev_level: float, cur_level: float) -> bool:
    """Value moved from below the level to at/above it."""
    return prev < prev_level and cur >= cur_level


def crossed_below(prev: float, cur: float, prev_level: float, cur_level: float) -> bool:
    """Value moved from above the level to at/below it."""
    return prev > prev_level and cur <= cur_level


class BaseRule:
    """Common behaviour for rule families. Subclasses implement ``check``."""

    family: str = ""

    def __init__(self, config):
        self.config = config

    @property
    def required_bars(self) -> int:
        return self.config.required_bars

    def ensure_length(self, series: PriceSeries) -> None:
        if len(series) < self.required_bars:
            raise InsufficientDataError(self.required_bars, len(series))

    @staticmethod
    def value_at(indicator: IndicatorSeries, index: int, name: str) -> float:
        """Read a defined indicator value or raise DegenerateIndicatorError."""
        value = indicator.at(index)
        if value is None:
            raise DegenerateIndicatorError(f"{name} undefined at bar {index}")
        return value

    def check(self, series: PriceSeries) -> RuleOutcome:
        raise NotImplementedError

    def evaluate(self, series: PriceSeries) -> Signal:
        try:
            outcome = self.check(series)
        except InsufficientDataError as e:
            logger.debug("%s %s: %s", self.family, series.symbol, e)
            return Signal.hold(str(e))
        except DegenerateIndicatorError as e:
            logger.warning("%s %s: %s", self.family, series.symbol, e)
            return Signal.hold(f"Indicator undefined: {e}")

        signal = resolve_outcome(outcome)
        if signal.is_actionable:
            logger.info(
                "%s %s %s @ %s: %s",
                self.family,
                signal.kind.value,
                series.symbol,
                series.last.close,
                signal.reason,
            )
        return signal
