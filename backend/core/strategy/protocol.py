"""Rule protocol defining the interface all strategy families implement.

This module provides:
- RuleOutcome: raw BUY/SELL findings of one rule check, before precedence
- StrategyRule: Runtime-checkable Protocol that rule families must satisfy
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from core.models.bar import PriceSeries
from core.models.signal import Signal


@dataclass(frozen=True)
class RuleOutcome:
    """Findings of one rule check on the current and previous bar.

    Attributes:
        buy_reason: Set when the BUY condition holds.
        sell_reason: Set when the SELL condition holds.
        hold_reason: Explanation used when neither holds.
    """

    buy_reason: str | None = None
    sell_reason: str | None = None
    hold_reason: str = "No signal"

    @property
    def is_conflicting(self) -> bool:
        return self.buy_reason is not None and self.sell_reason is not None


@runtime_checkable
class StrategyRule(Protocol):
    """Protocol that all rule families must implement."""

    @property
    def family(self) -> str:
        """Rule family tag (e.g., 'rsi_bollinger')."""
        ...

    @property
    def required_bars(self) -> int:
        """Minimum number of bars needed for a decision."""
        ...

    def check(self, series: PriceSeries) -> RuleOutcome:
        """Compute indicators and report raw BUY/SELL findings.

        Raises:
            InsufficientDataError: Series shorter than required_bars.
            DegenerateIndicatorError: An indicator needed for the decision
                is undefined.
        """
        ...

    def evaluate(self, series: PriceSeries) -> Signal:
        """Turn the findings into a single Signal (never raises for
        recoverable conditions)."""
        ...
