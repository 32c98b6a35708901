"""Momentum / breakout rule family.

Works from two prices only: the current close and a reference close. A
move larger than ``threshold_pct`` in either direction is a signal.
"""

from __future__ import annotations

from core.models.bar import PriceSeries
from core.models.config import MomentumConfig
from core.strategy.base_rule import BaseRule
from core.strategy.protocol import RuleOutcome
from core.strategy.registry import register_rule


def percent_change(current: float, reference: float) -> float:
    return (current - reference) / reference * 100.0


def momentum_outcome(current: float, reference: float, config: MomentumConfig) -> RuleOutcome:
    """Classify a price move against the configured threshold."""
    if reference <= 0:
        return RuleOutcome(hold_reason=f"Reference price unavailable ({reference})")

    change = percent_change(current, reference)
    threshold = config.threshold_pct
    buy_reason = None
    sell_reason = None
    if change > threshold:
        buy_reason = f"Significant upward momentum (+{change:.2f}% > {threshold:g}%)"
    elif change < -threshold:
        sell_reason = f"Significant downward momentum ({change:.2f}% < -{threshold:g}%)"

    return RuleOutcome(
        buy_reason=buy_reason,
        sell_reason=sell_reason,
        hold_reason=f"Neutral price movement ({change:+.2f}%)",
    )


@register_rule("momentum")
class MomentumRule(BaseRule):
    """Current close against the previous close."""

    family = "momentum"

    def __init__(self, config: MomentumConfig | None = None):
        super().__init__(config or MomentumConfig())

    def check(self, series: PriceSeries) -> RuleOutcome:
        self.ensure_length(series)
        closes = series.closes
        return momentum_outcome(closes[-1], closes[-2], self.config)
