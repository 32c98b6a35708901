"""Moving-average crossover rule family.

- BUY: short SMA was at/below the long SMA on the previous bar and is above
  it on the current bar.
- SELL: short SMA was at/above the long SMA and is now below it.

The previous-bar side compares the two averages, not the previous close
against the long SMA, so a signal marks a true crossing of the averages.
"""

from __future__ import annotations

from core.indicators import sma
from core.models.bar import PriceSeries
from core.models.config import MaCrossoverConfig
from core.strategy.base_rule import BaseRule
from core.strategy.protocol import RuleOutcome
from core.strategy.registry import register_rule


@register_rule("ma_crossover")
class MaCrossoverRule(BaseRule):
    """Trend-following SMA crossover."""

    family = "ma_crossover"

    def __init__(self, config: MaCrossoverConfig | None = None):
        super().__init__(config or MaCrossoverConfig())

    def check(self, series: PriceSeries) -> RuleOutcome:
        self.ensure_length(series)
        cfg = self.config
        closes = series.closes
        cur, prev = len(series) - 1, len(series) - 2

        short = sma(closes, cfg.short_period)
        long = sma(closes, cfg.long_period)

        short_cur = self.value_at(short, cur, "short SMA")
        short_prev = self.value_at(short, prev, "short SMA")
        long_cur = self.value_at(long, cur, "long SMA")
        long_prev = self.value_at(long, prev, "long SMA")

        buy_reason = None
        sell_reason = None

        # Bullish crossover: short was at/below long, now short is above long
        if short_prev <= long_prev and short_cur > long_cur:
            buy_reason = (
                f"SMA{cfg.short_period} crossed above SMA{cfg.long_period} "
                f"({short_cur:.4f} > {long_cur:.4f})"
            )

        # Bearish crossover: short was at/above long, now short is below long
        if short_prev >= long_prev and short_cur < long_cur:
            sell_reason = (
                f"SMA{cfg.short_period} crossed below SMA{cfg.long_period} "
                f"({short_cur:.4f} < {long_cur:.4f})"
            )

        return RuleOutcome(
            buy_reason=buy_reason,
            sell_reason=sell_reason,
            hold_reason=(
                f"No crossover (SMA{cfg.short_period} {short_cur:.4f}, "
                f"SMA{cfg.long_period} {long_cur:.4f})"
            ),
        )
