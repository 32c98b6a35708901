"""RSI + Bollinger Band crossover rule family.

- BUY: RSI crosses up through ``oversold`` AND close crosses from below the
  lower band to at/above it, both between the previous and current bar.
- SELL: RSI crosses down through ``overbought`` AND close crosses from above
  the upper band to at/below it.

Only (previous, current) pairs are compared, so a value that stays past a
threshold does not fire on every bar.
"""

from __future__ import annotations

from core.indicators import bollinger_bands, rsi
from core.models.bar import PriceSeries
from core.models.config import RsiBollingerConfig
from core.strategy.base_rule import BaseRule, crossed_above, crossed_below
from core.strategy.protocol import RuleOutcome
from core.strategy.registry import register_rule


@register_rule("rsi_bollinger")
class RsiBollingerRule(BaseRule):
    """Mean-reversion entries confirmed by RSI and Bollinger crossovers."""

    family = "rsi_bollinger"

    def __init__(self, config: RsiBollingerConfig | None = None):
        super().__init__(config or RsiBollingerConfig())

    def check(self, series: PriceSeries) -> RuleOutcome:
        self.ensure_length(series)
        cfg = self.config
        closes = series.closes
        cur, prev = len(series) - 1, len(series) - 2

        rsi_values = rsi(closes, cfg.rsi_period)
        bands = bollinger_bands(closes, cfg.bb_period, cfg.bb_multiplier)

        rsi_cur = self.value_at(rsi_values, cur, "RSI")
        rsi_prev = self.value_at(rsi_values, prev, "RSI")
        lower_cur = self.value_at(bands.lower, cur, "lower band")
        lower_prev = self.value_at(bands.lower, prev, "lower band")
        upper_cur = self.value_at(bands.upper, cur, "upper band")
        upper_prev = self.value_at(bands.upper, prev, "upper band")
        close_cur, close_prev = closes[cur], closes[prev]

        buy_reason = None
        sell_reason = None

        rsi_up = crossed_above(rsi_prev, rsi_cur, cfg.oversold, cfg.oversold)
        price_up = crossed_above(close_prev, close_cur, lower_prev, lower_cur)
        if rsi_up and price_up:
            buy_reason = (
                f"RSI crossed above {cfg.oversold:g} ({rsi_prev:.2f} -> {rsi_cur:.2f}) "
                f"and close {close_cur:.4f} crossed above lower band {lower_cur:.4f}"
            )

        rsi_down = crossed_below(rsi_prev, rsi_cur, cfg.overbought, cfg.overbought)
        price_down = crossed_below(close_prev, close_cur, upper_prev, upper_cur)
        if rsi_down and price_down:
            sell_reason = (
                f"RSI crossed below {cfg.overbought:g} ({rsi_prev:.2f} -> {rsi_cur:.2f}) "
                f"and close {close_cur:.4f} crossed below upper band {upper_cur:.4f}"
            )

        return RuleOutcome(
            buy_reason=buy_reason,
            sell_reason=sell_reason,
            hold_reason=(
                f"No crossover (RSI {rsi_cur:.2f}, close {close_cur:.4f}, "
                f"bands {lower_cur:.4f}-{upper_cur:.4f})"
            ),
        )
