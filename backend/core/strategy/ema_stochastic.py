"""EMA channel + Stochastic rule family.

The channel is an EMA of highs over an EMA of lows, with a longer EMA of
closes as the trend line:

- BUY setup: close below the channel low, open below the channel midpoint,
  close below the trend EMA, and both %K and %D below ``oversold``.
- SELL setup: the mirror against the channel high and ``overbought``.

The signal fires on the bar where a setup becomes true; a setup that was
already true on the previous bar does not fire again.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.indicators import ema, stochastic
from core.models.bar import PriceSeries
from core.models.config import EmaStochasticConfig
from core.strategy.base_rule import BaseRule
from core.strategy.protocol import RuleOutcome
from core.strategy.registry import register_rule


@dataclass(frozen=True)
class _Snapshot:
    open: float
    close: float
    channel_high: float
    channel_low: float
    trend: float
    k: float
    d: float

    @property
    def midpoint(self) -> float:
        return (self.channel_high + self.channel_low) / 2


@register_rule("ema_stochastic")
class EmaStochasticRule(BaseRule):
    """EMA channel breakout filtered by Stochastic extremes."""

    family = "ema_stochastic"

    def __init__(self, config: EmaStochasticConfig | None = None):
        super().__init__(config or EmaStochasticConfig())

    def _is_buy_setup(self, s: _Snapshot) -> bool:
        return (
            s.close < s.channel_low
            and s.open < s.midpoint
            and s.close < s.trend
            and s.k < self.config.oversold
            and s.d < self.config.oversold
        )

    def _is_sell_setup(self, s: _Snapshot) -> bool:
        return (
            s.close > s.channel_high
            and s.open > s.midpoint
            and s.close > s.trend
            and s.k > self.config.overbought
            and s.d > self.config.overbought
        )

    def check(self, series: PriceSeries) -> RuleOutcome:
        self.ensure_length(series)
        cfg = self.config
        highs, lows, closes = series.highs, series.lows, series.closes

        channel_high = ema(highs, cfg.channel_period)
        channel_low = ema(lows, cfg.channel_period)
        trend = ema(closes, cfg.trend_period)
        stoch = stochastic(closes, highs, lows, cfg.stoch_period, cfg.smooth_k, cfg.smooth_d)

        def snapshot(i: int) -> _Snapshot:
            bar = series.bars[i]
            return _Snapshot(
                open=bar.open,
                close=bar.close,
                channel_high=self.value_at(channel_high, i, "channel high EMA"),
                channel_low=self.value_at(channel_low, i, "channel low EMA"),
                trend=self.value_at(trend, i, "trend EMA"),
                k=self.value_at(stoch.k, i, "%K"),
                d=self.value_at(stoch.d, i, "%D"),
            )

        cur = snapshot(len(series) - 1)
        prev = snapshot(len(series) - 2)

        buy_reason = None
        sell_reason = None
        if self._is_buy_setup(cur) and not self._is_buy_setup(prev):
            buy_reason = (
                f"Close {cur.close:.4f} below EMA channel low {cur.channel_low:.4f} "
                f"and trend EMA {cur.trend:.4f}; stochastic oversold "
                f"(%K {cur.k:.1f}, %D {cur.d:.1f} < {cfg.oversold:g})"
            )
        if self._is_sell_setup(cur) and not self._is_sell_setup(prev):
            sell_reason = (
                f"Close {cur.close:.4f} above EMA channel high {cur.channel_high:.4f} "
                f"and trend EMA {cur.trend:.4f}; stochastic overbought "
                f"(%K {cur.k:.1f}, %D {cur.d:.1f} > {cfg.overbought:g})"
            )

        return RuleOutcome(
            buy_reason=buy_reason,
            sell_reason=sell_reason,
            hold_reason=(
                f"No fresh channel setup (close {cur.close:.4f}, channel "
                f"{cur.channel_low:.4f}-{cur.channel_high:.4f}, %K {cur.k:.1f}, %D {cur.d:.1f})"
            ),
        )
