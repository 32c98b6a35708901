"""Strategy configuration models.

Each rule family has its own frozen parameter model. ``StrategyConfig`` is
the discriminated union of all of them, selected by the ``family`` tag.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _FamilyConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def required_bars(self) -> int:
        raise NotImplementedError


class EmaStochasticConfig(_FamilyConfig):
    """EMA channel (highs/lows) with a trend EMA and Stochastic filter."""

    family: Literal["ema_stochastic"] = "ema_stochastic"

    channel_period: int = Field(10, gt=0)
    trend_period: int = Field(21, gt=0)
    stoch_period: int = Field(14, gt=0)
    smooth_k: int = Field(1, gt=0)
    smooth_d: int = Field(3, gt=0)

    # %K and %D must both be below oversold for BUY, above overbought for SELL
    oversold: float = Field(20.0, ge=0, le=100)
    overbought: float = Field(80.0, ge=0, le=100)

    @model_validator(mode="after")
    def _validate(self):
        if self.oversold >= self.overbought:
            raise ValueError("oversold must be below overbought")
        return self

    @property
    def stochastic_bars(self) -> int:
        """Bars needed before the first defined %D value."""
        return self.stoch_period + self.smooth_k + self.smooth_d - 2

    @property
    def required_bars(self) -> int:
        # +1 for the previous bar used in crossing detection
        return max(self.channel_period, self.trend_period, self.stochastic_bars) + 1


class RsiBollingerConfig(_FamilyConfig):
    """RSI threshold crossover confirmed by a Bollinger band crossover."""

    family: Literal["rsi_bollinger"] = "rsi_bollinger"

    rsi_period: int = Field(14, gt=0)
    oversold: float = Field(30.0, ge=0, le=100)
    overbought: float = Field(70.0, ge=0, le=100)
    bb_period: int = Field(20, gt=1)
    bb_multiplier: float = Field(2.0, gt=0)

    @model_validator(mode="after")
    def _validate(self):
        if self.oversold >= self.overbought:
            raise ValueError("oversold must be below overbought")
        return self

    @property
    def required_bars(self) -> int:
        # RSI placeholders cover the first rsi_period + 1 bars; both the
        # current and previous RSI must be real values
        return max(self.rsi_period + 3, self.bb_period + 1)


class MomentumConfig(_FamilyConfig):
    """Percent move of the current close against the reference close."""

    family: Literal["momentum"] = "momentum"

    threshold_pct: float = Field(1.5, gt=0)

    @property
    def required_bars(self) -> int:
        return 2


class MaCrossoverConfig(_FamilyConfig):
    """Short SMA crossing the long SMA."""

    family: Literal["ma_crossover"] = "ma_crossover"

    short_period: int = Field(9, gt=0)
    long_period: int = Field(21, gt=0)

    @model_validator(mode="after")
    def _validate(self):
        if self.short_period >= self.long_period:
            raise ValueError("short_period must be less than long_period")
        return self

    @property
    def required_bars(self) -> int:
        return self.long_period + 1


StrategyConfig = Annotated[
    Union[EmaStochasticConfig, RsiBollingerConfig, MomentumConfig, MaCrossoverConfig],
    Field(discriminator="family"),
]

_strategy_config_adapter: TypeAdapter = TypeAdapter(StrategyConfig)


def parse_strategy_config(data: dict) -> StrategyConfig:
    """Validate a raw mapping into the config model named by its ``family``."""
    return _strategy_config_adapter.validate_python(data)
