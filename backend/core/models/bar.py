"""OHLC bar and price series models."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from core.errors import MalformedInputError


class Bar(BaseModel):
    """One OHLC candle. Naive timestamps are taken as UTC."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float | None = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_prices(self):
        for name in ("open", "high", "low", "close"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite")
        if self.high < max(self.open, self.close):
            raise ValueError("high must be >= max(open, close)")
        if self.low > min(self.open, self.close):
            raise ValueError("low must be <= min(open, close)")
        return self

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low


def _parse_price(row: Mapping[str, Any], field: str, index: int) -> float:
    raw = row.get(field)
    if raw is None:
        raise MalformedInputError(f"Row {index}: missing '{field}'")
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise MalformedInputError(f"Row {index}: '{field}' is not numeric: {raw!r}") from None


def _parse_timestamp(row: Mapping[str, Any], index: int) -> datetime:
    raw = row.get("datetime", row.get("timestamp"))
    if raw is None:
        raise MalformedInputError(f"Row {index}: missing 'datetime'")
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, (int, float)):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        raise MalformedInputError(f"Row {index}: bad timestamp {raw!r}") from None


def parse_bar(row: Mapping[str, Any], index: int = 0) -> Bar:
    """Build a Bar from a provider row with string-typed OHLC fields."""
    volume = row.get("volume")
    try:
        return Bar(
            timestamp=_parse_timestamp(row, index),
            open=_parse_price(row, "open", index),
            high=_parse_price(row, "high", index),
            low=_parse_price(row, "low", index),
            close=_parse_price(row, "close", index),
            volume=float(volume) if volume not in (None, "") else None,
        )
    except MalformedInputError:
        raise
    except (ValidationError, TypeError, ValueError) as e:
        raise MalformedInputError(f"Row {index}: {e}") from e


@dataclass(frozen=True)
class PriceSeries:
    """Immutable oldest-first bars for one (symbol, interval) pair.

    Construction validates the invariants every indicator relies on:
    at least one bar and strictly increasing timestamps.
    """

    symbol: str
    interval_minutes: int
    bars: tuple[Bar, ...]

    def __post_init__(self):
        if not isinstance(self.bars, tuple):
            object.__setattr__(self, "bars", tuple(self.bars))
        if not self.bars:
            raise MalformedInputError(f"{self.symbol}: price series is empty")
        if self.interval_minutes <= 0:
            raise MalformedInputError(
                f"{self.symbol}: interval must be positive, got {self.interval_minutes}"
            )
        for prev, cur in zip(self.bars, self.bars[1:]):
            if cur.timestamp <= prev.timestamp:
                raise MalformedInputError(
                    f"{self.symbol}: timestamps not strictly increasing at {cur.timestamp.isoformat()}"
                )

    @classmethod
    def from_provider(
        cls,
        symbol: str,
        interval_minutes: int,
        rows: Sequence[Mapping[str, Any]],
        newest_first: bool = True,
    ) -> PriceSeries:
        """Build a series from raw provider rows.

        Providers return the newest bar first; those rows are reversed
        before validation.
        """
        if not rows:
            raise MalformedInputError(f"{symbol}: provider returned no bars")
        ordered: Iterable[Mapping[str, Any]] = reversed(rows) if newest_first else rows
        bars = tuple(parse_bar(row, i) for i, row in enumerate(ordered))
        return cls(symbol=symbol, interval_minutes=interval_minutes, bars=bars)

    def __len__(self) -> int:
        return len(self.bars)

    @property
    def opens(self) -> list[float]:
        return [b.open for b in self.bars]

    @property
    def highs(self) -> list[float]:
        return [b.high for b in self.bars]

    @property
    def lows(self) -> list[float]:
        return [b.low for b in self.bars]

    @property
    def closes(self) -> list[float]:
        return [b.close for b in self.bars]

    @property
    def timestamps(self) -> list[datetime]:
        return [b.timestamp for b in self.bars]

    @property
    def last(self) -> Bar:
        return self.bars[-1]

    def after(self, moment: datetime) -> list[Bar]:
        """Bars whose timestamp is strictly greater than ``moment``."""
        return [b for b in self.bars if b.timestamp > moment]

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)

    def is_closed(self, bar: Bar, now: datetime) -> bool:
        """A bar is final once its whole interval has elapsed."""
        return bar.timestamp + self.interval <= now

    def closed_as_of(self, now: datetime) -> PriceSeries | None:
        """Series without the bars still forming at ``now``.

        Providers include the live candle as the newest row; its close is
        the last trade price, not a final close. Returns None when no bar
        has closed yet.
        """
        bars = tuple(b for b in self.bars if self.is_closed(b, now))
        if len(bars) == len(self.bars):
            return self
        return replace(self, bars=bars) if bars else None
