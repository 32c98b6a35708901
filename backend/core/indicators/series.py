"""Aligned indicator output."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

UNDEFINED = float("nan")


@dataclass(frozen=True)
class IndicatorSeries:
    """Indicator values aligned to the tail of a source price series.

    ``values[i]`` belongs to source index ``offset + i``. Entries without
    enough lookback are NaN and are kept in place, never dropped.
    """

    values: tuple[float, ...]
    offset: int
    source_length: int

    @classmethod
    def empty(cls, source_length: int) -> IndicatorSeries:
        return cls(values=(), offset=source_length, source_length=source_length)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    @property
    def is_empty(self) -> bool:
        return not self.values

    def at(self, source_index: int) -> float | None:
        """Value at a source (price series) index, or None if undefined."""
        if source_index < 0:
            source_index += self.source_length
        i = source_index - self.offset
        if i < 0 or i >= len(self.values):
            return None
        value = self.values[i]
        if math.isnan(value):
            return None
        return value

    def latest(self) -> float | None:
        """Value at the last source bar."""
        return self.at(self.source_length - 1)

    def previous(self) -> float | None:
        """Value at the second-to-last source bar."""
        return self.at(self.source_length - 2)

    def padded(self) -> list[float]:
        """Values left-padded with NaN to the full source length."""
        return [UNDEFINED] * self.offset + list(self.values)
