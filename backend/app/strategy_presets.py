"""Named strategy presets loaded from strategies.yaml.

The HTTP handlers select a strategy by name; each name maps to one
StrategyConfig. Without a YAML file the built-in presets are used.

Example strategies.yaml:

    strategies:
      scalper:
        family: ema_stochastic
        channel_period: 8
        trend_period: 21
      swing:
        family: rsi_bollinger
        bb_period: 200
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator

from core.models.config import (
    EmaStochasticConfig,
    MaCrossoverConfig,
    MomentumConfig,
    RsiBollingerConfig,
    StrategyConfig,
)

logger = logging.getLogger(__name__)

BUILTIN_PRESETS: dict[str, StrategyConfig] = {
    "ema_stochastic": EmaStochasticConfig(),
    "rsi_bollinger": RsiBollingerConfig(),
    "momentum": MomentumConfig(),
    "ma_crossover": MaCrossoverConfig(),
}


class PresetFile(BaseModel):
    """Top-level strategies.yaml structure."""

    include_builtin: bool = True
    strategies: dict[str, StrategyConfig] = {}

    @field_validator("strategies", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return {} if value is None else value


class StrategyPresets:
    """Lookup of strategy configs by name."""

    def __init__(self, presets: dict[str, StrategyConfig] | None = None):
        self._presets = dict(BUILTIN_PRESETS if presets is None else presets)

    def get(self, name: str) -> StrategyConfig:
        """Return the config registered under ``name``.

        Raises:
            KeyError: If no preset has that name.
        """
        config = self._presets.get(name)
        if config is None:
            available = ", ".join(sorted(self._presets)) or "(none)"
            raise KeyError(f"Unknown strategy '{name}'. Available: {available}")
        return config

    def names(self) -> list[str]:
        return sorted(self._presets)

    def __contains__(self, name: str) -> bool:
        return name in self._presets


def load_presets(path: Path | str | None = None) -> StrategyPresets:
    """Load presets from YAML.

    Falls back to the built-in presets if the file doesn't exist.
    """
    if not path:
        return StrategyPresets()

    config_path = Path(path)
    if not config_path.exists():
        logger.info("No strategies file at %s, using built-in presets", config_path)
        return StrategyPresets()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    parsed = PresetFile(**raw)
    presets = dict(BUILTIN_PRESETS) if parsed.include_builtin else {}
    presets.update(parsed.strategies)
    logger.info(
        "Loaded %d strategy presets from %s (%d custom)",
        len(presets),
        config_path,
        len(parsed.strategies),
    )
    return StrategyPresets(presets)
