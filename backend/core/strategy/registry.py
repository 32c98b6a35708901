"""Rule registry for discovering and instantiating strategy families.

Usage:
    @register_rule("my_family")
    class MyRule(BaseRule):
        ...

    rule = create_rule(config)   # picks the class by config.family
    families = list_families()
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from core.models.config import StrategyConfig, parse_strategy_config

logger = logging.getLogger(__name__)

# Global registry: family tag -> rule class
_REGISTRY: dict[str, type] = {}


def register_rule(family: str):
    """Decorator to register a rule class under a family tag.

    Args:
        family: Unique family tag matching a StrategyConfig ``family``.

    Returns:
        Decorator that registers the class and returns it unchanged.

    Raises:
        ValueError: If a rule with the same family is already registered.
    """

    def decorator(cls):
        if family in _REGISTRY:
            raise ValueError(
                f"Rule family '{family}' is already registered by {_REGISTRY[family].__name__}"
            )
        _REGISTRY[family] = cls
        logger.debug("Registered rule family: %s -> %s", family, cls.__name__)
        return cls

    return decorator


def get_rule_class(family: str) -> type:
    """Get the rule class by family tag (without instantiating).

    Raises:
        KeyError: If no rule is registered under the given family.
    """
    cls = _REGISTRY.get(family)
    if cls is None:
        available = ", ".join(sorted(_REGISTRY.keys())) or "(none)"
        raise KeyError(f"Unknown rule family '{family}'. Available: {available}")
    return cls


def create_rule(config: StrategyConfig | Mapping[str, Any]):
    """Create the rule instance for a strategy config.

    Args:
        config: A StrategyConfig model, or a raw mapping with a ``family`` key.

    Returns:
        An instance of the registered rule class.
    """
    if isinstance(config, Mapping):
        config = parse_strategy_config(dict(config))
    return get_rule_class(config.family)(config)


def list_families() -> list[str]:
    """Return a sorted list of registered rule families."""
    return sorted(_REGISTRY.keys())
