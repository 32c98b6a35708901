"""Strategy rule families.

Public API:
- evaluate: Evaluate a StrategyConfig against a PriceSeries
- evaluate_quote: Momentum evaluation from two prices
- StrategyRule: Protocol that all rule families implement
- RuleOutcome: Raw BUY/SELL findings before precedence
- register_rule / create_rule / list_families / get_rule_class: registry

Importing this package auto-registers all built-in rule families.
"""

from core.strategy.protocol import RuleOutcome, StrategyRule
from core.strategy.registry import (
    register_rule,
    create_rule,
    list_families,
    get_rule_class,
)
from core.strategy.base_rule import BaseRule, resolve_outcome

# Import built-in families to trigger auto-registration
from core.strategy.ema_stochastic import EmaStochasticRule
from core.strategy.rsi_bollinger import RsiBollingerRule
from core.strategy.momentum import MomentumRule
from core.strategy.ma_crossover import MaCrossoverRule

from core.strategy.evaluator import evaluate, evaluate_quote

__all__ = [
    "RuleOutcome",
    "StrategyRule",
    "register_rule",
    "create_rule",
    "list_families",
    "get_rule_class",
    "BaseRule",
    "resolve_outcome",
    "EmaStochasticRule",
    "RsiBollingerRule",
    "MomentumRule",
    "MaCrossoverRule",
    "evaluate",
    "evaluate_quote",
]
