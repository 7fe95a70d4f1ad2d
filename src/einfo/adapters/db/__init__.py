"""Database adapters: connection strings, engines, handles and strategies."""

from .connection_string import normalize
from .strategies import default_strategies, strategy_order

__all__ = ["default_strategies", "normalize", "strategy_order"]
