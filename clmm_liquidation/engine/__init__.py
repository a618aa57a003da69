"""Valuation, root solver and liquidation price orchestration"""

from .config import EngineConfig
from .liquidation_engine import calculate_liquidation_prices

__all__ = ["EngineConfig", "calculate_liquidation_prices"]
