"""
CLMM Liquidation Price Engine

Finds the pool prices at which a leveraged concentrated liquidity position,
together with its correlated auxiliary collateral, becomes liquidatable.
"""

__version__ = "1.0.0"
__author__ = "CLMM Liquidation Team"

# Core components
from .core.errors import ErrorKind, LiquidationError, LTVConfigurationError, ConvergenceError, InvalidParamsError
from .core.fixed_point import SCALE, MIN_PRICE, MAX_PRICE
from .core.position import (
    CLMMPosition, FAAsset, LTVMatrix, LiquidationParams, LiquidationResult,
    LiquidationDistance, AssetBreakdown, create_ltv_matrix, create_fa_asset
)
from .core.tick_math import tick_to_price, price_to_tick

# Engine
from .engine.config import SolverConfig, RiskConfig, EngineConfig
from .engine.valuation import calculate_total_assets, calculate_weighted_debt_requirement, is_account_healthy
from .engine.solver import NewtonRaphsonSolver, SearchDirection
from .engine.liquidation_engine import calculate_liquidation_prices
from .engine.formatting import RiskLevel, format_liquidation_result

__all__ = [
    # Core
    "ErrorKind", "LiquidationError", "LTVConfigurationError", "ConvergenceError", "InvalidParamsError",
    "SCALE", "MIN_PRICE", "MAX_PRICE",
    "CLMMPosition", "FAAsset", "LTVMatrix", "LiquidationParams", "LiquidationResult",
    "LiquidationDistance", "AssetBreakdown", "create_ltv_matrix", "create_fa_asset",
    "tick_to_price", "price_to_tick",

    # Engine
    "SolverConfig", "RiskConfig", "EngineConfig",
    "calculate_total_assets", "calculate_weighted_debt_requirement", "is_account_healthy",
    "NewtonRaphsonSolver", "SearchDirection",
    "calculate_liquidation_prices",
    "RiskLevel", "format_liquidation_result"
]
