"""Fixed-point math, tick math and the position data model"""

from .position import CLMMPosition, FAAsset, LTVMatrix, LiquidationParams, LiquidationResult
from .errors import LiquidationError

__all__ = [
    "CLMMPosition", "FAAsset", "LTVMatrix", "LiquidationParams", "LiquidationResult",
    "LiquidationError"
]
