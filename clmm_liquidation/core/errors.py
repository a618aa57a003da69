"""Custom errors for the liquidation engine"""
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Error categories callers can branch on"""
    CONFIGURATION = "configuration"
    NON_CONVERGENCE = "non_convergence"
    INVALID_INPUT = "invalid_input"


class LiquidationError(Exception):
    """Base error class for liquidation engine errors"""
    kind: ErrorKind = ErrorKind.INVALID_INPUT


class LTVConfigurationError(LiquidationError):
    """An asset in the valuation breakdown has a missing or non-positive LTV"""
    kind = ErrorKind.CONFIGURATION

    def __init__(self, asset: str, side: str, ltv: Optional[int] = None):
        self.asset = asset
        self.side = side
        self.ltv = ltv
        if ltv is None:
            message = f"No {side}-debt LTV entry for asset {asset}"
        else:
            message = f"Non-positive {side}-debt LTV {ltv} for asset {asset}"
        super().__init__(message)


class ConvergenceError(LiquidationError):
    """Root solver exhausted its iteration budget"""
    kind = ErrorKind.NON_CONVERGENCE

    def __init__(self, direction: str, iterations: int, last_price: int):
        self.direction = direction
        self.iterations = iterations
        self.last_price = last_price
        super().__init__(
            f"Newton-Raphson failed to converge after {iterations} iterations "
            f"({direction} search, last price {last_price})"
        )


class InvalidParamsError(LiquidationError):
    """Malformed liquidation parameters"""
    kind = ErrorKind.INVALID_INPUT
