#!/usr/bin/env python3
"""
Display formatting for liquidation results
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, localcontext
from enum import Enum
from typing import Tuple

from ..core.fixed_point import DEFAULT_DECIMALS
from ..core.position import LiquidationResult


class RiskLevel(Enum):
    SAFE = "SAFE"
    WARNING = "WARNING"
    DANGER = "DANGER"


def classify_risk(result: LiquidationResult) -> RiskLevel:
    """DANGER once the buffer is gone, WARNING while at risk, SAFE otherwise"""
    if not result.is_at_risk:
        return RiskLevel.SAFE
    if result.margin_buffer <= 0:
        return RiskLevel.DANGER
    return RiskLevel.WARNING


def format_fixed_point(value: int, decimals: int = DEFAULT_DECIMALS, display_decimals: int = 6) -> str:
    """Fixed point integer -> '1,234.567800', truncated to display_decimals"""
    with localcontext() as ctx:
        ctx.prec = 100
        amount = Decimal(value).scaleb(-decimals)
        amount = amount.quantize(Decimal(1).scaleb(-display_decimals), rounding=ROUND_DOWN)
        if amount.is_zero():
            amount = abs(amount)
        return f"{amount:,f}"


@dataclass(frozen=True)
class FormattedLiquidationResult:
    liquidation_prices: Tuple[str, str]
    current_margin_ratio: str
    margin_buffer: str
    liquidation_distance: Tuple[str, str]  # (low, high)
    risk_level: RiskLevel


def format_liquidation_result(result: LiquidationResult, decimals: int = 6) -> FormattedLiquidationResult:
    """
    Human readable view of a LiquidationResult.

    Prices use ``decimals`` display places; ratios, buffer and distances use 4.
    """
    lower_price, upper_price = result.liquidation_prices
    return FormattedLiquidationResult(
        liquidation_prices=(
            format_fixed_point(lower_price, display_decimals=decimals),
            format_fixed_point(upper_price, display_decimals=decimals)
        ),
        current_margin_ratio=format_fixed_point(result.current_margin_ratio, display_decimals=4),
        margin_buffer=format_fixed_point(result.margin_buffer, display_decimals=4),
        liquidation_distance=(
            format_fixed_point(result.liquidation_distance.low, display_decimals=4),
            format_fixed_point(result.liquidation_distance.high, display_decimals=4)
        ),
        risk_level=classify_risk(result)
    )
