#!/usr/bin/env python3
"""
Position and Market Snapshot Data Model

Immutable inputs and outputs of the liquidation engine. All prices and values
are integers scaled by 1e8; token amounts and debts are in each token's native
decimals until the engine rescales them.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Tuple, Union

from .errors import InvalidParamsError
from .fixed_point import SCALE, MAX_PRICE
from .tick_math import MIN_TICK, MAX_TICK

HumanNumber = Union[int, float, str, Decimal]


@dataclass(frozen=True)
class CLMMPosition:
    """Leveraged concentrated liquidity position (treated as one collateral asset)"""
    position_id: str  # LTV lookup key
    liquidity: int  # 1e8 scale
    tick_lower: int
    tick_upper: int
    current_tick: int
    debt_x: int  # native X decimals
    debt_y: int  # native Y decimals
    pending_fee_and_rewards_value: int = 0  # 1e8 scale, quote units


@dataclass(frozen=True)
class FAAsset:
    """Auxiliary fungible collateral whose price co-moves with the pool price"""
    address: str
    amount: int  # native decimals
    current_price: int  # 1e8 scale, quote units
    correlation: int  # 1e8 scale, nominally [-1e8, 1e8]
    decimals: int


@dataclass(frozen=True)
class LTVMatrix:
    """LTV ratios (1e8 scale) per debt side, keyed by asset address or position id"""
    x: Dict[str, int] = field(default_factory=dict)
    y: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LiquidationParams:
    """Complete snapshot for one liquidation calculation"""
    position: CLMMPosition
    ltv_matrix: LTVMatrix
    fa_assets: List[FAAsset]
    current_price: int  # 1e8 scale, Y per X
    x_decimals: int
    y_decimals: int

    def validate(self):
        """Raise InvalidParamsError for inputs the engine cannot price"""
        position = self.position
        if self.current_price <= 0:
            raise InvalidParamsError(f"Current price must be positive, got {self.current_price}")
        if self.current_price >= MAX_PRICE:
            raise InvalidParamsError(f"Current price {self.current_price} must be below {MAX_PRICE}")
        if self.x_decimals < 0 or self.y_decimals < 0:
            raise InvalidParamsError("Token decimals must be non-negative")
        if position.liquidity < 0:
            raise InvalidParamsError(f"Liquidity must be non-negative, got {position.liquidity}")
        if position.debt_x < 0 or position.debt_y < 0:
            raise InvalidParamsError("Debt amounts must be non-negative")
        if position.pending_fee_and_rewards_value < 0:
            raise InvalidParamsError("Pending fee and rewards value must be non-negative")
        if position.tick_lower > position.tick_upper:
            raise InvalidParamsError(
                f"tick_lower {position.tick_lower} is above tick_upper {position.tick_upper}"
            )
        for tick in (position.tick_lower, position.tick_upper):
            if tick < MIN_TICK or tick > MAX_TICK:
                raise InvalidParamsError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")
        for asset in self.fa_assets:
            if asset.amount < 0 or asset.current_price < 0 or asset.decimals < 0:
                raise InvalidParamsError(f"Invalid auxiliary asset {asset.address}")


@dataclass(frozen=True)
class LiquidationDistance:
    """Distance from current price to each boundary, as a 1e8 fraction of current price"""
    low: int
    high: int


@dataclass(frozen=True)
class AssetBreakdown:
    """Valuation at the snapshot price (1e8 scale, quote units)"""
    total_assets: int
    total_debts: int
    weighted_debt_requirement: int
    asset_values: Dict[str, int]


@dataclass(frozen=True)
class LiquidationResult:
    """Liquidation boundaries and risk metrics, all scaled by 1e8"""
    liquidation_prices: Tuple[int, int]
    current_margin_ratio: int
    is_at_risk: bool
    margin_buffer: int
    liquidation_distance: LiquidationDistance
    breakdown: AssetBreakdown

    @property
    def lower_liquidation_price(self) -> int:
        return self.liquidation_prices[0]

    @property
    def upper_liquidation_price(self) -> int:
        return self.liquidation_prices[1]


def to_scaled(value: HumanNumber, scale: int = SCALE) -> int:
    """Human decimal -> fixed point integer, rounded down"""
    scaled = Decimal(str(value)) * scale
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def create_ltv_matrix(matrix: Dict[str, Dict[str, HumanNumber]]) -> LTVMatrix:
    """
    Build an LTV matrix from human ratios.

    Args:
        matrix: {"x": {asset: 0.75, ...}, "y": {asset: 0.8, ...}}

    Returns:
        LTVMatrix with 1e8-scaled ratios
    """
    return LTVMatrix(
        x={asset: to_scaled(ltv) for asset, ltv in matrix.get("x", {}).items()},
        y={asset: to_scaled(ltv) for asset, ltv in matrix.get("y", {}).items()}
    )


def create_fa_asset(
    address: str,
    amount: int,
    current_price: HumanNumber,
    correlation: HumanNumber,
    decimals: int
) -> FAAsset:
    """Create an auxiliary asset from a human price and correlation"""
    return FAAsset(
        address=address,
        amount=int(amount),
        current_price=to_scaled(current_price),
        correlation=to_scaled(correlation),
        decimals=decimals
    )
