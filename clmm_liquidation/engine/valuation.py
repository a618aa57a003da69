#!/usr/bin/env python3
"""
Collateral Valuation and Weighted Debt Requirement

Values a CLMM position plus correlated auxiliary assets at a hypothetical pool
price, and converts the two debt balances into the minimum collateral value
the LTV matrix allows for the current collateral mix. Both are evaluated on
every solver iteration, so everything here is exact integer math.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.errors import LTVConfigurationError
from ..core.fixed_point import SCALE, DEFAULT_DECIMALS, mul_div, mul_div_round, rescale
from ..core.liquidity_math import amounts_at_price
from ..core.position import CLMMPosition, FAAsset, LTVMatrix, LiquidationParams
from ..core.tick_math import tick_to_price

DEFAULT_MARGIN_RATIO_CAP = SCALE * 1_000_000


def position_price_range(position: CLMMPosition, x_decimals: int, y_decimals: int) -> Tuple[int, int]:
    """(price_lower, price_upper) of the position's tick range at 1e8"""
    return (
        tick_to_price(position.tick_lower, x_decimals, y_decimals),
        tick_to_price(position.tick_upper, x_decimals, y_decimals)
    )


def correlated_price(asset: FAAsset, price: int, current_price: int) -> int:
    """Synthetic asset price when the pool moves from current_price to price"""
    price_ratio = mul_div_round(price, SCALE, current_price)
    price_change_ratio = mul_div_round(asset.correlation, price_ratio - SCALE, SCALE)
    # Floor of 1 keeps strongly anti-correlated assets from going to zero or negative
    return max(1, mul_div_round(asset.current_price, SCALE + price_change_ratio, SCALE))


def calculate_total_assets(
    price: int,
    position: CLMMPosition,
    fa_assets: List[FAAsset],
    current_price: int,
    x_decimals: int,
    y_decimals: int,
    price_range: Optional[Tuple[int, int]] = None
) -> Tuple[int, Dict[str, int]]:
    """
    Total collateral value in quote units at a hypothetical price.

    Args:
        price: Hypothetical pool price (1e8)
        position: CLMM position snapshot
        fa_assets: Auxiliary collateral
        current_price: Snapshot pool price the FA prices were observed at
        x_decimals: Native decimals of token X
        y_decimals: Native decimals of token Y
        price_range: Precomputed (price_lower, price_upper), optional

    Returns:
        (total_value, breakdown keyed by position id / asset address)
    """
    if price_range is None:
        price_range = position_price_range(position, x_decimals, y_decimals)
    price_lower, price_upper = price_range

    x_amount, y_amount = amounts_at_price(position.liquidity, price, price_lower, price_upper)
    position_value = (
        mul_div_round(x_amount, price, SCALE)
        + y_amount
        + position.pending_fee_and_rewards_value
    )

    breakdown = {position.position_id: position_value}
    total_value = position_value

    for asset in fa_assets:
        scaled_amount = rescale(asset.amount, asset.decimals, DEFAULT_DECIMALS)
        asset_value = mul_div_round(scaled_amount, correlated_price(asset, price, current_price), SCALE)
        # Duplicate addresses overwrite the breakdown entry but still count in the total
        breakdown[asset.address] = asset_value
        total_value += asset_value

    return total_value, breakdown


def _require_ltv(ltv_side: Dict[str, int], asset: str, side: str) -> int:
    ltv = ltv_side.get(asset)
    if ltv is None:
        raise LTVConfigurationError(asset, side)
    if ltv <= 0:
        raise LTVConfigurationError(asset, side, ltv)
    return ltv


def calculate_weighted_debt_requirement(
    price: int,
    position: CLMMPosition,
    ltv_matrix: LTVMatrix,
    breakdown: Dict[str, int],
    x_decimals: int,
    y_decimals: int
) -> int:
    """
    Minimum collateral value needed so every debt unit stays within its LTV.

    Each debt is spread over the collateral in proportion to value and each
    share is divided by that collateral's LTV against the debt side:
    WDR = sum_asset(x_debt_value * w / LTV_X[asset] + y_debt_value * w / LTV_Y[asset])
    with w = asset_value / total_asset_value.
    """
    ltvs = {
        asset: (_require_ltv(ltv_matrix.x, asset, "X"), _require_ltv(ltv_matrix.y, asset, "Y"))
        for asset in breakdown
    }

    debt_x_scaled = rescale(position.debt_x, x_decimals, DEFAULT_DECIMALS)
    y_debt_value = rescale(position.debt_y, y_decimals, DEFAULT_DECIMALS)
    x_debt_value = mul_div_round(debt_x_scaled, price, SCALE)

    total_asset_value = sum(breakdown.values())
    if total_asset_value == 0:
        return 0

    requirement = 0
    for asset, asset_value in breakdown.items():
        ltv_x, ltv_y = ltvs[asset]
        requirement += mul_div_round(x_debt_value * asset_value, SCALE, total_asset_value * ltv_x)
        requirement += mul_div_round(y_debt_value * asset_value, SCALE, total_asset_value * ltv_y)

    return requirement


def calculate_total_debts(position: CLMMPosition, price: int, x_decimals: int, y_decimals: int) -> int:
    """X debt valued at ``price`` plus Y debt, 1e8 quote units"""
    debt_x_scaled = rescale(position.debt_x, x_decimals, DEFAULT_DECIMALS)
    debt_y_scaled = rescale(position.debt_y, y_decimals, DEFAULT_DECIMALS)
    return mul_div_round(debt_x_scaled, price, SCALE) + debt_y_scaled


def calculate_margin_ratio(
    total_assets: int,
    weighted_debt_requirement: int,
    cap: int = DEFAULT_MARGIN_RATIO_CAP
) -> int:
    """Total assets / weighted debt requirement at 1e8 (cap when there is no requirement)"""
    if weighted_debt_requirement == 0:
        return cap
    return mul_div(total_assets, SCALE, weighted_debt_requirement)


@dataclass(frozen=True)
class MarginSnapshot:
    """Valuation of the account at one hypothetical price"""
    price: int
    total_assets: int
    weighted_debt_requirement: int
    breakdown: Dict[str, int]

    @property
    def margin(self) -> int:
        """F(p) = total assets - weighted debt requirement"""
        return self.total_assets - self.weighted_debt_requirement

    @property
    def is_healthy(self) -> bool:
        return self.total_assets >= self.weighted_debt_requirement


class MarginEvaluator:
    """Evaluates F(p) for one set of liquidation params"""

    def __init__(self, params: LiquidationParams):
        self.params = params
        self.price_range = position_price_range(params.position, params.x_decimals, params.y_decimals)

    def evaluate(self, price: int) -> MarginSnapshot:
        params = self.params
        total_assets, breakdown = calculate_total_assets(
            price,
            params.position,
            params.fa_assets,
            params.current_price,
            params.x_decimals,
            params.y_decimals,
            price_range=self.price_range
        )
        requirement = calculate_weighted_debt_requirement(
            price,
            params.position,
            params.ltv_matrix,
            breakdown,
            params.x_decimals,
            params.y_decimals
        )
        return MarginSnapshot(price, total_assets, requirement, breakdown)

    def margin(self, price: int) -> int:
        return self.evaluate(price).margin

    def is_healthy(self, price: int) -> bool:
        return self.evaluate(price).is_healthy


def is_account_healthy(params: LiquidationParams, price: int) -> bool:
    """True when total collateral covers the weighted debt requirement at ``price``"""
    return MarginEvaluator(params).is_healthy(price)
