#!/usr/bin/env python3
"""
Liquidation Engine

Single entry point that turns a position snapshot into its lower and upper
liquidation prices plus the current risk metrics.
"""

import logging

from ..core.fixed_point import SCALE, MIN_PRICE, MAX_PRICE, mul_div
from ..core.position import AssetBreakdown, LiquidationDistance, LiquidationParams, LiquidationResult
from .config import EngineConfig
from .solver import NewtonRaphsonSolver, SearchDirection
from .valuation import MarginEvaluator, calculate_margin_ratio, calculate_total_debts

logger = logging.getLogger(__name__)


def calculate_liquidation_prices(params: LiquidationParams, config: EngineConfig = None) -> LiquidationResult:
    """
    Find the pool prices at which the account becomes liquidatable.

    Args:
        params: Position, LTV matrix, auxiliary assets and market snapshot
        config: Solver and risk settings, defaults when omitted

    Returns:
        LiquidationResult with (lower, upper) prices. A side with no finite
        root reports MIN_PRICE / MAX_PRICE. An account that is already
        unhealthy reports the current price on both sides.

    Raises:
        InvalidParamsError: malformed snapshot
        LTVConfigurationError: collateral without a positive LTV on either debt side
        ConvergenceError: a solve exhausted its iteration budget
    """
    config = config or EngineConfig()
    params.validate()

    position = params.position
    current_price = params.current_price
    evaluator = MarginEvaluator(params)

    snapshot = evaluator.evaluate(current_price)
    margin_ratio = calculate_margin_ratio(
        snapshot.total_assets, snapshot.weighted_debt_requirement, config.risk.margin_ratio_cap
    )
    margin_buffer = margin_ratio - SCALE
    breakdown = AssetBreakdown(
        total_assets=snapshot.total_assets,
        total_debts=calculate_total_debts(position, current_price, params.x_decimals, params.y_decimals),
        weighted_debt_requirement=snapshot.weighted_debt_requirement,
        asset_values=dict(snapshot.breakdown)
    )

    if not snapshot.is_healthy:
        logger.debug("Position %s already below its debt requirement at %d", position.position_id, current_price)
        return LiquidationResult(
            liquidation_prices=(current_price, current_price),
            current_margin_ratio=margin_ratio,
            is_at_risk=True,
            margin_buffer=margin_buffer,
            liquidation_distance=LiquidationDistance(low=0, high=0),
            breakdown=breakdown
        )

    if position.debt_x == 0 and position.debt_y == 0:
        # Nothing to liquidate on either side
        lower_price, upper_price = MIN_PRICE, MAX_PRICE
    else:
        solver = NewtonRaphsonSolver(params, config.solver, evaluator)

        lower_price = solver.solve(solver.initial_guess(current_price, SearchDirection.LOWER), SearchDirection.LOWER)
        if lower_price >= current_price:
            logger.debug("Lower search landed at %d, not below current price", lower_price)
            lower_price = MIN_PRICE

        upper_price = solver.solve(solver.initial_guess(current_price, SearchDirection.UPPER), SearchDirection.UPPER)
        if upper_price <= current_price:
            logger.debug("Upper search landed at %d, not above current price", upper_price)
            upper_price = MAX_PRICE

    distance_low = mul_div(current_price - lower_price, SCALE, current_price) if lower_price > MIN_PRICE else SCALE
    distance_high = mul_div(upper_price - current_price, SCALE, current_price) if upper_price < MAX_PRICE else SCALE

    return LiquidationResult(
        liquidation_prices=(lower_price, upper_price),
        current_margin_ratio=margin_ratio,
        is_at_risk=margin_buffer <= config.risk.at_risk_buffer,
        margin_buffer=margin_buffer,
        liquidation_distance=LiquidationDistance(low=distance_low, high=distance_high),
        breakdown=breakdown
    )
