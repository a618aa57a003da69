#!/usr/bin/env python3
"""
Valuation Test Suite

Collateral valuation, correlated auxiliary asset pricing, the weighted debt
requirement and margin ratios.
"""

import pytest

from clmm_liquidation.core.errors import ErrorKind, LTVConfigurationError
from clmm_liquidation.core.fixed_point import SCALE
from clmm_liquidation.core.position import LTVMatrix
from clmm_liquidation.engine.valuation import (
    DEFAULT_MARGIN_RATIO_CAP, MarginEvaluator, calculate_margin_ratio, calculate_total_assets,
    calculate_total_debts, calculate_weighted_debt_requirement, correlated_price,
    is_account_healthy, position_price_range
)

from .scenarios import (
    POSITION_ID, build_fa_asset, build_ltv_matrix, build_params, build_position,
    healthy_y_debt_params, underwater_params
)


class TestTotalAssets:
    """Position plus auxiliary asset valuation"""

    def setup_method(self):
        self.position = build_position()

    def total_assets(self, price, fa_assets=()):
        return calculate_total_assets(price, self.position, list(fa_assets), SCALE, 8, 8)

    def test_position_value_at_current_price(self):
        total, breakdown = self.total_assets(SCALE)
        # 2 * 1000 * (1 - e^-0.1) ~ 190.33
        assert 190 * SCALE < total < 191 * SCALE
        assert breakdown == {POSITION_ID: total}

    def test_position_value_below_range_is_linear(self):
        value_low, _ = self.total_assets(SCALE // 2)
        value_lower, _ = self.total_assets(SCALE // 4)
        assert abs(value_low - 2 * value_lower) <= 2, "All-X value should scale with price"

    def test_position_value_above_range_is_constant(self):
        value_a, _ = self.total_assets(2 * SCALE)
        value_b, _ = self.total_assets(5 * SCALE)
        assert value_a == value_b

    def test_value_is_continuous_at_range_edges(self):
        price_lower, price_upper = position_price_range(self.position, 8, 8)
        for edge in (price_lower, price_upper):
            below, _ = self.total_assets(edge - 1)
            at, _ = self.total_assets(edge)
            above, _ = self.total_assets(edge + 1)
            assert abs(at - below) < SCALE // 10_000, f"Jump below edge {edge}"
            assert abs(above - at) < SCALE // 10_000, f"Jump above edge {edge}"

    def test_pending_fees_are_included(self):
        position = build_position(pending_value=7 * SCALE)
        with_fees, _ = calculate_total_assets(SCALE, position, [], SCALE, 8, 8)
        without_fees, _ = self.total_assets(SCALE)
        assert with_fees - without_fees == 7 * SCALE

    def test_uncorrelated_asset_keeps_value(self):
        asset = build_fa_asset(correlation=0)
        for price in (SCALE // 2, SCALE, 3 * SCALE):
            _, breakdown = self.total_assets(price, [asset])
            assert breakdown["0xfa"] == 100 * SCALE, f"Value moved at price {price}"

    def test_fully_correlated_asset_tracks_price(self):
        asset = build_fa_asset(correlation=SCALE)
        _, breakdown = self.total_assets(150_000_000, [asset])
        assert breakdown["0xfa"] == 150 * SCALE

    def test_asset_decimals_are_normalized(self):
        asset = build_fa_asset(amount=50_000_000, decimals=6)
        _, breakdown = self.total_assets(SCALE, [asset])
        assert breakdown["0xfa"] == 100 * SCALE

    def test_total_is_sum_of_breakdown(self):
        assets = [build_fa_asset("0xa", correlation=SCALE // 2), build_fa_asset("0xb", correlation=-SCALE // 2)]
        total, breakdown = self.total_assets(120_000_000, assets)
        assert total == sum(breakdown.values())

    def test_duplicate_address_overwrites_breakdown(self):
        assets = [build_fa_asset("0xa"), build_fa_asset("0xa", amount=25 * SCALE)]
        total, breakdown = self.total_assets(SCALE, assets)
        assert breakdown["0xa"] == 50 * SCALE, "Later entry should win in the breakdown"
        assert total == breakdown[POSITION_ID] + 150 * SCALE, "Both entries count toward the total"


class TestCorrelatedPrice:

    def test_no_move(self):
        asset = build_fa_asset(correlation=SCALE // 2)
        assert correlated_price(asset, SCALE, SCALE) == asset.current_price

    def test_half_correlation(self):
        asset = build_fa_asset(correlation=SCALE // 2)
        # +100% pool move -> +50% asset move
        assert correlated_price(asset, 2 * SCALE, SCALE) == 3 * SCALE

    def test_anti_correlation_floors_at_one(self):
        asset = build_fa_asset(correlation=-SCALE)
        assert correlated_price(asset, 5 * SCALE // 2, SCALE) == 1

    def test_anti_correlation_moves_opposite(self):
        asset = build_fa_asset(correlation=-SCALE)
        assert correlated_price(asset, SCALE // 2, SCALE) == 3 * SCALE


class TestWeightedDebtRequirement:
    """Weighted debt requirement across collateral"""

    def setup_method(self):
        self.breakdown = {"0xpos": 100 * SCALE, "0xfa": 100 * SCALE}
        self.ltv_matrix = LTVMatrix(
            x={"0xpos": SCALE // 2, "0xfa": SCALE // 2},
            y={"0xpos": 80_000_000, "0xfa": 40_000_000}
        )

    def requirement(self, debt_x=0, debt_y=0, price=SCALE, breakdown=None, ltv_matrix=None):
        position = build_position(debt_x=debt_x, debt_y=debt_y)
        return calculate_weighted_debt_requirement(
            price, position, ltv_matrix or self.ltv_matrix,
            self.breakdown if breakdown is None else breakdown, 8, 8
        )

    def test_y_debt_weighted_by_value(self):
        # 40 * 0.5 / 0.8 + 40 * 0.5 / 0.4 = 25 + 50
        assert self.requirement(debt_y=40 * SCALE) == 75 * SCALE

    def test_x_debt_valued_at_price(self):
        # 10 X at 2.0 = 20; 20 * 0.5 / 0.5 * 2 = 40
        assert self.requirement(debt_x=10 * SCALE, price=2 * SCALE) == 40 * SCALE

    def test_no_debt_no_requirement(self):
        assert self.requirement() == 0

    def test_empty_collateral_no_requirement(self):
        breakdown = {"0xpos": 0, "0xfa": 0}
        assert self.requirement(debt_y=40 * SCALE, breakdown=breakdown) == 0

    def test_missing_ltv_raises(self):
        ltv_matrix = LTVMatrix(x=dict(self.ltv_matrix.x), y={"0xpos": 80_000_000})
        with pytest.raises(LTVConfigurationError) as exc_info:
            self.requirement(ltv_matrix=ltv_matrix)
        assert exc_info.value.asset == "0xfa"
        assert exc_info.value.side == "Y"
        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    def test_non_positive_ltv_raises(self):
        ltv_matrix = LTVMatrix(x={"0xpos": 0, "0xfa": SCALE // 2}, y=dict(self.ltv_matrix.y))
        with pytest.raises(LTVConfigurationError) as exc_info:
            self.requirement(debt_y=SCALE, ltv_matrix=ltv_matrix)
        assert exc_info.value.ltv == 0


class TestMarginRatio:

    def test_ratio(self):
        assert calculate_margin_ratio(150 * SCALE, 100 * SCALE) == 150_000_000

    def test_ratio_rounds_down(self):
        assert calculate_margin_ratio(1, 3) == 33_333_333

    def test_zero_requirement_caps(self):
        assert calculate_margin_ratio(100 * SCALE, 0) == DEFAULT_MARGIN_RATIO_CAP
        assert calculate_margin_ratio(100 * SCALE, 0, cap=5) == 5

    def test_total_debts(self):
        position = build_position(debt_x=10 * SCALE, debt_y=5 * SCALE)
        assert calculate_total_debts(position, 2 * SCALE, 8, 8) == 25 * SCALE


class TestMarginEvaluator:

    def test_healthy_snapshot(self):
        snapshot = MarginEvaluator(healthy_y_debt_params()).evaluate(SCALE)
        assert snapshot.weighted_debt_requirement == 125 * SCALE
        assert snapshot.is_healthy
        assert snapshot.margin == snapshot.total_assets - 125 * SCALE

    def test_underwater_snapshot(self):
        params = underwater_params()
        assert not is_account_healthy(params, SCALE)
        assert MarginEvaluator(params).margin(SCALE) < 0

    def test_price_range_matches_ticks(self):
        params = build_params()
        evaluator = MarginEvaluator(params)
        assert evaluator.price_range == position_price_range(params.position, 8, 8)
        lower, upper = evaluator.price_range
        assert lower < SCALE < upper

    def test_missing_position_ltv(self):
        params = build_params(debt_y=SCALE, ltv_matrix=build_ltv_matrix(["0xother"]))
        with pytest.raises(LTVConfigurationError):
            MarginEvaluator(params).evaluate(SCALE)
