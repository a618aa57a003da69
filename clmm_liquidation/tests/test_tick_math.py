#!/usr/bin/env python3
"""
Tick Math Tests

Tick -> price conversion, its inverse, Q64.64 square-root prices and u32
tick decoding.
"""

import pytest

from clmm_liquidation.core.fixed_point import SCALE
from clmm_liquidation.core.tick_math import (
    tick_to_price, price_to_tick, price_from_sqrt_price_x64, to_signed_tick,
    MIN_TICK, MAX_TICK, Q64
)


class TestTickToPrice:
    """tick_to_price at 1e8"""

    def test_tick_zero_is_parity(self):
        assert tick_to_price(0, 8, 8) == SCALE

    def test_single_ticks(self):
        assert tick_to_price(1, 8, 8) == 100_010_000
        # 1 / 1.0001 = 0.99990000999...
        assert tick_to_price(-1, 8, 8) == 99_990_001

    def test_known_range_edges(self):
        # 1.0001^2000 = e^0.19999 ~ 1.22138
        upper = tick_to_price(2000, 8, 8)
        lower = tick_to_price(-2000, 8, 8)
        assert 122_130_000 < upper < 122_150_000
        assert 81_870_000 < lower < 81_880_000

    def test_decimal_adjustment(self):
        assert tick_to_price(0, 6, 8) == SCALE // 100
        assert tick_to_price(0, 8, 6) == SCALE * 100

    def test_monotonic(self):
        prices = [tick_to_price(tick, 8, 8) for tick in range(-50, 51, 5)]
        assert prices == sorted(prices), "Prices should increase with tick"
        assert len(set(prices)) == len(prices)

    def test_out_of_bounds_raises(self):
        with pytest.raises(ValueError):
            tick_to_price(MAX_TICK + 1, 8, 8)
        with pytest.raises(ValueError):
            tick_to_price(MIN_TICK - 1, 8, 8)

    def test_extreme_ticks_are_defined(self):
        assert tick_to_price(MAX_TICK, 8, 8) > 0
        assert tick_to_price(MIN_TICK, 8, 8) >= 0


class TestPriceToTick:
    """Inverse lookup"""

    def test_parity_price(self):
        assert price_to_tick(SCALE, 8, 8) == 0

    def test_round_trip(self):
        for tick in (-5000, -2000, -1, 0, 1, 887, 2000, 5000):
            price = tick_to_price(tick, 8, 8)
            assert price_to_tick(price, 8, 8) == tick, f"Round trip failed for tick {tick}"

    def test_between_ticks_rounds_down(self):
        price = tick_to_price(100, 8, 8) + 1
        assert price_to_tick(price, 8, 8) == 100

    def test_tick_spacing(self):
        price = tick_to_price(123, 8, 8)
        assert price_to_tick(price, 8, 8, tick_spacing=60) == 120
        price = tick_to_price(-123, 8, 8)
        assert price_to_tick(price, 8, 8, tick_spacing=60) == -180

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            price_to_tick(0, 8, 8)
        with pytest.raises(ValueError):
            price_to_tick(SCALE, 8, 8, tick_spacing=0)


class TestSqrtPriceAndTicks:

    def test_price_from_sqrt_price_x64(self):
        assert price_from_sqrt_price_x64(Q64, 8, 8) == SCALE
        assert price_from_sqrt_price_x64(2 * Q64, 8, 8) == 4 * SCALE
        assert price_from_sqrt_price_x64(Q64, 6, 8) == SCALE // 100

    def test_to_signed_tick(self):
        assert to_signed_tick(100) == 100
        assert to_signed_tick(2 ** 32 - 1) == -1
        assert to_signed_tick(2 ** 32 - 2000) == -2000
        assert to_signed_tick(2 ** 31) == -(2 ** 31)

    def test_to_signed_tick_rejects_non_u32(self):
        with pytest.raises(ValueError):
            to_signed_tick(2 ** 32)
        with pytest.raises(ValueError):
            to_signed_tick(-1)
