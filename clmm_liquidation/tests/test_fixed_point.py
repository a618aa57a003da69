#!/usr/bin/env python3
"""
Fixed-Point Arithmetic Tests

Rounding, rescaling and square root behaviour of the shared integer helpers.
"""

import pytest

from clmm_liquidation.core.fixed_point import (
    SCALE, mul_div, mul_div_round, rescale, isqrt_1e8, abs_int, clamp
)


class TestMulDiv:
    """mul_div and mul_div_round"""

    def test_mul_div_rounds_down(self):
        assert mul_div(10, 1, 3) == 3
        assert mul_div(2 * SCALE, 3 * SCALE, SCALE) == 6 * SCALE

    def test_mul_div_round_to_nearest(self):
        assert mul_div_round(10, 1, 3) == 3, "3.33 should round down"
        assert mul_div_round(11, 1, 3) == 4, "3.67 should round up"

    def test_mul_div_round_halves_round_up(self):
        assert mul_div_round(5, 1, 2) == 3
        assert mul_div_round(-5, 1, 2) == -2

    def test_mul_div_round_negative_denominator(self):
        assert mul_div_round(10, 1, -3) == -3
        assert mul_div_round(-10, 1, -3) == 3

    def test_zero_denominator_raises(self):
        with pytest.raises(ZeroDivisionError):
            mul_div(1, 1, 0)
        with pytest.raises(ZeroDivisionError):
            mul_div_round(1, 1, 0)

    def test_large_intermediates_are_exact(self):
        big = 10 ** 40
        assert mul_div_round(big, big, big) == big


class TestRescale:

    def test_scale_up(self):
        assert rescale(5, 6, 8) == 500

    def test_scale_down_truncates(self):
        assert rescale(123_456_789, 8, 6) == 1_234_567

    def test_same_decimals(self):
        assert rescale(42, 8, 8) == 42


class TestIsqrt:
    """Square root of 1e8-scaled values"""

    def test_perfect_squares(self):
        assert isqrt_1e8(SCALE) == SCALE
        assert isqrt_1e8(4 * SCALE) == 2 * SCALE
        assert isqrt_1e8(0) == 0

    def test_rounds_to_nearest(self):
        # sqrt(2) = 1.41421356237...
        assert isqrt_1e8(2 * SCALE) == 141_421_356
        # sqrt(0.5) = 0.70710678118...
        assert isqrt_1e8(SCALE // 2) == 70_710_678

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            isqrt_1e8(-1)


class TestHelpers:

    def test_abs_int(self):
        assert abs_int(-7) == 7
        assert abs_int(7) == 7

    def test_clamp(self):
        assert clamp(5, 1, 10) == 5
        assert clamp(-5, 1, 10) == 1
        assert clamp(50, 1, 10) == 10
