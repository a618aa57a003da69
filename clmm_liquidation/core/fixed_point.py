#!/usr/bin/env python3
"""
Fixed-Point Arithmetic

Integer helpers shared by the valuation, debt requirement and solver code.
All amounts and prices are integers scaled by 1e8 unless noted otherwise;
Python ints are unbounded, so intermediates never overflow.
"""

import math

# Fixed point scale factors
SCALE = 10 ** 8  # 1e8
DEFAULT_DECIMALS = 8

# Price bounds (1e8 scale)
MIN_PRICE = 1
MAX_PRICE = 10 ** 17

# Saturation value for degenerate bonding-curve denominators
MAX_U64 = 2 ** 64 - 1

# 0.01% of SCALE, used for derivative sampling
PRICE_DELTA = 10_000


def mul_div(a: int, b: int, denominator: int) -> int:
    """Multiply two numbers and divide by denominator, rounding down"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    return (a * b) // denominator


def mul_div_round(a: int, b: int, denominator: int) -> int:
    """Multiply and divide with rounding to nearest (halves round up)"""
    if denominator == 0:
        raise ZeroDivisionError("mul_div_round denominator is zero")
    numerator = a * b
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    return (2 * numerator + denominator) // (2 * denominator)


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Move an amount between decimal counts, truncating when scaling down"""
    if from_decimals == to_decimals:
        return amount
    if from_decimals > to_decimals:
        return amount // (10 ** (from_decimals - to_decimals))
    return amount * (10 ** (to_decimals - from_decimals))


def isqrt_1e8(value: int) -> int:
    """
    Square root of a 1e8-scaled value, result also scaled by 1e8.

    Treats ``value`` as the real number value/1e8 and returns
    round(sqrt(value/1e8) * 1e8), i.e. round(sqrt(value * 1e8)).
    """
    if value < 0:
        raise ValueError(f"Cannot take square root of negative value {value}")
    radicand = value * SCALE
    root = math.isqrt(radicand)
    # (root + 0.5)^2 = root^2 + root + 0.25
    if radicand - root * root > root:
        root += 1
    return root


def abs_int(value: int) -> int:
    return -value if value < 0 else value


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp value into [lower, upper]"""
    return max(lower, min(upper, value))
