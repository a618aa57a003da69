#!/usr/bin/env python3
"""
Concentrated Liquidity Bonding Curve

Token amounts held by a liquidity position at an arbitrary price:
- below the range the position is entirely token X
- above the range it is entirely token Y
- in range it holds both, following the constant product curve

Liquidity and prices are 1e8-scaled; square roots come from isqrt_1e8 and
every division is a single rounded mul_div_round after the numerator has been
multiplied out.
"""

import math
from typing import Tuple

from .fixed_point import SCALE, MAX_U64, isqrt_1e8, mul_div_round


def x_from_liquidity(liquidity: int, price: int, price_lower: int, price_upper: int) -> int:
    """X(p) = L * (sqrt(pu) - sqrt(p)) / (sqrt(p) * sqrt(pu)), p clamped to the range"""
    if price <= price_lower:
        sqrt_price = isqrt_1e8(price_lower)
    elif price >= price_upper:
        return 0
    else:
        sqrt_price = isqrt_1e8(price)

    sqrt_price_upper = isqrt_1e8(price_upper)

    denominator = sqrt_price * sqrt_price_upper
    if denominator == 0:
        return MAX_U64

    return mul_div_round(liquidity * (sqrt_price_upper - sqrt_price), SCALE, denominator)


def y_from_liquidity(liquidity: int, price: int, price_lower: int, price_upper: int) -> int:
    """Y(p) = L * (sqrt(p) - sqrt(pl)), p clamped to the range"""
    if price <= price_lower:
        return 0

    sqrt_price_lower = isqrt_1e8(price_lower)
    if price >= price_upper:
        sqrt_price = isqrt_1e8(price_upper)
    else:
        sqrt_price = isqrt_1e8(price)

    return mul_div_round(liquidity, sqrt_price - sqrt_price_lower, SCALE)


def amounts_at_price(
    liquidity: int,
    price: int,
    price_lower: int,
    price_upper: int
) -> Tuple[int, int]:
    """Return (X, Y) held by the position at ``price``"""
    return (
        x_from_liquidity(liquidity, price, price_lower, price_upper),
        y_from_liquidity(liquidity, price, price_lower, price_upper)
    )


def normalize_liquidity(raw_liquidity: int, x_decimals: int, y_decimals: int) -> int:
    """
    Convert raw pool liquidity to 1e8 scale.

    Pool liquidity carries (x_decimals + y_decimals) / 2 decimals; the
    denominator is built with an integer square root so odd decimal sums work.
    """
    if raw_liquidity < 0:
        raise ValueError(f"Liquidity must be non-negative, got {raw_liquidity}")
    denominator = math.isqrt(10 ** (x_decimals + y_decimals) * SCALE * SCALE)
    return mul_div_round(raw_liquidity, SCALE * SCALE, denominator)
