#!/usr/bin/env python3
"""
Tick Math

Converts concentrated-liquidity ticks into 1e8-scaled prices using exact
integer arithmetic:
- price = 1.0001^tick (Y per X in native units)
- decimal adjustment by 10^x_decimals / 10^y_decimals
- inverse lookup by binary search over the tick range
"""

from .fixed_point import SCALE, mul_div_round

# Tick bounds (Uniswap V3 convention)
MIN_TICK = -887272
MAX_TICK = 887272
Q64 = 2 ** 64

# Internal precision for 1.0001^tick
TICK_BASE_SCALE = 10 ** 50
TICK_BASE = 10001 * 10 ** 46  # 1.0001 at TICK_BASE_SCALE

U32_RANGE = 2 ** 32
I32_MAX = 2 ** 31 - 1


def _validate_tick(tick: int):
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")


def _pow_tick_base(exponent: int) -> int:
    """1.0001^exponent at TICK_BASE_SCALE for a non-negative exponent"""
    result = TICK_BASE_SCALE
    base = TICK_BASE
    while exponent:
        if exponent & 1:
            result = mul_div_round(result, base, TICK_BASE_SCALE)
        exponent >>= 1
        if exponent:
            base = mul_div_round(base, base, TICK_BASE_SCALE)
    return result


def tick_to_raw_price(tick: int) -> int:
    """1.0001^tick scaled by TICK_BASE_SCALE, before any decimal adjustment"""
    _validate_tick(tick)
    if tick >= 0:
        return _pow_tick_base(tick)
    return mul_div_round(TICK_BASE_SCALE, TICK_BASE_SCALE, _pow_tick_base(-tick))


def tick_to_price(tick: int, x_decimals: int, y_decimals: int) -> int:
    """
    Convert a tick to a Y-per-X price scaled by 1e8.

    Args:
        tick: Pool tick
        x_decimals: Native decimals of token X
        y_decimals: Native decimals of token Y

    Returns:
        round(1.0001^tick * 1e8 * 10^x_decimals / 10^y_decimals)
    """
    raw_price = tick_to_raw_price(tick)
    return mul_div_round(
        raw_price,
        SCALE * 10 ** x_decimals,
        TICK_BASE_SCALE * 10 ** y_decimals
    )


def price_to_tick(price: int, x_decimals: int, y_decimals: int, tick_spacing: int = 1) -> int:
    """
    Find the largest tick whose price does not exceed ``price``.

    The result is rounded down to a multiple of ``tick_spacing`` and clamped to
    the usable tick range for that spacing.
    """
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    if tick_spacing <= 0:
        raise ValueError(f"Tick spacing must be positive, got {tick_spacing}")

    lowest_tick = -((-MIN_TICK) // tick_spacing) * tick_spacing
    highest_tick = (MAX_TICK // tick_spacing) * tick_spacing

    if tick_to_price(MIN_TICK, x_decimals, y_decimals) > price:
        return lowest_tick

    # Binary search, same approach as sqrt price -> tick lookup
    tick_low = MIN_TICK
    tick_high = MAX_TICK
    while tick_high - tick_low > 1:
        tick_mid = (tick_low + tick_high) // 2
        if tick_to_price(tick_mid, x_decimals, y_decimals) <= price:
            tick_low = tick_mid
        else:
            tick_high = tick_mid

    if tick_to_price(tick_high, x_decimals, y_decimals) <= price:
        tick_low = tick_high

    spaced_tick = (tick_low // tick_spacing) * tick_spacing
    return max(lowest_tick, min(highest_tick, spaced_tick))


def price_from_sqrt_price_x64(sqrt_price_x64: int, x_decimals: int, y_decimals: int) -> int:
    """Pool price at 1e8 from a Q64.64 square-root price"""
    if sqrt_price_x64 < 0:
        raise ValueError(f"sqrt_price_x64 must be non-negative, got {sqrt_price_x64}")
    return mul_div_round(
        sqrt_price_x64 * sqrt_price_x64,
        SCALE * 10 ** x_decimals,
        Q64 * Q64 * 10 ** y_decimals
    )


def to_signed_tick(raw_tick: int) -> int:
    """Interpret a u32 tick (two's complement) as a signed tick"""
    if raw_tick < 0 or raw_tick >= U32_RANGE:
        raise ValueError(f"Raw tick {raw_tick} is not a u32 value")
    return raw_tick - U32_RANGE if raw_tick > I32_MAX else raw_tick
