#!/usr/bin/env python3
"""
Liquidation Boundary Root Solver

Finds prices where F(p) = total_assets(p) - weighted_debt_requirement(p) = 0
with Newton-Raphson on a central-difference derivative.

F is continuous but only piecewise smooth (kinks at the position's range
boundaries) and can be flat, so the solver falls back to:
1. a secant step through the two derivative samples
2. a fixed damped step
3. one probe of the position range boundary, which either restarts the search
   next to the boundary or concludes there is no finite root in that direction
4. a bracketing scan outward from the snapshot price when the search is still
   stuck after the probe

A search is stuck when the flat condition persists or when |F| stops
shrinking for several iterations (Newton cycling around a positive minimum).
"""

import logging
from enum import Enum
from typing import Optional, Tuple

from ..core.errors import ConvergenceError
from ..core.fixed_point import SCALE, MIN_PRICE, MAX_PRICE, abs_int, clamp, mul_div, mul_div_round
from ..core.position import LiquidationParams
from .config import SolverConfig
from .valuation import MarginEvaluator

logger = logging.getLogger(__name__)


class SearchDirection(Enum):
    """Side of the current price being searched"""
    LOWER = "lower"
    UPPER = "upper"

    @property
    def sentinel(self) -> int:
        """Boundary reported when there is no finite root on this side"""
        return MIN_PRICE if self is SearchDirection.LOWER else MAX_PRICE


class NewtonRaphsonSolver:
    """Newton-Raphson solver for the liquidation price on one side of current price"""

    def __init__(
        self,
        params: LiquidationParams,
        config: SolverConfig = None,
        evaluator: MarginEvaluator = None
    ):
        self.params = params
        self.config = config or SolverConfig()
        self.evaluator = evaluator or MarginEvaluator(params)

    def initial_guess(self, current_price: int, direction: SearchDirection) -> int:
        """Starting point below (0.7x) or above (1.3x) the current price"""
        if direction is SearchDirection.LOWER:
            numerator, denominator = self.config.lower_search_ratio
        else:
            numerator, denominator = self.config.upper_search_ratio
        return clamp(current_price * numerator // denominator, MIN_PRICE + 1, MAX_PRICE - 1)

    def solve(self, initial_guess: int, direction: SearchDirection) -> int:
        """
        Run the search from ``initial_guess``.

        Args:
            initial_guess: Starting price (1e8)
            direction: Which side of current price is being searched

        Returns:
            Root price, or the direction's sentinel when no finite root exists

        Raises:
            ConvergenceError: iteration budget exhausted
        """
        config = self.config
        tolerance = config.tolerance
        min_search_price = SCALE // config.price_delta

        price = clamp(initial_guess, MIN_PRICE, MAX_PRICE)
        damped_steps = 0
        stalled_steps = 0
        best_abs_f = None
        boundary_probed = False

        for iteration in range(config.max_iterations):
            f = self.evaluator.margin(price)
            abs_f = abs_int(f)

            if abs_f <= tolerance:
                logger.debug("%s search converged at %d after %d iterations", direction.value, price, iteration)
                return price

            if price <= min_search_price:
                logger.debug("%s search collapsed to minimum price", direction.value)
                return MIN_PRICE

            if best_abs_f is None or abs_f < best_abs_f:
                best_abs_f = abs_f
                stalled_steps = 0
            else:
                stalled_steps += 1

            if damped_steps >= config.flat_patience or stalled_steps >= config.stall_patience:
                if boundary_probed:
                    logger.debug("%s search stuck at %d after boundary probe, scanning", direction.value, price)
                    return self._scan_for_root(direction)

                boundary_probed = True
                retry_price, sentinel = self._probe_boundary(price, direction)
                if sentinel is not None:
                    logger.debug("%s search: healthy at range boundary, no finite root", direction.value)
                    return sentinel
                logger.debug("%s search: restarting from %d", direction.value, retry_price)
                price = retry_price
                damped_steps = 0
                stalled_steps = 0
                best_abs_f = None
                continue

            delta = max(1, mul_div(price, config.price_delta, SCALE))
            f_minus = self.evaluator.margin(price - delta)
            f_plus = self.evaluator.margin(price + delta)
            f_diff = f_plus - f_minus
            f_prime = mul_div_round(f_diff, SCALE, 2 * delta)

            # A difference at rounding level carries no slope information
            is_noise = abs_int(f_diff) <= config.noise_floor

            if is_noise or abs_int(f_prime) < config.derivative_threshold:
                candidate = None if is_noise else self._secant_candidate(price, f, f_diff, delta)
                if candidate is not None:
                    damped_steps = 0
                    price = candidate
                    continue

                damped_steps += 1
                step = max(1, delta // 4)
                price = clamp(price + step if f > 0 else price - step, MIN_PRICE, MAX_PRICE)
                continue

            damped_steps = 0
            price_next = price - mul_div_round(f, SCALE, f_prime)

            # Never accept an out-of-range step, bisect toward the violated bound
            if price_next <= MIN_PRICE:
                price = (price + MIN_PRICE) // 2
                continue
            if price_next >= MAX_PRICE:
                price = (price + MAX_PRICE) // 2
                continue

            if abs_int(price_next - price) <= mul_div(tolerance, price, SCALE):
                logger.debug("%s search step converged at %d after %d iterations",
                             direction.value, price_next, iteration)
                return price_next

            price = price_next

        raise ConvergenceError(direction.value, config.max_iterations, price)

    def _secant_candidate(self, price: int, f: int, f_diff: int, delta: int) -> Optional[int]:
        """Secant step through F(p - delta) and F(p + delta), if it stays in range"""
        if f_diff == 0:
            return None
        candidate = price - mul_div_round(2 * delta, f, f_diff)
        if MIN_PRICE < candidate < MAX_PRICE:
            return candidate
        return None

    def _probe_boundary(self, price: int, direction: SearchDirection) -> Tuple[Optional[int], Optional[int]]:
        """
        Handle a persistently flat or stalled search.

        Returns (retry_price, None) to restart the search, or (None, sentinel)
        when the account is healthy at the range boundary.
        """
        price_lower, price_upper = self.evaluator.price_range

        if price_lower <= price <= price_upper:
            # Step one unit past the range edge on the search side
            if direction is SearchDirection.LOWER:
                retry = price_lower - 1
            else:
                retry = price_upper + 1
            return clamp(retry, MIN_PRICE, MAX_PRICE), None

        if price < price_lower:
            boundary = price_lower
            inside = boundary + boundary // 100
        else:
            boundary = price_upper
            inside = boundary - boundary // 100

        if self.evaluator.is_healthy(boundary):
            return None, direction.sentinel
        return clamp(inside, MIN_PRICE, MAX_PRICE), None

    def _scan_for_root(self, direction: SearchDirection) -> int:
        """
        Last resort for a search that stays stuck after its boundary probe.

        Walks away from the (healthy) snapshot price in doubling steps until the
        account turns unhealthy, then bisects that bracket down to the step
        tolerance. Reaching the price bound while still healthy means there is
        no finite root on this side.
        """
        config = self.config
        min_search_price = SCALE // config.price_delta
        healthy = self.params.current_price

        while True:
            if direction is SearchDirection.LOWER:
                candidate = healthy // 2
                if candidate <= min_search_price:
                    return MIN_PRICE
            else:
                candidate = min(healthy * 2, MAX_PRICE)
            if not self.evaluator.is_healthy(candidate):
                break
            if candidate >= MAX_PRICE:
                return MAX_PRICE
            healthy = candidate

        unhealthy = candidate
        while abs_int(unhealthy - healthy) > max(1, mul_div(config.tolerance, healthy, SCALE)):
            middle = (healthy + unhealthy) // 2
            if self.evaluator.is_healthy(middle):
                healthy = middle
            else:
                unhealthy = middle

        logger.debug("%s scan bracketed the boundary at %d", direction.value, healthy)
        return healthy
