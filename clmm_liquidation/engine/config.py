#!/usr/bin/env python3
"""
Engine parameter definitions

Simple configuration classes for the root solver and risk classification.
"""

from ..core.fixed_point import SCALE, PRICE_DELTA


class SolverConfig:
    """Newton-Raphson solver configuration"""

    def __init__(self):
        # Convergence
        self.tolerance = SCALE // 1_000_000  # 1e-6
        self.max_iterations = 100

        # Central difference step: price * price_delta / SCALE (0.01%)
        self.price_delta = PRICE_DELTA

        # |F'(p)| below this counts as a flat region (1e-4)
        self.derivative_threshold = SCALE // 10_000

        # F differences at or below this are rounding, not slope (1.6e-7)
        self.noise_floor = 16

        # Consecutive damped steps, or iterations without |F| shrinking,
        # before probing the position range boundary
        self.flat_patience = 3
        self.stall_patience = 6

        # Initial guesses relative to current price (numerator, denominator)
        self.lower_search_ratio = (7, 10)
        self.upper_search_ratio = (13, 10)


class RiskConfig:
    """Risk classification thresholds"""

    def __init__(self):
        # At risk when margin ratio is within 10% of liquidation
        self.at_risk_buffer = SCALE // 10

        # Margin ratio reported when there is no debt requirement
        self.margin_ratio_cap = SCALE * 1_000_000


class EngineConfig:
    """Solver and risk settings used by one liquidation calculation"""

    def __init__(self, solver: SolverConfig = None, risk: RiskConfig = None):
        self.solver = solver or SolverConfig()
        self.risk = risk or RiskConfig()
