#!/usr/bin/env python3
"""
Margin Curve Analysis Tests
"""

import matplotlib
import numpy as np
import pytest

from clmm_liquidation.analysis.margin_curve import MarginCurveChart, build_price_grid, sample_margin_curve
from clmm_liquidation.core.fixed_point import SCALE
from clmm_liquidation.engine.liquidation_engine import calculate_liquidation_prices

from .scenarios import healthy_y_debt_params, warning_params


class TestPriceGrid:

    def test_grid_bounds_and_order(self):
        grid = build_price_grid(SCALE, 0.5, 2.0, points=50)
        assert grid[0] == SCALE // 2
        assert grid[-1] == 2 * SCALE
        assert grid == sorted(set(grid))
        assert len(grid) == 50

    def test_grid_is_geometric(self):
        grid = np.array(build_price_grid(SCALE, 0.5, 2.0, points=11), dtype=float)
        ratios = grid[1:] / grid[:-1]
        assert np.allclose(ratios, ratios[0], rtol=1e-6)

    def test_invalid_grid(self):
        with pytest.raises(ValueError):
            build_price_grid(0)
        with pytest.raises(ValueError):
            build_price_grid(SCALE, 2.0, 0.5)
        with pytest.raises(ValueError):
            build_price_grid(SCALE, points=1)


class TestMarginCurve:
    """Sampling and charting"""

    def setup_method(self):
        self.params = healthy_y_debt_params()
        self.grid = build_price_grid(self.params.current_price, 0.4, 2.0, points=60)

    def test_curve_columns(self):
        curve = sample_margin_curve(self.params, self.grid)
        assert list(curve.columns) == [
            "price_raw", "price", "total_assets", "weighted_debt_requirement",
            "margin", "margin_ratio", "healthy"
        ]
        assert len(curve) == len(self.grid)

    def test_health_flips_at_lower_boundary(self):
        curve = sample_margin_curve(self.params, self.grid)
        lower = calculate_liquidation_prices(self.params).lower_liquidation_price

        below = curve[curve["price_raw"] < lower]
        above = curve[curve["price_raw"] > lower]
        assert len(below) > 0 and len(above) > 0
        assert not below["healthy"].any(), "Everything below the boundary is liquidatable"
        assert above["healthy"].all(), "Everything above the boundary is healthy"

    def test_margin_matches_values(self):
        curve = sample_margin_curve(self.params, self.grid)
        assert np.allclose(curve["margin"], curve["total_assets"] - curve["weighted_debt_requirement"])
        assert (curve["weighted_debt_requirement"] == 125.0).all()

    def test_chart_written(self, tmp_path):
        params = warning_params()
        result = calculate_liquidation_prices(params)
        curve = sample_margin_curve(params, self.grid)

        path = MarginCurveChart().plot(curve, tmp_path / "charts" / "curve.png", result=result)

        assert path.exists()
        assert path.stat().st_size > 0

    def test_chart_without_result(self, tmp_path):
        curve = sample_margin_curve(self.params, self.grid)
        path = MarginCurveChart().plot(curve, tmp_path / "plain.png")
        assert path.exists()

    def test_module_selects_non_interactive_backend(self):
        assert matplotlib.get_backend().lower() == "agg"
