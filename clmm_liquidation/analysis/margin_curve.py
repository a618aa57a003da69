#!/usr/bin/env python3
"""
Margin Curve Analysis

Samples collateral value and weighted debt requirement across a price grid and
charts them with the solved liquidation boundaries, showing where and how
sharply the account crosses into liquidation.
"""

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from typing import List, Optional

from ..core.fixed_point import SCALE, MIN_PRICE, MAX_PRICE, clamp
from ..core.position import LiquidationParams, LiquidationResult
from ..engine.valuation import MarginEvaluator, calculate_margin_ratio


def build_price_grid(
    current_price: int,
    low_ratio: float = 0.5,
    high_ratio: float = 2.0,
    points: int = 200
) -> List[int]:
    """
    Geometric price grid around current price.

    Args:
        current_price: Snapshot price (1e8)
        low_ratio: Lowest grid price as a multiple of current price
        high_ratio: Highest grid price as a multiple of current price
        points: Number of grid points before de-duplication

    Returns:
        Sorted unique 1e8 prices within [MIN_PRICE, MAX_PRICE]
    """
    if current_price <= 0:
        raise ValueError("current_price must be positive")
    if not 0 < low_ratio < high_ratio:
        raise ValueError("Need 0 < low_ratio < high_ratio")
    if points < 2:
        raise ValueError("Need at least two grid points")

    grid = np.geomspace(current_price * low_ratio, current_price * high_ratio, points)
    prices = {clamp(int(round(p)), MIN_PRICE, MAX_PRICE) for p in grid}
    return sorted(prices)


def sample_margin_curve(params: LiquidationParams, prices: List[int]) -> pd.DataFrame:
    """Evaluate the account at every grid price, one row per price"""
    evaluator = MarginEvaluator(params)
    rows = []
    for price in prices:
        snapshot = evaluator.evaluate(price)
        margin_ratio = calculate_margin_ratio(snapshot.total_assets, snapshot.weighted_debt_requirement)
        rows.append({
            "price_raw": price,
            "price": price / SCALE,
            "total_assets": snapshot.total_assets / SCALE,
            "weighted_debt_requirement": snapshot.weighted_debt_requirement / SCALE,
            "margin": snapshot.margin / SCALE,
            "margin_ratio": margin_ratio / SCALE,
            "healthy": snapshot.is_healthy
        })
    return pd.DataFrame(rows)


class MarginCurveChart:
    """Renders a sampled margin curve with the liquidation boundaries marked"""

    def __init__(self):
        self._setup_styling()

    def _setup_styling(self):
        plt.style.use('default')
        sns.set_palette("husl")

        plt.rcParams.update({
            'figure.figsize': (12, 10),
            'font.size': 11,
            'axes.titlesize': 14,
            'axes.labelsize': 12,
            'legend.fontsize': 10,
            'xtick.labelsize': 10,
            'ytick.labelsize': 10
        })

    def plot(
        self,
        curve: pd.DataFrame,
        output_path: Path,
        result: Optional[LiquidationResult] = None,
        title: str = "Margin Curve"
    ) -> Path:
        """Save a two-panel chart (values, margin ratio) to output_path"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(12, 10), sharex=True)
        fig.suptitle(title, fontsize=16, fontweight='bold')

        # Chart 1: collateral vs requirement
        ax1.plot(curve["price"], curve["total_assets"], linewidth=2, label='Total Assets')
        ax1.plot(curve["price"], curve["weighted_debt_requirement"], linewidth=2,
                 linestyle='--', label='Weighted Debt Requirement')
        ax1.fill_between(curve["price"], curve["total_assets"], curve["weighted_debt_requirement"],
                         where=~curve["healthy"], color='red', alpha=0.15, label='Liquidatable')
        ax1.set_ylabel('Value (quote units)')
        ax1.set_title('Collateral Value vs Debt Requirement')
        ax1.grid(True, alpha=0.3)

        # Chart 2: margin ratio, capped so a zero requirement does not flatten the axis
        ratio = curve["margin_ratio"].clip(upper=5.0)
        ax2.plot(curve["price"], ratio, linewidth=2, color='darkgreen', label='Margin Ratio')
        ax2.axhline(y=1.0, color='red', linestyle='--', alpha=0.7, label='Liquidation Threshold')
        ax2.set_xlabel('Pool Price (Y per X)')
        ax2.set_ylabel('Margin Ratio')
        ax2.set_title('Margin Ratio Across Prices')
        ax2.grid(True, alpha=0.3)

        if result is not None:
            for price, label in self._boundary_markers(result):
                for ax in (ax1, ax2):
                    ax.axvline(x=price, color='black', linestyle=':', alpha=0.8)
                ax2.text(price, ax2.get_ylim()[1] * 0.95, label, rotation=90,
                         ha='right', va='top', fontsize=9)

        ax1.legend()
        ax2.legend()
        plt.tight_layout()
        plt.savefig(output_path, dpi=300, bbox_inches='tight')
        plt.close()

        return output_path

    def _boundary_markers(self, result: LiquidationResult):
        lower, upper = result.liquidation_prices
        markers = []
        if MIN_PRICE < lower < MAX_PRICE:
            markers.append((lower / SCALE, f"lower {lower / SCALE:.4f}"))
        if MIN_PRICE < upper < MAX_PRICE and upper != lower:
            markers.append((upper / SCALE, f"upper {upper / SCALE:.4f}"))
        return markers
