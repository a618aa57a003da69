#!/usr/bin/env python3
"""
Portfolio Risk Scanner

Runs the liquidation engine over a set of named position snapshots and
collects the outcome into one DataFrame. Snapshots are independent, so they
can be fanned out over a thread pool.
"""

import concurrent.futures
import threading
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from ..core.errors import LiquidationError
from ..core.fixed_point import SCALE, MIN_PRICE, MAX_PRICE
from ..core.position import LiquidationParams, LiquidationResult
from ..engine.config import EngineConfig
from ..engine.formatting import RiskLevel, classify_risk
from ..engine.liquidation_engine import calculate_liquidation_prices

SCAN_COLUMNS = [
    "label", "position_id", "current_price", "lower_price", "upper_price",
    "has_lower", "has_upper", "margin_ratio", "margin_buffer",
    "distance_low", "distance_high", "total_assets", "total_debts",
    "weighted_debt_requirement", "is_at_risk", "risk_level", "error_kind", "error"
]


class RiskScanner:
    """Evaluates liquidation boundaries for many positions"""

    def __init__(self, config: EngineConfig = None, max_workers: int = 1, verbose: bool = True):
        self.config = config or EngineConfig()
        self.max_workers = max(1, max_workers)
        self.verbose = verbose
        self.print_lock = threading.Lock()

        # Engine results from the last scan, keyed by label (failed positions omitted)
        self.results: Dict[str, LiquidationResult] = {}

    def evaluate_position(
        self,
        label: str,
        params: LiquidationParams
    ) -> Tuple[Dict[str, Any], Optional[LiquidationResult]]:
        """One scan row and its engine result; engine errors are recorded on the row instead of raised"""
        row = {column: np.nan for column in SCAN_COLUMNS}
        row.update({
            "label": label,
            "position_id": params.position.position_id,
            "current_price": params.current_price / SCALE,
            "error_kind": None,
            "error": None
        })

        try:
            result = calculate_liquidation_prices(params, self.config)
        except LiquidationError as e:
            row.update({
                "has_lower": False,
                "has_upper": False,
                "is_at_risk": True,
                "risk_level": None,
                "error_kind": e.kind.value,
                "error": str(e)
            })
            return row, None

        lower, upper = result.liquidation_prices
        breakdown = result.breakdown
        row.update({
            "lower_price": lower / SCALE,
            "upper_price": upper / SCALE,
            "has_lower": lower > MIN_PRICE,
            "has_upper": upper < MAX_PRICE,
            "margin_ratio": result.current_margin_ratio / SCALE,
            "margin_buffer": result.margin_buffer / SCALE,
            "distance_low": result.liquidation_distance.low / SCALE,
            "distance_high": result.liquidation_distance.high / SCALE,
            "total_assets": breakdown.total_assets / SCALE,
            "total_debts": breakdown.total_debts / SCALE,
            "weighted_debt_requirement": breakdown.weighted_debt_requirement / SCALE,
            "is_at_risk": result.is_at_risk,
            "risk_level": classify_risk(result).value
        })
        return row, result

    def scan(self, positions: Dict[str, LiquidationParams]) -> pd.DataFrame:
        """
        Evaluate every position.

        Args:
            positions: {label: LiquidationParams}

        Returns:
            DataFrame with one row per position, in input order
        """
        labels = list(positions)
        total = len(labels)
        if self.verbose:
            print(f"Scanning {total} positions with {self.max_workers} worker(s)")

        rows: Dict[str, Dict[str, Any]] = {}
        results: Dict[str, LiquidationResult] = {}
        if self.max_workers == 1:
            for completed, label in enumerate(labels, start=1):
                rows[label], result = self.evaluate_position(label, positions[label])
                if result is not None:
                    results[label] = result
                self._report_progress(completed, total, rows[label])
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_label = {
                    executor.submit(self.evaluate_position, label, positions[label]): label
                    for label in labels
                }
                completed = 0
                for future in concurrent.futures.as_completed(future_to_label):
                    completed += 1
                    label = future_to_label[future]
                    rows[label], result = future.result()
                    if result is not None:
                        results[label] = result
                    self._report_progress(completed, total, rows[label])

        self.results = {label: results[label] for label in labels if label in results}
        return pd.DataFrame([rows[label] for label in labels], columns=SCAN_COLUMNS)

    def _report_progress(self, completed: int, total: int, row: Dict[str, Any]):
        if not self.verbose:
            return
        with self.print_lock:
            if row["error_kind"] is not None:
                print(f"⚠️ {row['label']}: {row['error']}")
            elif completed % 10 == 0 or completed == total:
                print(f"⏳ Progress: {completed}/{total} positions evaluated")


def summarize(scan: pd.DataFrame) -> Dict[str, Any]:
    """Portfolio-level metrics for reports"""
    evaluated = scan[scan["error_kind"].isna()]
    risk_counts = evaluated["risk_level"].value_counts()

    summary = {
        "total_positions": int(len(scan)),
        "evaluated_positions": int(len(evaluated)),
        "failed_positions": int(len(scan) - len(evaluated)),
        "at_risk_positions": int(evaluated["is_at_risk"].astype(bool).sum()),
    }
    for level in RiskLevel:
        summary[f"{level.value.lower()}_positions"] = int(risk_counts.get(level.value, 0))

    if len(evaluated):
        summary["min_margin_ratio"] = float(evaluated["margin_ratio"].min())
        summary["median_margin_ratio"] = float(evaluated["margin_ratio"].median())
        lower_bounded = evaluated[evaluated["has_lower"].astype(bool)]
        if len(lower_bounded):
            summary["min_distance_low_percentage"] = float(lower_bounded["distance_low"].min())
        upper_bounded = evaluated[evaluated["has_upper"].astype(bool)]
        if len(upper_bounded):
            summary["min_distance_high_percentage"] = float(upper_bounded["distance_high"].min())

    return summary


def riskiest_positions(scan: pd.DataFrame, limit: Optional[int] = 10) -> pd.DataFrame:
    """Evaluated positions ordered by margin ratio, lowest first"""
    evaluated = scan[scan["error_kind"].isna()]
    ordered = evaluated.sort_values("margin_ratio", kind="mergesort")
    return ordered.head(limit) if limit is not None else ordered
