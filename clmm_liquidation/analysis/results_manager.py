#!/usr/bin/env python3
"""
Results Management System

Stores portfolio scan output in numbered run directories:
results/<scan_name>/run_NNN_<timestamp>/{results.json, metadata.json,
positions.csv, summary.md, charts/}
"""

import json
import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd


@dataclass
class RunMetadata:
    """Metadata for a single scan run"""
    run_id: str
    scan_name: str
    timestamp: str
    parameters: Dict[str, Any]
    execution_time: float
    status: str = "completed"


class ResultsManager:
    """Handles automatic results storage and versioning"""

    def __init__(self, base_results_dir: str = "results"):
        self.base_results_dir = Path(base_results_dir)
        self._lock = threading.Lock()
        self.base_results_dir.mkdir(parents=True, exist_ok=True)

    def create_run_directory(self, scan_name: str) -> Path:
        """
        Create a new run directory with sequential numbering

        Args:
            scan_name: Name of the portfolio being scanned

        Returns:
            Path to the created run directory
        """
        with self._lock:
            scan_dir = self.base_results_dir / scan_name
            scan_dir.mkdir(exist_ok=True)

            run_number = self._get_next_run_number(scan_dir)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

            run_dir = scan_dir / f"run_{run_number:03d}_{timestamp}"
            run_dir.mkdir(exist_ok=True)
            (run_dir / "charts").mkdir(exist_ok=True)

            return run_dir

    def _get_next_run_number(self, scan_dir: Path) -> int:
        """Get the next sequential run number for a scan"""
        run_numbers = []
        for run_dir in scan_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue
            # Parse run_XXX_timestamp format
            parts = run_dir.name.split("_")
            try:
                run_numbers.append(int(parts[1]))
            except (ValueError, IndexError):
                continue

        return max(run_numbers) + 1 if run_numbers else 1

    def save_results(self, run_dir: Path, results: Dict[str, Any], metadata: RunMetadata) -> Path:
        """
        Save scan results and metadata to the run directory

        Returns:
            Path to the saved results file
        """
        results_file = run_dir / "results.json"
        with open(results_file, 'w') as f:
            json.dump(self._make_serializable(results), f, indent=2)

        metadata_file = run_dir / "metadata.json"
        with open(metadata_file, 'w') as f:
            json.dump(self._make_serializable(asdict(metadata)), f, indent=2)

        return results_file

    def save_scan_table(self, run_dir: Path, scan: pd.DataFrame) -> Path:
        """Save the per-position scan table as CSV"""
        table_file = run_dir / "positions.csv"
        scan.to_csv(table_file, index=False)
        return table_file

    def save_summary_report(self, run_dir: Path, summary: Dict[str, Any]) -> Path:
        """Save a markdown summary report"""
        summary_file = run_dir / "summary.md"
        with open(summary_file, 'w') as f:
            f.write(self._generate_markdown_summary(summary))
        return summary_file

    def _generate_markdown_summary(self, summary: Dict[str, Any]) -> str:
        md_content = ["# Liquidation Risk Scan Summary\n"]

        if "metadata" in summary:
            metadata = summary["metadata"]
            md_content.append("## Run Information")
            md_content.append(f"- **Scan**: {metadata.get('scan_name', 'Unknown')}")
            md_content.append(f"- **Timestamp**: {metadata.get('timestamp', 'Unknown')}")
            md_content.append(f"- **Execution Time**: {metadata.get('execution_time', 0):.2f}s")
            md_content.append("")

        if "key_metrics" in summary:
            md_content.append("## Key Metrics")
            for key, value in summary["key_metrics"].items():
                name = key.replace('_', ' ').title()
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    md_content.append(f"- **{name}**: {value}")
                elif isinstance(value, int):
                    md_content.append(f"- **{name}**: {value:,}")
                elif key.endswith("_percentage"):
                    md_content.append(f"- **{name}**: {value:.2%}")
                else:
                    md_content.append(f"- **{name}**: {value:.4f}")
            md_content.append("")

        if summary.get("riskiest_positions"):
            md_content.append("## Riskiest Positions")
            md_content.append("| Position | Margin Ratio | Lower | Upper | Risk |")
            md_content.append("|---|---|---|---|---|")
            for row in summary["riskiest_positions"]:
                lower = f"{row['lower_price']:.6f}" if row.get("has_lower") else "none"
                upper = f"{row['upper_price']:.6f}" if row.get("has_upper") else "none"
                md_content.append(
                    f"| {row['label']} | {row['margin_ratio']:.4f} | {lower} | {upper} | {row['risk_level']} |"
                )
            md_content.append("")

        if summary.get("failures"):
            md_content.append("## Failed Positions")
            for failure in summary["failures"]:
                md_content.append(f"- **{failure['label']}** ({failure['error_kind']}): {failure['error']}")
            md_content.append("")

        if summary.get("charts"):
            md_content.append("## Generated Charts")
            for chart in summary["charts"]:
                md_content.append(f"- `charts/{Path(chart).name}`")

        return "\n".join(md_content)

    def list_scan_runs(self, scan_name: str) -> List[Dict[str, Any]]:
        """List all runs for a specific scan"""
        scan_dir = self.base_results_dir / scan_name
        if not scan_dir.exists():
            return []

        runs = []
        for run_dir in scan_dir.iterdir():
            if not run_dir.is_dir() or not run_dir.name.startswith("run_"):
                continue

            entry = {"run_id": run_dir.name, "path": str(run_dir), "scan_name": scan_name}
            metadata = self.load_metadata(run_dir)
            if metadata is not None:
                entry.update(asdict(metadata))
                entry["run_id"] = run_dir.name
            runs.append(entry)

        runs.sort(key=lambda x: x["run_id"])
        return runs

    def list_all_scans(self) -> List[str]:
        """List all scan directories"""
        return sorted(
            item.name for item in self.base_results_dir.iterdir()
            if item.is_dir() and not item.name.startswith('.')
        )

    def load_results(self, run_path: Path) -> Optional[Dict[str, Any]]:
        """Load results from a run directory"""
        results_file = Path(run_path) / "results.json"
        if not results_file.exists():
            return None

        try:
            with open(results_file, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError:
            return None

    def load_metadata(self, run_path: Path) -> Optional[RunMetadata]:
        """Load metadata from a run directory"""
        metadata_file = Path(run_path) / "metadata.json"
        if not metadata_file.exists():
            return None

        try:
            with open(metadata_file, 'r') as f:
                return RunMetadata(**json.load(f))
        except (json.JSONDecodeError, TypeError):
            return None

    def _make_serializable(self, obj: Any) -> Any:
        return make_serializable(obj)


def make_serializable(obj: Any) -> Any:
    """Convert objects to JSON-serializable format"""
    if isinstance(obj, pd.DataFrame):
        return make_serializable(obj.to_dict(orient="records"))
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        obj = obj.item()
    if isinstance(obj, float) and np.isnan(obj):
        return None
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, dict):
        return {
            (k.value if isinstance(k, Enum) else str(k)): make_serializable(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [make_serializable(item) for item in obj]
    if hasattr(obj, '__dict__'):  # Custom objects
        return make_serializable(obj.__dict__)
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return str(obj)
