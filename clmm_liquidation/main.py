#!/usr/bin/env python3
"""
CLMM Liquidation Price Engine - Main Entry Point

Evaluates liquidation boundaries for a single position snapshot or scans a
portfolio of snapshots, saving scan output through the results manager.
"""

import sys
import argparse
import json
import logging
import time
from pathlib import Path

from clmm_liquidation.analysis.margin_curve import MarginCurveChart, build_price_grid, sample_margin_curve
from clmm_liquidation.analysis.results_manager import ResultsManager, RunMetadata, make_serializable
from clmm_liquidation.analysis.risk_scanner import RiskScanner, riskiest_positions, summarize
from clmm_liquidation.core.fixed_point import SCALE
from clmm_liquidation.core.serialization import load_params, load_portfolio, params_to_dict, result_to_dict
from clmm_liquidation.engine.config import EngineConfig
from clmm_liquidation.engine.formatting import format_liquidation_result
from clmm_liquidation.engine.liquidation_engine import calculate_liquidation_prices


def main(argv=None):
    """Main entry point with command-line interface"""

    parser = argparse.ArgumentParser(
        description="CLMM Liquidation Price Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single position
  clmm-liquidation --params position.json                 # Print liquidation prices
  clmm-liquidation --params position.json --curve         # Also chart the margin curve
  clmm-liquidation --params position.json --output out.json

  # Portfolio scan (auto-saves results)
  clmm-liquidation --scan portfolio.json --workers 4
  clmm-liquidation --scan portfolio.json --curve --no-save

  # Browse saved results
  clmm-liquidation --list-results my_portfolio
        """
    )

    parser.add_argument('--params', type=str, metavar='FILE',
                        help='Evaluate a single position snapshot (JSON)')

    parser.add_argument('--scan', type=str, metavar='FILE',
                        help='Scan a portfolio of named snapshots (JSON)')

    parser.add_argument('--list-results', type=str, metavar='SCAN',
                        help='List all saved runs for a portfolio scan')

    parser.add_argument('--curve', action='store_true',
                        help='Generate margin curve charts')

    # Solver overrides
    parser.add_argument('--max-iterations', type=int, default=100,
                        help='Newton-Raphson iteration cap per search (default: 100)')

    parser.add_argument('--tolerance', type=int, default=SCALE // 1_000_000,
                        help='Convergence tolerance at 1e8 scale (default: 100)')

    parser.add_argument('--workers', type=int, default=1,
                        help='Worker threads for portfolio scans (default: 1)')

    parser.add_argument('--results-dir', type=str, default='results',
                        help='Base directory for saved runs and charts (default: results)')

    parser.add_argument('--output', type=str,
                        help='Export results to JSON file')

    parser.add_argument('--no-save', action='store_true',
                        help='Do not save scan results to the results directory')

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output (debug logging and tracebacks)')

    args = parser.parse_args(argv)

    if not any([args.params, args.scan, args.list_results]):
        parser.print_help()
        return 1

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = create_engine_config(args)

    try:
        if args.params:
            return run_single_position(args.params, config, args)

        elif args.scan:
            print(f"Running Portfolio Scan: {args.scan}")
            print("=" * 60)
            return run_portfolio_scan(args.scan, config, args)

        elif args.list_results:
            return list_scan_results(args.list_results, args.results_dir)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        print(f"Error: {str(e)}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def create_engine_config(args) -> EngineConfig:
    """Create engine configuration from command-line arguments"""

    config = EngineConfig()

    # Apply command-line overrides
    config.solver.max_iterations = args.max_iterations
    config.solver.tolerance = args.tolerance

    return config


def run_single_position(params_path: str, config: EngineConfig, args) -> int:
    """Evaluate and display one snapshot"""

    params = load_params(params_path)
    result = calculate_liquidation_prices(params, config)

    display_liquidation_result(params.position.position_id, params.current_price, result)

    if args.curve:
        chart_path = Path(args.results_dir) / "charts" / f"margin_curve_{params.position.position_id}.png"
        chart_margin_curve(params, result, chart_path)
        print(f"\nMargin curve chart: {chart_path}")

    if args.output:
        export_results({
            "params": params_to_dict(params),
            "result": result_to_dict(result),
            "formatted": format_liquidation_result(result)
        }, args.output)

    return 0


def run_portfolio_scan(portfolio_path: str, config: EngineConfig, args) -> int:
    """Scan every snapshot in a portfolio file"""

    scan_name, positions = load_portfolio(portfolio_path)
    scanner = RiskScanner(config, max_workers=args.workers)

    start_time = time.time()
    scan = scanner.scan(positions)
    execution_time = time.time() - start_time

    summary = summarize(scan)
    display_scan_summary(scan_name, summary, scan)

    results = {
        "scan_name": scan_name,
        "summary": summary,
        "positions": scan
    }

    if not args.no_save:
        results_manager = ResultsManager(args.results_dir)
        run_dir = results_manager.create_run_directory(scan_name)

        charts = []
        if args.curve:
            # Failed positions have no result to chart
            for label, result in scanner.results.items():
                chart_path = run_dir / "charts" / f"margin_curve_{label}.png"
                charts.append(chart_margin_curve(positions[label], result, chart_path))

        metadata = RunMetadata(
            run_id=run_dir.name,
            scan_name=scan_name,
            timestamp=time.strftime("%Y-%m-%d %H:%M:%S"),
            parameters={
                "source": str(portfolio_path),
                "positions": len(positions),
                "workers": args.workers,
                "max_iterations": config.solver.max_iterations,
                "tolerance": config.solver.tolerance
            },
            execution_time=execution_time
        )
        results_manager.save_results(run_dir, results, metadata)
        results_manager.save_scan_table(run_dir, scan)

        failures = scan[scan["error_kind"].notna()]
        results_manager.save_summary_report(run_dir, {
            "metadata": {
                "scan_name": scan_name,
                "timestamp": metadata.timestamp,
                "execution_time": execution_time
            },
            "key_metrics": summary,
            "riskiest_positions": riskiest_positions(scan, limit=10).to_dict(orient="records"),
            "failures": failures[["label", "error_kind", "error"]].to_dict(orient="records"),
            "charts": charts
        })
        print(f"\n📁 Results saved to: {run_dir}")

    if args.output:
        export_results(results, args.output)

    return 0


def chart_margin_curve(params, result, chart_path: Path) -> Path:
    """Sample the margin curve around current price, widened to show both boundaries"""

    low_ratio, high_ratio = 0.5, 2.0
    lower, upper = result.liquidation_prices
    if 0 < lower < params.current_price:
        low_ratio = min(low_ratio, 0.9 * lower / params.current_price)
    if params.current_price < upper < 10 * params.current_price:
        high_ratio = max(high_ratio, 1.1 * upper / params.current_price)

    prices = build_price_grid(params.current_price, low_ratio, high_ratio, points=200)
    curve = sample_margin_curve(params, prices)
    return MarginCurveChart().plot(curve, chart_path, result=result,
                                   title=f"Margin Curve: {params.position.position_id}")


def display_liquidation_result(position_id: str, current_price: int, result):
    """Display a single liquidation result"""

    formatted = format_liquidation_result(result)
    lower, upper = formatted.liquidation_prices
    distance_low, distance_high = formatted.liquidation_distance

    print(f"Position: {position_id}")
    print("=" * 60)
    print(f"Current price:        {current_price / SCALE:,.6f}")
    print(f"Lower liquidation:    {lower}")
    print(f"Upper liquidation:    {upper}")
    print(f"Margin ratio:         {formatted.current_margin_ratio}")
    print(f"Margin buffer:        {formatted.margin_buffer}")
    print(f"Distance (low/high):  {distance_low} / {distance_high}")
    print(f"Risk level:           {formatted.risk_level.value}")

    breakdown = result.breakdown
    print("\nBreakdown at current price:")
    print(f"  Total assets:               {breakdown.total_assets / SCALE:,.4f}")
    print(f"  Total debts:                {breakdown.total_debts / SCALE:,.4f}")
    print(f"  Weighted debt requirement:  {breakdown.weighted_debt_requirement / SCALE:,.4f}")
    for asset, value in breakdown.asset_values.items():
        print(f"  {asset}: {value / SCALE:,.4f}")


def display_scan_summary(scan_name: str, summary, scan):
    """Display portfolio scan summary"""

    print(f"\nScan Summary: {scan_name}")
    print("-" * 40)
    print(f"Positions:  {summary['total_positions']} ({summary['failed_positions']} failed)")
    print(f"At risk:    {summary['at_risk_positions']}")
    print(f"Safe / Warning / Danger: {summary['safe_positions']} / "
          f"{summary['warning_positions']} / {summary['danger_positions']}")
    if "min_margin_ratio" in summary:
        print(f"Min margin ratio: {summary['min_margin_ratio']:.4f}")

    riskiest = riskiest_positions(scan, limit=5)
    if len(riskiest):
        print("\nRiskiest positions:")
        for _, row in riskiest.iterrows():
            print(f"  • {row['label']}: margin ratio {row['margin_ratio']:.4f} ({row['risk_level']})")


def list_scan_results(scan_name: str, results_dir: str) -> int:
    """List all saved runs for a portfolio scan"""

    results_manager = ResultsManager(results_dir)
    runs = results_manager.list_scan_runs(scan_name)

    if not runs:
        print(f"No saved results found for scan: {scan_name}")
        print("\nAvailable scans:")
        for scan in results_manager.list_all_scans():
            print(f"  • {scan}")
        return 1

    print(f"Saved results for scan: {scan_name}")
    print("=" * (len(scan_name) + 24))

    for run in runs:
        print(f"\n📁 {run['run_id']}")
        print(f"   Timestamp: {run.get('timestamp', 'Unknown')}")
        print(f"   Status: {run.get('status', 'Unknown')}")
        if 'execution_time' in run:
            print(f"   Execution Time: {run['execution_time']:.2f}s")

    return 0


def export_results(results, output_file: str):
    """Export results to JSON file"""

    with open(output_file, 'w') as f:
        json.dump(make_serializable(results), f, indent=2)

    print(f"\nResults exported to: {output_file}")


if __name__ == "__main__":
    sys.exit(main())
