#!/usr/bin/env python3
"""
Billback Dispute Analyzer
=========================

Reconciles billback rebate claims against PPM rebate agreements for one
market, brand + pack size and month.

Usage:
    # List the markets, brands and years found in the inputs
    python analyze_disputes.py --billback bb.xlsx --item-ref items.xlsx \\
        --ppm ppm.xlsx --states states.xlsx --list-options

    # Run an analysis
    python analyze_disputes.py --billback bb.xlsx --item-ref items.xlsx \\
        --ppm ppm.xlsx --states states.xlsx \\
        --market FL --brand "ACME LAGER 12PK" --year 2024 --month March

Examples:
    # Force billback row 12 to match PPM row 40, then export to Excel
    python analyze_disputes.py ... --match 12:40 --export

    # Looser variance tolerance
    python analyze_disputes.py ... --tolerance 0.05
"""

import sys
import argparse
from pathlib import Path

# Add current directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from dispute_engine.config import default_config, config_from_yaml
from dispute_engine.report_generator import DisputeReportGenerator
from dispute_engine.session import DisputeSession


def parse_match(value: str):
    """Parse a BILLBACK_ROW:PPM_ROW pair."""
    parts = value.split(':')
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Expected BILLBACK_ROW:PPM_ROW, got {value!r}")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Row ids must be integers: {value!r}") from None


def list_options(session: DisputeSession):
    """Print the selectable filter values."""
    options = session.filter_options or {}

    print("\nAvailable Filter Options:")
    print("=" * 40)
    print(f"Markets: {', '.join(options.get('markets', [])) or 'None'}")
    print(f"Years:   {', '.join(str(y) for y in options.get('years', [])) or 'None'}")
    print(f"Months:  {', '.join(options.get('months', []))}")
    print("\nBrand + Pack Sizes:")
    for brand in options.get('brands_pk', []):
        print(f"  {brand}")


def print_rejection(response: dict):
    print(f"\nERROR [{response.get('code', '?')}]: {response.get('message', 'Unknown error')}")


def run_analysis(session: DisputeSession, args) -> int:
    """Analyze one selection, apply manual matches, print and optionally export."""
    response = session.analyze(
        {"market": args.market, "brand": args.brand, "year": args.year, "month": args.month},
        acknowledge_empty=args.allow_empty,
    )
    if response["status"] != "success":
        print_rejection(response)
        if response.get("code") == "FLT001":
            print(f"  Billback rows: {response.get('billback_count', 0)}, "
                  f"PPM rows: {response.get('ppm_count', 0)}")
            print("  Use --allow-empty to reconcile anyway.")
        return 1

    for billback_id, ppm_id in args.match or []:
        response = session.create_manual_match(billback_id, ppm_id)
        if response["status"] != "success":
            print_rejection(response)
            return 1

    summary = session.analysis_summary()
    generator = DisputeReportGenerator(config=session.config)
    print(generator.generate_quick_summary(summary))

    if args.export:
        result = session.export()
        print(f"Report saved to: {result['path']}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Reconcile billback rebate claims against PPM rebate agreements",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument('--billback', help='Billback claims file (xlsx or csv)')
    parser.add_argument('--item-ref', help='Item reference file (xlsx or csv)')
    parser.add_argument('--ppm', help='PPM rebate agreements file (xlsx or csv)')
    parser.add_argument('--states', help='State reference file (xlsx or csv)')

    parser.add_argument('--market', help='Market code (Custom Abbreviation, e.g. "FL")')
    parser.add_argument('--brand', help='Brand + pack size (e.g. "ACME LAGER 12PK")')
    parser.add_argument('--year', help='Year (e.g. 2024)')
    parser.add_argument('--month', help='Month name (e.g. "March")')

    parser.add_argument(
        '--list-options',
        action='store_true',
        help='List markets, brands and years found in the inputs'
    )

    parser.add_argument(
        '--match',
        type=parse_match,
        action='append',
        metavar='B:P',
        help='Force billback row B to match PPM row P (repeatable)'
    )

    parser.add_argument(
        '--allow-empty',
        action='store_true',
        help='Reconcile even when the filters leave one side empty'
    )

    parser.add_argument(
        '--export',
        action='store_true',
        help='Write the Excel report to the output folder'
    )

    parser.add_argument(
        '--tolerance',
        type=float,
        help='Variance tolerance for a perfect match (default: 0.01)'
    )

    parser.add_argument(
        '--settings',
        help='Path to a settings.yaml file'
    )

    parser.add_argument(
        '--output',
        help='Output folder for reports'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Print progress lines'
    )

    args = parser.parse_args()

    sources = {
        "billback": args.billback,
        "item_ref": args.item_ref,
        "ppm": args.ppm,
        "states": args.states,
    }
    if not all(sources.values()):
        parser.print_help()
        print("\n\nAll four input files are required: --billback --item-ref --ppm --states")
        return 1

    config = config_from_yaml(Path(args.settings)) if args.settings else default_config
    config = config.with_overrides(
        output_path=args.output,
        variance_tolerance=args.tolerance,
        verbose=args.verbose or None,
    )

    missing = [path for path in sources.values() if not Path(path).exists()]
    if missing:
        print(f"\nERROR: File not found: {', '.join(missing)}")
        return 1

    session = DisputeSession(config=config)
    response = session.load(sources)
    if response["status"] != "success":
        print_rejection(response)
        return 1

    if args.list_options:
        list_options(session)
        return 0

    if not all([args.market, args.brand, args.year, args.month]):
        print("\nERROR: --market, --brand, --year and --month are required (see --list-options)")
        return 1

    return run_analysis(session, args)


if __name__ == "__main__":
    sys.exit(main())
