"""
Command-line position sizing.

Usage (from repo root):
    python tools/calculate.py --funds 10000 --r 2 --ratio 2 --lot 1 --leverage 10 --price 100

Use --json to dump the raw outcome instead of a formatted table.
Liquidation factors are read via backend.core.config.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.core.config import get_settings  # noqa: E402
from backend.core.logging import init_logging  # noqa: E402
from backend.risk.calculator import CalculationOutcome, InputUpdate, PositionCalculator  # noqa: E402
from backend.risk.formatting import format_results  # noqa: E402

SECTIONS = (
    ("Position", ("open_margin", "actual_leverage", "open_quantity")),
    (
        "Long",
        (
            "long_liquidation_space",
            "long_profit_space",
            "long_loss_space",
            "long_profit_price",
            "long_loss_price",
            "long_profit_amount",
            "long_loss_amount",
        ),
    ),
    (
        "Short",
        (
            "short_liquidation_space",
            "short_profit_space",
            "short_loss_space",
            "short_profit_price",
            "short_loss_price",
            "short_profit_amount",
            "short_loss_amount",
        ),
    ),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Size a position and derive long/short price levels.")
    parser.add_argument("--funds", dest="total_funds", type=float, required=True, help="Account capital.")
    parser.add_argument("--r", dest="r_value", type=float, required=True, help="Risk per trade, percent (0-100].")
    parser.add_argument("--ratio", dest="profit_loss_ratio", type=float, required=True, help="Reward multiple N in 1:N.")
    parser.add_argument("--lot", dest="lot_definition", type=float, default=1.0, help="Units per lot. Defaults to 1.")
    parser.add_argument("--leverage", dest="nominal_leverage", type=float, required=True, help="Broker leverage.")
    parser.add_argument("--price", dest="open_price", type=float, required=True, help="Entry price.")
    parser.add_argument("--json", action="store_true", help="Print the outcome as JSON.")
    return parser


def _print_table(outcome: CalculationOutcome) -> None:
    display = format_results(outcome.results)
    for title, names in SECTIONS:
        print(f"\n{title}")
        for name in names:
            print(f"  {name:<24} {display[name]:>18}")
    for warning in outcome.warnings:
        print(f"warning: {warning}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    init_logging("WARNING")

    calculator = PositionCalculator(
        long_liquidation_factor=settings.long_liquidation_factor,
        short_liquidation_factor=settings.short_liquidation_factor,
    )
    calculator.update_inputs(
        InputUpdate(
            total_funds=args.total_funds,
            r_value=args.r_value,
            profit_loss_ratio=args.profit_loss_ratio,
            lot_definition=args.lot_definition,
            nominal_leverage=args.nominal_leverage,
            open_price=args.open_price,
        )
    )
    outcome = calculator.calculate()

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2, ensure_ascii=False))
    elif outcome.success:
        _print_table(outcome)
    else:
        for error in outcome.errors:
            print(error, file=sys.stderr)
    return 0 if outcome.success else 1


if __name__ == "__main__":
    sys.exit(main())
