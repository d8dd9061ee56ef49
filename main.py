"""
main.py - CLI orchestration for the statement pricing engine.

This module is orchestration-only:
1. load snapshot
2. normalize
3. project
4. explain
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any

from explain import format_comparison, format_projection, format_projection_json
from extract import load_statement_snapshot
from logging_config import get_logger, setup_logging
from models import PricingModel, ProjectionReport
from normalize import normalize_statement
from pricing import project, project_all
from report import build_report

logger = get_logger("pricing-engine")


def _configure_output() -> None:
    """Make sure box-drawing and bullet characters survive legacy consoles."""
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except Exception:
        pass


def params_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Collect every pricing parameter given on the command line.

    Each model only reads the fields it knows, so one mapping serves all.
    """
    return {
        "markupPercent": args.markup,
        "ratePercent": args.rate,
        "perTransactionFee": args.per_txn_fee,
        "checkCardRatePercent": args.check_card_rate,
        "qualifiedRatePercent": args.qualified_rate,
        "midQualifiedRatePercent": args.mid_qualified_rate,
        "nonQualifiedRatePercent": args.non_qualified_rate,
    }


def run_pipeline(statement_path: str, model: str, params: dict[str, Any]) -> ProjectionReport:
    """Run load -> normalize -> project -> report for one statement snapshot."""
    pipeline_start = time.time()
    logger.info("pipeline_start | statement=%s | model=%s", statement_path, model)

    stage_start = time.time()
    raw = load_statement_snapshot(statement_path)
    statement = normalize_statement(raw)
    logger.info(
        "pipeline_stage | stage=1/2 | name=normalize | status=complete | volume=%.2f | cards=%s | duration_s=%.3f",
        statement.total_volume,
        len(statement.card_breakdown),
        time.time() - stage_start,
    )

    stage_start = time.time()
    projection = project(statement, model, params)
    if projection is None:
        raise ValueError(
            f"Unknown pricing model: {model!r}. "
            f"Choose one of: {', '.join(item.value for item in PricingModel)}"
        )
    report = build_report(statement, projection)
    logger.info(
        "pipeline_stage | stage=2/2 | name=project | status=complete | total_cost=%.2f | profit=%.2f | duration_s=%.3f",
        projection.total_cost,
        projection.profit,
        time.time() - stage_start,
    )

    logger.info("pipeline_complete | total_duration_s=%.3f", time.time() - pipeline_start)
    return report


def run_comparison(statement_path: str, params: dict[str, Any]) -> str:
    """Project every pricing model with the same parameters."""
    statement = normalize_statement(load_statement_snapshot(statement_path))
    results = project_all(statement, {model: params for model in PricingModel})
    return format_comparison(results, statement.total_fees)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricing-engine",
        description=(
            "Statement Pricing Engine\n"
            "Projects a merchant's processing cost and the reseller's "
            "profit under a new pricing model."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s statement.json -m flat --rate 2.9 --per-txn-fee 0.30\n"
            "  %(prog)s -s statement.json -m interchange_plus --markup 0.25 --per-txn-fee 0.10\n"
            "  %(prog)s -s statement.json -m tiered --check-card-rate 1.5 --qualified-rate 2.0 \\\n"
            "      --mid-qualified-rate 2.5 --non-qualified-rate 3.5 --per-txn-fee 0.10\n"
            "  %(prog)s -s statement.json --compare --rate 2.9 --markup 0.25\n"
        ),
    )
    parser.add_argument(
        "--statement",
        "-s",
        type=str,
        required=True,
        help="Path to the extraction snapshot JSON (required)",
    )
    parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=PricingModel.INTERCHANGE_PLUS.value,
        help="Pricing model: interchange_plus, flat, tiered, dual_pricing",
    )
    parser.add_argument("--markup", type=str, default=None, help="Interchange-plus markup (%%)")
    parser.add_argument("--rate", type=str, default=None, help="Flat / dual pricing rate (%%)")
    parser.add_argument("--per-txn-fee", type=str, default=None, help="Per-transaction fee ($)")
    parser.add_argument("--check-card-rate", type=str, default=None, help="Tiered check card rate (%%)")
    parser.add_argument("--qualified-rate", type=str, default=None, help="Tiered qualified rate (%%)")
    parser.add_argument("--mid-qualified-rate", type=str, default=None, help="Tiered mid-qualified rate (%%)")
    parser.add_argument("--non-qualified-rate", type=str, default=None, help="Tiered non-qualified rate (%%)")
    parser.add_argument(
        "--compare",
        action="store_true",
        help="Project every pricing model with the given parameters",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON instead of formatted text",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG-level) logging",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs as JSON lines (for production/log aggregation)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the pricing engine."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.log_json,
    )
    _configure_output()

    params = params_from_args(args)
    try:
        if args.compare:
            logger.info("cli_mode | mode=compare | statement=%s", args.statement)
            print(run_comparison(args.statement, params))
            return

        logger.info("cli_mode | mode=single | statement=%s | model=%s", args.statement, args.model)
        report = run_pipeline(args.statement, args.model, params)
        if args.json:
            print(json.dumps(format_projection_json(report), indent=2))
        else:
            print(format_projection(report))
    except FileNotFoundError as exc:
        logger.error("cli_error | type=FileNotFoundError | error=%s", exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error("cli_error | type=%s | error=%s", type(exc).__name__, exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
        raise SystemExit(130)
    except Exception as exc:
        logger.error(
            "cli_error | type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        print(f"\nUnexpected error: {exc}")
        print("Run with --verbose for full traceback.")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
