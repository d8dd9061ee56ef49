"""
test_report.py - Rate Aggregation and Report Tests

Validation for:
- weighted_rate / current_effective_rate / card_volume_shares
- build_report savings and annualized profit
- revenue_metrics (MRR -> ARR, ARPU)

Usage: python test_report.py   (or: pytest test_report.py)
"""

from __future__ import annotations

import os
import sys

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import StatementData
from normalize import normalize_statement
from pricing import project
from rates import card_volume_shares, current_effective_rate, weighted_rate
from report import build_report, revenue_metrics


def _configure_output_symbols() -> tuple[str, str, str]:
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except Exception:
        pass

    try:
        "✓✗═".encode(sys.stdout.encoding or "utf-8")
        return "✓", "✗", "═"
    except Exception:
        return "[OK]", "[FAIL]", "="


PASS, FAIL, LINE = _configure_output_symbols()


def _close(actual: float, expected: float, tolerance: float = 1e-6) -> bool:
    return abs(actual - expected) <= tolerance


def _two_card_statement() -> StatementData:
    return normalize_statement(
        {
            "totalVolume": 2000,
            "totalFees": 50,
            "cardBreakdown": {
                "visa": {"volume": 1000, "rate": 0.02},
                "mastercard": {"volume": 1000, "rate": 0.03},
            },
        }
    )


def test_weighted_rate() -> None:
    assert _close(weighted_rate(_two_card_statement()), 2.5)


def test_current_effective_rate() -> None:
    assert _close(current_effective_rate(_two_card_statement()), 2.5)


def test_card_volume_shares() -> None:
    shares = card_volume_shares(_two_card_statement())
    assert _close(shares["visa"], 50.0)
    assert _close(shares["mastercard"], 50.0)


def test_rates_are_zero_without_volume() -> None:
    statement = normalize_statement({"totalFees": 50, "cardBreakdown": {"visa": {"volume": 0, "rate": 0.02}}})
    assert weighted_rate(statement) == 0.0
    assert current_effective_rate(statement) == 0.0
    assert card_volume_shares(statement) == {"visa": 0.0}


def test_build_report_savings_and_profit() -> None:
    statement = normalize_statement({"totalVolume": 50000, "totalFees": 1450})
    projection = project(statement, "flat", {"ratePercent": 2.9, "perTransactionFee": 0.30})
    report = build_report(statement, projection)

    assert report.current_cost == 1450.0
    assert _close(report.monthly_savings, -333.3)
    assert _close(report.annual_savings, -3999.6)
    assert report.saves_money is False
    assert _close(report.monthly_profit, projection.profit)
    assert _close(report.annual_profit, projection.profit * 12)
    assert _close(report.current_effective_rate_percent, 2.9)


def test_build_report_when_merchant_saves() -> None:
    statement = normalize_statement({"totalVolume": 50000, "totalInterchange": 900, "totalFees": 1450})
    projection = project(statement, "interchange_plus", {"markupPercent": 0.25, "perTransactionFee": 0.10})
    report = build_report(statement, projection)
    assert _close(report.monthly_savings, 1450 - 1136.1)
    assert report.saves_money is True


def test_revenue_metrics() -> None:
    metrics = revenue_metrics("1,000", 4)
    assert metrics.mrr == 1000.0
    assert metrics.arr == 12000.0
    assert metrics.customers == 4
    assert metrics.arpu == 250.0


def test_revenue_metrics_without_customers() -> None:
    metrics = revenue_metrics(500, "0")
    assert metrics.arr == 6000.0
    assert metrics.arpu == 0.0

    blank = revenue_metrics(None, None)
    assert blank.mrr == 0.0
    assert blank.customers == 0


TESTS = [
    test_weighted_rate,
    test_current_effective_rate,
    test_card_volume_shares,
    test_rates_are_zero_without_volume,
    test_build_report_savings_and_profit,
    test_build_report_when_merchant_saves,
    test_revenue_metrics,
    test_revenue_metrics_without_customers,
]


def main() -> None:
    passed = 0
    failed = 0

    print(LINE * 42)
    print("  Rate and Report Tests")
    print(LINE * 42)

    for test in TESTS:
        try:
            test()
        except AssertionError as exc:
            print(f"    {FAIL} {test.__name__} {exc}")
            failed += 1
        else:
            print(f"    {PASS} {test.__name__}")
            passed += 1

    print(f"\n{LINE * 42}")
    print(f"  Results: {passed}/{passed + failed} passed")
    print(f"{LINE * 42}")
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
