"""
test_integration.py - End-to-End Pipeline Tests

Runs saved snapshots through load -> normalize -> project -> report, and
drives the CLI entry point the way a user would.

Usage: python test_integration.py   (or: pytest test_integration.py)
"""

from __future__ import annotations

import io
import json
import os
import sys
from contextlib import redirect_stdout
from pathlib import Path

import pytest

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from main import main as cli_main
from main import run_comparison, run_pipeline
from models import PricingModel

STATEMENTS_DIR = Path(__file__).resolve().parent / "test_data" / "statements"
CARD_SPLIT = str(STATEMENTS_DIR / "card_split.json")
BUNDLED = str(STATEMENTS_DIR / "bundled_with_amex.json")

TIERED_PARAMS = {
    "checkCardRatePercent": 1.5,
    "qualifiedRatePercent": 2.0,
    "midQualifiedRatePercent": 2.5,
    "nonQualifiedRatePercent": 3.5,
    "perTransactionFee": 0.10,
}


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


def _run_cli(argv: list[str]) -> str:
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        cli_main(argv)
    return buffer.getvalue()


def test_pipeline_flat_on_card_split() -> None:
    report = run_pipeline(CARD_SPLIT, "flat", {"ratePercent": 2.9, "perTransactionFee": 0.30})
    assert report.statement.merchant_name == "El Agave Mexican Restaurant"
    assert _close(report.projection.total_cost, 1783.3)
    assert _close(report.monthly_savings, 1450 - 1783.3)
    assert _close(report.annual_profit, report.projection.profit * 12)


def test_pipeline_tiered_on_bundled_statement() -> None:
    report = run_pipeline(BUNDLED, "tiered", TIERED_PARAMS)
    tiers = report.projection.tier_volumes
    assert _close(tiers["checkCard"], 32000.0)
    assert _close(tiers["qualified"], 24000.0)
    assert _close(tiers["midQualified"], 16000.0)
    assert _close(tiers["nonQualified"], 8000.0 + 20000.0)
    assert report.projection.estimated_transactions == 2222


def test_pipeline_weighted_rate_on_bundled_statement() -> None:
    report = run_pipeline(BUNDLED, "interchange_plus", {"markupPercent": 0.2, "perTransactionFee": 0.08})
    expected = (80000 * 0.026 + 20000 * 0.033) / 100000 * 100
    assert _close(report.weighted_rate_percent, expected)
    assert _close(report.current_effective_rate_percent, 2.9)


def test_pipeline_every_model_on_ai_reply() -> None:
    path = str(STATEMENTS_DIR / "ai_reply.txt")
    for model in PricingModel:
        report = run_pipeline(path, model.value, TIERED_PARAMS | {"ratePercent": 3.0, "markupPercent": 0.3})
        assert report.projection.model is model
        assert report.projection.total_cost >= 0


def test_pipeline_unknown_model_raises() -> None:
    with pytest.raises(ValueError):
        run_pipeline(CARD_SPLIT, "surcharge", {})


def test_comparison_lists_every_model() -> None:
    text = run_comparison(CARD_SPLIT, {"ratePercent": 2.9, "markupPercent": 0.25, "perTransactionFee": 0.1})
    for name in ("Interchange Plus", "Flat", "Tiered", "Dual Pricing"):
        assert name in text, name


def test_cli_json_output() -> None:
    output = _run_cli(["-s", CARD_SPLIT, "-m", "dual_pricing", "--rate", "3.5", "--json"])
    payload = json.loads(output)
    assert payload["status"] == "ok"
    assert payload["projection"]["model"] == "dual_pricing"
    assert payload["projection"]["effectiveRatePercent"] == 3.5


def test_cli_text_output() -> None:
    output = _run_cli(["-s", BUNDLED, "-m", "interchange_plus", "--markup", "0.25", "--per-txn-fee", "0.10"])
    assert "Interchange Plus Projection" in output
    assert "Joe's Pizza Grill" in output


def test_cli_errors_exit_with_status_one() -> None:
    with pytest.raises(SystemExit) as missing:
        _run_cli(["-s", str(STATEMENTS_DIR / "missing.json")])
    assert missing.value.code == 1

    with pytest.raises(SystemExit) as unknown:
        _run_cli(["-s", CARD_SPLIT, "-m", "surcharge"])
    assert unknown.value.code == 1


TESTS = [
    test_pipeline_flat_on_card_split,
    test_pipeline_tiered_on_bundled_statement,
    test_pipeline_weighted_rate_on_bundled_statement,
    test_pipeline_every_model_on_ai_reply,
    test_pipeline_unknown_model_raises,
    test_comparison_lists_every_model,
    test_cli_json_output,
    test_cli_text_output,
    test_cli_errors_exit_with_status_one,
]


def main() -> None:
    passed = 0
    failed = 0

    print(LINE * 42)
    print("  Integration Tests")
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
