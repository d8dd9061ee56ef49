"""
test_extract.py - Extraction Boundary Tests

Validates parsing of the AI extraction service's reply text and loading of
saved snapshots from disk, including every failure path.

Usage: python test_extract.py   (or: pytest test_extract.py)
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from extract import (
    MAX_SNAPSHOT_BYTES,
    ExtractionError,
    load_statement_snapshot,
    parse_extraction_response,
)
from normalize import normalize_statement

STATEMENTS_DIR = Path(__file__).resolve().parent / "test_data" / "statements"


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


def test_parse_bare_json() -> None:
    assert parse_extraction_response('{"totalVolume": 100}') == {"totalVolume": 100}


def test_parse_fenced_reply_with_prose() -> None:
    text = (STATEMENTS_DIR / "ai_reply.txt").read_text(encoding="utf-8")
    snapshot = parse_extraction_response(text)
    assert snapshot["merchantName"] == "Greenville Coffee"
    assert snapshot["txns"] == 420


def test_parse_unwraps_data_envelope() -> None:
    assert parse_extraction_response('{"data": {"totalFees": "12.00"}}') == {"totalFees": "12.00"}


def test_parse_failures_raise_extraction_error() -> None:
    for text in (None, "", "   ", "Sorry, I could not read that statement.", "{not json}"):
        with pytest.raises(ExtractionError):
            parse_extraction_response(text)


def test_extraction_error_is_value_error() -> None:
    assert issubclass(ExtractionError, ValueError)


def test_ai_reply_normalizes() -> None:
    text = (STATEMENTS_DIR / "ai_reply.txt").read_text(encoding="utf-8")
    statement = normalize_statement(parse_extraction_response(text))
    assert statement.total_volume == 12600.0
    assert statement.total_interchange == 0.0
    assert statement.transaction_count == 420
    assert statement.average_ticket_size == 30.0
    assert statement.average_ticket_size_estimated is True
    assert abs(statement.per_transaction_rate - 0.948) < 1e-9
    assert statement.current_processing_method.value == "flat"


def test_load_json_snapshot() -> None:
    snapshot = load_statement_snapshot(STATEMENTS_DIR / "card_split.json")
    assert snapshot["merchantName"] == "El Agave Mexican Restaurant"


def test_load_text_snapshot_falls_back_to_reply_parsing() -> None:
    snapshot = load_statement_snapshot(str(STATEMENTS_DIR / "ai_reply.txt"))
    assert snapshot["totalVolume"] == "$12,600.00"


def test_load_bad_paths() -> None:
    with pytest.raises(ValueError):
        load_statement_snapshot(None)
    with pytest.raises(ValueError):
        load_statement_snapshot("  ")
    with pytest.raises(FileNotFoundError):
        load_statement_snapshot(STATEMENTS_DIR / "missing.json")


def test_load_empty_and_oversized_files() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        empty = Path(tmp) / "empty.json"
        empty.write_bytes(b"")
        with pytest.raises(ExtractionError):
            load_statement_snapshot(empty)

        large = Path(tmp) / "large.json"
        large.write_bytes(b" " * (MAX_SNAPSHOT_BYTES + 1))
        with pytest.raises(ExtractionError):
            load_statement_snapshot(large)


def test_load_non_object_snapshot() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        rows = Path(tmp) / "rows.json"
        rows.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(ExtractionError):
            load_statement_snapshot(rows)


TESTS = [
    test_parse_bare_json,
    test_parse_fenced_reply_with_prose,
    test_parse_unwraps_data_envelope,
    test_parse_failures_raise_extraction_error,
    test_extraction_error_is_value_error,
    test_ai_reply_normalizes,
    test_load_json_snapshot,
    test_load_text_snapshot_falls_back_to_reply_parsing,
    test_load_bad_paths,
    test_load_empty_and_oversized_files,
    test_load_non_object_snapshot,
]


def main() -> None:
    passed = 0
    failed = 0

    print(LINE * 42)
    print("  Extraction Boundary Tests")
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
