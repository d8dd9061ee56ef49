"""
test_logging_config.py - Log Setup and Fallback Tests

Usage: python test_logging_config.py   (or: pytest test_logging_config.py)
"""

from __future__ import annotations

import logging
import os
import sys

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from logging_config import ENV_DEBUG, ENV_LOG_JSON, env_flag, graceful, setup_logging, setup_logging_from_env
from models import StatementData
from normalize import normalize_statement


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


class _Env:
    """Temporarily set environment variables, restoring them afterwards."""

    def __init__(self, **values: str) -> None:
        self.values = values
        self.saved: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for name, value in self.values.items():
            self.saved[name] = os.environ.get(name)
            os.environ[name] = value

    def __exit__(self, *exc_info) -> None:
        for name, value in self.saved.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value


def _restore_root(handlers: list[logging.Handler], level: int) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_env_flag_values() -> None:
    with _Env(PRICING_TEST_FLAG="Yes"):
        assert env_flag("PRICING_TEST_FLAG") is True
    with _Env(PRICING_TEST_FLAG="0"):
        assert env_flag("PRICING_TEST_FLAG") is False
    assert env_flag("PRICING_TEST_FLAG_NEVER_SET") is False


def test_setup_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(level=logging.WARNING)
        setup_logging(level=logging.DEBUG, json_format=True)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert '"event":"%(message)s"' in root.handlers[0].formatter._fmt
    finally:
        _restore_root(saved_handlers, saved_level)


def test_setup_logging_from_env() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        with _Env(**{ENV_DEBUG: "true", ENV_LOG_JSON: "off"}):
            setup_logging_from_env()
        assert root.level == logging.DEBUG
        assert "| %(message)s" in root.handlers[0].formatter._fmt
    finally:
        _restore_root(saved_handlers, saved_level)


def test_graceful_returns_default_on_unexpected_error() -> None:
    calls: list[int] = []

    @graceful(default_factory=list)
    def explode(value: int) -> list:
        calls.append(value)
        raise RuntimeError("boom")

    assert explode(3) == []
    assert calls == [3]
    assert explode.__name__ == "explode"


def test_normalizer_never_raises() -> None:
    class Hostile(dict):
        def __contains__(self, key: object) -> bool:
            raise RuntimeError("unreadable snapshot")

    assert normalize_statement(Hostile(totalVolume=100)) == StatementData()


TESTS = [
    test_env_flag_values,
    test_setup_logging_replaces_handlers,
    test_setup_logging_from_env,
    test_graceful_returns_default_on_unexpected_error,
    test_normalizer_never_raises,
]


def main() -> None:
    passed = 0
    failed = 0

    print(LINE * 42)
    print("  Logging Config Tests")
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
