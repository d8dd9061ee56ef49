"""
logging_config.py - Log setup shared by the CLI, the API and the engine.

Engine modules only call `get_logger(__name__)` and log `event | key=value`
messages. The entry points decide where those lines go:

    main.py  -> setup_logging(level, json_format) from --verbose / --log-json
    api.py   -> setup_logging_from_env() from DEBUG / LOG_JSON

`graceful` wraps the normalizer, whose callers are promised a StatementData
no matter what the extraction service sent.
"""

from __future__ import annotations

import functools
import logging
import os
import sys
from typing import Callable, TypeVar

T = TypeVar("T")

ENV_DEBUG = "DEBUG"
ENV_LOG_JSON = "LOG_JSON"

TEXT_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)-14s | %(message)s"
JSON_LOG_FORMAT = (
    '{"time":"%(asctime)s","level":"%(levelname)s",'
    '"logger":"%(name)s","event":"%(message)s"}'
)
LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_ENABLED_VALUES = {"1", "true", "yes", "on"}


def env_flag(name: str) -> bool:
    """True when an environment switch such as DEBUG=1 is turned on."""
    return os.getenv(name, "").strip().lower() in _ENABLED_VALUES


def setup_logging(level: int = logging.INFO, json_format: bool = False) -> None:
    """Send all engine logs to stderr, keeping stdout free for results.

    Calling it again replaces the previous handler, so the CLI and tests can
    switch level or format freely.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(JSON_LOG_FORMAT if json_format else TEXT_LOG_FORMAT, datefmt=LOG_TIME_FORMAT)
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def setup_logging_from_env() -> None:
    """API flavour of setup_logging: DEBUG raises verbosity, LOG_JSON switches format."""
    setup_logging(
        level=logging.DEBUG if env_flag(ENV_DEBUG) else logging.INFO,
        json_format=env_flag(ENV_LOG_JSON),
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def graceful(default_factory: Callable[[], T], log_level: int = logging.ERROR):
    """Turn an unexpected exception into `default_factory()` plus one log line.

    Expected bad input is the wrapped function's own job; this is the last
    line for bugs, so it logs with the traceback attached.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                logging.getLogger(func.__module__).log(
                    log_level,
                    "graceful_fallback | func=%s | error_type=%s | error=%s | result=default",
                    func.__name__,
                    type(exc).__name__,
                    exc,
                    exc_info=True,
                )
                return default_factory()

        return wrapper

    return decorator
