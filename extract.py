"""
extract.py - Extraction boundary for the pricing pipeline.

The statement image/PDF is read by an external AI extraction service. This
module only turns what that service hands back into a raw snapshot dict
for normalize.py:

    parse_extraction_response(text)  -> dict   (AI reply, maybe fenced)
    load_statement_snapshot(path)    -> dict   (saved JSON snapshot)

Error philosophy:
    Unlike the engine, this boundary DOES fail loudly. A reply that holds no
    JSON object is an extraction failure; the caller reports it to the user
    and never runs the engine on it. Failures raise ExtractionError (a
    ValueError), bad paths raise FileNotFoundError.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from logging_config import get_logger

logger = get_logger(__name__)

# Largest snapshot file we are willing to read.
MAX_SNAPSHOT_BYTES = 5 * 1024 * 1024  # 5 MB

SUPPORTED_EXTENSIONS = {".json", ".txt"}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ExtractionError(ValueError):
    """The extraction service's output could not be turned into a snapshot."""


def _unwrap(payload: Any, source: str) -> dict[str, Any]:
    if isinstance(payload, dict) and set(payload) == {"data"} and isinstance(payload["data"], dict):
        payload = payload["data"]
    if not isinstance(payload, dict):
        raise ExtractionError(
            f"Extraction result from {source} is a {type(payload).__name__}, expected a JSON object"
        )
    return payload


def parse_extraction_response(text: str | None) -> dict[str, Any]:
    """Pull the statement JSON object out of the AI service's reply text.

    The service is asked for bare JSON but often wraps it in markdown fences
    or a sentence of prose; everything outside the outermost braces is
    ignored.
    """
    if text is None or not str(text).strip():
        raise ExtractionError("Extraction response is empty")

    match = _JSON_OBJECT.search(str(text))
    if match is None:
        logger.warning("extract_parse_failed | reason='no JSON object' | head=%r", str(text)[:80])
        raise ExtractionError("Failed to extract data from statement: no JSON object in response")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("extract_parse_failed | reason='invalid JSON' | error=%s", exc)
        raise ExtractionError(f"Failed to extract data from statement: {exc}") from exc

    snapshot = _unwrap(payload, "response")
    logger.info("extract_parse_complete | keys=%s", sorted(snapshot))
    return snapshot


def load_statement_snapshot(path: str | Path | None) -> dict[str, Any]:
    """Read a saved extraction snapshot (JSON object) from disk."""
    if path is None:
        raise ValueError("snapshot path cannot be None")

    path_text = str(path).strip()
    if not path_text:
        raise ValueError("snapshot path cannot be empty")

    snapshot_path = Path(path_text)
    if not snapshot_path.exists():
        raise FileNotFoundError(
            f"Statement snapshot not found: {path_text}\n"
            f"Current directory: {Path.cwd()}"
        )

    if snapshot_path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        logger.warning(
            "extract_extension_warning | extension=%s | file=%s | supported=%s | fallback=continue",
            snapshot_path.suffix,
            snapshot_path.name,
            ", ".join(sorted(SUPPORTED_EXTENSIONS)),
        )

    size = snapshot_path.stat().st_size
    if size == 0:
        raise ExtractionError(f"Statement snapshot is empty (0 bytes): {path_text}")
    if size > MAX_SNAPSHOT_BYTES:
        raise ExtractionError(
            f"Statement snapshot is too large ({size / 1024 / 1024:.1f} MB): {path_text}"
        )

    text = snapshot_path.read_text(encoding="utf-8-sig")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        # Saved raw AI replies still carry fences/prose.
        return parse_extraction_response(text)

    snapshot = _unwrap(payload, snapshot_path.name)
    logger.info("extract_load_complete | file=%s | keys=%s", snapshot_path.name, len(snapshot))
    return snapshot
