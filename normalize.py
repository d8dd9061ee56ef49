"""
normalize.py - Statement normalization module.

Two core coercers:
    coerce_number(value)   -> int/float, 0 when unparseable
    coerce_count(value)    -> non-negative int

Two free-text enum parsers:
    parse_processing_method(text)  -> ProcessingMethod
    parse_statement_format(text)   -> StatementFormat

One entry point:
    normalize_statement(raw)  -> StatementData

Design principles:
    - Total: bad input degrades to 0 / Unknown / estimated values, never raises
    - Deterministic and idempotent: normalizing a normalized statement is a no-op
    - Derived values are flagged as estimated so the UI can say so
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional, TypeVar

from pydantic.alias_generators import to_snake
from rapidfuzz import fuzz, process

from logging_config import get_logger, graceful
from models import (
    CardBreakdownEntry,
    CardNetwork,
    ProcessingMethod,
    StatementData,
    StatementFormat,
)
from networks import classify_card_key

logger = get_logger(__name__)

E = TypeVar("E", ProcessingMethod, StatementFormat)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")

# Decimal places kept on derived averages.
DERIVED_PRECISION = 4

# Transaction-count keys, highest priority first.
TRANSACTION_COUNT_KEYS: tuple[str, ...] = (
    "transactionCount",
    "transactions",
    "totalTransactions",
    "txns",
)

# Older extraction prompts used these names.
TOTAL_VOLUME_KEYS: tuple[str, ...] = ("totalVolume", "monthlyVolume")
MERCHANT_NAME_KEYS: tuple[str, ...] = ("merchantName", "restaurantName", "businessName")

PROCESSING_METHOD_ALIASES: dict[str, ProcessingMethod] = {
    "interchange plus": ProcessingMethod.INTERCHANGE_PLUS,
    "ic plus": ProcessingMethod.INTERCHANGE_PLUS,
    "cost plus": ProcessingMethod.INTERCHANGE_PLUS,
    "pass through": ProcessingMethod.INTERCHANGE_PLUS,
    "interchange pass through": ProcessingMethod.INTERCHANGE_PLUS,
    "flat": ProcessingMethod.FLAT,
    "flat rate": ProcessingMethod.FLAT,
    "blended": ProcessingMethod.FLAT,
    "blended rate": ProcessingMethod.FLAT,
    "fixed rate": ProcessingMethod.FLAT,
    "tiered": ProcessingMethod.TIERED,
    "tiered pricing": ProcessingMethod.TIERED,
    "three tier": ProcessingMethod.TIERED,
    "dual pricing": ProcessingMethod.DUAL_PRICING,
    "dual": ProcessingMethod.DUAL_PRICING,
    "cash discount": ProcessingMethod.DUAL_PRICING,
    "cash discount program": ProcessingMethod.DUAL_PRICING,
}

STATEMENT_FORMAT_ALIASES: dict[str, StatementFormat] = {
    "card split": StatementFormat.CARD_SPLIT,
    "split by card": StatementFormat.CARD_SPLIT,
    "per card": StatementFormat.CARD_SPLIT,
    "by card": StatementFormat.CARD_SPLIT,
    "bundled": StatementFormat.BUNDLED_WITH_AMEX,
    "bundled with amex": StatementFormat.BUNDLED_WITH_AMEX,
    "visa mastercard discover": StatementFormat.BUNDLED_WITH_AMEX,
}

FUZZY_ENUM_CUTOFF = 80.0

_FLAG_TRUE = {"true", "yes", "y", "1", "estimated"}


def coerce_number(value: Any) -> int | float:
    """Coerce a loosely-typed extraction value to a number.

    Numbers pass through unchanged. Strings keep only digits, '.' and '-'
    before parsing, so "$12,345.67" -> 12345.67. Anything unparseable is 0.
    """
    if value is None or isinstance(value, bool):
        return 0

    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            logger.warning("coerce_number | int_overflow | bits=%s | fallback=0", value.bit_length())
            return 0
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            logger.warning("coerce_number | non_finite=%r | fallback=0", value)
            return 0
        return value

    try:
        text = str(value)
    except Exception:
        return 0

    cleaned = _NON_NUMERIC.sub("", text)
    if not cleaned:
        return 0

    try:
        parsed = float(cleaned)
    except ValueError:
        logger.warning("coerce_number | parse_failed | raw=%r | cleaned=%r | fallback=0", value, cleaned)
        return 0

    if not math.isfinite(parsed):
        logger.warning("coerce_number | non_finite_parsed=%r | fallback=0", value)
        return 0
    return parsed


def coerce_count(value: Any) -> int:
    """Coerce to a non-negative integer count, rounding half up."""
    number = coerce_number(value)
    if number <= 0:
        return 0
    return int(math.floor(number + 0.5))


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _FLAG_TRUE


def _get(raw: Mapping[str, Any], name: str) -> Any:
    """Read a field by camelCase name, falling back to its snake_case form."""
    if name in raw:
        return raw[name]
    return raw.get(to_snake(name))


def _first_present(raw: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        value = _get(raw, name)
        if value is not None and value != "":
            return value
    return None


def _amount(raw: Mapping[str, Any], *names: str) -> float:
    """Non-negative currency amount from the first present key."""
    value = float(coerce_number(_first_present(raw, names)))
    if value < 0:
        logger.warning("normalize_amount | field=%s | negative=%r | fallback=0.0", names[0], value)
        return 0.0
    return value


def _transaction_count(raw: Mapping[str, Any]) -> Optional[int]:
    """First positive count among the known keys; None when no key is present."""
    present = False
    for name in TRANSACTION_COUNT_KEYS:
        value = _get(raw, name)
        if value is None:
            continue
        present = True
        count = coerce_count(value)
        if count > 0:
            return count
    return 0 if present else None


def _fold_text(text: str) -> str:
    folded = text.lower().replace("+", " plus ")
    folded = re.sub(r"[^a-z0-9]+", " ", folded)
    return re.sub(r"\s+", " ", folded).strip()


def _parse_enum(value: Any, enum_cls: type[E], aliases: dict[str, E], default: E) -> E:
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default

    folded = _fold_text(str(value))
    if not folded:
        return default

    try:
        return enum_cls(folded.replace(" ", "_"))
    except ValueError:
        pass

    if folded in aliases:
        return aliases[folded]

    padded = f" {folded} "
    for alias in sorted(aliases, key=len, reverse=True):
        if f" {alias} " in padded:
            return aliases[alias]

    best = process.extractOne(folded, list(aliases), scorer=fuzz.ratio, score_cutoff=FUZZY_ENUM_CUTOFF)
    if best is not None:
        alias, score, _ = best
        logger.debug(
            "parse_enum | enum=%s | raw=%r | fuzzy_alias=%r | score=%.1f",
            enum_cls.__name__,
            value,
            alias,
            score,
        )
        return aliases[alias]

    logger.debug("parse_enum | enum=%s | raw=%r | fallback=%s", enum_cls.__name__, value, default.value)
    return default


def parse_processing_method(value: Any) -> ProcessingMethod:
    """Map free text like 'Interchange-Plus pricing' or 'IC+' to ProcessingMethod."""
    return _parse_enum(value, ProcessingMethod, PROCESSING_METHOD_ALIASES, ProcessingMethod.UNKNOWN)


def parse_statement_format(value: Any) -> StatementFormat:
    """Map free text like 'card split' or 'bundled w/ Amex' to StatementFormat."""
    return _parse_enum(value, StatementFormat, STATEMENT_FORMAT_ALIASES, StatementFormat.UNKNOWN)


def _card_network(key: str, raw_entry: Mapping[str, Any]) -> CardNetwork:
    explicit = raw_entry.get("network")
    if isinstance(explicit, CardNetwork) and explicit is not CardNetwork.UNKNOWN:
        return explicit
    if explicit:
        try:
            network = CardNetwork(str(explicit).strip().lower())
        except ValueError:
            network = CardNetwork.UNKNOWN
        if network is not CardNetwork.UNKNOWN:
            return network
    return classify_card_key(key)


def normalize_card_entry(key: str, raw_entry: Any, statement_ticket: float) -> CardBreakdownEntry:
    """Normalize one card row; missing average ticket falls back to the statement's."""
    if not isinstance(raw_entry, Mapping):
        logger.warning(
            "normalize_card_entry | key=%r | invalid_type=%s | fallback=zero_entry",
            key,
            type(raw_entry).__name__,
        )
        raw_entry = {}

    volume = _amount(raw_entry, "volume")
    rate = _amount(raw_entry, "rate")
    per_transaction_fee = _amount(raw_entry, "perTransactionFee")
    transaction_count = _transaction_count(raw_entry)

    ticket = _amount(raw_entry, "averageTicketSize")
    if ticket <= 0:
        if transaction_count and volume > 0:
            ticket = round(volume / transaction_count, DERIVED_PRECISION)
        else:
            ticket = statement_ticket

    return CardBreakdownEntry(
        key=key,
        network=_card_network(key, raw_entry),
        volume=volume,
        rate=rate,
        per_transaction_fee=per_transaction_fee,
        transaction_count=transaction_count,
        average_ticket_size=ticket,
    )


def _card_rows(raw_breakdown: Any) -> list[tuple[str, Any]]:
    """Card rows as (key, raw_entry) pairs from a mapping or a list of rows."""
    if isinstance(raw_breakdown, Mapping):
        return [(str(key), entry) for key, entry in raw_breakdown.items()]

    if isinstance(raw_breakdown, list):
        rows: list[tuple[str, Any]] = []
        used: set[str] = set()
        for index, entry in enumerate(raw_breakdown):
            key = None
            if isinstance(entry, Mapping):
                key = entry.get("key") or entry.get("card") or entry.get("name")
            base = str(key) if key else f"card_{index + 1}"
            # Credit and debit rows often share a name ("Visa", "Visa").
            name, suffix = base, 1
            while name in used:
                suffix += 1
                name = f"{base}_{suffix}"
            used.add(name)
            rows.append((name, entry))
        return rows

    if raw_breakdown is not None:
        logger.warning(
            "normalize_card_breakdown | invalid_type=%s | fallback=empty",
            type(raw_breakdown).__name__,
        )
    return []


@graceful(default_factory=StatementData)
def normalize_statement(raw: Any) -> StatementData:
    """Normalize an extraction snapshot into a fully-numeric StatementData.

    Accepts the raw JSON object from the extraction service (camelCase or
    snake_case keys, numbers possibly as strings, enums as free text) or an
    existing StatementData. Never raises.
    """
    if isinstance(raw, StatementData):
        raw = raw.model_dump(by_alias=True, mode="json")

    if not isinstance(raw, Mapping):
        logger.warning(
            "normalize_statement | invalid_type=%s | fallback=empty_statement",
            type(raw).__name__,
        )
        return StatementData()

    total_volume = _amount(raw, *TOTAL_VOLUME_KEYS)
    total_interchange = _amount(raw, "totalInterchange")
    total_fees = _amount(raw, "totalFees")
    transaction_count = _transaction_count(raw) or 0

    average_ticket = _amount(raw, "averageTicketSize")
    if average_ticket <= 0 and total_volume > 0 and transaction_count > 0:
        average_ticket = round(total_volume / transaction_count, DERIVED_PRECISION)
        ticket_estimated = True
        logger.debug(
            "normalize_statement | derived=average_ticket_size | value=%.4f | volume=%.2f | txns=%s",
            average_ticket,
            total_volume,
            transaction_count,
        )
    else:
        ticket_estimated = average_ticket > 0 and _coerce_flag(_get(raw, "averageTicketSizeEstimated"))

    per_transaction_rate = _amount(raw, "perTransactionRate")
    if per_transaction_rate <= 0 and average_ticket > 0 and total_volume > 0 and total_fees > 0:
        estimated_transactions = total_volume / average_ticket
        per_transaction_rate = round(total_fees / estimated_transactions, DERIVED_PRECISION)
        rate_estimated = True
        logger.debug(
            "normalize_statement | derived=per_transaction_rate | value=%.4f | est_txns=%.2f",
            per_transaction_rate,
            estimated_transactions,
        )
    else:
        rate_estimated = per_transaction_rate > 0 and _coerce_flag(_get(raw, "perTransactionRateEstimated"))

    card_breakdown: dict[str, CardBreakdownEntry] = {}
    for key, raw_entry in _card_rows(_get(raw, "cardBreakdown")):
        if key in card_breakdown:
            logger.warning("normalize_card_breakdown | duplicate_key=%r | action=keep_last", key)
        card_breakdown[key] = normalize_card_entry(key, raw_entry, average_ticket)

    merchant_name = _first_present(raw, MERCHANT_NAME_KEYS)

    statement = StatementData(
        merchant_name=str(merchant_name).strip() if merchant_name is not None else "",
        total_volume=total_volume,
        total_interchange=total_interchange,
        total_fees=total_fees,
        per_transaction_rate=per_transaction_rate,
        per_transaction_rate_estimated=rate_estimated,
        average_ticket_size=average_ticket,
        average_ticket_size_estimated=ticket_estimated,
        transaction_count=transaction_count,
        current_processing_method=parse_processing_method(_get(raw, "currentProcessingMethod")),
        statement_format=parse_statement_format(_get(raw, "statementFormat")),
        card_breakdown=card_breakdown,
    )

    logger.info(
        "normalize_complete | volume=%.2f | fees=%.2f | txns=%s | cards=%s | ticket_estimated=%s | rate_estimated=%s",
        statement.total_volume,
        statement.total_fees,
        statement.transaction_count,
        len(statement.card_breakdown),
        statement.average_ticket_size_estimated,
        statement.per_transaction_rate_estimated,
    )
    return statement
