"""
rates.py - Informational rates describing the merchant's current pricing.

Nothing here feeds a projection; these numbers are shown next to it.
"""

from __future__ import annotations

from logging_config import get_logger
from models import StatementData

logger = get_logger(__name__)


def weighted_rate(statement: StatementData) -> float:
    """Volume-weighted average of card row rates, as a percentage.

    Two rows of 1000 each at 0.02 and 0.03 -> 2.5. Returns 0 when the
    statement has no volume.
    """
    if not statement.has_volume:
        return 0.0
    weighted = sum(entry.rate * entry.volume for entry in statement.card_breakdown.values())
    return weighted / statement.total_volume * 100


def current_effective_rate(statement: StatementData) -> float:
    """What the merchant pays today: total_fees / total_volume, as a percentage."""
    if not statement.has_volume:
        return 0.0
    return statement.total_fees / statement.total_volume * 100


def card_volume_shares(statement: StatementData) -> dict[str, float]:
    """Each card row's share of total volume, as a percentage."""
    if not statement.has_volume:
        return {key: 0.0 for key in statement.card_breakdown}
    return {
        key: entry.volume / statement.total_volume * 100
        for key, entry in statement.card_breakdown.items()
    }
