"""
interchange.py - Market-average interchange benchmark.

Estimates what a merchant's volume "really" costs at interchange using a
fixed, statement-independent card mix. The reseller compares projected
pricing against this floor instead of trusting whatever interchange figure
the incumbent processor printed.
"""

from __future__ import annotations

import math
from typing import NamedTuple

from logging_config import get_logger
from models import InterchangeEstimate

logger = get_logger(__name__)

# Assumed average sale behind the transaction estimate shared by the
# interchange benchmark and every pricing model. Independent of the
# statement's own average ticket.
ASSUMED_AVERAGE_TICKET = 45.0


class CardMixBucket(NamedTuple):
    name: str
    volume_share: float
    transaction_share: float
    rate: float
    per_transaction_fee: float


# Typical restaurant card mix.
CARD_MIX: tuple[CardMixBucket, ...] = (
    CardMixBucket("basicDebit", 0.60, 0.60, 0.0119, 0.12),
    CardMixBucket("basicCredit", 0.15, 0.15, 0.0235, 0.10),
    CardMixBucket("consumerCredit", 0.15, 0.15, 0.025, 0.08),
    CardMixBucket("rewardsCredit", 0.10, 0.10, 0.028, 0.12),
)


def estimate_transaction_count(total_volume: float) -> int:
    """round(total_volume / 45), half up; 0 for no volume."""
    if total_volume <= 0:
        return 0
    return int(math.floor(total_volume / ASSUMED_AVERAGE_TICKET + 0.5))


def estimate_interchange(total_volume: float, estimated_transactions: float) -> InterchangeEstimate:
    """Interchange cost of a volume under the fixed card mix."""
    breakdown: dict[str, float] = {}
    for bucket in CARD_MIX:
        bucket_volume = total_volume * bucket.volume_share
        bucket_transactions = estimated_transactions * bucket.transaction_share
        breakdown[bucket.name] = (
            bucket_volume * bucket.rate + bucket_transactions * bucket.per_transaction_fee
        )

    total = sum(breakdown.values())
    logger.debug(
        "estimate_interchange | volume=%.2f | est_txns=%s | total=%.2f",
        total_volume,
        estimated_transactions,
        total,
    )
    return InterchangeEstimate(total_interchange_cost=total, breakdown=breakdown)
