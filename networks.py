"""
networks.py - Card network classification for statement breakdown rows.

Statements name their card rows however they like ("visa", "VISA CREDIT",
"visa_mastercard_discover", "amex_keyed"). This module is the ONLY place
that looks at those key strings; everything downstream works with the
closed `CardNetwork` tag attached during normalization.

    classify_card_key(key)       -> CardNetwork (first network mentioned)
    networks_in_key(key)         -> every CardNetwork mentioned, in order
    bucket_for_network(network)  -> tiered-pricing bucket name or None
"""

from __future__ import annotations

import re

from logging_config import get_logger
from models import CardNetwork

logger = get_logger(__name__)

# Priority order matters for bundled rows: "visa_mastercard_discover" is a
# Visa row, "amex_discover" is an Amex row.
NETWORK_ALIASES: list[tuple[CardNetwork, tuple[str, ...]]] = [
    (CardNetwork.VISA, ("visa",)),
    (CardNetwork.MASTERCARD, ("mastercard", "master card")),
    (CardNetwork.AMEX, ("amex", "american express")),
    (CardNetwork.DISCOVER, ("discover",)),
]

VISA_MC_BUCKET = "visaMc"
AMEX_BUCKET = "amex"
DISCOVER_BUCKET = "discover"

NETWORK_BUCKETS: dict[CardNetwork, str] = {
    CardNetwork.VISA: VISA_MC_BUCKET,
    CardNetwork.MASTERCARD: VISA_MC_BUCKET,
    CardNetwork.AMEX: AMEX_BUCKET,
    CardNetwork.DISCOVER: DISCOVER_BUCKET,
}


def _fold_key(key: object) -> str:
    if key is None:
        return ""
    text = str(key).lower()
    # "american_express", "master-card" -> "american express", "master card"
    text = re.sub(r"[_\-/.]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def networks_in_key(key: object) -> list[CardNetwork]:
    """Return every known network mentioned in a card row key."""
    folded = _fold_key(key)
    if not folded:
        return []
    found: list[CardNetwork] = []
    for network, aliases in NETWORK_ALIASES:
        if any(alias in folded for alias in aliases):
            found.append(network)
    return found


def classify_card_key(key: object) -> CardNetwork:
    """Map a free-form card row key to a single CardNetwork tag."""
    found = networks_in_key(key)
    if not found:
        logger.debug("classify_card_key | key=%r | network=unknown", key)
        return CardNetwork.UNKNOWN

    network = found[0]
    if len(found) > 1:
        logger.debug(
            "classify_card_key | key=%r | bundled=%s | network=%s",
            key,
            [item.value for item in found],
            network.value,
        )
    return network


def bucket_for_network(network: CardNetwork) -> str | None:
    """Tiered-pricing bucket for a network tag (None for unknown rows)."""
    return NETWORK_BUCKETS.get(network)
