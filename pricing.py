"""
pricing.py - Projected cost and reseller profit per pricing model.

Every projection is a pure function of (StatementData, params):

    project(statement, model_type, params)   -> ProjectionResult | None
    project_all(statement, params_by_model)  -> {PricingModel: ProjectionResult}

Shared assumptions, applied identically to every model so that results are
comparable side by side:
    - estimated transactions = round(total_volume / 45)
    - estimated interchange  = fixed card-mix benchmark (interchange.py)

Model formulas (rates in percent, fees in currency):
    interchange_plus  total = stated interchange + volume*markup + fee*txns
                      profit = markup + fee*txns
    flat              total = volume*rate + fee*txns
    dual_pricing      total = volume*rate
    tiered            total = sum(tier volume * tier rate) + fee*txns
    (flat, dual_pricing, tiered) profit = total - estimated interchange
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from interchange import estimate_interchange, estimate_transaction_count
from logging_config import get_logger
from models import (
    DualPricingParams,
    FlatParams,
    InterchangePlusParams,
    PricingModel,
    ProjectionResult,
    StatementData,
    TieredParams,
)
from networks import AMEX_BUCKET, DISCOVER_BUCKET, VISA_MC_BUCKET, bucket_for_network
from normalize import coerce_number

logger = get_logger(__name__)

PARAMS_BY_MODEL: dict[PricingModel, type[BaseModel]] = {
    PricingModel.INTERCHANGE_PLUS: InterchangePlusParams,
    PricingModel.FLAT: FlatParams,
    PricingModel.DUAL_PRICING: DualPricingParams,
    PricingModel.TIERED: TieredParams,
}

# Used when no card row names a known network.
FALLBACK_BUCKET_SHARES: dict[str, float] = {
    VISA_MC_BUCKET: 0.75,
    AMEX_BUCKET: 0.15,
    DISCOVER_BUCKET: 0.10,
}

# Share of Visa/Mastercard volume per tier. Non-qualified takes the
# remaining 10% plus all Amex and Discover volume.
CHECK_CARD_SHARE = 0.40
QUALIFIED_SHARE = 0.30
MID_QUALIFIED_SHARE = 0.20

TIER_NAMES: tuple[str, ...] = ("checkCard", "qualified", "midQualified", "nonQualified")


def parse_model_type(value: Any) -> Optional[PricingModel]:
    """Resolve 'flat', 'Dual Pricing', 'interchange-plus'... to a PricingModel."""
    if isinstance(value, PricingModel):
        return value
    if value is None:
        return None
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return PricingModel(key)
    except ValueError:
        return None


def build_params(model_type: Any, raw: Any = None) -> Optional[BaseModel]:
    """Build typed params for a model from a params object or raw form values.

    Raw values follow form semantics: anything that does not parse is 0.
    Returns None for an unrecognized model type.
    """
    model = parse_model_type(model_type)
    if model is None:
        return None

    params_cls = PARAMS_BY_MODEL[model]
    if isinstance(raw, params_cls):
        return raw

    if isinstance(raw, BaseModel):
        logger.warning(
            "build_params | model=%s | params_type=%s | action=reinterpret_fields",
            model.value,
            type(raw).__name__,
        )
        raw = raw.model_dump(by_alias=True)
    if not isinstance(raw, Mapping):
        raw = {}

    values: dict[str, float] = {}
    for name in params_cls.model_fields:
        if name == "model":
            continue
        alias = to_camel(name)
        value = raw[alias] if alias in raw else raw.get(name)
        values[name] = float(coerce_number(value))
    return params_cls(**values)


def _effective_rate(total_cost: float, total_volume: float) -> float:
    if total_volume <= 0:
        return 0.0
    return total_cost / total_volume * 100


def _interchange_plus(
    statement: StatementData,
    params: InterchangePlusParams,
    estimated_transactions: int,
    estimated_interchange: float,
) -> ProjectionResult:
    markup_cost = statement.total_volume * (params.markup_percent / 100)
    transaction_fees = params.per_transaction_fee * estimated_transactions
    total_cost = statement.total_interchange + markup_cost + transaction_fees

    return ProjectionResult(
        model=PricingModel.INTERCHANGE_PLUS,
        total_cost=total_cost,
        effective_rate_percent=_effective_rate(total_cost, statement.total_volume),
        estimated_interchange=estimated_interchange,
        # Interchange is passed through at cost; margin is markup + item fees.
        profit=markup_cost + transaction_fees,
        estimated_transactions=estimated_transactions,
        breakdown={
            "interchange": statement.total_interchange,
            "markup": markup_cost,
            "transactionFees": transaction_fees,
        },
    )


def _flat(
    statement: StatementData,
    params: FlatParams,
    estimated_transactions: int,
    estimated_interchange: float,
) -> ProjectionResult:
    rate_cost = statement.total_volume * (params.rate_percent / 100)
    transaction_fees = params.per_transaction_fee * estimated_transactions
    total_cost = rate_cost + transaction_fees

    return ProjectionResult(
        model=PricingModel.FLAT,
        total_cost=total_cost,
        effective_rate_percent=_effective_rate(total_cost, statement.total_volume),
        estimated_interchange=estimated_interchange,
        profit=total_cost - estimated_interchange,
        estimated_transactions=estimated_transactions,
        breakdown={
            "rateCost": rate_cost,
            "transactionFees": transaction_fees,
        },
    )


def _dual_pricing(
    statement: StatementData,
    params: DualPricingParams,
    estimated_transactions: int,
    estimated_interchange: float,
) -> ProjectionResult:
    total_cost = statement.total_volume * (params.rate_percent / 100)

    return ProjectionResult(
        model=PricingModel.DUAL_PRICING,
        total_cost=total_cost,
        # No per-item fee, so the quoted rate is the effective rate.
        effective_rate_percent=params.rate_percent if statement.has_volume else 0.0,
        estimated_interchange=estimated_interchange,
        profit=total_cost - estimated_interchange,
        estimated_transactions=estimated_transactions,
        breakdown={"cardRate": total_cost},
    )


def tier_bucket_volumes(statement: StatementData) -> dict[str, float]:
    """Card volume per tiered-pricing bucket (visaMc, amex, discover)."""
    buckets = {VISA_MC_BUCKET: 0.0, AMEX_BUCKET: 0.0, DISCOVER_BUCKET: 0.0}
    matched = False
    for entry in statement.card_breakdown.values():
        bucket = bucket_for_network(entry.network)
        if bucket is None:
            continue
        buckets[bucket] += entry.volume
        matched = True

    if not matched:
        logger.info(
            "tier_buckets | reason='no card row with a known network' | fallback=75/15/10 | volume=%.2f",
            statement.total_volume,
        )
        return {
            bucket: statement.total_volume * share
            for bucket, share in FALLBACK_BUCKET_SHARES.items()
        }
    return buckets


def split_tiers(visa_mc_volume: float, other_volume: float = 0.0) -> dict[str, float]:
    """Split Visa/MC volume 40/30/20/10 and add other networks to non-qualified.

    The non-qualified Visa/MC share is the remainder after the first three
    tiers, so the tiers always add back up to the input volumes.
    """
    check_card = visa_mc_volume * CHECK_CARD_SHARE
    qualified = visa_mc_volume * QUALIFIED_SHARE
    mid_qualified = visa_mc_volume * MID_QUALIFIED_SHARE
    non_qualified = (visa_mc_volume - check_card - qualified - mid_qualified) + other_volume
    return {
        "checkCard": check_card,
        "qualified": qualified,
        "midQualified": mid_qualified,
        "nonQualified": non_qualified,
    }


def _tiered(
    statement: StatementData,
    params: TieredParams,
    estimated_transactions: int,
    estimated_interchange: float,
) -> ProjectionResult:
    buckets = tier_bucket_volumes(statement)
    tier_volumes = split_tiers(
        buckets[VISA_MC_BUCKET],
        buckets[AMEX_BUCKET] + buckets[DISCOVER_BUCKET],
    )
    tier_rates = {
        "checkCard": params.check_card_rate_percent,
        "qualified": params.qualified_rate_percent,
        "midQualified": params.mid_qualified_rate_percent,
        "nonQualified": params.non_qualified_rate_percent,
    }

    breakdown = {tier: tier_volumes[tier] * (tier_rates[tier] / 100) for tier in TIER_NAMES}
    breakdown["transactionFees"] = params.per_transaction_fee * estimated_transactions
    total_cost = sum(breakdown.values())

    return ProjectionResult(
        model=PricingModel.TIERED,
        total_cost=total_cost,
        effective_rate_percent=_effective_rate(total_cost, statement.total_volume),
        estimated_interchange=estimated_interchange,
        profit=total_cost - estimated_interchange,
        estimated_transactions=estimated_transactions,
        breakdown=breakdown,
        tier_volumes=tier_volumes,
    )


CALCULATORS: dict[PricingModel, Callable[[StatementData, Any, int, float], ProjectionResult]] = {
    PricingModel.INTERCHANGE_PLUS: _interchange_plus,
    PricingModel.FLAT: _flat,
    PricingModel.DUAL_PRICING: _dual_pricing,
    PricingModel.TIERED: _tiered,
}


def project(statement: StatementData, model_type: Any, params: Any = None) -> Optional[ProjectionResult]:
    """Project the merchant's cost and the reseller's profit under one model.

    Returns None when model_type is not a known pricing model; the caller
    treats that as "nothing to show".
    """
    model = parse_model_type(model_type)
    if model is None:
        logger.warning("project | unknown_model=%r | result=None", model_type)
        return None

    resolved = build_params(model, params)
    estimated_transactions = estimate_transaction_count(statement.total_volume)
    interchange = estimate_interchange(statement.total_volume, estimated_transactions)

    result = CALCULATORS[model](
        statement,
        resolved,
        estimated_transactions,
        interchange.total_interchange_cost,
    )
    logger.info(
        "project_complete | model=%s | volume=%.2f | total_cost=%.2f | effective_rate=%.4f%% | profit=%.2f",
        model.value,
        statement.total_volume,
        result.total_cost,
        result.effective_rate_percent,
        result.profit,
    )
    return result


def project_all(statement: StatementData, params_by_model: Mapping[Any, Any]) -> dict[PricingModel, ProjectionResult]:
    """Project several models at once for side-by-side comparison."""
    results: dict[PricingModel, ProjectionResult] = {}
    for model_type, params in params_by_model.items():
        result = project(statement, model_type, params)
        if result is not None:
            results[result.model] = result
    return results
