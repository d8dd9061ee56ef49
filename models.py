"""
models.py - Data Models for the Statement Pricing Engine

This file defines ALL data structures used across the projection engine.
Every module in the pipeline communicates exclusively through these models:

    extract.py     ->  dict (raw extraction snapshot)
    normalize.py   ->  StatementData
    interchange.py ->  InterchangeEstimate
    pricing.py     ->  ProjectionResult
    report.py      ->  ProjectionReport, RevenueMetrics
    explain.py     ->  str / dict (uses ProjectionReport as input)

Design principles:
1. Each layer's output is the next layer's input
2. Normalized values are frozen - a StatementData is read-only after
   normalize_statement() builds it, and every projection is a pure function
   of (StatementData, PricingModelParams)
3. Wire names are camelCase (what the extraction service and the UI speak),
   Python attributes are snake_case
4. All fields have descriptions - they double as API documentation

Schema relationships:
    CardNetwork        --used by--> CardBreakdownEntry.network
    CardBreakdownEntry --used by--> StatementData.card_breakdown
    PricingModel       --used by--> *Params.model, ProjectionResult.model
    ProjectionResult   --used by--> ProjectionReport.projection
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CardNetwork(str, Enum):
    """Card network tag attached to each breakdown entry by networks.py."""

    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"
    DISCOVER = "discover"
    # Key did not mention any known network (e.g. "other", "debit_pin").
    UNKNOWN = "unknown"


class ProcessingMethod(str, Enum):
    """How the incumbent processor prices the merchant today."""

    INTERCHANGE_PLUS = "interchange_plus"
    FLAT = "flat"
    TIERED = "tiered"
    DUAL_PRICING = "dual_pricing"
    UNKNOWN = "unknown"


class StatementFormat(str, Enum):
    """Layout of the card breakdown on the statement."""

    # One row per network: visa, mastercard, amex, discover.
    CARD_SPLIT = "card_split"
    # Visa/MC/Discover reported as one bundled row, Amex on its own.
    BUNDLED_WITH_AMEX = "bundled_with_amex"
    UNKNOWN = "unknown"


class PricingModel(str, Enum):
    """Pricing models the reseller can quote."""

    INTERCHANGE_PLUS = "interchange_plus"
    FLAT = "flat"
    TIERED = "tiered"
    DUAL_PRICING = "dual_pricing"


class _EngineModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CardBreakdownEntry(_EngineModel):
    """One card network / tier / entry-mode row from the statement.

    Statements vary wildly in structure, so the key is free-form: "visa",
    "visa_mastercard_discover", "amex_keyed" are all valid. The network tag
    is derived from the key once, during normalization, so the pricing code
    never has to look at key strings.
    """

    key: str = Field(
        ...,
        description=(
            "Row identifier exactly as the extraction service reported it. "
            "Examples: 'visa', 'mastercard', 'visa_mastercard_discover', "
            "'amex_keyed'. Not a closed set."
        ),
    )
    network: CardNetwork = Field(
        default=CardNetwork.UNKNOWN,
        description=(
            "Card network this row belongs to, assigned by "
            "networks.classify_card_key(). Bundled rows take the first "
            "network in visa > mastercard > amex > discover order."
        ),
    )
    volume: float = Field(
        default=0.0,
        ge=0,
        description="Currency amount processed under this row.",
    )
    rate: float = Field(
        default=0.0,
        description=(
            "Percentage rate charged on this row as a decimal fraction "
            "(0.0275 = 2.75%), NOT a percentage."
        ),
    )
    per_transaction_fee: float = Field(
        default=0.0,
        ge=0,
        description="Currency amount charged per transaction on this row.",
    )
    transaction_count: Optional[int] = Field(
        default=None,
        ge=0,
        description="Number of transactions on this row, when the statement lists it.",
    )
    average_ticket_size: Optional[float] = Field(
        default=None,
        ge=0,
        description=(
            "Average sale amount for this row. Derived as volume / "
            "transaction_count when both are known, otherwise inherited "
            "from the statement-level average ticket."
        ),
    )


class StatementData(_EngineModel):
    """Normalized, fully-numeric snapshot of one merchant statement.

    This is the aggregate root of the engine. It is created once per
    uploaded statement by normalize_statement() and never mutated again.

    Data quality: statements are messy. total_fees is expected to be at
    least total_interchange but the engine never enforces it, and the card
    rows are only expected to sum to roughly total_volume. Every consumer
    guards against a zero total_volume itself.
    """

    merchant_name: str = Field(
        default="",
        description="Business name printed on the statement, if extracted.",
    )
    total_volume: float = Field(
        default=0.0,
        ge=0,
        description="Total card volume processed during the statement period.",
    )
    total_interchange: float = Field(
        default=0.0,
        ge=0,
        description="Interchange passed through to the card networks/issuers.",
    )
    total_fees: float = Field(
        default=0.0,
        ge=0,
        description=(
            "Everything the merchant paid the processor this period "
            "(interchange + markup + fees). This is the merchant's current cost."
        ),
    )
    per_transaction_rate: float = Field(
        default=0.0,
        ge=0,
        description="Average fee per transaction.",
    )
    per_transaction_rate_estimated: bool = Field(
        default=False,
        description="True when per_transaction_rate was derived rather than read.",
    )
    average_ticket_size: float = Field(
        default=0.0,
        ge=0,
        description="Average sale amount.",
    )
    average_ticket_size_estimated: bool = Field(
        default=False,
        description="True when average_ticket_size was derived rather than read.",
    )
    transaction_count: int = Field(
        default=0,
        ge=0,
        description=(
            "Transactions in the period. Read from transactionCount, "
            "transactions, totalTransactions or txns, in that order."
        ),
    )
    current_processing_method: ProcessingMethod = Field(
        default=ProcessingMethod.UNKNOWN,
        description="Pricing model the incumbent processor uses.",
    )
    statement_format: StatementFormat = Field(
        default=StatementFormat.UNKNOWN,
        description="How the card breakdown is laid out on the statement.",
    )
    card_breakdown: dict[str, CardBreakdownEntry] = Field(
        default_factory=dict,
        description="Card rows keyed by their free-form key. Order is irrelevant.",
    )

    @property
    def card_volume_total(self) -> float:
        """Sum of all card row volumes (should be close to total_volume)."""
        return sum(entry.volume for entry in self.card_breakdown.values())

    @property
    def has_volume(self) -> bool:
        """Whether any volume was processed - every rate divides by it."""
        return self.total_volume > 0

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "merchantName": "El Agave Mexican Restaurant",
                    "totalVolume": 50000.0,
                    "totalInterchange": 900.0,
                    "totalFees": 1450.0,
                    "perTransactionRate": 1.3053,
                    "perTransactionRateEstimated": True,
                    "averageTicketSize": 45.0,
                    "averageTicketSizeEstimated": True,
                    "transactionCount": 1111,
                    "currentProcessingMethod": "tiered",
                    "statementFormat": "card_split",
                    "cardBreakdown": {
                        "visa": {
                            "key": "visa",
                            "network": "visa",
                            "volume": 30000.0,
                            "rate": 0.0275,
                            "perTransactionFee": 0.10,
                        }
                    },
                }
            ]
        }
    )


class InterchangePlusParams(_EngineModel):
    """Interchange passed through at cost, plus markup and a per-item fee."""

    model: Literal[PricingModel.INTERCHANGE_PLUS] = PricingModel.INTERCHANGE_PLUS
    markup_percent: float = Field(default=0.0, description="Markup over interchange, in percent (0.25 = 0.25%).")
    per_transaction_fee: float = Field(default=0.0, description="Fee per transaction in currency units.")


class FlatParams(_EngineModel):
    """One blended rate for every card, plus a per-item fee."""

    model: Literal[PricingModel.FLAT] = PricingModel.FLAT
    rate_percent: float = Field(default=0.0, description="Flat rate in percent (2.9 = 2.9%).")
    per_transaction_fee: float = Field(default=0.0, description="Fee per transaction in currency units.")


class DualPricingParams(_EngineModel):
    """Cash-discount model: a single card rate, no per-item fee."""

    model: Literal[PricingModel.DUAL_PRICING] = PricingModel.DUAL_PRICING
    rate_percent: float = Field(default=0.0, description="Card rate in percent (3.5 = 3.5%).")


class TieredParams(_EngineModel):
    """Qualified / mid-qualified / non-qualified buckets plus check card."""

    model: Literal[PricingModel.TIERED] = PricingModel.TIERED
    check_card_rate_percent: float = Field(default=0.0, description="Debit (check card) tier rate, percent.")
    qualified_rate_percent: float = Field(default=0.0, description="Qualified tier rate, percent.")
    mid_qualified_rate_percent: float = Field(default=0.0, description="Mid-qualified tier rate, percent.")
    non_qualified_rate_percent: float = Field(default=0.0, description="Non-qualified tier rate, percent.")
    per_transaction_fee: float = Field(default=0.0, description="Fee per transaction in currency units.")


PricingModelParams = Annotated[
    Union[InterchangePlusParams, FlatParams, DualPricingParams, TieredParams],
    Field(discriminator="model"),
]


class InterchangeEstimate(_EngineModel):
    """Market-average interchange cost for a volume, independent of the statement."""

    total_interchange_cost: float = Field(
        default=0.0,
        description="Sum of the four card-mix bucket costs.",
    )
    breakdown: dict[str, float] = Field(
        default_factory=dict,
        description="Cost per bucket: basicDebit, basicCredit, consumerCredit, rewardsCredit.",
    )


class ProjectionResult(_EngineModel):
    """What the merchant would pay, and the reseller would earn, under one model.

    Recomputed on every parameter change and never persisted. Two calls with
    the same inputs produce identical results.
    """

    model: PricingModel = Field(..., description="Pricing model this projection is for.")
    total_cost: float = Field(
        default=0.0,
        description="Projected monthly processing cost for the merchant.",
    )
    effective_rate_percent: float = Field(
        default=0.0,
        description="total_cost / total_volume as a percentage. 0 when volume is 0.",
    )
    estimated_interchange: float = Field(
        default=0.0,
        description=(
            "Card-mix interchange estimate from interchange.py - what the "
            "reseller actually pays the networks under this projection."
        ),
    )
    profit: float = Field(
        default=0.0,
        description=(
            "Reseller's monthly margin. Interchange-plus: markup + per-item "
            "fees. Every other model: total_cost - estimated_interchange."
        ),
    )
    estimated_transactions: int = Field(
        default=0,
        ge=0,
        description="round(total_volume / 45), shared by every model.",
    )
    breakdown: dict[str, float] = Field(
        default_factory=dict,
        description="Cost components; keys depend on the model.",
    )
    tier_volumes: Optional[dict[str, float]] = Field(
        default=None,
        description="Tiered model only: volume routed into each tier.",
    )


class ProjectionReport(_EngineModel):
    """Projection plus the merchant-facing comparison against current fees."""

    statement: StatementData
    projection: ProjectionResult
    current_cost: float = Field(default=0.0, description="What the merchant pays today (total_fees).")
    monthly_savings: float = Field(
        default=0.0,
        description="current_cost - projected total_cost. Negative means the merchant pays more.",
    )
    annual_savings: float = Field(default=0.0, description="monthly_savings * 12.")
    monthly_profit: float = Field(default=0.0, description="Reseller profit for one statement period.")
    annual_profit: float = Field(default=0.0, description="monthly_profit * 12 (annual recurring revenue).")
    weighted_rate_percent: float = Field(
        default=0.0,
        description="Volume-weighted average of the card row rates, percent.",
    )
    current_effective_rate_percent: float = Field(
        default=0.0,
        description="total_fees / total_volume, percent.",
    )

    @property
    def saves_money(self) -> bool:
        """Whether the projected cost is at or below what the merchant pays now."""
        return self.monthly_savings >= 0


class RevenueMetrics(_EngineModel):
    """Recurring-revenue summary for the reseller's book of business."""

    mrr: float = Field(default=0.0, description="Monthly recurring revenue.")
    arr: float = Field(default=0.0, description="Annual recurring revenue (mrr * 12).")
    customers: int = Field(default=0, ge=0, description="Number of merchants.")
    arpu: float = Field(default=0.0, description="Average revenue per merchant. 0 without customers.")
