"""
explain.py - Human-readable and JSON-ready projection formatting.

This module converts a structured `ProjectionReport` into:
- terminal-friendly text output for CLI usage
- machine-friendly dictionary output for APIs/logging
"""

from __future__ import annotations

from logging_config import get_logger
from models import PricingModel, ProjectionReport, ProjectionResult
from rates import card_volume_shares

logger = get_logger(__name__)

MODEL_NAMES: dict[PricingModel, str] = {
    PricingModel.INTERCHANGE_PLUS: "Interchange Plus",
    PricingModel.FLAT: "Flat",
    PricingModel.TIERED: "Tiered",
    PricingModel.DUAL_PRICING: "Dual Pricing",
}

BREAKDOWN_LABELS: dict[str, str] = {
    "interchange": "Interchange (pass-through)",
    "markup": "Markup",
    "transactionFees": "Per-transaction fees",
    "rateCost": "Rate cost",
    "cardRate": "Card rate",
    "checkCard": "Check card tier",
    "qualified": "Qualified tier",
    "midQualified": "Mid-qualified tier",
    "nonQualified": "Non-qualified tier",
}

OUTPUT_WIDTH = 56
SEPARATOR = "=" * OUTPUT_WIDTH

# Card rows may legitimately miss small adjustments; beyond this the
# breakdown probably lost a row during extraction.
CARD_VOLUME_TOLERANCE = 0.01


def _money(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def _signed_money(value: float) -> str:
    return ("+" if value >= 0 else "") + _money(value)


def projection_notes(report: ProjectionReport) -> list[str]:
    """Data-quality notes worth showing next to a projection."""
    statement = report.statement
    notes: list[str] = []
    if statement.average_ticket_size_estimated:
        notes.append(
            f"Average ticket ({_money(statement.average_ticket_size)}) was estimated "
            "from volume and transaction count."
        )
    if statement.per_transaction_rate_estimated:
        notes.append(
            f"Per-transaction rate ({_money(statement.per_transaction_rate)}) was estimated "
            "from total fees and average ticket."
        )
    if statement.card_breakdown and statement.has_volume:
        card_total = statement.card_volume_total
        deviation = abs(card_total - statement.total_volume) / statement.total_volume
        if deviation > CARD_VOLUME_TOLERANCE:
            notes.append(
                f"Card rows add up to {_money(card_total)} but total volume is "
                f"{_money(statement.total_volume)} ({deviation:.1%} apart)."
            )
    if not statement.has_volume:
        notes.append("Statement has no volume; every rate is reported as 0.")
    return notes


def format_projection(report: ProjectionReport | None) -> str:
    """Format a ProjectionReport into a clean, human-readable text block."""
    if report is None:
        logger.error("explain_input_error | report_none=True | fallback=error_block")
        return (
            "\n"
            + SEPARATOR
            + "\n"
            + "  ERROR: No projection available\n"
            + SEPARATOR
            + "\n"
        )

    try:
        statement = report.statement
        projection = report.projection
        lines: list[str] = [""]

        lines.append(SEPARATOR)
        lines.append(f"  {MODEL_NAMES[projection.model]} Projection")
        lines.append(SEPARATOR)

        lines.append("")
        lines.append(f"  Merchant:        {statement.merchant_name or '(unnamed)'}")
        lines.append(f"  Volume:          {_money(statement.total_volume)}")
        lines.append(f"  Current method:  {statement.current_processing_method.value}")
        lines.append(
            f"  Current cost:    {_money(report.current_cost)}  |  "
            f"{report.current_effective_rate_percent:.2f}% effective"
        )
        lines.append(f"  Card rate avg:   {report.weighted_rate_percent:.2f}% (volume weighted)")

        if statement.card_breakdown:
            lines.append("")
            lines.append("  Card Breakdown:")
            shares = card_volume_shares(statement)
            for key, entry in statement.card_breakdown.items():
                lines.append(
                    f"    • {key:<24} {_money(entry.volume):>14}  "
                    f"{shares[key]:5.1f}%  {entry.rate * 100:.2f}% + {_money(entry.per_transaction_fee)}"
                )

        lines.append("")
        lines.append("  Projected Cost:")
        for component, amount in projection.breakdown.items():
            label = BREAKDOWN_LABELS.get(component, component)
            lines.append(f"    • {label:<28} {_money(amount):>14}")
        lines.append(
            f"    = {'Total':<28} {_money(projection.total_cost):>14}  "
            f"({projection.effective_rate_percent:.2f}% effective)"
        )

        if projection.tier_volumes:
            lines.append("")
            lines.append("  Tier Volumes:")
            for tier, volume in projection.tier_volumes.items():
                label = BREAKDOWN_LABELS.get(tier, tier)
                lines.append(f"    • {label:<28} {_money(volume):>14}")

        lines.append("")
        lines.append(f"  Est. transactions:   {projection.estimated_transactions:,}")
        lines.append(f"  Est. interchange:    {_money(projection.estimated_interchange)}")
        lines.append(f"  Monthly profit:      {_money(report.monthly_profit)}")
        lines.append(f"  Annual profit (ARR): {_money(report.annual_profit)}")
        lines.append(f"  Merchant savings:    {_signed_money(report.monthly_savings)} / month")
        lines.append(f"                       {_signed_money(report.annual_savings)} / year")

        notes = projection_notes(report)
        if notes:
            lines.append("")
            lines.append("  Notes:")
            for note in notes:
                lines.append(f"    • {note}")

        lines.append("")
        lines.append(SEPARATOR)
        lines.append("")
        return "\n".join(lines)
    except Exception as exc:
        logger.error(
            "explain_format_error | error_type=%s | error=%s",
            type(exc).__name__,
            exc,
            exc_info=True,
        )
        return (
            "\n"
            + SEPARATOR
            + "\n"
            + "  PROJECTION FORMAT ERROR\n"
            + SEPARATOR
            + "\n\n"
            + f"  Error: {type(exc).__name__}: {exc}\n\n"
            + SEPARATOR
            + "\n"
        )


def format_comparison(results: dict[PricingModel, ProjectionResult], current_cost: float) -> str:
    """One row per pricing model: cost, effective rate, profit, savings."""
    lines = ["", SEPARATOR, "  Pricing Model Comparison", SEPARATOR, ""]
    lines.append(f"  {'Model':<18} {'Cost':>11} {'Rate':>7} {'Profit':>11} {'Savings':>12}")
    lines.append(f"  {'─' * 18} {'─' * 11} {'─' * 7} {'─' * 11} {'─' * 12}")
    for model, result in results.items():
        lines.append(
            f"  {MODEL_NAMES[model]:<18} {_money(result.total_cost):>11} "
            f"{result.effective_rate_percent:>6.2f}% {_money(result.profit):>11} "
            f"{_signed_money(current_cost - result.total_cost):>12}"
        )
    lines.extend(["", SEPARATOR, ""])
    return "\n".join(lines)


def format_projection_json(report: ProjectionReport | None) -> dict:
    """Format a ProjectionReport as a structured JSON-compatible dictionary."""
    if report is None:
        logger.error("explain_json_input_error | report_none=True | fallback=error_payload")
        return {
            "status": "error",
            "statement": None,
            "projection": None,
            "comparison": None,
            "notes": ["No projection available"],
        }

    statement = report.statement
    return {
        "status": "ok",
        "statement": statement.model_dump(by_alias=True, mode="json"),
        "projection": report.projection.model_dump(by_alias=True, mode="json"),
        "comparison": {
            "currentCost": round(report.current_cost, 2),
            "monthlySavings": round(report.monthly_savings, 2),
            "annualSavings": round(report.annual_savings, 2),
            "monthlyProfit": round(report.monthly_profit, 2),
            "annualProfit": round(report.annual_profit, 2),
            "savesMoney": report.saves_money,
        },
        "rates": {
            "weightedRatePercent": round(report.weighted_rate_percent, 4),
            "currentEffectiveRatePercent": round(report.current_effective_rate_percent, 4),
            "cardVolumeSharePercent": {
                key: round(share, 2) for key, share in card_volume_shares(statement).items()
            },
        },
        "notes": projection_notes(report),
    }
