"""
report.py - Merchant-facing comparison and reseller revenue metrics.

    build_report(statement, projection)       -> ProjectionReport
    revenue_metrics(monthly_revenue, customers) -> RevenueMetrics

Savings compare the projection against total_fees, which is what the
merchant actually paid the incumbent processor this period.
"""

from __future__ import annotations

from typing import Any

from logging_config import get_logger
from models import ProjectionReport, ProjectionResult, RevenueMetrics, StatementData
from normalize import coerce_count, coerce_number
from rates import current_effective_rate, weighted_rate

logger = get_logger(__name__)

MONTHS_PER_YEAR = 12


def build_report(statement: StatementData, projection: ProjectionResult) -> ProjectionReport:
    """Attach savings, annualized profit and current rates to a projection."""
    current_cost = statement.total_fees
    monthly_savings = current_cost - projection.total_cost

    report = ProjectionReport(
        statement=statement,
        projection=projection,
        current_cost=current_cost,
        monthly_savings=monthly_savings,
        annual_savings=monthly_savings * MONTHS_PER_YEAR,
        monthly_profit=projection.profit,
        annual_profit=projection.profit * MONTHS_PER_YEAR,
        weighted_rate_percent=weighted_rate(statement),
        current_effective_rate_percent=current_effective_rate(statement),
    )
    logger.debug(
        "build_report | model=%s | current_cost=%.2f | monthly_savings=%.2f | annual_profit=%.2f",
        projection.model.value,
        report.current_cost,
        report.monthly_savings,
        report.annual_profit,
    )
    return report


def revenue_metrics(monthly_revenue: Any, customers: Any) -> RevenueMetrics:
    """MRR -> ARR and ARPU. Inputs use form semantics (unparseable -> 0)."""
    mrr = float(coerce_number(monthly_revenue))
    customer_count = coerce_count(customers)
    arpu = mrr / customer_count if customer_count > 0 else 0.0
    return RevenueMetrics(
        mrr=mrr,
        arr=mrr * MONTHS_PER_YEAR,
        customers=customer_count,
        arpu=arpu,
    )
