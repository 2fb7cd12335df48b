"""Avalanche vs. snowball comparison."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence
from ..models.snapshot import Debt
from .debt_payoff import (
    DebtPayoffSimulator, PaydownResult, PayoffStrategy, MAX_SIMULATION_MONTHS
)

logger = logging.getLogger(__name__)

# Interest difference thresholds used for the recommendation
CLEAR_SAVINGS_THRESHOLD = 1000
MINIMAL_SAVINGS_THRESHOLD = 100
HIGH_RATE_THRESHOLD = 15


@dataclass(frozen=True)
class ComparisonSummary:
    """Headline differences between the two strategies."""
    interest_savings: float
    months_saved: int
    recommendation: PayoffStrategy
    reason: str
    active_debt_count: int
    total_debt: float


@dataclass(frozen=True)
class StrategyComparison:
    """Both simulations plus their comparison."""
    avalanche: PaydownResult
    snowball: PaydownResult
    comparison: ComparisonSummary

    def result_for(self, strategy: PayoffStrategy) -> PaydownResult:
        """Pick the simulation for a strategy."""
        if PayoffStrategy.parse(strategy) == PayoffStrategy.SNOWBALL:
            return self.snowball
        return self.avalanche


def compare_strategies(debts: Sequence[Debt], extra_payment: float,
                       start_date: Optional[date] = None,
                       max_months: int = MAX_SIMULATION_MONTHS) -> Optional[StrategyComparison]:
    """Run avalanche and snowball with identical inputs.

    Returns None when there is no active debt to compare.
    """
    active = [d for d in debts if d.is_active]
    if not active:
        return None

    # Names come from the full slot list so they match simulate() on the same debts
    simulator = DebtPayoffSimulator(debts, max_months=max_months,
                                    start_date=start_date or date.today())
    avalanche = simulator.simulate(extra_payment, PayoffStrategy.AVALANCHE)
    snowball = simulator.simulate(extra_payment, PayoffStrategy.SNOWBALL)
    total_debt = sum(d.balance for d in active)

    if len(active) == 1:
        summary = ComparisonSummary(
            interest_savings=0.0,
            months_saved=0,
            recommendation=PayoffStrategy.AVALANCHE,
            reason='With a single debt, both methods produce identical results.',
            active_debt_count=1,
            total_debt=total_debt,
        )
        return StrategyComparison(avalanche=avalanche, snowball=snowball, comparison=summary)

    interest_savings = max(0.0, snowball.total_interest_paid - avalanche.total_interest_paid)
    months_saved = snowball.months_to_payoff - avalanche.months_to_payoff
    recommendation, reason = _recommend(active, interest_savings)

    logger.debug(
        "Compared %d debts: avalanche saves %.2f interest and %d months",
        len(active), interest_savings, months_saved
    )

    summary = ComparisonSummary(
        interest_savings=round(interest_savings, 2),
        months_saved=months_saved,
        recommendation=recommendation,
        reason=reason,
        active_debt_count=len(active),
        total_debt=total_debt,
    )
    return StrategyComparison(avalanche=avalanche, snowball=snowball, comparison=summary)


def _recommend(active: Sequence[Debt], interest_savings: float):
    """Pick a strategy from the interest gap and the debt profile."""
    if interest_savings > CLEAR_SAVINGS_THRESHOLD:
        return PayoffStrategy.AVALANCHE, (
            f'This approach could potentially save approximately ${interest_savings:,.0f} '
            f'in interest charges compared to the snowball method.'
        )
    if interest_savings < MINIMAL_SAVINGS_THRESHOLD:
        return PayoffStrategy.SNOWBALL, (
            'With minimal interest difference between methods, some people find that the '
            'psychological wins from paying off smaller debts first help maintain motivation.'
        )
    if any(d.interest_rate > HIGH_RATE_THRESHOLD for d in active):
        return PayoffStrategy.AVALANCHE, (
            'With high-interest debt present, addressing higher rates first may help '
            'reduce total interest paid over time.'
        )
    return PayoffStrategy.SNOWBALL, (
        'Some people find that building momentum with quick wins helps maintain '
        'motivation throughout the debt payoff journey.'
    )
