"""Month-by-month debt payoff simulation (avalanche and snowball)."""

import logging
import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple
from dateutil.relativedelta import relativedelta
from ..models.snapshot import Debt, DebtSettings
from .amortization import debt_minimum_payment

logger = logging.getLogger(__name__)

# Safety limit: 50 years
MAX_SIMULATION_MONTHS = 600

# Balances at or below a cent count as paid off
PAID_OFF_THRESHOLD = 0.01


class PayoffStrategy(Enum):
    """Order in which the extra payment pool is directed."""
    AVALANCHE = 'avalanche'  # Highest interest rate first
    SNOWBALL = 'snowball'  # Lowest balance first

    @classmethod
    def parse(cls, value) -> 'PayoffStrategy':
        """Accept an enum member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown payoff strategy: {value!r}") from None


@dataclass(frozen=True)
class DebtBalance:
    """State of one debt at the end of a simulated month."""
    debt_name: str
    label: str
    remaining_balance: float
    interest_paid: float  # Cumulative for this debt


@dataclass(frozen=True)
class MonthSnapshot:
    """One month of the payoff timeline."""
    month: int
    debts: Tuple[DebtBalance, ...]
    interest: float  # Interest accrued across all debts this month
    total_remaining: float


@dataclass(frozen=True)
class PaidOffMilestone:
    """A debt leaving the active set."""
    debt_name: str
    label: str
    month: int
    balance: float  # Balance at the start of the payoff month
    freed_monthly_payment: float


@dataclass(frozen=True)
class PaydownResult:
    """Complete payoff simulation for one strategy."""
    strategy: PayoffStrategy
    extra_payment: float
    timeline: Tuple[MonthSnapshot, ...]
    months_to_payoff: int
    total_interest_paid: float
    debt_free_date: date
    paid_off_milestones: Tuple[PaidOffMilestone, ...]
    payoff_order: Tuple[str, ...]
    starting_balance: float
    converged: bool = True

    @property
    def reached_max_months(self) -> bool:
        """True when the safety cap stopped the simulation."""
        return not self.converged

    @property
    def total_paid(self) -> float:
        """Principal plus interest actually paid."""
        remaining = self.timeline[-1].total_remaining if self.timeline else 0.0
        return self.starting_balance - remaining + self.total_interest_paid


@dataclass
class _Tracked:
    """Mutable working state for one debt during a simulation."""
    name: str
    label: str
    rate: float
    minimum: float
    balance: float
    interest_paid: float = 0.0
    paid_off: bool = False


def debt_names(debts: Sequence[Debt]) -> List[str]:
    """Stable identifiers for debts; repeated categories get a numeric suffix."""
    names = []
    seen = {}
    for debt in debts:
        key = debt.category.value
        seen[key] = seen.get(key, 0) + 1
        names.append(key if seen[key] == 1 else f"{key}_{seen[key]}")
    return names


def prioritize(debts: Sequence[Debt], strategy: PayoffStrategy) -> List[int]:
    """Indices of active debts in payoff priority order.

    Ties keep the original input order because sorted() is stable.
    """
    active = [i for i, d in enumerate(debts) if d.is_active]
    if strategy == PayoffStrategy.AVALANCHE:
        return sorted(active, key=lambda i: -debts[i].interest_rate)
    return sorted(active, key=lambda i: debts[i].balance)


class DebtPayoffSimulator:
    """Simulates paying down a set of debts with a fixed extra monthly payment."""

    def __init__(self, debts: Sequence[Debt], max_months: int = MAX_SIMULATION_MONTHS,
                 start_date: Optional[date] = None):
        self.debts = list(debts)
        self.names = debt_names(self.debts)
        self.max_months = max(1, int(max_months))
        self.start_date = start_date

    def simulate(self, extra_payment: float,
                 strategy: PayoffStrategy = PayoffStrategy.AVALANCHE) -> PaydownResult:
        """Run the simulation until every debt is paid or the safety cap is hit."""
        strategy = PayoffStrategy.parse(strategy)
        extra = max(0.0, extra_payment if math.isfinite(extra_payment) else 0.0)
        start = self.start_date or date.today()

        order = prioritize(self.debts, strategy)
        tracked = [
            _Tracked(
                name=self.names[i],
                label=self.debts[i].label,
                rate=self.debts[i].monthly_interest_rate,
                minimum=debt_minimum_payment(self.debts[i]),
                balance=self.debts[i].balance,
            )
            for i in order
        ]
        starting_balance = sum(t.balance for t in tracked)

        timeline: List[MonthSnapshot] = []
        milestones: List[PaidOffMilestone] = []
        total_interest = 0.0
        freed = 0.0  # Minimum payments released by debts already paid off
        month = 0

        while any(not t.paid_off for t in tracked) and month < self.max_months:
            month += 1
            pool = extra + freed
            month_interest = 0.0
            start_balances = [t.balance for t in tracked]

            # Interest on the opening balance, then the minimum payment on every active debt
            for t in tracked:
                if t.paid_off:
                    continue
                interest = t.balance * t.rate
                month_interest += interest
                t.interest_paid += interest
                owed = t.balance + interest
                payment = min(t.minimum, owed)
                t.balance = owed - payment
                # Unused minimum in the payoff month stays in this month's budget
                pool += t.minimum - payment

            # Extra pool goes to the highest-priority debt, spilling down if it clears
            for t in tracked:
                if pool <= 0:
                    break
                if t.paid_off or t.balance <= 0:
                    continue
                applied = min(pool, t.balance)
                t.balance -= applied
                pool -= applied

            for i, t in enumerate(tracked):
                if t.paid_off or t.balance > PAID_OFF_THRESHOLD:
                    continue
                t.balance = 0.0
                t.paid_off = True
                freed += t.minimum
                milestones.append(PaidOffMilestone(
                    debt_name=t.name,
                    label=t.label,
                    month=month,
                    balance=start_balances[i],
                    freed_monthly_payment=t.minimum,
                ))

            total_interest += month_interest
            timeline.append(MonthSnapshot(
                month=month,
                debts=tuple(
                    DebtBalance(t.name, t.label, max(0.0, t.balance), t.interest_paid)
                    for t in tracked
                ),
                interest=month_interest,
                total_remaining=sum(max(0.0, t.balance) for t in tracked),
            ))

        converged = all(t.paid_off for t in tracked)
        if not converged:
            logger.warning(
                "%s simulation did not converge within %d months; %.2f still owed",
                strategy.value, self.max_months, timeline[-1].total_remaining
            )
        else:
            logger.debug(
                "%s: %d debts paid in %d months, %.2f interest",
                strategy.value, len(tracked), month, total_interest
            )

        return PaydownResult(
            strategy=strategy,
            extra_payment=extra,
            timeline=tuple(timeline),
            months_to_payoff=month,
            total_interest_paid=total_interest,
            debt_free_date=start + relativedelta(months=month),
            paid_off_milestones=tuple(milestones),
            payoff_order=tuple(m.debt_name for m in milestones),
            starting_balance=starting_balance,
            converged=converged,
        )

    def minimum_only(self) -> PaydownResult:
        """Baseline with no extra payment beyond the cascade of freed minimums."""
        return self.simulate(0.0, PayoffStrategy.AVALANCHE)


def simulate(debts: Sequence[Debt], extra_payment: float,
             strategy: PayoffStrategy = PayoffStrategy.AVALANCHE,
             start_date: Optional[date] = None,
             max_months: int = MAX_SIMULATION_MONTHS) -> PaydownResult:
    """Simulate paying off the active debts under one strategy."""
    simulator = DebtPayoffSimulator(debts, max_months=max_months, start_date=start_date)
    return simulator.simulate(extra_payment, strategy)


def compute_extra_payment(debt_settings: DebtSettings, monthly_cash_flow: float) -> float:
    """Extra monthly debt payment from the aggressiveness setting and surplus cash."""
    aggressiveness = max(0.0, min(100.0, debt_settings.aggressiveness))
    cash_flow = max(0.0, monthly_cash_flow)
    return float(math.floor(cash_flow * (aggressiveness / 100) + 0.5))
