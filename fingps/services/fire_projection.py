"""
FIRE number and month-by-month net worth projection to target retirement.

Assets grow at fixed annual rates compounded monthly. Debts are paid at
their minimums, and every month's surplus runs through a simplified cash
flow waterfall: top up the emergency fund, then fund the flexible boxes
in the chosen order.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
from ..models.snapshot import DebtCategory, FinancialSnapshot
from .amortization import debt_minimum_payment, interest_portion, principal_portion
from .cash_flow import (
    HIGH_INTEREST_THRESHOLD, MODERATE_INTEREST_FLOOR, STARTER_EMERGENCY_FUND,
    resolve_flexible_order
)
from .tax_calculator import CONTRIBUTION_LIMITS_2025

logger = logging.getLogger(__name__)

# Annual growth rates
GROWTH_RATES = {
    'savings': 0.04,
    'investments': 0.07,
    'real_estate': 0.05,
    'car': -0.20,
    'retirement': 0.07,
}

INFLATION_RATE = 0.03

# 4% safe withdrawal rate
FIRE_MULTIPLE = 25


@dataclass(frozen=True)
class ProjectionYear:
    """Balances at the start of one projected year."""
    year: int
    age: int
    savings: float
    taxable: float
    retirement: float
    total_assets: float
    total_debts: float
    net_worth: float


@dataclass(frozen=True)
class FireProjection:
    """FIRE target and the projected path toward it."""
    annual_expenses: float
    fire_number: float
    current_age: int
    retirement_age: int
    yearly: List[ProjectionYear]
    fire_month: Optional[int]  # First month net worth reaches the FIRE number

    @property
    def current_net_worth(self) -> float:
        return self.yearly[0].net_worth

    @property
    def projected_net_worth(self) -> float:
        return self.yearly[-1].net_worth

    @property
    def shortfall(self) -> float:
        """Amount still missing at retirement; negative means a surplus."""
        return self.fire_number - self.projected_net_worth

    @property
    def on_track(self) -> bool:
        return self.projected_net_worth >= self.fire_number

    @property
    def fire_age(self) -> Optional[float]:
        if self.fire_month is None:
            return None
        return round(self.current_age + self.fire_month / 12, 2)


def fire_annual_expenses(snapshot: FinancialSnapshot) -> float:
    """Custom FIRE spending target when set, else current expenses annualized."""
    target = snapshot.fire_settings.fire_annual_expense_target
    if target > 0:
        return target
    return snapshot.general.monthly_expense * 12


def fire_number(snapshot: FinancialSnapshot) -> float:
    """Net worth needed to live off a 4% withdrawal."""
    return fire_annual_expenses(snapshot) * FIRE_MULTIPLE


def _monthly_rate(annual: float) -> float:
    return (1 + annual) ** (1 / 12) - 1


@dataclass
class _Debt:
    category: DebtCategory
    rate: float
    minimum: float
    balance: float


class _Accounts:
    """Mutable balances for one projection run."""

    def __init__(self, snapshot: FinancialSnapshot):
        inv = snapshot.investments
        self.savings = inv.savings
        self.stocks_bonds = inv.stocks_bonds
        self.real_estate = inv.real_estate
        self.car_value = inv.car_value
        self.ira = inv.ira
        self.roth_ira = inv.roth_ira
        self.four_oh_one_k = inv.four_oh_one_k
        self.other = inv.other
        self.debts = [
            _Debt(d.category, d.interest_rate, debt_minimum_payment(d), d.balance)
            for d in snapshot.debts if d.is_active
        ]

    @property
    def retirement(self) -> float:
        return self.ira + self.roth_ira + self.four_oh_one_k

    @property
    def total_assets(self) -> float:
        return (self.savings + self.stocks_bonds + self.real_estate + self.car_value +
                self.retirement + self.other)

    @property
    def total_debts(self) -> float:
        return sum(d.balance for d in self.debts)

    @property
    def net_worth(self) -> float:
        return self.total_assets - self.total_debts

    def consumer_minimums(self) -> float:
        """Minimums still owed on non-mortgage debts."""
        return sum(d.minimum for d in self.debts
                   if d.balance > 0 and d.category != DebtCategory.MORTGAGE)

    def grow(self, rates: dict):
        self.savings *= 1 + rates['savings']
        self.stocks_bonds *= 1 + rates['investments']
        self.real_estate *= 1 + rates['real_estate']
        self.car_value = max(0.0, self.car_value * (1 + rates['car']))
        self.ira *= 1 + rates['retirement']
        self.roth_ira *= 1 + rates['retirement']
        self.four_oh_one_k *= 1 + rates['retirement']
        self.other *= 1 + rates['investments']

    def pay_minimums(self):
        for debt in self.debts:
            if debt.balance <= 0:
                continue
            interest = interest_portion(debt.balance, debt.rate)
            debt.balance -= min(principal_portion(debt.minimum, interest), debt.balance)

    def pay_extra(self, amount: float, in_band: Callable[[float], bool]) -> float:
        """Prepay non-mortgage debts whose rate is in a band, highest rate first.

        Returns the amount actually used.
        """
        used = 0.0
        eligible = [d for d in self.debts
                    if d.balance > 0 and d.category != DebtCategory.MORTGAGE and in_band(d.rate)]
        for debt in sorted(eligible, key=lambda d: -d.rate):
            payment = min(amount - used, debt.balance)
            debt.balance -= payment
            used += payment
            if used >= amount:
                break
        return used


def _year_point(month: int, current_age: int, accounts: _Accounts) -> ProjectionYear:
    return ProjectionYear(
        year=month // 12,
        age=current_age + month // 12,
        savings=round(accounts.savings, 2),
        taxable=round(accounts.stocks_bonds, 2),
        retirement=round(accounts.retirement, 2),
        total_assets=round(accounts.total_assets, 2),
        total_debts=round(accounts.total_debts, 2),
        net_worth=round(accounts.net_worth, 2),
    )


def project_fire(snapshot: FinancialSnapshot,
                 flexible_order: Optional[Sequence[str]] = None) -> Optional[FireProjection]:
    """Project net worth month by month until the target retirement age.

    Returns None when the target retirement age is not in the future.
    """
    general = snapshot.general
    months_total = (general.target_retirement - general.age) * 12
    if months_total <= 0:
        logger.warning("Target retirement age %d is not after current age %d",
                       general.target_retirement, general.age)
        return None

    order = resolve_flexible_order(flexible_order)
    overrides = snapshot.fire_settings.allocations
    contributions = snapshot.tax_destiny.allocations
    ef_months = snapshot.fire_settings.emergency_fund_months
    target = fire_number(snapshot)
    rates = {key: _monthly_rate(annual) for key, annual in GROWTH_RATES.items()}

    accounts = _Accounts(snapshot)
    starting_minimums = accounts.consumer_minimums()
    yearly: List[ProjectionYear] = []
    fire_month = None
    ira_ytd = four_oh_one_k_ytd = 0.0

    for month in range(months_total + 1):
        if fire_month is None and target > 0 and accounts.net_worth >= target:
            fire_month = month
        if month % 12 == 0 or month == months_total:
            yearly.append(_year_point(month, general.age, accounts))
        if month == months_total:
            break

        if month % 12 == 0:
            ira_ytd = four_oh_one_k_ytd = 0.0

        accounts.grow(rates)
        accounts.pay_minimums()

        # Minimums on paid-off debts become spendable
        freed = starting_minimums - accounts.consumer_minimums()
        remaining = general.monthly_cash_flow + freed
        if remaining <= 0:
            continue

        # Emergency fund target rises with inflation
        inflation = (1 + INFLATION_RATE) ** (month // 12)
        ef_target = general.monthly_expense * inflation * ef_months + STARTER_EMERGENCY_FUND
        top_up = min(remaining, max(0.0, ef_target - accounts.savings))
        accounts.savings += top_up
        remaining -= top_up

        for key in order:
            if remaining <= 0:
                break
            override = getattr(overrides, key)
            cap = remaining if override is None else min(remaining, override)

            if key == 'high_interest_debt':
                remaining -= accounts.pay_extra(cap, lambda rate: rate > HIGH_INTEREST_THRESHOLD)
            elif key == 'moderate_debt':
                remaining -= accounts.pay_extra(
                    cap, lambda rate: MODERATE_INTEREST_FLOOR <= rate <= HIGH_INTEREST_THRESHOLD)
            elif key == 'hsa_ira':
                hsa = min(cap, contributions.hsa)
                accounts.stocks_bonds += hsa
                cap -= hsa
                room = max(0.0, CONTRIBUTION_LIMITS_2025['ira'] - ira_ytd)
                traditional = min(cap, contributions.traditional_ira, room)
                accounts.ira += traditional
                cap -= traditional
                roth = min(cap, contributions.roth_ira, room - traditional)
                accounts.roth_ira += roth
                ira_ytd += traditional + roth
                remaining -= hsa + traditional + roth
            elif key == 'max_401k':
                room = max(0.0, CONTRIBUTION_LIMITS_2025['401k'] - four_oh_one_k_ytd)
                amount = min(cap, contributions.four_oh_one_k, room)
                accounts.four_oh_one_k += amount
                four_oh_one_k_ytd += amount
                remaining -= amount
            else:
                accounts.stocks_bonds += cap
                remaining -= cap

    logger.debug("Projected %d months: net worth %.0f vs FIRE number %.0f",
                 months_total, yearly[-1].net_worth, target)

    return FireProjection(
        annual_expenses=fire_annual_expenses(snapshot),
        fire_number=target,
        current_age=general.age,
        retirement_age=general.target_retirement,
        yearly=yearly,
        fire_month=fire_month,
    )
