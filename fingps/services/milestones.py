"""Financial milestone progression and snapshot metrics."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
from ..models.snapshot import Debt, DebtCategory, FinancialSnapshot
from .amortization import estimate_monthly_payment
from .tax_calculator import CONTRIBUTION_LIMITS_2025

logger = logging.getLogger(__name__)

HIGH_INTEREST_RATE = 7.0
LOW_INTEREST_RATE = 4.0
MIN_EMERGENCY_MONTHS = 3  # Full fund counts as started from here
HEALTHY_DTI = 20
MAX_DTI = 36


class MilestoneAction(Enum):
    """The ten milestones, in the order they are worked through."""
    BUDGET_ESSENTIALS = 'BUDGET_ESSENTIALS'
    STARTER_EMERGENCY_FUND = 'STARTER_EMERGENCY_FUND'
    EMPLOYER_MATCH = 'EMPLOYER_MATCH'
    HIGH_INTEREST_DEBT = 'HIGH_INTEREST_DEBT'
    HSA_ROTH = 'HSA_ROTH'
    FULL_EMERGENCY_FUND = 'FULL_EMERGENCY_FUND'
    MODERATE_INTEREST_DEBT = 'MODERATE_INTEREST_DEBT'
    MAX_RETIREMENT = 'MAX_RETIREMENT'
    TAXABLE_INVESTING = 'TAXABLE_INVESTING'
    LOW_INTEREST_DEBT = 'LOW_INTEREST_DEBT'


class MilestoneStatus(Enum):
    COMPLETED = 'COMPLETED'
    IN_PROGRESS = 'IN_PROGRESS'
    NOT_STARTED = 'NOT_STARTED'
    NOT_APPLICABLE = 'NOT_APPLICABLE'


class Fragility(Enum):
    FRAGILE = 'FRAGILE'
    MODERATE = 'MODERATE'
    SOLID = 'SOLID'


# Lower rank = evaluated and displayed first
RANKS: Dict[MilestoneAction, int] = {
    action: rank for rank, action in enumerate(MilestoneAction, start=1)
}

# A milestone stays NOT_STARTED until its prerequisite's own condition is met,
# regardless of how that prerequisite is itself gated
PREREQUISITES: Dict[MilestoneAction, MilestoneAction] = {
    MilestoneAction.HSA_ROTH: MilestoneAction.HIGH_INTEREST_DEBT,
    MilestoneAction.FULL_EMERGENCY_FUND: MilestoneAction.HIGH_INTEREST_DEBT,
    MilestoneAction.MODERATE_INTEREST_DEBT: MilestoneAction.FULL_EMERGENCY_FUND,
    MilestoneAction.MAX_RETIREMENT: MilestoneAction.FULL_EMERGENCY_FUND,
    MilestoneAction.TAXABLE_INVESTING: MilestoneAction.FULL_EMERGENCY_FUND,
}

STEP_METADATA: Dict[MilestoneAction, Tuple[str, str]] = {
    MilestoneAction.BUDGET_ESSENTIALS: (
        'Cover Your Essentials',
        'Cover basic survival costs before any investing - food, utilities, shelter, transportation.'),
    MilestoneAction.STARTER_EMERGENCY_FUND: (
        'Starter Emergency Fund',
        'Save 1 month of living expenses as a buffer against unexpected costs.'),
    MilestoneAction.EMPLOYER_MATCH: (
        'Get Your Employer Match',
        "Contribute enough to get 100% of the employer match - it's free money."),
    MilestoneAction.HIGH_INTEREST_DEBT: (
        'Eliminate High-Interest Debt',
        'Destroy any debt with an interest rate of 7% or more using the avalanche method.'),
    MilestoneAction.HSA_ROTH: (
        'Max HSA & Roth IRA',
        'Max out your HSA (triple tax advantage) and Roth IRA for tax-free growth.'),
    MilestoneAction.FULL_EMERGENCY_FUND: (
        'Full Emergency Fund',
        'Build 3-6 months of liquid cash reserves (adjust based on job stability).'),
    MilestoneAction.MODERATE_INTEREST_DEBT: (
        'Moderate Interest Debt',
        'Optional: Pay off 4-7% debt only if it helps you sleep at night.'),
    MilestoneAction.MAX_RETIREMENT: (
        'Max All Retirement Accounts',
        'Maximize all tax-advantaged retirement space (401k, 403b, etc.).'),
    MilestoneAction.TAXABLE_INVESTING: (
        'Taxable Brokerage Investing',
        'Hyper-accumulate in taxable accounts for early retirement bridge.'),
    MilestoneAction.LOW_INTEREST_DEBT: (
        'Low-Interest Debt',
        'Never pay extra on debt below 4% - invest the difference instead.'),
}


@dataclass(frozen=True)
class StepReasoning:
    """Why a milestone matters and what to do about it."""
    why: str
    action: str


@dataclass(frozen=True)
class Milestone:
    """One evaluated milestone."""
    action: MilestoneAction
    rank: int
    title: str
    description: str
    status: MilestoneStatus
    progress: Optional[int] = None
    target_amount: Optional[float] = None
    current_amount: Optional[float] = None
    prerequisite: Optional[MilestoneAction] = None
    reasoning: Optional[StepReasoning] = None

    @property
    def is_actionable(self) -> bool:
        """Whether this milestone still needs work."""
        return self.status in (MilestoneStatus.IN_PROGRESS, MilestoneStatus.NOT_STARTED)


@dataclass(frozen=True)
class Metrics:
    """Aggregate health metrics for a snapshot."""
    total_assets: float
    total_debts: float
    net_worth: float
    monthly_debt_payments: float
    debt_to_income: int
    emergency_months: float
    fragility: Fragility
    savings_rate: int
    monthly_savings: float


@dataclass
class FinancialSummary:
    """Plain-language debrief."""
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    insights: List[str] = field(default_factory=list)


# ==================== AGGREGATES ====================

def total_assets(snapshot: FinancialSnapshot) -> float:
    """Sum of the eight investment buckets."""
    return snapshot.investments.total


def total_debts(snapshot: FinancialSnapshot) -> float:
    """Sum of all debt balances."""
    return sum(d.balance for d in snapshot.debts)


def debts_by_rate(debts: Sequence[Debt], min_rate: float,
                  max_rate: Optional[float] = None) -> List[Debt]:
    """Non-mortgage debts with a balance whose rate falls in [min_rate, max_rate)."""
    result = []
    for d in debts:
        if d.category == DebtCategory.MORTGAGE or d.balance <= 0:
            continue
        if d.interest_rate < min_rate:
            continue
        if max_rate is not None and d.interest_rate >= max_rate:
            continue
        result.append(d)
    return result


def high_interest_total(debts: Sequence[Debt]) -> float:
    return sum(d.balance for d in debts_by_rate(debts, HIGH_INTEREST_RATE))


def moderate_interest_total(debts: Sequence[Debt]) -> float:
    return sum(d.balance for d in debts_by_rate(debts, LOW_INTEREST_RATE, HIGH_INTEREST_RATE))


def monthly_debt_payments(debts: Sequence[Debt]) -> float:
    """Estimated monthly payments across all debts."""
    return sum(estimate_monthly_payment(d.balance, d.interest_rate, d.category) for d in debts)


def fragility_rating(emergency_months: float) -> Fragility:
    """FRAGILE below 3 months of expenses, SOLID from 6."""
    if emergency_months < 3:
        return Fragility.FRAGILE
    if emergency_months < 6:
        return Fragility.MODERATE
    return Fragility.SOLID


def calculate_metrics(snapshot: FinancialSnapshot) -> Metrics:
    """Calculate aggregate metrics for a snapshot."""
    general = snapshot.general
    assets = total_assets(snapshot)
    debts = total_debts(snapshot)
    payments = monthly_debt_payments(snapshot.debts)

    monthly_gross = general.annual_income / 12
    dti = round_half_up(payments / monthly_gross * 100) if monthly_gross > 0 else 0

    # A zero expense would make the ratio meaningless
    monthly_expense = general.monthly_expense or 1
    emergency_months = snapshot.investments.savings / monthly_expense

    monthly_savings = general.monthly_take_home - general.monthly_expense
    savings_rate = (round_half_up(monthly_savings / general.monthly_take_home * 100)
                    if general.monthly_take_home > 0 else 0)

    return Metrics(
        total_assets=assets,
        total_debts=debts,
        net_worth=assets - debts,
        monthly_debt_payments=float(round_half_up(payments)),
        debt_to_income=dti,
        emergency_months=round_half_up(emergency_months * 10) / 10,
        fragility=fragility_rating(emergency_months),
        savings_rate=savings_rate,
        monthly_savings=monthly_savings,
    )


def round_half_up(value: float) -> int:
    """Round like a calculator rather than to even."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


# ==================== MILESTONES ====================

class MilestoneEngine:
    """Evaluates the ranked milestones against a snapshot."""

    def __init__(self, prerequisites: Optional[Dict[MilestoneAction, MilestoneAction]] = None):
        self.prerequisites = dict(PREREQUISITES if prerequisites is None else prerequisites)
        for action, required in self.prerequisites.items():
            if RANKS[required] >= RANKS[action]:
                raise ValueError(f"{action.value} cannot depend on later milestone {required.value}")

    def evaluate(self, snapshot: FinancialSnapshot) -> List[Milestone]:
        """Evaluate every milestone in rank order."""
        metrics = calculate_metrics(snapshot)
        own: Dict[MilestoneAction, MilestoneStatus] = {}
        milestones = []

        for action in sorted(MilestoneAction, key=RANKS.get):
            own[action] = status = self._own_status(action, snapshot)
            # Gate on the prerequisite's own condition, not on its gated status
            required = self.prerequisites.get(action)
            if required is not None and own[required] != MilestoneStatus.COMPLETED:
                status = MilestoneStatus.NOT_STARTED

            target, current = self._amounts(action, snapshot)
            progress = None
            if target is not None and current is not None and target > 0:
                progress = min(100, round_half_up(current / target * 100))

            title, description = STEP_METADATA[action]
            milestones.append(Milestone(
                action=action,
                rank=RANKS[action],
                title=title,
                description=description,
                status=status,
                progress=progress,
                target_amount=target,
                current_amount=current,
                prerequisite=required,
                reasoning=step_reasoning(action, snapshot, metrics),
            ))

        return milestones

    def next_step(self, snapshot: FinancialSnapshot) -> Optional[Milestone]:
        """Lowest-ranked milestone that still needs work."""
        for milestone in self.evaluate(snapshot):
            if milestone.is_actionable:
                return milestone
        return None

    # ---- own status, before prerequisite gating ----

    def _own_status(self, action: MilestoneAction, snapshot: FinancialSnapshot) -> MilestoneStatus:
        general = snapshot.general
        expense = general.monthly_expense
        savings = snapshot.investments.savings

        if action == MilestoneAction.BUDGET_ESSENTIALS:
            if general.annual_income > 0 and expense > 0:
                return MilestoneStatus.COMPLETED
            return MilestoneStatus.IN_PROGRESS

        if action == MilestoneAction.STARTER_EMERGENCY_FUND:
            if expense > 0 and savings >= expense:
                return MilestoneStatus.COMPLETED
            if savings > 0:
                return MilestoneStatus.IN_PROGRESS
            return MilestoneStatus.NOT_STARTED

        if action == MilestoneAction.EMPLOYER_MATCH:
            fire = snapshot.fire_settings
            if not fire.has_any_match:
                return MilestoneStatus.NOT_APPLICABLE
            if fire.all_matches_captured:
                return MilestoneStatus.COMPLETED
            return MilestoneStatus.IN_PROGRESS

        if action == MilestoneAction.HIGH_INTEREST_DEBT:
            if high_interest_total(snapshot.debts) == 0:
                return MilestoneStatus.COMPLETED
            return MilestoneStatus.IN_PROGRESS

        if action == MilestoneAction.HSA_ROTH:
            inv = snapshot.investments
            if inv.roth_ira > 0 or inv.ira > 0 or inv.four_oh_one_k > 0:
                return MilestoneStatus.IN_PROGRESS
            return MilestoneStatus.NOT_STARTED

        if action == MilestoneAction.FULL_EMERGENCY_FUND:
            months = snapshot.fire_settings.emergency_fund_months
            if expense > 0 and savings >= expense * months:
                return MilestoneStatus.COMPLETED
            if expense > 0 and savings >= expense * MIN_EMERGENCY_MONTHS:
                return MilestoneStatus.IN_PROGRESS
            return MilestoneStatus.NOT_STARTED

        if action == MilestoneAction.MODERATE_INTEREST_DEBT:
            if moderate_interest_total(snapshot.debts) == 0:
                return MilestoneStatus.COMPLETED
            return MilestoneStatus.IN_PROGRESS

        if action == MilestoneAction.MAX_RETIREMENT:
            return MilestoneStatus.IN_PROGRESS

        if action == MilestoneAction.TAXABLE_INVESTING:
            if snapshot.investments.stocks_bonds > 0:
                return MilestoneStatus.IN_PROGRESS
            return MilestoneStatus.NOT_STARTED

        # Debt below 4% is cheaper than typical investment returns
        return MilestoneStatus.NOT_APPLICABLE

    def _amounts(self, action: MilestoneAction,
                 snapshot: FinancialSnapshot) -> Tuple[Optional[float], Optional[float]]:
        expense = snapshot.general.monthly_expense
        savings = snapshot.investments.savings

        if action == MilestoneAction.STARTER_EMERGENCY_FUND:
            return expense, min(savings, expense)
        if action == MilestoneAction.FULL_EMERGENCY_FUND:
            return expense * snapshot.fire_settings.emergency_fund_months, savings
        if action == MilestoneAction.HIGH_INTEREST_DEBT:
            return high_interest_total(snapshot.debts), 0.0
        return None, None


def step_reasoning(action: MilestoneAction, snapshot: FinancialSnapshot,
                   metrics: Optional[Metrics] = None) -> StepReasoning:
    """Explanation and concrete next action for one milestone."""
    metrics = metrics or calculate_metrics(snapshot)
    expense = snapshot.general.monthly_expense
    savings = snapshot.investments.savings

    if action == MilestoneAction.BUDGET_ESSENTIALS:
        return StepReasoning(
            why=("Before any investing or debt payoff, basic survival needs must be covered. "
                 "This is the stable foundation everything else builds upon."),
            action=("Track your spending for one month to see where your money goes. Make sure "
                    "housing, utilities, food and transportation are covered first."),
        )

    if action == MilestoneAction.STARTER_EMERGENCY_FUND:
        return StepReasoning(
            why=("A starter emergency fund keeps unexpected expenses from pushing you deeper "
                 "into debt. Even a small buffer breaks the paycheck-to-paycheck cycle."),
            action=(f"Save {_short_currency(expense)} (1 month of expenses). You currently have "
                    f"{_short_currency(min(savings, expense))} toward this goal."),
        )

    if action == MilestoneAction.EMPLOYER_MATCH:
        percent = snapshot.fire_settings.four_oh_one_k_match_percent
        return StepReasoning(
            why=("An employer match is an immediate 50-100% return on your contribution. "
                 "Few financial benefits are worth more."),
            action=(f"Contribute at least {percent:g}% of your salary to capture the full match. "
                    f"This comes before paying extra on any debt."),
        )

    if action == MilestoneAction.HIGH_INTEREST_DEBT:
        toxic = debts_by_rate(snapshot.debts, HIGH_INTEREST_RATE)
        top_rate = max((d.interest_rate for d in toxic), default=0)
        return StepReasoning(
            why=(f"Debt above {HIGH_INTEREST_RATE:g}% usually grows faster than investments return. "
                 f"Every dollar paid toward {top_rate:g}% debt earns a guaranteed {top_rate:g}%."),
            action=(f"Attack {_short_currency(sum(d.balance for d in toxic))} in high-interest debt "
                    f"with the avalanche method, highest rate first."),
        )

    if action == MilestoneAction.HSA_ROTH:
        return StepReasoning(
            why=("An HSA is tax-free going in, growing and coming out for medical costs. A Roth IRA "
                 "grows tax-free and stays flexible for early retirees."),
            action=(f"Max your HSA ({_short_currency(CONTRIBUTION_LIMITS_2025['hsa_individual'])}/year) "
                    f"if eligible, then your Roth IRA "
                    f"({_short_currency(CONTRIBUTION_LIMITS_2025['ira'])}/year). Unused room does not "
                    f"carry over."),
        )

    if action == MilestoneAction.FULL_EMERGENCY_FUND:
        months = snapshot.fire_settings.emergency_fund_months
        return StepReasoning(
            why=("A full emergency fund absorbs job loss, medical bills and other large shocks "
                 "without touching investments."),
            action=(f"Build savings to {_short_currency(expense * months)} ({months} months of expenses). "
                    f"You have {_short_currency(savings)}, covering {metrics.emergency_months} months."),
        )

    if action == MilestoneAction.MODERATE_INTEREST_DEBT:
        moderate = moderate_interest_total(snapshot.debts)
        return StepReasoning(
            why=(f"Debt between {LOW_INTEREST_RATE:g}% and {HIGH_INTEREST_RATE:g}% is a judgment call. "
                 f"Investing may win on paper, but being debt-free buys flexibility."),
            action=(f"Consider paying off {_short_currency(moderate)} in moderate-interest debt if the "
                    f"peace of mind matters to you. Otherwise invest the difference."),
        )

    if action == MilestoneAction.MAX_RETIREMENT:
        return StepReasoning(
            why=("Tax-advantaged space is limited and does not roll over. Maxing your 401(k) cuts "
                 "this year's tax bill while compounding for decades."),
            action=(f"Raise 401(k) contributions toward the "
                    f"{_short_currency(CONTRIBUTION_LIMITS_2025['401k'])}/year limit. Your current "
                    f"balance is {_short_currency(snapshot.investments.four_oh_one_k)}."),
        )

    if action == MilestoneAction.TAXABLE_INVESTING:
        return StepReasoning(
            why=("Once tax-advantaged accounts are full, a taxable brokerage account can be "
                 "reached before age 59.5 without penalties."),
            action=("Open a taxable brokerage account and invest in low-cost index funds. It becomes "
                    "the bridge to early retirement."),
        )

    return StepReasoning(
        why=(f"Debt below {LOW_INTEREST_RATE:g}% costs less than typical investment returns, "
             f"so paying it early loses money on average."),
        action="Keep making minimum payments on low-interest debt and invest the difference.",
    )


_default_engine = MilestoneEngine()


def get_milestones(snapshot: FinancialSnapshot) -> List[Milestone]:
    """All milestones with status, ordered by rank."""
    return _default_engine.evaluate(snapshot)


def get_next_milestone(snapshot: FinancialSnapshot) -> Optional[Milestone]:
    """The next recommended action, or None when nothing is left."""
    return _default_engine.next_step(snapshot)


# ==================== SUMMARY ====================

def _short_currency(amount: float) -> str:
    if abs(amount) >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if abs(amount) >= 1000:
        return f"${amount / 1000:.0f}K"
    return f"${amount:,.0f}"


def financial_summary(snapshot: FinancialSnapshot, metrics: Optional[Metrics] = None) -> FinancialSummary:
    """Strengths, weaknesses and insights for a snapshot."""
    metrics = metrics or calculate_metrics(snapshot)
    summary = FinancialSummary()

    # Emergency fund
    months = metrics.emergency_months
    if months >= 6:
        summary.strengths.append(
            f"Strong emergency fund covering {months} months of expenses - "
            f"you're well protected against unexpected events.")
    elif months >= 3:
        summary.insights.append(
            f"Your emergency fund covers {months} months. "
            f"Consider building to 6 months for full security.")
    elif months > 0:
        summary.weaknesses.append(
            f"Emergency fund only covers {months} months of expenses. Aim for 3-6 months minimum.")
    else:
        summary.weaknesses.append(
            "No emergency fund detected. This is your most urgent priority - "
            "aim for 1 month of expenses first.")

    # Debt-to-income
    dti = metrics.debt_to_income
    if dti == 0:
        summary.strengths.append("Zero debt payments - you have maximum flexibility with your income.")
    elif dti <= HEALTHY_DTI:
        summary.strengths.append(
            f"Healthy debt-to-income ratio of {dti}% - well below the recommended {MAX_DTI}% threshold.")
    elif dti <= MAX_DTI:
        summary.insights.append(
            f"Debt-to-income of {dti}% is manageable but approaching the {MAX_DTI}% caution zone.")
    else:
        summary.weaknesses.append(
            f"High debt-to-income ratio of {dti}% exceeds the {MAX_DTI}% threshold. "
            f"Debt reduction should be prioritized.")

    # Savings rate
    rate = metrics.savings_rate
    if rate >= 25:
        summary.strengths.append(
            f"Excellent savings rate of {rate}% - you're on track for early financial independence.")
    elif rate >= 15:
        summary.insights.append(
            f"Savings rate of {rate}% is solid. Increasing to 25%+ would accelerate your FIRE timeline.")
    elif rate > 0:
        summary.weaknesses.append(
            f"Savings rate of {rate}% is below the 15% minimum recommended for retirement.")
    else:
        summary.weaknesses.append(
            "Negative or zero cash flow - you're spending more than you earn. "
            "This needs immediate attention.")

    # Net worth
    if metrics.net_worth > snapshot.general.annual_income * 2:
        summary.strengths.append(
            f"Net worth of {_short_currency(metrics.net_worth)} is over 2x your annual income.")
    elif metrics.net_worth > 0:
        summary.insights.append(
            f"Positive net worth of {_short_currency(metrics.net_worth)}. "
            f"Continue building assets while managing debt.")
    else:
        summary.weaknesses.append(
            "Negative net worth means debts exceed assets. Focus on debt reduction and asset building.")

    # High-interest debt
    toxic = debts_by_rate(snapshot.debts, HIGH_INTEREST_RATE)
    if toxic:
        names = ', '.join(d.label for d in toxic)
        summary.weaknesses.append(
            f"{_short_currency(sum(d.balance for d in toxic))} in high-interest debt ({names}) "
            f"is costing you significantly. Prioritize paying this off.")

    # Employer match
    fire = snapshot.fire_settings
    if fire.has_any_match and fire.all_matches_captured:
        summary.strengths.append(
            "Capturing your employer match - that's free money you're not leaving on the table.")
    elif fire.has_any_match:
        summary.weaknesses.append(
            "You have an employer match available but aren't capturing all of it. "
            "Contribute enough to get the full match.")

    # Retirement horizon
    retirement = snapshot.investments.retirement_total
    years = snapshot.general.target_retirement - snapshot.general.age
    if retirement > 0 and years > 0:
        summary.insights.append(
            f"{_short_currency(retirement)} in retirement accounts with {years} years "
            f"until target retirement age.")

    return summary
