"""
Budget health score and 50/30/20 analysis.

The score is a weighted 0-100 blend of five components. Each component
that falls short contributes a suggestion worth the points it would add.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from ..models.snapshot import FinancialSnapshot
from .milestones import Metrics, calculate_metrics, round_half_up

logger = logging.getLogger(__name__)

# Needs vs. wants classification of each expense category
BUDGET_TYPES: Dict[str, str] = {
    'housing': 'need',
    'food': 'need',
    'transportation': 'need',
    'utilities': 'need',
    'healthcare': 'need',
    'insurance': 'need',
    'entertainment': 'want',
    'personal': 'want',
    'education': 'want',
    'other': 'want',
}

TARGET_SAVINGS_RATE = 25
TARGET_EMERGENCY_MONTHS = 6
DTI_ZERO_SCORE = 50  # DTI at which the component bottoms out
MAX_SUGGESTIONS = 5

GRADES = [(90, 'A'), (80, 'B'), (70, 'C'), (60, 'D')]


@dataclass(frozen=True)
class BudgetBucket:
    """Share of take-home pay for one 50/30/20 bucket."""
    amount: float
    percent: int
    target: int

    @property
    def diff(self) -> int:
        return self.percent - self.target


@dataclass(frozen=True)
class BudgetRule:
    needs: BudgetBucket
    wants: BudgetBucket
    savings: BudgetBucket

    @property
    def has_data(self) -> bool:
        """Whether any category spending was entered."""
        return self.needs.amount > 0 or self.wants.amount > 0


@dataclass(frozen=True)
class ScoreComponent:
    label: str
    score: int
    weight: int
    detail: str
    ideal: str


@dataclass(frozen=True)
class Suggestion:
    text: str
    points: int
    section: Optional[str] = None  # Input section the user should revisit


@dataclass(frozen=True)
class BudgetHealth:
    score: int
    grade: str
    components: List[ScoreComponent]
    suggestions: List[Suggestion]


def _percent_of(amount: float, base: float) -> int:
    return round_half_up(amount / base * 100) if base > 0 else 0


def _clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def calculate_503020(snapshot: FinancialSnapshot, metrics: Optional[Metrics] = None) -> BudgetRule:
    """Split spending into needs, wants and savings as a share of take-home pay."""
    metrics = metrics or calculate_metrics(snapshot)
    take_home = snapshot.general.monthly_take_home

    needs = wants = 0.0
    for name, amount in snapshot.expense_categories.items():
        if amount <= 0:
            continue
        if BUDGET_TYPES.get(name) == 'need':
            needs += amount
        else:
            wants += amount

    saved = metrics.monthly_savings
    return BudgetRule(
        needs=BudgetBucket(needs, _percent_of(needs, take_home), 50),
        wants=BudgetBucket(wants, _percent_of(wants, take_home), 30),
        savings=BudgetBucket(saved, _percent_of(saved, take_home), 20),
    )


def _grade(score: int) -> str:
    for floor, grade in GRADES:
        if score >= floor:
            return grade
    return 'F'


def calculate_budget_health(snapshot: FinancialSnapshot,
                            metrics: Optional[Metrics] = None) -> BudgetHealth:
    """Weighted budget health score with a grade and the top suggestions."""
    metrics = metrics or calculate_metrics(snapshot)
    general = snapshot.general
    components: List[ScoreComponent] = []
    suggestions: List[Suggestion] = []

    # Savings rate (30%)
    rate = metrics.savings_rate
    savings_score = _clamp_score(rate / TARGET_SAVINGS_RATE * 100)
    components.append(ScoreComponent('Savings Rate', round_half_up(savings_score), 30,
                                     f"{rate}% of take-home", '25%+'))
    if savings_score < 100:
        current = max(0, rate)
        points = round_half_up((TARGET_SAVINGS_RATE - current) / TARGET_SAVINGS_RATE * 100 * 0.30)
        if points > 0:
            suggestions.append(Suggestion(
                f"Increase savings rate from {current}% to {TARGET_SAVINGS_RATE}%", points))

    # Emergency fund (20%)
    months = metrics.emergency_months
    ef_score = _clamp_score(months / TARGET_EMERGENCY_MONTHS * 100)
    components.append(ScoreComponent('Emergency Fund', round_half_up(ef_score), 20,
                                     f"{months} months covered", '6 months'))
    if ef_score < 100:
        short = max(0.0, TARGET_EMERGENCY_MONTHS - months)
        points = round_half_up(short / TARGET_EMERGENCY_MONTHS * 100 * 0.20)
        if points > 0:
            needed = round_half_up(short * general.monthly_expense)
            text = (f"Build emergency fund by ${needed:,} ({short:.1f} more months)" if needed > 0
                    else "Build emergency fund to 6 months of expenses")
            suggestions.append(Suggestion(text, points, 'investments'))

    # Debt-to-income (20%)
    dti = metrics.debt_to_income
    dti_score = _clamp_score((1 - dti / DTI_ZERO_SCORE) * 100)
    components.append(ScoreComponent('Debt-to-Income', round_half_up(dti_score), 20,
                                     f"{dti}% DTI ratio", '< 20%'))
    if dti_score < 100 and dti > 0:
        points = min(20, round_half_up(dti / DTI_ZERO_SCORE * 100 * 0.20))
        if points > 0:
            text = (f"Reduce debt-to-income ratio from {dti}% (target: below 36%)" if dti > 36
                    else f"Continue reducing debt-to-income ratio from {dti}% toward 0%")
            suggestions.append(Suggestion(text, points, 'debts'))

    # Budget balance (15%), deviation from 50/30/20
    rule = calculate_503020(snapshot, metrics)
    budget_score = 100.0
    if rule.has_data:
        deviation = abs(rule.needs.diff) + abs(rule.wants.diff) + abs(rule.savings.diff)
        budget_score = _clamp_score(100 - deviation * 2)
    detail = (f"{rule.needs.percent}/{rule.wants.percent}/{rule.savings.percent} split"
              if rule.has_data else 'Set expense categories')
    components.append(ScoreComponent('Budget Balance', round_half_up(budget_score), 15,
                                     detail, '50/30/20'))
    if budget_score < 100 and rule.has_data:
        points = round_half_up((100 - budget_score) / 100 * 15)
        if points > 0:
            if rule.needs.diff > 10:
                text = f"Reduce needs spending (currently {rule.needs.percent}%, target ~50%)"
            elif rule.wants.diff > 10:
                text = f"Reduce wants spending (currently {rule.wants.percent}%, target ~30%)"
            elif rule.savings.diff < -10:
                text = f"Increase savings (currently {rule.savings.percent}%, target ~20%)"
            else:
                text = "Adjust spending to align with the 50/30/20 guideline"
            suggestions.append(Suggestion(text, points))

    # Wealth building (15%), net worth against age * income / 10
    net_worth = metrics.net_worth
    expected = general.age * general.annual_income / 10 if general.annual_income > 0 else 0.0
    if expected > 0:
        wealth_score = _clamp_score(net_worth / expected * 100)
    else:
        wealth_score = 50.0 if net_worth > 0 else 0.0
    sign = '' if net_worth >= 0 else '-'
    components.append(ScoreComponent(
        'Wealth Building', round_half_up(wealth_score), 15,
        f"{sign}${abs(net_worth):,.0f} net worth",
        f"${expected:,.0f}" if expected > 0 else 'Positive NW',
    ))
    if wealth_score < 100 and expected > 0:
        points = round_half_up((100 - wealth_score) / 100 * 15)
        gap = expected - net_worth
        if points > 0 and gap > 0:
            suggestions.append(Suggestion(
                f"Grow net worth by ${gap:,.0f} toward age-based benchmark", points, 'investments'))

    score = round_half_up(sum(c.score * c.weight / 100 for c in components))
    suggestions.sort(key=lambda s: s.points, reverse=True)

    logger.debug("Budget health %d from %d components", score, len(components))
    return BudgetHealth(
        score=score,
        grade=_grade(score),
        components=components,
        suggestions=suggestions[:MAX_SUGGESTIONS],
    )
