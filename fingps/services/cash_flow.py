"""
Monthly cash-flow waterfall.

Surplus cash flows through four fixed foundation boxes, then through the
five flexible boxes in the user's chosen order. Each box takes what it
needs (or its override) and passes the rest down.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from ..models.snapshot import FinancialSnapshot, DebtCategory
from .tax_calculator import CONTRIBUTION_LIMITS_2025

logger = logging.getLogger(__name__)

STARTER_EMERGENCY_FUND = 1000

DEFAULT_FLEXIBLE_ORDER = ['high_interest_debt', 'hsa_ira', 'moderate_debt', 'max_401k', 'taxable_investing']

# Rate thresholds (percent) for the flexible debt boxes
HIGH_INTEREST_THRESHOLD = 10
MODERATE_INTEREST_FLOOR = 5

BOX_DESCRIPTIONS = {
    'high_interest_debt': ('High interest debt typically grows faster than most investments. Paying it '
                           'off provides a certain return equal to the interest rate.'),
    'hsa_ira': ('Tax-advantaged accounts that reduce taxable income now (Traditional) or provide '
                'tax-free growth (Roth). An HSA offers triple tax benefits for medical expenses.'),
    'moderate_debt': ('Moderate interest debt (excluding mortgage) still costs more than savings '
                      'accounts yield. Eliminating it frees up cash flow.'),
    'max_401k': 'Tax-deferred growth that reduces current taxable income and compounds over decades.',
    'taxable_investing': ('No contribution limits or withdrawal restrictions. Provides flexibility '
                          'and liquidity for early retirement or large purchases.'),
}


@dataclass
class WaterfallBox:
    """One step of the waterfall."""
    id: int
    key: str
    title: str
    status: str  # 'COMPLETED', 'IN_PROGRESS', 'INCOMPLETE', 'NOT_STARTED', 'NOT_APPLICABLE'
    allocated: float
    remaining: float  # Cash flow left after this box
    description: str = ""
    user_allocation: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CashFlowWaterfall:
    """Result of running the waterfall."""
    initial_cash_flow: float
    boxes: List[WaterfallBox]
    remaining_cash_flow: float
    foundation_complete: bool
    flexible_order: List[str]

    def box(self, key: str) -> Optional[WaterfallBox]:
        """Look up a box by key."""
        return next((b for b in self.boxes if b.key == key), None)

    @property
    def total_allocated(self) -> float:
        return sum(b.allocated for b in self.boxes)


def resolve_flexible_order(order: Optional[Sequence[str]]) -> List[str]:
    """Use the given order only if it is a permutation of the five box keys."""
    if order is None:
        return list(DEFAULT_FLEXIBLE_ORDER)
    order = list(order)
    if len(order) == len(DEFAULT_FLEXIBLE_ORDER) and set(order) == set(DEFAULT_FLEXIBLE_ORDER):
        return order
    logger.warning("Invalid flexible box order %r, using default", order)
    return list(DEFAULT_FLEXIBLE_ORDER)


def _foundation_boxes(snapshot: FinancialSnapshot):
    general = snapshot.general
    settings = snapshot.fire_settings
    savings = snapshot.investments.savings
    expense = general.monthly_expense

    remaining = general.monthly_cash_flow
    boxes = []

    # 1. Essentials
    essentials_ok = remaining >= 0
    boxes.append(WaterfallBox(
        id=1, key='essentials', title='Essentials',
        status='COMPLETED' if essentials_ok else 'INCOMPLETE',
        allocated=0.0, remaining=max(0.0, remaining),
        details={'message': 'Monthly expenses covered' if essentials_ok
                 else f'Shortfall: ${abs(remaining):,.0f}/mo'},
    ))
    remaining = max(0.0, remaining)

    # 2. Starter emergency fund
    starter_current = min(savings, STARTER_EMERGENCY_FUND)
    starter_needed = max(0.0, STARTER_EMERGENCY_FUND - starter_current)
    starter_ok = savings >= STARTER_EMERGENCY_FUND
    starter_alloc = 0.0 if starter_ok else min(remaining, starter_needed)
    remaining -= starter_alloc
    if starter_ok:
        starter_status = 'COMPLETED'
    else:
        starter_status = 'IN_PROGRESS' if starter_current > 0 else 'INCOMPLETE'
    boxes.append(WaterfallBox(
        id=2, key='starter_ef', title='Starter EF', status=starter_status,
        allocated=starter_alloc, remaining=remaining,
        details={'target': STARTER_EMERGENCY_FUND, 'current': starter_current, 'needed': starter_needed},
    ))

    # 3. Employer match: contribution needed is a percent of salary, capped at the annual limit
    income = general.annual_income
    hsa_monthly = 0.0
    if settings.has_hsa_match:
        hsa_monthly = min(settings.hsa_match_percent / 100 * income,
                          CONTRIBUTION_LIMITS_2025['hsa_individual']) / 12
    k401_monthly = 0.0
    if settings.has_401k_match:
        k401_monthly = min(settings.four_oh_one_k_match_percent / 100 * income,
                           CONTRIBUTION_LIMITS_2025['401k']) / 12

    needed = ((hsa_monthly if not settings.is_getting_hsa_match else 0.0) +
              (k401_monthly if not settings.is_getting_401k_match else 0.0))
    match_alloc = 0.0
    if not settings.has_any_match:
        match_status = 'NOT_APPLICABLE'
    elif settings.all_matches_captured:
        match_status = 'COMPLETED'
    else:
        match_alloc = min(remaining, needed)
        match_status = 'IN_PROGRESS' if match_alloc >= needed else 'INCOMPLETE'
        remaining -= match_alloc
    boxes.append(WaterfallBox(
        id=3, key='employer_match', title='Employer Match', status=match_status,
        allocated=match_alloc, remaining=remaining,
        details={
            'hsa_match_contrib_monthly': round(hsa_monthly),
            'four_oh_one_k_match_contrib_monthly': round(k401_monthly),
            'total_match_contrib_needed': round(needed),
        },
    ))

    # 4. Full emergency fund, counted on savings above the starter fund
    months = settings.emergency_fund_months
    ef_target = expense * months
    ef_current = min(max(0.0, savings - STARTER_EMERGENCY_FUND), ef_target)
    ef_needed = max(0.0, ef_target - ef_current)
    ef_ok = ef_current >= ef_target
    ef_alloc = 0.0 if ef_ok else min(remaining, ef_needed)
    remaining -= ef_alloc
    if ef_ok:
        ef_status = 'COMPLETED'
    else:
        ef_status = 'IN_PROGRESS' if ef_current > 0 else 'INCOMPLETE'
    boxes.append(WaterfallBox(
        id=4, key='full_ef', title='Full Emergency Fund', status=ef_status,
        allocated=ef_alloc, remaining=remaining,
        details={'months': months, 'target': ef_target, 'current': ef_current, 'needed': ef_needed},
    ))

    # Contributing toward the match counts as handled
    match_handled = match_status in ('COMPLETED', 'NOT_APPLICABLE', 'IN_PROGRESS')
    complete = essentials_ok and starter_ok and match_handled and ef_ok
    return boxes, remaining, complete


def _take(remaining: float, override: Optional[float]) -> float:
    """All remaining cash when there is no override, else at most the override."""
    if override is None:
        return remaining
    return min(remaining, override)


def _flexible_box(key: str, snapshot: FinancialSnapshot, remaining: float,
                  foundation_complete: bool) -> WaterfallBox:
    override = getattr(snapshot.fire_settings.allocations, key)
    alloc = snapshot.tax_destiny.allocations
    can_fund = foundation_complete and remaining > 0
    details: Dict[str, Any] = {}

    if key in ('high_interest_debt', 'moderate_debt'):
        if key == 'high_interest_debt':
            title = 'High-Interest Debt'
            debts = [d for d in snapshot.debts
                     if d.balance > 0 and d.interest_rate > HIGH_INTEREST_THRESHOLD]
            details['threshold'] = '>10%'
        else:
            title = 'Moderate Debt'
            debts = [d for d in snapshot.debts
                     if d.balance > 0
                     and MODERATE_INTEREST_FLOOR <= d.interest_rate <= HIGH_INTEREST_THRESHOLD
                     and d.category != DebtCategory.MORTGAGE]
            details['threshold'] = '5-10%'
        total = sum(d.balance for d in debts)
        details.update(debts=[d.label for d in debts], total_balance=total)
        done = total == 0
        allocated = _take(remaining, override) if (not done and can_fund) else 0.0
        if done:
            status = 'COMPLETED'
        else:
            status = 'IN_PROGRESS' if can_fund else 'NOT_STARTED'
        user_allocation = override

    elif key in ('hsa_ira', 'max_401k'):
        # Targets come from the tax destiny allocations
        if key == 'hsa_ira':
            title = 'HSA & IRA'
            target = alloc.hsa + alloc.traditional_ira + alloc.roth_ira
            details.update(hsa_monthly=round(alloc.hsa),
                           ira_monthly=round(alloc.traditional_ira + alloc.roth_ira))
        else:
            title = 'Max 401k'
            target = alloc.four_oh_one_k
            details['four_oh_one_k_monthly'] = round(alloc.four_oh_one_k)
        if override is not None:
            target = min(target, override)
        details['max_target'] = round(target)
        active = can_fund and target > 0
        allocated = min(remaining, target) if active else 0.0
        status = 'IN_PROGRESS' if active else 'NOT_STARTED'
        user_allocation = target

    else:
        title = 'Taxable Investing'
        details['available'] = max(0.0, remaining)
        allocated = _take(remaining, override) if can_fund else 0.0
        status = 'IN_PROGRESS' if (foundation_complete and allocated > 0) else 'NOT_STARTED'
        user_allocation = override

    allocated = max(0.0, allocated)
    return WaterfallBox(
        id=0, key=key, title=title, status=status,
        allocated=allocated, remaining=remaining - allocated,
        description=BOX_DESCRIPTIONS[key],
        user_allocation=user_allocation,
        details=details,
    )


def calculate_cash_flow_waterfall(snapshot: FinancialSnapshot,
                                  flexible_order: Optional[Sequence[str]] = None) -> CashFlowWaterfall:
    """Distribute the monthly surplus across the foundation and flexible boxes."""
    order = resolve_flexible_order(flexible_order)
    boxes, remaining, foundation_complete = _foundation_boxes(snapshot)

    for index, key in enumerate(order):
        box = _flexible_box(key, snapshot, remaining, foundation_complete)
        box.id = 5 + index
        boxes.append(box)
        remaining = box.remaining

    logger.debug("Waterfall: %d boxes, %.2f unallocated, foundation complete=%s",
                 len(boxes), remaining, foundation_complete)

    return CashFlowWaterfall(
        initial_cash_flow=snapshot.general.monthly_cash_flow,
        boxes=boxes,
        remaining_cash_flow=remaining,
        foundation_complete=foundation_complete,
        flexible_order=order,
    )
