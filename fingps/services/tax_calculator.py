"""
Tax calculation engine and optimization recommendations.

Educational estimates only, using 2025 federal tables.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from ..models.snapshot import FinancialSnapshot
from .state_tax import (
    StateTaxEstimator, StateTaxResult, NationalAverageEstimator, MsaStateTaxEstimator
)

logger = logging.getLogger(__name__)

INFINITY = float('inf')


@dataclass(frozen=True)
class TaxBracket:
    """One federal bracket: income in [min, max) taxed at rate."""
    rate: float
    min: float
    max: float


# ==================== 2025 TABLES ====================

TAX_BRACKETS_2025: Dict[str, List[TaxBracket]] = {
    'single': [
        TaxBracket(0.10, 0, 11600),
        TaxBracket(0.12, 11600, 47150),
        TaxBracket(0.22, 47150, 100525),
        TaxBracket(0.24, 100525, 191950),
        TaxBracket(0.32, 191950, 243725),
        TaxBracket(0.35, 243725, 609350),
        TaxBracket(0.37, 609350, INFINITY),
    ],
    'married': [
        TaxBracket(0.10, 0, 23200),
        TaxBracket(0.12, 23200, 94300),
        TaxBracket(0.22, 94300, 201050),
        TaxBracket(0.24, 201050, 383900),
        TaxBracket(0.32, 383900, 487450),
        TaxBracket(0.35, 487450, 731200),
        TaxBracket(0.37, 731200, INFINITY),
    ],
    'head_of_household': [
        TaxBracket(0.10, 0, 16550),
        TaxBracket(0.12, 16550, 63100),
        TaxBracket(0.22, 63100, 100500),
        TaxBracket(0.24, 100500, 191950),
        TaxBracket(0.32, 191950, 243700),
        TaxBracket(0.35, 243700, 609350),
        TaxBracket(0.37, 609350, INFINITY),
    ],
}

STANDARD_DEDUCTION_2025: Dict[str, float] = {
    'single': 14600,
    'married': 29200,
    'head_of_household': 21900,
}

CONTRIBUTION_LIMITS_2025: Dict[str, float] = {
    '401k': 23500,
    'ira': 7000,
    'hsa_individual': 4300,
    'hsa_family': 8550,
    'catch_up_50_401k': 7500,
    'catch_up_50_ira': 1000,
    'catch_up_50_hsa': 1000,
    '529_gift_exclusion': 18000,
    'tax_loss_offset': 3000,
}

ROTH_IRA_LIMITS_2025: Dict[str, Dict[str, float]] = {
    'single': {'phaseout_start': 150000, 'phaseout_end': 165000},
    'married': {'phaseout_start': 236000, 'phaseout_end': 246000},
    'head_of_household': {'phaseout_start': 150000, 'phaseout_end': 165000},
}

SOCIAL_SECURITY_WAGE_BASE = 168600
SOCIAL_SECURITY_RATE = 0.062
MEDICARE_RATE = 0.0145

CATCH_UP_AGE = 50


def normalize_filing_status(filing_status: Optional[str]) -> str:
    """Unknown or missing filing statuses are treated as single."""
    return filing_status if filing_status in TAX_BRACKETS_2025 else 'single'


def standard_deduction(filing_status: Optional[str]) -> float:
    return STANDARD_DEDUCTION_2025[normalize_filing_status(filing_status)]


# ==================== RESULTS ====================

@dataclass(frozen=True)
class FederalTaxResult:
    """Federal income tax on a taxable income."""
    tax: float
    effective_rate: float
    marginal_rate: float
    bracket: Optional[TaxBracket]


@dataclass(frozen=True)
class TaxDeductions:
    """Annual amounts that reduce taxable income."""
    four_oh_one_k: float = 0.0
    hsa: float = 0.0
    traditional_ira: float = 0.0
    charitable: float = 0.0
    tax_loss_harvest: float = 0.0

    @property
    def pre_tax_total(self) -> float:
        """Contributions that come out before AGI."""
        return self.four_oh_one_k + self.hsa + self.traditional_ira


@dataclass(frozen=True)
class TaxScenario:
    """Full annual tax picture for one set of deductions."""
    gross_income: float
    pre_tax_deductions: float
    agi: float
    standard_deduction: float
    charitable_deduction: float
    tax_loss_offset: float
    taxable_income: float
    federal_tax: float
    state_tax: float
    state_info: StateTaxResult
    fica: float
    total_tax: float
    total_income_tax: float
    effective_rate: float
    marginal_rate: float
    bracket: Optional[TaxBracket]


@dataclass(frozen=True)
class ContributionImpact:
    """Federal tax before and after a single pre-tax contribution."""
    taxable_income_before: float
    taxable_income_after: float
    tax_before: float
    tax_after: float
    savings: float
    net_cost: float
    effective_contribution_cost: float  # Fraction of each contributed dollar actually paid


@dataclass
class TaxRecommendation:
    """Tax optimization recommendation."""
    id: str
    priority: str  # 'high', 'medium', 'low'
    category: str
    title: str
    description: str
    action: str
    tax_savings: Optional[float] = None  # None when savings depend on the portfolio
    net_cost: Optional[float] = None
    limit: Optional[float] = None
    note: Optional[str] = None
    eligibility_required: bool = False


@dataclass
class CurrentTaxSituation:
    """Estimated tax position from income and take-home pay."""
    gross_income: float
    filing_status: str
    standard_deduction: float
    estimated_pre_tax_contributions: float
    taxable_income: float
    federal_tax: float
    state_tax: StateTaxResult
    fica: float
    total_tax: float
    effective_rate: float
    marginal_rate: float


@dataclass
class TaxAnalysis:
    """Current situation plus prioritized recommendations."""
    current: CurrentTaxSituation
    recommendations: List[TaxRecommendation] = field(default_factory=list)
    total_potential_savings: float = 0.0


# ==================== ENGINE ====================

def federal_tax(taxable_income: float, filing_status: Optional[str] = 'single') -> FederalTaxResult:
    """Progressive federal income tax on income already net of deductions."""
    brackets = TAX_BRACKETS_2025[normalize_filing_status(filing_status)]

    if taxable_income <= 0:
        return FederalTaxResult(tax=0.0, effective_rate=0.0,
                                marginal_rate=brackets[0].rate, bracket=brackets[0])

    total = 0.0
    marginal_rate = 0.0
    current = None
    for bracket in brackets:
        in_bracket = min(max(taxable_income - bracket.min, 0), bracket.max - bracket.min)
        if in_bracket > 0:
            total += in_bracket * bracket.rate
            marginal_rate = bracket.rate
            current = bracket
        if taxable_income <= bracket.max:
            break

    return FederalTaxResult(
        tax=round(total, 2),
        effective_rate=total / taxable_income,
        marginal_rate=marginal_rate,
        bracket=current,
    )


def fica(gross_income: float) -> float:
    """Social Security up to the wage base plus uncapped Medicare."""
    if gross_income <= 0:
        return 0.0
    social_security = min(gross_income, SOCIAL_SECURITY_WAGE_BASE) * SOCIAL_SECURITY_RATE
    return social_security + gross_income * MEDICARE_RATE


class TaxBracketEngine:
    """Federal, state and FICA tax for a scenario.

    State tax comes from the injected estimator; without one every
    location gets the flat national average.
    """

    def __init__(self, estimator: Optional[StateTaxEstimator] = None):
        self.estimator = estimator or NationalAverageEstimator()

    def federal_tax(self, taxable_income: float, filing_status: Optional[str] = 'single') -> FederalTaxResult:
        return federal_tax(taxable_income, filing_status)

    def state_tax(self, taxable_income: float, msa: str = '') -> StateTaxResult:
        return self.estimator.estimate(taxable_income, msa or '')

    def scenario(self, income: float, deductions: Optional[TaxDeductions] = None,
                 filing_status: Optional[str] = 'single', msa: str = '') -> TaxScenario:
        """Compute the full tax picture for one set of annual deductions."""
        deductions = deductions or TaxDeductions()
        status = normalize_filing_status(filing_status)
        gross = max(0.0, income)

        pre_tax = deductions.pre_tax_total
        agi = max(0.0, gross - pre_tax)
        std_deduction = STANDARD_DEDUCTION_2025[status]
        charitable = max(0.0, deductions.charitable)
        tax_loss = min(max(0.0, deductions.tax_loss_harvest), CONTRIBUTION_LIMITS_2025['tax_loss_offset'])
        taxable = max(0.0, agi - std_deduction - charitable - tax_loss)

        federal = self.federal_tax(taxable, status)
        state = self.state_tax(taxable, msa)
        payroll = fica(gross)

        total_income_tax = federal.tax + state.tax
        logger.debug(
            "Scenario: gross=%.2f pre_tax=%.2f taxable=%.2f federal=%.2f state=%.2f",
            gross, pre_tax, taxable, federal.tax, state.tax
        )

        return TaxScenario(
            gross_income=gross,
            pre_tax_deductions=pre_tax,
            agi=agi,
            standard_deduction=std_deduction,
            charitable_deduction=charitable,
            tax_loss_offset=tax_loss,
            taxable_income=taxable,
            federal_tax=federal.tax,
            state_tax=state.tax,
            state_info=state,
            fica=payroll,
            total_tax=total_income_tax + payroll,
            total_income_tax=total_income_tax,
            effective_rate=total_income_tax / gross if gross > 0 else 0.0,
            marginal_rate=federal.marginal_rate,
            bracket=federal.bracket,
        )


_msa_engine = TaxBracketEngine(MsaStateTaxEstimator())


def _engine_for(estimator: Optional[StateTaxEstimator]) -> TaxBracketEngine:
    return TaxBracketEngine(estimator) if estimator is not None else _msa_engine


def compute_tax_scenario(income: float, deductions: Optional[TaxDeductions] = None,
                         filing_status: Optional[str] = 'single', msa: str = '',
                         estimator: Optional[StateTaxEstimator] = None) -> TaxScenario:
    """Tax scenario with state tax resolved from the MSA unless an estimator is given."""
    return _engine_for(estimator).scenario(income, deductions, filing_status, msa)


def contribution_impact(income: float, contribution: float,
                        filing_status: Optional[str] = 'single') -> ContributionImpact:
    """Federal tax saved by one pre-tax contribution."""
    deduction = standard_deduction(filing_status)
    before_income = max(0.0, income - deduction)
    after_income = max(0.0, income - deduction - contribution)

    before = federal_tax(before_income, filing_status)
    after = federal_tax(after_income, filing_status)
    savings = before.tax - after.tax

    return ContributionImpact(
        taxable_income_before=before_income,
        taxable_income_after=after_income,
        tax_before=before.tax,
        tax_after=after.tax,
        savings=round(savings, 2),
        net_cost=round(contribution - savings, 2),
        effective_contribution_cost=(contribution - savings) / contribution if contribution > 0 else 0.0,
    )


# ==================== ANALYSIS ====================

def analyze_tax_situation(snapshot: FinancialSnapshot,
                          estimator: Optional[StateTaxEstimator] = None) -> Optional[TaxAnalysis]:
    """Estimate the current tax position and suggest ways to reduce it.

    Pre-tax contributions are inferred from the gap between gross and
    take-home pay after FICA and a 15% allowance for withholding.
    Returns None without income.
    """
    general = snapshot.general
    income = general.annual_income
    if income <= 0:
        return None

    status = normalize_filing_status(general.filing_status)
    std_deduction = STANDARD_DEDUCTION_2025[status]
    take_home = general.monthly_take_home or general.monthly_gross_income * 0.7
    payroll = fica(income)

    estimated_pre_tax = max(0.0, income - take_home * 12 - payroll - income * 0.15)
    taxable = max(0.0, income - std_deduction - estimated_pre_tax)

    engine = _engine_for(estimator)
    federal = engine.federal_tax(taxable, status)
    state = engine.state_tax(taxable, general.msa)

    current = CurrentTaxSituation(
        gross_income=income,
        filing_status=status,
        standard_deduction=std_deduction,
        estimated_pre_tax_contributions=estimated_pre_tax,
        taxable_income=taxable,
        federal_tax=federal.tax,
        state_tax=state,
        fica=payroll,
        total_tax=federal.tax + state.tax + payroll,
        effective_rate=(federal.tax + state.tax) / income,
        marginal_rate=federal.marginal_rate,
    )

    recommendations = generate_tax_recommendations(snapshot, current)
    total_savings = sum(r.tax_savings for r in recommendations if r.tax_savings and r.tax_savings > 0)

    return TaxAnalysis(
        current=current,
        recommendations=recommendations,
        total_potential_savings=total_savings,
    )


def generate_tax_recommendations(snapshot: FinancialSnapshot,
                                 current: CurrentTaxSituation) -> List[TaxRecommendation]:
    """Build the recommendation list, highest priority first."""
    recommendations = []
    income = current.gross_income
    marginal_rate = current.marginal_rate
    catch_up = snapshot.general.age >= CATCH_UP_AGE

    # 401(k)
    max_401k = CONTRIBUTION_LIMITS_2025['401k']
    if catch_up:
        max_401k += CONTRIBUTION_LIMITS_2025['catch_up_50_401k']
    estimated_401k = current.estimated_pre_tax_contributions * 0.8
    room = max(0.0, max_401k - estimated_401k)

    if room > 500:
        savings = room * marginal_rate
        catch_up_note = ' (includes $7,500 catch-up)' if catch_up else ''
        recommendations.append(TaxRecommendation(
            id='401k',
            priority='high',
            category='401(k)',
            title='Maximize 401(k) Contributions',
            description=(
                f'You can contribute up to ${max_401k:,.0f} in 2025{catch_up_note}. '
                'Increasing contributions may reduce your taxable income, subject to '
                'IRS rules and contribution limits.'
            ),
            action=f'Increase 401(k) contribution by ${room / 12:,.0f}/month',
            tax_savings=round(savings),
            net_cost=round(room - savings),
            limit=max_401k,
        ))

    # IRA
    max_ira = CONTRIBUTION_LIMITS_2025['ira']
    if catch_up:
        max_ira += CONTRIBUTION_LIMITS_2025['catch_up_50_ira']
    roth_limits = ROTH_IRA_LIMITS_2025[current.filing_status]
    roth_eligible = income < roth_limits['phaseout_end']
    roth_partial = roth_limits['phaseout_start'] <= income < roth_limits['phaseout_end']
    traditional = marginal_rate >= 0.22

    if roth_eligible or traditional:
        if traditional:
            ira_type = 'Traditional'
            ira_savings = round(max_ira * marginal_rate)
            description = (
                f'At your {marginal_rate * 100:.0f}% marginal rate, a Traditional IRA may '
                'provide immediate tax savings. Contributions may reduce taxable income '
                'now, subject to IRS rules.'
            )
            note = 'Deductibility may be limited if you have a workplace retirement plan'
        else:
            ira_type = 'Roth'
            ira_savings = 0
            if roth_partial:
                description = (
                    'Your income is in the Roth IRA phaseout range. You may be able to '
                    'contribute a reduced amount. Some investors explore Backdoor Roth IRA '
                    'strategies; consult a tax professional to determine if this is suitable.'
                )
                note = 'Contribution limit may be reduced due to income'
            else:
                description = (
                    'A Roth IRA offers tax-free growth and withdrawals in retirement. At your '
                    'current bracket, tax-free growth may be beneficial for long-term savings.'
                )
                note = None

        recommendations.append(TaxRecommendation(
            id='ira',
            priority='high',
            category='IRA',
            title=f'Contribute to {ira_type} IRA',
            description=description,
            action=f'Contribute ${max_ira / 12:,.0f}/month (${max_ira:,.0f}/year)',
            tax_savings=ira_savings,
            net_cost=round(max_ira - ira_savings) if ira_savings > 0 else max_ira,
            limit=max_ira,
            note=note,
        ))

    # HSA
    max_hsa = CONTRIBUTION_LIMITS_2025['hsa_individual']
    if catch_up:
        max_hsa += CONTRIBUTION_LIMITS_2025['catch_up_50_hsa']
    hsa_savings = round(max_hsa * marginal_rate)
    recommendations.append(TaxRecommendation(
        id='hsa',
        priority='high',
        category='HSA',
        title='Maximize HSA Contributions',
        description=(
            'The HSA offers a triple tax advantage: tax-deductible contributions, tax-free '
            'growth, and tax-free withdrawals for qualified medical expenses.'
        ),
        action=f'Contribute ${max_hsa / 12:,.0f}/month to HSA',
        tax_savings=hsa_savings,
        net_cost=round(max_hsa - hsa_savings),
        limit=max_hsa,
        note='Requires enrollment in a High Deductible Health Plan (HDHP).',
        eligibility_required=True,
    ))

    if snapshot.investments.stocks_bonds > 25000:
        recommendations.append(TaxRecommendation(
            id='tax_loss_harvest',
            priority='medium',
            category='Investing',
            title='Consider Tax-Loss Harvesting',
            description=(
                'With taxable investments, you can sell positions at a loss to offset capital '
                'gains. Up to $3,000 in net losses can offset ordinary income annually.'
            ),
            action='Review portfolio for unrealized losses before year-end',
            note='Potential savings vary based on your portfolio. Be aware of wash sale rules.',
        ))

    if income > 100000:
        recommendations.append(TaxRecommendation(
            id='charitable',
            priority='medium',
            category='Deductions',
            title='Bunch Charitable Donations',
            description=(
                'If you regularly give to charity, consider "bunching" multiple years of '
                'donations into one year to exceed the standard deduction and itemize.'
            ),
            action='Consider a donor-advised fund to bunch donations strategically',
            note='Works best if your typical itemized deductions are close to the standard deduction',
        ))

    recommendations.append(TaxRecommendation(
        id='withholding',
        priority='low',
        category='Planning',
        title='Review Your Tax Withholding',
        description=(
            'Make sure your W-4 is set correctly to avoid a large refund or an unexpected '
            'tax bill.'
        ),
        action='Use the IRS Tax Withholding Estimator to check your W-4',
        note='Adjust if you had a major life change (marriage, new job, new home)',
    ))

    return recommendations
