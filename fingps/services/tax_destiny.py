"""
Tax destiny: baseline vs. with-allocations tax scenarios.

Compares the tax owed with no contributions against the tax owed with the
user's chosen monthly allocations, validates those allocations against
2025 IRS limits and breaks the savings down per account.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from ..models.snapshot import (
    FinancialSnapshot, AdvancedToggles, FILING_STATUSES, HSA_COVERAGES
)
from .state_tax import StateTaxEstimator, MsaStateTaxEstimator
from .tax_calculator import (
    TaxBracketEngine, TaxDeductions, TaxScenario,
    CONTRIBUTION_LIMITS_2025, ROTH_IRA_LIMITS_2025, STANDARD_DEDUCTION_2025, CATCH_UP_AGE
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionLimits:
    """Annual limits for one person."""
    four_oh_one_k: float
    hsa: float
    ira: float  # Shared by traditional and Roth
    roth_ira: float
    five29: float
    tax_loss_harvest: float
    roth_phaseout_start: float
    roth_phaseout_end: float
    standard_deduction: float
    catch_up_eligible: bool


def get_contribution_limits(age: int, filing_status: Optional[str] = 'single',
                            hsa_coverage: Optional[str] = 'individual') -> ContributionLimits:
    """2025 limits by age, filing status and HSA coverage."""
    catch_up = age >= CATCH_UP_AGE
    status = filing_status if filing_status in FILING_STATUSES else 'single'
    coverage = hsa_coverage if hsa_coverage in HSA_COVERAGES else 'individual'

    if coverage == 'none':
        hsa = 0.0
    else:
        hsa = CONTRIBUTION_LIMITS_2025['hsa_family' if coverage == 'family' else 'hsa_individual']
        if catch_up:
            hsa += CONTRIBUTION_LIMITS_2025['catch_up_50_hsa']

    ira = CONTRIBUTION_LIMITS_2025['ira'] + (CONTRIBUTION_LIMITS_2025['catch_up_50_ira'] if catch_up else 0)
    phaseout = ROTH_IRA_LIMITS_2025[status]

    return ContributionLimits(
        four_oh_one_k=CONTRIBUTION_LIMITS_2025['401k'] + (
            CONTRIBUTION_LIMITS_2025['catch_up_50_401k'] if catch_up else 0),
        hsa=hsa,
        ira=ira,
        roth_ira=ira,
        five29=CONTRIBUTION_LIMITS_2025['529_gift_exclusion'],
        tax_loss_harvest=CONTRIBUTION_LIMITS_2025['tax_loss_offset'],
        roth_phaseout_start=phaseout['phaseout_start'],
        roth_phaseout_end=phaseout['phaseout_end'],
        standard_deduction=STANDARD_DEDUCTION_2025[status],
        catch_up_eligible=catch_up,
    )


# ==================== VALIDATION ====================

class Severity(Enum):
    ERROR = 'error'
    WARNING = 'warning'
    INFO = 'info'


@dataclass(frozen=True)
class ValidationWarning:
    """One finding about the chosen allocations."""
    type: str
    message: str
    severity: Severity
    field: Optional[str] = None


@dataclass(frozen=True)
class AllocationValidation:
    valid: bool
    warnings: List[ValidationWarning] = field(default_factory=list)

    def by_type(self, warning_type: str) -> Optional[ValidationWarning]:
        """First warning of a given type, if any."""
        return next((w for w in self.warnings if w.type == warning_type), None)


def validate_allocations(snapshot: FinancialSnapshot) -> AllocationValidation:
    """Check monthly allocations against cash flow and annual limits."""
    td = snapshot.tax_destiny
    alloc = td.allocations
    income = snapshot.general.annual_income
    limits = get_contribution_limits(snapshot.general.age, td.filing_status, td.hsa_coverage)
    warnings = []

    cash_flow = snapshot.general.monthly_cash_flow
    total_monthly = alloc.total_monthly
    if cash_flow > 0 and total_monthly > cash_flow:
        warnings.append(ValidationWarning(
            type='cashflow',
            message=(f'Total monthly allocations (${total_monthly:,.0f}) exceed available '
                     f'cash flow (${cash_flow:,.0f}/mo)'),
            severity=Severity.ERROR,
        ))

    if alloc.four_oh_one_k * 12 > limits.four_oh_one_k:
        warnings.append(ValidationWarning(
            type='401k_limit',
            message=(f'401(k) contributions (${alloc.four_oh_one_k * 12:,.0f}/yr) exceed annual '
                     f'limit (${limits.four_oh_one_k:,.0f})'),
            severity=Severity.WARNING,
            field='fourOhOneK',
        ))

    if td.hsa_coverage == 'none' and alloc.hsa > 0:
        warnings.append(ValidationWarning(
            type='hsa_ineligible',
            message='HSA contributions require enrollment in a High Deductible Health Plan (HDHP)',
            severity=Severity.ERROR,
            field='hsa',
        ))
    elif alloc.hsa * 12 > limits.hsa:
        warnings.append(ValidationWarning(
            type='hsa_limit',
            message=(f'HSA contributions (${alloc.hsa * 12:,.0f}/yr) exceed annual '
                     f'limit (${limits.hsa:,.0f})'),
            severity=Severity.WARNING,
            field='hsa',
        ))

    ira_annual = (alloc.traditional_ira + alloc.roth_ira) * 12
    if ira_annual > limits.ira:
        warnings.append(ValidationWarning(
            type='ira_limit',
            message=(f'Combined IRA contributions (${ira_annual:,.0f}/yr) exceed annual limit '
                     f'(${limits.ira:,.0f}). Traditional + Roth IRA share one limit.'),
            severity=Severity.WARNING,
            field='ira',
        ))

    if alloc.roth_ira > 0 and income >= limits.roth_phaseout_end:
        warnings.append(ValidationWarning(
            type='roth_income',
            message=(f'Your income (${income:,.0f}) exceeds the Roth IRA eligibility limit '
                     f'(${limits.roth_phaseout_end:,.0f}). Consider a Backdoor Roth strategy; '
                     'consult a tax professional.'),
            severity=Severity.WARNING,
            field='rothIra',
        ))
    elif alloc.roth_ira > 0 and income >= limits.roth_phaseout_start:
        warnings.append(ValidationWarning(
            type='roth_phaseout',
            message=(f'Your income is in the Roth IRA phaseout range '
                     f'(${limits.roth_phaseout_start:,.0f}-${limits.roth_phaseout_end:,.0f}). '
                     'Your contribution limit may be reduced.'),
            severity=Severity.INFO,
            field='rothIra',
        ))

    if alloc.five29 * 12 > limits.five29:
        warnings.append(ValidationWarning(
            type='529_limit',
            message=('Annual 529 contributions above $18,000 may trigger gift tax '
                     'reporting requirements'),
            severity=Severity.INFO,
            field='five29',
        ))

    return AllocationValidation(
        valid=not any(w.severity == Severity.ERROR for w in warnings),
        warnings=warnings,
    )


# ==================== BREAKDOWN ====================

@dataclass(frozen=True)
class AccountBreakdown:
    """Per-account contribution and estimated savings."""
    account: str
    annual_amount: float  # Capped at the limit when one applies
    annual_limit: float  # 0 means unlimited
    percent_of_limit: float  # 0..1
    over_limit: bool
    estimated_annual_savings: float
    estimated_monthly_savings: float
    is_pre_tax: bool


def build_account_breakdown(account: str, annual_amount: float, annual_limit: float,
                            marginal_rate: float, is_pre_tax: bool) -> AccountBreakdown:
    capped = min(annual_amount, annual_limit) if annual_limit > 0 else annual_amount
    savings = round(capped * marginal_rate) if is_pre_tax else 0
    return AccountBreakdown(
        account=account,
        annual_amount=capped,
        annual_limit=annual_limit,
        percent_of_limit=min(1.0, capped / annual_limit) if annual_limit > 0 else 0.0,
        over_limit=annual_limit > 0 and annual_amount > annual_limit,
        estimated_annual_savings=savings,
        estimated_monthly_savings=round(savings / 12),
        is_pre_tax=is_pre_tax,
    )


# ==================== ENGINE ====================

@dataclass(frozen=True)
class TaxDestinyResult:
    """Complete tax destiny analysis."""
    filing_status: str
    hsa_coverage: str
    limits: ContributionLimits
    baseline: TaxScenario
    with_allocations: TaxScenario
    annual_savings: float
    monthly_savings: float
    breakdowns: Dict[str, AccountBreakdown]
    total_monthly_allocations: float
    monthly_cash_flow: float
    remaining_cash_flow: float
    validation: AllocationValidation
    advanced: AdvancedToggles


class TaxDestinyEngine:
    """Computes baseline and with-allocations scenarios for a snapshot."""

    def __init__(self, estimator: Optional[StateTaxEstimator] = None):
        self.tax_engine = TaxBracketEngine(estimator or MsaStateTaxEstimator())

    def compute(self, snapshot: FinancialSnapshot) -> Optional[TaxDestinyResult]:
        """Returns None when there is no income to tax."""
        general = snapshot.general
        income = general.annual_income
        if income <= 0:
            return None

        td = snapshot.tax_destiny
        alloc = td.allocations
        strategies = td.strategies
        limits = get_contribution_limits(general.age, td.filing_status, td.hsa_coverage)

        annual_401k = min(alloc.four_oh_one_k * 12, limits.four_oh_one_k)
        annual_hsa = min(alloc.hsa * 12, limits.hsa)
        # Traditional and Roth share one IRA limit, traditional filled first
        annual_traditional = min(alloc.traditional_ira * 12, limits.ira)
        annual_roth = min(alloc.roth_ira * 12, limits.ira - annual_traditional)

        baseline = self.tax_engine.scenario(income, TaxDeductions(), td.filing_status, general.msa)
        # Roth and 529 money is post-tax
        with_allocations = self.tax_engine.scenario(income, TaxDeductions(
            four_oh_one_k=annual_401k,
            hsa=annual_hsa,
            traditional_ira=annual_traditional,
            charitable=strategies.charitable_annual,
            tax_loss_harvest=strategies.tax_loss_harvest,
        ), td.filing_status, general.msa)

        annual_savings = max(0.0, baseline.total_income_tax - with_allocations.total_income_tax)
        rate = baseline.marginal_rate

        breakdowns = {
            'four_oh_one_k': build_account_breakdown('401(k)', annual_401k, limits.four_oh_one_k, rate, True),
            'hsa': build_account_breakdown('HSA', annual_hsa, limits.hsa, rate, True),
            'traditional_ira': build_account_breakdown('Traditional IRA', annual_traditional, limits.ira, rate, True),
            'roth_ira': build_account_breakdown('Roth IRA', annual_roth, limits.roth_ira, 0, False),
            'five29': build_account_breakdown('529 Plan', alloc.five29 * 12, limits.five29, 0, False),
            'charitable': build_account_breakdown('Charitable Giving', strategies.charitable_annual, 0, rate, True),
            'tax_loss_harvest': build_account_breakdown(
                'Tax-Loss Harvesting', strategies.tax_loss_harvest, limits.tax_loss_harvest, rate, True),
        }

        cash_flow = general.monthly_cash_flow
        total_monthly = alloc.total_monthly

        logger.debug("Tax destiny: baseline %.2f, with allocations %.2f, savings %.2f",
                     baseline.total_income_tax, with_allocations.total_income_tax, annual_savings)

        return TaxDestinyResult(
            filing_status=td.filing_status,
            hsa_coverage=td.hsa_coverage,
            limits=limits,
            baseline=baseline,
            with_allocations=with_allocations,
            annual_savings=annual_savings,
            monthly_savings=round(annual_savings / 12),
            breakdowns=breakdowns,
            total_monthly_allocations=total_monthly,
            monthly_cash_flow=cash_flow,
            remaining_cash_flow=cash_flow - total_monthly,
            validation=validate_allocations(snapshot),
            advanced=td.advanced,
        )


def compute_tax_destiny(snapshot: FinancialSnapshot,
                        estimator: Optional[StateTaxEstimator] = None) -> Optional[TaxDestinyResult]:
    """Tax destiny for a snapshot; None without income."""
    return TaxDestinyEngine(estimator).compute(snapshot)
