"""Financial snapshot data model for Financial GPS."""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Sanity cap for any single currency field coming from the outside world
MAX_SAFE_AMOUNT = 1e15

FILING_STATUSES = ['single', 'married', 'head_of_household']
HSA_COVERAGES = ['individual', 'family', 'none']
PAYOFF_STRATEGIES = ['avalanche', 'snowball']


class DebtCategory(Enum):
    """The six fixed debt slots."""
    CREDIT_CARD = 'CREDIT_CARD'
    MEDICAL = 'MEDICAL'
    STUDENT = 'STUDENT'
    AUTO = 'AUTO'
    MORTGAGE = 'MORTGAGE'
    OTHER = 'OTHER'

    @property
    def label(self) -> str:
        """Display label for the category."""
        return _CATEGORY_LABELS[self]

    @property
    def default_term_months(self) -> int:
        """Remaining term used when a debt slot is created."""
        return _CATEGORY_TERMS[self]

    @classmethod
    def parse(cls, value: Any) -> 'DebtCategory':
        """Map a raw category value onto the enum, defaulting to OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


_CATEGORY_LABELS = {
    DebtCategory.CREDIT_CARD: 'Credit Card',
    DebtCategory.MEDICAL: 'Medical',
    DebtCategory.STUDENT: 'Student',
    DebtCategory.AUTO: 'Car',
    DebtCategory.MORTGAGE: 'Mortgage',
    DebtCategory.OTHER: 'Other',
}

_CATEGORY_TERMS = {
    DebtCategory.CREDIT_CARD: 60,
    DebtCategory.MEDICAL: 60,
    DebtCategory.STUDENT: 120,
    DebtCategory.AUTO: 60,
    DebtCategory.MORTGAGE: 360,
    DebtCategory.OTHER: 60,
}


@dataclass
class Debt:
    """Represents one debt slot."""
    category: DebtCategory = DebtCategory.OTHER
    balance: float = 0.0
    interest_rate: float = 0.0  # Annual interest rate (percentage)
    term_months: int = 60  # Remaining months, used for amortization
    min_payment: float = 0.0  # 0 means derive from amortization

    @property
    def label(self) -> str:
        """Display label for the debt."""
        return self.category.label

    @property
    def is_active(self) -> bool:
        """Debts with a zero balance are excluded from every simulation."""
        return self.balance > 0

    @property
    def monthly_interest_rate(self) -> float:
        """Get monthly interest rate as decimal."""
        return (self.interest_rate / 100) / 12


def default_debts() -> List[Debt]:
    """Create the fixed 6-slot debt list with zero balances."""
    return [
        Debt(category=category, term_months=category.default_term_months)
        for category in DebtCategory
    ]


@dataclass
class GeneralInfo:
    """Income, expenses and location."""
    age: int = 30
    target_retirement: int = 45
    annual_income: float = 0.0
    monthly_take_home: float = 0.0
    monthly_expense: float = 0.0
    msa: str = ""  # Metro area, e.g. "Denver, CO"
    filing_status: str = "single"

    @property
    def monthly_gross_income(self) -> float:
        """Gross income per month."""
        return self.annual_income / 12

    @property
    def monthly_cash_flow(self) -> float:
        """Take-home pay left after living expenses (may be negative)."""
        return self.monthly_take_home - self.monthly_expense


@dataclass
class Investments:
    """The eight asset buckets."""
    savings: float = 0.0
    ira: float = 0.0
    roth_ira: float = 0.0
    stocks_bonds: float = 0.0
    four_oh_one_k: float = 0.0
    real_estate: float = 0.0
    car_value: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        """Sum of all buckets."""
        return (self.savings + self.ira + self.roth_ira + self.stocks_bonds +
                self.four_oh_one_k + self.real_estate + self.car_value + self.other)

    @property
    def retirement_total(self) -> float:
        """Balances held in retirement accounts."""
        return self.four_oh_one_k + self.ira + self.roth_ira


@dataclass
class DebtSettings:
    """Debt paydown preferences."""
    aggressiveness: float = 100.0  # Percent of surplus cash flow sent to debt
    preferred_strategy: str = "avalanche"


@dataclass
class TaxAllocations:
    """Monthly contributions chosen by the user."""
    four_oh_one_k: float = 0.0
    hsa: float = 0.0
    traditional_ira: float = 0.0
    roth_ira: float = 0.0
    five29: float = 0.0

    @property
    def total_monthly(self) -> float:
        """All monthly allocations."""
        return self.four_oh_one_k + self.hsa + self.traditional_ira + self.roth_ira + self.five29

    @property
    def total_pre_tax_monthly(self) -> float:
        """Monthly allocations that reduce current taxable income."""
        return self.four_oh_one_k + self.hsa + self.traditional_ira


@dataclass
class TaxStrategies:
    """Annual strategy amounts."""
    charitable_annual: float = 0.0
    tax_loss_harvest: float = 0.0


@dataclass
class AdvancedToggles:
    """Informational strategy toggles."""
    backdoor_roth: bool = False
    mega_backdoor_roth: bool = False
    roth_conversion_ladder: bool = False


@dataclass
class TaxDestinySettings:
    """Settings for the tax destiny scenario."""
    filing_status: str = "single"
    hsa_coverage: str = "individual"
    allocations: TaxAllocations = field(default_factory=TaxAllocations)
    strategies: TaxStrategies = field(default_factory=TaxStrategies)
    advanced: AdvancedToggles = field(default_factory=AdvancedToggles)


@dataclass
class BoxAllocations:
    """Per-box monthly overrides for the cash-flow waterfall (None = all remaining)."""
    high_interest_debt: Optional[float] = None
    hsa_ira: Optional[float] = None
    moderate_debt: Optional[float] = None
    max_401k: Optional[float] = None
    taxable_investing: Optional[float] = None


@dataclass
class FireSettings:
    """Employer match and emergency fund settings."""
    has_hsa_match: bool = False
    hsa_match_percent: float = 4.0
    is_getting_hsa_match: bool = False
    has_401k_match: bool = False
    four_oh_one_k_match_percent: float = 4.0
    is_getting_401k_match: bool = False
    emergency_fund_months: int = 6
    fire_annual_expense_target: float = 0.0  # 0 = use monthly expenses * 12
    allocations: BoxAllocations = field(default_factory=BoxAllocations)

    @property
    def has_any_match(self) -> bool:
        """Whether any employer match is offered."""
        return self.has_401k_match or self.has_hsa_match

    @property
    def all_matches_captured(self) -> bool:
        """Whether every offered match is already being received."""
        return ((not self.has_hsa_match or self.is_getting_hsa_match) and
                (not self.has_401k_match or self.is_getting_401k_match))


@dataclass
class ExpenseCategories:
    """Monthly spending by category, used for the 50/30/20 breakdown."""
    housing: float = 0.0
    food: float = 0.0
    transportation: float = 0.0
    utilities: float = 0.0
    healthcare: float = 0.0
    insurance: float = 0.0
    entertainment: float = 0.0
    personal: float = 0.0
    education: float = 0.0
    other: float = 0.0

    def items(self) -> List[Tuple[str, float]]:
        """(category, amount) pairs in declaration order."""
        return [(f.name, getattr(self, f.name)) for f in fields(self)]


@dataclass
class FinancialSnapshot:
    """Everything the engines need to know about one user."""
    general: GeneralInfo = field(default_factory=GeneralInfo)
    investments: Investments = field(default_factory=Investments)
    debts: List[Debt] = field(default_factory=default_debts)
    debt_settings: DebtSettings = field(default_factory=DebtSettings)
    tax_destiny: TaxDestinySettings = field(default_factory=TaxDestinySettings)
    fire_settings: FireSettings = field(default_factory=FireSettings)
    expense_categories: ExpenseCategories = field(default_factory=ExpenseCategories)

    @property
    def active_debts(self) -> List[Debt]:
        """Debts with an outstanding balance, in slot order."""
        return [d for d in self.debts if d.is_active]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FinancialSnapshot':
        """Build a sanitized snapshot from the camelCase store document."""
        data = data or {}
        general = data.get('general') or {}
        inv = data.get('investments') or {}
        debt_settings = data.get('debtSettings') or {}
        td = data.get('taxDestiny') or {}
        fire = data.get('fireSettings') or {}
        expenses = data.get('expenseCategories') or {}

        snapshot = cls(
            general=GeneralInfo(
                age=int(_number(general.get('age'), default=30)),
                target_retirement=int(_number(general.get('targetRetirement'), default=45)),
                annual_income=_amount(general.get('annualIncome')),
                monthly_take_home=_amount(general.get('monthlyTakeHome')),
                monthly_expense=_amount(general.get('monthlyExpense')),
                msa=str(general.get('msa') or ''),
                filing_status=_choice(general.get('filingStatus'), FILING_STATUSES),
            ),
            investments=Investments(
                savings=_amount(inv.get('savings')),
                ira=_amount(inv.get('ira')),
                roth_ira=_amount(inv.get('rothIra')),
                stocks_bonds=_amount(inv.get('stocksBonds')),
                four_oh_one_k=_amount(inv.get('fourOhOneK')),
                real_estate=_amount(inv.get('realEstate')),
                car_value=_amount(inv.get('carValue')),
                other=_amount(inv.get('other')),
            ),
            debt_settings=DebtSettings(
                aggressiveness=_clamp(_number(debt_settings.get('aggressiveness'), default=100), 0, 100),
                preferred_strategy=_choice(debt_settings.get('preferredStrategy'), PAYOFF_STRATEGIES),
            ),
            tax_destiny=_tax_destiny_from_dict(td),
            fire_settings=_fire_settings_from_dict(fire),
            expense_categories=_expense_categories_from_dict(expenses),
        )

        if 'debts' in data and isinstance(data['debts'], list):
            snapshot.debts = [_debt_from_dict(d) for d in data['debts'] if isinstance(d, dict)]

        return snapshot


def create_default_snapshot() -> FinancialSnapshot:
    """Create a snapshot with default values."""
    return FinancialSnapshot()


# ==================== SANITIZING ====================

def _number(value: Any, default: float = 0.0) -> float:
    """Parse a number, treating garbage, NaN and infinities as the default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        value = value.replace('$', '').replace(',', '').strip()
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(num):
        return default
    return num


def _amount(value: Any) -> float:
    """Currency fields are non-negative and bounded."""
    return _clamp(_number(value), 0, MAX_SAFE_AMOUNT)


def _optional_amount(value: Any) -> Optional[float]:
    if value is None:
        return None
    return _amount(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _choice(value: Any, allowed: List[str]) -> str:
    """Whitelist a string option, falling back to the first allowed value."""
    return value if value in allowed else allowed[0]


def _debt_from_dict(data: Dict[str, Any]) -> Debt:
    category = DebtCategory.parse(data.get('category'))
    term = int(_number(data.get('termMonths'), default=category.default_term_months))
    return Debt(
        category=category,
        balance=_amount(data.get('balance')),
        interest_rate=_clamp(_number(data.get('interestRate')), 0, 100),
        term_months=max(1, term),
        min_payment=_amount(data.get('minPayment')),
    )


def _tax_destiny_from_dict(td: Dict[str, Any]) -> TaxDestinySettings:
    alloc = td.get('allocations') or {}
    strat = td.get('strategies') or {}
    adv = td.get('advanced') or {}
    return TaxDestinySettings(
        filing_status=_choice(td.get('filingStatus'), FILING_STATUSES),
        hsa_coverage=_choice(td.get('hsaCoverage'), HSA_COVERAGES),
        allocations=TaxAllocations(
            four_oh_one_k=_amount(alloc.get('fourOhOneK')),
            hsa=_amount(alloc.get('hsa')),
            traditional_ira=_amount(alloc.get('traditionalIra')),
            roth_ira=_amount(alloc.get('rothIra')),
            five29=_amount(alloc.get('five29')),
        ),
        strategies=TaxStrategies(
            charitable_annual=_amount(strat.get('charitableAnnual')),
            tax_loss_harvest=_amount(strat.get('taxLossHarvest')),
        ),
        advanced=AdvancedToggles(
            backdoor_roth=bool(adv.get('backdoorRoth', False)),
            mega_backdoor_roth=bool(adv.get('megaBackdoorRoth', False)),
            roth_conversion_ladder=bool(adv.get('rothConversionLadder', False)),
        ),
    )


def _fire_settings_from_dict(fire: Dict[str, Any]) -> FireSettings:
    alloc = fire.get('allocations') or {}
    months = int(_number(fire.get('emergencyFundMonths'), default=6))
    return FireSettings(
        has_hsa_match=bool(fire.get('hasHsaMatch', False)),
        hsa_match_percent=_clamp(_number(fire.get('hsaMatchPercent'), default=4), 0, 100),
        is_getting_hsa_match=bool(fire.get('isGettingHsaMatch', False)),
        has_401k_match=bool(fire.get('has401kMatch', False)),
        four_oh_one_k_match_percent=_clamp(_number(fire.get('fourOhOneKMatchPercent'), default=4), 0, 100),
        is_getting_401k_match=bool(fire.get('isGetting401kMatch', False)),
        emergency_fund_months=months if months > 0 else 6,
        fire_annual_expense_target=_amount(fire.get('fireAnnualExpenseTarget')),
        allocations=BoxAllocations(
            high_interest_debt=_optional_amount(alloc.get('highInterestDebt')),
            hsa_ira=_optional_amount(alloc.get('hsaIra')),
            moderate_debt=_optional_amount(alloc.get('moderateDebt')),
            max_401k=_optional_amount(alloc.get('max401k')),
            taxable_investing=_optional_amount(alloc.get('taxableInvesting')),
        ),
    )


def _expense_categories_from_dict(expenses: Dict[str, Any]) -> ExpenseCategories:
    return ExpenseCategories(**{
        f.name: _amount(expenses.get(f.name)) for f in fields(ExpenseCategories)
    })
