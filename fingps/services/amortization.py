"""Loan amortization helpers shared by the debt engines."""

from typing import Dict
from ..models.snapshot import Debt, DebtCategory


def monthly_payment(balance: float, annual_rate_percent: float, term_months: int) -> float:
    """Fixed monthly payment that fully amortizes a loan (Excel's PMT).

    Args:
        balance: Present value of the loan
        annual_rate_percent: Annual interest rate as a percentage (7 for 7%)
        term_months: Number of monthly periods

    Returns:
        The monthly payment; 0 for an empty balance or term, and plain
        division when the loan carries no interest.
    """
    if balance <= 0 or term_months <= 0:
        return 0.0
    if annual_rate_percent <= 0:
        return balance / term_months

    monthly_rate = (annual_rate_percent / 100) / 12
    growth = (1 + monthly_rate) ** term_months
    return balance * (monthly_rate * growth) / (growth - 1)


def interest_portion(balance: float, annual_rate_percent: float) -> float:
    """One month of interest on a balance."""
    if balance <= 0 or annual_rate_percent <= 0:
        return 0.0
    return balance * (annual_rate_percent / 100) / 12


def principal_portion(payment: float, interest: float) -> float:
    """Part of a payment that reduces principal."""
    return max(0.0, payment - interest)


def debt_minimum_payment(debt: Debt) -> float:
    """Minimum monthly payment for a debt: stored value, else amortized over its term."""
    if debt.balance <= 0:
        return 0.0
    if debt.min_payment > 0:
        return debt.min_payment
    return monthly_payment(debt.balance, debt.interest_rate, debt.term_months)


def estimate_monthly_payment(balance: float, interest_rate: float, category: DebtCategory) -> float:
    """Rough monthly payment by debt type, used for debt-to-income."""
    if balance <= 0:
        return 0.0

    # Installment loans use their typical full term
    if category == DebtCategory.MORTGAGE:
        return monthly_payment(balance, interest_rate, 360)
    if category == DebtCategory.AUTO:
        return monthly_payment(balance, interest_rate, 60)

    # Revolving-style minimum: 2% of balance, or interest plus 1%, never below $25
    monthly_interest = balance * (interest_rate / 100) / 12
    return max(balance * 0.02, monthly_interest + balance * 0.01, 25.0)


def annual_breakdown(debt: Debt) -> Dict[str, float]:
    """Annual interest and principal at the current minimum payment."""
    if debt.balance <= 0:
        return {'monthly_payment': 0.0, 'annual_interest': 0.0, 'annual_principal': 0.0}

    payment = debt_minimum_payment(debt)
    interest = interest_portion(debt.balance, debt.interest_rate)
    principal = principal_portion(payment, interest)

    return {
        'monthly_payment': payment,
        'annual_interest': interest * 12,
        'annual_principal': principal * 12,
    }
