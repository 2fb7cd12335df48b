"""Pytest configuration and fixtures for the test suite."""

from datetime import date

import pytest

from fingps.models.snapshot import (
    Debt, DebtCategory, FinancialSnapshot, GeneralInfo, Investments
)


START = date(2025, 1, 15)


def make_debt(category: DebtCategory, balance: float, rate: float,
              term_months: int = 60, min_payment: float = 0.0) -> Debt:
    """Helper to create a debt slot for tests."""
    return Debt(category=category, balance=balance, interest_rate=rate,
                term_months=term_months, min_payment=min_payment)


@pytest.fixture
def start_date():
    return START


@pytest.fixture
def credit_card():
    """$5,000 card at 20% amortized over 36 months."""
    return make_debt(DebtCategory.CREDIT_CARD, 5000, 20, term_months=36)


@pytest.fixture
def mixed_debts():
    """A card, a student loan and a car loan with explicit minimums."""
    return [
        make_debt(DebtCategory.CREDIT_CARD, 8000, 22.9, min_payment=200),
        make_debt(DebtCategory.MEDICAL, 1200, 0, min_payment=50),
        make_debt(DebtCategory.STUDENT, 15000, 5.5, min_payment=170),
        make_debt(DebtCategory.AUTO, 9000, 7.2, min_payment=250),
    ]


@pytest.fixture
def household():
    """Snapshot of a household with surplus cash and some high-interest debt."""
    snapshot = FinancialSnapshot(
        general=GeneralInfo(
            age=35,
            target_retirement=55,
            annual_income=120000,
            monthly_take_home=7000,
            monthly_expense=4000,
            msa="Denver, CO",
        ),
        investments=Investments(savings=6000, four_oh_one_k=40000, stocks_bonds=30000),
    )
    snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 4000, 21.0, min_payment=120)
    snapshot.debts[3] = make_debt(DebtCategory.AUTO, 12000, 6.0, min_payment=300)
    return snapshot
