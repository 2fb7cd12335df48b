"""
Tests for the month-by-month debt payoff simulation.

Tests verify:
- Minimum-only baseline and the effect of extra payments
- Avalanche/snowball ordering and the freed-payment cascade
- Timeline bookkeeping and dates
- Non-convergent debts stop at the safety cap
"""

from datetime import date

import pytest

from fingps.models.snapshot import DebtCategory, DebtSettings
from fingps.services.debt_payoff import (
    DebtPayoffSimulator, PayoffStrategy, compute_extra_payment, debt_names,
    prioritize, simulate
)
from conftest import START, make_debt


class TestCreditCardScenario:
    """$5,000 card at 20% over 36 months."""

    def test_minimum_only_follows_amortization(self, credit_card):
        result = simulate([credit_card], 0, start_date=START)
        assert result.converged
        assert result.months_to_payoff == 36

    def test_extra_payment_is_faster_and_cheaper(self, credit_card):
        baseline = DebtPayoffSimulator([credit_card], start_date=START).minimum_only()
        boosted = simulate([credit_card], 200, start_date=START)

        assert boosted.converged
        assert boosted.months_to_payoff < baseline.months_to_payoff
        assert boosted.total_interest_paid < baseline.total_interest_paid

    def test_total_paid_is_principal_plus_interest(self, credit_card):
        result = simulate([credit_card], 200, start_date=START)
        assert result.starting_balance == 5000
        assert result.total_paid == pytest.approx(5000 + result.total_interest_paid)


class TestStrategies:

    def test_parse(self):
        assert PayoffStrategy.parse('SNOWBALL') == PayoffStrategy.SNOWBALL
        assert PayoffStrategy.parse(PayoffStrategy.AVALANCHE) == PayoffStrategy.AVALANCHE

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError):
            PayoffStrategy.parse('debt-tsunami')

    def test_prioritize_avalanche_by_rate(self, mixed_debts):
        assert prioritize(mixed_debts, PayoffStrategy.AVALANCHE) == [0, 3, 2, 1]

    def test_prioritize_snowball_by_balance(self, mixed_debts):
        assert prioritize(mixed_debts, PayoffStrategy.SNOWBALL) == [1, 0, 3, 2]

    def test_ties_keep_input_order(self):
        debts = [
            make_debt(DebtCategory.CREDIT_CARD, 1000, 18),
            make_debt(DebtCategory.OTHER, 1000, 18),
        ]
        assert prioritize(debts, PayoffStrategy.AVALANCHE) == [0, 1]
        assert prioritize(debts, PayoffStrategy.SNOWBALL) == [0, 1]

    def test_inactive_debts_excluded(self, mixed_debts):
        mixed_debts.append(make_debt(DebtCategory.MORTGAGE, 0, 6.5))
        assert 4 not in prioritize(mixed_debts, PayoffStrategy.AVALANCHE)

    def test_avalanche_never_costs_more_interest(self, mixed_debts):
        for extra in (0, 100, 300, 1000):
            avalanche = simulate(mixed_debts, extra, PayoffStrategy.AVALANCHE, start_date=START)
            snowball = simulate(mixed_debts, extra, PayoffStrategy.SNOWBALL, start_date=START)
            assert avalanche.total_interest_paid <= snowball.total_interest_paid + 1e-6

    def test_snowball_clears_smallest_first(self, mixed_debts):
        result = simulate(mixed_debts, 300, PayoffStrategy.SNOWBALL, start_date=START)
        assert result.payoff_order[0] == 'MEDICAL'


class TestTimeline:

    def test_monthly_interest_sums_to_total(self, mixed_debts):
        result = simulate(mixed_debts, 250, start_date=START)
        assert sum(m.interest for m in result.timeline) == pytest.approx(result.total_interest_paid)

    def test_timeline_length_matches_months(self, mixed_debts):
        result = simulate(mixed_debts, 250, start_date=START)
        assert len(result.timeline) == result.months_to_payoff
        assert result.timeline[-1].total_remaining == 0

    def test_more_extra_never_takes_longer(self, mixed_debts):
        months = [
            simulate(mixed_debts, extra, start_date=START).months_to_payoff
            for extra in (0, 25, 100, 250, 1000, 5000)
        ]
        assert months == sorted(months, reverse=True)

    def test_debt_free_date(self):
        debt = make_debt(DebtCategory.MEDICAL, 300, 0, min_payment=100)
        result = simulate([debt], 0, start_date=START)
        assert result.months_to_payoff == 3
        assert result.debt_free_date == date(2025, 4, 15)

    def test_no_active_debts(self):
        result = simulate([make_debt(DebtCategory.CREDIT_CARD, 0, 20)], 100, start_date=START)
        assert result.months_to_payoff == 0
        assert result.timeline == ()
        assert result.converged
        assert result.debt_free_date == START

    def test_inputs_not_mutated(self, mixed_debts):
        balances = [d.balance for d in mixed_debts]
        simulate(mixed_debts, 500, start_date=START)
        assert [d.balance for d in mixed_debts] == balances


class TestCascade:

    def test_freed_minimum_recorded(self):
        """The medical bill clears in month 3 and releases its $100 minimum."""
        debts = [
            make_debt(DebtCategory.MEDICAL, 300, 0, min_payment=100),
            make_debt(DebtCategory.CREDIT_CARD, 1000, 12, min_payment=50),
        ]
        result = simulate(debts, 0, start_date=START)
        first = result.paid_off_milestones[0]

        assert first.debt_name == 'MEDICAL'
        assert first.month == 3
        assert first.balance == pytest.approx(100)
        assert first.freed_monthly_payment == 100
        assert result.payoff_order == ('MEDICAL', 'CREDIT_CARD')

    def test_cascade_speeds_up_remaining_debt(self):
        card = make_debt(DebtCategory.CREDIT_CARD, 1000, 12, min_payment=50)
        medical = make_debt(DebtCategory.MEDICAL, 300, 0, min_payment=100)
        alone = simulate([card], 0, start_date=START)
        together = simulate([medical, card], 0, start_date=START)
        assert together.months_to_payoff < alone.months_to_payoff


class TestNonConvergence:

    def test_payment_below_interest_hits_cap(self):
        """$100/month never covers $200/month of interest."""
        debt = make_debt(DebtCategory.CREDIT_CARD, 10000, 24, min_payment=100)
        result = simulate([debt], 0, start_date=START, max_months=24)

        assert not result.converged
        assert result.reached_max_months
        assert result.months_to_payoff == 24
        assert result.timeline[-1].total_remaining > 10000

    def test_default_cap_is_fifty_years(self):
        debt = make_debt(DebtCategory.CREDIT_CARD, 10000, 24, min_payment=100)
        result = simulate([debt], 0, start_date=START)
        assert result.months_to_payoff == 600


class TestHelpers:

    def test_duplicate_categories_get_suffix(self):
        debts = [
            make_debt(DebtCategory.CREDIT_CARD, 100, 20),
            make_debt(DebtCategory.STUDENT, 100, 5),
            make_debt(DebtCategory.CREDIT_CARD, 100, 25),
        ]
        assert debt_names(debts) == ['CREDIT_CARD', 'STUDENT', 'CREDIT_CARD_2']

    def test_extra_payment_from_aggressiveness(self):
        assert compute_extra_payment(DebtSettings(aggressiveness=50), 1001) == 501
        assert compute_extra_payment(DebtSettings(aggressiveness=100), 750.4) == 750

    def test_extra_payment_never_negative(self):
        assert compute_extra_payment(DebtSettings(aggressiveness=100), -400) == 0
