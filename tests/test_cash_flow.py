"""Tests for the monthly cash-flow waterfall."""

import pytest

from fingps.models.snapshot import DebtCategory, FinancialSnapshot
from fingps.services.cash_flow import (
    DEFAULT_FLEXIBLE_ORDER, calculate_cash_flow_waterfall, resolve_flexible_order
)
from conftest import make_debt


@pytest.fixture
def solid_foundation():
    """$3,000/mo surplus, full emergency fund, no match, one high-interest card."""
    snapshot = FinancialSnapshot()
    snapshot.general.annual_income = 100000
    snapshot.general.monthly_take_home = 6000
    snapshot.general.monthly_expense = 3000
    snapshot.investments.savings = 20000
    snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 5000, 20)
    alloc = snapshot.tax_destiny.allocations
    alloc.hsa = 100
    alloc.roth_ira = 200
    alloc.four_oh_one_k = 500
    return snapshot


class TestOrder:

    def test_default_order(self):
        assert resolve_flexible_order(None) == DEFAULT_FLEXIBLE_ORDER

    @pytest.mark.parametrize("order", [
        ['taxable_investing'],
        ['high_interest_debt', 'hsa_ira', 'moderate_debt', 'max_401k', 'max_401k'],
        ['high_interest_debt', 'hsa_ira', 'moderate_debt', 'max_401k', 'crypto'],
    ])
    def test_invalid_order_falls_back(self, order):
        assert resolve_flexible_order(order) == DEFAULT_FLEXIBLE_ORDER

    def test_custom_order_honored(self, solid_foundation):
        order = list(reversed(DEFAULT_FLEXIBLE_ORDER))
        waterfall = calculate_cash_flow_waterfall(solid_foundation, order)
        assert [b.key for b in waterfall.boxes[4:]] == order
        # Taxable investing now comes first and takes everything
        assert waterfall.box('taxable_investing').allocated == 3000
        assert waterfall.box('high_interest_debt').allocated == 0


class TestFoundation:

    def test_solid_foundation(self, solid_foundation):
        waterfall = calculate_cash_flow_waterfall(solid_foundation)
        assert waterfall.foundation_complete
        assert [b.status for b in waterfall.boxes[:4]] == [
            'COMPLETED', 'COMPLETED', 'NOT_APPLICABLE', 'COMPLETED'
        ]

    def test_shortfall(self):
        snapshot = FinancialSnapshot()
        snapshot.general.monthly_take_home = 3000
        snapshot.general.monthly_expense = 3500
        waterfall = calculate_cash_flow_waterfall(snapshot)

        essentials = waterfall.box('essentials')
        assert essentials.status == 'INCOMPLETE'
        assert 'Shortfall: $500/mo' in essentials.details['message']
        assert waterfall.remaining_cash_flow == 0
        assert waterfall.total_allocated == 0

    def test_starter_fund_first(self):
        snapshot = FinancialSnapshot()
        snapshot.general.monthly_take_home = 4000
        snapshot.general.monthly_expense = 3000
        snapshot.investments.savings = 400
        waterfall = calculate_cash_flow_waterfall(snapshot)

        starter = waterfall.box('starter_ef')
        assert starter.status == 'IN_PROGRESS'
        assert starter.allocated == 600
        # The rest goes to the full emergency fund
        assert waterfall.box('full_ef').allocated == 400
        assert not waterfall.foundation_complete

    def test_employer_match_contribution(self):
        """4% of $120,000 is $400/mo needed to capture the 401(k) match."""
        snapshot = FinancialSnapshot()
        snapshot.general.annual_income = 120000
        snapshot.general.monthly_take_home = 7000
        snapshot.general.monthly_expense = 4000
        snapshot.investments.savings = 1000
        snapshot.fire_settings.has_401k_match = True
        waterfall = calculate_cash_flow_waterfall(snapshot)

        match = waterfall.box('employer_match')
        assert match.allocated == pytest.approx(400)
        assert match.status == 'IN_PROGRESS'

    def test_flexible_boxes_wait_for_foundation(self):
        snapshot = FinancialSnapshot()
        snapshot.general.monthly_take_home = 4000
        snapshot.general.monthly_expense = 3000
        snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 5000, 20)
        waterfall = calculate_cash_flow_waterfall(snapshot)

        assert all(b.allocated == 0 for b in waterfall.boxes[4:])
        assert waterfall.box('high_interest_debt').status == 'NOT_STARTED'


class TestFlexible:

    def test_high_interest_debt_takes_everything_by_default(self, solid_foundation):
        waterfall = calculate_cash_flow_waterfall(solid_foundation)
        assert waterfall.box('high_interest_debt').allocated == 3000
        assert waterfall.box('hsa_ira').status == 'NOT_STARTED'
        assert waterfall.remaining_cash_flow == 0

    def test_override_caps_box(self, solid_foundation):
        solid_foundation.fire_settings.allocations.high_interest_debt = 1000
        waterfall = calculate_cash_flow_waterfall(solid_foundation)

        assert waterfall.box('high_interest_debt').allocated == 1000
        assert waterfall.box('hsa_ira').allocated == 300
        assert waterfall.box('moderate_debt').status == 'COMPLETED'
        assert waterfall.box('max_401k').allocated == 500
        assert waterfall.box('taxable_investing').allocated == 1200
        assert waterfall.remaining_cash_flow == 0

    def test_taxable_override_leaves_cash(self, solid_foundation):
        solid_foundation.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 0, 20)
        solid_foundation.fire_settings.allocations.taxable_investing = 200
        waterfall = calculate_cash_flow_waterfall(solid_foundation)

        assert waterfall.box('high_interest_debt').status == 'COMPLETED'
        assert waterfall.box('taxable_investing').allocated == 200
        assert waterfall.remaining_cash_flow == 3000 - 300 - 500 - 200

    def test_override_caps_tax_advantaged_target(self, solid_foundation):
        solid_foundation.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 0, 20)
        solid_foundation.fire_settings.allocations.max_401k = 250
        waterfall = calculate_cash_flow_waterfall(solid_foundation)
        assert waterfall.box('max_401k').allocated == 250
        assert waterfall.box('taxable_investing').allocated == 3000 - 300 - 250

    def test_moderate_debt_excludes_mortgage(self, solid_foundation):
        solid_foundation.debts[4] = make_debt(DebtCategory.MORTGAGE, 300000, 6.5)
        waterfall = calculate_cash_flow_waterfall(solid_foundation)
        assert waterfall.box('moderate_debt').status == 'COMPLETED'
        assert waterfall.box('moderate_debt').details['total_balance'] == 0

    def test_box_ids_follow_order(self, solid_foundation):
        waterfall = calculate_cash_flow_waterfall(solid_foundation)
        assert [b.id for b in waterfall.boxes] == list(range(1, 10))
