"""
Tests for federal, state and payroll tax calculations.

Tests verify:
- Progressive bracket math for each filing status
- FICA wage base
- Full scenarios with pre-tax deductions, charitable giving and tax-loss offsets
- Contribution impact and tax recommendations
"""

import pytest

from fingps.models.snapshot import FinancialSnapshot
from fingps.services.state_tax import NationalAverageEstimator
from fingps.services.tax_calculator import (
    STANDARD_DEDUCTION_2025, TAX_BRACKETS_2025, TaxBracketEngine, TaxDeductions,
    analyze_tax_situation, compute_tax_scenario, contribution_impact, federal_tax, fica
)


class TestFederalTax:

    @pytest.mark.parametrize("status", ['single', 'married', 'head_of_household'])
    def test_zero_income(self, status):
        result = federal_tax(0, status)
        assert result.tax == 0
        assert result.marginal_rate == 0.10

    def test_single_50k(self):
        """$1,160 + $4,266 + $627 across the first three brackets."""
        result = federal_tax(50000, 'single')
        assert result.tax == pytest.approx(6053.0)
        assert result.marginal_rate == 0.22
        assert result.effective_rate == pytest.approx(6053 / 50000)

    def test_married_first_bracket(self):
        assert federal_tax(20000, 'married').tax == pytest.approx(2000.0)

    def test_top_bracket(self):
        result = federal_tax(1_000_000, 'single')
        assert result.marginal_rate == 0.37
        assert result.bracket.max == float('inf')

    def test_unknown_status_uses_single(self):
        assert federal_tax(80000, 'widowed') == federal_tax(80000, 'single')

    @pytest.mark.parametrize("status", ['single', 'married', 'head_of_household'])
    def test_non_decreasing(self, status):
        taxes = [federal_tax(income, status).tax for income in range(0, 800001, 2500)]
        assert taxes == sorted(taxes)

    @pytest.mark.parametrize("status", ['single', 'married', 'head_of_household'])
    def test_continuous_at_bracket_edges(self, status):
        for bracket in TAX_BRACKETS_2025[status][1:]:
            below = federal_tax(bracket.min - 0.01, status).tax
            above = federal_tax(bracket.min + 0.01, status).tax
            assert above - below < 0.02


class TestFica:

    def test_below_wage_base(self):
        assert fica(100000) == pytest.approx(7650)

    def test_above_wage_base(self):
        assert fica(200000) == pytest.approx(168600 * 0.062 + 200000 * 0.0145)

    def test_no_income(self):
        assert fica(0) == 0


class TestScenario:

    def test_texas_with_401k(self):
        """No state tax in Texas; $10k 401(k) leaves $75,400 taxable."""
        scenario = compute_tax_scenario(100000, TaxDeductions(four_oh_one_k=10000), 'single', 'Austin, TX')

        assert scenario.agi == 90000
        assert scenario.taxable_income == 75400
        assert scenario.federal_tax == pytest.approx(11641.0)
        assert scenario.state_tax == 0
        assert scenario.state_info.state == 'TX'
        assert scenario.total_income_tax == pytest.approx(11641.0)
        assert scenario.fica == pytest.approx(7650)
        assert scenario.total_tax == pytest.approx(11641.0 + 7650)

    def test_tax_loss_offset_capped(self):
        scenario = compute_tax_scenario(100000, TaxDeductions(tax_loss_harvest=8000), 'single', 'Miami, FL')
        assert scenario.tax_loss_offset == 3000
        assert scenario.taxable_income == 100000 - STANDARD_DEDUCTION_2025['single'] - 3000

    def test_charitable_reduces_taxable_income(self):
        scenario = compute_tax_scenario(100000, TaxDeductions(charitable=5000), 'single', 'Miami, FL')
        assert scenario.charitable_deduction == 5000
        assert scenario.agi == 100000
        assert scenario.taxable_income == 100000 - 14600 - 5000

    def test_deductions_never_go_negative(self):
        scenario = compute_tax_scenario(10000, TaxDeductions(four_oh_one_k=23500), 'single', 'Miami, FL')
        assert scenario.taxable_income == 0
        assert scenario.federal_tax == 0
        assert scenario.effective_rate == 0

    def test_injected_estimator(self):
        engine = TaxBracketEngine(NationalAverageEstimator())
        scenario = engine.scenario(100000, filing_status='single', msa='Austin, TX')
        assert scenario.state_tax == pytest.approx(85400 * 0.05)
        assert scenario.state_info.is_estimate

    def test_engine_defaults_to_national_average(self):
        scenario = TaxBracketEngine().scenario(60000, msa='Denver, CO')
        assert scenario.state_info.rate == 0.05


def test_contribution_impact():
    impact = contribution_impact(100000, 10000, 'single')
    assert impact.taxable_income_before == 85400
    assert impact.taxable_income_after == 75400
    assert impact.tax_before == pytest.approx(13841.0)
    assert impact.tax_after == pytest.approx(11641.0)
    assert impact.savings == pytest.approx(2200.0)
    assert impact.net_cost == pytest.approx(7800.0)
    assert impact.effective_contribution_cost == pytest.approx(0.78)


class TestAnalysis:

    def test_no_income(self):
        assert analyze_tax_situation(FinancialSnapshot()) is None

    def test_recommendations(self, household):
        analysis = analyze_tax_situation(household)
        ids = [r.id for r in analysis.recommendations]

        assert ids[0] == '401k'
        assert 'hsa' in ids
        assert 'tax_loss_harvest' in ids
        assert 'charitable' in ids
        assert ids[-1] == 'withholding'
        assert analysis.current.state_tax.state == 'CO'
        assert analysis.total_potential_savings == sum(
            r.tax_savings for r in analysis.recommendations if r.tax_savings)

    def test_catch_up_limits(self, household):
        household.general.age = 55
        analysis = analyze_tax_situation(household)
        limits = {r.id: r.limit for r in analysis.recommendations}
        assert limits['401k'] == 31000
        assert limits['hsa'] == 5300

    def test_small_portfolio_skips_harvesting(self, household):
        household.investments.stocks_bonds = 5000
        ids = [r.id for r in analyze_tax_situation(household).recommendations]
        assert 'tax_loss_harvest' not in ids
