"""
Tests for milestone progression and snapshot metrics.

Tests verify:
- Status of each milestone before and after prerequisite gating
- The next recommended step and its reasoning
- Progress percentages
- Aggregate metrics and the plain-language summary
"""

import pytest

from fingps.models.snapshot import DebtCategory, FinancialSnapshot
from fingps.services.milestones import (
    Fragility, MilestoneAction, MilestoneEngine, MilestoneStatus, PREREQUISITES,
    calculate_metrics, financial_summary, get_milestones, get_next_milestone, step_reasoning
)
from conftest import make_debt


def statuses(snapshot):
    return {m.action: m.status for m in get_milestones(snapshot)}


def funded_snapshot():
    """Income, expenses and a full six-month emergency fund, no debt."""
    snapshot = FinancialSnapshot()
    snapshot.general.annual_income = 90000
    snapshot.general.monthly_take_home = 5500
    snapshot.general.monthly_expense = 3000
    snapshot.investments.savings = 18000
    return snapshot


class TestOrdering:

    def test_ten_milestones_in_rank_order(self):
        milestones = get_milestones(FinancialSnapshot())
        assert [m.rank for m in milestones] == list(range(1, 11))
        assert milestones[0].action == MilestoneAction.BUDGET_ESSENTIALS
        assert milestones[-1].action == MilestoneAction.LOW_INTEREST_DEBT

    def test_empty_snapshot_starts_with_budget(self):
        next_step = get_next_milestone(FinancialSnapshot())
        assert next_step.action == MilestoneAction.BUDGET_ESSENTIALS
        assert next_step.status == MilestoneStatus.IN_PROGRESS

    def test_prerequisite_must_rank_earlier(self):
        with pytest.raises(ValueError):
            MilestoneEngine({MilestoneAction.STARTER_EMERGENCY_FUND: MilestoneAction.MAX_RETIREMENT})


class TestHighInterestDebt:

    def test_card_debt_in_progress(self):
        snapshot = funded_snapshot()
        snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 1000, 18)
        assert statuses(snapshot)[MilestoneAction.HIGH_INTEREST_DEBT] == MilestoneStatus.IN_PROGRESS

    def test_mortgage_does_not_count(self):
        snapshot = funded_snapshot()
        snapshot.debts[4] = make_debt(DebtCategory.MORTGAGE, 250000, 7.5, term_months=360)
        assert statuses(snapshot)[MilestoneAction.HIGH_INTEREST_DEBT] == MilestoneStatus.COMPLETED

    def test_seven_percent_is_high_interest(self):
        snapshot = funded_snapshot()
        snapshot.debts[3] = make_debt(DebtCategory.AUTO, 5000, 7.0)
        assert statuses(snapshot)[MilestoneAction.HIGH_INTEREST_DEBT] == MilestoneStatus.IN_PROGRESS

    def test_below_seven_percent_is_moderate(self):
        snapshot = funded_snapshot()
        snapshot.debts[3] = make_debt(DebtCategory.AUTO, 5000, 6.9)
        result = statuses(snapshot)
        assert result[MilestoneAction.HIGH_INTEREST_DEBT] == MilestoneStatus.COMPLETED
        assert result[MilestoneAction.MODERATE_INTEREST_DEBT] == MilestoneStatus.IN_PROGRESS


class TestGating:

    def test_full_emergency_fund_waits_for_debt(self):
        """Savings alone do not complete the full fund while card debt remains."""
        snapshot = funded_snapshot()
        snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 1000, 18)
        result = statuses(snapshot)
        assert result[MilestoneAction.FULL_EMERGENCY_FUND] == MilestoneStatus.NOT_STARTED
        assert result[MilestoneAction.HSA_ROTH] == MilestoneStatus.NOT_STARTED

    def test_later_steps_follow_savings_not_card_debt(self):
        """Ten months of savings unlock the post-fund steps even with card debt left."""
        snapshot = FinancialSnapshot()
        snapshot.general.annual_income = 80000
        snapshot.general.monthly_take_home = 5000
        snapshot.general.monthly_expense = 2000
        snapshot.investments.savings = 20000
        snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 3000, 22)
        result = statuses(snapshot)

        assert result[MilestoneAction.FULL_EMERGENCY_FUND] == MilestoneStatus.NOT_STARTED
        assert result[MilestoneAction.MODERATE_INTEREST_DEBT] == MilestoneStatus.COMPLETED
        assert result[MilestoneAction.MAX_RETIREMENT] == MilestoneStatus.IN_PROGRESS
        assert get_next_milestone(snapshot).action == MilestoneAction.HIGH_INTEREST_DEBT

    def test_three_months_do_not_unlock_later_steps(self):
        snapshot = funded_snapshot()
        snapshot.investments.savings = 9000
        result = statuses(snapshot)
        assert result[MilestoneAction.FULL_EMERGENCY_FUND] == MilestoneStatus.IN_PROGRESS
        assert result[MilestoneAction.MAX_RETIREMENT] == MilestoneStatus.NOT_STARTED
        assert result[MilestoneAction.TAXABLE_INVESTING] == MilestoneStatus.NOT_STARTED

    def test_unlocked_once_debt_is_gone(self):
        result = statuses(funded_snapshot())
        assert result[MilestoneAction.FULL_EMERGENCY_FUND] == MilestoneStatus.COMPLETED
        assert result[MilestoneAction.MAX_RETIREMENT] == MilestoneStatus.IN_PROGRESS

    @pytest.mark.parametrize("savings", [0, 2000, 6000, 30000])
    def test_next_step_never_skips_an_unmet_prerequisite(self, household, savings):
        household.investments.savings = savings
        milestones = {m.action: m for m in get_milestones(household)}
        next_step = get_next_milestone(household)

        for milestone in milestones.values():
            if milestone.rank < next_step.rank:
                assert not milestone.is_actionable
        required = PREREQUISITES.get(next_step.action)
        if required is not None and next_step.status != MilestoneStatus.NOT_STARTED:
            assert milestones[required].status == MilestoneStatus.COMPLETED

    def test_household_next_step_is_card_debt(self, household):
        assert get_next_milestone(household).action == MilestoneAction.HIGH_INTEREST_DEBT


class TestStatusRules:

    def test_employer_match_not_applicable(self):
        assert statuses(funded_snapshot())[MilestoneAction.EMPLOYER_MATCH] == MilestoneStatus.NOT_APPLICABLE

    def test_employer_match_captured(self):
        snapshot = funded_snapshot()
        snapshot.fire_settings.has_401k_match = True
        snapshot.fire_settings.is_getting_401k_match = True
        assert statuses(snapshot)[MilestoneAction.EMPLOYER_MATCH] == MilestoneStatus.COMPLETED

    def test_employer_match_left_on_table(self):
        snapshot = funded_snapshot()
        snapshot.fire_settings.has_hsa_match = True
        assert statuses(snapshot)[MilestoneAction.EMPLOYER_MATCH] == MilestoneStatus.IN_PROGRESS

    def test_low_interest_debt_never_prioritized(self):
        snapshot = funded_snapshot()
        snapshot.debts[2] = make_debt(DebtCategory.STUDENT, 20000, 3.0)
        assert statuses(snapshot)[MilestoneAction.LOW_INTEREST_DEBT] == MilestoneStatus.NOT_APPLICABLE

    def test_custom_emergency_months(self):
        snapshot = funded_snapshot()
        snapshot.fire_settings.emergency_fund_months = 9
        assert statuses(snapshot)[MilestoneAction.FULL_EMERGENCY_FUND] == MilestoneStatus.IN_PROGRESS


class TestProgress:

    def test_starter_fund_half_way(self):
        snapshot = FinancialSnapshot()
        snapshot.general.monthly_expense = 2000
        snapshot.investments.savings = 1000
        starter = get_milestones(snapshot)[1]
        assert starter.progress == 50
        assert starter.status == MilestoneStatus.IN_PROGRESS

    def test_progress_capped_at_100(self):
        starter = get_milestones(funded_snapshot())[1]
        assert starter.progress == 100

    def test_no_target_means_no_progress(self):
        match = get_milestones(funded_snapshot())[2]
        assert match.progress is None


class TestMetrics:

    def test_household_metrics(self, household):
        metrics = calculate_metrics(household)
        assert metrics.total_assets == 76000
        assert metrics.total_debts == 16000
        assert metrics.net_worth == 60000
        assert metrics.emergency_months == 1.5
        assert metrics.fragility == Fragility.FRAGILE
        assert metrics.savings_rate == 43
        assert metrics.monthly_savings == 3000

    def test_debt_to_income(self):
        snapshot = FinancialSnapshot()
        snapshot.general.annual_income = 120000
        snapshot.debts[0] = make_debt(DebtCategory.CREDIT_CARD, 10000, 24)
        metrics = calculate_metrics(snapshot)
        assert metrics.monthly_debt_payments == 300
        assert metrics.debt_to_income == 3

    def test_fragility_bands(self):
        snapshot = FinancialSnapshot()
        snapshot.general.monthly_expense = 1000
        snapshot.investments.savings = 3000
        assert calculate_metrics(snapshot).fragility == Fragility.MODERATE
        snapshot.investments.savings = 6000
        assert calculate_metrics(snapshot).fragility == Fragility.SOLID


class TestSummary:

    def test_missing_emergency_fund_is_a_weakness(self):
        summary = financial_summary(FinancialSnapshot())
        assert any('No emergency fund' in w for w in summary.weaknesses)

    def test_household_summary(self, household):
        summary = financial_summary(household)
        assert any('high-interest debt' in w for w in summary.weaknesses)
        assert any('Excellent savings rate' in s for s in summary.strengths)
        assert any('20 years' in i for i in summary.insights)


class TestReasoning:

    def test_every_milestone_explains_itself(self, household):
        for milestone in get_milestones(household):
            assert milestone.reasoning.why
            assert milestone.reasoning.action

    def test_high_interest_names_amount_and_rate(self, household):
        reasoning = step_reasoning(MilestoneAction.HIGH_INTEREST_DEBT, household)
        assert '$4K' in reasoning.action
        assert '21%' in reasoning.why

    def test_full_fund_uses_configured_months(self, household):
        household.fire_settings.emergency_fund_months = 4
        reasoning = step_reasoning(MilestoneAction.FULL_EMERGENCY_FUND, household)
        assert '$16K (4 months of expenses)' in reasoning.action
        assert 'covering 1.5 months' in reasoning.action
