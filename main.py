#!/usr/bin/env python3
"""
Financial GPS - debt payoff, milestone, budget, FIRE and tax planning from a snapshot file.

Usage:
    python main.py snapshot.json
    python main.py snapshot.json --strategy snowball --extra 300
    python main.py snapshot.json --export plan.xlsx
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from fingps.models.snapshot import FinancialSnapshot
from fingps.services.budget_health import calculate_budget_health
from fingps.services.cash_flow import calculate_cash_flow_waterfall
from fingps.services.debt_payoff import PayoffStrategy, compute_extra_payment
from fingps.services.fire_projection import project_fire
from fingps.services.milestones import (
    calculate_metrics, financial_summary, get_milestones, get_next_milestone
)
from fingps.services.strategy_comparison import compare_strategies
from fingps.services.tax_calculator import analyze_tax_situation
from fingps.services.tax_destiny import compute_tax_destiny
from fingps.utils.config import Config
from fingps.utils.export import ExcelExporter

logger = logging.getLogger("fingps")


def load_snapshot(path: Path) -> FinancialSnapshot:
    """Read a snapshot JSON document from disk."""
    with open(path, 'r') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("snapshot must be a JSON object")
    return FinancialSnapshot.from_dict(data)


def print_debt_plan(snapshot: FinancialSnapshot, strategy: PayoffStrategy, extra: float,
                    max_months: int):
    comparison = compare_strategies(snapshot.debts, extra, max_months=max_months)
    print("\n=== Debt Payoff ===")
    if comparison is None:
        print("No active debts.")
        return None

    result = comparison.result_for(strategy)
    print(f"Extra payment: ${extra:,.0f}/mo ({strategy.value})")
    if result.converged:
        print(f"Debt-free in {result.months_to_payoff} months "
              f"({result.debt_free_date.strftime('%B %Y')})")
    else:
        print(f"Not paid off within {result.months_to_payoff} months; "
              f"payments do not cover the interest.")
    print(f"Total interest: ${result.total_interest_paid:,.2f}")
    for milestone in result.paid_off_milestones:
        print(f"  Month {milestone.month:>3}: {milestone.label} paid off, "
              f"frees ${milestone.freed_monthly_payment:,.2f}/mo")

    summary = comparison.comparison
    print(f"Avalanche saves ${summary.interest_savings:,.2f} and {summary.months_saved} months "
          f"over snowball.")
    print(f"Recommendation: {summary.recommendation.value} - {summary.reason}")
    return comparison


def print_milestones(snapshot: FinancialSnapshot):
    milestones = get_milestones(snapshot)
    print("\n=== Milestones ===")
    for milestone in milestones:
        progress = f" {milestone.progress}%" if milestone.progress is not None else ""
        print(f"{milestone.rank:>2}. {milestone.title:<32} {milestone.status.value}{progress}")

    next_step = get_next_milestone(snapshot)
    if next_step is not None:
        print(f"Next step: {next_step.title} - {next_step.description}")
        print(f"  Why: {next_step.reasoning.why}")
        print(f"  Do: {next_step.reasoning.action}")
    return milestones


def print_overview(snapshot: FinancialSnapshot):
    metrics = calculate_metrics(snapshot)
    print("=== Overview ===")
    print(f"Net worth: ${metrics.net_worth:,.0f}   Debt-to-income: {metrics.debt_to_income}%   "
          f"Savings rate: {metrics.savings_rate}%")
    print(f"Emergency fund: {metrics.emergency_months} months ({metrics.fragility.value})")

    summary = financial_summary(snapshot, metrics)
    for heading, items in (("Strengths", summary.strengths), ("Weaknesses", summary.weaknesses),
                           ("Insights", summary.insights)):
        if items:
            print(f"{heading}:")
            for item in items:
                print(f"  - {item}")


def print_cash_flow(snapshot: FinancialSnapshot):
    waterfall = calculate_cash_flow_waterfall(snapshot)
    print("\n=== Monthly Cash Flow ===")
    print(f"Available: ${waterfall.initial_cash_flow:,.0f}/mo")
    for box in waterfall.boxes:
        print(f"  {box.title:<22} {box.status:<15} ${box.allocated:,.0f}")
    print(f"Unallocated: ${waterfall.remaining_cash_flow:,.0f}/mo")


def print_budget_health(snapshot: FinancialSnapshot):
    health = calculate_budget_health(snapshot)
    print("\n=== Budget Health ===")
    print(f"Score: {health.score}/100 ({health.grade})")
    for component in health.components:
        print(f"  {component.label:<16} {component.score:>3}  {component.detail}")
    for suggestion in health.suggestions:
        print(f"  +{suggestion.points} pts: {suggestion.text}")


def print_fire(snapshot: FinancialSnapshot):
    print("\n=== FIRE Projection ===")
    projection = project_fire(snapshot)
    if projection is None:
        print("Target retirement age must be after current age.")
        return
    print(f"FIRE number: ${projection.fire_number:,.0f} "
          f"(25x ${projection.annual_expenses:,.0f}/yr)")
    print(f"Projected net worth at {projection.retirement_age}: "
          f"${projection.projected_net_worth:,.0f}")
    if projection.fire_age is not None:
        print(f"Financially independent at age {projection.fire_age:g}")
    else:
        print(f"Short by ${projection.shortfall:,.0f} at target retirement")


def print_taxes(snapshot: FinancialSnapshot):
    print("\n=== Taxes ===")
    analysis = analyze_tax_situation(snapshot)
    if analysis is None:
        print("No income entered.")
        return None

    current = analysis.current
    print(f"Estimated federal tax: ${current.federal_tax:,.0f}   "
          f"state tax: ${current.state_tax.tax:,.0f}   FICA: ${current.fica:,.0f}")
    print(f"Marginal rate: {current.marginal_rate:.0%}")
    for rec in analysis.recommendations:
        savings = f" (saves ~${rec.tax_savings:,.0f})" if rec.tax_savings else ""
        print(f"  [{rec.priority}] {rec.title}{savings}")

    destiny = compute_tax_destiny(snapshot)
    if destiny is not None:
        print(f"Planned allocations save ${destiny.annual_savings:,.0f}/yr "
              f"(${destiny.monthly_savings:,.0f}/mo)")
        for warning in destiny.validation.warnings:
            print(f"  {warning.severity.value.upper()}: {warning.message}")
    return destiny


def main():
    parser = argparse.ArgumentParser(
        description="Plan debt payoff, milestones and taxes from a financial snapshot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("snapshot", type=Path, help="Snapshot JSON file")
    parser.add_argument("--strategy", choices=['avalanche', 'snowball'],
                        help="Payoff strategy to detail (default from snapshot or config)")
    parser.add_argument("--extra", type=float,
                        help="Extra monthly debt payment (default from aggressiveness setting)")
    parser.add_argument("--export", type=Path, help="Write an Excel report to this file")
    parser.add_argument("--config", type=Path, help="Configuration JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    config = Config(args.config)
    level = logging.DEBUG if args.verbose else getattr(logging, str(config.get('log_level')).upper(),
                                                       logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    if not args.snapshot.exists():
        logger.error("Snapshot file not found: %s", args.snapshot)
        sys.exit(1)
    try:
        snapshot = load_snapshot(args.snapshot)
    except (OSError, ValueError) as e:
        logger.error("Could not load snapshot %s: %s", args.snapshot, e)
        sys.exit(1)

    strategy = PayoffStrategy.parse(
        args.strategy or snapshot.debt_settings.preferred_strategy or config.get('default_strategy')
    )
    if args.extra is not None:
        extra = max(0.0, args.extra)
    else:
        extra = compute_extra_payment(snapshot.debt_settings, snapshot.general.monthly_cash_flow)
    max_months = int(config.get('max_simulation_months', 600))

    print_overview(snapshot)
    comparison = print_debt_plan(snapshot, strategy, extra, max_months)
    milestones = print_milestones(snapshot)
    print_cash_flow(snapshot)
    print_budget_health(snapshot)
    print_fire(snapshot)
    destiny = print_taxes(snapshot)

    if args.export:
        target = args.export
        if not target.is_absolute():
            target = Path(config.get('export_directory', '.')) / target
        exporter = ExcelExporter(config.get('currency_format', '"$"#,##0.00'))
        exporter.export(str(target), comparison, milestones, destiny)
        print(f"\nExported report to {target}")


if __name__ == "__main__":
    main()
