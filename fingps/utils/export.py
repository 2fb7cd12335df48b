"""Excel export functionality for Financial GPS."""

from datetime import datetime
from typing import List, Optional
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from ..services.debt_payoff import PaydownResult
from ..services.milestones import Milestone
from ..services.strategy_comparison import StrategyComparison
from ..services.tax_destiny import TaxDestinyResult


class ExcelExporter:
    """Export a financial plan to Excel format."""

    def __init__(self, currency_format: str = '"$"#,##0.00'):
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        self.header_alignment = Alignment(horizontal="center", vertical="center")
        self.currency_format = currency_format
        self.percent_format = '0.00%'
        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def export(self, filename: str, comparison: Optional[StrategyComparison],
               milestones: List[Milestone], tax_destiny: Optional[TaxDestinyResult] = None):
        """Export the plan to an Excel file."""
        wb = Workbook()

        self._create_summary_sheet(wb.active, comparison)
        wb.active.title = "Summary"

        if comparison is not None:
            self._create_timeline_sheet(wb.create_sheet("Avalanche"), comparison.avalanche)
            self._create_timeline_sheet(wb.create_sheet("Snowball"), comparison.snowball)

        self._create_milestones_sheet(wb.create_sheet("Milestones"), milestones)

        if tax_destiny is not None:
            self._create_tax_destiny_sheet(wb.create_sheet("Tax Destiny"), tax_destiny)

        wb.save(filename)

    def _write_headers(self, ws, row: int, headers: List[str]):
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.header_alignment
            cell.border = self.thin_border

    def _create_summary_sheet(self, ws, comparison: Optional[StrategyComparison]):
        """Create the strategy comparison sheet."""
        ws['A1'] = "Debt Payoff Strategy Comparison"
        ws['A1'].font = Font(bold=True, size=16)
        ws.merge_cells('A1:C1')

        ws['A2'] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
        ws['A2'].font = Font(italic=True, color="666666")
        ws.merge_cells('A2:C2')

        if comparison is None:
            ws['A4'] = "No active debts to compare."
            return

        self._write_headers(ws, 4, ['Metric', 'Avalanche', 'Snowball'])
        avalanche, snowball = comparison.avalanche, comparison.snowball
        rows = [
            ("Months to Payoff", avalanche.months_to_payoff, snowball.months_to_payoff, None),
            ("Total Interest", avalanche.total_interest_paid, snowball.total_interest_paid,
             self.currency_format),
            ("Total Paid", avalanche.total_paid, snowball.total_paid, self.currency_format),
            ("Debt-Free Date", avalanche.debt_free_date.strftime('%Y-%m'),
             snowball.debt_free_date.strftime('%Y-%m'), None),
            ("Payoff Order", ', '.join(avalanche.payoff_order), ', '.join(snowball.payoff_order), None),
            ("Converged", 'Yes' if avalanche.converged else 'No',
             'Yes' if snowball.converged else 'No', None),
        ]

        row = 5
        for label, a_value, s_value, number_format in rows:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            for col, value in ((2, a_value), (3, s_value)):
                cell = ws.cell(row=row, column=col, value=value)
                if number_format:
                    cell.number_format = number_format
            row += 1

        summary = comparison.comparison
        row += 1
        ws.cell(row=row, column=1, value="Interest Savings").font = Font(bold=True)
        ws.cell(row=row, column=2, value=summary.interest_savings).number_format = self.currency_format
        row += 1
        ws.cell(row=row, column=1, value="Months Saved").font = Font(bold=True)
        ws.cell(row=row, column=2, value=summary.months_saved)
        row += 1
        ws.cell(row=row, column=1, value="Recommendation").font = Font(bold=True)
        ws.cell(row=row, column=2, value=summary.recommendation.value.title())
        row += 1
        ws.cell(row=row, column=1, value=summary.reason).alignment = Alignment(wrap_text=True)
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=3)

        ws.column_dimensions['A'].width = 22
        ws.column_dimensions['B'].width = 30
        ws.column_dimensions['C'].width = 30

    def _create_timeline_sheet(self, ws, result: PaydownResult):
        """Create a month-by-month balance sheet for one strategy."""
        names = [d.label for d in result.timeline[0].debts] if result.timeline else []
        headers = ['Month'] + names + ['Interest', 'Total Remaining']
        self._write_headers(ws, 1, headers)

        for row, month in enumerate(result.timeline, 2):
            ws.cell(row=row, column=1, value=month.month)
            for col, balance in enumerate(month.debts, 2):
                ws.cell(row=row, column=col, value=balance.remaining_balance).number_format = self.currency_format
            col = len(month.debts) + 2
            ws.cell(row=row, column=col, value=month.interest).number_format = self.currency_format
            ws.cell(row=row, column=col + 1, value=month.total_remaining).number_format = self.currency_format

        for i in range(1, len(headers) + 1):
            ws.column_dimensions[get_column_letter(i)].width = 10 if i == 1 else 16

    def _create_milestones_sheet(self, ws, milestones: List[Milestone]):
        """Create the milestone list sheet."""
        headers = ['Rank', 'Milestone', 'Status', 'Progress', 'Target', 'Current']
        self._write_headers(ws, 1, headers)

        for row, milestone in enumerate(milestones, 2):
            ws.cell(row=row, column=1, value=milestone.rank)
            ws.cell(row=row, column=2, value=milestone.title)
            ws.cell(row=row, column=3, value=milestone.status.value.replace('_', ' ').title())

            if milestone.progress is not None:
                ws.cell(row=row, column=4, value=milestone.progress / 100).number_format = self.percent_format
            if milestone.target_amount is not None:
                ws.cell(row=row, column=5, value=milestone.target_amount).number_format = self.currency_format
            if milestone.current_amount is not None:
                ws.cell(row=row, column=6, value=milestone.current_amount).number_format = self.currency_format

            for col in range(1, len(headers) + 1):
                ws.cell(row=row, column=col).border = self.thin_border

        column_widths = [8, 32, 16, 12, 15, 15]
        for i, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width

    def _create_tax_destiny_sheet(self, ws, result: TaxDestinyResult):
        """Create the baseline vs. allocations tax sheet."""
        ws['A1'] = "Tax Destiny"
        ws['A1'].font = Font(bold=True, size=14)
        ws.merge_cells('A1:C1')

        self._write_headers(ws, 3, ['', 'Baseline', 'With Allocations'])
        baseline, planned = result.baseline, result.with_allocations
        rows = [
            ("Taxable Income", baseline.taxable_income, planned.taxable_income),
            ("Federal Tax", baseline.federal_tax, planned.federal_tax),
            ("State Tax", baseline.state_tax, planned.state_tax),
            ("FICA", baseline.fica, planned.fica),
            ("Total Income Tax", baseline.total_income_tax, planned.total_income_tax),
        ]
        row = 4
        for label, b_value, p_value in rows:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row, column=2, value=b_value).number_format = self.currency_format
            ws.cell(row=row, column=3, value=p_value).number_format = self.currency_format
            row += 1

        ws.cell(row=row, column=1, value="Annual Savings").font = Font(bold=True)
        total_cell = ws.cell(row=row, column=2, value=result.annual_savings)
        total_cell.number_format = self.currency_format
        total_cell.font = Font(bold=True)

        row += 2
        headers = ['Account', 'Annual Amount', 'Limit', '% of Limit', 'Est. Savings']
        self._write_headers(ws, row, headers)
        row += 1
        for breakdown in result.breakdowns.values():
            ws.cell(row=row, column=1, value=breakdown.account)
            ws.cell(row=row, column=2, value=breakdown.annual_amount).number_format = self.currency_format
            ws.cell(row=row, column=3, value=breakdown.annual_limit or '').number_format = self.currency_format
            ws.cell(row=row, column=4, value=breakdown.percent_of_limit).number_format = self.percent_format
            ws.cell(row=row, column=5, value=breakdown.estimated_annual_savings).number_format = self.currency_format
            row += 1

        if result.validation.warnings:
            row += 1
            ws.cell(row=row, column=1, value="Warnings").font = Font(bold=True, size=12)
            row += 1
            for warning in result.validation.warnings:
                ws.cell(row=row, column=1, value=warning.severity.value.upper())
                ws.cell(row=row, column=2, value=warning.message)
                row += 1

        column_widths = [22, 16, 18, 12, 15]
        for i, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width
