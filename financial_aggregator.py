#!/usr/bin/env python3
"""
Financial Aggregator
Pure computation of job totals: subtotal, builder margin, GST and final total.
"""

from dataclasses import dataclass
from typing import Dict

from document_settings import GST_RATE
from job_documents import JobDocument, LaborEntry


@dataclass(frozen=True)
class SectionTotals:
    """Raw (unrounded) totals of each cost section."""
    labor: float = 0.0
    materials: float = 0.0
    sub_trades: float = 0.0
    other_costs: float = 0.0
    tip_fees: float = 0.0

    @property
    def subtotal(self) -> float:
        return self.labor + self.materials + self.sub_trades + self.other_costs + self.tip_fees

    def as_dict(self) -> Dict[str, float]:
        return {
            'Labour': self.labor,
            'Materials': self.materials,
            'Sub Trades': self.sub_trades,
            'Other Costs': self.other_costs,
            'Tip Fees': self.tip_fees,
        }


@dataclass(frozen=True)
class FinancialSummary:
    """Job figures computed once and displayed verbatim."""
    section_totals: SectionTotals
    margin_percent: float
    subtotal: float
    margin_amount: float
    subtotal_with_margin: float
    gst_amount: float
    final_total: float

    @property
    def has_margin(self) -> bool:
        return self.margin_percent > 0


def labor_entry_total(entry: LaborEntry) -> float:
    return entry.hourly_rate * entry.hours_logged


def section_totals_for(job: JobDocument) -> SectionTotals:
    """Section totals straight from the job record, without rendering anything."""
    return SectionTotals(
        labor=sum(labor_entry_total(entry) for entry in job.labor_entries),
        materials=sum(material.amount for material in job.materials),
        sub_trades=sum(sub_trade.amount for sub_trade in job.sub_trades),
        other_costs=sum(cost.amount for cost in job.other_costs),
        # value of record, never base + cartage
        tip_fees=sum(fee.total_amount for fee in job.tip_fees),
    )


def aggregate(section_totals: SectionTotals, margin_percent: float) -> FinancialSummary:
    """
    Apply builder margin and GST to the raw section totals.

    margin = subtotal * margin% / 100, GST is 10% of the margin-inclusive
    subtotal, and the final total is their sum.
    """
    subtotal = section_totals.subtotal
    margin_amount = subtotal * margin_percent / 100
    subtotal_with_margin = subtotal + margin_amount
    gst_amount = subtotal_with_margin * GST_RATE
    return FinancialSummary(
        section_totals=section_totals,
        margin_percent=margin_percent,
        subtotal=subtotal,
        margin_amount=margin_amount,
        subtotal_with_margin=subtotal_with_margin,
        gst_amount=gst_amount,
        final_total=subtotal_with_margin + gst_amount,
    )


def format_money(amount: float) -> str:
    """Dollar amount with thousands separators and exactly two decimals."""
    if amount < 0:
        return f"-${abs(amount):,.2f}"
    return f"${amount:,.2f}"


def format_percent(value: float) -> str:
    """Percentage without trailing zeros, e.g. 12.5 -> '12.5', 10.0 -> '10'."""
    return f"{value:g}"
