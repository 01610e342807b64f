#!/usr/bin/env python3
"""
Section Renderers
One renderer per document section. Each takes the canvas, the shared cursor
and a homogeneous item list, draws the section and returns its total.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence

from document_settings import (
    BASE_ROW_HEIGHT,
    BODY_FONT,
    BODY_SIZE,
    BOLD_FONT,
    COMPLIANCE_DOCUMENT_CHARS,
    COMPLIANCE_NAME_CHARS,
    COMPLIANCE_OCCUPATION_CHARS,
    ITALIC_FONT,
    LEFT_MARGIN,
    LINE_HEIGHT,
    PAGE_WIDTH,
    RIGHT_MARGIN,
    SECTION_HEADER_SPACE,
    SECTION_TITLE_SIZE,
    SIGNATURE_TABLE_SPACE,
    TIMESHEET_NOTE_CHARS,
    TIMESHEET_STAFF_CHARS,
)
from financial_aggregator import FinancialSummary, format_money, format_percent, labor_entry_total
from job_documents import (
    AttachedFile,
    ComplianceSignature,
    JobListRow,
    LaborEntry,
    Material,
    OtherCost,
    QuoteItem,
    SubTrade,
    TimesheetEntry,
    TipFee,
)
from layout_engine import LayoutCursor, PdfCanvas, flow_text, row_advance, wrap_text

CONTENT_LEFT = LEFT_MARGIN
CONTENT_RIGHT = PAGE_WIDTH - RIGHT_MARGIN
ROW_INDENT = 25.0
AMOUNT_X = CONTENT_RIGHT  # right edge of money columns
TOTAL_LABEL_X = 120.0

GREY = (0.4, 0.4, 0.4)
LINK_BLUE = (0.0, 0.2, 0.8)
HIGHLIGHT_RED = (220 / 255, 20 / 255, 60 / 255)


class EmptySectionPolicy(Enum):
    """What a document variant does with a section that has no items."""
    OMIT = "omit"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class Column:
    title: str
    x: float
    align: str = "left"


@dataclass(frozen=True)
class TimesheetTotals:
    total_hours: float
    approved_hours: float
    entry_count: int

    @property
    def pending_hours(self) -> float:
        return self.total_hours - self.approved_hours


# --- small formatting helpers ---

def truncate(text: Optional[str], limit: int) -> str:
    """Cut text to a fixed character budget, marking the cut with an ellipsis."""
    value = str(text or "")
    if len(value) <= limit:
        return value
    return value[:max(limit - 3, 0)] + "..."


def clip_to_width(pdf: PdfCanvas, text: Optional[str], width: float,
                  font: str = BODY_FONT, size: float = BODY_SIZE) -> str:
    """Shorten text until it fits a fixed column width."""
    value = str(text or "")
    if pdf.text_width(value, font, size) <= width:
        return value
    while value and pdf.text_width(value + "...", font, size) > width:
        value = value[:-1]
    return value + "..."


def format_day(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def format_signed_at(value: datetime) -> str:
    return value.strftime("%d %b %Y %H:%M")


# --- common section shape ---

def draw_section_header(pdf: PdfCanvas, cursor: LayoutCursor, title: str,
                        columns: Sequence[Column], reserve: float = SECTION_HEADER_SPACE):
    """Bold title, column captions and an underline. Breaks the page first if needed."""
    cursor.request_space(reserve)
    pdf.text(CONTENT_LEFT, cursor.y, title, BOLD_FONT, SECTION_TITLE_SIZE)
    cursor.advance(10)
    draw_column_captions(pdf, cursor, columns)


def draw_column_captions(pdf: PdfCanvas, cursor: LayoutCursor, columns: Sequence[Column]):
    for column in columns:
        pdf.text(column.x, cursor.y, column.title, BOLD_FONT, BODY_SIZE, align=column.align)
    cursor.advance(3)
    pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(8)


def draw_total_row(pdf: PdfCanvas, cursor: LayoutCursor, total: float, label: str = "Total"):
    """Bold total row followed by a divider."""
    cursor.request_space(BASE_ROW_HEIGHT + 6)
    cursor.advance(3)
    pdf.text(TOTAL_LABEL_X, cursor.y, label, BOLD_FONT, BODY_SIZE)
    pdf.text(AMOUNT_X, cursor.y, format_money(total), BOLD_FONT, BODY_SIZE, align="right")
    cursor.advance(4)
    pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y, width=0.2, color=GREY)
    cursor.advance(13)


def draw_placeholder(pdf: PdfCanvas, cursor: LayoutCursor, message: str = "No entries"):
    cursor.request_space(BASE_ROW_HEIGHT)
    pdf.text(ROW_INDENT, cursor.y, message, ITALIC_FONT, BODY_SIZE, color=GREY)
    cursor.advance(BASE_ROW_HEIGHT)


@dataclass(frozen=True)
class Cell:
    x: float
    text: str
    align: str = "left"


def _render_rows(pdf: PdfCanvas, cursor: LayoutCursor, items: Sequence,
                 cells: Callable[[object], List[Cell]],
                 wrapped: Optional[Callable[[object], str]], wrap_x: float, wrap_width: float,
                 amount: Callable[[object], float]) -> float:
    """Fixed columns on the first line of each row plus one wrapped free-text column."""
    total = 0.0
    for item in items:
        cursor.request_space(BASE_ROW_HEIGHT)
        row_y = cursor.y
        for cell in cells(item):
            pdf.text(cell.x, row_y, cell.text, BODY_FONT, BODY_SIZE, align=cell.align)
        line_count = 1
        if wrapped is not None:
            line_count = flow_text(pdf, cursor, wrapped(item), wrap_x, wrap_width)
        cursor.advance(row_advance(line_count))
        total += amount(item)
    return total


def _render_cost_section(pdf: PdfCanvas, cursor: LayoutCursor, title: str,
                         columns: Sequence[Column], items: Sequence,
                         policy: EmptySectionPolicy, **row_options) -> float:
    if not items and policy is EmptySectionPolicy.OMIT:
        return 0.0
    draw_section_header(pdf, cursor, title, columns)
    if not items:
        draw_placeholder(pdf, cursor)
        total = 0.0
    else:
        total = _render_rows(pdf, cursor, items, **row_options)
    draw_total_row(pdf, cursor, total)
    return total


# --- cost sections ---

LABOR_COLUMNS = [
    Column("Name", ROW_INDENT),
    Column("Hourly Rate", 80),
    Column("Hours", 130),
    Column("Total", AMOUNT_X, "right"),
]


def render_labor(pdf: PdfCanvas, cursor: LayoutCursor, entries: Sequence[LaborEntry],
                 policy: EmptySectionPolicy = EmptySectionPolicy.PLACEHOLDER) -> float:
    """Labour rows. Staff names are short, so nothing wraps here."""
    return _render_cost_section(
        pdf, cursor, "LABOUR", LABOR_COLUMNS, entries, policy,
        cells=lambda e: [
            Cell(ROW_INDENT, clip_to_width(pdf, e.staff_name or "Unknown Staff", 52)),
            Cell(80, format_money(e.hourly_rate)),
            Cell(130, f"{e.hours_logged:.1f}"),
            Cell(AMOUNT_X, format_money(labor_entry_total(e)), "right"),
        ],
        wrapped=None, wrap_x=ROW_INDENT, wrap_width=0,
        amount=labor_entry_total,
    )


MATERIAL_COLUMNS = [
    Column("Description", ROW_INDENT),
    Column("Supplier", 100),
    Column("Date", 138),
    Column("Amount", AMOUNT_X, "right"),
]


def render_materials(pdf: PdfCanvas, cursor: LayoutCursor, materials: Sequence[Material],
                     policy: EmptySectionPolicy = EmptySectionPolicy.OMIT) -> float:
    return _render_cost_section(
        pdf, cursor, "MATERIALS", MATERIAL_COLUMNS, materials, policy,
        cells=lambda m: [
            Cell(100, clip_to_width(pdf, m.supplier or "-", 36)),
            Cell(138, m.invoice_date or "-"),
            Cell(AMOUNT_X, format_money(m.amount), "right"),
        ],
        wrapped=lambda m: m.description or "Material Item", wrap_x=ROW_INDENT, wrap_width=72,
        amount=lambda m: m.amount,
    )


SUB_TRADE_COLUMNS = [
    Column("Trade", ROW_INDENT),
    Column("Contractor", 80),
    Column("Date", 138),
    Column("Amount", AMOUNT_X, "right"),
]


def render_sub_trades(pdf: PdfCanvas, cursor: LayoutCursor, sub_trades: Sequence[SubTrade],
                      policy: EmptySectionPolicy = EmptySectionPolicy.OMIT) -> float:
    return _render_cost_section(
        pdf, cursor, "SUB TRADES", SUB_TRADE_COLUMNS, sub_trades, policy,
        cells=lambda s: [
            Cell(80, clip_to_width(pdf, s.contractor or "-", 55)),
            Cell(138, s.invoice_date or "-"),
            Cell(AMOUNT_X, format_money(s.amount), "right"),
        ],
        wrapped=lambda s: s.trade or "Sub Trade", wrap_x=ROW_INDENT, wrap_width=52,
        amount=lambda s: s.amount,
    )


OTHER_COST_COLUMNS = [
    Column("Description", ROW_INDENT),
    Column("Amount", AMOUNT_X, "right"),
]


def render_other_costs(pdf: PdfCanvas, cursor: LayoutCursor, costs: Sequence[OtherCost],
                       policy: EmptySectionPolicy = EmptySectionPolicy.OMIT) -> float:
    return _render_cost_section(
        pdf, cursor, "OTHER COSTS", OTHER_COST_COLUMNS, costs, policy,
        cells=lambda c: [Cell(AMOUNT_X, format_money(c.amount), "right")],
        wrapped=lambda c: c.description, wrap_x=ROW_INDENT, wrap_width=130,
        amount=lambda c: c.amount,
    )


TIP_FEE_COLUMNS = [
    Column("Description", ROW_INDENT),
    Column("Base", 132, "right"),
    Column("Cartage", 160, "right"),
    Column("Total", AMOUNT_X, "right"),
]


def render_tip_fees(pdf: PdfCanvas, cursor: LayoutCursor, tip_fees: Sequence[TipFee],
                    policy: EmptySectionPolicy = EmptySectionPolicy.OMIT) -> float:
    """Tip fees show base and cartage but total the persisted total_amount."""
    return _render_cost_section(
        pdf, cursor, "TIP FEES", TIP_FEE_COLUMNS, tip_fees, policy,
        cells=lambda t: [
            Cell(132, format_money(t.base_amount), "right"),
            Cell(160, format_money(t.cartage_amount), "right"),
            Cell(AMOUNT_X, format_money(t.total_amount), "right"),
        ],
        wrapped=lambda t: t.description or "Tip Fee", wrap_x=ROW_INDENT, wrap_width=80,
        amount=lambda t: t.total_amount,
    )


# --- summary ---

def _summary_line(pdf: PdfCanvas, cursor: LayoutCursor, label: str, amount: float,
                  font: str = BODY_FONT, size: float = 10, advance: float = 8,
                  color=(0, 0, 0)):
    pdf.text(ROW_INDENT, cursor.y, label, font, size, color=color)
    pdf.text(AMOUNT_X, cursor.y, format_money(amount), font, size, align="right", color=color)
    cursor.advance(advance)


def summary_height(summary: FinancialSummary) -> float:
    """Height of the summary block for the lines that will actually be drawn."""
    totals = summary.section_totals
    section_lines = 3 + (totals.other_costs > 0) + (totals.tip_fees > 0)
    height = 28 + section_lines * 8 + 10 + 10 + 8 + 10 + 12
    if summary.has_margin:
        height += 8 + 10
    return height


def render_summary(pdf: PdfCanvas, cursor: LayoutCursor, summary: FinancialSummary):
    """Job cost summary. Every figure comes straight from the aggregator."""
    cursor.request_space(summary_height(summary))
    cursor.advance(4)
    pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(12)
    pdf.text(CONTENT_LEFT, cursor.y, "JOB COST SUMMARY", BOLD_FONT, SECTION_TITLE_SIZE)
    cursor.advance(12)

    totals = summary.section_totals
    _summary_line(pdf, cursor, "Labour Total:", totals.labor)
    _summary_line(pdf, cursor, "Materials Total:", totals.materials)
    _summary_line(pdf, cursor, "Sub Trades Total:", totals.sub_trades)
    if totals.other_costs > 0:
        _summary_line(pdf, cursor, "Other Costs Total:", totals.other_costs)
    if totals.tip_fees > 0:
        _summary_line(pdf, cursor, "Tip Fees Total:", totals.tip_fees)

    cursor.advance(2)
    pdf.line(ROW_INDENT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(8)
    _summary_line(pdf, cursor, "SUBTOTAL:", summary.subtotal, BOLD_FONT, advance=10)

    if summary.has_margin:
        _summary_line(pdf, cursor, f"Builder Margin ({format_percent(summary.margin_percent)}%):",
                      summary.margin_amount)
        _summary_line(pdf, cursor, "Subtotal with Margin:", summary.subtotal_with_margin,
                      BOLD_FONT, advance=10)

    _summary_line(pdf, cursor, "GST (10%):", summary.gst_amount, advance=8)
    pdf.line(ROW_INDENT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(10)
    _summary_line(pdf, cursor, "TOTAL (inc GST):", summary.final_total, BOLD_FONT, 14,
                  advance=12, color=HIGHLIGHT_RED)


# --- timesheets ---

TIMESHEET_COLUMNS = [
    Column("Date", ROW_INDENT),
    Column("Staff", 48),
    Column("Hours", 100, "right"),
    Column("Status", 104),
    Column("Notes", 122),
]


def timesheet_totals(entries: Sequence[TimesheetEntry]) -> TimesheetTotals:
    return TimesheetTotals(
        total_hours=sum(entry.hours for entry in entries),
        approved_hours=sum(entry.hours for entry in entries if entry.approved),
        entry_count=len(entries),
    )


def render_timesheets(pdf: PdfCanvas, cursor: LayoutCursor,
                      entries: Sequence[TimesheetEntry]) -> TimesheetTotals:
    """
    Timesheet rows newest-first, then the hours summary block.

    Staff and note text is truncated to a character budget rather than
    wrapped so each entry stays on one line.
    """
    draw_section_header(pdf, cursor, "TIMESHEETS", TIMESHEET_COLUMNS)
    for entry in sorted(entries, key=lambda e: e.date, reverse=True):
        if cursor.request_space(BASE_ROW_HEIGHT):
            draw_column_captions(pdf, cursor, TIMESHEET_COLUMNS)
        pdf.text(ROW_INDENT, cursor.y, format_day(entry.date))
        pdf.text(48, cursor.y, truncate(entry.staff_name, TIMESHEET_STAFF_CHARS))
        pdf.text(100, cursor.y, f"{entry.hours:.2f}", align="right")
        pdf.text(104, cursor.y, "Approved" if entry.approved else "Pending",
                 color=(0, 0, 0) if entry.approved else GREY)
        pdf.text(122, cursor.y, truncate(entry.note, TIMESHEET_NOTE_CHARS) or "-")
        cursor.advance(BASE_ROW_HEIGHT)

    totals = timesheet_totals(entries)
    render_timesheet_summary(pdf, cursor, totals)
    return totals


TIMESHEET_SUMMARY_HEIGHT = 4 + 10 + 10 + 4 * 7


def render_timesheet_summary(pdf: PdfCanvas, cursor: LayoutCursor, totals: TimesheetTotals):
    cursor.request_space(TIMESHEET_SUMMARY_HEIGHT)
    cursor.advance(4)
    pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(10)
    pdf.text(CONTENT_LEFT, cursor.y, "TIMESHEET SUMMARY", BOLD_FONT, SECTION_TITLE_SIZE)
    cursor.advance(10)
    rows = [
        ("Entries:", str(totals.entry_count)),
        ("Total Hours:", f"{totals.total_hours:.2f}"),
        ("Approved Hours:", f"{totals.approved_hours:.2f}"),
        ("Pending Hours:", f"{totals.pending_hours:.2f}"),
    ]
    for label, value in rows:
        pdf.text(ROW_INDENT, cursor.y, label, BODY_FONT, 10)
        pdf.text(100, cursor.y, value, BOLD_FONT, 10, align="right")
        cursor.advance(7)


# --- appended records ---

COMPLIANCE_COLUMNS = [
    Column("Document", ROW_INDENT),
    Column("Signed By", 82),
    Column("Occupation", 118),
    Column("Date Signed", 158),
]


def render_compliance_records(pdf: PdfCanvas, cursor: LayoutCursor,
                              signatures: Sequence[ComplianceSignature]) -> int:
    """Signed safe-work acknowledgements. Always opens a fresh page."""
    cursor.new_page()
    draw_section_header(pdf, cursor, "COMPLIANCE RECORDS", COMPLIANCE_COLUMNS,
                        reserve=SIGNATURE_TABLE_SPACE)
    for signature in signatures:
        if cursor.request_space(BASE_ROW_HEIGHT):
            draw_column_captions(pdf, cursor, COMPLIANCE_COLUMNS)
        pdf.text(ROW_INDENT, cursor.y, truncate(signature.document_title, COMPLIANCE_DOCUMENT_CHARS))
        pdf.text(82, cursor.y, truncate(signature.signer_name, COMPLIANCE_NAME_CHARS))
        pdf.text(118, cursor.y, truncate(signature.occupation, COMPLIANCE_OCCUPATION_CHARS))
        pdf.text(158, cursor.y, format_signed_at(signature.signed_at))
        cursor.advance(BASE_ROW_HEIGHT)

    cursor.request_space(20)
    cursor.advance(6)
    pdf.text(CONTENT_LEFT, cursor.y,
             "Each signer acknowledged the safe work procedures for this job.",
             ITALIC_FONT, 8, color=GREY)
    cursor.advance(8)
    return len(signatures)


def render_attachments(pdf: PdfCanvas, cursor: LayoutCursor,
                       files: Sequence[AttachedFile]) -> int:
    """
    One entry per attached file, always on a fresh page.

    Linked files get a clickable region over exactly the drawn file name.
    """
    cursor.new_page()
    cursor.request_space(SECTION_HEADER_SPACE)
    pdf.text(CONTENT_LEFT, cursor.y, "ATTACHMENTS", BOLD_FONT, SECTION_TITLE_SIZE)
    cursor.advance(4)
    pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y)
    cursor.advance(10)

    max_name_width = CONTENT_RIGHT - ROW_INDENT
    for attached in files:
        cursor.request_space(14)
        name = clip_to_width(pdf, attached.name, max_name_width, BOLD_FONT, 10)
        if attached.external_link:
            pdf.text(ROW_INDENT, cursor.y, name, BOLD_FONT, 10, color=LINK_BLUE)
            pdf.link(attached.external_link, ROW_INDENT, cursor.y, name, BOLD_FONT, 10)
            caption = "Click to open"
        else:
            pdf.text(ROW_INDENT, cursor.y, name, BOLD_FONT, 10)
            caption = "Available in system"
        cursor.advance(5)
        pdf.text(ROW_INDENT, cursor.y, caption, ITALIC_FONT, 8, color=GREY)
        cursor.advance(9)
    return len(files)


# --- quote and job list bodies ---

def render_scope_of_work(pdf: PdfCanvas, cursor: LayoutCursor, items: Sequence[QuoteItem],
                         left: float, width: float,
                         policy: EmptySectionPolicy = EmptySectionPolicy.PLACEHOLDER) -> int:
    """One wrapped bullet per quote line item."""
    if not items:
        if policy is EmptySectionPolicy.PLACEHOLDER:
            cursor.request_space(BASE_ROW_HEIGHT)
            pdf.text(left, cursor.y, "No scope items listed", ITALIC_FONT, 10, color=GREY)
            cursor.advance(BASE_ROW_HEIGHT)
        return 0
    for item in items:
        cursor.request_space(BASE_ROW_HEIGHT)
        pdf.text(left, cursor.y, "-", BODY_FONT, 10)
        line_count = flow_text(pdf, cursor, item.description, left + 8, width - 10, BODY_FONT, 10)
        cursor.advance(row_advance(line_count) + 2)
    return len(items)


def render_job_rows(pdf: PdfCanvas, cursor: LayoutCursor, jobs: Sequence[JobListRow],
                    policy: EmptySectionPolicy = EmptySectionPolicy.PLACEHOLDER) -> int:
    """Address, client and a ruled line for handwritten notes per job."""
    if not jobs:
        if policy is EmptySectionPolicy.PLACEHOLDER:
            draw_placeholder(pdf, cursor, "No jobs assigned")
        return 0
    width = CONTENT_RIGHT - CONTENT_LEFT
    for index, job in enumerate(jobs, 1):
        prefix = f"{index}. "
        indent = CONTENT_LEFT + pdf.text_width(prefix, BOLD_FONT, 10)
        address_width = width - (indent - CONTENT_LEFT)
        # address lines, then client line and notes rule
        address_lines = len(wrap_text(job.job_address, address_width, BOLD_FONT, 10))
        cursor.request_space(address_lines * LINE_HEIGHT + 20)
        pdf.text(CONTENT_LEFT, cursor.y, prefix, BOLD_FONT, 10)
        line_count = flow_text(pdf, cursor, job.job_address, indent, address_width, BOLD_FONT, 10)
        cursor.advance(row_advance(line_count, base_row_height=6))
        cursor.request_space(19)
        client = f"Client: {job.client_name or '-'}"
        if job.status:
            client += f"    Status: {job.status.replace('_', ' ').title()}"
        pdf.text(indent, cursor.y, clip_to_width(pdf, client, width - (indent - CONTENT_LEFT)))
        cursor.advance(9)
        pdf.text(indent, cursor.y, "Notes:", BODY_FONT, 8, color=GREY)
        pdf.line(indent + 11, cursor.y, CONTENT_RIGHT, cursor.y, width=0.2, color=GREY)
        cursor.advance(10)
    return len(jobs)


def render_ruled_notes(pdf: PdfCanvas, cursor: LayoutCursor, title: str = "ADDITIONAL NOTES",
                       lines: int = 8, spacing: float = 10):
    """Blank ruled area for handwritten notes."""
    cursor.request_space(SECTION_HEADER_SPACE)
    cursor.advance(4)
    pdf.text(CONTENT_LEFT, cursor.y, title, BOLD_FONT, SECTION_TITLE_SIZE)
    cursor.advance(spacing)
    for _ in range(lines):
        cursor.request_space(spacing)
        pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y, width=0.2, color=GREY)
        cursor.advance(spacing)
