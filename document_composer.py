#!/usr/bin/env python3
"""
Document Composer
Sequences section renderers and page transitions for each document variant.

Composers are pure builders: compose() returns a RenderedDocument holding
the PDF bytes and never writes anywhere. Every call gets its own canvas and
cursor, so independent renders can run side by side.
"""

import base64
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from document_settings import (
    BODY_FONT,
    BOLD_FONT,
    ITALIC_FONT,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    SIGNATURE_TABLE_SPACE,
    CompanyProfile,
)
from financial_aggregator import FinancialSummary, SectionTotals, aggregate, format_money, section_totals_for
from job_documents import (
    JobDocument,
    JobListDocument,
    QuoteDocument,
    Signature,
    TimesheetReportDocument,
)
from layout_engine import LayoutCursor, PdfCanvas, flow_text, row_advance
from section_renderers import (
    CONTENT_LEFT,
    CONTENT_RIGHT,
    GREY,
    EmptySectionPolicy,
    clip_to_width,
    format_day,
    render_attachments,
    render_compliance_records,
    render_job_rows,
    render_labor,
    render_materials,
    render_other_costs,
    render_ruled_notes,
    render_scope_of_work,
    render_sub_trades,
    render_summary,
    render_timesheets,
    render_tip_fees,
    timesheet_totals,
)


# Quote closing blocks, excluding the signature image
SIGNATURE_BLOCK_HEIGHT = 10 + 25 + 8 + 5 + 15
ACCEPTANCE_BLOCK_HEIGHT = 15 + 6 + 8 + 6 + 6


class DocumentKind(Enum):
    """Document variants; the value is the filename suffix."""
    JOB_COST_SHEET = "job-sheet"
    QUOTE = "quote"
    JOB_LIST = "job-list"
    TIMESHEET = "timesheet"

    @property
    def title(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class RenderedDocument:
    """Finished, immutable document handle consumed by the output sinks."""
    kind: DocumentKind
    primary_identifier: str
    pdf_bytes: bytes
    page_count: int


def decode_image_data(image_data: str) -> bytes:
    """Bytes of a base64 image, with or without a data URL prefix."""
    payload = image_data.split(",", 1)[1] if image_data.startswith("data:") else image_data
    return base64.b64decode(payload, validate=True)


def format_long_date(value: datetime) -> str:
    return f"{value.day} {value.strftime('%B %Y')}"


def format_long_datetime(value: datetime) -> str:
    return f"{format_long_date(value)} at {value.strftime('%H:%M')}"


class DocumentComposer:
    """
    Shared plumbing for every document variant: logging, canvas and cursor
    creation, page footers and the finished document handle.
    """

    kind: DocumentKind = DocumentKind.JOB_COST_SHEET
    logger_name = 'DocumentComposer'

    def __init__(self, company: Optional[CompanyProfile] = None, debug: bool = False,
                 generated_on: Optional[date] = None):
        self.debug = debug
        self.logger = self._setup_logger()
        self.company = company or CompanyProfile.from_env()
        self.generated_on = generated_on

    def _setup_logger(self):
        """Set up logging for the composer."""
        logger = logging.getLogger(self.logger_name)
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    @property
    def today(self) -> date:
        return self.generated_on or date.today()

    def _start(self, title: str, start_y: float) -> Tuple[PdfCanvas, LayoutCursor]:
        pdf = PdfCanvas(title=title, author=self.company.legal_name, footer=self._page_footer)
        return pdf, pdf.new_cursor(start_y)

    def _page_footer(self, pdf: PdfCanvas, page_number: int):
        """Default footer: brand on the left, page number on the right."""
        footer_y = PAGE_HEIGHT - 10
        pdf.text(CONTENT_LEFT, footer_y, f"{self.company.brand} - {self.kind.title}", BODY_FONT, 8, color=GREY)
        pdf.text(CONTENT_RIGHT, footer_y, f"Page {page_number}", BODY_FONT, 8, align="right", color=GREY)

    def _finish(self, pdf: PdfCanvas, primary_identifier: str) -> RenderedDocument:
        pdf_bytes = pdf.finish()
        self.logger.info(f"✅ {self.kind.value} rendered for '{primary_identifier}' ({pdf.page_count} pages)")
        return RenderedDocument(
            kind=self.kind,
            primary_identifier=primary_identifier,
            pdf_bytes=pdf_bytes,
            page_count=pdf.page_count,
        )


class JobCostSheetComposer(DocumentComposer):
    """
    Itemised cost report for one job.

    Order: header, labour, materials, sub-trades, other costs, tip fees,
    summary, then timesheets, compliance records and attachments each on a
    page of their own. Empty cost sections other than labour are left out.
    """

    kind = DocumentKind.JOB_COST_SHEET
    logger_name = 'JobCostSheet'
    empty_policy = EmptySectionPolicy.OMIT

    def compose(self, job: JobDocument) -> RenderedDocument:
        self.logger.info(f"📄 Rendering job cost sheet for {job.job_address}")
        pdf, cursor = self._start(f"Job Cost Sheet - {job.job_address}", start_y=75)
        self._draw_header(pdf, job)

        totals = SectionTotals(
            labor=render_labor(pdf, cursor, job.labor_entries, EmptySectionPolicy.PLACEHOLDER),
            materials=render_materials(pdf, cursor, job.materials, self.empty_policy),
            sub_trades=render_sub_trades(pdf, cursor, job.sub_trades, self.empty_policy),
            other_costs=render_other_costs(pdf, cursor, job.other_costs, self.empty_policy),
            tip_fees=render_tip_fees(pdf, cursor, job.tip_fees, self.empty_policy),
        )
        summary = aggregate(totals, job.builder_margin_percent)
        render_summary(pdf, cursor, summary)
        self.logger.debug(f"Subtotal {summary.subtotal:.2f}, final total {summary.final_total:.2f}")

        if job.timesheets:
            cursor.new_page()
            render_timesheets(pdf, cursor, job.timesheets)
        if job.compliance_signatures:
            render_compliance_records(pdf, cursor, job.compliance_signatures)
        if job.attachments:
            render_attachments(pdf, cursor, job.attachments)

        return self._finish(pdf, job.job_address)

    def summarize(self, job: JobDocument) -> FinancialSummary:
        """Figures the summary block would show, without drawing anything."""
        return aggregate(section_totals_for(job), job.builder_margin_percent)

    def _draw_header(self, pdf: PdfCanvas, job: JobDocument):
        pdf.text(PAGE_WIDTH / 2, 20, "JOB COST SHEET", BOLD_FONT, 16, align="center")
        details = [
            f"Job: {job.job_address}",
            f"Client: {job.client_name}",
            f"Project Manager: {job.project_name}",
            f"Status: {job.status.replace('_', ' ').upper()}",
        ]
        for index, line in enumerate(details):
            pdf.text(CONTENT_LEFT, 35 + index * 7, clip_to_width(pdf, line, 120), BODY_FONT, 10)
        pdf.text(150, 35, f"Date: {self.today.day} {self.today.strftime('%b %Y')}", BODY_FONT, 10)


class QuoteComposer(DocumentComposer):
    """Client-facing quote letter with optional signed acceptance."""

    kind = DocumentKind.QUOTE
    logger_name = 'QuoteComposer'
    margin_left = 25.0
    margin_right = 25.0

    @property
    def content_width(self) -> float:
        return PAGE_WIDTH - self.margin_left - self.margin_right

    def compose(self, quote: QuoteDocument) -> RenderedDocument:
        self.logger.info(f"📄 Rendering quote {quote.quote_number} for {quote.client_name}")
        pdf, cursor = self._start(f"Quote {quote.quote_number}", start_y=85)
        left = self.margin_left

        self._draw_letterhead(pdf)

        quote_day = quote.created_at.date() if quote.created_at else self.today
        pdf.text(left, cursor.y, f"Date: {quote_day.day}/{quote_day.month}/{quote_day.year}", BODY_FONT, 10)
        cursor.advance(15)

        first_name = quote.client_name.split(" ")[0] if quote.client_name else ""
        pdf.text(left, cursor.y, f"Dear {first_name},", BODY_FONT, 10)
        cursor.advance(15)

        reference = quote.project_address or quote.project_description
        pdf.text(PAGE_WIDTH / 2, cursor.y,
                 clip_to_width(pdf, f"RE: {reference}", self.content_width, BOLD_FONT, 10),
                 BOLD_FONT, 10, align="center")
        cursor.advance(20)

        render_scope_of_work(pdf, cursor, quote.items, left, self.content_width)
        cursor.advance(15)

        cursor.request_space(40)
        pdf.text(left, cursor.y, f"Estimate Quotation of: {format_money(quote.total_amount)} + GST",
                 BOLD_FONT, 11)
        cursor.advance(20)

        if quote.notes:
            cursor.request_space(12)
            line_count = flow_text(pdf, cursor, f"Note: {quote.notes}", left, self.content_width,
                                   ITALIC_FONT, 9)
            cursor.advance(row_advance(line_count) + 6)

        if quote.valid_until:
            cursor.request_space(15)
            pdf.text(left, cursor.y,
                     f"This quote is valid until: {format_long_datetime(quote.valid_until)}",
                     BODY_FONT, 9)
            cursor.advance(15)

        self._draw_signature_block(pdf, cursor)
        if quote.signature:
            self._draw_acceptance(pdf, cursor, quote.signature)

        return self._finish(pdf, quote.quote_number)

    def _draw_letterhead(self, pdf: PdfCanvas):
        left = self.margin_left
        company = self.company
        pdf.text(left, 25, company.trading_name, BOLD_FONT, 22)
        logo_width = pdf.text_width(company.trading_name, BOLD_FONT, 22)
        # roof over the company name
        roof_start = left + logo_width + 2
        pdf.line(roof_start, 22, roof_start + 10, 14, width=0.8)
        pdf.line(roof_start + 10, 14, roof_start + 20, 22, width=0.8)
        pdf.line(left, 27, left + logo_width, 27, width=0.5)

        details = [
            f"ABN {company.abn}",
            f"Telephone: {company.telephone}",
            company.street_address,
            company.email,
        ]
        for index, line in enumerate(details):
            pdf.text(75, 40 + index * 5, line, BODY_FONT, 9)
        pdf.line(left, 70, PAGE_WIDTH - self.margin_right, 70, color=(0.6, 0.6, 0.6))

    def _draw_signature_block(self, pdf: PdfCanvas, cursor: LayoutCursor):
        left = self.margin_left
        cursor.request_space(SIGNATURE_BLOCK_HEIGHT)
        cursor.advance(10)
        pdf.text(left, cursor.y, "Kind Regards,", BODY_FONT, 10)
        cursor.advance(25)
        pdf.line(left, cursor.y, left + 60, cursor.y, color=GREY)
        cursor.advance(8)
        pdf.text(left, cursor.y, "Director", BOLD_FONT, 10)
        cursor.advance(5)
        pdf.text(left, cursor.y, self.company.director, BODY_FONT, 10)
        cursor.advance(15)

    def _draw_acceptance(self, pdf: PdfCanvas, cursor: LayoutCursor, signature: Signature):
        left = self.margin_left
        image_space = 30 if signature.image_data else 6
        cursor.request_space(ACCEPTANCE_BLOCK_HEIGHT + image_space)
        pdf.line(left, cursor.y, PAGE_WIDTH - self.margin_right, cursor.y, color=(0.6, 0.6, 0.6))
        cursor.advance(15)
        pdf.text(left, cursor.y, "CLIENT ACCEPTANCE", BOLD_FONT, 11)
        cursor.advance(6)

        if signature.image_data:
            try:
                pdf.image(decode_image_data(signature.image_data), left, cursor.y, 70, 25)
                cursor.advance(30)
            except Exception as e:
                self.logger.warning(f"⚠️ Could not embed signature image for {signature.signer_name}: {str(e)}")
        else:
            cursor.advance(6)

        pdf.line(left, cursor.y, left + 70, cursor.y, color=GREY)
        cursor.advance(8)
        pdf.text(left, cursor.y, f"Signed by: {signature.signer_name}", BODY_FONT, 9)
        cursor.advance(6)
        pdf.text(left, cursor.y, f"Date: {format_long_datetime(signature.signed_at)}", BODY_FONT, 9)
        cursor.advance(6)

    def _page_footer(self, pdf: PdfCanvas, page_number: int):
        """Registration and licence identifiers on every page."""
        footer_y = PAGE_HEIGHT - 15
        grey = (80 / 255, 80 / 255, 80 / 255)
        pdf.text(self.margin_left, footer_y,
                 f"{self.company.legal_name}   A.C.N {self.company.acn}", BODY_FONT, 8, color=grey)
        pdf.text(PAGE_WIDTH - self.margin_right, footer_y,
                 f"Builders License no: {self.company.licence_number}", BODY_FONT, 8,
                 align="right", color=grey)


class JobListComposer(DocumentComposer):
    """Printable run sheet of a manager's jobs with space for handwritten notes."""

    kind = DocumentKind.JOB_LIST
    logger_name = 'JobListComposer'

    def compose(self, job_list: JobListDocument) -> RenderedDocument:
        self.logger.info(f"📄 Rendering job list for {job_list.manager_name} ({len(job_list.jobs)} jobs)")
        pdf, cursor = self._start(f"Job List - {job_list.manager_name}", start_y=60)

        pdf.text(PAGE_WIDTH / 2, 20, "JOB LIST", BOLD_FONT, 16, align="center")
        pdf.text(CONTENT_LEFT, 33, f"Project Manager: {job_list.manager_name}", BOLD_FONT, 11)
        pdf.text(CONTENT_LEFT, 40, f"Generated: {format_day(self.today)}", BODY_FONT, 10)
        pdf.text(CONTENT_LEFT, 47, f"Total jobs: {len(job_list.jobs)}", BODY_FONT, 10)
        pdf.line(CONTENT_LEFT, 52, CONTENT_RIGHT, 52)

        render_job_rows(pdf, cursor, job_list.jobs, EmptySectionPolicy.PLACEHOLDER)
        render_ruled_notes(pdf, cursor)

        return self._finish(pdf, job_list.manager_name)


class TimesheetReportComposer(DocumentComposer):
    """
    One employee's timesheet for a pay period.

    Zero-hour days are left out and rows run oldest to newest, followed by
    total hours, total pay and signature lines.
    """

    kind = DocumentKind.TIMESHEET
    logger_name = 'TimesheetReport'

    def compose(self, report: TimesheetReportDocument) -> RenderedDocument:
        self.logger.info(f"📄 Rendering timesheet for {report.employee_name}")
        pdf, cursor = self._start(f"Timesheet - {report.employee_name}", start_y=85)

        pdf.text(PAGE_WIDTH / 2, 25, f"{self.company.brand} - Timesheet", BOLD_FONT, 20, align="center")
        pdf.text(CONTENT_LEFT, 45, f"Employee: {report.employee_name}", BODY_FONT, 12)
        pdf.text(CONTENT_LEFT, 55,
                 f"Period: {format_day(report.period_start)} - {format_day(report.period_end)}",
                 BODY_FONT, 12)
        pdf.text(CONTENT_LEFT, 65, f"Hourly Rate: {format_money(report.hourly_rate)}/hr", BODY_FONT, 12)

        worked = sorted((e for e in report.entries if e.hours > 0), key=lambda e: e.date)
        self._draw_table_header(pdf, cursor)
        for entry in worked:
            if cursor.request_space(12):
                self._draw_table_header(pdf, cursor)
            pdf.text(CONTENT_LEFT, cursor.y, format_day(entry.date), BODY_FONT, 10)
            pdf.text(60, cursor.y, f"{entry.hours:g}", BODY_FONT, 10)
            pdf.text(80, cursor.y, "Approved" if entry.approved else "Pending", BODY_FONT, 10)
            line_count = flow_text(pdf, cursor, entry.note or "-", 110, CONTENT_RIGHT - 110,
                                   BODY_FONT, 10)
            cursor.advance(row_advance(line_count, base_row_height=12))

        totals = timesheet_totals(worked)
        cursor.request_space(45)
        cursor.advance(10)
        pdf.line(CONTENT_LEFT, cursor.y, CONTENT_RIGHT, cursor.y)
        cursor.advance(15)
        pdf.text(CONTENT_LEFT, cursor.y, f"Total Hours: {totals.total_hours:g}", BOLD_FONT, 12)
        pdf.text(110, cursor.y, f"Approved Hours: {totals.approved_hours:g}", BODY_FONT, 10)
        cursor.advance(12)
        pdf.text(CONTENT_LEFT, cursor.y,
                 f"Total Pay: {format_money(totals.total_hours * report.hourly_rate)}", BOLD_FONT, 12)
        cursor.advance(23)

        cursor.request_space(SIGNATURE_TABLE_SPACE + 5)
        for label, offset in (("Employee Signature: ________________________", 0),
                              ("Date: ___________", 15),
                              ("Supervisor Signature: ______________________", 35),
                              ("Date: ___________", 50)):
            pdf.text(CONTENT_LEFT, cursor.y + offset, label, BODY_FONT, 12)
        cursor.advance(55)

        return self._finish(pdf, report.employee_name)

    def _draw_table_header(self, pdf: PdfCanvas, cursor: LayoutCursor):
        for x, title in ((CONTENT_LEFT, "Date"), (60, "Hours"), (80, "Status"), (110, "Notes")):
            pdf.text(x, cursor.y, title, BOLD_FONT, 12)
        pdf.line(CONTENT_LEFT, cursor.y + 3, CONTENT_RIGHT, cursor.y + 3)
        cursor.advance(15)


def compose_job_cost_sheet(job: JobDocument, **options) -> RenderedDocument:
    return JobCostSheetComposer(**options).compose(job)


def compose_quote(quote: QuoteDocument, **options) -> RenderedDocument:
    return QuoteComposer(**options).compose(quote)


def compose_job_list(job_list: JobListDocument, **options) -> RenderedDocument:
    return JobListComposer(**options).compose(job_list)


def compose_timesheet_report(report: TimesheetReportDocument, **options) -> RenderedDocument:
    return TimesheetReportComposer(**options).compose(report)
