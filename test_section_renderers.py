import io
from datetime import date, datetime

import pdfplumber
import pytest
from reportlab.lib.units import mm

from document_settings import BOTTOM_MARGIN, PAGE_HEIGHT
from financial_aggregator import SectionTotals, aggregate
from job_documents import ComplianceSignature, JobListRow, OtherCost, TimesheetEntry, TipFee
from layout_engine import PdfCanvas, wrap_text
from section_renderers import (
    TIMESHEET_SUMMARY_HEIGHT,
    EmptySectionPolicy,
    TimesheetTotals,
    render_compliance_records,
    render_job_rows,
    render_materials,
    render_other_costs,
    render_summary,
    render_timesheet_summary,
    render_timesheets,
    render_tip_fees,
    summary_height,
    timesheet_totals,
    truncate,
)

LONG_DESCRIPTION = ("Skip bin hire and removal of demolition waste from the rear yard "
                    "including concrete rubble, old timber framing and plasterboard offcuts ") * 3
LONG_DESCRIPTION = LONG_DESCRIPTION[:400]


def _words(pdf_bytes):
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return [page.extract_words() for page in pdf.pages]


def test_long_other_cost_breaks_mid_section_without_overlapping_next_header():
    assert len(LONG_DESCRIPTION) == 400
    assert len(wrap_text(LONG_DESCRIPTION, 130)) >= 4

    pdf = PdfCanvas()
    cursor = pdf.new_cursor(240)
    total = render_other_costs(pdf, cursor, [OtherCost(description=LONG_DESCRIPTION, amount=55)])
    break_count = cursor.page_breaks
    render_tip_fees(pdf, cursor, [TipFee(description="Tip run", base_amount=100,
                                         cartage_amount=20, total_amount=120)])
    pages = _words(pdf.finish())

    assert total == 55
    assert break_count >= 1
    description_words = set(LONG_DESCRIPTION.split())
    # the section header stayed on page one, the description continued on page two
    assert any(w["text"] == "OTHER" for w in pages[0])
    assert any(w["text"] in description_words for w in pages[1])

    header_page = next(i for i, page in enumerate(pages) if any(w["text"] == "TIP" for w in page))
    header_top = next(w["top"] for w in pages[header_page] if w["text"] == "TIP")
    earlier_rows = [w for w in pages[header_page] if w["text"] in description_words]
    assert earlier_rows
    assert max(w["bottom"] for w in earlier_rows) < header_top


def test_tip_fee_total_is_the_persisted_value():
    pdf = PdfCanvas()
    cursor = pdf.new_cursor()
    fee = TipFee(description="Tip run", base_amount=100, cartage_amount=20, total_amount=130)

    total = render_tip_fees(pdf, cursor, [fee])
    text = " ".join(w["text"] for w in _words(pdf.finish())[0])

    assert total == 130
    assert "$130.00" in text
    assert "$120.00" not in text
    assert "$100.00" in text and "$20.00" in text


def test_omit_policy_draws_nothing_for_empty_section():
    pdf = PdfCanvas()
    cursor = pdf.new_cursor(40)

    assert render_materials(pdf, cursor, [], EmptySectionPolicy.OMIT) == 0
    assert cursor.y == 40


def test_placeholder_policy_draws_header_and_placeholder():
    pdf = PdfCanvas()
    cursor = pdf.new_cursor(40)

    render_materials(pdf, cursor, [], EmptySectionPolicy.PLACEHOLDER)
    text = " ".join(w["text"] for w in _words(pdf.finish())[0])

    assert "MATERIALS" in text
    assert "No entries" in text
    assert "$0.00" in text


def test_truncate_respects_character_budget():
    assert truncate("short", 10) == "short"
    assert truncate("a" * 30, 10) == "aaaaaaa..."
    assert len(truncate("a" * 30, 10)) == 10
    assert truncate(None, 5) == ""


def test_timesheets_newest_first_with_totals():
    entries = [
        TimesheetEntry(date=date(2025, 3, 3), hours=8, staff_name="Alex", note="Framing", approved=True),
        TimesheetEntry(date=date(2025, 3, 5), hours=6.5, staff_name="Sam", note="Roofing", approved=False),
        TimesheetEntry(date=date(2025, 3, 4), hours=7, staff_name="Alex", note="x" * 80, approved=True),
    ]
    pdf = PdfCanvas()
    cursor = pdf.new_cursor()

    totals = render_timesheets(pdf, cursor, entries)
    words = [w["text"] for w in _words(pdf.finish())[0]]

    assert totals.total_hours == pytest.approx(21.5)
    assert totals.approved_hours == pytest.approx(15)
    assert totals.pending_hours == pytest.approx(6.5)
    dates = [w for w in words if w in ("03/03/2025", "04/03/2025", "05/03/2025")]
    assert dates == ["05/03/2025", "04/03/2025", "03/03/2025"]
    assert "x" * 80 not in " ".join(words)
    assert any(w.endswith("...") for w in words)


def test_timesheet_totals_empty():
    totals = timesheet_totals([])
    assert totals.total_hours == 0
    assert totals.entry_count == 0


def test_compliance_records_always_start_a_new_page():
    pdf = PdfCanvas()
    cursor = pdf.new_cursor(40)
    signatures = [
        ComplianceSignature(document_title="Working at Heights SWMS", signer_name="Alex Worker",
                            occupation="Carpenter", signed_at=datetime(2025, 3, 2, 7, 45)),
    ]

    count = render_compliance_records(pdf, cursor, signatures)
    pages = _words(pdf.finish())

    assert count == 1
    assert len(pages) == 2
    assert pages[0] == []
    text = " ".join(w["text"] for w in pages[1])
    assert "COMPLIANCE RECORDS" in text
    assert "02 Mar 2025 07:45" in text


# --- fixed-height blocks near the bottom margin ---

LIMIT = PAGE_HEIGHT - BOTTOM_MARGIN
LIMIT_PT = LIMIT * mm

FULL_SUMMARY = aggregate(SectionTotals(labor=1, materials=2, sub_trades=3, other_costs=4, tip_fees=5), 10)


def test_summary_height_counts_only_drawn_lines():
    assert summary_height(FULL_SUMMARY) == 136
    assert summary_height(aggregate(SectionTotals(labor=100), 0)) == 102


@pytest.mark.parametrize("start_offset", [136, 100, 60, 24])
def test_summary_near_page_end_stays_inside_margin(start_offset, lowest_marks):
    pdf = PdfCanvas()
    cursor = pdf.new_cursor(LIMIT - start_offset)

    render_summary(pdf, cursor, FULL_SUMMARY)
    pdf_bytes = pdf.finish()

    assert cursor.y <= LIMIT
    assert all(bottom <= LIMIT_PT for bottom in lowest_marks(pdf_bytes))
    last_page = _words(pdf_bytes)[-1]
    assert any(w["text"] == "TOTAL" for w in last_page)


@pytest.mark.parametrize("start_offset", [TIMESHEET_SUMMARY_HEIGHT, 50, 20])
def test_timesheet_summary_near_page_end_stays_inside_margin(start_offset, lowest_marks):
    pdf = PdfCanvas()
    cursor = pdf.new_cursor(LIMIT - start_offset)

    render_timesheet_summary(pdf, cursor, TimesheetTotals(total_hours=12, approved_hours=8, entry_count=2))
    pdf_bytes = pdf.finish()

    assert all(bottom <= LIMIT_PT for bottom in lowest_marks(pdf_bytes))
    assert "Pending" in " ".join(w["text"] for w in _words(pdf_bytes)[-1])


def test_job_row_with_long_address_keeps_client_and_notes_inside_margin(lowest_marks):
    address = ("Lot 14 Stage 3B Riverside Estate, corner of Old Coach Road and "
               "Sandy Bay Road, behind the council depot, access via the gravel track ") * 3
    assert len(wrap_text(address, 160, "Helvetica-Bold", 10)) >= 3

    pdf = PdfCanvas()
    cursor = pdf.new_cursor(LIMIT - 26)
    render_job_rows(pdf, cursor, [JobListRow(job_address=address, client_name="Bob Owner")])
    pdf_bytes = pdf.finish()

    assert all(bottom <= LIMIT_PT for bottom in lowest_marks(pdf_bytes))
    assert "Owner" in " ".join(w["text"] for w in _words(pdf_bytes)[-1])
