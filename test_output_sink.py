import base64
import os

import pytest
from openpyxl import load_workbook

from document_composer import DocumentKind, RenderedDocument, compose_job_cost_sheet
from output_sink import (
    DocumentOutputSink,
    artifact_filename,
    encode_document,
    export_job_workbook,
    sanitize_identifier,
)


@pytest.fixture
def rendered_job(sample_job, composer_options):
    return compose_job_cost_sheet(sample_job, **composer_options)


def test_identifier_is_sanitized_character_by_character():
    assert sanitize_identifier("12 Smith St, Hobart") == "12-Smith-St--Hobart"
    assert sanitize_identifier("Unit 3/45 O'Brien Rd") == "Unit-3-45-O-Brien-Rd"
    assert sanitize_identifier("") == ""


def test_artifact_filename_uses_kind_suffix(rendered_job):
    assert artifact_filename(rendered_job) == "12-Smith-St--Hobart-job-sheet.pdf"
    quote = RenderedDocument(DocumentKind.QUOTE, "Q-2025-007", b"%PDF-1.4", 1)
    assert artifact_filename(quote) == "Q-2025-007-quote.pdf"


def test_save_creates_directory_and_writes_bytes(rendered_job, tmp_path):
    target = tmp_path / "nested" / "outputs"
    path = DocumentOutputSink(str(target)).save(rendered_job)

    assert os.path.basename(path) == "12-Smith-St--Hobart-job-sheet.pdf"
    with open(path, "rb") as f:
        assert f.read() == rendered_job.pdf_bytes


def test_base64_payload_decodes_to_the_same_document(rendered_job, tmp_path):
    payload = encode_document(rendered_job)
    saved = DocumentOutputSink(str(tmp_path)).save(rendered_job)

    with open(saved, "rb") as f:
        assert base64.b64decode(payload) == f.read()


def test_job_cost_tables_match_the_summary(sample_job):
    tables = DocumentOutputSink().job_cost_tables(sample_job)

    assert list(tables) == ['Labour', 'Materials', 'Sub Trades', 'Other Costs', 'Tip Fees', 'Summary']
    assert tables['Labour']['Total'].tolist() == [400.0, 240.0]
    assert tables['Sub Trades'].empty
    summary = dict(zip(tables['Summary']['Line Item'], tables['Summary']['Amount']))
    assert summary['Subtotal'] == 760.0
    assert summary['Builder Margin (10%)'] == 76.0
    assert summary['GST (10%)'] == 83.6
    assert summary['Total (inc GST)'] == 919.6


def test_workbook_export(sample_job, tmp_path):
    path = export_job_workbook(sample_job, output_dir=str(tmp_path))

    assert os.path.basename(path) == "12-Smith-St--Hobart-job-sheet.xlsx"
    wb = load_workbook(path)
    assert wb.sheetnames == ['Labour', 'Materials', 'Sub Trades', 'Other Costs', 'Tip Fees', 'Summary']

    labour = wb['Labour']
    assert [cell.value for cell in labour[1]] == ['Name', 'Hourly Rate', 'Hours', 'Total']
    assert labour['A2'].value == 'Alex'
    assert labour[1][0].font.bold

    summary = wb['Summary']
    rows = {row[0]: row[1] for row in summary.iter_rows(min_row=2, values_only=True)}
    assert rows['Total (inc GST)'] == pytest.approx(919.6)
