#!/usr/bin/env python3
"""
Output Sink
Terminal step for finished documents: save for download, encode for email,
or export the job figures to a styled Excel workbook.
"""

import base64
import logging
import os
import re
from typing import Dict, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils.dataframe import dataframe_to_rows

from document_composer import RenderedDocument
from document_settings import DEFAULT_OUTPUT_DIR
from financial_aggregator import aggregate, format_percent, labor_entry_total, section_totals_for
from job_documents import JobDocument


def sanitize_identifier(identifier: str) -> str:
    """Replace every non-alphanumeric character with '-'."""
    return re.sub(r'[^a-zA-Z0-9]', '-', identifier or "")


def artifact_filename(document: RenderedDocument) -> str:
    return f"{sanitize_identifier(document.primary_identifier)}-{document.kind.value}.pdf"


class DocumentOutputSink:
    """
    Writes or encodes rendered documents. The document handle is identical
    for every sink; only this last step differs.
    """

    def __init__(self, output_dir: str = DEFAULT_OUTPUT_DIR, debug: bool = False):
        self.output_dir = output_dir
        self.debug = debug
        self.logger = self._setup_logger()

    def _setup_logger(self):
        """Set up logging for the output sink."""
        logger = logging.getLogger('OutputSink')
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(levelname)s - %(message)s')
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(logging.DEBUG if self.debug else logging.INFO)
        return logger

    def save(self, document: RenderedDocument, output_dir: Optional[str] = None) -> str:
        """Persist the PDF as {identifier}-{kind}.pdf and return its path."""
        target_dir = output_dir or self.output_dir
        os.makedirs(target_dir, exist_ok=True)
        output_path = os.path.join(target_dir, artifact_filename(document))
        with open(output_path, "wb") as f:
            f.write(document.pdf_bytes)
        self.logger.info(f"💾 Saved {document.kind.value} to: {output_path}")
        return output_path

    def encode(self, document: RenderedDocument) -> str:
        """Base64 payload for attaching to an outbound message. No filename is attached."""
        payload = base64.b64encode(document.pdf_bytes).decode("ascii")
        self.logger.debug(f"Encoded {document.kind.value} ({len(document.pdf_bytes)} bytes)")
        return payload

    # Workbook export

    def job_cost_tables(self, job: JobDocument) -> Dict[str, pd.DataFrame]:
        """One table per cost section plus the summary, built from the aggregator figures."""
        tables = {
            'Labour': pd.DataFrame([{
                'Name': entry.staff_name or 'Unknown Staff',
                'Hourly Rate': entry.hourly_rate,
                'Hours': entry.hours_logged,
                'Total': labor_entry_total(entry),
            } for entry in job.labor_entries], columns=['Name', 'Hourly Rate', 'Hours', 'Total']),
            'Materials': pd.DataFrame([{
                'Description': material.description,
                'Supplier': material.supplier,
                'Date': material.invoice_date or '',
                'Amount': material.amount,
            } for material in job.materials], columns=['Description', 'Supplier', 'Date', 'Amount']),
            'Sub Trades': pd.DataFrame([{
                'Trade': sub_trade.trade,
                'Contractor': sub_trade.contractor,
                'Date': sub_trade.invoice_date or '',
                'Amount': sub_trade.amount,
            } for sub_trade in job.sub_trades], columns=['Trade', 'Contractor', 'Date', 'Amount']),
            'Other Costs': pd.DataFrame([{
                'Description': cost.description,
                'Amount': cost.amount,
            } for cost in job.other_costs], columns=['Description', 'Amount']),
            'Tip Fees': pd.DataFrame([{
                'Description': fee.description,
                'Base': fee.base_amount,
                'Cartage': fee.cartage_amount,
                'Total': fee.total_amount,
            } for fee in job.tip_fees], columns=['Description', 'Base', 'Cartage', 'Total']),
        }

        summary = aggregate(section_totals_for(job), job.builder_margin_percent)
        rows = [{'Line Item': f"{name} Total", 'Amount': round(value, 2)}
                for name, value in summary.section_totals.as_dict().items()]
        rows.append({'Line Item': 'Subtotal', 'Amount': round(summary.subtotal, 2)})
        if summary.has_margin:
            rows.append({'Line Item': f"Builder Margin ({format_percent(summary.margin_percent)}%)",
                         'Amount': round(summary.margin_amount, 2)})
            rows.append({'Line Item': 'Subtotal with Margin', 'Amount': round(summary.subtotal_with_margin, 2)})
        rows.append({'Line Item': 'GST (10%)', 'Amount': round(summary.gst_amount, 2)})
        rows.append({'Line Item': 'Total (inc GST)', 'Amount': round(summary.final_total, 2)})
        tables['Summary'] = pd.DataFrame(rows, columns=['Line Item', 'Amount'])
        return tables

    def export_workbook(self, job: JobDocument, output_path: Optional[str] = None) -> str:
        """Export the job cost breakdown to an Excel workbook, one sheet per section."""
        if output_path is None:
            output_path = os.path.join(self.output_dir, f"{sanitize_identifier(job.job_address)}-job-sheet.xlsx")

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        self.logger.info(f"📊 Exporting job cost workbook to: {output_path}")

        wb = Workbook()
        wb.remove(wb.active)  # Remove default sheet
        for sheet_name, df in self.job_cost_tables(job).items():
            self._add_styled_sheet(wb, sheet_name, df)
        wb.save(output_path)

        self.logger.info("✅ Workbook exported successfully")
        return output_path

    def _add_styled_sheet(self, wb: Workbook, sheet_name: str, df: pd.DataFrame):
        """Add a styled sheet to the workbook."""
        ws = wb.create_sheet(title=sheet_name)

        for r in dataframe_to_rows(df, index=False, header=True):
            ws.append(r)

        header_font = Font(bold=True)
        header_fill = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill

        money_columns = {'Hourly Rate', 'Total', 'Amount', 'Base', 'Cartage'}
        for column in ws.columns:
            if column[0].value in money_columns:
                for cell in column[1:]:
                    cell.number_format = '"$"#,##0.00'
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)


def save_document(document: RenderedDocument, output_dir: str = DEFAULT_OUTPUT_DIR) -> str:
    return DocumentOutputSink(output_dir).save(document)


def encode_document(document: RenderedDocument) -> str:
    return DocumentOutputSink().encode(document)


def export_job_workbook(job: JobDocument, output_path: Optional[str] = None,
                        output_dir: str = DEFAULT_OUTPUT_DIR) -> str:
    return DocumentOutputSink(output_dir).export_workbook(job, output_path)
