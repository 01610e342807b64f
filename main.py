#!/usr/bin/env python3
"""
FastAPI Document Rendering Application
Renders job cost sheets, quotes, job lists and timesheets as PDF downloads
or base64 payloads for the email service.
"""

from fastapi import FastAPI, HTTPException, Body
from fastapi.responses import FileResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Any, Callable, Dict
from datetime import datetime
import logging
import os

from document_composer import (
    RenderedDocument,
    compose_job_cost_sheet,
    compose_job_list,
    compose_quote,
    compose_timesheet_report,
)
from document_settings import DEFAULT_OUTPUT_DIR
from job_documents import (
    MalformedInputError,
    describe_error,
    parse_job_document,
    parse_job_list,
    parse_quote_document,
    parse_timesheet_report,
)
from output_sink import DocumentOutputSink

# FastAPI app initialization
app = FastAPI(
    title="Job Cost Document Renderer",
    description="PDF job cost sheets, quotes, job lists and timesheets",
    version="1.0.0"
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

sink = DocumentOutputSink(DEFAULT_OUTPUT_DIR)


def _render(raw: Dict[str, Any], parse: Callable, compose: Callable) -> RenderedDocument:
    """Parse the raw record and compose it, mapping malformed input to HTTP 422."""
    try:
        document = parse(raw)
    except MalformedInputError as e:
        logger.warning(f"⚠️ Rejected input: {str(e)}")
        raise HTTPException(status_code=422, detail=describe_error(e))
    return compose(document)


def _download(rendered: RenderedDocument) -> FileResponse:
    file_path = sink.save(rendered)
    return FileResponse(
        file_path,
        media_type="application/pdf",
        filename=os.path.basename(file_path)
    )


def _payload(rendered: RenderedDocument) -> Dict[str, Any]:
    return {
        "kind": rendered.kind.value,
        "page_count": rendered.page_count,
        "pdf_base64": sink.encode(rendered),
    }


@app.post("/api/jobs/cost-sheet")
def job_cost_sheet_download(job: Dict[str, Any] = Body(...)):
    """Job cost sheet as a PDF download."""
    return _download(_render(job, parse_job_document, compose_job_cost_sheet))


@app.post("/api/jobs/cost-sheet/base64")
def job_cost_sheet_base64(job: Dict[str, Any] = Body(...)):
    """Job cost sheet as a base64 payload for email attachments."""
    return _payload(_render(job, parse_job_document, compose_job_cost_sheet))


@app.post("/api/jobs/cost-sheet/workbook")
def job_cost_workbook(job: Dict[str, Any] = Body(...)):
    """Job cost breakdown as an Excel workbook."""
    try:
        document = parse_job_document(job)
    except MalformedInputError as e:
        raise HTTPException(status_code=422, detail=describe_error(e))
    file_path = sink.export_workbook(document)
    return FileResponse(
        file_path,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=os.path.basename(file_path)
    )


@app.post("/api/quotes/pdf")
def quote_download(quote: Dict[str, Any] = Body(...)):
    return _download(_render(quote, parse_quote_document, compose_quote))


@app.post("/api/quotes/pdf/base64")
def quote_base64(quote: Dict[str, Any] = Body(...)):
    return _payload(_render(quote, parse_quote_document, compose_quote))


@app.post("/api/job-list/pdf")
def job_list_download(job_list: Dict[str, Any] = Body(...)):
    return _download(_render(job_list, parse_job_list, compose_job_list))


@app.post("/api/timesheets/pdf")
def timesheet_download(report: Dict[str, Any] = Body(...)):
    return _download(_render(report, parse_timesheet_report, compose_timesheet_report))


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "output_dir": sink.output_dir
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
