import io
from datetime import date

import pdfplumber
import pytest

from document_settings import CompanyProfile
from job_documents import parse_job_document, parse_quote_document


@pytest.fixture
def company():
    return CompanyProfile()


@pytest.fixture
def composer_options(company):
    return {"company": company, "generated_on": date(2025, 3, 14)}


@pytest.fixture
def sample_job_raw():
    """Job record shaped the way the data store hands it over: camelCase, decimals as text."""
    return {
        "id": "job-42",
        "jobAddress": "12 Smith St, Hobart",
        "clientName": "Jane Citizen",
        "projectName": "Tom Builder",
        "status": "in_progress",
        "builderMarginPercent": "10",
        "defaultHourlyRate": "50",
        "laborEntries": [
            {"hourlyRate": "50.00", "hoursLogged": "8", "staffName": "Alex"},
            {"hourlyRate": "60.00", "hoursLogged": "4", "staffName": "Sam"},
        ],
        "materials": [
            {"description": "Treated pine framing", "supplier": "Bunnings", "amount": "120.00",
             "invoiceDate": "2025-03-01"},
        ],
        "subTrades": [],
        "otherCosts": [],
        "tipFees": [],
    }


@pytest.fixture
def sample_job(sample_job_raw):
    return parse_job_document(sample_job_raw)


@pytest.fixture
def sample_quote_raw():
    return {
        "quoteNumber": "Q-2025-007",
        "clientName": "Jane Citizen",
        "projectDescription": "Bathroom renovation",
        "projectAddress": "12 Smith St, Hobart",
        "status": "sent",
        "builderMarginPercent": "15",
        "subtotal": "10000.00",
        "gstAmount": "1000.00",
        "totalAmount": "11000.00",
        "notes": "Tiles to be selected by the client.",
        "validUntil": "2025-04-30T17:00:00",
        "createdAt": "2025-03-14T09:30:00",
        "items": [
            {"itemType": "labour", "description": "Strip out existing bathroom fixtures",
             "quantity": "1", "unitPrice": "1500", "totalPrice": "1500"},
            {"itemType": "material", "description": "Supply and install waterproofing membrane",
             "quantity": "1", "unitPrice": "800", "totalPrice": "800"},
        ],
    }


@pytest.fixture
def sample_quote(sample_quote_raw):
    return parse_quote_document(sample_quote_raw)


@pytest.fixture
def read_pages():
    """Text of every page of a rendered PDF."""
    def _read(pdf_bytes):
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            return [page.extract_text() or "" for page in pdf.pages]
    return _read


@pytest.fixture
def lowest_marks():
    """Bottom edge, in points from the page top, of the lowest word, rule or image on each page."""
    def _lowest(pdf_bytes):
        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            return [
                max((obj["bottom"] for obj in page.extract_words() + page.lines + page.images), default=0)
                for page in pdf.pages
            ]
    return _lowest
