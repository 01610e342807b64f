#!/usr/bin/env python3
"""
Job Documents
Immutable input models for every rendered document and the numeric parse boundary.

The external store persists decimals as text, so every model accepts numeric
strings and camelCase keys. Anything that does not parse to a finite number
fails the whole render with MalformedInputError.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class RenderError(Exception):
    """Base class for errors raised by the document renderer."""


class MalformedInputError(RenderError):
    """Raised when an input field cannot be parsed into the value a document needs."""

    def __init__(self, document_kind: str, fields: List[str], details: Optional[List[str]] = None):
        self.document_kind = document_kind
        self.fields = fields
        self.details = details or []
        super().__init__(
            f"Malformed {document_kind} input: {', '.join(fields) or 'unknown field'}"
        )


class DocumentModel(BaseModel):
    """Shared configuration: frozen, camelCase aware, finite numbers only."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        allow_inf_nan=False,
        extra="ignore",
    )


class LaborEntry(DocumentModel):
    hourly_rate: float
    hours_logged: float
    staff_name: Optional[str] = None


class Material(DocumentModel):
    description: str = ""
    supplier: str = ""
    amount: float
    invoice_date: Optional[str] = None


class SubTrade(DocumentModel):
    trade: str = ""
    contractor: str = ""
    amount: float
    invoice_date: Optional[str] = None


class OtherCost(DocumentModel):
    description: str = ""
    amount: float


class TipFee(DocumentModel):
    """Waste disposal charge. total_amount is the value of record."""
    description: str = ""
    base_amount: float
    cartage_amount: float
    total_amount: float


class TimesheetEntry(DocumentModel):
    date: date
    hours: float
    staff_name: str = ""
    note: str = ""
    approved: bool = False


class ComplianceSignature(DocumentModel):
    document_title: str
    signer_name: str
    occupation: str = ""
    signed_at: datetime


class AttachedFile(DocumentModel):
    name: str
    external_link: Optional[str] = None


class JobDocument(DocumentModel):
    """Snapshot of one job assembled by the data store before rendering."""
    id: str
    job_address: str
    client_name: str
    project_name: str = ""
    status: str = ""
    builder_margin_percent: float = 0.0
    default_hourly_rate: float = 0.0
    labor_entries: List[LaborEntry] = Field(default_factory=list)
    materials: List[Material] = Field(default_factory=list)
    sub_trades: List[SubTrade] = Field(default_factory=list)
    other_costs: List[OtherCost] = Field(default_factory=list)
    tip_fees: List[TipFee] = Field(default_factory=list)
    timesheets: List[TimesheetEntry] = Field(default_factory=list)
    compliance_signatures: List[ComplianceSignature] = Field(default_factory=list)
    attachments: List[AttachedFile] = Field(default_factory=list)


class QuoteItem(DocumentModel):
    item_type: str = ""
    description: str
    quantity: float = 1.0
    unit_price: float = 0.0
    total_price: float = 0.0


class Signature(DocumentModel):
    signer_name: str
    image_data: Optional[str] = None
    signed_at: datetime


class QuoteDocument(DocumentModel):
    """Quote aggregate. subtotal, gst_amount and total_amount are persisted values."""
    quote_number: str
    client_name: str
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    project_description: str = ""
    project_address: Optional[str] = None
    status: str = ""
    valid_until: Optional[datetime] = None
    builder_margin_percent: float = 0.0
    subtotal: float
    gst_amount: float
    total_amount: float
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[QuoteItem] = Field(default_factory=list)
    signature: Optional[Signature] = None


class JobListRow(DocumentModel):
    job_address: str
    client_name: str = ""
    status: Optional[str] = None


class JobListDocument(DocumentModel):
    manager_name: str
    jobs: List[JobListRow] = Field(default_factory=list)


class TimesheetReportDocument(DocumentModel):
    """One employee's timesheet for a pay period."""
    employee_name: str
    hourly_rate: float
    period_start: date
    period_end: date
    entries: List[TimesheetEntry] = Field(default_factory=list)


ModelT = TypeVar("ModelT", bound=DocumentModel)


def _parse(model: Type[ModelT], raw: Mapping[str, Any], document_kind: str) -> ModelT:
    """Validate a raw mapping, converting validation failures into MalformedInputError."""
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        errors = e.errors()
        fields = [".".join(str(part) for part in err["loc"]) for err in errors]
        details = [f"{field}: {err['msg']}" for field, err in zip(fields, errors)]
        raise MalformedInputError(document_kind, fields, details) from e


def parse_job_document(raw: Mapping[str, Any]) -> JobDocument:
    return _parse(JobDocument, raw, "job")


def parse_quote_document(raw: Mapping[str, Any]) -> QuoteDocument:
    return _parse(QuoteDocument, raw, "quote")


def parse_job_list(raw: Mapping[str, Any]) -> JobListDocument:
    return _parse(JobListDocument, raw, "job list")


def parse_timesheet_report(raw: Mapping[str, Any]) -> TimesheetReportDocument:
    return _parse(TimesheetReportDocument, raw, "timesheet")


def describe_error(error: MalformedInputError) -> Dict[str, Any]:
    """Serializable description of a malformed input error."""
    return {
        "document": error.document_kind,
        "fields": error.fields,
        "details": error.details,
    }
