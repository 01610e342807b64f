import base64
import inspect

import pytest
from fastapi.testclient import TestClient

import main


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(main.sink, "output_dir", str(tmp_path))
    return TestClient(main.app)


def test_health_check(client, tmp_path):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["output_dir"] == str(tmp_path)


def test_cost_sheet_download(client, sample_job_raw, tmp_path):
    response = client.post("/api/jobs/cost-sheet", json=sample_job_raw)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content[:4] == b"%PDF"
    assert "12-Smith-St--Hobart-job-sheet.pdf" in response.headers["content-disposition"]
    assert (tmp_path / "12-Smith-St--Hobart-job-sheet.pdf").exists()


def test_cost_sheet_base64(client, sample_job_raw):
    response = client.post("/api/jobs/cost-sheet/base64", json=sample_job_raw)

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "job-sheet"
    assert body["page_count"] == 1
    assert base64.b64decode(body["pdf_base64"])[:4] == b"%PDF"


def test_malformed_job_is_rejected(client, sample_job_raw, tmp_path):
    sample_job_raw["laborEntries"][0]["hourlyRate"] = "fifty"
    response = client.post("/api/jobs/cost-sheet", json=sample_job_raw)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["document"] == "job"
    assert any("hourlyRate" in field or "hourly_rate" in field for field in detail["fields"])
    assert list(tmp_path.iterdir()) == []


def test_cost_sheet_workbook(client, sample_job_raw):
    response = client.post("/api/jobs/cost-sheet/workbook", json=sample_job_raw)

    assert response.status_code == 200
    assert response.content[:2] == b"PK"


def test_quote_endpoints(client, sample_quote_raw):
    download = client.post("/api/quotes/pdf", json=sample_quote_raw)
    assert download.status_code == 200
    assert "Q-2025-007-quote.pdf" in download.headers["content-disposition"]

    encoded = client.post("/api/quotes/pdf/base64", json=sample_quote_raw)
    assert encoded.status_code == 200
    assert encoded.json()["kind"] == "quote"


def test_job_list_and_timesheet_downloads(client):
    job_list = client.post("/api/job-list/pdf", json={
        "managerName": "Tom Builder",
        "jobs": [{"jobAddress": "12 Smith St, Hobart", "clientName": "Jane Citizen"}],
    })
    assert job_list.status_code == 200
    assert "Tom-Builder-job-list.pdf" in job_list.headers["content-disposition"]

    timesheet = client.post("/api/timesheets/pdf", json={
        "employeeName": "Alex Worker",
        "hourlyRate": "45",
        "periodStart": "2025-03-03",
        "periodEnd": "2025-03-16",
        "entries": [{"date": "2025-03-04", "hours": "8"}],
    })
    assert timesheet.status_code == 200
    assert timesheet.content[:4] == b"%PDF"


def test_malformed_quote_is_rejected(client, sample_quote_raw):
    sample_quote_raw["totalAmount"] = "NaN"
    response = client.post("/api/quotes/pdf/base64", json=sample_quote_raw)
    assert response.status_code == 422
    assert response.json()["detail"]["document"] == "quote"


@pytest.mark.parametrize("endpoint", [
    main.job_cost_sheet_download,
    main.job_cost_sheet_base64,
    main.job_cost_workbook,
    main.quote_download,
    main.quote_base64,
    main.job_list_download,
    main.timesheet_download,
])
def test_rendering_endpoints_run_in_the_threadpool(endpoint):
    assert not inspect.iscoroutinefunction(endpoint)
