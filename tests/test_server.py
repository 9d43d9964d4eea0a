"""
Tests for the HTTP routes.
"""

import io
import os

import openpyxl
import pytest
from fastapi.testclient import TestClient

import config
import server

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _xlsx(rows):
    workbook = openpyxl.Workbook()
    for row in rows:
        workbook.active.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    directory = tmp_path / "uploads"
    monkeypatch.setattr(config, "UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture
def client(upload_dir):
    return TestClient(server.app)


def test_health(client, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert client.get("/api/health").json() == {"status": "ok", "openai_configured": True}


class TestUpload:

    def test_no_files(self, client):
        response = client.post("/api/upload")
        assert response.status_code == 400
        assert response.json()["detail"] == "No files uploaded"

    def test_wrong_type(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        files = [("pdfs", ("notes.txt", b"hello", "text/plain"))]
        assert client.post("/api/upload", files=files).status_code == 400

    def test_too_many_files(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        files = [("pdfs", (f"sheet{i}.png", b"x", "image/png")) for i in range(11)]
        assert client.post("/api/upload", files=files).status_code == 400

    def test_missing_api_key(self, client, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        files = [("pdfs", ("sheet.pdf", b"%PDF-1.4", "application/pdf"))]
        response = client.post("/api/upload", files=files)
        assert response.status_code == 500

    def test_oversized_document(self, client, monkeypatch, upload_dir):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setattr(server, "MAX_DOCUMENT_BYTES", 4)
        files = [("pdfs", ("big.pdf", b"%PDF-1.4 with more bytes", "application/pdf"))]

        response = client.post("/api/upload", files=files)

        assert response.status_code == 400
        assert "big.pdf" in response.json()["detail"]
        assert os.listdir(upload_dir) == []

    def test_documents_processed_and_removed(self, client, monkeypatch, upload_dir):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        seen = []

        def fake_process(documents):
            for document in documents:
                assert os.path.exists(document.path)
                seen.append((document.filename, document.content_type))
            return {"success": True, "results": [], "combined_totals": {}, "summary": {}}

        monkeypatch.setattr(server, "process_party_sheets", fake_process)
        files = [
            ("pdfs", ("a.pdf", b"%PDF-1.4", "application/pdf")),
            ("pdfs", ("b.jpg", b"\xff\xd8\xff", "image/jpeg")),
        ]
        response = client.post("/api/upload", files=files)

        assert response.status_code == 200
        assert seen == [("a.pdf", "application/pdf"), ("b.jpg", "image/jpeg")]
        assert os.listdir(upload_dir) == []


class TestVendorCosts:

    REFERENCE = [["Product Name"], ["Chicken Tenders"], ["Pretzel Bites"]]
    VENDOR = [["Product", "Unit Price", "Date"], ["Chicken Tender", 10, "2025-01-01"], ["Forks", 1, "2025-01-01"]]

    def test_requires_reference_and_vendor_files(self, client):
        files = [("referenceSheet", ("ref.xlsx", _xlsx(self.REFERENCE), XLSX))]
        response = client.post("/api/vendor-costs", files=files)
        assert response.status_code == 400

    def test_rejects_non_excel(self, client):
        files = [
            ("referenceSheet", ("ref.xlsx", _xlsx(self.REFERENCE), XLSX)),
            ("vendorFiles", ("vendor.csv", b"Product,Price\nWings,9\n", "text/csv")),
        ]
        assert client.post("/api/vendor-costs", files=files).status_code == 400

    def test_oversized_spreadsheet(self, client, monkeypatch, upload_dir):
        monkeypatch.setattr(server, "MAX_SPREADSHEET_BYTES", 16)
        files = [
            ("referenceSheet", ("ref.xlsx", _xlsx(self.REFERENCE), XLSX)),
            ("vendorFiles", ("vendor.xlsx", _xlsx(self.VENDOR), XLSX)),
        ]

        response = client.post("/api/vendor-costs", files=files)

        assert response.status_code == 400
        assert "ref.xlsx" in response.json()["detail"]
        assert os.listdir(upload_dir) == []

    def test_end_to_end_without_openai(self, client, monkeypatch, upload_dir):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        files = [
            ("referenceSheet", ("ref.xlsx", _xlsx(self.REFERENCE), XLSX)),
            ("vendorFiles", ("vendor.xlsx", _xlsx(self.VENDOR), XLSX)),
            ("mappingSheet", ("map.xlsx", _xlsx([["Reference", "Vendor"], ["Pretzel Bites", "Forks"]]), XLSX)),
        ]
        response = client.post("/api/vendor-costs", files=files)
        body = response.json()

        assert response.status_code == 200
        assert body["success"] is True
        assert [p["product_name"] for p in body["products"]] == ["Chicken Tenders", "Pretzel Bites"]
        assert body["summary"]["mapped_from_sheet"] == 1
        assert body["summary"]["fuzzy_matched"] == 1
        assert body["unmatched_items"] == []
        assert os.listdir(upload_dir) == []

    def test_reference_without_products_is_a_bad_request(self, client, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        files = [
            ("referenceSheet", ("ref.xlsx", _xlsx([["Qty"], [4]]), XLSX)),
            ("vendorFiles", ("vendor.xlsx", _xlsx(self.VENDOR), XLSX)),
        ]
        response = client.post("/api/vendor-costs", files=files)
        assert response.status_code == 400
