"""
Tests for the batch orchestration shared by the server and the CLI.
"""

from datetime import datetime

import openpyxl
import pytest

from analyzer import ExtractionError
from extractor import guess_columns
from models import PartySheetAnalysis
from pipeline import InputError, UploadedFile, process_party_sheets, process_vendor_costs


def _keywords(headers, rows):
    return guess_columns(headers)


def _workbook(path, rows):
    workbook = openpyxl.Workbook()
    for row in rows:
        workbook.active.append(row)
    workbook.save(path)
    return UploadedFile(path=str(path), filename=path.name)


def _fake_analyze(path, content_type):
    if path.endswith("bad.pdf"):
        raise ExtractionError("Could not parse JSON from OpenAI response")
    return PartySheetAnalysis.model_validate({
        "eventDetails": {"eventName": path},
        "lineItems": [
            {"description": "Front Nine", "total": 200, "category": "FOOD"},
            {"description": "Darts", "total": 40, "category": "DARTS"},
        ],
    })


class TestProcessPartySheets:

    def test_failure_isolated_per_document(self):
        documents = [
            UploadedFile("one.pdf", "one.pdf", "application/pdf"),
            UploadedFile("bad.pdf", "bad.pdf", "application/pdf"),
            UploadedFile("two.png", "two.png", "image/png"),
        ]
        payload = process_party_sheets(documents, analyze=_fake_analyze)

        assert payload["success"] is True
        assert payload["summary"] == {"total_files": 3, "successful": 2, "failed": 1}
        assert payload["results"][1] == {
            "filename": "bad.pdf", "error": "Could not parse JSON from OpenAI response",
        }
        assert payload["combined_totals"]["food"] == 400
        assert payload["combined_totals"]["entertainment"] == 80
        assert payload["combined_totals"]["grand_total"] == 480

    def test_result_carries_raw_analysis(self):
        payload = process_party_sheets([UploadedFile("one.pdf", "one.pdf")], analyze=_fake_analyze)
        result = payload["results"][0]

        assert result["breakdown"]["darts"] == 40
        assert result["raw_analysis"]["lineItems"][0]["description"] == "Front Nine"

    def test_no_documents(self):
        payload = process_party_sheets([], analyze=_fake_analyze)
        assert payload["summary"]["total_files"] == 0
        assert payload["combined_totals"]["grand_total"] == 0


class TestProcessVendorCosts:

    @pytest.fixture
    def reference(self, tmp_path):
        return _workbook(tmp_path / "reference.xlsx", [
            ["Product Name"], ["Chicken Tenders"], ["Pretzel Bites"], ["Beef Brisket"],
        ])

    def test_end_to_end(self, tmp_path, reference):
        mapping = _workbook(tmp_path / "mapping.xlsx", [
            ["Standard Product", "Vendor Name"], ["Beef Brisket", "BRSKT 10LB"],
        ])
        vendor_a = _workbook(tmp_path / "vendor_a.xlsx", [
            ["Item Description", "Unit Price", "Invoice Date"],
            ["Chicken Tenders", 10, datetime(2025, 1, 1)],
            ["BRSKT 10LB", "$50.00", datetime(2025, 1, 1)],
            ["Napkins", 2, datetime(2025, 1, 1)],
        ])
        vendor_b = _workbook(tmp_path / "vendor_b.xlsx", [
            ["Product", "Price", "Date"],
            ["chicken tender", 12, "2025-02-01"],
            ["Pretzel Bite", 6, "2025-02-01"],
        ])

        payload = process_vendor_costs(reference, [vendor_a, vendor_b], mapping, identify=_keywords)
        products = {p["product_name"]: p for p in payload["products"]}
        summary = payload["summary"]

        assert list(products) == ["Beef Brisket", "Chicken Tenders", "Pretzel Bites"]
        assert products["Chicken Tenders"]["most_recent_price"] == 12
        assert products["Chicken Tenders"]["percent_change"] == 9.09
        assert products["Beef Brisket"]["price_history"][0]["source_file"] == "vendor_a.xlsx"
        assert [u["product_name"] for u in payload["unmatched_items"]] == ["Napkins"]
        assert summary["reference_products_count"] == 3
        assert summary["matched_products_count"] == 3
        assert summary["total_data_points"] == 5
        assert summary["matched_data_points"] == 4
        assert summary["mapped_from_sheet"] == 1
        assert summary["failed_files"] == []

    def test_bad_vendor_file_recorded(self, tmp_path, reference):
        good = _workbook(tmp_path / "good.xlsx", [["Product", "Price"], ["Pretzel Bites", 5]])
        no_price = _workbook(tmp_path / "no_price.xlsx", [["Product", "Qty"], ["Wings", 3]])
        broken = tmp_path / "broken.xlsx"
        broken.write_text("garbage")

        payload = process_vendor_costs(
            reference,
            [good, no_price, UploadedFile(str(broken), "broken.xlsx")],
            identify=_keywords,
        )

        assert payload["summary"]["matched_data_points"] == 1
        assert [f["filename"] for f in payload["summary"]["failed_files"]] == ["no_price.xlsx", "broken.xlsx"]

    def test_unreadable_mapping_sheet_ignored(self, tmp_path, reference):
        broken = tmp_path / "mapping.xlsx"
        broken.write_text("garbage")
        vendor = _workbook(tmp_path / "vendor.xlsx", [["Product", "Price"], ["Beef Brisket", 30]])

        payload = process_vendor_costs(
            reference, [vendor], UploadedFile(str(broken), "mapping.xlsx"), identify=_keywords,
        )
        assert payload["summary"]["matched_data_points"] == 1

    def test_reference_without_product_column(self, tmp_path):
        reference = _workbook(tmp_path / "reference.xlsx", [["Qty", "Notes"], [1, "x"]])
        vendor = _workbook(tmp_path / "vendor.xlsx", [["Product", "Price"], ["Wings", 9]])

        with pytest.raises(InputError):
            process_vendor_costs(reference, [vendor], identify=_keywords)
