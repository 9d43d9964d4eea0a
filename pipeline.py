"""
Request orchestration shared by the HTTP server and the CLI.

Party sheets: analyze each document -> cost breakdown -> combined totals.
Vendor costs: reference sheet -> optional mapping sheet -> vendor sheets ->
price series.

One bad document or vendor file never aborts the batch: failures are
recorded against that file and the rest carry on. Only a reference sheet
without a usable product column fails the whole request.
"""

import logging
from typing import Callable, Iterable, NamedTuple

from analyzer import ExtractionError, analyze_party_sheet, identify_columns
from breakdown import combine_breakdowns, process_cost_breakdown
from extractor import (
    SpreadsheetError, build_product_mapping, extract_product_data,
    read_reference_products, read_spreadsheet,
)
from matcher import DEFAULT_CONFIG, MatchConfig
from price_tracker import aggregate_prices
from report import build_upload_payload, build_vendor_cost_payload

logger = logging.getLogger(__name__)


class InputError(Exception):
    """The request as a whole cannot be processed."""


class UploadedFile(NamedTuple):
    path: str
    filename: str
    content_type: str = ""


def process_party_sheets(documents: Iterable[UploadedFile],
                         analyze: Callable = analyze_party_sheet) -> dict:
    """Break down every party sheet and combine the successful ones."""
    results = []
    for document in documents:
        logger.info("Analyzing %s...", document.filename)
        try:
            analysis = analyze(document.path, document.content_type)
        except ExtractionError as e:
            logger.error("Error processing %s: %s", document.filename, e)
            results.append({"filename": document.filename, "error": str(e)})
            continue

        breakdown = process_cost_breakdown(analysis)
        logger.info(
            "Breakdown for %s: food=%.2f drinks=%.2f entertainment=%.2f booking_fee=%.2f (%d line items)",
            document.filename, breakdown["food"], breakdown["drinks"],
            breakdown["entertainment"], breakdown["booking_fee"], len(breakdown["line_items"]),
        )
        results.append({
            "filename": document.filename,
            "breakdown": breakdown,
            "raw_analysis": analysis.model_dump(mode="json", by_alias=True),
        })

    return build_upload_payload(results, combine_breakdowns(results))


def _load_mapping(mapping_file: UploadedFile | None) -> dict[str, str]:
    if mapping_file is None:
        return {}
    logger.info("Processing mapping sheet %s...", mapping_file.filename)
    try:
        sheet = read_spreadsheet(mapping_file.path)
    except SpreadsheetError as e:
        logger.error("Error processing mapping sheet %s (continuing without it): %s", mapping_file.filename, e)
        return {}
    return build_product_mapping(sheet["headers"], sheet["rows"])


def process_vendor_costs(reference_file: UploadedFile, vendor_files: Iterable[UploadedFile],
                         mapping_file: UploadedFile | None = None,
                         identify: Callable = identify_columns,
                         config: MatchConfig = DEFAULT_CONFIG) -> dict:
    """Match vendor prices to the reference products and summarize them."""
    logger.info("Processing reference sheet %s...", reference_file.filename)
    try:
        reference_sheet = read_spreadsheet(reference_file.path)
        reference_products = read_reference_products(
            reference_sheet["headers"], reference_sheet["rows"], identify,
        )
    except SpreadsheetError as e:
        raise InputError(str(e)) from e
    logger.info("Found %d reference products", len(reference_products))

    mapping = _load_mapping(mapping_file)

    observations = []
    failed_files = []
    for vendor_file in vendor_files:
        logger.info("Processing vendor file %s...", vendor_file.filename)
        try:
            observations.extend(extract_product_data(vendor_file.path, vendor_file.filename, identify))
        except SpreadsheetError as e:
            logger.error("Error processing %s: %s", vendor_file.filename, e)
            failed_files.append({"filename": vendor_file.filename, "error": str(e)})

    aggregation = aggregate_prices(observations, reference_products, mapping, config)
    return build_vendor_cost_payload(
        aggregation,
        reference_products_count=len(reference_products),
        total_data_points=len(observations),
        failed_files=failed_files,
    )
