"""
Spreadsheet data extraction using openpyxl.

Reads the first worksheet of a vendor, reference, or mapping workbook
(row 1 = headers) and turns rows into price observations, reference product
names, or the invoice-name -> reference-name mapping.

Rows with a missing product name or an unusable price are skipped. A missing
or unparseable date falls back to today instead of dropping the row.
"""

import logging
import re
from datetime import date, datetime
from typing import Callable
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from matcher import normalize_product_name
from models import PriceObservation
from portal_data import COLUMN_KEYWORDS, MAPPING_REFERENCE_KEYWORDS

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
]


class SpreadsheetError(Exception):
    """A workbook could not be used (unreadable, or required columns missing)."""


def read_spreadsheet(path) -> dict:
    """
    Read the first worksheet of an Excel workbook.

    Returns:
        headers: header text per column (blank headers become "Column<n>")
        rows: one dict per data row, keyed by header
    """
    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
        raise SpreadsheetError(f"Could not open workbook: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        all_rows = list(sheet.iter_rows(values_only=True))
    finally:
        workbook.close()

    if not all_rows:
        return {"headers": [], "rows": []}

    header_row = all_rows[0]
    headers = [
        _cell_text(value) or f"Column{index}"
        for index, value in enumerate(header_row, start=1)
    ]

    rows = []
    for values in all_rows[1:]:
        if all(v is None or _cell_text(v) == "" for v in values):
            continue
        row = {header: None for header in headers}
        for header, value in zip(headers, values):
            row[header] = value
        rows.append(row)

    return {"headers": headers, "rows": rows}


def guess_columns(headers: list[str]) -> dict:
    """
    Keyword fallback for column identification.

    Picks the first header containing any keyword for each column role.
    """
    lower_headers = [h.lower() for h in headers]
    return {
        role: _find_col(headers, lower_headers, keywords)
        for role, keywords in COLUMN_KEYWORDS.items()
    }


def extract_observations(rows: list[dict], columns: dict, source_file: str,
                         today: date | None = None) -> list[PriceObservation]:
    """Turn vendor rows into price observations using the identified columns."""
    product_col = columns.get("product_column")
    price_col = columns.get("price_column")
    date_col = columns.get("date_column")
    today = today or date.today()

    observations = []
    skipped = 0
    for row in rows:
        product_name = _cell_text(row.get(product_col))
        price = _parse_price(row.get(price_col))
        if not product_name or price is None or price <= 0:
            skipped += 1
            continue

        observed_on = _parse_date(row.get(date_col)) if date_col else None
        observations.append(PriceObservation(
            product_name=product_name,
            unit_price=price,
            date=observed_on or today,
            source_file=source_file,
        ))

    if skipped:
        logger.debug("%s: skipped %d row(s) without a product name or price", source_file, skipped)
    return observations


def extract_product_data(path, filename: str, identify: Callable) -> list[PriceObservation]:
    """Read a vendor workbook and return its price observations."""
    sheet = read_spreadsheet(path)
    columns = identify(sheet["headers"], sheet["rows"])

    if not columns.get("product_column") or not columns.get("price_column"):
        raise SpreadsheetError(
            f"Could not identify required columns in {filename}. "
            f"Found columns: {', '.join(sheet['headers'])}"
        )

    observations = extract_observations(sheet["rows"], columns, filename)
    logger.info("%s: %d price observation(s) from %d row(s)", filename, len(observations), len(sheet["rows"]))
    return observations


def read_reference_products(headers: list[str], rows: list[dict], identify: Callable) -> list[str]:
    """Canonical product names from the reference sheet, in row order."""
    columns = identify(headers, rows)
    product_col = columns.get("product_column")
    if not product_col:
        raise SpreadsheetError("Could not identify product description column in reference sheet")

    products = [_cell_text(row.get(product_col)) for row in rows]
    return [name for name in products if name]


def build_product_mapping(headers: list[str], rows: list[dict]) -> dict[str, str]:
    """
    Build the explicit invoice-name -> reference-name mapping.

    The reference column is the last header mentioning reference/target/
    match/standard, otherwise the first column. Every other column holds
    invoice spellings of that row's reference product.
    """
    if not headers:
        return {}

    reference_col = headers[0]
    for header in headers:
        if any(kw in header.lower() for kw in MAPPING_REFERENCE_KEYWORDS):
            reference_col = header
    invoice_cols = [h for h in headers if h != reference_col]
    logger.info("Mapping sheet: %r is the reference column, %d invoice column(s)",
                reference_col, len(invoice_cols))

    mapping = {}
    for row in rows:
        reference_name = _cell_text(row.get(reference_col))
        if not reference_name:
            continue
        for col in invoice_cols:
            invoice_name = _cell_text(row.get(col))
            if invoice_name:
                mapping[normalize_product_name(invoice_name)] = reference_name
                logger.debug("Mapping: %r -> %r", invoice_name, reference_name)

    logger.info("Created %d product mapping(s) from mapping sheet", len(mapping))
    return mapping


def _find_col(headers: list[str], lower_headers: list[str], keywords: list[str]) -> str | None:
    """First header containing any of the keywords."""
    for header, lower in zip(headers, lower_headers):
        if any(kw in lower for kw in keywords):
            return header
    return None


def _cell_text(value) -> str:
    """Trimmed text of a cell value ("" for empty cells)."""
    if value is None:
        return ""
    return str(value).strip()


def _parse_price(value) -> float | None:
    """Parse a price cell, ignoring currency symbols and thousands separators."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = _NON_NUMERIC.sub("", str(value).strip())
    m = _LEADING_NUMBER.match(cleaned)
    if not m:
        return None
    try:
        return float(m.group(0))
    except ValueError:
        return None


def _parse_date(value) -> date | None:
    """Parse a date cell; None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None
