"""
LLM-powered extraction layer.

Two jobs are handed to the model, and nothing else:
  1. Read a party sheet (PDF or image) and return its line items as JSON.
  2. Say which spreadsheet headers hold the product, unit price and date.

All arithmetic happens afterwards in deterministic code. The model's JSON is
validated into models.PartySheetAnalysis before anything uses it. Column
identification never fails a request: if the model is unavailable or answers
with headers that do not exist, a keyword guess is used instead.

Requires: OPENAI_API_KEY in environment or .env file.
"""

import base64
import io
import json
import logging
import os
import re
import time

import pdfplumber
from openai import OpenAI, OpenAIError
from pydantic import ValidationError

import config
from extractor import guess_columns
from models import PartySheetAnalysis
from portal_data import MAX_PDF_PAGES, SAMPLE_ROWS_FOR_COLUMN_DETECTION

logger = logging.getLogger(__name__)

# ── Configuration ─────────────────────────────────────────────────
MODEL = config.OPENAI_MODEL
PARTY_SHEET_MAX_TOKENS = 2000
COLUMN_MAX_TOKENS = 500
TIMEOUT_SECONDS = config.OPENAI_TIMEOUT
MAX_RETRIES = 1
PDF_RESOLUTION = 150

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ExtractionError(Exception):
    """A document could not be turned into a validated line-item structure."""


def _get_client() -> OpenAI | None:
    """Get OpenAI client if API key is available."""
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        return None
    return OpenAI(api_key=api_key, timeout=TIMEOUT_SECONDS)


def _build_party_sheet_prompt() -> str:
    """System prompt describing the categories and the package rules."""
    return """You are an expert at analyzing party event contracts and extracting financial information from documents or images.

Extract every line item and categorize it as one of:
1. FOOD - packages such as "Front Nine" or the food portion of "Full Course", taco bars,
   and food platters (wings, tater kegs, pretzel bites, salads, vegetable trays, chicken tenders,
   cookies, sauces, loaded fries, beer cheese, ...). List each platter as its own line item.
2. DRINKS - drink packages such as "Back Nine", preloaded RFID amounts, drink bracelets.
3. Entertainment, one of:
   BOWLING (bowling lanes, duckpin bowling), DARTS, MINI_GOLF, SHUFFLEBOARD, KARAOKE,
   OTHER_ENTERTAINMENT (anything else).
4. BOOKING_FEE - booking, setup or administrative fees, usually at the bottom of the document.

Package rules:
- "Front Nine" = food only.
- "Back Nine" = drinks only (preloaded RFID amount).
- "Full Course" = food + drinks. If a Full Course for X people includes $Y preloaded drinks
  or drink bracelets per person, keep the Full Course line as listed and set preloadedDrinks
  to {"quantity": X, "pricePerPerson": Y, "total": X * Y}.

Return ONLY a JSON object with this structure:
{
  "eventDetails": {"eventName": string|null, "date": string|null, "time": string|null,
                   "guests": number|null, "contact": string|null},
  "lineItems": [
    {"description": string, "quantity": number, "unitPrice": number, "total": number,
     "category": "FOOD"|"DRINKS"|"BOWLING"|"DARTS"|"MINI_GOLF"|"SHUFFLEBOARD"|"KARAOKE"|"OTHER_ENTERTAINMENT"|"BOOKING_FEE",
     "notes": string|null}
  ],
  "preloadedDrinks": {"quantity": number, "pricePerPerson": number, "total": number} or null
}

All numbers must be numbers, not strings."""


def _build_column_prompt() -> str:
    return """You are an expert at analyzing Excel file structures. Given column headers and sample rows, identify which columns contain:
1. Product description/name (what product or item is being sold)
2. Unit price (price per unit)
3. Date (date of the invoice or order)

Return ONLY a JSON object with this structure:
{
  "productDescriptionColumn": "exact header name or null",
  "unitPriceColumn": "exact header name or null",
  "dateColumn": "exact header name or null"
}"""


def _build_column_user_prompt(headers: list[str], rows: list[dict]) -> str:
    sample = [
        {h: "" if row.get(h) is None else str(row.get(h)) for h in headers}
        for row in rows[:SAMPLE_ROWS_FOR_COLUMN_DETECTION]
    ]
    return (
        f"Column headers: {json.dumps(headers)}\n"
        f"Sample data (first {len(sample)} rows): {json.dumps(sample, indent=2)}\n\n"
        "Identify which columns contain product description, unit price, and date."
    )


def _render_pdf_pages(path) -> list[str]:
    """Rasterize the first pages of a PDF into PNG data URLs."""
    urls = []
    try:
        with pdfplumber.open(path) as pdf:
            if not pdf.pages:
                raise ExtractionError("Empty PDF: no pages found.")
            for page in pdf.pages[:MAX_PDF_PAGES]:
                buffer = io.BytesIO()
                page.to_image(resolution=PDF_RESOLUTION).original.save(buffer, format="PNG")
                urls.append("data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii"))
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Error reading PDF: {e}") from e
    return urls


def _encode_document(path, mime_type: str) -> list[str]:
    """Data URLs for the vision model: one per PDF page, or the image itself."""
    if mime_type == "application/pdf":
        return _render_pdf_pages(path)
    if mime_type in ("image/png", "image/jpeg", "image/jpg"):
        image_type = "image/png" if mime_type == "image/png" else "image/jpeg"
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ExtractionError(f"Error reading image: {e}") from e
        return [f"data:{image_type};base64," + base64.b64encode(data).decode("ascii")]
    raise ExtractionError(f"Unsupported file type: {mime_type}")


def _chat_json(client, messages: list[dict], max_tokens: int) -> str:
    """Call the model in JSON mode, retrying once on API errors."""
    for attempt in range(MAX_RETRIES + 1):
        try:
            response = client.chat.completions.create(
                model=MODEL,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0,
                response_format={"type": "json_object"},
            )
            return response.choices[0].message.content or ""
        except OpenAIError as e:
            if attempt < MAX_RETRIES:
                logger.warning("OpenAI call failed (%s), retrying", type(e).__name__)
                time.sleep(1)
                continue
            raise


def _parse_json_content(content: str) -> dict:
    """Parse the model's answer, tolerating text around the JSON object."""
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError):
        m = _JSON_OBJECT.search(content or "")
        if not m:
            raise ExtractionError(f"Could not parse JSON from OpenAI response: {(content or '')[:200]}")
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Could not parse JSON from OpenAI response: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionError("OpenAI response is not a JSON object")
    return data


def analyze_party_sheet(path, mime_type: str, client=None) -> PartySheetAnalysis:
    """
    Extract event details and categorized line items from one party sheet.

    Raises ExtractionError for anything that keeps this document from
    producing a validated result; callers record it against the document.
    """
    client = client or _get_client()
    if client is None:
        raise ExtractionError("OpenAI API key not configured")

    image_urls = _encode_document(path, mime_type)
    kind = "PDF" if mime_type == "application/pdf" else "image"
    content = [{"type": "text", "text": f"Analyze this party event contract {kind} and extract the financial breakdown:"}]
    content.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)

    start_time = time.time()
    try:
        raw_text = _chat_json(
            client,
            [
                {"role": "system", "content": _build_party_sheet_prompt()},
                {"role": "user", "content": content},
            ],
            PARTY_SHEET_MAX_TOKENS,
        )
    except OpenAIError as e:
        raise ExtractionError(f"OpenAI analysis error: {e}") from e
    latency_ms = int((time.time() - start_time) * 1000)

    data = _parse_json_content(raw_text)
    try:
        analysis = PartySheetAnalysis.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"OpenAI response did not match the expected structure: {e}") from e

    logger.info("Found %d line item(s) (%d ms)", len(analysis.line_items), latency_ms)
    if analysis.line_items:
        logger.debug("Sample line item: %s", analysis.line_items[0].model_dump_json())
    return analysis


def identify_columns(headers: list[str], rows: list[dict], client=None) -> dict:
    """
    Identify the product, unit price and date columns of a spreadsheet.

    Returns:
        product_column / price_column / date_column: header name or None
    """
    client = client or _get_client()
    if client is None:
        logger.warning("OpenAI not configured; guessing columns from header names")
        return guess_columns(headers)

    try:
        raw_text = _chat_json(
            client,
            [
                {"role": "system", "content": _build_column_prompt()},
                {"role": "user", "content": _build_column_user_prompt(headers, rows)},
            ],
            COLUMN_MAX_TOKENS,
        )
        answer = _parse_json_content(raw_text)
    except (OpenAIError, ExtractionError) as e:
        logger.error("Error identifying columns (%s); guessing from header names", e)
        return guess_columns(headers)

    columns = {
        "product_column": answer.get("productDescriptionColumn"),
        "price_column": answer.get("unitPriceColumn"),
        "date_column": answer.get("dateColumn"),
    }
    unknown = [name for name in columns.values() if name is not None and name not in headers]
    if unknown:
        logger.warning("Model named unknown column(s) %s; guessing from header names", unknown)
        return guess_columns(headers)
    return columns


def get_analyzer_status() -> dict:
    """Check if the LLM extraction layer is configured."""
    has_key = bool(os.environ.get("OPENAI_API_KEY", "").strip())
    return {
        "available": has_key,
        "api_key_set": has_key,
        "model": MODEL,
    }
