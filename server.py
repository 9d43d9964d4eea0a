# server.py

import logging
import os
import shutil
import uuid
from typing import List, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile

import config
from analyzer import get_analyzer_status
from pipeline import InputError, UploadedFile, process_party_sheets, process_vendor_costs
from portal_data import (
    DOCUMENT_MIME_TYPES, MAX_DOCUMENTS, MAX_DOCUMENT_BYTES,
    SPREADSHEET_EXTENSIONS, MAX_VENDOR_FILES, MAX_SPREADSHEET_BYTES,
)

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
logger = logging.getLogger(__name__)

# --- FastAPI Application ---
app = FastAPI(title="Food Portal API")


def _check_document(upload: UploadFile):
    if upload.content_type not in DOCUMENT_MIME_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF, PNG, and JPEG files are allowed")


def _check_spreadsheet(upload: UploadFile):
    if not (upload.filename or "").lower().endswith(SPREADSHEET_EXTENSIONS):
        raise HTTPException(status_code=400, detail="Only Excel files (.xlsx) are allowed")


def _save_upload(upload: UploadFile, max_bytes: int, saved: list) -> UploadedFile:
    """Write an upload to the upload directory, enforcing the size limit."""
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    extension = os.path.splitext(upload.filename or "")[1]
    path = os.path.join(config.UPLOAD_DIR, f"{uuid.uuid4()}{extension}")
    saved.append(path)

    with open(path, "wb") as buffer:
        shutil.copyfileobj(upload.file, buffer)
    if os.path.getsize(path) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"{upload.filename} is larger than {max_bytes // (1024 * 1024)}MB",
        )
    return UploadedFile(path=path, filename=upload.filename or os.path.basename(path),
                        content_type=upload.content_type or "")


def _cleanup(paths: list):
    for path in paths:
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            logger.error("Error deleting file %s: %s", path, e)


@app.get("/api/health")
def health():
    return {"status": "ok", "openai_configured": get_analyzer_status()["api_key_set"]}


@app.post("/api/upload")
def upload_party_sheets(pdfs: Optional[List[UploadFile]] = File(None)):
    """
    Break down up to 10 party sheets (PDF, PNG or JPEG) and combine the totals.
    A document that cannot be analyzed is reported in its result entry.
    """
    if not pdfs:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(pdfs) > MAX_DOCUMENTS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_DOCUMENTS} files can be uploaded")
    for upload in pdfs:
        _check_document(upload)
    if not get_analyzer_status()["api_key_set"]:
        raise HTTPException(status_code=500, detail="OpenAI API key not configured")

    saved = []
    try:
        documents = [_save_upload(upload, MAX_DOCUMENT_BYTES, saved) for upload in pdfs]
        return process_party_sheets(documents)
    finally:
        _cleanup(saved)


@app.post("/api/vendor-costs")
def vendor_costs(
    referenceSheet: Optional[List[UploadFile]] = File(None),
    vendorFiles: Optional[List[UploadFile]] = File(None),
    mappingSheet: Optional[UploadFile] = File(None),
):
    """
    Reconcile vendor price sheets against a reference product list, with an
    optional mapping sheet of known invoice spellings.
    """
    if not referenceSheet or not vendorFiles:
        raise HTTPException(
            status_code=400,
            detail="Please upload both a reference sheet and at least one vendor file",
        )
    if len(referenceSheet) > 1:
        raise HTTPException(status_code=400, detail="Only one reference sheet can be uploaded")
    if len(vendorFiles) > MAX_VENDOR_FILES:
        raise HTTPException(status_code=400, detail=f"At most {MAX_VENDOR_FILES} vendor files can be uploaded")
    for upload in [*referenceSheet, *vendorFiles, *([mappingSheet] if mappingSheet else [])]:
        _check_spreadsheet(upload)

    saved = []
    try:
        reference = _save_upload(referenceSheet[0], MAX_SPREADSHEET_BYTES, saved)
        mapping = _save_upload(mappingSheet, MAX_SPREADSHEET_BYTES, saved) if mappingSheet else None
        vendors = [_save_upload(upload, MAX_SPREADSHEET_BYTES, saved) for upload in vendorFiles]
        return process_vendor_costs(reference, vendors, mapping)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        _cleanup(saved)


if __name__ == "__main__":
    import uvicorn

    logger.info("Food Portal running on http://localhost:%d", config.PORT)
    logger.info("OpenAI API configured: %s", get_analyzer_status()["api_key_set"])
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
