import logging
import random
import time
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from config import (
    ALLOWED_UPLOAD_TYPES,
    BULK_PREVIEW_SIZE,
    MAX_UPLOAD_SIZE,
    UPLOAD_CHUNK_SIZE,
    UPLOAD_DIR,
)
from database import get_db
from models import UserModel
from pdf_processor import process_bulk_pdf
from receipt_processor import process_receipt
from schemas import BulkUploadOut, ExtractedData, ReceiptUploadOut, TransactionOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])

INVALID_TYPE_MESSAGE = "Invalid file type. Only JPG, PNG, and PDF files are allowed."
TOO_LARGE_MESSAGE = "File too large. Maximum size is 5MB."


# ----------------------------------------------------------------------------
# Storage helpers
# ----------------------------------------------------------------------------
def make_filename(fieldname: str, original_name: Optional[str]) -> str:
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{fieldname}-{unique_suffix}{Path(original_name or '').suffix}"


def remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove upload %s: %s", path, e)


def check_file_type(file: UploadFile) -> None:
    if file.content_type not in ALLOWED_UPLOAD_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TYPE_MESSAGE)


async def save_upload(file: UploadFile, fieldname: str) -> Path:
    """Stream an upload into UPLOAD_DIR, enforcing the size limit.

    A partially written file is removed when the limit is hit or the write
    fails.
    """
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    path = UPLOAD_DIR / make_filename(fieldname, file.filename)
    size = 0
    try:
        with open(path, "wb") as out:
            while True:
                chunk = await file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > MAX_UPLOAD_SIZE:
                    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=TOO_LARGE_MESSAGE)
                out.write(chunk)
    except Exception:
        remove_file(path)
        raise
    return path


def _has_file(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)


# ----------------------------------------------------------------------------
# Routes
# ----------------------------------------------------------------------------
@router.post("/receipt", response_model=ReceiptUploadOut)
async def upload_receipt(
    receipt: Optional[UploadFile] = File(None),
    current_user: UserModel = Depends(get_current_user),
):
    if not _has_file(receipt):
        raise HTTPException(status_code=400, detail="No file uploaded")
    check_file_type(receipt)

    path = await save_upload(receipt, "receipt")
    file_url = f"/uploads/{path.name}"

    try:
        try:
            extracted = await process_receipt(str(path), receipt.content_type)
        except Exception:
            # file is kept; fields are left for the user to fill in
            logger.exception("Receipt processing error for %s", path.name)
            return ReceiptUploadOut(
                message="Receipt uploaded but processing failed",
                file_url=file_url,
                extracted_data=ExtractedData(
                    amount=None,
                    description=receipt.filename,
                    category="Other",
                    date=date.today().isoformat(),
                ),
                filename=path.name,
                processing_error="Could not extract data from receipt",
            )

        return ReceiptUploadOut(
            message="Receipt processed successfully",
            file_url=file_url,
            extracted_data=ExtractedData(**extracted),
            filename=path.name,
        )
    except Exception as e:
        remove_file(path)
        logger.exception("Error uploading receipt")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Error uploading receipt", "error": str(e)},
        )


@router.post("/bulk", response_model=BulkUploadOut)
async def upload_bulk(
    transaction_file: Optional[UploadFile] = File(None, alias="transactionFile"),
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    if not _has_file(transaction_file):
        raise HTTPException(status_code=400, detail="No file uploaded")
    check_file_type(transaction_file)
    if transaction_file.content_type != "application/pdf":
        raise HTTPException(status_code=400, detail="Only PDF files are allowed for bulk upload")

    path = await save_upload(transaction_file, "transactionFile")
    try:
        transactions = await process_bulk_pdf(db, str(path), current_user.id)
    except Exception as e:
        await db.rollback()
        logger.exception("Bulk upload failed for user %s", current_user.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": "Error processing bulk upload", "error": str(e)},
        )
    finally:
        remove_file(path)

    return BulkUploadOut(
        message="Bulk transactions processed successfully",
        transaction_count=len(transactions),
        transactions=[TransactionOut.model_validate(tx) for tx in transactions[:BULK_PREVIEW_SIZE]],
    )


@router.get("/file/{filename}")
async def get_file(filename: str, current_user: UserModel = Depends(get_current_user)):
    path = UPLOAD_DIR / filename
    if Path(filename).name != filename or not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return FileResponse(path)
