import asyncio
import logging
from datetime import date
from typing import Optional

from extraction import (
    DEFAULT_CATEGORY,
    ExtractionError,
    SUBTOTAL_LINE_RE,
    TOTAL_LINE_RE,
    categorize,
    clean_line,
    extract_image_text,
    extract_pdf_text,
    find_amounts,
    find_date,
)
from models import DESCRIPTION_MAX_LENGTH

logger = logging.getLogger(__name__)


class ReceiptProcessingError(ExtractionError):
    pass


def find_total(lines: list[str]) -> Optional[float]:
    """Pick the receipt total.

    Lines labelled total / amount due win over everything else; subtotal lines
    never count. Without a labelled line the largest amount on the receipt is
    used.
    """
    labelled = []
    for line in lines:
        if TOTAL_LINE_RE.search(line) and not SUBTOTAL_LINE_RE.search(line):
            labelled.extend(find_amounts(line))
    if labelled:
        return max(labelled)

    amounts = find_amounts("\n".join(lines))
    return max(amounts) if amounts else None


def find_merchant(lines: list[str]) -> Optional[str]:
    for line in lines:
        if sum(ch.isalpha() for ch in line) >= 2:
            return line[:DESCRIPTION_MAX_LENGTH]
    return None


def parse_receipt_text(text: str) -> dict:
    """Turn raw receipt text into transaction fields."""
    lines = [clean_line(line) for line in (text or "").splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise ReceiptProcessingError("No text could be extracted from the receipt")

    receipt_date = find_date(text) or date.today()
    description = find_merchant(lines)
    category = categorize(text) if description else DEFAULT_CATEGORY

    return {
        "amount": find_total(lines),
        "description": description,
        "category": category,
        "date": receipt_date.isoformat(),
        "type": "expense",
    }


async def process_receipt(file_path: str, mimetype: str) -> dict:
    """Extract transaction data from a stored receipt image or PDF."""
    extractor = extract_pdf_text if mimetype == "application/pdf" else extract_image_text

    loop = asyncio.get_running_loop()
    text = await loop.run_in_executor(None, extractor, file_path)

    data = parse_receipt_text(text)
    logger.info(
        "Receipt %s: amount=%s category=%s date=%s",
        file_path,
        data["amount"],
        data["category"],
        data["date"],
    )
    return data
