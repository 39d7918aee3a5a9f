"""
Text extraction and parsing helpers shared by the receipt processor and the
bulk PDF importer.

Images go through Tesseract (via pytesseract), PDFs through pdfplumber. The
parsing helpers work on plain text so they can be used on either source.
"""

import logging
import re
from datetime import date
from typing import Optional

import pdfplumber
import pytesseract
from dateutil import parser as date_parser
from PIL import Image

from config import TESSERACT_CONFIG

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"

EXPENSE_CATEGORY_KEYWORDS = {
    "Groceries": ["grocer", "supermarket", "market", "walmart", "costco", "kroger", "aldi", "lidl", "safeway", "whole foods", "trader joe"],
    "Food & Dining": ["restaurant", "cafe", "coffee", "starbucks", "pizza", "burger", "mcdonald", "diner", "bistro", "bar & grill", "kitchen", "bakery"],
    "Transportation": ["uber", "lyft", "taxi", "fuel", "gas station", "shell", "chevron", "exxon", "parking", "metro", "transit", "toll"],
    "Shopping": ["amazon", "target", "mall", "store", "shop", "outlet", "ikea", "best buy"],
    "Utilities": ["electric", "water bill", "utility", "internet", "comcast", "verizon", "at&t", "phone bill"],
    "Entertainment": ["netflix", "spotify", "cinema", "movie", "theater", "theatre", "concert", "steam", "hulu"],
    "Healthcare": ["pharmacy", "cvs", "walgreens", "clinic", "hospital", "doctor", "dental", "medical"],
    "Travel": ["hotel", "airline", "airbnb", "flight", "booking.com", "expedia", "motel"],
    "Rent": ["rent", "lease", "landlord"],
    "Insurance": ["insurance", "geico", "allstate", "premium"],
}

INCOME_CATEGORY_KEYWORDS = {
    "Salary": ["salary", "payroll", "wage", "direct dep"],
    "Freelance": ["freelance", "invoice", "consulting", "upwork", "fiverr"],
    "Investment": ["dividend", "interest", "brokerage", "capital gain"],
    "Refund": ["refund", "reversal", "cashback", "cash back"],
    "Transfer": ["transfer from", "zelle", "venmo"],
}

# 1,234.56 / 1234.56 / $12.00, always with cents
MONEY_RE = re.compile(r"(?<![\d.])(\d{1,3}(?:,\d{3})+|\d+)\.(\d{2})(?!\d)")

TOTAL_LINE_RE = re.compile(r"\b(grand\s+total|total|amount\s+due|balance(?:\s+due)?|amount\s+paid)\b", re.IGNORECASE)
SUBTOTAL_LINE_RE = re.compile(r"\bsub\s*-?\s*total\b", re.IGNORECASE)

DATE_PATTERNS = [
    re.compile(r"\b\d{4}[-/.]\d{1,2}[-/.]\d{1,2}\b"),
    re.compile(r"\b\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}\b"),
    re.compile(r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\s+(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?,?\s+\d{4}\b", re.IGNORECASE),
]


class ExtractionError(Exception):
    """Raised when no usable text can be read from a document."""


# ----------------------------------------------------------------------------
# Text extraction
# ----------------------------------------------------------------------------
def extract_image_text(file_path: str) -> str:
    """OCR an image file and return the raw text."""
    with Image.open(file_path) as image:
        gray = image.convert("L")
        text = pytesseract.image_to_string(gray, config=TESSERACT_CONFIG)
    logger.info("OCR extracted %d characters from %s", len(text), file_path)
    return text


def extract_pdf_text(file_path: str) -> str:
    """Concatenate the text layer of every page in a PDF."""
    pages_text = []
    with pdfplumber.open(file_path) as pdf:
        for i, page in enumerate(pdf.pages):
            text = page.extract_text()
            if text and text.strip():
                pages_text.append(text)
            else:
                logger.debug("No text on page %d of %s", i + 1, file_path)
    if not pages_text:
        logger.warning("No text extracted from PDF %s - may be a scanned document", file_path)
    return "\n".join(pages_text)


# ----------------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------------
def parse_money(value: str) -> Optional[float]:
    """Parse the first money value in a string ("$1,234.50" -> 1234.5)."""
    match = MONEY_RE.search(value or "")
    if not match:
        return None
    return float(f"{match.group(1).replace(',', '')}.{match.group(2)}")


def find_amounts(text: str) -> list[float]:
    return [parse_money(m.group()) for m in MONEY_RE.finditer(text or "")]


def parse_date(value: str) -> Optional[date]:
    """Parse a single date token. Returns None when it is not a real date."""
    try:
        return date_parser.parse(value, fuzzy=False).date()
    except (ValueError, OverflowError):
        return None


def find_date(text: str) -> Optional[date]:
    """Return the first parseable date found anywhere in the text."""
    for pattern in DATE_PATTERNS:
        for match in pattern.finditer(text or ""):
            parsed = parse_date(match.group())
            if parsed:
                return parsed
    return None


def categorize(text: str, ttype: str = "expense") -> str:
    """Keyword-based category for a merchant name or description."""
    text_lower = (text or "").lower()
    keywords = INCOME_CATEGORY_KEYWORDS if ttype == "income" else EXPENSE_CATEGORY_KEYWORDS
    for category, words in keywords.items():
        if any(re.search(r"\b" + re.escape(word), text_lower) for word in words):
            return category
    return DEFAULT_CATEGORY


def clean_line(line: str) -> str:
    return re.sub(r"\s+", " ", line or "").strip()
