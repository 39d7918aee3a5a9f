"""
Bulk import of transactions from PDF bank/card statements.

A statement line is taken to be a transaction when it starts with a date and
ends with an amount, optionally followed by a running balance:

    01/15/2024  STARBUCKS #1234 SEATTLE   -4.50   1,020.13
    2024-01-16  PAYROLL ACME CORP       2,500.00 CR

Negative, parenthesised or DR/debit amounts are expenses; amounts marked
with "+", CR or credit are income; anything else is treated as an expense.
"""

import asyncio
import logging
import re
from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser
from sqlalchemy.ext.asyncio import AsyncSession

from extraction import ExtractionError, categorize, clean_line, extract_pdf_text, find_date
from models import DESCRIPTION_MAX_LENGTH, TransactionModel

logger = logging.getLogger(__name__)

_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"

DATE_PREFIX_RE = re.compile(
    r"^(?P<date>"
    r"\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/.-]\d{1,2}(?:[/.-]\d{2,4})?"
    rf"|{_MONTHS}\s+\d{{1,2}}(?:,?\s+\d{{4}})?"
    rf"|\d{{1,2}}\s+{_MONTHS}(?:,?\s+\d{{4}})?"
    r")\s+(?P<rest>.+)$",
    re.IGNORECASE,
)

AMOUNT_TOKEN_RE = re.compile(
    r"(?P<sign>[-+])?\s?(?P<paren>\()?[$€£]?\s?"
    r"(?P<num>\d{1,3}(?:,\d{3})+|\d+)\.(?P<cents>\d{2})\)?"
    r"(?:\s*(?P<marker>CR|DR|credit|debit)\b)?",
    re.IGNORECASE,
)

SUMMARY_LINE_RE = re.compile(
    r"\b(?:opening|closing|previous|beginning|ending|new)\s+balance\b|\btotal\b",
    re.IGNORECASE,
)


class BulkImportError(ExtractionError):
    pass


def _trailing_amounts(rest: str) -> list[re.Match]:
    """Amount tokens forming the tail of the line, in order."""
    tokens = list(AMOUNT_TOKEN_RE.finditer(rest))
    if not tokens or tokens[-1].end() != len(rest):
        return []
    tail = [tokens[-1]]
    for token in reversed(tokens[:-1]):
        if rest[token.end():tail[0].start()].strip():
            break
        tail.insert(0, token)
    return tail


def _transaction_type(token: re.Match) -> str:
    marker = (token.group("marker") or "").lower()
    if token.group("sign") == "-" or token.group("paren") or marker in ("dr", "debit"):
        return "expense"
    if token.group("sign") == "+" or marker in ("cr", "credit"):
        return "income"
    return "expense"


def parse_statement_line(line: str, default_year: int) -> Optional[dict]:
    """Parse one statement line into transaction fields, or None if it isn't one."""
    match = DATE_PREFIX_RE.match(clean_line(line))
    if not match:
        return None

    rest = match.group("rest")
    tail = _trailing_amounts(rest)
    if not tail:
        return None
    # date  description  amount  [balance]
    amount_token = tail[-2] if len(tail) >= 2 else tail[-1]
    description = rest[:tail[0].start()].strip()
    if sum(ch.isalpha() for ch in description) < 2 or SUMMARY_LINE_RE.search(description):
        return None

    try:
        tx_date = date_parser.parse(match.group("date"), default=datetime(default_year, 1, 1)).date()
    except (ValueError, OverflowError):
        return None

    ttype = _transaction_type(amount_token)
    amount = float(f"{amount_token.group('num').replace(',', '')}.{amount_token.group('cents')}")
    description = description[:DESCRIPTION_MAX_LENGTH]
    return {
        "type": ttype,
        "amount": amount,
        "category": categorize(description, ttype),
        "description": description,
        "date": tx_date,
    }


def parse_statement_text(text: str) -> list[dict]:
    """All transaction rows found in a statement, in document order."""
    statement_date = find_date(text)
    default_year = statement_date.year if statement_date else date.today().year

    rows = []
    for line in (text or "").splitlines():
        row = parse_statement_line(line, default_year)
        if row:
            rows.append(row)
    return rows


async def process_bulk_pdf(db: AsyncSession, file_path: str, user_id: int) -> list[TransactionModel]:
    """Extract transactions from a statement PDF and save them for a user."""
    loop = asyncio.get_running_loop()
    text = await loop.run_in_executor(None, extract_pdf_text, file_path)

    rows = parse_statement_text(text)
    if not rows:
        raise BulkImportError("No transactions found in PDF")

    transactions = []
    for row in rows:
        try:
            transactions.append(TransactionModel(user_id=user_id, **row))
        except ValueError as e:
            logger.warning("Skipping statement row %s: %s", row, e)

    if not transactions:
        raise BulkImportError("No valid transactions found in PDF")

    db.add_all(transactions)
    await db.commit()
    logger.info("Imported %d transactions for user %s from %s", len(transactions), user_id, file_path)
    return transactions
