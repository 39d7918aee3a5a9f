import asyncio
from datetime import date

import pytest

import receipt_processor
from extraction import categorize, find_amounts, find_date, parse_money
from pdf_processor import parse_statement_line, parse_statement_text
from receipt_processor import ReceiptProcessingError, parse_receipt_text

RECEIPT = """
WHOLE FOODS MARKET
123 Main St, Springfield
Date: 03/14/2024 10:42
Bananas            1.99
Milk               3.49
Subtotal           5.48
Tax                0.44
TOTAL              5.92
Cash              10.00
Change             4.08
"""

STATEMENT = """
ACME BANK   Statement period 01/01/2024 - 01/31/2024
Date        Description                 Amount      Balance
Opening balance                                     1,000.00
01/03       STARBUCKS STORE 1234         -4.50       995.50
01/05       PAYROLL ACME CORP          +2,500.00   3,495.50
01/10       WHOLE FOODS MARKET          -82.15     3,413.35
01/12       NETFLIX.COM                 -15.99     3,397.36
01/15       UBER TRIP                   -23.40     3,373.96
01/20       SHELL OIL 5742              -40.00     3,333.96
01/25       TOTAL FEES                    0.00     3,333.96
Closing balance                                     3,333.96
"""


def test_parse_money():
    assert parse_money("Total: $1,234.50") == 1234.5
    assert parse_money("no amount here") is None


def test_find_amounts_keeps_document_order():
    assert find_amounts("Latte 4.50\nMuffin $3.25\nTotal 1,007.75") == [4.5, 3.25, 1007.75]
    assert find_amounts("") == []


def test_find_date_formats():
    assert find_date("Date: 2024-02-03") == date(2024, 2, 3)
    assert find_date("Paid on Mar 5, 2023 at 10:00") == date(2023, 3, 5)
    assert find_date("nothing") is None


def test_categorize():
    assert categorize("STARBUCKS #42") == "Food & Dining"
    assert categorize("Uber trip") == "Transportation"
    assert categorize("Current account fee") == "Other"
    assert categorize("ACME PAYROLL", "income") == "Salary"


def test_parse_receipt_prefers_total_line():
    data = parse_receipt_text(RECEIPT)
    assert data == {
        "amount": 5.92,
        "description": "WHOLE FOODS MARKET",
        "category": "Groceries",
        "date": "2024-03-14",
        "type": "expense",
    }


def test_parse_receipt_uses_balance_line():
    data = parse_receipt_text("Corner Shop\nBalance 5.00\nCash 20.00\n")
    assert data["amount"] == 5.0


def test_parse_receipt_balance_ignores_subtotal():
    data = parse_receipt_text("Corner Shop\nSub-total 50.00\nBalance 5.00\n")
    assert data["amount"] == 5.0


def test_parse_receipt_without_total_uses_largest_amount():
    data = parse_receipt_text("Corner Cafe\nLatte 4.50\nMuffin 3.25\n")
    assert data["amount"] == 4.5
    assert data["category"] == "Food & Dining"
    assert data["date"] == date.today().isoformat()


def test_parse_receipt_without_amounts():
    data = parse_receipt_text("Thank you for shopping\n")
    assert data["amount"] is None


def test_parse_receipt_empty_text():
    with pytest.raises(ReceiptProcessingError):
        parse_receipt_text("  \n \n")


def test_process_receipt_uses_ocr_for_images(monkeypatch):
    calls = []

    def fake_ocr(path):
        calls.append(path)
        return RECEIPT

    monkeypatch.setattr(receipt_processor, "extract_image_text", fake_ocr)
    data = asyncio.run(receipt_processor.process_receipt("/tmp/receipt.png", "image/png"))
    assert calls == ["/tmp/receipt.png"]
    assert data["amount"] == 5.92


def test_process_receipt_uses_text_layer_for_pdfs(monkeypatch):
    monkeypatch.setattr(receipt_processor, "extract_pdf_text", lambda path: "Hotel Plaza\nAmount due 320.00\n")
    data = asyncio.run(receipt_processor.process_receipt("/tmp/receipt.pdf", "application/pdf"))
    assert data["amount"] == 320.0
    assert data["category"] == "Travel"


def test_parse_statement_line_with_balance():
    row = parse_statement_line("01/03/2024  STARBUCKS STORE 1234  -4.50  995.50", 2024)
    assert row == {
        "type": "expense",
        "amount": 4.5,
        "category": "Food & Dining",
        "description": "STARBUCKS STORE 1234",
        "date": date(2024, 1, 3),
    }


def test_parse_statement_line_markers():
    credit = parse_statement_line("2024-02-01 REFUND AMAZON 25.00 CR", 2024)
    assert credit["type"] == "income"
    assert credit["category"] == "Refund"

    debit = parse_statement_line("Feb 2 GYM MEMBERSHIP 30.00 DR", 2024)
    assert debit["type"] == "expense"
    assert debit["date"] == date(2024, 2, 2)

    assert parse_statement_line("04/02/2024 ATM WITHDRAWAL (60.00)", 2024)["type"] == "expense"
    assert parse_statement_line("04/02/2024 POS PURCHASE 60.00", 2024)["type"] == "expense"


def test_parse_statement_line_rejects_non_transactions():
    assert parse_statement_line("Opening balance 1,000.00", 2024) is None
    assert parse_statement_line("01/31/2024 Closing balance 3,333.96", 2024) is None
    assert parse_statement_line("01/05/2024 Page 1 of 3", 2024) is None


def test_parse_statement_text_uses_statement_year():
    rows = parse_statement_text(STATEMENT)
    assert [r["description"] for r in rows] == [
        "STARBUCKS STORE 1234",
        "PAYROLL ACME CORP",
        "WHOLE FOODS MARKET",
        "NETFLIX.COM",
        "UBER TRIP",
        "SHELL OIL 5742",
    ]
    assert all(r["date"].year == 2024 for r in rows)
    assert rows[1]["type"] == "income"
    assert rows[1]["amount"] == 2500.0
    assert rows[1]["category"] == "Salary"
    assert [r["category"] for r in rows[2:]] == ["Groceries", "Entertainment", "Transportation", "Transportation"]
